from .order import (
    OrderItemInput,
    OrderCreate,
    OrderUpdate,
    OrderStatusUpdate,
    PaymentCreate,
    OrderResponse,
    OrderListResponse,
    OrderStatsResponse,
    PaymentResponse
)
from .inspection import (
    InspectionCreate,
    InspectionItemUpdate,
    SignatureCreate,
    VideoUpdate,
    DamageCreate,
    DamageBatchCreate,
    InspectionItemResponse,
    DamageResponse,
    InspectionResponse,
    InspectionSummaryResponse
)

__all__ = [
    "OrderItemInput",
    "OrderCreate",
    "OrderUpdate",
    "OrderStatusUpdate",
    "PaymentCreate",
    "OrderResponse",
    "OrderListResponse",
    "OrderStatsResponse",
    "PaymentResponse",
    "InspectionCreate",
    "InspectionItemUpdate",
    "SignatureCreate",
    "VideoUpdate",
    "DamageCreate",
    "DamageBatchCreate",
    "InspectionItemResponse",
    "DamageResponse",
    "InspectionResponse",
    "InspectionSummaryResponse"
]
