"""
Oficina Server - Order Schemas
"""
from pydantic import BaseModel, Field, model_validator
from typing import Optional, List
from datetime import datetime
from oficina.models.order import OrderStatus, DiscountType, PaymentMethod


class OrderItemInput(BaseModel):
    service_id: Optional[str] = None
    custom_name: Optional[str] = Field(None, max_length=255)
    price: float = Field(..., ge=0)
    quantity: int = Field(1, ge=1)
    notes: Optional[str] = None

    @model_validator(mode="after")
    def check_name(self):
        if not self.service_id and not self.custom_name:
            raise ValueError("Informe o serviço ou um nome para o item")
        return self


class OrderCreate(BaseModel):
    vehicle_id: str
    scheduled_at: datetime
    assigned_to_id: str
    items: List[OrderItemInput] = Field(..., min_length=1)
    discount_type: Optional[DiscountType] = None
    discount_value: Optional[float] = Field(None, ge=0)


class OrderUpdate(BaseModel):
    scheduled_at: Optional[datetime] = None
    assigned_to_id: Optional[str] = None
    discount_type: Optional[DiscountType] = None
    discount_value: Optional[float] = Field(None, ge=0)
    items: Optional[List[OrderItemInput]] = Field(None, min_length=1)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class PaymentCreate(BaseModel):
    method: PaymentMethod
    amount: float = Field(..., gt=0)
    paid_at: Optional[datetime] = None  # Permite lançamento retroativo
    notes: Optional[str] = None


class OrderItemResponse(BaseModel):
    id: str
    service_id: Optional[str] = None
    custom_name: Optional[str] = None
    price: float
    quantity: int
    notes: Optional[str] = None
    total: float


class VehicleSummary(BaseModel):
    plate: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    color: Optional[str] = None


class OrderResponse(BaseModel):
    id: str
    tenant_id: str
    code: str
    vehicle_id: str
    customer_id: str
    assigned_to_id: str
    created_by_id: Optional[str] = None
    status: OrderStatus
    status_label: Optional[str] = None
    scheduled_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    subtotal: float
    discount_type: Optional[DiscountType] = None
    discount_value: Optional[float] = None
    total: float
    items: List[OrderItemResponse] = []
    vehicle: Optional[VehicleSummary] = None
    paid_amount: Optional[float] = None
    balance: Optional[float] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OrderListResponse(BaseModel):
    orders: List[OrderResponse]
    total: int
    pages: int


class OrderStatsResponse(BaseModel):
    today_orders: int
    in_progress: int
    month_revenue: float


class PaymentResponse(BaseModel):
    id: str
    order_id: str
    method: PaymentMethod
    amount: float
    paid_at: datetime
    received_by: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    order_status: Optional[OrderStatus] = None

    class Config:
        from_attributes = True
