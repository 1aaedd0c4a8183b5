from .tenant import Tenant, TenantStatus, User, UserRole
from .customer import Customer, Vehicle
from .order import ServiceOrder, OrderItem, Payment, OrderStatus, DiscountType, PaymentMethod
from .inspection import (
    Inspection,
    InspectionItem,
    InspectionDamage,
    InspectionType,
    InspectionStatus,
    ItemStatus,
    ItemDamageType,
    ItemSeverity,
    MarkerDamageType
)

__all__ = [
    "Tenant",
    "TenantStatus",
    "User",
    "UserRole",
    "Customer",
    "Vehicle",
    "ServiceOrder",
    "OrderItem",
    "Payment",
    "OrderStatus",
    "DiscountType",
    "PaymentMethod",
    "Inspection",
    "InspectionItem",
    "InspectionDamage",
    "InspectionType",
    "InspectionStatus",
    "ItemStatus",
    "ItemDamageType",
    "ItemSeverity",
    "MarkerDamageType"
]
