from . import order_state_machine, payment_service, inspection_service, order_service

__all__ = [
    "order_state_machine",
    "payment_service",
    "inspection_service",
    "order_service"
]
