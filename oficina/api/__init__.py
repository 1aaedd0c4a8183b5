from .orders import router as orders_router
from .inspections import router as inspections_router

__all__ = [
    "orders_router",
    "inspections_router"
]
