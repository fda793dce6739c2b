"""API layer module.

Contains FastAPI routers and request/response schemas.
"""

from orderflow.api.admin import router as admin_router
from orderflow.api.health import router as health_router
from orderflow.api.orders import router as orders_router

__all__ = [
    "admin_router",
    "health_router",
    "orders_router",
]
