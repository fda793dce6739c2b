"""Application layer module.

Contains application services (use cases) that orchestrate
domain logic and infrastructure.
"""

from orderflow.application.auto_close import (
    AutoCloseSweeper,
    SweepFailure,
    SweepResult,
    get_auto_close_sweeper,
    get_business_clock,
)
from orderflow.application.order_service import (
    ApprovalResult,
    ListOrdersResult,
    OrderService,
    get_order_service,
)
from orderflow.application.repository import (
    InMemoryOrderRepository,
    OrderRepository,
    get_order_repository,
    reset_order_repository,
)

__all__ = [
    "ApprovalResult",
    "AutoCloseSweeper",
    "get_auto_close_sweeper",
    "get_business_clock",
    "get_order_repository",
    "get_order_service",
    "InMemoryOrderRepository",
    "ListOrdersResult",
    "OrderRepository",
    "OrderService",
    "reset_order_repository",
    "SweepFailure",
    "SweepResult",
]
