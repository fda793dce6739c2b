"""Order store port and in-memory implementation.

Every write is a compare-and-set on the aggregate's version: ``save``
commits only if the stored version still equals the version the caller
read. Readers always receive private copies, so an operation that fails
half-way never leaks partial state into the store.
"""

import copy
import threading
from typing import Protocol

from orderflow.domain.entities import Order
from orderflow.domain.exceptions import ConcurrencyConflictError, OrderNotFoundError
from orderflow.domain.state_machines import OrderStatus


class OrderRepository(Protocol):
    """Persistence interface the order lifecycle depends on."""

    async def add(self, order: Order) -> None:
        """Insert a new order."""
        ...

    async def get(self, order_id: str) -> Order | None:
        """Fetch a private copy of an order."""
        ...

    async def save(self, order: Order, expected_version: int) -> None:
        """Write an order if the stored version equals ``expected_version``.

        Raises:
            OrderNotFoundError: If the order was never added.
            ConcurrencyConflictError: If another write got there first.
        """
        ...

    async def list_by_status(self, status: OrderStatus) -> list[Order]:
        """All orders currently in ``status``."""
        ...

    async def list_orders(
        self,
        page: int = 1,
        page_size: int = 20,
        status: OrderStatus | None = None,
        branch_id: str | None = None,
    ) -> tuple[list[Order], int]:
        """Paginated orders, newest first, with the unpaginated total."""
        ...


# ============================================================================
# In-Memory Order Repository
# ============================================================================


class InMemoryOrderRepository:
    """In-memory order store.

    A lock makes each compare-and-set atomic even when the auto-close
    scheduler and request handlers run on different threads.
    """

    def __init__(self) -> None:
        self._orders: dict[str, Order] = {}
        self._lock = threading.Lock()

    async def add(self, order: Order) -> None:
        key = str(order.id)
        with self._lock:
            if key in self._orders:
                raise ConcurrencyConflictError(key, expected_version=0, actual_version=self._orders[key].version)
            self._orders[key] = _snapshot(order)

    async def get(self, order_id: str) -> Order | None:
        with self._lock:
            stored = self._orders.get(order_id)
            return _snapshot(stored) if stored else None

    async def save(self, order: Order, expected_version: int) -> None:
        key = str(order.id)
        with self._lock:
            stored = self._orders.get(key)
            if stored is None:
                raise OrderNotFoundError(key)
            if stored.version != expected_version:
                raise ConcurrencyConflictError(key, expected_version, stored.version)
            self._orders[key] = _snapshot(order)

    async def list_by_status(self, status: OrderStatus) -> list[Order]:
        with self._lock:
            return [_snapshot(o) for o in self._orders.values() if o.status == status]

    async def list_orders(
        self,
        page: int = 1,
        page_size: int = 20,
        status: OrderStatus | None = None,
        branch_id: str | None = None,
    ) -> tuple[list[Order], int]:
        with self._lock:
            orders = list(self._orders.values())

        if status:
            orders = [o for o in orders if o.status == status]
        if branch_id:
            orders = [o for o in orders if o.branch_id == branch_id]

        orders.sort(key=lambda o: o.created_at, reverse=True)

        total = len(orders)
        start = (page - 1) * page_size
        end = start + page_size
        return [_snapshot(o) for o in orders[start:end]], total


def _snapshot(order: Order) -> Order:
    clone = copy.deepcopy(order)
    clone.collect_events()
    return clone


# Global repository instance
_order_repo: OrderRepository | None = None


def get_order_repository() -> OrderRepository:
    """Get order repository singleton."""
    global _order_repo
    if _order_repo is None:
        _order_repo = InMemoryOrderRepository()
    return _order_repo


def set_order_repository(repository: OrderRepository) -> None:
    """Install the repository used by services (e.g. the SQL store)."""
    global _order_repo
    _order_repo = repository


def reset_order_repository() -> None:
    """Reset order repository (for testing)."""
    global _order_repo
    _order_repo = InMemoryOrderRepository()
