"""SQLAlchemy-backed order store.

Implements ``OrderRepository`` on the async engine. ``save`` is a
compare-and-set: the order row is updated only while its version still
equals the version the caller read, otherwise nothing is written and
``ConcurrencyConflictError`` is raised.
"""

from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from orderflow.domain.entities import IssueMessage, Order, OrderItem, StatusHistoryEntry
from orderflow.domain.exceptions import ConcurrencyConflictError, OrderNotFoundError
from orderflow.domain.state_machines import OrderStatus
from orderflow.domain.value_objects import ActorRole, Money, OrderId
from orderflow.infrastructure.models import OrderItemModel, OrderModel

logger = structlog.get_logger()


class SqlOrderRepository:
    """Order repository on SQLAlchemy async sessions."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def add(self, order: Order) -> None:
        async with self._session_factory() as session:
            session.add(_to_model(order))
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise ConcurrencyConflictError(str(order.id), 0, order.version) from e

    async def get(self, order_id: str) -> Order | None:
        async with self._session_factory() as session:
            model = await session.get(OrderModel, order_id)
            return _to_entity(model) if model else None

    async def save(self, order: Order, expected_version: int) -> None:
        key = str(order.id)
        async with self._session_factory() as session, session.begin():
            result = await session.execute(
                update(OrderModel)
                .where(OrderModel.id == key, OrderModel.version == expected_version)
                .values(**_order_columns(order))
            )
            if result.rowcount != 1:
                stored = await session.scalar(
                    select(OrderModel.version).where(OrderModel.id == key)
                )
                if stored is None:
                    raise OrderNotFoundError(key)
                logger.debug(
                    "Version check failed",
                    order_id=key,
                    expected_version=expected_version,
                    actual_version=stored,
                )
                raise ConcurrencyConflictError(key, expected_version, stored)

            for item in order.items:
                await session.execute(
                    update(OrderItemModel)
                    .where(OrderItemModel.order_id == key, OrderItemModel.sku == item.sku)
                    .values(
                        qty_approved=item.qty_approved,
                        unit_price_cents=item.unit_price.amount_cents,
                        currency=item.unit_price.currency,
                    )
                )

    async def list_by_status(self, status: OrderStatus) -> list[Order]:
        async with self._session_factory() as session:
            rows = await session.scalars(
                select(OrderModel)
                .where(OrderModel.status == status.value)
                .order_by(OrderModel.created_at)
            )
            return [_to_entity(m) for m in rows]

    async def list_orders(
        self,
        page: int = 1,
        page_size: int = 20,
        status: OrderStatus | None = None,
        branch_id: str | None = None,
    ) -> tuple[list[Order], int]:
        query = select(OrderModel)
        if status:
            query = query.where(OrderModel.status == status.value)
        if branch_id:
            query = query.where(OrderModel.branch_id == branch_id)

        async with self._session_factory() as session:
            total = await session.scalar(
                select(func.count()).select_from(query.subquery())
            )
            rows = await session.scalars(
                query.order_by(OrderModel.created_at.desc())
                .offset((page - 1) * page_size)
                .limit(page_size)
            )
            return [_to_entity(m) for m in rows], total or 0


# ============================================================================
# Mapping
# ============================================================================


def _to_db_time(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc)


def _from_db_time(value: datetime | None) -> datetime | None:
    # SQLite drops tzinfo; every stored instant is UTC
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _order_columns(order: Order) -> dict[str, Any]:
    return {
        "status": order.status.value,
        "version": order.version,
        "manager_id": order.manager_id,
        "remarks": order.remarks,
        "closed_by": order.closed_by,
        "issues": [
            {
                "author_id": m.author_id,
                "author_role": m.author_role.value,
                "message": m.message,
                "created_at": _to_db_time(m.created_at).isoformat(),
            }
            for m in order.issues
        ],
        "status_history": [
            {
                "from_status": h.from_status.value if h.from_status else None,
                "to_status": h.to_status.value,
                "actor": h.actor,
                "created_at": _to_db_time(h.created_at).isoformat(),
                "reason": h.reason,
            }
            for h in order.status_history
        ],
        "updated_at": _to_db_time(order.updated_at),
        "approved_at": _to_db_time(order.approved_at),
        "confirm_pending_at": _to_db_time(order.confirm_pending_at),
        "dispatched_at": _to_db_time(order.dispatched_at),
        "closed_at": _to_db_time(order.closed_at),
    }


def _to_model(order: Order) -> OrderModel:
    return OrderModel(
        id=str(order.id),
        order_number=order.order_number,
        branch_id=order.branch_id,
        requested_by_id=order.requested_by_id,
        created_at=_to_db_time(order.created_at),
        items=[
            OrderItemModel(
                sku=item.sku,
                position=position,
                name=item.name,
                qty_requested=item.qty_requested,
                qty_approved=item.qty_approved,
                unit_price_cents=item.unit_price.amount_cents,
                currency=item.unit_price.currency,
            )
            for position, item in enumerate(order.items)
        ],
        **_order_columns(order),
    )


def _to_entity(model: OrderModel) -> Order:
    return Order(
        id=OrderId.from_string(model.id),
        order_number=model.order_number,
        branch_id=model.branch_id,
        requested_by_id=model.requested_by_id,
        status=OrderStatus(model.status),
        items=[
            OrderItem(
                sku=row.sku,
                qty_requested=row.qty_requested,
                name=row.name,
                unit_price=Money(row.unit_price_cents, row.currency),
                qty_approved=row.qty_approved,
            )
            for row in model.items
        ],
        manager_id=model.manager_id,
        approved_at=_from_db_time(model.approved_at),
        confirm_pending_at=_from_db_time(model.confirm_pending_at),
        dispatched_at=_from_db_time(model.dispatched_at),
        closed_at=_from_db_time(model.closed_at),
        closed_by=model.closed_by,
        remarks=model.remarks,
        issues=[
            IssueMessage(
                author_id=m["author_id"],
                author_role=ActorRole(m["author_role"]),
                message=m["message"],
                created_at=datetime.fromisoformat(m["created_at"]),
            )
            for m in model.issues or []
        ],
        status_history=[
            StatusHistoryEntry(
                from_status=OrderStatus(h["from_status"]) if h["from_status"] else None,
                to_status=OrderStatus(h["to_status"]),
                actor=h["actor"],
                created_at=datetime.fromisoformat(h["created_at"]),
                reason=h.get("reason"),
            )
            for h in model.status_history or []
        ],
        version=model.version,
        created_at=_from_db_time(model.created_at),
        updated_at=_from_db_time(model.updated_at),
    )
