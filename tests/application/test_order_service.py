"""Tests for the order application service."""

from datetime import datetime, timezone

import pytest

from orderflow.application.catalog import StaticPriceCatalog
from orderflow.application.notifications import RecordingNotificationSink
from orderflow.application.order_service import OrderService
from orderflow.application.repository import InMemoryOrderRepository
from orderflow.domain import Actor, ActorRole, ApprovedQuantity, Money, OrderItem, OrderStatus
from orderflow.domain.exceptions import (
    ConcurrencyConflictError,
    InvalidStateTransitionError,
    OrderItemNotFoundError,
    OrderNotFoundError,
    PriceLookupError,
    UnauthorizedError,
)

NOW = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)

MANAGER = Actor(user_id="mgr-1", role=ActorRole.MANAGER)
ADMIN = Actor(user_id="adm-1", role=ActorRole.ADMIN)
BRANCH_USER = Actor(user_id="usr-1", role=ActorRole.BRANCH_USER, branch_id="branch-1")
OTHER_BRANCH_USER = Actor(user_id="usr-2", role=ActorRole.BRANCH_USER, branch_id="branch-2")


class FailingSink:
    """Notification sink that always fails."""

    async def notify(self, event) -> None:
        raise RuntimeError("smtp down")


class BrokenCatalog:
    """Catalog whose transport blows up."""

    async def get_unit_price(self, sku: str) -> Money:
        raise ConnectionError("catalog offline")


@pytest.fixture
def repo() -> InMemoryOrderRepository:
    return InMemoryOrderRepository()


@pytest.fixture
def sink() -> RecordingNotificationSink:
    return RecordingNotificationSink()


@pytest.fixture
def catalog() -> StaticPriceCatalog:
    return StaticPriceCatalog({"X": Money(250), "Y": Money(1000)})


@pytest.fixture
def service(repo, catalog, sink) -> OrderService:
    return OrderService(order_repo=repo, catalog=catalog, notifier=sink, time_source=lambda: NOW)


async def place_order(service: OrderService) -> str:
    order = await service.create_order(
        BRANCH_USER,
        [OrderItem(sku="X", qty_requested=50), OrderItem(sku="Y", qty_requested=10)],
        remarks="Weekly restock",
    )
    return str(order.id)


class TestCreateAndRead:
    """Tests for create_order, get_order and list_orders."""

    @pytest.mark.asyncio
    async def test_create_order(self, service, repo, sink) -> None:
        """Branch users place orders for their own branch."""
        order_id = await place_order(service)
        stored = await repo.get(order_id)
        assert stored.status == OrderStatus.PENDING_REVIEW
        assert stored.branch_id == "branch-1"
        assert stored.remarks == "Weekly restock"
        assert [e.event_type for e in sink.events] == ["order.created"]

    @pytest.mark.asyncio
    async def test_manager_cannot_create(self, service) -> None:
        """Only branch users request stock."""
        with pytest.raises(UnauthorizedError):
            await service.create_order(
                Actor("mgr-1", ActorRole.MANAGER, branch_id="branch-1"),
                [OrderItem("X", 1)],
            )

    @pytest.mark.asyncio
    async def test_other_branch_sees_not_found(self, service) -> None:
        """Orders of other branches are invisible to branch users."""
        order_id = await place_order(service)
        with pytest.raises(OrderNotFoundError):
            await service.get_order(order_id, OTHER_BRANCH_USER)
        assert (await service.get_order(order_id, MANAGER)).id

    @pytest.mark.asyncio
    async def test_list_scoped_to_branch(self, service) -> None:
        """Branch users only list their own branch."""
        await place_order(service)
        mine = await service.list_orders(BRANCH_USER)
        theirs = await service.list_orders(OTHER_BRANCH_USER, branch_id="branch-1")
        everyone = await service.list_orders(MANAGER)
        assert mine.total == 1
        assert theirs.total == 0
        assert everyone.total == 1
        assert not everyone.has_more


class TestApprove:
    """Tests for OrderService.approve."""

    @pytest.mark.asyncio
    async def test_approve_increase(self, service, repo) -> None:
        """Managers may approve more than requested."""
        order_id = await place_order(service)
        result = await service.approve(order_id, MANAGER, [ApprovedQuantity("X", 100)])

        assert result.order.status == OrderStatus.CONFIRM_PENDING
        assert result.quantity_changes["X"].change == 50
        assert result.quantity_changes["X"].is_increased
        stored = await repo.get(order_id)
        assert stored.get_item("X").qty_approved == 100
        assert stored.get_item("X").total_price == Money(100 * 250)
        assert stored.confirm_pending_at == NOW

    @pytest.mark.asyncio
    async def test_admin_may_approve(self, service) -> None:
        """Admins hold manager capabilities."""
        order_id = await place_order(service)
        result = await service.approve(order_id, ADMIN, [])
        assert result.order.manager_id == "adm-1"

    @pytest.mark.asyncio
    async def test_branch_user_cannot_approve(self, service, repo) -> None:
        """Approval is manager-only."""
        order_id = await place_order(service)
        with pytest.raises(UnauthorizedError):
            await service.approve(order_id, BRANCH_USER, [ApprovedQuantity("X", 1)])
        assert (await repo.get(order_id)).status == OrderStatus.PENDING_REVIEW

    @pytest.mark.asyncio
    async def test_unknown_sku_is_all_or_nothing(self, service, repo) -> None:
        """A bad SKU leaves the stored order untouched."""
        order_id = await place_order(service)
        with pytest.raises(OrderItemNotFoundError):
            await service.approve(
                order_id,
                MANAGER,
                [ApprovedQuantity("X", 100), ApprovedQuantity("Z", 1)],
            )
        stored = await repo.get(order_id)
        assert stored.status == OrderStatus.PENDING_REVIEW
        assert all(item.qty_approved is None for item in stored.items)
        assert stored.version == 1

    @pytest.mark.asyncio
    async def test_price_lookup_failure(self, repo, sink) -> None:
        """Catalog failures surface as upstream errors and nothing is applied."""
        creator = OrderService(order_repo=repo, time_source=lambda: NOW)
        order_id = await place_order(creator)
        service = OrderService(order_repo=repo, catalog=BrokenCatalog(), notifier=sink)

        with pytest.raises(PriceLookupError):
            await service.approve(order_id, MANAGER, [ApprovedQuantity("X", 5)])
        assert (await repo.get(order_id)).status == OrderStatus.PENDING_REVIEW

    @pytest.mark.asyncio
    async def test_mixed_catalog_currencies(self, service, catalog, repo, sink) -> None:
        """An order the catalog prices in two currencies is not approved."""
        order_id = await place_order(service)
        catalog.set_price("Y", Money(1000, "EUR"))

        with pytest.raises(PriceLookupError):
            await service.approve(order_id, MANAGER, [ApprovedQuantity("X", 5)])

        stored = await repo.get(order_id)
        assert stored.status == OrderStatus.PENDING_REVIEW
        assert stored.manager_id is None
        assert [i.qty_approved for i in stored.items] == [None, None]
        assert [e.event_type for e in sink.events] == ["order.created"]

    @pytest.mark.asyncio
    async def test_sku_missing_from_catalog(self, service, catalog, repo) -> None:
        """A SKU the catalog cannot price fails the approval."""
        order = await service.create_order(BRANCH_USER, [OrderItem("UNPRICED", 3)])
        with pytest.raises(PriceLookupError):
            await service.approve(str(order.id), MANAGER, [])
        assert (await repo.get(str(order.id))).status == OrderStatus.PENDING_REVIEW

    @pytest.mark.asyncio
    async def test_approve_twice_is_invalid_state(self, service) -> None:
        """A second approval fails on the status guard."""
        order_id = await place_order(service)
        await service.approve(order_id, MANAGER, [])
        with pytest.raises(InvalidStateTransitionError):
            await service.approve(order_id, MANAGER, [])

    @pytest.mark.asyncio
    async def test_missing_order(self, service) -> None:
        """Approving an unknown order is NotFound."""
        with pytest.raises(OrderNotFoundError):
            await service.approve("00000000-0000-0000-0000-000000000000", MANAGER, [])


class TestLifecycle:
    """Tests for confirm, raise_issue, reply and confirm_received."""

    @pytest.mark.asyncio
    async def test_happy_path(self, service, sink) -> None:
        """An order runs from request to receipt."""
        order_id = await place_order(service)
        await service.approve(order_id, MANAGER, [ApprovedQuantity("X", 40)])
        await service.confirm(order_id, BRANCH_USER)
        order = await service.confirm_received(order_id, BRANCH_USER)

        assert order.status == OrderStatus.CLOSED
        assert [e.event_type for e in sink.events] == [
            "order.created",
            "order.approved",
            "order.confirmed",
            "order.received",
        ]

    @pytest.mark.asyncio
    async def test_issue_cycle(self, service) -> None:
        """An issue and reply return the order to CONFIRM_PENDING."""
        order_id = await place_order(service)
        await service.approve(order_id, MANAGER, [])
        await service.raise_issue(order_id, BRANCH_USER, "Short on X")
        order = await service.reply(order_id, MANAGER, "Approved what we have")
        assert order.status == OrderStatus.CONFIRM_PENDING
        assert len(order.issues) == 2

    @pytest.mark.asyncio
    async def test_confirm_wrong_state(self, service, repo) -> None:
        """Confirming before approval fails and leaves status unchanged."""
        order_id = await place_order(service)
        with pytest.raises(InvalidStateTransitionError):
            await service.confirm(order_id, BRANCH_USER)
        assert (await repo.get(order_id)).status == OrderStatus.PENDING_REVIEW

    @pytest.mark.asyncio
    async def test_other_branch_cannot_confirm(self, service) -> None:
        """Branch users act on their own branch only."""
        order_id = await place_order(service)
        await service.approve(order_id, MANAGER, [])
        with pytest.raises(UnauthorizedError):
            await service.confirm(order_id, OTHER_BRANCH_USER)

    @pytest.mark.asyncio
    async def test_manager_cannot_confirm(self, service) -> None:
        """Confirmation belongs to the branch."""
        order_id = await place_order(service)
        await service.approve(order_id, MANAGER, [])
        with pytest.raises(UnauthorizedError):
            await service.confirm(order_id, MANAGER)

    @pytest.mark.asyncio
    async def test_branch_user_cannot_reply(self, service) -> None:
        """Replies are manager-only."""
        order_id = await place_order(service)
        await service.approve(order_id, MANAGER, [])
        await service.raise_issue(order_id, BRANCH_USER, "Wrong quantity")
        with pytest.raises(UnauthorizedError):
            await service.reply(order_id, BRANCH_USER, "me again")


class TestConcurrencyAndNotifications:
    """Tests for version checks and best-effort notifications."""

    @pytest.mark.asyncio
    async def test_stale_write_conflicts(self, service, repo) -> None:
        """A write based on an outdated read is rejected."""
        order_id = await place_order(service)
        await service.approve(order_id, MANAGER, [])

        stale = await repo.get(order_id)
        await service.confirm(order_id, BRANCH_USER)

        expected = stale.version
        stale.raise_issue(BRANCH_USER, "too late", NOW)
        with pytest.raises(ConcurrencyConflictError):
            await repo.save(stale, expected)
        assert (await repo.get(order_id)).status == OrderStatus.DISPATCHED

    @pytest.mark.asyncio
    async def test_notification_failure_does_not_block(self, repo, catalog) -> None:
        """A failing sink never undoes a committed transition."""
        service = OrderService(
            order_repo=repo,
            catalog=catalog,
            notifier=FailingSink(),
            time_source=lambda: NOW,
        )
        order_id = await place_order(service)
        result = await service.approve(order_id, MANAGER, [])
        assert result.order.status == OrderStatus.CONFIRM_PENDING
        assert (await repo.get(order_id)).status == OrderStatus.CONFIRM_PENDING
