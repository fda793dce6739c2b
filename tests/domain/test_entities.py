"""Tests for the Order aggregate."""

from datetime import datetime, timedelta, timezone

import pytest

from orderflow.domain import (
    Actor,
    ActorRole,
    ApprovedQuantity,
    BusinessHoursClock,
    Money,
    Order,
    OrderItem,
    OrderStatus,
)
from orderflow.domain.events import (
    OrderApproved,
    OrderAutoClosed,
    OrderCreated,
    OrderIssueReplied,
)
from orderflow.domain.exceptions import (
    InvalidPayloadError,
    InvalidQuantityError,
    InvalidStateTransitionError,
    OrderItemNotFoundError,
    PriceLookupError,
)

NOW = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)  # Monday
MANAGER = Actor(user_id="mgr-1", role=ActorRole.MANAGER)
BRANCH_USER = Actor(user_id="usr-1", role=ActorRole.BRANCH_USER, branch_id="branch-1")
PRICES = {"X": Money(250), "Y": Money(1000)}


def make_order(**overrides) -> Order:
    params = {
        "branch_id": "branch-1",
        "requested_by_id": "usr-1",
        "items": [
            OrderItem(sku="X", qty_requested=50, name="Widget"),
            OrderItem(sku="Y", qty_requested=10),
        ],
        "now": NOW,
    }
    params.update(overrides)
    order = Order.create(**params)
    order.collect_events()
    return order


def approved_order() -> Order:
    order = make_order()
    order.approve("mgr-1", [ApprovedQuantity("X", 40)], PRICES, NOW)
    order.collect_events()
    return order


class TestOrderCreate:
    """Tests for Order.create."""

    def test_create_starts_in_pending_review(self) -> None:
        """A new order awaits manager review."""
        order = Order.create(
            branch_id="branch-1",
            requested_by_id="usr-1",
            items=[OrderItem(sku="X", qty_requested=5)],
            now=NOW,
        )
        assert order.status == OrderStatus.PENDING_REVIEW
        assert order.version == 1
        assert order.manager_id is None
        assert order.approved_at is None
        assert order.order_number.startswith("ORD-20240115-")
        assert order.status_history[0].to_status == OrderStatus.PENDING_REVIEW

    def test_create_records_event(self) -> None:
        """Creation emits OrderCreated."""
        order = Order.create(
            branch_id="branch-1",
            requested_by_id="usr-1",
            items=[OrderItem(sku="X", qty_requested=5)],
            now=NOW,
        )
        events = order.collect_events()
        assert len(events) == 1
        assert isinstance(events[0], OrderCreated)
        assert events[0].to_dict()["payload"]["item_count"] == 1

    def test_create_requires_items(self) -> None:
        """An empty order is rejected."""
        with pytest.raises(InvalidPayloadError):
            make_order(items=[])

    def test_create_rejects_duplicate_sku(self) -> None:
        """A SKU may appear once per order."""
        with pytest.raises(InvalidPayloadError):
            make_order(items=[OrderItem("X", 1), OrderItem("X", 2)])

    def test_item_rejects_negative_quantity(self) -> None:
        """Requested quantities cannot be negative."""
        with pytest.raises(InvalidQuantityError):
            OrderItem(sku="X", qty_requested=-1)

    def test_total_is_zero_before_approval(self) -> None:
        """Nothing is priced until approval."""
        assert make_order().total == Money.zero()


class TestApprove:
    """Tests for Order.approve."""

    def test_increase_reports_quantity_change(self) -> None:
        """Approving 100 of 50 requested is an increase of 50."""
        order = make_order()
        changes = order.approve("mgr-1", [ApprovedQuantity("X", 100)], PRICES, NOW)

        assert changes["X"].to_dict() == {
            "requested": 50,
            "approved": 100,
            "change": 50,
            "is_increased": True,
            "is_decreased": False,
        }
        assert order.status == OrderStatus.CONFIRM_PENDING

    def test_approve_sets_manager_and_anchor(self) -> None:
        """Approval records the manager, time and SLA anchor."""
        order = make_order()
        order.approve("mgr-1", [ApprovedQuantity("X", 40)], PRICES, NOW)
        assert order.manager_id == "mgr-1"
        assert order.approved_at == NOW
        assert order.confirm_pending_at == NOW
        assert order.version == 2

    def test_approve_reprices_and_totals(self) -> None:
        """Every line takes the catalog price; unnamed lines keep the request."""
        order = make_order()
        order.approve("mgr-1", [ApprovedQuantity("X", 40)], PRICES, NOW)

        x, y = order.get_item("X"), order.get_item("Y")
        assert x.qty_approved == 40
        assert x.total_price == Money(40 * 250)
        assert y.qty_approved == 10
        assert y.unit_price == Money(1000)
        assert order.total == Money(40 * 250 + 10 * 1000)

    def test_unchanged_quantity_still_reported(self) -> None:
        """SKUs approved as requested appear with a zero change."""
        order = make_order()
        changes = order.approve("mgr-1", [ApprovedQuantity("Y", 10)], PRICES, NOW)
        assert changes["Y"].change == 0
        assert not changes["Y"].is_increased
        assert not changes["Y"].is_decreased

    def test_approve_to_zero(self) -> None:
        """A manager may approve none of a line."""
        order = make_order()
        changes = order.approve("mgr-1", [ApprovedQuantity("X", 0)], PRICES, NOW)
        assert changes["X"].is_decreased
        assert order.get_item("X").total_price == Money.zero()

    def test_unknown_sku_leaves_order_untouched(self) -> None:
        """An unknown SKU fails the whole approval."""
        order = make_order()
        with pytest.raises(OrderItemNotFoundError):
            order.approve(
                "mgr-1",
                [ApprovedQuantity("X", 100), ApprovedQuantity("NOPE", 1)],
                PRICES,
                NOW,
            )
        assert order.status == OrderStatus.PENDING_REVIEW
        assert [i.qty_approved for i in order.items] == [None, None]
        assert [i.unit_price for i in order.items] == [Money.zero(), Money.zero()]
        assert order.version == 1
        assert order.collect_events() == []

    def test_duplicate_sku_in_request_rejected(self) -> None:
        """A SKU may be decided once per approval."""
        order = make_order()
        with pytest.raises(InvalidPayloadError):
            order.approve(
                "mgr-1",
                [ApprovedQuantity("X", 1), ApprovedQuantity("X", 2)],
                PRICES,
                NOW,
            )
        assert order.get_item("X").qty_approved is None

    def test_missing_price_leaves_order_untouched(self) -> None:
        """A line without a price fails the whole approval."""
        order = make_order()
        with pytest.raises(PriceLookupError):
            order.approve("mgr-1", [ApprovedQuantity("X", 5)], {"X": Money(1)}, NOW)
        assert order.status == OrderStatus.PENDING_REVIEW
        assert order.get_item("X").qty_approved is None

    def test_mixed_currencies_leave_order_untouched(self) -> None:
        """Prices in different currencies fail before anything is applied."""
        order = make_order()
        with pytest.raises(PriceLookupError) as exc_info:
            order.approve(
                "mgr-1",
                [ApprovedQuantity("X", 3)],
                {"X": Money(100, "USD"), "Y": Money(100, "EUR")},
                NOW,
            )
        assert exc_info.value.details["sku"] == "Y"
        assert order.status == OrderStatus.PENDING_REVIEW
        assert order.manager_id is None
        assert order.approved_at is None
        assert order.confirm_pending_at is None
        assert [i.qty_approved for i in order.items] == [None, None]
        assert order.version == 1
        assert order.collect_events() == []

    def test_negative_approved_quantity_rejected(self) -> None:
        """Approved quantities cannot be negative."""
        with pytest.raises(InvalidQuantityError):
            ApprovedQuantity("X", -5)

    def test_approve_twice_rejected(self) -> None:
        """Manager and approval time are set exactly once."""
        order = approved_order()
        with pytest.raises(InvalidStateTransitionError):
            order.approve("mgr-2", [ApprovedQuantity("X", 1)], PRICES, NOW)
        assert order.manager_id == "mgr-1"

    def test_approve_records_event(self) -> None:
        """Approval emits OrderApproved with the quantity changes."""
        order = make_order()
        order.approve("mgr-1", [ApprovedQuantity("X", 100)], PRICES, NOW)
        events = order.collect_events()
        assert isinstance(events[0], OrderApproved)
        assert events[0].quantity_changes["X"]["change"] == 50


class TestBranchTransitions:
    """Tests for confirm, raise_issue, reply and confirm_received."""

    def test_confirm_dispatches(self) -> None:
        """Branch confirmation dispatches the order."""
        order = approved_order()
        order.confirm("usr-1", NOW)
        assert order.status == OrderStatus.DISPATCHED
        assert order.dispatched_at == NOW

    def test_confirm_requires_confirm_pending(self) -> None:
        """Confirming outside CONFIRM_PENDING fails and changes nothing."""
        order = make_order()
        with pytest.raises(InvalidStateTransitionError) as exc_info:
            order.confirm("usr-1", NOW)
        assert order.status == OrderStatus.PENDING_REVIEW
        assert exc_info.value.required_state == "CONFIRM_PENDING"
        assert exc_info.value.current_state == "PENDING_REVIEW"

    def test_issue_and_reply_cycle(self) -> None:
        """An issue goes back to CONFIRM_PENDING with a fresh anchor."""
        order = approved_order()
        later = NOW + timedelta(hours=3)

        order.raise_issue(BRANCH_USER, "  Need more widgets  ", NOW + timedelta(hours=1))
        assert order.status == OrderStatus.ISSUE_RAISED
        assert order.issues[0].message == "Need more widgets"

        order.reply(MANAGER, "Stock is limited", later)
        assert order.status == OrderStatus.CONFIRM_PENDING
        assert order.confirm_pending_at == later
        assert [m.author_role for m in order.issues] == [ActorRole.BRANCH_USER, ActorRole.MANAGER]
        events = order.collect_events()
        assert isinstance(events[-1], OrderIssueReplied)

    def test_blank_note_rejected(self) -> None:
        """Notes must contain text."""
        order = approved_order()
        with pytest.raises(InvalidPayloadError):
            order.raise_issue(BRANCH_USER, "   ", NOW)
        assert order.status == OrderStatus.CONFIRM_PENDING
        assert order.issues == []

    def test_reply_requires_issue(self) -> None:
        """Replies are only possible while an issue is open."""
        order = approved_order()
        with pytest.raises(InvalidStateTransitionError):
            order.reply(MANAGER, "Hello", NOW)

    def test_receive_closes(self) -> None:
        """Receipt closes a dispatched order."""
        order = approved_order()
        order.confirm("usr-1", NOW)
        order.confirm_received("usr-1", NOW + timedelta(days=1))
        assert order.status == OrderStatus.CLOSED
        assert order.closed_by == "usr-1"
        assert order.status.is_terminal()

    def test_history_tracks_every_transition(self) -> None:
        """Each transition appends to the timeline and bumps the version."""
        order = approved_order()
        order.confirm("usr-1", NOW)
        order.confirm_received("usr-1", NOW)
        assert [h.to_status for h in order.status_history] == [
            OrderStatus.PENDING_REVIEW,
            OrderStatus.CONFIRM_PENDING,
            OrderStatus.DISPATCHED,
            OrderStatus.CLOSED,
        ]
        assert order.version == 4


class TestAutoCloseTransition:
    """Tests for Order.auto_close and SLA queries."""

    def test_auto_close(self) -> None:
        """The sweep closes a pending confirmation as the system."""
        order = approved_order()
        order.auto_close(NOW, elapsed_working_hours=24.5, sla_hours=24)
        assert order.status == OrderStatus.AUTO_CLOSED
        assert order.closed_by == "system"
        events = order.collect_events()
        assert isinstance(events[0], OrderAutoClosed)

    def test_auto_close_after_dispatch_rejected(self) -> None:
        """A dispatched order is no longer eligible."""
        order = approved_order()
        order.confirm("usr-1", NOW)
        with pytest.raises(InvalidStateTransitionError):
            order.auto_close(NOW, elapsed_working_hours=30, sla_hours=24)
        assert order.status == OrderStatus.DISPATCHED

    def test_sla_deadline(self) -> None:
        """The deadline is the anchor plus the SLA in working hours."""
        order = make_order()
        monday_4pm = datetime(2024, 1, 15, 16, tzinfo=timezone.utc)
        order.approve("mgr-1", [], PRICES, monday_4pm)
        clock = BusinessHoursClock()
        assert order.sla_deadline(clock, 2) == datetime(2024, 1, 16, 10, tzinfo=timezone.utc)
        assert order.working_hours_pending(clock, monday_4pm + timedelta(hours=17)) == 1

    def test_sla_deadline_only_while_pending(self) -> None:
        """Orders outside CONFIRM_PENDING have no deadline."""
        assert make_order().sla_deadline(BusinessHoursClock(), 24) is None
