"""Tests for domain value objects."""

from decimal import Decimal

import pytest

from orderflow.domain import Actor, ActorRole, Money, OrderId, QuantityChange
from orderflow.domain.exceptions import CurrencyMismatchError, NegativeMoneyError


class TestMoney:
    """Tests for Money value object."""

    def test_negative_rejected(self) -> None:
        """Money cannot be negative."""
        with pytest.raises(NegativeMoneyError):
            Money(-1)

    def test_currency_is_uppercased(self) -> None:
        """Currency codes are normalised."""
        assert Money(100, "eur").currency == "EUR"

    def test_from_decimal_rounds_half_up(self) -> None:
        """Major units convert to cents with half-up rounding."""
        assert Money.from_decimal(Decimal("12.345")).amount_cents == 1235

    def test_multiply_by_quantity(self) -> None:
        """Unit price times quantity gives the line total."""
        assert Money(250) * 4 == Money(1000)
        assert 4 * Money(250) == Money(1000)

    def test_add_requires_same_currency(self) -> None:
        """Different currencies cannot be summed."""
        with pytest.raises(CurrencyMismatchError):
            Money(1, "USD") + Money(1, "EUR")

    def test_str(self) -> None:
        """Money renders with symbol and code."""
        assert str(Money(1999)) == "$19.99 USD"


class TestQuantityChange:
    """Tests for QuantityChange."""

    def test_decrease(self) -> None:
        """Approving less than requested is a decrease."""
        change = QuantityChange(requested=10, approved=4)
        assert change.change == -6
        assert change.is_decreased
        assert not change.is_increased


class TestIdentifiers:
    """Tests for identifiers and actors."""

    def test_order_id_round_trip(self) -> None:
        """An OrderId survives conversion to and from text."""
        order_id = OrderId.generate()
        assert OrderId.from_string(str(order_id)) == order_id

    def test_system_actor(self) -> None:
        """Background jobs act as the system."""
        actor = Actor.system()
        assert actor.role == ActorRole.SYSTEM
        assert str(actor) == "SYSTEM:system"
