"""Value Objects for the domain layer.

Value objects are immutable objects that are defined by their attributes
rather than identity. They are interchangeable when their values are equal.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Self
from uuid import UUID, uuid4

from orderflow.domain.base import ValueObject
from orderflow.domain.exceptions import (
    CurrencyMismatchError,
    InvalidPayloadError,
    InvalidQuantityError,
    NegativeMoneyError,
)


# ============================================================================
# Typed Identifiers
# ============================================================================


@dataclass(frozen=True)
class OrderId(ValueObject):
    """Strongly-typed order identifier."""

    value: UUID

    @classmethod
    def generate(cls) -> Self:
        """Generate a new order ID.

        Returns:
            New OrderId with random UUID.
        """
        return cls(value=uuid4())

    @classmethod
    def from_string(cls, value: str) -> Self:
        """Create OrderId from string representation.

        Args:
            value: String UUID representation.

        Returns:
            OrderId instance.
        """
        return cls(value=UUID(value))

    def __str__(self) -> str:
        return str(self.value)


# ============================================================================
# Money Value Object
# ============================================================================


@dataclass(frozen=True)
class Money(ValueObject):
    """Represents monetary value with currency.

    Money is stored in the smallest currency unit (cents for USD/EUR)
    to avoid floating-point precision issues.

    Attributes:
        amount_cents: Amount in smallest currency unit (e.g., cents).
        currency: ISO 4217 currency code (e.g., 'USD', 'EUR').
    """

    amount_cents: int
    currency: str = "USD"

    def __post_init__(self) -> None:
        """Validate money constraints."""
        if self.amount_cents < 0:
            raise NegativeMoneyError(self.amount_cents)
        object.__setattr__(self, "currency", self.currency.upper())

    @classmethod
    def zero(cls, currency: str = "USD") -> Self:
        """Create zero amount money."""
        return cls(amount_cents=0, currency=currency)

    @classmethod
    def from_decimal(cls, amount: Decimal, currency: str = "USD") -> Self:
        """Create money from decimal amount.

        Args:
            amount: Decimal amount in major units (e.g., dollars).
            currency: Currency code.

        Returns:
            Money instance.
        """
        cents = int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
        return cls(amount_cents=cents, currency=currency)

    def to_decimal(self) -> Decimal:
        """Convert to decimal amount in major units."""
        return Decimal(self.amount_cents) / 100

    def __add__(self, other: "Money") -> "Money":
        if self.currency != other.currency:
            raise CurrencyMismatchError(self.currency, other.currency)
        return Money(
            amount_cents=self.amount_cents + other.amount_cents,
            currency=self.currency,
        )

    def __mul__(self, quantity: int) -> "Money":
        return Money(
            amount_cents=self.amount_cents * quantity,
            currency=self.currency,
        )

    def __rmul__(self, quantity: int) -> "Money":
        return self.__mul__(quantity)

    def __str__(self) -> str:
        symbol = {"USD": "$", "EUR": "€", "GBP": "£"}.get(self.currency, "")
        return f"{symbol}{self.to_decimal():.2f} {self.currency}"


# ============================================================================
# Actors
# ============================================================================


class ActorRole(str, Enum):
    """Roles an authenticated caller can hold."""

    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    BRANCH_USER = "BRANCH_USER"
    SYSTEM = "SYSTEM"


@dataclass(frozen=True)
class Actor(ValueObject):
    """An already-authenticated caller.

    Attributes:
        user_id: Identifier of the user (or "system" for scheduled work).
        role: Role supplied by the identity provider.
        branch_id: Branch the user belongs to, for branch users.
    """

    user_id: str
    role: ActorRole
    branch_id: str | None = None

    @classmethod
    def system(cls) -> Self:
        """Actor used by background jobs."""
        return cls(user_id="system", role=ActorRole.SYSTEM)

    def __str__(self) -> str:
        return f"{self.role.value}:{self.user_id}"


# ============================================================================
# Approval Payload
# ============================================================================


@dataclass(frozen=True)
class ApprovedQuantity(ValueObject):
    """A manager's decided quantity for one SKU."""

    sku: str
    qty_approved: int

    def __post_init__(self) -> None:
        if not self.sku or not self.sku.strip():
            raise InvalidPayloadError("SKU cannot be empty", field="sku")
        if self.qty_approved < 0:
            raise InvalidQuantityError(
                self.qty_approved,
                reason="Approved quantity cannot be negative",
                sku=self.sku,
            )


@dataclass(frozen=True)
class QuantityChange(ValueObject):
    """Requested vs. approved quantity for one SKU of one approval call.

    Attributes:
        requested: Quantity the branch asked for.
        approved: Quantity the manager approved.
    """

    requested: int
    approved: int

    @property
    def change(self) -> int:
        return self.approved - self.requested

    @property
    def is_increased(self) -> bool:
        return self.change > 0

    @property
    def is_decreased(self) -> bool:
        return self.change < 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "requested": self.requested,
            "approved": self.approved,
            "change": self.change,
            "is_increased": self.is_increased,
            "is_decreased": self.is_decreased,
        }
