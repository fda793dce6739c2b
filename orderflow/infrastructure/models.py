"""SQLAlchemy models for database tables.

The ``orders`` row carries the aggregate's version token; line items live
in ``order_items`` while the issue thread and status timeline are stored
as JSON on the order row.
"""

from typing import Any

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from orderflow.infrastructure.database import Base


# ============================================================================
# Order Models
# ============================================================================


class OrderModel(Base):
    """Order model for database persistence.

    Every write is ``UPDATE ... WHERE id = :id AND version = :expected``;
    see ``SqlOrderRepository.save``.
    """

    __tablename__ = "orders"

    id = Column(String(36), primary_key=True)
    order_number = Column(String(32), nullable=False, unique=True)
    branch_id = Column(String(100), nullable=False, index=True)
    requested_by_id = Column(String(100), nullable=False)
    status = Column(String(20), nullable=False, default="PENDING_REVIEW", index=True)
    version = Column(Integer, nullable=False, default=1)

    manager_id = Column(String(100), nullable=True)
    remarks = Column(Text, nullable=True)
    closed_by = Column(String(100), nullable=True)

    # Thread and timeline
    issues = Column(JSON, nullable=False, default=list)
    status_history = Column(JSON, nullable=False, default=list)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    confirm_pending_at = Column(DateTime(timezone=True), nullable=True)
    dispatched_at = Column(DateTime(timezone=True), nullable=True)
    closed_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItemModel.position",
        lazy="selectin",
    )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "order_number": self.order_number,
            "branch_id": self.branch_id,
            "status": self.status,
            "version": self.version,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class OrderItemModel(Base):
    """Order line item row."""

    __tablename__ = "order_items"

    order_id = Column(
        String(36),
        ForeignKey("orders.id", ondelete="CASCADE"),
        primary_key=True,
    )
    sku = Column(String(100), primary_key=True)
    position = Column(Integer, nullable=False, default=0)
    name = Column(String(500), nullable=True)
    qty_requested = Column(Integer, nullable=False)
    qty_approved = Column(Integer, nullable=True)
    unit_price_cents = Column(Integer, nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="USD")

    # Relationships
    order = relationship("OrderModel", back_populates="items")
