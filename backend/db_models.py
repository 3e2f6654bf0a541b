"""
SQLAlchemy ORM models for the Order Service.

Tables:
    orders      — the Order aggregate root (status, totals, shipping address)
    order_items — order lines with product name/price snapshots

Prices and totals are Numeric(12, 2) and surface as Decimal. Product names
and unit prices are copied from the catalog at creation time and never
re-read afterwards.
"""
from sqlalchemy import (
    Column, Integer, String, DateTime, Numeric, ForeignKey, Enum,
    CheckConstraint, Index,
)
from sqlalchemy.orm import relationship

from database import Base
from domain.enums import OrderStatus


class Order(Base):
    """Order aggregate root. Lines are owned by the order and kept in request order."""
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    order_date = Column(DateTime(timezone=True), nullable=False)
    status = Column(
        Enum(OrderStatus, native_enum=False, length=20, validate_strings=True),
        nullable=False,
        default=OrderStatus.PENDING,
        index=True,
    )
    total_amount = Column(Numeric(12, 2), nullable=False)
    shipping_address = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    lines = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.position",
        lazy="selectin",
    )

    __table_args__ = (
        # Order history per user, newest first
        Index("ix_orders_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"Order(id={self.id}, user_id={self.user_id}, status={self.status})"


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(
        Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position = Column(Integer, nullable=False, default=0)  # index in the original request
    product_id = Column(Integer, nullable=False, index=True)
    product_name = Column(String(200), nullable=False)      # snapshot
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)     # snapshot
    subtotal = Column(Numeric(12, 2), nullable=False)

    order = relationship("Order", back_populates="lines")

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_order_items_quantity_positive"),
    )
