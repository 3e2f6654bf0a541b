"""
Pydantic models for request/response validation.

Wire format is camelCase (``userId``, ``totalAmount``); Python code uses the
snake_case field names. Amounts serialize as strings with two decimals.
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from domain.enums import OrderStatus


class OrderBase(BaseModel):
    """Shared base — allows construction by Python name or alias, and from ORM rows."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ── Requests ────────────────────────────────────────────────────────

class OrderItemRequest(OrderBase):
    """One requested line. Quantity bounds are enforced by the orchestrator."""
    product_id: int = Field(..., description="Catalog product id")
    quantity: int = Field(..., description="Units to order (>= 1)")


class CreateOrderRequest(OrderBase):
    user_id: int = Field(..., description="Ordering user id")
    shipping_address: str = Field("", max_length=255)
    items: List[OrderItemRequest] = Field(default_factory=list)


# ── Responses ───────────────────────────────────────────────────────

class OrderLineResponse(OrderBase):
    id: Optional[int] = None
    product_id: int
    product_name: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal


class OrderResponse(OrderBase):
    id: int
    user_id: int
    order_date: datetime
    status: OrderStatus
    total_amount: Decimal
    shipping_address: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    lines: List[OrderLineResponse] = Field(default_factory=list, alias="items")


def order_to_dict(order) -> dict:
    """Serialize an ORM Order into the JSON-ready camelCase representation."""
    return OrderResponse.model_validate(order).model_dump(mode="json", by_alias=True)
