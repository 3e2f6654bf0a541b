"""
Order status state machine.

    PENDING ──► CONFIRMED ──► SHIPPED ──► DELIVERED
       │            │            │
       └────────────┴────────────┴──► CANCELLED

DELIVERED and CANCELLED are terminal: no outgoing edges, including
CANCELLED → CANCELLED.
"""

from domain.enums import OrderStatus
from domain.errors import InvalidTransitionError

TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

TERMINAL_STATES = frozenset(s for s, targets in TRANSITIONS.items() if not targets)


class OrderStateMachine:
    """Enforces legal order-status transitions."""

    def __init__(self, transitions: dict[OrderStatus, frozenset[OrderStatus]] | None = None):
        self._transitions = transitions or TRANSITIONS

    def is_terminal(self, status: OrderStatus) -> bool:
        return not self._transitions.get(OrderStatus(status))

    def allowed_targets(self, status: OrderStatus) -> frozenset[OrderStatus]:
        return self._transitions.get(OrderStatus(status), frozenset())

    def can_transition(self, current: OrderStatus, target: OrderStatus) -> bool:
        return OrderStatus(target) in self.allowed_targets(current)

    def ensure_transition(self, current: OrderStatus, target: OrderStatus) -> None:
        """Raise InvalidTransitionError unless current → target is an edge of the table."""
        current, target = OrderStatus(current), OrderStatus(target)
        if self.is_terminal(current):
            raise InvalidTransitionError(
                current, target,
                message=f"Order is {current.value} and can no longer be modified",
            )
        if not self.can_transition(current, target):
            raise InvalidTransitionError(current, target)

    def ensure_cancellable(self, current: OrderStatus) -> None:
        current = OrderStatus(current)
        if current == OrderStatus.DELIVERED:
            raise InvalidTransitionError(
                current, OrderStatus.CANCELLED,
                message="Cannot cancel a delivered order",
            )
        if current == OrderStatus.CANCELLED:
            raise InvalidTransitionError(
                current, OrderStatus.CANCELLED,
                message="Order is already cancelled",
            )
        self.ensure_transition(current, OrderStatus.CANCELLED)
