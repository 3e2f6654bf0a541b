"""
Order metrics: per-status counters, revenue gauge, compensation failures.

Simple in-memory counters guarded by a lock so concurrent requests
(threadpool or event loop) never lose an increment. The orchestrator only
sees the MetricsSink interface, so tests substitute their own sink.
"""
import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal

from domain.enums import OrderStatus

logger = logging.getLogger(__name__)


class MetricsSink(ABC):
    """Counters/gauges emitted by the order orchestrator."""

    @abstractmethod
    def increment_order_status(self, status: OrderStatus) -> None:
        ...

    @abstractmethod
    def add_revenue(self, amount: Decimal) -> None:
        ...

    def record_compensation_failure(self, product_id: int, delta: int) -> None:
        """Out-of-band signal for manual stock reconciliation. Optional."""


@dataclass
class OrderMetrics(MetricsSink):
    """In-memory metrics for the order service."""

    orders_by_status: dict[OrderStatus, int] = field(
        default_factory=lambda: {s: 0 for s in OrderStatus}
    )
    daily_revenue: Decimal = Decimal("0.00")
    compensation_failures: int = 0
    revenue_reset_at: float = field(default_factory=time.time)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def increment_order_status(self, status: OrderStatus) -> None:
        status = OrderStatus(status)
        with self._lock:
            self.orders_by_status[status] = self.orders_by_status.get(status, 0) + 1

    def add_revenue(self, amount: Decimal) -> None:
        if amount is None:
            return
        with self._lock:
            self.daily_revenue += Decimal(amount)

    def record_compensation_failure(self, product_id: int, delta: int) -> None:
        with self._lock:
            self.compensation_failures += 1
        logger.error(
            f"Stock compensation failure recorded: product={product_id} delta={delta:+d} "
            f"(total={self.compensation_failures})"
        )

    def reset_daily_revenue(self) -> None:
        with self._lock:
            self.daily_revenue = Decimal("0.00")
            self.revenue_reset_at = time.time()

    def count(self, status: OrderStatus) -> int:
        with self._lock:
            return self.orders_by_status.get(OrderStatus(status), 0)

    def to_dict(self) -> dict:
        with self._lock:
            return {
                "orders_count": {s.value: n for s, n in self.orders_by_status.items()},
                "daily_revenue": str(self.daily_revenue),
                "compensation_failures": self.compensation_failures,
                "revenue_window_seconds": round(time.time() - self.revenue_reset_at, 1),
            }


# Singleton metrics instance
_metrics: OrderMetrics | None = None


def get_order_metrics() -> OrderMetrics:
    global _metrics
    if _metrics is None:
        _metrics = OrderMetrics()
    return _metrics
