"""
Stock reservation coordinator.

Reserves stock line by line against the product catalog and reverses
(compensates) a prefix of those reservations when a later step fails.

Ordering contract:
  - Reservations are made strictly in request order.
  - Compensation always runs in strict reverse order of reservation.
  - Compensation is best effort: each failed call is logged and recorded on
    the metrics sink for manual reconciliation, then the next one is tried.
    It never raises and never replaces the error that triggered it.
"""
import logging
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from domain.errors import InsufficientStockError
from services.catalog_client import ProductCatalogClient, ProductSnapshot
from services.order_metrics import MetricsSink

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Reservation:
    """A successful stock decrement for one order line."""
    product_id: int
    quantity: int
    snapshot: ProductSnapshot


@dataclass(frozen=True)
class CompensationFailure:
    """A best-effort stock adjustment that could not be applied and needs reconciliation."""
    product_id: int
    delta: int
    reason: str


@dataclass
class RestockResult:
    """Outcome of returning a cancelled order's stock.

    ``restocked`` holds plain ``(product_id, quantity)`` pairs so it stays
    usable after the session that loaded the lines has been rolled back.
    """
    restocked: list[tuple[int, int]] = field(default_factory=list)
    failures: list[CompensationFailure] = field(default_factory=list)


class StockReservationCoordinator:
    def __init__(self, catalog: ProductCatalogClient, metrics: MetricsSink | None = None):
        self.catalog = catalog
        self.metrics = metrics

    async def reserve(self, items: Iterable[tuple[int, int]]) -> list[Reservation]:
        """
        Reserve ``(product_id, quantity)`` pairs in order.

        On the first failure every reservation already made is compensated
        (newest first) and the original error is re-raised unchanged.
        """
        reservations: list[Reservation] = []
        try:
            for product_id, quantity in items:
                reservations.append(await self._reserve_one(product_id, quantity))
        except Exception as e:
            if reservations:
                logger.warning(
                    f"Reservation failed after {len(reservations)} line(s) ({e.__class__.__name__}); "
                    f"compensating in reverse order"
                )
                failures = await self.compensate(reservations)
                if failures:
                    logger.error(
                        f"{len(failures)} reservation(s) could not be released: "
                        f"{[(f.product_id, f.delta) for f in failures]}"
                    )
            raise
        return reservations

    async def compensate(self, reservations: Sequence[Reservation]) -> list[CompensationFailure]:
        """Give back reserved stock, newest reservation first."""
        failures: list[CompensationFailure] = []
        for reservation in reversed(reservations):
            failure = await self._adjust_best_effort(reservation.product_id, reservation.quantity)
            if failure:
                failures.append(failure)
        return failures

    async def restock(self, lines: Sequence) -> RestockResult:
        """
        Return stock for the lines of a cancelled order.

        Lines were reserved in position order, so they are released in
        reverse position order.
        """
        result = RestockResult()
        for line in reversed(list(lines)):
            product_id, quantity = line.product_id, line.quantity
            failure = await self._adjust_best_effort(product_id, quantity)
            if failure:
                result.failures.append(failure)
            else:
                result.restocked.append((product_id, quantity))
        return result

    async def take_back(self, restocked: Sequence[tuple[int, int]]) -> list[CompensationFailure]:
        """
        Re-reserve stock handed back by ``restock`` when the cancellation
        itself could not be saved. Undone in reverse of the restock order.
        """
        failures: list[CompensationFailure] = []
        for product_id, quantity in reversed(list(restocked)):
            failure = await self._adjust_best_effort(product_id, -quantity)
            if failure:
                failures.append(failure)
        return failures

    async def _reserve_one(self, product_id: int, quantity: int) -> Reservation:
        snapshot = await self.catalog.get_snapshot(product_id)
        if snapshot.stock < quantity:
            logger.warning(
                f"Insufficient stock for product {product_id}: requested {quantity}, "
                f"available {snapshot.stock}"
            )
            raise InsufficientStockError(product_id, requested=quantity, available=snapshot.stock)

        # The snapshot check is advisory; the catalog re-checks atomically.
        await self.catalog.adjust_stock(product_id, -quantity)
        logger.info(f"Reserved {quantity} x product {product_id}")
        return Reservation(product_id=product_id, quantity=quantity, snapshot=snapshot)

    async def _adjust_best_effort(self, product_id: int, delta: int) -> CompensationFailure | None:
        try:
            await self.catalog.adjust_stock(product_id, delta)
        except Exception as e:
            logger.error(
                f"Compensation failed for product {product_id} (delta={delta:+d}): {e}. "
                f"Manual stock reconciliation required."
            )
            if self.metrics is not None:
                self.metrics.record_compensation_failure(product_id, delta)
            return CompensationFailure(product_id=product_id, delta=delta, reason=str(e))
        logger.info(f"Adjusted product {product_id} by {delta:+d}")
        return None
