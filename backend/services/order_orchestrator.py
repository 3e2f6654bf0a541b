"""
Order orchestrator: create, cancel and move orders through their lifecycle.

Order creation is a saga-style workflow across services that share no
transaction:

    1. validate the request                      (no side effects)
    2. user directory: does the user exist?      (no side effects)
    3. catalog: snapshot + reserve each line     (stock decremented, in order)
    4. order store: persist order + lines        (single local transaction)
    5. metrics: PENDING counter, revenue

A failure in 3 compensates the lines already reserved (reverse order) and
surfaces the original error. A failure in 4 compensates every line and
surfaces as an internal error. Compensation failures are logged and
counted, never returned in place of the primary error.
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable

from db_models import Order, OrderItem
from domain.enums import OrderStatus
from domain.errors import (
    DomainError,
    InternalError,
    OrderNotFoundError,
    UserNotFoundError,
    ValidationError,
)
from domain.state_machine import OrderStateMachine
from models import CreateOrderRequest
from services.catalog_client import ProductCatalogClient
from services.order_metrics import MetricsSink
from services.order_store import OrderStore
from services.stock_reservation import Reservation, StockReservationCoordinator
from services.user_client import UserDirectoryClient

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def to_money(value) -> Decimal:
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderOrchestrator:
    def __init__(
        self,
        users: UserDirectoryClient,
        catalog: ProductCatalogClient,
        store: OrderStore,
        metrics: MetricsSink,
        *,
        coordinator: StockReservationCoordinator | None = None,
        state_machine: OrderStateMachine | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.users = users
        self.catalog = catalog
        self.store = store
        self.metrics = metrics
        self.coordinator = coordinator or StockReservationCoordinator(catalog, metrics)
        self.state_machine = state_machine or OrderStateMachine()
        self._clock = clock

    # ── Create ──────────────────────────────────────────────────────

    async def create_order(self, request: CreateOrderRequest) -> Order:
        """
        Create a PENDING order, reserving stock for every line.

        Raises:
            ValidationError: empty items, quantity < 1 or blank address
            UserNotFoundError: user does not exist (no stock touched)
            ProductNotFoundError / InsufficientStockError / CatalogUnavailableError:
                a line could not be reserved (earlier lines compensated)
            UserDirectoryUnavailableError: user lookup failed
            InternalError: anything unexpected, including a failed save
        """
        self._validate(request)

        exists = await self._guard(self.users.exists(request.user_id), "checking user")
        if not exists:
            logger.warning(f"Order rejected: user {request.user_id} does not exist")
            raise UserNotFoundError(request.user_id)

        reservations = await self._guard(
            self.coordinator.reserve([(i.product_id, i.quantity) for i in request.items]),
            "reserving stock",
        )

        order = self._build_order(request, reservations)
        try:
            saved = await self.store.save(order)
        except Exception as e:
            logger.error(
                f"Persisting order for user {request.user_id} failed; "
                f"releasing {len(reservations)} reservation(s)",
                exc_info=True,
            )
            failures = await self.coordinator.compensate(reservations)
            if failures:
                logger.error(
                    f"{len(failures)} reservation(s) for user {request.user_id} could not be released: "
                    f"{[(f.product_id, f.delta) for f in failures]}"
                )
            raise InternalError("Order could not be saved") from e

        self.metrics.increment_order_status(OrderStatus.PENDING)
        self.metrics.add_revenue(saved.total_amount)
        logger.info(
            f"Order {saved.id} created for user {saved.user_id}: "
            f"{len(saved.lines)} line(s), total {saved.total_amount}"
        )
        return saved

    def _validate(self, request: CreateOrderRequest) -> None:
        if not request.items:
            raise ValidationError("an order must contain at least one item", field="items")
        for index, item in enumerate(request.items):
            if item.quantity is None or item.quantity < 1:
                raise ValidationError(
                    f"quantity must be at least 1 (got {item.quantity})",
                    field=f"items[{index}].quantity",
                )
        if not request.shipping_address or not request.shipping_address.strip():
            raise ValidationError("must not be blank", field="shippingAddress")

    def _build_order(self, request: CreateOrderRequest, reservations: list[Reservation]) -> Order:
        now = self._clock()
        lines = []
        total = Decimal("0.00")
        for position, reservation in enumerate(reservations):
            unit_price = to_money(reservation.snapshot.price)
            subtotal = to_money(unit_price * reservation.quantity)
            total += subtotal
            lines.append(
                OrderItem(
                    position=position,
                    product_id=reservation.product_id,
                    product_name=reservation.snapshot.name,
                    quantity=reservation.quantity,
                    unit_price=unit_price,
                    subtotal=subtotal,
                )
            )
        return Order(
            user_id=request.user_id,
            order_date=now,
            status=OrderStatus.PENDING,
            total_amount=to_money(total),
            shipping_address=request.shipping_address.strip(),
            created_at=now,
            updated_at=now,
            lines=lines,
        )

    # ── Queries ─────────────────────────────────────────────────────

    async def get_order(self, order_id: int) -> Order:
        order = await self.store.find(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    async def list_orders(self) -> list[Order]:
        return await self.store.find_all()

    async def list_orders_by_user(self, user_id: int) -> list[Order]:
        return await self.store.find_by_user(user_id)

    async def list_orders_by_status(self, status: OrderStatus) -> list[Order]:
        return await self.store.find_by_status(self._parse_status(status))

    # ── Lifecycle ───────────────────────────────────────────────────

    async def update_status(self, order_id: int, new_status: OrderStatus) -> Order:
        """
        Move an order along the status table.

        A move to CANCELLED goes through cancel_order so the stock is given back.
        """
        new_status = self._parse_status(new_status)
        order = await self.get_order(order_id)
        self.state_machine.ensure_transition(order.status, new_status)

        if new_status == OrderStatus.CANCELLED:
            return await self.cancel_order(order_id)

        previous = order.status
        order.status = new_status
        order.updated_at = self._clock()
        await self._persist(order, f"updating order {order_id} to {new_status.value}")

        self.metrics.increment_order_status(new_status)
        logger.info(f"Order {order_id}: {previous.value} -> {new_status.value}")
        return order

    async def cancel_order(self, order_id: int) -> Order:
        """
        Cancel a non-terminal order and give its stock back.

        Restocking is best effort: a line that cannot be restocked is logged
        and counted but does not block the cancellation. If the cancelled
        order cannot be saved, the restocked lines are reserved again and
        InternalError is raised.
        """
        order = await self.get_order(order_id)
        self.state_machine.ensure_cancellable(order.status)

        result = await self.coordinator.restock(order.lines)
        if result.failures:
            logger.warning(
                f"Order {order_id} cancelled with {len(result.failures)} line(s) not restocked: "
                f"{[f.product_id for f in result.failures]}"
            )

        order.status = OrderStatus.CANCELLED
        order.updated_at = self._clock()
        try:
            await self.store.save(order)
        except Exception as e:
            # The order is still active in the store, so the stock handed
            # back above must be reserved again before a retry restocks it.
            logger.error(
                f"Store failure while cancelling order {order_id}; "
                f"re-reserving {len(result.restocked)} restocked line(s)",
                exc_info=True,
            )
            failures = await self.coordinator.take_back(result.restocked)
            if failures:
                logger.error(
                    f"Order {order_id}: {len(failures)} line(s) could not be re-reserved: "
                    f"{[(f.product_id, f.delta) for f in failures]}"
                )
            raise InternalError("Order could not be saved") from e

        self.metrics.increment_order_status(OrderStatus.CANCELLED)
        logger.info(f"Order {order_id} cancelled")
        return order

    async def delete_order(self, order_id: int) -> None:
        """Administrative delete. No stock or metric side effects."""
        if not await self.store.delete(order_id):
            raise OrderNotFoundError(order_id)

    # ── Helpers ─────────────────────────────────────────────────────

    @staticmethod
    def _parse_status(status) -> OrderStatus:
        try:
            return OrderStatus(status)
        except ValueError:
            allowed = ", ".join(s.value for s in OrderStatus)
            raise ValidationError(f"unknown status '{status}' (expected one of {allowed})", field="status") from None

    async def _persist(self, order: Order, action: str) -> Order:
        try:
            return await self.store.save(order)
        except Exception as e:
            logger.error(f"Store failure while {action}", exc_info=True)
            raise InternalError("Order could not be saved") from e

    @staticmethod
    async def _guard(awaitable, action: str):
        """Await a downstream call, letting domain errors through and hiding anything else."""
        try:
            return await awaitable
        except DomainError:
            raise
        except Exception as e:
            logger.error(f"Unexpected failure while {action}", exc_info=True)
            raise InternalError() from e
