"""
Product catalog client: price/stock snapshots and atomic stock adjustments.

The catalog owns stock. ``adjust_stock`` must be atomic and self-guarding on
the catalog side (reject when the resulting stock would go negative); the
order service never relies on its own snapshot check for correctness.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

import httpx

from domain.errors import CatalogUnavailableError, InsufficientStockError, ProductNotFoundError
from services.http_client import ServiceHttpClient

logger = logging.getLogger(__name__)

# The product service answers 400 ("Stock cannot be negative") or 409 when
# an adjustment would drive stock below zero.
STOCK_CONFLICT_STATUSES = {400, 409}


@dataclass(frozen=True)
class ProductSnapshot:
    id: int
    name: str
    price: Decimal
    stock: int


class ProductCatalogClient(ABC):
    """Contract consumed by the stock reservation coordinator."""

    @abstractmethod
    async def get_snapshot(self, product_id: int) -> ProductSnapshot:
        """Raises ProductNotFoundError or CatalogUnavailableError."""

    @abstractmethod
    async def adjust_stock(self, product_id: int, delta: int) -> None:
        """
        Atomically add ``delta`` (negative to reserve) to the product's stock.

        Raises ProductNotFoundError, InsufficientStockError (catalog conflict)
        or CatalogUnavailableError.
        """

    @abstractmethod
    async def health_check(self) -> bool:
        """True when the catalog answers its readiness check."""


class HttpProductCatalogClient(ServiceHttpClient, ProductCatalogClient):
    """HTTP client for the product service (``/api/v1/products``)."""

    service_name = "product-service"

    async def get_snapshot(self, product_id: int) -> ProductSnapshot:
        try:
            response = await self._send("GET", f"/api/v1/products/{product_id}")
        except httpx.HTTPError as e:
            logger.error(f"Product service unavailable while fetching product {product_id}: {e!r}")
            raise CatalogUnavailableError(details={"product_id": product_id}) from e

        if response.status_code == 404:
            raise ProductNotFoundError(product_id)
        if not response.is_success:
            logger.error(f"Unexpected product service response {response.status_code} for product {product_id}")
            raise CatalogUnavailableError(
                f"Product catalog rejected lookup (HTTP {response.status_code})",
                details={"product_id": product_id},
            )
        return self._parse_snapshot(product_id, response)

    async def adjust_stock(self, product_id: int, delta: int) -> None:
        try:
            response = await self._send(
                "PATCH",
                f"/api/v1/products/{product_id}/stock",
                json={"quantityChange": delta},
            )
        except httpx.HTTPError as e:
            logger.error(f"Stock adjustment failed for product {product_id} (delta={delta:+d}): {e!r}")
            raise CatalogUnavailableError(
                details={"product_id": product_id, "delta": delta}
            ) from e

        if response.status_code == 404:
            raise ProductNotFoundError(product_id)
        if response.status_code in STOCK_CONFLICT_STATUSES:
            logger.warning(f"Catalog refused stock adjustment for product {product_id} (delta={delta:+d})")
            raise InsufficientStockError(product_id, requested=abs(delta))
        if not response.is_success:
            logger.error(f"Unexpected product service response {response.status_code} adjusting product {product_id}")
            raise CatalogUnavailableError(
                f"Product catalog rejected stock adjustment (HTTP {response.status_code})",
                details={"product_id": product_id, "delta": delta},
            )

    @staticmethod
    def _parse_snapshot(product_id: int, response: httpx.Response) -> ProductSnapshot:
        try:
            body = response.json()
            return ProductSnapshot(
                id=int(body.get("id", product_id)),
                name=str(body["name"]),
                price=Decimal(str(body["price"])),
                stock=int(body.get("stock") or 0),
            )
        except (ValueError, KeyError, TypeError, InvalidOperation) as e:
            logger.error(f"Malformed product payload for product {product_id}: {e!r}")
            raise CatalogUnavailableError(
                "Product catalog returned a malformed product",
                details={"product_id": product_id},
            ) from e
