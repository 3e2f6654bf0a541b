"""
Shared FastAPI dependencies.

Downstream HTTP clients are process-wide (one connection pool each) and
closed on shutdown; the order store and orchestrator are built per request
around the request's DB session. Tests override any of these through
``app.dependency_overrides``.
"""

from __future__ import annotations

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from database import get_db
from services.catalog_client import HttpProductCatalogClient, ProductCatalogClient
from services.order_metrics import MetricsSink, get_order_metrics
from services.order_orchestrator import OrderOrchestrator
from services.order_store import SqlAlchemyOrderStore
from services.user_client import HttpUserDirectoryClient, UserDirectoryClient

_user_client: HttpUserDirectoryClient | None = None
_catalog_client: HttpProductCatalogClient | None = None


def get_user_client() -> UserDirectoryClient:
    global _user_client
    if _user_client is None:
        _user_client = HttpUserDirectoryClient(settings.user_service_url)
    return _user_client


def get_catalog_client() -> ProductCatalogClient:
    global _catalog_client
    if _catalog_client is None:
        _catalog_client = HttpProductCatalogClient(settings.product_service_url)
    return _catalog_client


async def close_clients() -> None:
    """Close the shared HTTP clients. Called on application shutdown."""
    global _user_client, _catalog_client
    for client in (_user_client, _catalog_client):
        if client is not None:
            await client.close()
    _user_client = None
    _catalog_client = None


def get_metrics() -> MetricsSink:
    return get_order_metrics()


async def get_orchestrator(
    db: AsyncSession = Depends(get_db),
    users: UserDirectoryClient = Depends(get_user_client),
    catalog: ProductCatalogClient = Depends(get_catalog_client),
    metrics: MetricsSink = Depends(get_metrics),
) -> OrderOrchestrator:
    return OrderOrchestrator(users, catalog, SqlAlchemyOrderStore(db), metrics)
