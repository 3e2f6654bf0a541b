"""
Health check endpoint — reports reachability of the user and product services.
"""
from datetime import datetime, timezone
import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from deps import get_catalog_client, get_user_client
from services.catalog_client import ProductCatalogClient
from services.user_client import UserDirectoryClient

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def _check(name: str, client: UserDirectoryClient | ProductCatalogClient) -> bool:
    try:
        return await client.health_check()
    except Exception as e:
        logger.warning(f"{name} health check raised: {e}")
        return False


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check(
    users: UserDirectoryClient = Depends(get_user_client),
    catalog: ProductCatalogClient = Depends(get_catalog_client),
):
    """Health check — UP only when both downstream services answer."""
    user_up = await _check("user-service", users)
    product_up = await _check("product-service", catalog)
    body = {
        "status": "healthy" if user_up and product_up else "degraded",
        "userService": "UP" if user_up else "DOWN",
        "productService": "UP" if product_up else "DOWN",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if user_up and product_up:
        return body

    logger.error(f"External services unavailable: user={body['userService']} product={body['productService']}")
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=body)
