"""
User directory client: answers "does user X exist?".
"""
import logging
from abc import ABC, abstractmethod

import httpx

from domain.errors import UserDirectoryUnavailableError
from services.http_client import ServiceHttpClient

logger = logging.getLogger(__name__)


class UserDirectoryClient(ABC):
    """Contract consumed by the order orchestrator."""

    @abstractmethod
    async def exists(self, user_id: int) -> bool:
        """True if the user exists, False if not; raises UserDirectoryUnavailableError otherwise."""

    @abstractmethod
    async def health_check(self) -> bool:
        """True when the directory answers its readiness check."""


class HttpUserDirectoryClient(ServiceHttpClient, UserDirectoryClient):
    """
    HTTP client for the membership (users) service.

    GET /api/v1/users/{id}: 200 → exists, 404 → does not exist. Anything
    else, after retries, is an unavailable directory, never a silent "no".
    """

    service_name = "user-service"

    async def exists(self, user_id: int) -> bool:
        try:
            response = await self._send("GET", f"/api/v1/users/{user_id}")
        except httpx.HTTPError as e:
            logger.error(f"User service unavailable while checking user {user_id}: {e!r}")
            raise UserDirectoryUnavailableError(details={"user_id": user_id}) from e

        if response.status_code == 404:
            logger.warning(f"User {user_id} not found")
            return False
        if response.is_success:
            return True

        logger.error(f"Unexpected user service response {response.status_code} for user {user_id}")
        raise UserDirectoryUnavailableError(
            f"User directory rejected lookup (HTTP {response.status_code})",
            details={"user_id": user_id},
        )
