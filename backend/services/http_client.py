"""
Shared async HTTP plumbing for downstream service clients.

Retry policy (tenacity):
  - Idempotent methods (GET, HEAD): retry on transport errors, timeouts and 5xx.
  - Everything else: retry only when the request never reached the server
    (connect error / connect timeout). A read timeout on a write is final:
    the write may have been applied and must not be replayed.
  - 4xx is never retried; the caller interprets it.
"""
import logging

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from config import settings

logger = logging.getLogger(__name__)

IDEMPOTENT_METHODS = {"GET", "HEAD"}


def build_timeout(
    connect: float | None = None,
    read: float | None = None,
) -> httpx.Timeout:
    """Bounded connect/read timeout for every downstream call."""
    return httpx.Timeout(
        read if read is not None else settings.http_read_timeout_seconds,
        connect=connect if connect is not None else settings.http_connect_timeout_seconds,
    )


def is_retryable(method: str):
    """Build the retry predicate for an HTTP method."""
    method = method.upper()

    def _predicate(exc: BaseException) -> bool:
        if method in IDEMPOTENT_METHODS:
            if isinstance(exc, httpx.TransportError):
                return True
            if isinstance(exc, httpx.HTTPStatusError):
                return exc.response.status_code >= 500
            return False
        return isinstance(exc, (httpx.ConnectError, httpx.ConnectTimeout))

    return _predicate


class ServiceHttpClient:
    """
    Base class for JSON-over-HTTP clients of sibling services.

    Subclasses call ``_send`` and interpret 2xx/4xx responses themselves.
    5xx responses and transport failures propagate as ``httpx.HTTPError``
    once retries are exhausted.
    """

    service_name = "service"

    def __init__(
        self,
        base_url: str,
        *,
        timeout: httpx.Timeout | None = None,
        max_attempts: int | None = None,
        backoff_seconds: float | None = None,
        backoff_max_seconds: float | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.max_attempts = max(1, max_attempts if max_attempts is not None else settings.catalog_retry_attempts)
        self.backoff_seconds = (
            backoff_seconds if backoff_seconds is not None else settings.retry_backoff_seconds
        )
        self.backoff_max_seconds = (
            backoff_max_seconds if backoff_max_seconds is not None else settings.retry_backoff_max_seconds
        )
        self.client = httpx.AsyncClient(timeout=timeout or build_timeout())

    async def close(self) -> None:
        """Close HTTP client."""
        await self.client.aclose()

    def _retrying(self, method: str) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff_seconds, max=self.backoff_max_seconds),
            retry=retry_if_exception(is_retryable(method)),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    async def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        url = f"{self.base_url}{path}"
        async for attempt in self._retrying(method):
            with attempt:
                logger.info(f"{method} {url}")
                response = await self.client.request(method, url, **kwargs)
                if response.status_code >= 500:
                    response.raise_for_status()
                return response
        raise RuntimeError("Retry exhausted")  # pragma: no cover

    async def health_check(self, path: str = "/actuator/health") -> bool:
        """Single-shot readiness check, no retries."""
        try:
            response = await self.client.get(f"{self.base_url}{path}")
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.warning(f"{self.service_name} health check failed: {e}")
            return False
