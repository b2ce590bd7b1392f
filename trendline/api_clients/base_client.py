"""Base API client with shared HTTP logic and retry handling"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import aiohttp

from trendline.utils.errors import (
    APIError,
    ClientError,
    PayloadShapeError,
    RateLimitError,
    ServerError,
    TransportError,
)

logger = logging.getLogger(__name__)


# ============================================================================
# BASE API CLIENT
# ============================================================================

class BaseAPIClient:
    """
    Base client for read-only JSON providers with shared functionality:
    - Consistent error handling with custom exceptions
    - Automatic retry with exponential backoff
    - Bounded per-request timeout
    """

    def __init__(
        self,
        platform_name: str,
        base_url: str = "",
        timeout: float = 10.0,
        max_retries: int = 1,
        backoff_base: float = 2.0,
        rate_limit_wait_cap: float = 10.0,
        concurrency: int = 8,
        session: Optional[aiohttp.ClientSession] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        Initialize base API client

        Args:
            platform_name: Name of the provider (used in logs and errors)
            base_url: Base URL for API endpoints
            timeout: Total request timeout in seconds
            max_retries: Maximum number of retry attempts after the first call
            backoff_base: Base for exponential backoff (2 = 1s, 2s, 4s...)
            rate_limit_wait_cap: Upper bound on honouring a Retry-After header
            concurrency: Maximum number of requests in flight at once
            session: Optional externally owned aiohttp session
            sleep: Awaitable sleep used between retries
        """
        self.platform_name = platform_name
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self.rate_limit_wait_cap = rate_limit_wait_cap
        self._sleep = sleep
        self.semaphore = asyncio.Semaphore(concurrency)

        # HTTP session (created in __aenter__ unless injected)
        self.session: Optional[aiohttp.ClientSession] = session
        self._owns_session = session is None

    async def __aenter__(self):
        """Async context manager entry"""
        if self.session is None:
            timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
            self.session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True
            logger.debug(f"✅ Created session for {self.platform_name}")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit"""
        if self.session and self._owns_session:
            await self.session.close()
            self.session = None
            logger.debug(f"✅ Closed session for {self.platform_name}")

    # ========================================================================
    # RETRY LOGIC WITH EXPONENTIAL BACKOFF
    # ========================================================================

    async def _call_with_retry(
        self,
        coro_fn: Callable[[], Awaitable[Any]],
        operation_name: str = "API call",
        max_retries: Optional[int] = None,
    ) -> Any:
        """
        Execute an async operation with exponential backoff retry logic

        Args:
            coro_fn: Async function to execute (as callable, not coroutine)
            operation_name: Human-readable operation description for logging
            max_retries: Override default max_retries for this call

        Returns:
            Result from the async function

        Raises:
            TransportError: network failure or timeout after retries are exhausted
            RateLimitError, ServerError: after retries are exhausted
            ClientError: immediately, 4xx responses are not retried
        """
        retries = self.max_retries if max_retries is None else max_retries
        max_attempts = retries + 1
        last_exception: Optional[BaseException] = None

        for attempt in range(max_attempts):
            is_last = attempt >= max_attempts - 1
            try:
                logger.debug(f"[{self.platform_name}] {operation_name} (attempt {attempt + 1})")
                return await coro_fn()

            except RateLimitError as e:
                last_exception = e
                if not is_last:
                    wait_time = min(e.retry_after, self.rate_limit_wait_cap)
                    logger.warning(
                        f"[{self.platform_name}] Rate limited. "
                        f"Waiting {wait_time}s before retry..."
                    )
                    await self._sleep(wait_time)
                else:
                    logger.warning(f"[{self.platform_name}] Rate limit exceeded after {max_attempts} attempts")

            except (asyncio.TimeoutError, aiohttp.ClientError) as e:
                last_exception = TransportError(self.platform_name, operation_name, cause=e)
                if not is_last:
                    wait_time = self.backoff_base ** attempt
                    logger.warning(
                        f"[{self.platform_name}] {operation_name} failed: {type(e).__name__}. "
                        f"Retrying in {wait_time:.1f}s... (attempt {attempt + 1}/{max_attempts - 1})"
                    )
                    await self._sleep(wait_time)
                else:
                    logger.warning(
                        f"[{self.platform_name}] {operation_name} failed after {max_attempts} attempts"
                    )

            except ServerError as e:
                last_exception = e
                if not is_last:
                    wait_time = self.backoff_base ** attempt
                    logger.warning(
                        f"[{self.platform_name}] Server error. "
                        f"Retrying in {wait_time:.1f}s..."
                    )
                    await self._sleep(wait_time)
                else:
                    logger.warning(f"[{self.platform_name}] {operation_name} failed: {e}")

            except ClientError as e:
                logger.warning(f"[{self.platform_name}] {operation_name} failed: {e}")
                raise

        # Exhausted retries
        if last_exception is not None:
            raise last_exception
        raise APIError(self.platform_name, operation_name, message="no attempts made")

    # ========================================================================
    # REQUESTS
    # ========================================================================

    async def _get_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        operation_name: str = "GET",
    ) -> Dict[str, Any]:
        """
        GET ``url`` and return the decoded JSON object.

        Raises PayloadShapeError when the body is not a JSON object.
        """
        if not self.session:
            raise RuntimeError("Session not initialized. Use 'async with' context manager.")

        async def make_request():
            async with self.semaphore:
                async with self.session.get(
                    url,
                    params=params,
                    headers={"Accept": "application/json"},
                    timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
                ) as response:
                    await self._handle_response_status(response)
                    return await response.json(content_type=None)

        payload = await self._call_with_retry(make_request, operation_name=operation_name)
        if not isinstance(payload, dict):
            raise PayloadShapeError(operation_name, "expected a JSON object", payload)
        return payload

    # ========================================================================
    # RESPONSE HANDLING
    # ========================================================================

    async def _handle_response_status(self, response: aiohttp.ClientResponse) -> None:
        """
        Check HTTP response status and raise appropriate exceptions

        Raises:
            RateLimitError: If status is 429
            ServerError: If status is 5xx
            ClientError: If status is 4xx (except 429)
        """
        if response.status == 429:
            try:
                retry_after = int(response.headers.get('Retry-After', 60))
            except (TypeError, ValueError):
                retry_after = 60
            raise RateLimitError(self.platform_name, retry_after=retry_after)

        elif response.status >= 500:
            text = await response.text()
            raise ServerError(self.platform_name, response.status, text)

        elif response.status >= 400:
            text = await response.text()
            raise ClientError(self.platform_name, response.status, text[:200])
