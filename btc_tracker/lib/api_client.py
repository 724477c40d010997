"""Async HTTP client with retry logic for the rate and price sources."""

import asyncio
from typing import Any, Dict, Optional, cast

import aiohttp

from btc_tracker.lib.config import DEFAULT_HTTP_TIMEOUT, HTTP_MAX_RETRIES
from btc_tracker.lib.errors import APIConnectionError, APIRateLimitError
from btc_tracker.lib.logging_config import get_logger

logger = get_logger(__name__)


class APIClient:
    """Async JSON client with exponential backoff on rate limits and timeouts.

    Example:
        async with APIClient("exchangerate-api") as client:
            data = await client.get("https://api.exchangerate-api.com/v4/latest/EUR")
    """

    def __init__(
        self,
        api_name: str = "rates",
        default_timeout: int = DEFAULT_HTTP_TIMEOUT,
        max_retries: int = HTTP_MAX_RETRIES,
    ):
        """Initialize API client.

        Args:
            api_name: Name used in error messages
            default_timeout: Default request timeout in seconds
            max_retries: Maximum number of attempts on 429 / timeouts
        """
        self.api_name = api_name
        self.default_timeout = default_timeout
        self.max_retries = max_retries
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "APIClient":
        """Enter async context manager."""
        self.session = aiohttp.ClientSession()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit async context manager and cleanup session."""
        if self.session and not self.session.closed:
            await self.session.close()

    async def get(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Make GET request with retry logic.

        Args:
            url: Full URL
            params: Query parameters
            headers: Request headers
            timeout: Request timeout in seconds (uses default_timeout if None)

        Returns:
            JSON response as dictionary

        Raises:
            APIRateLimitError: Rate limit exceeded after all retries
            APIConnectionError: HTTP or network failure
            asyncio.TimeoutError: Request timed out after all retries
        """
        if not self.session:
            raise RuntimeError("APIClient must be used as context manager")

        last_error: Optional[Exception] = None

        for attempt in range(self.max_retries):
            try:
                return await self._make_request(
                    url, params, headers, timeout or self.default_timeout
                )

            except aiohttp.ClientResponseError as e:
                if e.status == 429:
                    if attempt < self.max_retries - 1:
                        await asyncio.sleep(2**attempt)
                        continue
                    raise APIRateLimitError(self.api_name) from e
                raise APIConnectionError(self.api_name, f"{e.status} {e.message}") from e

            except asyncio.TimeoutError as e:
                last_error = e
                if attempt < self.max_retries - 1:
                    await asyncio.sleep(2**attempt)
                    continue
                raise

            except aiohttp.ClientError as e:
                raise APIConnectionError(self.api_name, str(e)) from e

        if last_error:
            raise last_error
        raise APIConnectionError(self.api_name, "max retries exceeded")

    async def _make_request(
        self,
        url: str,
        params: Optional[Dict[str, Any]],
        headers: Optional[Dict[str, str]],
        timeout: int,
    ) -> Dict[str, Any]:
        """Make single HTTP request.

        Raises:
            aiohttp.ClientResponseError: HTTP error
            asyncio.TimeoutError: Request timeout
            aiohttp.ClientError: Network error
        """
        if self.session is None:
            raise RuntimeError("APIClient session not initialized. Use async with context manager.")

        timeout_obj = aiohttp.ClientTimeout(total=timeout)

        async with self.session.get(
            url, params=params, headers=headers, timeout=timeout_obj
        ) as response:
            response.raise_for_status()
            data = await response.json()
            logger.debug(f"GET {url} -> {response.status}")
            return cast(Dict[str, Any], data)
