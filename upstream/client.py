"""
Nexon Open API client.

Issues authenticated GET requests against the MapleStory TW open API, retries
transient failures and normalizes every non-2xx answer into an UpstreamError.
"""
import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from shared.config import DashboardSettings
from shared.errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)

API_KEY_HEADER = "x-nxopen-api-key"

# Statuses worth another attempt before the failure is recorded
RETRYABLE_STATUSES = {429, 500, 502, 503, 504}


def _clean_params(params: Optional[Dict[str, Any]]) -> Dict[str, str]:
    """Drop query parameters without a value."""
    if not params:
        return {}
    return {key: str(value) for key, value in params.items() if value not in (None, "")}


def _parse_error_body(response: httpx.Response) -> Any:
    """Structured error details, else raw text, else None."""
    raw_body = response.text
    if not raw_body:
        return None
    try:
        return response.json()
    except ValueError:
        return raw_body


class UpstreamClient:
    """Async client for the Nexon Open API."""

    def __init__(
        self,
        settings: DashboardSettings,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        self.settings = settings
        self.base_url = settings.api_base_url.rstrip("/")
        self.max_retries = max(settings.max_retries, 0)
        self.retry_backoff = settings.retry_backoff
        self._http_client = http_client
        self._owns_client = http_client is None
        self._semaphore = asyncio.Semaphore(max(settings.max_concurrent_requests, 1))

    def _ensure_api_key(self) -> str:
        key = self.settings.nexon_open_api_key
        if not key:
            raise ConfigurationError(
                "Missing Nexon Open API key. Set NEXON_OPEN_API_KEY in your environment."
            )
        return key

    def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.settings.request_timeout)
        return self._http_client

    async def call(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None
    ) -> Optional[Dict[str, Any]]:
        """
        Perform a single GET against the upstream API.

        Args:
            path: API path relative to the base URL (e.g. "/character/basic")
            params: Query parameters; None or empty values are omitted

        Returns:
            Parsed JSON body, or None for a 204 or an empty body

        Raises:
            ConfigurationError: If no API key is configured (no request is made)
            UpstreamError: If the response is not 2xx after all retries, or
                the upstream could not be reached, or a 2xx body is not JSON
        """
        api_key = self._ensure_api_key()
        headers = {
            API_KEY_HEADER: api_key,
            "Accept": "application/json",
            "Cache-Control": "no-cache",
        }
        query = _clean_params(params)
        url = f"{self.base_url}{path}"

        attempt = 0
        while True:
            try:
                async with self._semaphore:
                    response = await self._get_http_client().get(
                        url,
                        params=query,
                        headers=headers,
                        timeout=self.settings.request_timeout
                    )
            except httpx.RequestError as e:
                if attempt < self.max_retries:
                    await self._backoff(path, attempt, f"{type(e).__name__}")
                    attempt += 1
                    continue
                logger.error(f"Request to {path} failed: {e}")
                raise UpstreamError(
                    f"Request to {path} failed: {type(e).__name__}",
                    details=str(e) or None
                ) from e

            if response.is_success:
                if response.status_code == 204 or not response.content:
                    return None
                try:
                    return response.json()
                except ValueError as e:
                    raise UpstreamError(
                        f"Request to {path} returned a malformed body",
                        status=response.status_code,
                        details=response.text
                    ) from e

            if response.status_code in RETRYABLE_STATUSES and attempt < self.max_retries:
                await self._backoff(path, attempt, f"HTTP {response.status_code}")
                attempt += 1
                continue

            raise UpstreamError(
                f"Request to {path} failed with status {response.status_code}",
                status=response.status_code,
                details=_parse_error_body(response)
            )

    async def _backoff(self, path: str, attempt: int, reason: str):
        delay = self.retry_backoff * (2 ** attempt)
        logger.warning(f"Retrying {path} in {delay:.2f}s after {reason} (attempt {attempt + 1})")
        if delay > 0:
            await asyncio.sleep(delay)

    async def aclose(self):
        """Close the underlying HTTP client if this instance created it."""
        if self._http_client is not None and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None
