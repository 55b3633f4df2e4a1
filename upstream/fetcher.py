"""
Optional-section fetch policy.

Many character attributes (pets, android, beauty, dojang records, hyper stats)
only exist for some characters. The upstream reports their absence with a 204
or a 404, which is an expected outcome rather than a failure. This module turns
every upstream call into an explicit result variant so callers can tell
"not applicable" apart from "failed" without catching exceptions.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Union

from shared.errors import ConfigurationError, DashboardError, UpstreamError
from .client import UpstreamClient

logger = logging.getLogger(__name__)

NOT_APPLICABLE_STATUSES = {204, 404}


@dataclass(frozen=True)
class Fetched:
    """The upstream returned a payload."""
    payload: Dict[str, Any]


@dataclass(frozen=True)
class NotApplicable:
    """The attribute does not exist for this character."""
    status: int


@dataclass(frozen=True)
class Failed:
    """Any other failure; the error is kept for reporting."""
    error: DashboardError


FetchResult = Union[Fetched, NotApplicable, Failed]

ErrorCallback = Callable[[DashboardError], None]


class OptionalFetcher:
    """Wraps upstream calls with the optional-attribute policy."""

    def __init__(self, client: UpstreamClient):
        self.client = client

    async def fetch(self, path: str, params: Optional[Dict[str, Any]] = None) -> FetchResult:
        """
        Fetch a path and classify the outcome.

        ConfigurationError is not a per-call outcome and always propagates.
        """
        try:
            payload = await self.client.call(path, params)
        except ConfigurationError:
            raise
        except UpstreamError as e:
            if e.status in NOT_APPLICABLE_STATUSES:
                return NotApplicable(status=e.status)
            return Failed(error=e)

        if payload is None:
            return NotApplicable(status=204)
        return Fetched(payload=payload)

    async def fetch_optional(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        on_error: Optional[ErrorCallback] = None
    ) -> Optional[Dict[str, Any]]:
        """
        Fetch a path, collapsing expected absence to None.

        Args:
            path: Upstream API path
            params: Query parameters
            on_error: Receives any failure other than 204/404. When omitted
                the failure is raised instead.

        Returns:
            The payload, or None when absent or failed-and-reported
        """
        result = await self.fetch(path, params)

        if isinstance(result, Fetched):
            return result.payload

        if isinstance(result, NotApplicable):
            logger.debug(f"{path} not applicable (status {result.status})")
            return None

        if on_error is None:
            raise result.error

        logger.warning(f"{path} failed: {result.error.message}")
        on_error(result.error)
        return None
