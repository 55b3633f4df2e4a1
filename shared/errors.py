"""
Error taxonomy shared by the upstream client and the aggregation layer.

Every error carries the HTTP status it should surface with, so the service
layer can translate it into the JSON error envelope without inspecting types.
"""
from typing import Any, Optional


class DashboardError(Exception):
    """Base class for errors surfaced to API callers."""

    status: Optional[int] = 500

    def __init__(self, message: str, status: Optional[int] = None, details: Any = None):
        super().__init__(message)
        self.message = message
        if status is not None:
            self.status = status
        self.details = details


class ConfigurationError(DashboardError):
    """Raised when the upstream credential is not configured."""

    status = 500


class UpstreamError(DashboardError):
    """Raised when the upstream API answers outside the 2xx range or is unreachable.

    ``status`` is ``None`` for transport failures (timeouts, refused connections).
    """

    status = None


class CharacterNotFoundError(DashboardError):
    """Raised when a character name does not resolve to an ocid."""

    status = 404


class QueryValidationError(DashboardError):
    """Raised for malformed query parameters, before any network activity."""

    status = 400


def describe_error(error: BaseException) -> str:
    """
    Produce the user-facing message for an error.

    Upstream bodies shaped like ``{"error": {"message": ...}}`` take precedence
    over the exception text.

    Args:
        error: Any exception raised while fetching a section

    Returns:
        Message suitable for a ``SectionError``
    """
    if isinstance(error, DashboardError):
        details = error.details
        if isinstance(details, dict):
            detail = details.get("error")
            if isinstance(detail, dict) and detail.get("message"):
                return str(detail["message"])
        return error.message

    message = str(error)
    return message or "Unknown error"
