"""Error taxonomy shared by every provider integration."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from video_exporter.services.title_service import BulkOutcome


class AggregationError(RuntimeError):
    """Base class for failures surfaced to the user as a single message."""

    def __init__(self, message: str, *, provider: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class AuthenticationError(AggregationError):
    """Raised when a provider rejects the supplied credentials."""


class NotFoundError(AggregationError):
    """Raised when a container reference does not exist."""


class RateLimitedError(AggregationError):
    """Raised when a provider throttles the request."""


class UpstreamError(AggregationError):
    """Raised for any other non-success answer from a provider."""


class ValidationError(AggregationError):
    """Raised when required user input is missing before a fetch is attempted."""


class AiLockedError(RuntimeError):
    """Raised when title generation is requested while the AI gate is locked."""


class PartialBulkFailure(RuntimeError):
    """Describes a bulk enrichment run where only some records succeeded."""

    def __init__(self, outcome: BulkOutcome) -> None:
        super().__init__(f"{outcome.failed} of {outcome.total} titles could not be generated")
        self.outcome = outcome


DEFAULT_STATUS_MAP: Mapping[int, type[AggregationError]] = {
    401: AuthenticationError,
    403: AuthenticationError,
    404: NotFoundError,
    429: RateLimitedError,
}

_DEFAULT_MESSAGES: Mapping[type[AggregationError], str] = {
    AuthenticationError: "Invalid credentials. Please check your API key or token.",
    NotFoundError: "Container not found. Please check the selected folder or collection.",
    RateLimitedError: "API rate limit exceeded. Please try again later.",
}


def classify_status(
    status_code: int,
    overrides: Mapping[int, type[AggregationError]] | None = None,
) -> type[AggregationError]:
    """Map a non-success HTTP status onto one of the four upstream error kinds."""

    if overrides and status_code in overrides:
        return overrides[status_code]
    return DEFAULT_STATUS_MAP.get(status_code, UpstreamError)


def error_for_status(
    provider: str,
    status_code: int,
    detail: str | None = None,
    *,
    overrides: Mapping[int, type[AggregationError]] | None = None,
) -> AggregationError:
    """Build the user-facing error for a failed provider response."""

    error_cls = classify_status(status_code, overrides)
    message = _DEFAULT_MESSAGES.get(error_cls, f"{provider} API request failed: {status_code}")
    if detail and error_cls is UpstreamError:
        message = f"{message} ({detail})"
    return error_cls(message, provider=provider, status_code=status_code)
