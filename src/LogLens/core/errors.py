"""Error types shared across LogLens.

Parse errors are raised before any network call. Backend errors are split
into retryable throttling signals and terminal transport/decode/timeout
failures so the retry driver can classify them.
"""

from __future__ import annotations

from typing import Sequence


class LogLensError(Exception):
    """Base class for all LogLens errors."""


class FilterParseError(LogLensError, ValueError):
    """A single filter expression could not be compiled.

    Attributes:
        field: Offending field name (empty when the field is unknown).
        message: Human readable reason.
    """

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"parse error on field '{field}': {message}")
        self.field = field
        self.message = message


class TimeframeError(LogLensError, ValueError):
    """A relative timeframe expression is invalid."""


class QueryBuildError(LogLensError, ValueError):
    """One or more problems prevented a query from being built.

    Every invalid filter is reported at once instead of stopping at the first.
    """

    def __init__(self, problems: Sequence[str], errors: Sequence[Exception] = ()) -> None:
        self.problems = tuple(problems)
        self.errors = tuple(errors)
        super().__init__("failed to build query: " + "; ".join(self.problems))


class BackendError(LogLensError):
    """Base class for errors raised while talking to the search backend."""


class ThrottledError(BackendError):
    """The backend rejected a request because of rate limits (HTTP 429)."""

    def __init__(self, message: str, *, retry_after: float | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class SearchTransportError(BackendError):
    """Request failed at the HTTP level; not retried."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SearchDecodeError(BackendError):
    """Backend response did not have the expected shape."""


class SearchTimeoutError(BackendError):
    """The logical operation exceeded its overall time budget."""


class RetryExhaustedError(BackendError):
    """Every attempt allowed by the retry policy was throttled."""


class DocumentNotFoundError(BackendError):
    """A single-document lookup found nothing."""
