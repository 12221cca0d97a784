"""Exception hierarchy for the review and stream-count pipelines.

These never leave the public lookup functions: the orchestrators convert
every one of them to a "not found" result.
"""

from typing import Optional


class ReviewerError(Exception):
    """Base class for all reviewer errors."""


class InvalidIdentifierError(ReviewerError):
    """Identifier failed format validation."""


class FetchError(ReviewerError):
    """Remote document could not be retrieved."""


class FetchTimeoutError(FetchError):
    """Request exceeded its timeout."""


class ResponseTooLargeError(FetchError):
    """Response exceeded the configured size ceiling."""

    def __init__(self, limit: int, size: Optional[int] = None):
        self.limit = limit
        self.size = size
        detail = f"{size} bytes" if size is not None else "streamed body"
        super().__init__(f"Response too large ({detail}, limit {limit} bytes)")


class HTTPStatusError(FetchError):
    """Non-success HTTP status code."""

    def __init__(self, status_code: int, message: Optional[str] = None):
        self.status_code = status_code
        super().__init__(message or f"HTTP status {status_code}")


class ExtractionError(ReviewerError):
    """Document did not contain the expected structure."""


class PatternTimeoutError(ExtractionError):
    """A pattern evaluation exceeded its time budget."""


class PersistError(ReviewerError):
    """Cache could not be written to disk."""
