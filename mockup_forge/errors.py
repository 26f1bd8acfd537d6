"""Exception taxonomy for the derivative pipeline.

Every exception that can escape a job carries a ``retryable`` flag. The
worker uses it to decide between a delayed retry and the dead-letter stream:

- Catalog / transport / image failures -> retryable (queue backoff)
- Invalid payload / missing artwork image -> not retryable (the payload
  will never improve)
- Deadline expiry -> retryable, reported separately from transport errors

Skip conditions (wrong category, already tagged, derivative exists) are
not errors and never raise.
"""

from __future__ import annotations

__all__ = [
    "ArtworkImageError",
    "CatalogAPIError",
    "CatalogError",
    "CatalogProtocolError",
    "CatalogTransportError",
    "DerivativeGenerationError",
    "ImageError",
    "InvalidPayloadError",
    "JobTimeoutError",
    "MissingArtworkImageError",
    "MockupForgeError",
    "QueueError",
    "TemplateError",
]


class MockupForgeError(Exception):
    """Base exception for pipeline errors."""

    retryable: bool = True

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


# ── Catalog ──────────────────────────────────────────────────────────────


class CatalogError(MockupForgeError):
    """Base exception for catalog API failures."""


class CatalogTransportError(CatalogError):
    """Raised when the request never produced an HTTP response."""


class CatalogAPIError(CatalogError):
    """Raised on a non-2xx catalog response."""

    def __init__(
        self,
        message: str,
        status_code: int,
        body: str = "",
        retry_after: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body
        self.retry_after = retry_after


class CatalogProtocolError(CatalogError):
    """Raised when a 2xx response does not have the expected shape."""


# ── Deadline ─────────────────────────────────────────────────────────────


class JobTimeoutError(MockupForgeError):
    """Raised when a job exhausts its time budget."""

    def __init__(self, operation: str, elapsed: float, budget: float) -> None:
        super().__init__(
            f"Job deadline exceeded during {operation} "
            f"({elapsed:.1f}s elapsed, budget {budget:.1f}s)"
        )
        self.operation = operation
        self.elapsed = elapsed
        self.budget = budget


# ── Images ───────────────────────────────────────────────────────────────


class ImageError(MockupForgeError):
    """Base exception for image decoding and compositing failures."""


class ArtworkImageError(ImageError):
    """Raised when the downloaded artwork cannot be decoded."""


class TemplateError(ImageError):
    """Raised when a template image is missing or unreadable."""


class InvalidPayloadError(MockupForgeError):
    """Raised when a queued payload cannot describe an artwork."""

    retryable = False


class MissingArtworkImageError(InvalidPayloadError):
    """Raised when the artwork payload carries no image at all."""


# ── Orchestration ────────────────────────────────────────────────────────


class DerivativeGenerationError(MockupForgeError):
    """Raised after a sweep in which one or more definitions failed."""

    def __init__(self, artwork_id: str, failed: dict[str, str]) -> None:
        names = ", ".join(sorted(failed))
        super().__init__(
            f"Artwork {artwork_id}: {len(failed)} derivative(s) failed ({names})"
        )
        self.artwork_id = artwork_id
        self.failed = failed


class QueueError(MockupForgeError):
    """Raised when the queue backend rejects an operation."""
