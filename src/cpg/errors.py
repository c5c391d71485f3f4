# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Exception taxonomy for the catalog profile generator."""

import logging

logger = logging.getLogger(__name__)


class CatalogError(RuntimeError):
    """Represent any failure raised by the catalog pipeline."""


class PersistenceError(CatalogError):
    """Represent a fatal persistence operation failure."""


class ConflictResolutionError(CatalogError):
    """Represent a resolution that does not match a pending conflict."""


class ConflictPending(CatalogError):
    """Signal that a library stage produced conflicts needing a decision.

    Attributes:
        stage: Pipeline stage number that raised the conflicts.
        conflicts: Unresolved conflicts, in detection order.
    """

    def __init__(self, stage: int, conflicts: list) -> None:
        self.stage = stage
        self.conflicts = conflicts
        super().__init__(
            f"Stage {stage} is waiting on {len(conflicts)} unresolved conflict(s)."
        )


class StageFailure(CatalogError):
    """Represent an unexpected failure inside one pipeline stage."""

    def __init__(self, stage: int, name: str, message: str) -> None:
        self.stage = stage
        self.name = name
        super().__init__(f"Stage {stage} ({name}) failed: {message}")


class ProviderError(CatalogError):
    """Represent a failed call to a code generation provider."""


class AuthError(ProviderError):
    """Provider rejected the credentials (HTTP 401/403)."""


class RateLimitError(ProviderError):
    """Provider throttled the request (HTTP 429)."""


class ServerError(ProviderError):
    """Provider failed with a transient server error (HTTP 5xx)."""


class ParseError(ProviderError):
    """Provider response did not contain a usable code."""


def is_rate_limit(exc: BaseException) -> bool:
    """Check whether a failure should be handled as rate limiting.

    Args:
        exc: Raised exception.

    Returns:
        True for ``RateLimitError``. Other classified provider errors are
        never rate limits; an unclassified ``ProviderError`` counts when its
        message mentions a rate limit.
    """
    if isinstance(exc, RateLimitError):
        return True
    if isinstance(exc, (AuthError, ServerError, ParseError)):
        return False
    message = str(exc)
    return "Rate limit" in message or "429" in message
