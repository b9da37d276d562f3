"""
Engagement errors.

ValidationError and ConflictError subclasses are raised before or instead of a
write and are never retried. UpstreamUnavailable marks a store or catalog
timeout/error on a user-initiated mutation and is retryable.
"""

import re

# User and item identifiers: non-empty, URL-safe, bounded
ID_PATTERN = re.compile(r"^[A-Za-z0-9_.:-]{1,128}$")


class EngagementError(Exception):
    """Base class for engagement errors."""


class ValidationError(EngagementError):
    """Missing or malformed input, rejected before any store access."""


class ConflictError(EngagementError):
    """The requested change conflicts with current state."""


class AlreadyFavoritedError(ConflictError):
    def __init__(self, user_id: str, item_id: str):
        super().__init__(f"Item {item_id!r} is already a favorite of user {user_id!r}")
        self.user_id = user_id
        self.item_id = item_id


class NotFoundError(ConflictError):
    pass


class UpstreamUnavailable(EngagementError):
    """A store or catalog call timed out or failed."""

    retryable = True

    def __init__(self, message: str, operation: str = ""):
        super().__init__(message)
        self.operation = operation


class StaleDataWarning(UserWarning):
    """A cached recommendation list was served past its refresh interval."""


def validate_id(value, field: str = "id") -> str:
    """Return value stripped, or raise ValidationError."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required")
    value = value.strip()
    if not ID_PATTERN.match(value):
        raise ValidationError(
            f"{field} must be 1-128 characters of letters, digits, '_', '.', ':' or '-'"
        )
    return value
