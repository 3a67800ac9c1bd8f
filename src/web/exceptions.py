"""
Exception taxonomy shared by Newsdesk services.

Services declare their own exception classes on top of these bases so the
error handlers can map whole families to HTTP status codes.
"""


class NewsdeskError(Exception):
    """Base exception for all service errors."""

    pass


class NotFoundError(NewsdeskError):
    """Raised when a user or article id does not exist."""

    pass


class InvalidArgumentError(NewsdeskError):
    """Raised for malformed ids or out-of-range arguments."""

    pass


class ConflictError(NewsdeskError):
    """Raised when a write would violate a uniqueness constraint."""

    pass


class StoreUnavailableError(NewsdeskError):
    """Raised when the primary store cannot answer a query."""

    pass


class CacheUnavailableError(NewsdeskError):
    """Raised by cache backends. Never surfaced to callers."""

    pass
