class DomainError(Exception):
    """Base exception for all errors surfaced to API callers."""


class ValidationError(DomainError):
    """Raised when input has a bad shape, type or size."""


class PermissionDeniedError(DomainError):
    """Raised when a principal lacks a required capability."""


class NotFoundError(DomainError):
    """Raised when an entity is absent or invisible to the caller.

    The two cases share one error so callers cannot probe for existence.
    """


class ConflictError(DomainError):
    """Raised when another transition already holds the correlation key."""


class PreconditionFailedError(DomainError):
    """Raised when a stage is requested out of order."""


class ExtractionNotReadyError(DomainError):
    """Raised while extraction output is not available yet. Pollers retry on it."""


class ProcessingFailedError(DomainError):
    """Raised when the last extraction attempt failed and nothing is available."""
