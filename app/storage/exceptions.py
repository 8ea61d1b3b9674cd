class StorageError(Exception):
    """Base exception for blob storage errors."""


class BlobNotFoundError(StorageError):
    """Raised when no bytes are stored under the requested key."""


class InvalidBlobKeyError(StorageError):
    """Raised when a key would resolve outside the storage root."""
