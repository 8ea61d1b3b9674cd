from abc import ABC, abstractmethod


class BaseBlobStore(ABC):
    """Contract for upload byte storage: store bytes, retrieve bytes."""

    @abstractmethod
    def put(self, key: str, content: bytes) -> None:
        """Persist content under key, replacing anything stored there."""

    @abstractmethod
    def get(self, key: str) -> bytes:
        """Return the bytes stored under key.

        Raises:
            BlobNotFoundError: if nothing is stored under key.
        """

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove the bytes stored under key. Missing keys are ignored."""
