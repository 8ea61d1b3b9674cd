from pathlib import Path

from app.storage.base import BaseBlobStore
from app.storage.exceptions import BlobNotFoundError, InvalidBlobKeyError


def upload_storage_key(owner_id: int, uuid: str) -> str:
    """Build the storage key for an upload: {owner_id}/{uuid}"""
    return f"{owner_id}/{uuid}"


class LocalBlobStore(BaseBlobStore):
    """Stores blobs as files below a root directory."""

    def __init__(self, root: Path) -> None:
        self._root = root.resolve()

    def put(self, key: str, content: bytes) -> None:
        path = self._resolve_path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(".part")
        tmp_path.write_bytes(content)
        tmp_path.replace(path)

    def get(self, key: str) -> bytes:
        path = self._resolve_path(key)
        if not path.exists():
            raise BlobNotFoundError(f"Blob not found: {key}")
        return path.read_bytes()

    def delete(self, key: str) -> None:
        self._resolve_path(key).unlink(missing_ok=True)

    def _resolve_path(self, key: str) -> Path:
        path = (self._root / key).resolve()
        if not path.is_relative_to(self._root):
            raise InvalidBlobKeyError(f"Key escapes storage root: {key}")
        return path
