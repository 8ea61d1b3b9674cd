import hashlib
import time
import uuid

from app.database.models import Upload, UploadKind
from app.database.repositories.upload_repository import UploadRepository
from app.domain.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from app.logging.logger import Log
from app.permissions.catalog import DOCUMENTS_DELETE, DOCUMENTS_UPLOAD
from app.permissions.resolver import PermissionResolver
from app.storage.base import BaseBlobStore
from app.storage.local_blob_store import upload_storage_key

CONTRACT_MIME_TYPES = frozenset({"application/pdf"})
DATA_MIME_TYPES = frozenset(
    {
        "text/csv",
        "application/vnd.ms-excel",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    }
)


def new_correlation_key() -> str:
    """Build a fresh pair key: job_<epoch-ms>_<uuid4>"""
    return f"job_{int(time.time() * 1000)}_{uuid.uuid4()}"


class UploadRegistry:
    """Validates, stores and registers the two halves of a document pair."""

    def __init__(
        self,
        *,
        upload_repo: UploadRepository,
        blob_store: BaseBlobStore,
        resolver: PermissionResolver,
        max_contract_bytes: int,
        max_data_bytes: int,
    ) -> None:
        self._upload_repo = upload_repo
        self._blob_store = blob_store
        self._resolver = resolver
        self._limits = {
            UploadKind.CONTRACT: max_contract_bytes,
            UploadKind.DATA: max_data_bytes,
        }

    def create_upload(
        self,
        owner_id: int,
        kind: str,
        content: bytes,
        filename: str,
        mime_type: str,
        correlation_key: str | None = None,
    ) -> Upload:
        """Register one upload, opening a new pair or completing an existing one.

        Every check runs before the blob store is touched.

        Raises:
            PermissionDeniedError: without ``documents.upload``.
            ValidationError: on a bad kind, MIME type, size or correlation key.
            ConflictError: if a concurrent upload filled the same slot first.
        """
        self._resolver.authorize_or_fail(owner_id, DOCUMENTS_UPLOAD)
        upload_kind = self._validate(kind, content, filename, mime_type)

        if correlation_key is None:
            correlation_key = new_correlation_key()
        else:
            self._check_pending_pair(correlation_key, owner_id, upload_kind)

        storage_key = upload_storage_key(owner_id, uuid.uuid4().hex)
        self._blob_store.put(storage_key, content)
        try:
            upload = self._upload_repo.create(
                correlation_key=correlation_key,
                kind=upload_kind,
                filename=filename,
                byte_size=len(content),
                mime_type=mime_type,
                owner_id=owner_id,
                storage_key=storage_key,
                file_hash_sha256=hashlib.sha256(content).hexdigest(),
            )
        except Exception:
            self._blob_store.delete(storage_key)
            raise

        Log.info(
            "Upload registered",
            upload_id=upload.id,
            kind=upload_kind.value,
            job=correlation_key,
            bytes=upload.byte_size,
        )
        return upload

    def delete_upload(self, upload_id: int, requester_id: int) -> None:
        """Remove an upload and its stored bytes.

        Raises:
            NotFoundError: if the upload does not exist.
            PermissionDeniedError: unless the requester owns it or holds
                ``documents.delete``.
            ConflictError: while any analysis record references it. Soft-deleted
                records keep their upload references.
        """
        upload = self._upload_repo.find_by_id(upload_id)
        if upload is None:
            raise NotFoundError(f"Upload {upload_id} not found")
        if upload.owner_id != requester_id and not self._resolver.authorize(
            requester_id, DOCUMENTS_DELETE
        ):
            raise PermissionDeniedError(f"Cannot delete upload {upload_id}")
        if self._upload_repo.is_referenced(upload_id):
            raise ConflictError(f"Upload {upload_id} is used by an analysis record")

        self._upload_repo.delete(upload_id)
        self._blob_store.delete(upload.storage_key)
        Log.info("Upload deleted", upload_id=upload_id, by=requester_id)

    def _validate(
        self, kind: str, content: bytes, filename: str, mime_type: str
    ) -> UploadKind:
        try:
            upload_kind = UploadKind(kind)
        except ValueError as exc:
            raise ValidationError(f"Unknown upload kind '{kind}'") from exc

        if not filename.strip():
            raise ValidationError("Filename is required")
        if not content:
            raise ValidationError("File is empty")

        allowed = CONTRACT_MIME_TYPES if upload_kind is UploadKind.CONTRACT else DATA_MIME_TYPES
        if mime_type not in allowed:
            raise ValidationError(
                f"Unsupported MIME type '{mime_type}' for {upload_kind.value} upload"
            )

        limit = self._limits[upload_kind]
        if len(content) > limit:
            raise ValidationError(
                f"{upload_kind.value} upload exceeds {limit} bytes"
            )
        return upload_kind

    def _check_pending_pair(
        self, correlation_key: str, owner_id: int, kind: UploadKind
    ) -> None:
        existing = self._upload_repo.find_by_correlation_key(correlation_key)
        if not existing:
            raise ValidationError(f"Unknown correlation key '{correlation_key}'")
        if any(upload.owner_id != owner_id for upload in existing):
            raise ValidationError(f"Unknown correlation key '{correlation_key}'")
        if any(upload.kind is kind for upload in existing):
            raise ValidationError(
                f"Pair {correlation_key} already holds a {kind.value} upload"
            )
