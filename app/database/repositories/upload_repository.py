from typing import Any

import psycopg
from psycopg.rows import dict_row

from app.database.connection import get_connection
from app.database.models import Upload, UploadKind
from app.domain.exceptions import ConflictError

_UPLOAD_COLUMNS = """
    id, correlation_key, kind, filename, byte_size, mime_type,
    owner_id, storage_key, file_hash_sha256, created_at
"""


class UploadRepository:
    """Database operations for the uploads table."""

    def create(
        self,
        *,
        correlation_key: str,
        kind: UploadKind,
        filename: str,
        byte_size: int,
        mime_type: str,
        owner_id: int,
        storage_key: str,
        file_hash_sha256: str,
    ) -> Upload:
        """Insert upload metadata.

        Raises:
            ConflictError: if the pair already holds an upload of this kind.
        """
        with get_connection() as conn:
            try:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(
                        f"""
                        INSERT INTO uploads
                        (correlation_key, kind, filename, byte_size, mime_type,
                         owner_id, storage_key, file_hash_sha256)
                        VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                        RETURNING {_UPLOAD_COLUMNS}
                        """,
                        (
                            correlation_key,
                            kind.value,
                            filename,
                            byte_size,
                            mime_type,
                            owner_id,
                            storage_key,
                            file_hash_sha256,
                        ),
                    )
                    row = cur.fetchone()
                conn.commit()
            except psycopg.errors.UniqueViolation as exc:
                conn.rollback()
                raise ConflictError(
                    f"Pair {correlation_key} already has a {kind.value} upload"
                ) from exc
        if row is None:
            raise RuntimeError("INSERT INTO uploads returned no row")
        return self._to_upload(row)

    def find_by_id(self, upload_id: int) -> Upload | None:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_UPLOAD_COLUMNS} FROM uploads WHERE id = %s",
                    (upload_id,),
                )
                row = cur.fetchone()
        return self._to_upload(row) if row is not None else None

    def find_by_correlation_key(self, correlation_key: str) -> list[Upload]:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_UPLOAD_COLUMNS} FROM uploads
                    WHERE correlation_key = %s
                    ORDER BY id
                    """,
                    (correlation_key,),
                )
                rows = cur.fetchall()
        return [self._to_upload(row) for row in rows]

    def is_referenced(self, upload_id: int) -> bool:
        """True when any analysis record, soft-deleted ones included, points at the upload."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT 1 FROM analysis_records
                    WHERE contract_upload_id = %s OR data_upload_id = %s
                    LIMIT 1
                    """,
                    (upload_id, upload_id),
                )
                row = cur.fetchone()
        return row is not None

    def delete(self, upload_id: int) -> bool:
        """Delete upload metadata.

        Raises:
            ConflictError: if an analysis record still references the upload.
        """
        with get_connection() as conn:
            try:
                with conn.cursor() as cur:
                    cur.execute("DELETE FROM uploads WHERE id = %s", (upload_id,))
                    deleted = cur.rowcount > 0
                conn.commit()
            except psycopg.errors.ForeignKeyViolation as exc:
                conn.rollback()
                raise ConflictError(
                    f"Upload {upload_id} is used by an analysis record"
                ) from exc
        return deleted

    @staticmethod
    def _to_upload(row: dict[str, Any]) -> Upload:
        return Upload(
            id=row["id"],
            correlation_key=row["correlation_key"],
            kind=UploadKind(row["kind"]),
            filename=row["filename"],
            byte_size=row["byte_size"],
            mime_type=row["mime_type"],
            owner_id=row["owner_id"],
            storage_key=row["storage_key"],
            file_hash_sha256=row["file_hash_sha256"],
            created_at=row.get("created_at"),
        )
