from datetime import datetime
from typing import Any

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from app.database.connection import get_connection
from app.database.models import (
    AnalysisRecord,
    RecordPage,
    RecordStatistics,
    Stage,
    Status,
    Transition,
)
from app.processing.models import AnalysisResult, ExtractionResult

_RECORD_COLUMNS = """
    id, correlation_key, owner_id, contract_upload_id, data_upload_id,
    stage, status, extraction_result, analysis_result, error_message,
    error_detail, last_transition, locked_at, created_at, updated_at
"""

# A claim is free when nobody is processing, or when the holder has been
# silent for longer than the stale window (crashed worker).
_CLAIM_FREE = """
    (status <> 'processing'
     OR locked_at IS NULL
     OR locked_at < NOW() - (%s * INTERVAL '1 second'))
"""


class AnalysisRepository:
    """Database operations for the analysis_records table.

    Every transition of a record starts with an atomic claim that flips the
    row to ``processing`` and stamps ``locked_at``; that row is the per
    correlation key lock.
    """

    def __init__(self, stale_after_seconds: int) -> None:
        self._stale_after_seconds = stale_after_seconds

    def create_processing(
        self,
        *,
        correlation_key: str,
        owner_id: int,
        contract_upload_id: int,
        data_upload_id: int,
    ) -> AnalysisRecord | None:
        """Insert a new record already claimed for extraction.

        Returns None when a live record for the key exists (lost the race).
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO analysis_records
                    (correlation_key, owner_id, contract_upload_id, data_upload_id,
                     stage, status, locked_at)
                    VALUES (%s, %s, %s, %s, 'unstarted', 'processing', NOW())
                    ON CONFLICT (correlation_key) WHERE NOT is_deleted DO NOTHING
                    RETURNING {_RECORD_COLUMNS}
                    """,
                    (correlation_key, owner_id, contract_upload_id, data_upload_id),
                )
                row = cur.fetchone()
            conn.commit()
        return self._to_record(row) if row is not None else None

    def find_by_id(self, record_id: int) -> AnalysisRecord | None:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_RECORD_COLUMNS} FROM analysis_records
                    WHERE id = %s AND NOT is_deleted
                    """,
                    (record_id,),
                )
                row = cur.fetchone()
        return self._to_record(row) if row is not None else None

    def find_by_correlation_key(self, correlation_key: str) -> AnalysisRecord | None:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_RECORD_COLUMNS} FROM analysis_records
                    WHERE correlation_key = %s AND NOT is_deleted
                    """,
                    (correlation_key,),
                )
                row = cur.fetchone()
        return self._to_record(row) if row is not None else None

    def claim(self, record_id: int, transition: Transition) -> AnalysisRecord | None:
        """Take the transition lock on a record.

        Returns the claimed record, or None when another transition holds it
        (or, for an analysis claim, when the record has no extraction).
        """
        stage_clause = "AND stage <> 'unstarted'" if transition is Transition.ANALYSIS else ""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    UPDATE analysis_records
                    SET status = 'processing', last_transition = %s,
                        locked_at = NOW(), updated_at = NOW(),
                        error_message = NULL, error_detail = NULL
                    WHERE id = %s AND NOT is_deleted {stage_clause}
                      AND {_CLAIM_FREE}
                    RETURNING {_RECORD_COLUMNS}
                    """,
                    (transition.value, record_id, self._stale_after_seconds),
                )
                row = cur.fetchone()
            conn.commit()
        return self._to_record(row) if row is not None else None

    def complete_extraction(
        self, record_id: int, result: ExtractionResult, claimed_at: datetime | None
    ) -> AnalysisRecord | None:
        """Store a fresh extraction. Any analysis built on the old one is dropped."""
        return self._release(
            """
            stage = 'extracted', status = 'completed',
            extraction_result = %s, analysis_result = NULL
            """,
            (Jsonb(result.to_dict()),),
            record_id,
            claimed_at,
        )

    def complete_analysis(
        self, record_id: int, result: AnalysisResult, claimed_at: datetime | None
    ) -> AnalysisRecord | None:
        return self._release(
            "stage = 'analyzed', status = 'completed', analysis_result = %s",
            (Jsonb(result.to_dict()),),
            record_id,
            claimed_at,
        )

    def mark_failed(
        self, record_id: int, message: str, detail: str, claimed_at: datetime | None
    ) -> AnalysisRecord | None:
        """Release the claim as failed. Stage and stored results are untouched."""
        return self._release(
            "status = 'failed', error_message = %s, error_detail = %s",
            (message, detail),
            record_id,
            claimed_at,
        )

    def reclaim_stale(self, message: str) -> int:
        """Fail every record whose claim outlived the stale window."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE analysis_records
                    SET status = 'failed', error_message = %s,
                        error_detail = 'claim expired', locked_at = NULL,
                        updated_at = NOW()
                    WHERE status = 'processing' AND NOT is_deleted
                      AND (locked_at IS NULL
                           OR locked_at < NOW() - (%s * INTERVAL '1 second'))
                    """,
                    (message, self._stale_after_seconds),
                )
                reclaimed = cur.rowcount
            conn.commit()
        return reclaimed

    def soft_delete(self, record_id: int, deleted_by: int) -> bool:
        """Soft-delete an idle record and drop its share grants in one transaction.

        Returns False when the record is mid-transition (or already gone).
        """
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    UPDATE analysis_records
                    SET is_deleted = TRUE, deleted_by = %s, deleted_at = NOW(),
                        locked_at = NULL, updated_at = NOW()
                    WHERE id = %s AND NOT is_deleted AND {_CLAIM_FREE}
                    """,
                    (deleted_by, record_id, self._stale_after_seconds),
                )
                if cur.rowcount == 0:
                    conn.rollback()
                    return False
                cur.execute("DELETE FROM share_grants WHERE analysis_id = %s", (record_id,))
            conn.commit()
        return True

    def list_visible(
        self,
        user_id: int,
        *,
        include_all: bool,
        page: int,
        limit: int,
        search: str | None = None,
    ) -> RecordPage:
        """Owned plus shared records (every record with ``include_all``), newest first."""
        conditions = ["NOT ar.is_deleted"]
        params: list[Any] = []
        if not include_all:
            conditions.append(
                """
                (ar.owner_id = %s OR EXISTS (
                    SELECT 1 FROM share_grants sg
                    WHERE sg.analysis_id = ar.id AND sg.grantee_user_id = %s))
                """
            )
            params.extend([user_id, user_id])
        if search:
            conditions.append("(cu.filename ILIKE %s OR du.filename ILIKE %s)")
            pattern = f"%{search}%"
            params.extend([pattern, pattern])
        where = " AND ".join(conditions)
        joins = """
            FROM analysis_records ar
            JOIN uploads cu ON cu.id = ar.contract_upload_id
            JOIN uploads du ON du.id = ar.data_upload_id
        """
        offset = (page - 1) * limit
        columns = ", ".join(f"ar.{c.strip()}" for c in _RECORD_COLUMNS.split(","))

        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(f"SELECT COUNT(*) AS total {joins} WHERE {where}", tuple(params))
                count_row = cur.fetchone()
                cur.execute(
                    f"""
                    SELECT {columns} {joins}
                    WHERE {where}
                    ORDER BY ar.created_at DESC, ar.id DESC
                    LIMIT %s OFFSET %s
                    """,
                    (*params, limit, offset),
                )
                rows = cur.fetchall()

        total = count_row["total"] if count_row is not None else 0
        return RecordPage(
            records=[self._to_record(row) for row in rows],
            page=page,
            limit=limit,
            total=total,
        )

    def statistics(self, owner_id: int | None) -> RecordStatistics:
        """Count live records by status, for one owner or for everyone."""
        owner_clause = "AND owner_id = %s" if owner_id is not None else ""
        params = (owner_id,) if owner_id is not None else ()
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT COUNT(*) AS total,
                           COUNT(*) FILTER (WHERE status = 'completed') AS completed,
                           COUNT(*) FILTER (WHERE status = 'processing') AS processing,
                           COUNT(*) FILTER (WHERE status = 'failed') AS failed
                    FROM analysis_records
                    WHERE NOT is_deleted {owner_clause}
                    """,
                    params,
                )
                row = cur.fetchone()
        if row is None:
            return RecordStatistics()
        return RecordStatistics(
            total=row["total"],
            completed=row["completed"],
            processing=row["processing"],
            failed=row["failed"],
        )

    def _release(
        self,
        assignments: str,
        params: tuple[Any, ...],
        record_id: int,
        claimed_at: datetime | None,
    ) -> AnalysisRecord | None:
        """Finish the claim stamped at ``claimed_at``.

        Returns None when that claim no longer holds the row, e.g. after it
        went stale and another request claimed the record again.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    UPDATE analysis_records
                    SET {assignments}, locked_at = NULL, updated_at = NOW()
                    WHERE id = %s AND NOT is_deleted AND status = 'processing'
                      AND locked_at IS NOT DISTINCT FROM %s
                    RETURNING {_RECORD_COLUMNS}
                    """,
                    (*params, record_id, claimed_at),
                )
                row = cur.fetchone()
            conn.commit()
        return self._to_record(row) if row is not None else None

    @staticmethod
    def _to_record(row: dict[str, Any]) -> AnalysisRecord:
        extraction = row.get("extraction_result")
        analysis = row.get("analysis_result")
        return AnalysisRecord(
            id=row["id"],
            correlation_key=row["correlation_key"],
            owner_id=row["owner_id"],
            contract_upload_id=row["contract_upload_id"],
            data_upload_id=row["data_upload_id"],
            stage=Stage(row["stage"]),
            status=Status(row["status"]),
            extraction_result=ExtractionResult.from_dict(extraction) if extraction else None,
            analysis_result=AnalysisResult.from_dict(analysis) if analysis else None,
            error_message=row.get("error_message"),
            error_detail=row.get("error_detail"),
            last_transition=Transition(row.get("last_transition") or "extraction"),
            locked_at=row.get("locked_at"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )
