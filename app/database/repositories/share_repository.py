from typing import Any

from psycopg.rows import dict_row

from app.database.connection import get_connection
from app.database.models import ShareGrant


class ShareRepository:
    """Database operations for the share_grants table."""

    def exists(self, analysis_id: int, grantee_user_id: int) -> bool:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT 1 FROM share_grants
                    WHERE analysis_id = %s AND grantee_user_id = %s
                    """,
                    (analysis_id, grantee_user_id),
                )
                row = cur.fetchone()
        return row is not None

    def grant(self, analysis_id: int, grantee_user_id: int, granted_by_user_id: int) -> ShareGrant:
        """Insert a grant, keeping the original row when it already exists."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    INSERT INTO share_grants (analysis_id, grantee_user_id, granted_by_user_id)
                    VALUES (%s, %s, %s)
                    ON CONFLICT (analysis_id, grantee_user_id)
                    DO UPDATE SET analysis_id = EXCLUDED.analysis_id
                    RETURNING analysis_id, grantee_user_id, granted_by_user_id, created_at
                    """,
                    (analysis_id, grantee_user_id, granted_by_user_id),
                )
                row = cur.fetchone()
            conn.commit()
        if row is None:
            raise RuntimeError("Upsert into share_grants returned no row")
        return self._to_grant(row)

    def revoke(self, analysis_id: int, grantee_user_id: int) -> bool:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    DELETE FROM share_grants
                    WHERE analysis_id = %s AND grantee_user_id = %s
                    """,
                    (analysis_id, grantee_user_id),
                )
                revoked = cur.rowcount > 0
            conn.commit()
        return revoked

    def list_for_record(self, analysis_id: int) -> list[ShareGrant]:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT analysis_id, grantee_user_id, granted_by_user_id, created_at
                    FROM share_grants
                    WHERE analysis_id = %s
                    ORDER BY created_at, grantee_user_id
                    """,
                    (analysis_id,),
                )
                rows = cur.fetchall()
        return [self._to_grant(row) for row in rows]

    @staticmethod
    def _to_grant(row: dict[str, Any]) -> ShareGrant:
        return ShareGrant(
            analysis_id=row["analysis_id"],
            grantee_user_id=row["grantee_user_id"],
            granted_by_user_id=row["granted_by_user_id"],
            created_at=row.get("created_at"),
        )
