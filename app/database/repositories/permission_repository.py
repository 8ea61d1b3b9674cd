from typing import Any

import psycopg
from psycopg.rows import dict_row

from app.database.connection import get_connection
from app.database.models import Permission, Role
from app.domain.exceptions import ConflictError, NotFoundError


class PermissionRepository:
    """Database operations for roles, permissions and their join tables."""

    def get_permission_names(self, user_id: int) -> list[str]:
        """Return the union of permission names over every role of the user.

        Unknown users simply have no user_roles rows, so the result is empty.
        """
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT DISTINCT p.name
                    FROM user_roles ur
                    JOIN role_permissions rp ON rp.role_id = ur.role_id
                    JOIN permissions p ON p.id = rp.permission_id
                    WHERE ur.user_id = %s
                    ORDER BY p.name
                    """,
                    (user_id,),
                )
                rows = cur.fetchall()
        return [row[0] for row in rows]

    def list_roles(self) -> list[tuple[Role, list[str]]]:
        """Return every role with its sorted permission names."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT r.id, r.name, r.description,
                           COALESCE(
                               ARRAY_AGG(p.name ORDER BY p.name)
                                   FILTER (WHERE p.name IS NOT NULL),
                               '{}'
                           ) AS permission_names
                    FROM roles r
                    LEFT JOIN role_permissions rp ON rp.role_id = r.id
                    LEFT JOIN permissions p ON p.id = rp.permission_id
                    GROUP BY r.id, r.name, r.description
                    ORDER BY r.name
                    """
                )
                rows = cur.fetchall()
        return [(self._to_role(row), list(row["permission_names"])) for row in rows]

    def find_role(self, role_id: int) -> Role | None:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    "SELECT id, name, description FROM roles WHERE id = %s",
                    (role_id,),
                )
                row = cur.fetchone()
        return self._to_role(row) if row is not None else None

    def find_permission_by_name(self, name: str) -> Permission | None:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    "SELECT id, name, category FROM permissions WHERE name = %s",
                    (name,),
                )
                row = cur.fetchone()
        if row is None:
            return None
        return Permission(id=row["id"], name=row["name"], category=row["category"])

    def create_role(self, name: str, description: str | None = None) -> Role:
        """Insert a new role.

        Raises:
            ConflictError: if a role with this name already exists.
        """
        with get_connection() as conn:
            try:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(
                        """
                        INSERT INTO roles (name, description)
                        VALUES (%s, %s)
                        RETURNING id, name, description
                        """,
                        (name, description),
                    )
                    row = cur.fetchone()
                conn.commit()
            except psycopg.errors.UniqueViolation as exc:
                conn.rollback()
                raise ConflictError(f"Role '{name}' already exists") from exc
        if row is None:
            raise RuntimeError("INSERT INTO roles returned no row")
        return self._to_role(row)

    def ensure_role(self, name: str, description: str | None = None) -> Role:
        """Insert a role or refresh its description when it already exists."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    INSERT INTO roles (name, description)
                    VALUES (%s, %s)
                    ON CONFLICT (name) DO UPDATE SET description = EXCLUDED.description
                    RETURNING id, name, description
                    """,
                    (name, description),
                )
                row = cur.fetchone()
            conn.commit()
        if row is None:
            raise RuntimeError("Upsert into roles returned no row")
        return self._to_role(row)

    def delete_role(self, role_id: int) -> None:
        """Delete a role that has no assigned users.

        Raises:
            ConflictError: if users still hold the role.
            NotFoundError: if the role does not exist.
        """
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT COUNT(*) FROM user_roles WHERE role_id = %s",
                    (role_id,),
                )
                row = cur.fetchone()
                if row is not None and row[0] > 0:
                    raise ConflictError("Cannot delete role with assigned users")
                cur.execute("DELETE FROM roles WHERE id = %s", (role_id,))
                if cur.rowcount == 0:
                    raise NotFoundError(f"Role {role_id} not found")
            conn.commit()

    def ensure_permission(self, name: str, category: str) -> Permission:
        """Insert a permission or refresh its category when it already exists."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    INSERT INTO permissions (name, category)
                    VALUES (%s, %s)
                    ON CONFLICT (name) DO UPDATE SET category = EXCLUDED.category
                    RETURNING id, name, category
                    """,
                    (name, category),
                )
                row = cur.fetchone()
            conn.commit()
        if row is None:
            raise RuntimeError("Upsert into permissions returned no row")
        return Permission(id=row["id"], name=row["name"], category=row["category"])

    def assign_permission(self, role_id: int, permission_id: int) -> None:
        """Attach a permission to a role. Assigning twice is a no-op."""
        self._execute_write(
            """
            INSERT INTO role_permissions (role_id, permission_id)
            VALUES (%s, %s)
            ON CONFLICT DO NOTHING
            """,
            (role_id, permission_id),
        )

    def remove_permission(self, role_id: int, permission_id: int) -> bool:
        return (
            self._execute_write(
                "DELETE FROM role_permissions WHERE role_id = %s AND permission_id = %s",
                (role_id, permission_id),
            )
            > 0
        )

    def assign_role(self, user_id: int, role_id: int) -> None:
        """Give a user a role. Assigning twice is a no-op."""
        self._execute_write(
            """
            INSERT INTO user_roles (user_id, role_id)
            VALUES (%s, %s)
            ON CONFLICT DO NOTHING
            """,
            (user_id, role_id),
        )

    def remove_role(self, user_id: int, role_id: int) -> bool:
        return (
            self._execute_write(
                "DELETE FROM user_roles WHERE user_id = %s AND role_id = %s",
                (user_id, role_id),
            )
            > 0
        )

    @staticmethod
    def _execute_write(sql: str, params: tuple[Any, ...]) -> int:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                rowcount = cur.rowcount
            conn.commit()
        return rowcount

    @staticmethod
    def _to_role(row: dict[str, Any]) -> Role:
        return Role(id=row["id"], name=row["name"], description=row["description"])
