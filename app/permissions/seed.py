"""Seed the default permission catalog and roles.

Usage: python -m app.permissions.seed
"""

from app.config.settings import Settings
from app.database.connection import close_pool, init_pool
from app.database.repositories.permission_repository import PermissionRepository
from app.logging.logger import Log
from app.permissions.catalog import DEFAULT_ROLES, PERMISSIONS


def seed_defaults(repo: PermissionRepository) -> None:
    """Upsert every catalog permission and the default roles with their grants."""
    permission_ids = {
        spec.name: repo.ensure_permission(spec.name, spec.category).id for spec in PERMISSIONS
    }
    for role_spec in DEFAULT_ROLES:
        role = repo.ensure_role(role_spec.name, role_spec.description)
        for name in role_spec.permissions:
            repo.assign_permission(role.id, permission_ids[name])
        Log.info(
            "Seeded role",
            role=role_spec.name,
            permissions=len(role_spec.permissions),
        )


def main() -> None:
    settings = Settings()
    Log.configure(settings.log_level)
    init_pool(settings)
    try:
        seed_defaults(PermissionRepository())
    finally:
        close_pool()


if __name__ == "__main__":
    main()
