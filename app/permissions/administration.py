from app.database.models import Role
from app.database.repositories.permission_repository import PermissionRepository
from app.domain.exceptions import NotFoundError
from app.logging.logger import Log
from app.permissions.catalog import ROLES_MANAGE
from app.permissions.resolver import PermissionResolver


class RoleAdministration:
    """Role and permission edits, all gated by ``roles.manage``."""

    def __init__(
        self,
        permission_repo: PermissionRepository,
        resolver: PermissionResolver,
    ) -> None:
        self._permission_repo = permission_repo
        self._resolver = resolver

    def list_roles(self, requester_id: int) -> list[tuple[Role, list[str]]]:
        self._resolver.authorize_or_fail(requester_id, ROLES_MANAGE)
        return self._permission_repo.list_roles()

    def create_role(self, requester_id: int, name: str, description: str | None) -> Role:
        self._resolver.authorize_or_fail(requester_id, ROLES_MANAGE)
        role = self._permission_repo.create_role(name, description)
        Log.info("Role created", role=name, by=requester_id)
        return role

    def delete_role(self, requester_id: int, role_id: int) -> None:
        self._resolver.authorize_or_fail(requester_id, ROLES_MANAGE)
        self._permission_repo.delete_role(role_id)
        Log.info("Role deleted", role_id=role_id, by=requester_id)

    def grant_permission(self, requester_id: int, role_id: int, permission_name: str) -> None:
        self._resolver.authorize_or_fail(requester_id, ROLES_MANAGE)
        self._require_role(role_id)
        permission = self._permission_repo.find_permission_by_name(permission_name)
        if permission is None:
            raise NotFoundError(f"Permission '{permission_name}' not found")
        self._permission_repo.assign_permission(role_id, permission.id)
        Log.info("Permission granted", role_id=role_id, permission=permission_name)

    def revoke_permission(self, requester_id: int, role_id: int, permission_name: str) -> None:
        self._resolver.authorize_or_fail(requester_id, ROLES_MANAGE)
        permission = self._permission_repo.find_permission_by_name(permission_name)
        if permission is None or not self._permission_repo.remove_permission(
            role_id, permission.id
        ):
            raise NotFoundError(f"Role {role_id} does not hold '{permission_name}'")
        Log.info("Permission revoked", role_id=role_id, permission=permission_name)

    def assign_role(self, requester_id: int, user_id: int, role_id: int) -> None:
        self._resolver.authorize_or_fail(requester_id, ROLES_MANAGE)
        self._require_role(role_id)
        self._permission_repo.assign_role(user_id, role_id)
        Log.info("Role assigned", user_id=user_id, role_id=role_id)

    def unassign_role(self, requester_id: int, user_id: int, role_id: int) -> None:
        self._resolver.authorize_or_fail(requester_id, ROLES_MANAGE)
        if not self._permission_repo.remove_role(user_id, role_id):
            raise NotFoundError(f"User {user_id} does not hold role {role_id}")
        Log.info("Role unassigned", user_id=user_id, role_id=role_id)

    def _require_role(self, role_id: int) -> Role:
        role = self._permission_repo.find_role(role_id)
        if role is None:
            raise NotFoundError(f"Role {role_id} not found")
        return role
