from app.database.repositories.permission_repository import PermissionRepository
from app.domain.exceptions import PermissionDeniedError
from app.logging.logger import Log


class PermissionResolver:
    """Computes effective permission sets and answers authorization queries.

    Nothing is cached: each call reads the store, so role or permission edits
    take effect on the next request.
    """

    def __init__(self, permission_repo: PermissionRepository) -> None:
        self._permission_repo = permission_repo

    def resolve_permissions(self, user_id: int) -> frozenset[str]:
        """Union of the permissions of every role assigned to the user."""
        return frozenset(self._permission_repo.get_permission_names(user_id))

    def authorize(self, user_id: int, permission_name: str) -> bool:
        return permission_name in self.resolve_permissions(user_id)

    def authorize_or_fail(self, user_id: int, permission_name: str) -> None:
        """Raises:
        PermissionDeniedError: if the user does not hold the permission.
        """
        if not self.authorize(user_id, permission_name):
            Log.warning("Permission denied", user_id=user_id, permission=permission_name)
            raise PermissionDeniedError(f"Missing permission '{permission_name}'")
