from fastapi import APIRouter, Response

from app.api.dependencies import ServicesDep, UserIdDep
from app.api.schemas import PermissionsView, RoleCreate, RoleView

router = APIRouter(tags=["Permissions"])


@router.get("/api/me/permissions", response_model=PermissionsView)
def my_permissions(services: ServicesDep, user_id: UserIdDep) -> PermissionsView:
    """Advisory list for clients; every endpoint re-checks on its own."""
    return PermissionsView(permissions=sorted(services.resolver.resolve_permissions(user_id)))


@router.get("/api/roles", response_model=list[RoleView])
def list_roles(services: ServicesDep, user_id: UserIdDep) -> list[RoleView]:
    return [
        RoleView.from_role(role, permissions)
        for role, permissions in services.roles.list_roles(user_id)
    ]


@router.post("/api/roles", response_model=RoleView, status_code=201)
def create_role(body: RoleCreate, services: ServicesDep, user_id: UserIdDep) -> RoleView:
    role = services.roles.create_role(user_id, body.name, body.description)
    return RoleView.from_role(role, [])


@router.delete("/api/roles/{role_id}", status_code=204)
def delete_role(role_id: int, services: ServicesDep, user_id: UserIdDep) -> Response:
    services.roles.delete_role(user_id, role_id)
    return Response(status_code=204)


@router.post("/api/roles/{role_id}/permissions/{permission_name}", status_code=204)
def grant_permission(
    role_id: int, permission_name: str, services: ServicesDep, user_id: UserIdDep
) -> Response:
    services.roles.grant_permission(user_id, role_id, permission_name)
    return Response(status_code=204)


@router.delete("/api/roles/{role_id}/permissions/{permission_name}", status_code=204)
def revoke_permission(
    role_id: int, permission_name: str, services: ServicesDep, user_id: UserIdDep
) -> Response:
    services.roles.revoke_permission(user_id, role_id, permission_name)
    return Response(status_code=204)


@router.post("/api/users/{target_user_id}/roles/{role_id}", status_code=204)
def assign_role(
    target_user_id: int, role_id: int, services: ServicesDep, user_id: UserIdDep
) -> Response:
    services.roles.assign_role(user_id, target_user_id, role_id)
    return Response(status_code=204)


@router.delete("/api/users/{target_user_id}/roles/{role_id}", status_code=204)
def unassign_role(
    target_user_id: int, role_id: int, services: ServicesDep, user_id: UserIdDep
) -> Response:
    services.roles.unassign_role(user_id, target_user_id, role_id)
    return Response(status_code=204)
