from fastapi import APIRouter, Response

from app.api.dependencies import ServicesDep, UserIdDep
from app.api.schemas import ShareRequest, ShareView
from app.domain.exceptions import NotFoundError

router = APIRouter(prefix="/api/analysis", tags=["Sharing"])


@router.post("/{record_id}/share", response_model=ShareView, status_code=201)
def grant_share(
    record_id: int, body: ShareRequest, services: ServicesDep, user_id: UserIdDep
) -> ShareView:
    grant = services.sharing.grant_share(record_id, user_id, body.user_id)
    return ShareView.from_grant(grant)


@router.delete("/{record_id}/share/{grantee_id}", status_code=204)
def revoke_share(
    record_id: int, grantee_id: int, services: ServicesDep, user_id: UserIdDep
) -> Response:
    if not services.sharing.revoke_share(record_id, user_id, grantee_id):
        raise NotFoundError(f"Record {record_id} is not shared with user {grantee_id}")
    return Response(status_code=204)


@router.get("/{record_id}/shared-users", response_model=list[ShareView])
def shared_users(record_id: int, services: ServicesDep, user_id: UserIdDep) -> list[ShareView]:
    return [
        ShareView.from_grant(grant)
        for grant in services.sharing.shared_users(record_id, user_id)
    ]
