from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request

from app.api.services import Services


def get_services(request: Request) -> Services:
    return request.app.state.services


def current_user_id(
    x_user_id: Annotated[int | None, Header()] = None,
) -> int:
    """Principal id set by the authenticating gateway in front of the API."""
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id


ServicesDep = Annotated[Services, Depends(get_services)]
UserIdDep = Annotated[int, Depends(current_user_id)]
