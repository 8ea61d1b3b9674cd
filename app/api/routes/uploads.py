from typing import Annotated

from fastapi import APIRouter, File, Form, Response, UploadFile

from app.api.dependencies import ServicesDep, UserIdDep
from app.api.schemas import UploadCreated

router = APIRouter(prefix="/api/uploads", tags=["Uploads"])


@router.post("", response_model=UploadCreated, status_code=201)
def create_upload(
    services: ServicesDep,
    user_id: UserIdDep,
    file: Annotated[UploadFile, File()],
    kind: Annotated[str, Form()],
    correlation_key: Annotated[str | None, Form()] = None,
) -> UploadCreated:
    """Store one half of a document pair. Omit correlation_key to open a new pair."""
    upload = services.uploads.create_upload(
        owner_id=user_id,
        kind=kind,
        content=file.file.read(),
        filename=file.filename or "",
        mime_type=file.content_type or "",
        correlation_key=correlation_key or None,
    )
    return UploadCreated(upload_id=upload.id, correlation_key=upload.correlation_key)


@router.delete("/{upload_id}", status_code=204)
def delete_upload(upload_id: int, services: ServicesDep, user_id: UserIdDep) -> Response:
    services.uploads.delete_upload(upload_id, user_id)
    return Response(status_code=204)
