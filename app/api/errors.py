from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.domain.exceptions import (
    ConflictError,
    DomainError,
    ExtractionNotReadyError,
    NotFoundError,
    PermissionDeniedError,
    PreconditionFailedError,
    ProcessingFailedError,
    ValidationError,
)
from app.logging.logger import Log

NOT_READY_CODE = "extraction_not_ready"

# (status code, machine-readable code) per domain error
_ERROR_RESPONSES: dict[type[DomainError], tuple[int, str]] = {
    ValidationError: (400, "validation_error"),
    PermissionDeniedError: (403, "permission_denied"),
    ExtractionNotReadyError: (404, NOT_READY_CODE),
    NotFoundError: (404, "not_found"),
    ConflictError: (409, "conflict"),
    PreconditionFailedError: (412, "precondition_failed"),
    ProcessingFailedError: (422, "processing_failed"),
}


async def domain_error_handler(request: Request, exc: Exception) -> JSONResponse:
    status_code, code = _ERROR_RESPONSES.get(type(exc), (400, "domain_error"))
    Log.info(
        "Request rejected",
        method=request.method,
        path=request.url.path,
        status=status_code,
        code=code,
    )
    return JSONResponse(status_code=status_code, content={"code": code, "detail": str(exc)})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
