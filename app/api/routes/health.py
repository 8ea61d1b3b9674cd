from fastapi import APIRouter

from app.api.dependencies import ServicesDep
from app.api.schemas import HealthView
from app.database.connection import check_connection

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthView)
def health(services: ServicesDep) -> HealthView:
    database = check_connection()
    processing = services.adapter.test_connection()
    return HealthView(
        status="ok" if database and processing else "degraded",
        database=database,
        processing=processing,
    )
