from collections.abc import Callable
from typing import Annotated, Any

from fastapi import APIRouter, BackgroundTasks, Query, Response

from app.api.dependencies import ServicesDep, UserIdDep
from app.api.schemas import (
    ExtractionView,
    RecordAccepted,
    RecordPageView,
    RecordView,
    StartAccepted,
    StartAnalysisRequest,
    StatisticsView,
)
from app.logging.logger import Log
from app.permissions.catalog import ANALYSIS_VIEW_ERRORS

router = APIRouter(prefix="/api/analysis", tags=["Analysis"])


def run_step(step: Callable[[int], Any], record_id: int) -> None:
    """Execute a claimed transition after the response was sent.

    The step records its own failure on the record; anything it re-raises
    has no caller left to receive it, so it is logged here.
    """
    try:
        step(record_id)
    except Exception:
        Log.exception("Background step failed", record_id=record_id, step=step.__name__)


@router.get("", response_model=RecordPageView)
def list_records(
    services: ServicesDep,
    user_id: UserIdDep,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
    search: str | None = None,
) -> RecordPageView:
    result = services.analysis.list_records(user_id, page=page, limit=limit, search=search)
    return RecordPageView.from_page(
        result,
        include_error_detail=services.resolver.authorize(user_id, ANALYSIS_VIEW_ERRORS),
    )


@router.get("/statistics", response_model=StatisticsView)
def statistics(services: ServicesDep, user_id: UserIdDep) -> StatisticsView:
    return StatisticsView.from_statistics(services.analysis.statistics(user_id))


@router.post("/start", response_model=StartAccepted, status_code=202)
def start_analysis(
    body: StartAnalysisRequest,
    background_tasks: BackgroundTasks,
    services: ServicesDep,
    user_id: UserIdDep,
) -> StartAccepted:
    """Create or reuse the pair's record; extraction continues in the background."""
    record, needs_extraction = services.analysis.claim_start(
        user_id,
        body.contract_upload_id,
        body.data_upload_id,
        force_reprocess=body.force_reprocess,
    )
    if needs_extraction:
        background_tasks.add_task(run_step, services.analysis.execute_extraction, record.id)
    return StartAccepted(analysis_record_id=record.id)


@router.post("/{record_id}/analyze", response_model=RecordAccepted, status_code=202)
def trigger_analysis(
    record_id: int,
    background_tasks: BackgroundTasks,
    services: ServicesDep,
    user_id: UserIdDep,
) -> RecordAccepted:
    services.analysis.claim_analysis(record_id, user_id)
    background_tasks.add_task(run_step, services.analysis.execute_analysis, record_id)
    return RecordAccepted(record_id=record_id)


@router.post("/{record_id}/reprocess", response_model=RecordAccepted, status_code=202)
def reprocess(
    record_id: int,
    background_tasks: BackgroundTasks,
    services: ServicesDep,
    user_id: UserIdDep,
) -> RecordAccepted:
    services.analysis.claim_reprocess(record_id, user_id)
    background_tasks.add_task(run_step, services.analysis.execute_extraction, record_id)
    return RecordAccepted(record_id=record_id)


@router.get("/{record_id}", response_model=RecordView)
def get_record(record_id: int, services: ServicesDep, user_id: UserIdDep) -> RecordView:
    record = services.analysis.get_record(record_id, user_id)
    return RecordView.from_record(
        record,
        include_error_detail=services.resolver.authorize(user_id, ANALYSIS_VIEW_ERRORS),
    )


@router.get("/{record_id}/contract", response_model=ExtractionView)
def get_contract_extraction(
    record_id: int, services: ServicesDep, user_id: UserIdDep
) -> ExtractionView:
    """Extraction projection; 404 with code extraction_not_ready while pending."""
    return ExtractionView.from_result(services.analysis.get_extraction(record_id, user_id))


@router.delete("/{record_id}", status_code=204)
def delete_record(record_id: int, services: ServicesDep, user_id: UserIdDep) -> Response:
    services.analysis.delete_record(record_id, user_id)
    return Response(status_code=204)
