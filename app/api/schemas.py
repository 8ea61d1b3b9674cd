"""Request bodies and response projections of the HTTP API."""

from datetime import datetime

from pydantic import BaseModel, Field

from app.database.models import (
    AnalysisRecord,
    RecordPage,
    RecordStatistics,
    Role,
    ShareGrant,
)
from app.processing.models import AnalysisResult, ExtractionResult


class UploadCreated(BaseModel):
    upload_id: int
    correlation_key: str


class StartAnalysisRequest(BaseModel):
    contract_upload_id: int
    data_upload_id: int
    force_reprocess: bool = False


class StartAccepted(BaseModel):
    analysis_record_id: int


class RecordAccepted(BaseModel):
    record_id: int


class ExtractionView(BaseModel):
    document_name: str
    status: str
    terms: list[str]
    products: list[str]

    @classmethod
    def from_result(cls, result: ExtractionResult) -> "ExtractionView":
        return cls(
            document_name=result.document_name,
            status=result.status,
            terms=list(result.terms),
            products=list(result.products),
        )


class AnalysisView(BaseModel):
    summary: str
    markdown_report: str

    @classmethod
    def from_result(cls, result: AnalysisResult) -> "AnalysisView":
        return cls(summary=result.summary, markdown_report=result.markdown_report)


class RecordView(BaseModel):
    id: int
    correlation_key: str
    owner_id: int
    contract_upload_id: int
    data_upload_id: int
    stage: str
    status: str
    extraction: ExtractionView | None = None
    analysis: AnalysisView | None = None
    error_message: str | None = None
    error_detail: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_record(cls, record: AnalysisRecord, *, include_error_detail: bool) -> "RecordView":
        """Project a record. Raw upstream detail only goes to privileged readers."""
        return cls(
            id=record.id,
            correlation_key=record.correlation_key,
            owner_id=record.owner_id,
            contract_upload_id=record.contract_upload_id,
            data_upload_id=record.data_upload_id,
            stage=record.stage.value,
            status=record.status.value,
            extraction=(
                ExtractionView.from_result(record.extraction_result)
                if record.extraction_result is not None
                else None
            ),
            analysis=(
                AnalysisView.from_result(record.analysis_result)
                if record.analysis_result is not None
                else None
            ),
            error_message=record.error_message,
            error_detail=record.error_detail if include_error_detail else None,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class RecordPageView(BaseModel):
    records: list[RecordView]
    page: int
    limit: int
    total: int
    total_pages: int

    @classmethod
    def from_page(cls, page: RecordPage, *, include_error_detail: bool) -> "RecordPageView":
        return cls(
            records=[
                RecordView.from_record(r, include_error_detail=include_error_detail)
                for r in page.records
            ],
            page=page.page,
            limit=page.limit,
            total=page.total,
            total_pages=page.total_pages,
        )


class StatisticsView(BaseModel):
    total: int
    completed: int
    processing: int
    failed: int

    @classmethod
    def from_statistics(cls, stats: RecordStatistics) -> "StatisticsView":
        return cls(
            total=stats.total,
            completed=stats.completed,
            processing=stats.processing,
            failed=stats.failed,
        )


class ShareRequest(BaseModel):
    user_id: int


class ShareView(BaseModel):
    user_id: int
    granted_by: int
    created_at: datetime | None = None

    @classmethod
    def from_grant(cls, grant: ShareGrant) -> "ShareView":
        return cls(
            user_id=grant.grantee_user_id,
            granted_by=grant.granted_by_user_id,
            created_at=grant.created_at,
        )


class PermissionsView(BaseModel):
    permissions: list[str]


class RoleCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = None


class RoleView(BaseModel):
    id: int
    name: str
    description: str | None = None
    permissions: list[str] = Field(default_factory=list)

    @classmethod
    def from_role(cls, role: Role, permissions: list[str]) -> "RoleView":
        return cls(
            id=role.id,
            name=role.name,
            description=role.description,
            permissions=sorted(permissions),
        )


class HealthView(BaseModel):
    status: str
    database: bool
    processing: bool
