from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from app.processing.models import AnalysisResult, ExtractionResult


class UploadKind(str, Enum):
    CONTRACT = "contract"
    DATA = "data"


class Stage(str, Enum):
    UNSTARTED = "unstarted"
    EXTRACTED = "extracted"
    ANALYZED = "analyzed"

    @property
    def rank(self) -> int:
        return _STAGE_RANK[self]

    def at_least(self, other: "Stage") -> bool:
        return self.rank >= other.rank


_STAGE_RANK = {Stage.UNSTARTED: 0, Stage.EXTRACTED: 1, Stage.ANALYZED: 2}


class Status(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class Transition(str, Enum):
    """Which stage the latest claim on a record was taken for."""

    EXTRACTION = "extraction"
    ANALYSIS = "analysis"


@dataclass(frozen=True)
class Upload:
    """Represents a row from the uploads table. Never mutated after insert."""

    id: int
    correlation_key: str
    kind: UploadKind
    filename: str
    byte_size: int
    mime_type: str
    owner_id: int
    storage_key: str
    file_hash_sha256: str
    created_at: datetime | None = None


@dataclass(frozen=True)
class AnalysisRecord:
    """Represents a non-deleted row from the analysis_records table."""

    id: int
    correlation_key: str
    owner_id: int
    contract_upload_id: int
    data_upload_id: int
    stage: Stage
    status: Status
    extraction_result: ExtractionResult | None = None
    analysis_result: AnalysisResult | None = None
    error_message: str | None = None
    error_detail: str | None = None
    last_transition: Transition = Transition.EXTRACTION
    locked_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class Role:
    id: int
    name: str
    description: str | None = None


@dataclass(frozen=True)
class Permission:
    id: int
    name: str
    category: str


@dataclass(frozen=True)
class ShareGrant:
    analysis_id: int
    grantee_user_id: int
    granted_by_user_id: int
    created_at: datetime | None = None


@dataclass(frozen=True)
class RecordPage:
    """One page of analysis history."""

    records: list[AnalysisRecord]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        if self.limit <= 0:
            return 0
        return (self.total + self.limit - 1) // self.limit


@dataclass(frozen=True)
class RecordStatistics:
    total: int = 0
    completed: int = 0
    processing: int = 0
    failed: int = 0
