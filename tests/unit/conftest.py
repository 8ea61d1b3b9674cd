"""In-memory stand-ins for the PostgreSQL repositories and the blob store.

They follow the SQL repositories' contracts: claims are taken atomically
under a lock, releases only touch records still in ``processing``, and soft
deletion drops share grants.
"""

import threading
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from app.analysis.sharing import SharingGate
from app.analysis.state_machine import AnalysisStateMachine
from app.database.models import (
    AnalysisRecord,
    RecordPage,
    RecordStatistics,
    ShareGrant,
    Stage,
    Status,
    Transition,
    Upload,
    UploadKind,
)
from app.domain.exceptions import ConflictError
from app.permissions.resolver import PermissionResolver
from app.processing.base import BaseProcessingAdapter
from app.processing.models import AnalysisResult, ExtractionResult
from app.storage.base import BaseBlobStore
from app.storage.exceptions import BlobNotFoundError
from app.uploads.registry import UploadRegistry

OWNER = 1
OTHER = 2
ADMIN = 3

EXTRACTION = ExtractionResult(
    document_name="Supply Agreement",
    status="completed",
    terms=["Net 30"],
    products=["Widget A"],
    raw={"documentName": "Supply Agreement"},
)
ANALYSIS = AnalysisResult(summary="Compliant", markdown_report="# Compliant")


def _now() -> datetime:
    return datetime.now(timezone.utc)


class FakePermissionRepository:
    def __init__(self) -> None:
        self.permissions: dict[int, set[str]] = {}

    def grant(self, user_id: int, *names: str) -> None:
        self.permissions.setdefault(user_id, set()).update(names)

    def revoke(self, user_id: int, name: str) -> None:
        self.permissions.get(user_id, set()).discard(name)

    def get_permission_names(self, user_id: int) -> list[str]:
        return sorted(self.permissions.get(user_id, set()))


class FakeShareRepository:
    def __init__(self) -> None:
        self.grants: dict[tuple[int, int], ShareGrant] = {}

    def exists(self, analysis_id: int, grantee_user_id: int) -> bool:
        return (analysis_id, grantee_user_id) in self.grants

    def grant(self, analysis_id: int, grantee_user_id: int, granted_by_user_id: int) -> ShareGrant:
        grant = self.grants.get((analysis_id, grantee_user_id)) or ShareGrant(
            analysis_id=analysis_id,
            grantee_user_id=grantee_user_id,
            granted_by_user_id=granted_by_user_id,
            created_at=_now(),
        )
        self.grants[(analysis_id, grantee_user_id)] = grant
        return grant

    def revoke(self, analysis_id: int, grantee_user_id: int) -> bool:
        return self.grants.pop((analysis_id, grantee_user_id), None) is not None

    def list_for_record(self, analysis_id: int) -> list[ShareGrant]:
        return [g for (aid, _), g in self.grants.items() if aid == analysis_id]


class FakeAnalysisRepository:
    def __init__(self, share_repo: FakeShareRepository, stale_after_seconds: int = 900) -> None:
        self._share_repo = share_repo
        self._stale_after = timedelta(seconds=stale_after_seconds)
        self._lock = threading.Lock()
        self._next_id = 100
        self.records: dict[int, AnalysisRecord] = {}
        self.deleted: set[int] = set()

    def create_processing(
        self,
        *,
        correlation_key: str,
        owner_id: int,
        contract_upload_id: int,
        data_upload_id: int,
    ) -> AnalysisRecord | None:
        with self._lock:
            if self._live_by_key(correlation_key) is not None:
                return None
            self._next_id += 1
            now = _now()
            record = AnalysisRecord(
                id=self._next_id,
                correlation_key=correlation_key,
                owner_id=owner_id,
                contract_upload_id=contract_upload_id,
                data_upload_id=data_upload_id,
                stage=Stage.UNSTARTED,
                status=Status.PROCESSING,
                locked_at=now,
                created_at=now,
                updated_at=now,
            )
            self.records[record.id] = record
            return record

    def find_by_id(self, record_id: int) -> AnalysisRecord | None:
        if record_id in self.deleted:
            return None
        return self.records.get(record_id)

    def find_by_correlation_key(self, correlation_key: str) -> AnalysisRecord | None:
        return self._live_by_key(correlation_key)

    def claim(self, record_id: int, transition: Transition) -> AnalysisRecord | None:
        with self._lock:
            record = self.find_by_id(record_id)
            if record is None or not self._claim_free(record):
                return None
            if transition is Transition.ANALYSIS and record.stage is Stage.UNSTARTED:
                return None
            return self._store(
                record,
                status=Status.PROCESSING,
                last_transition=transition,
                locked_at=_now(),
                error_message=None,
                error_detail=None,
            )

    def complete_extraction(
        self, record_id: int, result: ExtractionResult, claimed_at: datetime | None
    ) -> AnalysisRecord | None:
        return self._release(
            record_id,
            claimed_at,
            stage=Stage.EXTRACTED,
            status=Status.COMPLETED,
            extraction_result=result,
            analysis_result=None,
        )

    def complete_analysis(
        self, record_id: int, result: AnalysisResult, claimed_at: datetime | None
    ) -> AnalysisRecord | None:
        return self._release(
            record_id,
            claimed_at,
            stage=Stage.ANALYZED,
            status=Status.COMPLETED,
            analysis_result=result,
        )

    def mark_failed(
        self, record_id: int, message: str, detail: str, claimed_at: datetime | None
    ) -> AnalysisRecord | None:
        return self._release(
            record_id,
            claimed_at,
            status=Status.FAILED,
            error_message=message,
            error_detail=detail,
        )

    def reclaim_stale(self, message: str) -> int:
        reclaimed = 0
        with self._lock:
            for record in list(self.records.values()):
                if record.id in self.deleted or record.status is not Status.PROCESSING:
                    continue
                if self._claim_free(record):
                    self._store(
                        record,
                        status=Status.FAILED,
                        error_message=message,
                        error_detail="claim expired",
                        locked_at=None,
                    )
                    reclaimed += 1
        return reclaimed

    def soft_delete(self, record_id: int, deleted_by: int) -> bool:
        with self._lock:
            record = self.find_by_id(record_id)
            if record is None or not self._claim_free(record):
                return False
            self.deleted.add(record_id)
            for grant in self._share_repo.list_for_record(record_id):
                self._share_repo.revoke(record_id, grant.grantee_user_id)
            return True

    def list_visible(
        self,
        user_id: int,
        *,
        include_all: bool,
        page: int,
        limit: int,
        search: str | None = None,
    ) -> RecordPage:
        visible = [
            r
            for r in self.records.values()
            if r.id not in self.deleted
            and (include_all or r.owner_id == user_id or self._share_repo.exists(r.id, user_id))
        ]
        visible.sort(key=lambda r: r.id, reverse=True)
        start = (page - 1) * limit
        return RecordPage(
            records=visible[start : start + limit], page=page, limit=limit, total=len(visible)
        )

    def statistics(self, owner_id: int | None) -> RecordStatistics:
        live = [
            r
            for r in self.records.values()
            if r.id not in self.deleted and (owner_id is None or r.owner_id == owner_id)
        ]
        return RecordStatistics(
            total=len(live),
            completed=sum(r.status is Status.COMPLETED for r in live),
            processing=sum(r.status is Status.PROCESSING for r in live),
            failed=sum(r.status is Status.FAILED for r in live),
        )

    def expire_claim(self, record_id: int) -> None:
        """Age a claim past the stale window."""
        record = self.records[record_id]
        self.records[record_id] = replace(
            record, locked_at=_now() - self._stale_after - timedelta(seconds=1)
        )

    def _release(
        self, record_id: int, claimed_at: datetime | None, **changes: object
    ) -> AnalysisRecord | None:
        with self._lock:
            record = self.find_by_id(record_id)
            if record is None or record.status is not Status.PROCESSING:
                return None
            if record.locked_at != claimed_at:
                return None
            return self._store(record, locked_at=None, **changes)

    def _store(self, record: AnalysisRecord, **changes: object) -> AnalysisRecord:
        updated = replace(record, updated_at=_now(), **changes)
        self.records[record.id] = updated
        return updated

    def _claim_free(self, record: AnalysisRecord) -> bool:
        if record.status is not Status.PROCESSING or record.locked_at is None:
            return True
        return record.locked_at < _now() - self._stale_after

    def _live_by_key(self, correlation_key: str) -> AnalysisRecord | None:
        for record in self.records.values():
            if record.correlation_key == correlation_key and record.id not in self.deleted:
                return record
        return None


class FakeUploadRepository:
    def __init__(self, analysis_repo: FakeAnalysisRepository) -> None:
        self._analysis_repo = analysis_repo
        self._next_id = 10
        self.uploads: dict[int, Upload] = {}

    def create(
        self,
        *,
        correlation_key: str,
        kind: UploadKind,
        filename: str,
        byte_size: int,
        mime_type: str,
        owner_id: int,
        storage_key: str,
        file_hash_sha256: str,
    ) -> Upload:
        if any(
            u.correlation_key == correlation_key and u.kind is kind for u in self.uploads.values()
        ):
            raise ConflictError(f"Pair {correlation_key} already has a {kind.value} upload")
        upload = Upload(
            id=self._next_id,
            correlation_key=correlation_key,
            kind=kind,
            filename=filename,
            byte_size=byte_size,
            mime_type=mime_type,
            owner_id=owner_id,
            storage_key=storage_key,
            file_hash_sha256=file_hash_sha256,
            created_at=_now(),
        )
        self.uploads[upload.id] = upload
        self._next_id += 1
        return upload

    def find_by_id(self, upload_id: int) -> Upload | None:
        return self.uploads.get(upload_id)

    def find_by_correlation_key(self, correlation_key: str) -> list[Upload]:
        return [u for u in self.uploads.values() if u.correlation_key == correlation_key]

    def is_referenced(self, upload_id: int) -> bool:
        return any(
            upload_id in (r.contract_upload_id, r.data_upload_id)
            for r in self._analysis_repo.records.values()
        )

    def delete(self, upload_id: int) -> bool:
        return self.uploads.pop(upload_id, None) is not None


class FakeBlobStore(BaseBlobStore):
    def __init__(self) -> None:
        self.blobs: dict[str, bytes] = {}

    def put(self, key: str, content: bytes) -> None:
        self.blobs[key] = content

    def get(self, key: str) -> bytes:
        if key not in self.blobs:
            raise BlobNotFoundError(f"Blob not found: {key}")
        return self.blobs[key]

    def delete(self, key: str) -> None:
        self.blobs.pop(key, None)


@pytest.fixture()
def permission_repo() -> FakePermissionRepository:
    return FakePermissionRepository()


@pytest.fixture()
def share_repo() -> FakeShareRepository:
    return FakeShareRepository()


@pytest.fixture()
def analysis_repo(share_repo: FakeShareRepository) -> FakeAnalysisRepository:
    return FakeAnalysisRepository(share_repo)


@pytest.fixture()
def upload_repo(analysis_repo: FakeAnalysisRepository) -> FakeUploadRepository:
    return FakeUploadRepository(analysis_repo)


@pytest.fixture()
def blob_store() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture()
def adapter() -> MagicMock:
    mock = MagicMock(spec=BaseProcessingAdapter)
    mock.extract.return_value = EXTRACTION
    mock.analyze.return_value = ANALYSIS
    mock.test_connection.return_value = True
    return mock


@pytest.fixture()
def resolver(permission_repo: FakePermissionRepository) -> PermissionResolver:
    return PermissionResolver(permission_repo)  # type: ignore[arg-type]


@pytest.fixture()
def gate(
    analysis_repo: FakeAnalysisRepository,
    share_repo: FakeShareRepository,
    resolver: PermissionResolver,
) -> SharingGate:
    return SharingGate(
        analysis_repo=analysis_repo,  # type: ignore[arg-type]
        share_repo=share_repo,  # type: ignore[arg-type]
        resolver=resolver,
    )


@pytest.fixture()
def registry(
    upload_repo: FakeUploadRepository,
    blob_store: FakeBlobStore,
    resolver: PermissionResolver,
) -> UploadRegistry:
    return UploadRegistry(
        upload_repo=upload_repo,  # type: ignore[arg-type]
        blob_store=blob_store,
        resolver=resolver,
        max_contract_bytes=1024,
        max_data_bytes=2048,
    )


@pytest.fixture()
def state_machine(
    analysis_repo: FakeAnalysisRepository,
    upload_repo: FakeUploadRepository,
    blob_store: FakeBlobStore,
    adapter: MagicMock,
    resolver: PermissionResolver,
    gate: SharingGate,
) -> AnalysisStateMachine:
    return AnalysisStateMachine(
        analysis_repo=analysis_repo,  # type: ignore[arg-type]
        upload_repo=upload_repo,  # type: ignore[arg-type]
        blob_store=blob_store,
        adapter=adapter,
        resolver=resolver,
        gate=gate,
    )


@pytest.fixture()
def make_pair(
    upload_repo: FakeUploadRepository, blob_store: FakeBlobStore
):
    """Store a contract/data pair for an owner and return (contract, data)."""

    def _make(owner_id: int = OWNER, key: str = "job_1_pair") -> tuple[Upload, Upload]:
        uploads = []
        for kind, mime, content in (
            (UploadKind.CONTRACT, "application/pdf", b"%PDF-contract"),
            (UploadKind.DATA, "text/csv", b"a,b\n1,2\n"),
        ):
            storage_key = f"{owner_id}/{key}-{kind.value}"
            blob_store.put(storage_key, content)
            uploads.append(
                upload_repo.create(
                    correlation_key=key,
                    kind=kind,
                    filename=f"{kind.value}.bin",
                    byte_size=len(content),
                    mime_type=mime,
                    owner_id=owner_id,
                    storage_key=storage_key,
                    file_hash_sha256="0" * 64,
                )
            )
        return uploads[0], uploads[1]

    return _make
