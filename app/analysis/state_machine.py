"""Lifecycle of analysis records: unstarted -> extracted -> analyzed.

Every mutation is split in two:

- a *claim* step that checks permissions and preconditions and atomically
  flips the record to ``processing``; it never calls the provider;
- an *execute* step that performs the upstream call for a claimed record and
  releases the claim as completed or failed.

The HTTP layer answers after the claim and schedules the execute step as a
background task. ``start_job``, ``force_reprocess`` and ``trigger_analysis``
run both steps inline.
"""

from app.analysis.sharing import SharingGate
from app.database.models import (
    AnalysisRecord,
    RecordPage,
    RecordStatistics,
    Stage,
    Status,
    Transition,
    Upload,
    UploadKind,
)
from app.database.repositories.analysis_repository import AnalysisRepository
from app.database.repositories.upload_repository import UploadRepository
from app.domain.exceptions import (
    ConflictError,
    ExtractionNotReadyError,
    NotFoundError,
    PermissionDeniedError,
    PreconditionFailedError,
    ProcessingFailedError,
)
from app.logging.logger import Log
from app.permissions.catalog import (
    ANALYSIS_DELETE,
    ANALYSIS_MANAGE_ALL,
    ANALYSIS_RERUN,
    ANALYSIS_START,
    ANALYSIS_VIEW_ALL,
)
from app.permissions.resolver import PermissionResolver
from app.processing.base import BaseProcessingAdapter
from app.processing.exceptions import UpstreamError
from app.processing.models import ContractDocument, DataDocument, ExtractionResult
from app.storage.base import BaseBlobStore

EXTRACTION_FAILED_MESSAGE = "Extraction failed, please retry."
ANALYSIS_FAILED_MESSAGE = "Analysis failed, please retry."
INTERRUPTED_MESSAGE = "Processing interrupted, please retry."


class AnalysisStateMachine:
    """Drives analysis records through extraction and analysis."""

    def __init__(
        self,
        *,
        analysis_repo: AnalysisRepository,
        upload_repo: UploadRepository,
        blob_store: BaseBlobStore,
        adapter: BaseProcessingAdapter,
        resolver: PermissionResolver,
        gate: SharingGate,
    ) -> None:
        self._analysis_repo = analysis_repo
        self._upload_repo = upload_repo
        self._blob_store = blob_store
        self._adapter = adapter
        self._resolver = resolver
        self._gate = gate

    # Start / reprocess

    def start_job(
        self,
        owner_id: int,
        contract_upload_id: int,
        data_upload_id: int,
        force_reprocess: bool = False,
    ) -> AnalysisRecord:
        record, needs_extraction = self.claim_start(
            owner_id, contract_upload_id, data_upload_id, force_reprocess
        )
        if not needs_extraction:
            return record
        return self.execute_extraction(record.id)

    def claim_start(
        self,
        owner_id: int,
        contract_upload_id: int,
        data_upload_id: int,
        force_reprocess: bool = False,
    ) -> tuple[AnalysisRecord, bool]:
        """Find or create the pair's record and claim it for extraction.

        Returns the record and whether an extraction must now be executed.
        A record that already holds an extraction is returned untouched
        unless ``force_reprocess`` is set.

        Raises:
            PermissionDeniedError: without ``analysis.start``, or when forcing
                a rerun without ownership or ``analysis.rerun``.
            NotFoundError: if the uploads are absent, mismatched or not the caller's.
            ConflictError: if another transition holds the pair.
        """
        self._resolver.authorize_or_fail(owner_id, ANALYSIS_START)
        contract, data = self._load_pair(owner_id, contract_upload_id, data_upload_id)

        existing = self._analysis_repo.find_by_correlation_key(contract.correlation_key)
        if existing is None:
            created = self._analysis_repo.create_processing(
                correlation_key=contract.correlation_key,
                owner_id=owner_id,
                contract_upload_id=contract.id,
                data_upload_id=data.id,
            )
            if created is None:
                raise self._busy(contract.correlation_key)
            Log.info("Analysis record created", record_id=created.id, job=created.correlation_key)
            return created, True

        if existing.stage.at_least(Stage.EXTRACTED) and not force_reprocess:
            Log.info(
                "Reusing existing extraction",
                record_id=existing.id,
                job=existing.correlation_key,
            )
            return existing, False

        if force_reprocess:
            self._require_rerun(existing, owner_id)
        return self._claim(existing, Transition.EXTRACTION), True

    def force_reprocess(self, record_id: int, requester_id: int) -> AnalysisRecord:
        self.claim_reprocess(record_id, requester_id)
        return self.execute_extraction(record_id)

    def claim_reprocess(self, record_id: int, requester_id: int) -> AnalysisRecord:
        """Claim a visible record for an unconditional re-extraction.

        Raises:
            NotFoundError: if the requester cannot see the record.
            PermissionDeniedError: unless owner or holder of ``analysis.rerun``.
            ConflictError: if another transition holds the pair.
        """
        record = self._gate.require_visible(record_id, requester_id)
        self._require_rerun(record, requester_id)
        return self._claim(record, Transition.EXTRACTION)

    def execute_extraction(self, record_id: int) -> AnalysisRecord:
        """Run extraction for a claimed record.

        Upstream failures are recorded on the record and the failed record is
        returned. Any other error is recorded and re-raised.
        """
        record = self._require_record(record_id)
        upload = self._require_upload(record.contract_upload_id)
        try:
            document = ContractDocument(
                correlation_key=record.correlation_key,
                upload_id=upload.id,
                filename=upload.filename,
                mime_type=upload.mime_type,
                content=self._blob_store.get(upload.storage_key),
            )
            result = self._adapter.extract(document)
        except UpstreamError as exc:
            return self._fail(record, EXTRACTION_FAILED_MESSAGE, exc)
        except Exception as exc:
            self._fail(record, EXTRACTION_FAILED_MESSAGE, exc)
            raise

        completed = self._analysis_repo.complete_extraction(record.id, result, record.locked_at)
        if completed is None:
            raise self._lost_claim(record)
        Log.info(
            "Extraction completed",
            record_id=record.id,
            job=record.correlation_key,
            terms=len(result.terms),
            products=len(result.products),
        )
        return completed

    # Analysis

    def trigger_analysis(self, record_id: int, requester_id: int) -> AnalysisRecord:
        self.claim_analysis(record_id, requester_id)
        return self.execute_analysis(record_id)

    def claim_analysis(self, record_id: int, requester_id: int) -> AnalysisRecord:
        """Claim an extracted record for the analysis stage.

        Raises:
            PermissionDeniedError: without ``analysis.start``, or when neither
                owner nor holder of ``analysis.manage_all``.
            NotFoundError: if the requester cannot see the record.
            PreconditionFailedError: if the record has no extraction yet.
            ConflictError: if another transition holds the pair.
        """
        self._resolver.authorize_or_fail(requester_id, ANALYSIS_START)
        record = self._gate.require_visible(record_id, requester_id)
        if record.owner_id != requester_id and not self._resolver.authorize(
            requester_id, ANALYSIS_MANAGE_ALL
        ):
            raise PermissionDeniedError(f"Cannot analyze record {record_id}")
        if not record.stage.at_least(Stage.EXTRACTED):
            raise PreconditionFailedError("Extraction not yet available")
        return self._claim(record, Transition.ANALYSIS)

    def execute_analysis(self, record_id: int) -> AnalysisRecord:
        """Run analysis for a claimed record. Failure keeps stage and extraction."""
        record = self._require_record(record_id)
        upload = self._require_upload(record.data_upload_id)
        extraction = record.extraction_result
        if extraction is None:
            raise PreconditionFailedError("Extraction not yet available")
        try:
            data_document = DataDocument(
                correlation_key=record.correlation_key,
                upload_id=upload.id,
                filename=upload.filename,
                mime_type=upload.mime_type,
                content=self._blob_store.get(upload.storage_key),
            )
            result = self._adapter.analyze(extraction, data_document)
        except UpstreamError as exc:
            return self._fail(record, ANALYSIS_FAILED_MESSAGE, exc)
        except Exception as exc:
            self._fail(record, ANALYSIS_FAILED_MESSAGE, exc)
            raise

        completed = self._analysis_repo.complete_analysis(record.id, result, record.locked_at)
        if completed is None:
            raise self._lost_claim(record)
        Log.info("Analysis completed", record_id=record.id, job=record.correlation_key)
        return completed

    # Reads

    def get_record(self, record_id: int, requester_id: int) -> AnalysisRecord:
        return self._gate.require_visible(record_id, requester_id)

    def get_extraction(self, record_id: int, requester_id: int) -> ExtractionResult:
        """Return the current extraction, as seen by a polling client.

        Raises:
            ExtractionNotReadyError: while the first extraction or a forced
                re-extraction is in flight. Pollers retry on this.
            ProcessingFailedError: if extraction failed and nothing is stored.
        """
        record = self.get_record(record_id, requester_id)
        reextracting = (
            record.status is Status.PROCESSING
            and record.last_transition is Transition.EXTRACTION
        )
        if reextracting:
            raise ExtractionNotReadyError("Extraction not yet available")
        if record.extraction_result is None:
            if record.status is Status.FAILED:
                raise ProcessingFailedError(record.error_message or EXTRACTION_FAILED_MESSAGE)
            raise ExtractionNotReadyError("Extraction not yet available")
        return record.extraction_result

    def list_records(
        self,
        requester_id: int,
        page: int = 1,
        limit: int = 10,
        search: str | None = None,
    ) -> RecordPage:
        return self._analysis_repo.list_visible(
            requester_id,
            include_all=self._resolver.authorize(requester_id, ANALYSIS_VIEW_ALL),
            page=max(page, 1),
            limit=min(max(limit, 1), 100),
            search=search or None,
        )

    def statistics(self, requester_id: int) -> RecordStatistics:
        if self._resolver.authorize(requester_id, ANALYSIS_VIEW_ALL):
            return self._analysis_repo.statistics(None)
        return self._analysis_repo.statistics(requester_id)

    # Deletion and recovery

    def delete_record(self, record_id: int, requester_id: int) -> None:
        """Soft-delete a record together with its share grants.

        Raises:
            PermissionDeniedError: without ``analysis.delete``, owned or not.
            NotFoundError: unless the requester owns the record or holds
                ``analysis.view_all``.
            ConflictError: while a transition is in flight.
        """
        self._resolver.authorize_or_fail(requester_id, ANALYSIS_DELETE)
        record = self._analysis_repo.find_by_id(record_id)
        if record is None or (
            record.owner_id != requester_id
            and not self._resolver.authorize(requester_id, ANALYSIS_VIEW_ALL)
        ):
            raise NotFoundError(f"Analysis record {record_id} not found")
        if not self._analysis_repo.soft_delete(record_id, requester_id):
            raise self._busy(record.correlation_key)
        Log.info("Analysis record deleted", record_id=record_id, by=requester_id)

    def reclaim_stale(self) -> int:
        """Fail records whose claim outlived the stale window."""
        reclaimed = self._analysis_repo.reclaim_stale(INTERRUPTED_MESSAGE)
        if reclaimed:
            Log.warning("Reclaimed stale processing records", count=reclaimed)
        return reclaimed

    # Helpers

    def _load_pair(
        self, user_id: int, contract_upload_id: int, data_upload_id: int
    ) -> tuple[Upload, Upload]:
        contract = self._upload_repo.find_by_id(contract_upload_id)
        data = self._upload_repo.find_by_id(data_upload_id)
        if (
            contract is None
            or data is None
            or contract.kind is not UploadKind.CONTRACT
            or data.kind is not UploadKind.DATA
            or contract.correlation_key != data.correlation_key
        ):
            raise NotFoundError("Upload pair not found")
        owns_both = contract.owner_id == user_id and data.owner_id == user_id
        if not owns_both and not self._resolver.authorize(user_id, ANALYSIS_MANAGE_ALL):
            raise NotFoundError("Upload pair not found")
        return contract, data

    def _require_rerun(self, record: AnalysisRecord, user_id: int) -> None:
        if record.owner_id != user_id and not self._resolver.authorize(
            user_id, ANALYSIS_RERUN
        ):
            raise PermissionDeniedError(f"Cannot reprocess record {record.id}")

    def _claim(self, record: AnalysisRecord, transition: Transition) -> AnalysisRecord:
        claimed = self._analysis_repo.claim(record.id, transition)
        if claimed is None:
            raise self._busy(record.correlation_key)
        Log.info(
            "Record claimed",
            record_id=record.id,
            job=record.correlation_key,
            transition=transition.value,
        )
        return claimed

    def _require_record(self, record_id: int) -> AnalysisRecord:
        record = self._analysis_repo.find_by_id(record_id)
        if record is None:
            raise NotFoundError(f"Analysis record {record_id} not found")
        return record

    def _require_upload(self, upload_id: int) -> Upload:
        upload = self._upload_repo.find_by_id(upload_id)
        if upload is None:
            raise NotFoundError(f"Upload {upload_id} not found")
        return upload

    def _fail(self, record: AnalysisRecord, message: str, exc: Exception) -> AnalysisRecord:
        Log.error(
            message,
            record_id=record.id,
            job=record.correlation_key,
            error_type=type(exc).__name__,
            error=exc,
        )
        failed = self._analysis_repo.mark_failed(
            record.id, message, f"{type(exc).__name__}: {exc}", record.locked_at
        )
        return failed or record

    @staticmethod
    def _busy(correlation_key: str) -> ConflictError:
        return ConflictError(f"Pair {correlation_key} is already being processed")

    @staticmethod
    def _lost_claim(record: AnalysisRecord) -> ConflictError:
        Log.warning("Claim lost before completion", record_id=record.id)
        return ConflictError(f"Claim on record {record.id} expired before completion")
