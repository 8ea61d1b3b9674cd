from dataclasses import dataclass
from pathlib import Path

from app.analysis.sharing import SharingGate
from app.analysis.state_machine import AnalysisStateMachine
from app.config.settings import Settings
from app.database.repositories.analysis_repository import AnalysisRepository
from app.database.repositories.permission_repository import PermissionRepository
from app.database.repositories.share_repository import ShareRepository
from app.database.repositories.upload_repository import UploadRepository
from app.permissions.administration import RoleAdministration
from app.permissions.resolver import PermissionResolver
from app.processing.base import BaseProcessingAdapter
from app.processing.factory import ProcessingAdapterFactory
from app.storage.local_blob_store import LocalBlobStore
from app.uploads.registry import UploadRegistry


@dataclass(frozen=True)
class Services:
    """Service objects shared by all request handlers."""

    resolver: PermissionResolver
    uploads: UploadRegistry
    analysis: AnalysisStateMachine
    sharing: SharingGate
    roles: RoleAdministration
    adapter: BaseProcessingAdapter


def build_services(settings: Settings) -> Services:
    """Wire repositories, storage and the configured provider together."""
    permission_repo = PermissionRepository()
    upload_repo = UploadRepository()
    analysis_repo = AnalysisRepository(settings.stale_processing_seconds)
    share_repo = ShareRepository()
    blob_store = LocalBlobStore(Path(settings.blob_root))
    adapter = ProcessingAdapterFactory.create(settings)

    resolver = PermissionResolver(permission_repo)
    gate = SharingGate(
        analysis_repo=analysis_repo,
        share_repo=share_repo,
        resolver=resolver,
    )
    return Services(
        resolver=resolver,
        uploads=UploadRegistry(
            upload_repo=upload_repo,
            blob_store=blob_store,
            resolver=resolver,
            max_contract_bytes=settings.max_contract_bytes,
            max_data_bytes=settings.max_data_bytes,
        ),
        analysis=AnalysisStateMachine(
            analysis_repo=analysis_repo,
            upload_repo=upload_repo,
            blob_store=blob_store,
            adapter=adapter,
            resolver=resolver,
            gate=gate,
        ),
        sharing=gate,
        roles=RoleAdministration(permission_repo, resolver),
        adapter=adapter,
    )
