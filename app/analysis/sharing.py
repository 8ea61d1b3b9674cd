from app.database.models import AnalysisRecord, ShareGrant
from app.database.repositories.analysis_repository import AnalysisRepository
from app.database.repositories.share_repository import ShareRepository
from app.domain.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from app.logging.logger import Log
from app.permissions.catalog import ANALYSIS_VIEW_ALL
from app.permissions.resolver import PermissionResolver


class SharingGate:
    """Decides who may read an analysis record and manages explicit share grants.

    A record is visible to its owner, to users holding a grant on it, and to
    holders of ``analysis.view_all``. Invisible and absent records both
    surface as NotFoundError.
    """

    def __init__(
        self,
        *,
        analysis_repo: AnalysisRepository,
        share_repo: ShareRepository,
        resolver: PermissionResolver,
    ) -> None:
        self._analysis_repo = analysis_repo
        self._share_repo = share_repo
        self._resolver = resolver

    def can_view(self, user_id: int, record_id: int) -> bool:
        record = self._analysis_repo.find_by_id(record_id)
        if record is None:
            return False
        return self.can_view_record(user_id, record)

    def can_view_record(self, user_id: int, record: AnalysisRecord) -> bool:
        if record.owner_id == user_id:
            return True
        if self._share_repo.exists(record.id, user_id):
            return True
        return self._resolver.authorize(user_id, ANALYSIS_VIEW_ALL)

    def require_visible(self, record_id: int, user_id: int) -> AnalysisRecord:
        record = self._analysis_repo.find_by_id(record_id)
        if record is None or not self.can_view_record(user_id, record):
            raise NotFoundError(f"Analysis record {record_id} not found")
        return record

    def grant_share(self, record_id: int, granter_id: int, grantee_id: int) -> ShareGrant:
        """Give ``grantee_id`` read access. Granting twice is a no-op.

        Raises:
            NotFoundError: if the granter cannot see the record.
            PermissionDeniedError: if the granter sees it but does not own it.
            ValidationError: when sharing a record with its owner.
        """
        record = self._require_owner(record_id, granter_id)
        if grantee_id == record.owner_id:
            raise ValidationError("Cannot share a record with its owner")
        grant = self._share_repo.grant(record_id, grantee_id, granter_id)
        Log.info("Share granted", record_id=record_id, grantee=grantee_id)
        return grant

    def revoke_share(self, record_id: int, revoker_id: int, grantee_id: int) -> bool:
        """Withdraw a grant. Returns False when there was nothing to revoke."""
        self._require_owner(record_id, revoker_id)
        revoked = self._share_repo.revoke(record_id, grantee_id)
        if revoked:
            Log.info("Share revoked", record_id=record_id, grantee=grantee_id)
        return revoked

    def shared_users(self, record_id: int, requester_id: int) -> list[ShareGrant]:
        record = self.require_visible(record_id, requester_id)
        if record.owner_id != requester_id and not self._resolver.authorize(
            requester_id, ANALYSIS_VIEW_ALL
        ):
            raise PermissionDeniedError("Only the owner can list shares")
        return self._share_repo.list_for_record(record_id)

    def _require_owner(self, record_id: int, user_id: int) -> AnalysisRecord:
        record = self.require_visible(record_id, user_id)
        if record.owner_id != user_id:
            raise PermissionDeniedError("Only the owner can manage shares")
        return record
