import pytest

from app.analysis.sharing import SharingGate
from app.domain.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from app.permissions.catalog import ANALYSIS_START, ANALYSIS_VIEW_ALL

OWNER = 1
GRANTEE = 2
STRANGER = 4
AUDITOR = 5


@pytest.fixture()
def record_id(state_machine, make_pair, permission_repo) -> int:
    permission_repo.grant(OWNER, ANALYSIS_START)
    contract, data = make_pair(owner_id=OWNER)
    return state_machine.start_job(OWNER, contract.id, data.id).id


class TestCanView:
    def test_owner_can_view(self, gate: SharingGate, record_id: int) -> None:
        assert gate.can_view(OWNER, record_id) is True

    def test_stranger_cannot_view(self, gate: SharingGate, record_id: int) -> None:
        assert gate.can_view(STRANGER, record_id) is False

    def test_view_all_can_view(self, gate: SharingGate, record_id: int, permission_repo) -> None:
        permission_repo.grant(AUDITOR, ANALYSIS_VIEW_ALL)
        assert gate.can_view(AUDITOR, record_id) is True

    def test_missing_record_is_invisible(self, gate: SharingGate) -> None:
        assert gate.can_view(OWNER, 999) is False


class TestGrantAndRevoke:
    def test_grant_then_revoke_restores_visibility(self, gate: SharingGate, record_id: int) -> None:
        before = gate.can_view(GRANTEE, record_id)

        gate.grant_share(record_id, OWNER, GRANTEE)
        assert gate.can_view(GRANTEE, record_id) is True

        assert gate.revoke_share(record_id, OWNER, GRANTEE) is True
        assert gate.can_view(GRANTEE, record_id) == before

    def test_grant_is_idempotent(self, gate: SharingGate, record_id: int) -> None:
        first = gate.grant_share(record_id, OWNER, GRANTEE)
        second = gate.grant_share(record_id, OWNER, GRANTEE)

        assert first == second
        assert len(gate.shared_users(record_id, OWNER)) == 1

    def test_grant_is_not_transitive(self, gate: SharingGate, record_id: int) -> None:
        gate.grant_share(record_id, OWNER, GRANTEE)

        with pytest.raises(PermissionDeniedError):
            gate.grant_share(record_id, GRANTEE, STRANGER)
        assert gate.can_view(STRANGER, record_id) is False

    def test_stranger_grant_is_not_found(self, gate: SharingGate, record_id: int) -> None:
        with pytest.raises(NotFoundError):
            gate.grant_share(record_id, STRANGER, GRANTEE)

    def test_view_all_holder_cannot_grant(
        self, gate: SharingGate, record_id: int, permission_repo
    ) -> None:
        permission_repo.grant(AUDITOR, ANALYSIS_VIEW_ALL)

        with pytest.raises(PermissionDeniedError):
            gate.grant_share(record_id, AUDITOR, GRANTEE)

    def test_cannot_share_with_owner(self, gate: SharingGate, record_id: int) -> None:
        with pytest.raises(ValidationError):
            gate.grant_share(record_id, OWNER, OWNER)

    def test_revoke_without_grant_returns_false(self, gate: SharingGate, record_id: int) -> None:
        assert gate.revoke_share(record_id, OWNER, GRANTEE) is False

    def test_grantee_cannot_revoke(self, gate: SharingGate, record_id: int) -> None:
        gate.grant_share(record_id, OWNER, GRANTEE)

        with pytest.raises(PermissionDeniedError):
            gate.revoke_share(record_id, GRANTEE, GRANTEE)


class TestSharedUsers:
    def test_owner_lists_grantees(self, gate: SharingGate, record_id: int) -> None:
        gate.grant_share(record_id, OWNER, GRANTEE)

        grants = gate.shared_users(record_id, OWNER)

        assert [g.grantee_user_id for g in grants] == [GRANTEE]
        assert grants[0].granted_by_user_id == OWNER

    def test_view_all_lists_grantees(
        self, gate: SharingGate, record_id: int, permission_repo
    ) -> None:
        permission_repo.grant(AUDITOR, ANALYSIS_VIEW_ALL)
        gate.grant_share(record_id, OWNER, GRANTEE)

        assert len(gate.shared_users(record_id, AUDITOR)) == 1

    def test_grantee_cannot_list(self, gate: SharingGate, record_id: int) -> None:
        gate.grant_share(record_id, OWNER, GRANTEE)

        with pytest.raises(PermissionDeniedError):
            gate.shared_users(record_id, GRANTEE)

    def test_stranger_gets_not_found(self, gate: SharingGate, record_id: int) -> None:
        with pytest.raises(NotFoundError):
            gate.shared_users(record_id, STRANGER)
