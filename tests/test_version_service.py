"""
Version approval engine tests — cutroom/services/version_service.py

The review graph (VERSION_TRANSITIONS):
    DRAFT -> IN_REVIEW
    IN_REVIEW -> CHANGES_REQUESTED | APPROVED
    CHANGES_REQUESTED -> IN_REVIEW
    APPROVED -> FINAL
    FINAL -> (terminal)

Every allowed pair must succeed, every other distinct pair must fail with
InvalidTransitionError and leave the stored status unchanged. approve() is
the client shortcut that bypasses the graph.
"""

import pytest

from cutroom.core.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    TerminalStateError,
    ValidationError,
)
from cutroom.models import db
from cutroom.models.asset import VERSION_STATUSES, VERSION_TRANSITIONS, AssetVersion
from cutroom.services import version_service

_ALLOWED = [(src, dst) for src, targets in VERSION_TRANSITIONS.items() for dst in targets]
_DISALLOWED = [
    (src, dst)
    for src in VERSION_STATUSES
    for dst in VERSION_STATUSES
    if src != dst and dst not in VERSION_TRANSITIONS[src]
]


def _status(version_id):
    db.session.expire_all()
    return db.session.get(AssetVersion, version_id).status


# ═════════════════════════════════════════════════════════════════════════════
# Registry
# ═════════════════════════════════════════════════════════════════════════════


class TestCreateVersion:
    def test_versions_are_numbered_per_project(self, project, tenant, make_project):
        v1 = version_service.create_version(project.id, tenant.id, {"file_name": "a.mp4"})
        v2 = version_service.create_version(project.id, tenant.id, {"file_name": "b.mp4", "file_size": 1024})
        other = make_project(tenant.id, "Other")
        o1 = version_service.create_version(other.id, tenant.id, {"file_name": "c.mp4"})

        assert (v1.version_no, v2.version_no, o1.version_no) == (1, 2, 1)
        assert v1.status == "DRAFT"
        assert v2.file_size == 1024

    def test_file_name_required(self, project, tenant):
        with pytest.raises(ValidationError):
            version_service.create_version(project.id, tenant.id, {})

    def test_non_string_file_name_rejected(self, project, tenant):
        with pytest.raises(ValidationError):
            version_service.create_version(project.id, tenant.id, {"file_name": 42})

    def test_negative_file_size_rejected(self, project, tenant):
        with pytest.raises(ValidationError):
            version_service.create_version(project.id, tenant.id, {"file_name": "a.mp4", "file_size": -1})

    def test_foreign_project_not_found(self, project, other_tenant):
        with pytest.raises(NotFoundError):
            version_service.create_version(project.id, other_tenant.id, {"file_name": "a.mp4"})

    def test_duplicate_version_no_conflicts(self, project, tenant, make_version, monkeypatch):
        """A racing upload that computed the same number hits the unique constraint."""
        make_version(project, version_no=1)
        monkeypatch.setattr(version_service, "next_version_no", lambda project_id: 1)
        with pytest.raises(ConflictError):
            version_service.create_version(project.id, tenant.id, {"file_name": "race.mp4"})
        assert AssetVersion.query.filter_by(project_id=project.id).count() == 1

    def test_list_and_latest(self, project, tenant, make_version):
        make_version(project)
        make_version(project)
        latest = make_version(project)
        versions = version_service.list_versions(project.id, tenant.id)
        assert [v.version_no for v in versions] == [3, 2, 1]
        assert version_service.get_latest_version(project.id, tenant.id).id == latest.id

    def test_latest_of_empty_project(self, project, tenant):
        assert version_service.get_latest_version(project.id, tenant.id) is None

    def test_get_version_scoped_to_project(self, project, tenant, make_project, make_version):
        v = make_version(project)
        other = make_project(tenant.id, "Other")
        assert version_service.get_version(v.id, project.id, tenant.id).id == v.id
        with pytest.raises(NotFoundError):
            version_service.get_version(v.id, other.id, tenant.id)


# ═════════════════════════════════════════════════════════════════════════════
# Review graph
# ═════════════════════════════════════════════════════════════════════════════


class TestSetStatus:
    @pytest.mark.parametrize("src, dst", _ALLOWED)
    def test_allowed_transition(self, project, tenant, make_version, src, dst):
        v = make_version(project, status=src)
        updated = version_service.set_status(v.id, project.id, tenant.id, dst)
        assert updated.status == dst
        assert _status(v.id) == dst

    @pytest.mark.parametrize("src, dst", _DISALLOWED)
    def test_disallowed_transition_leaves_status(self, project, tenant, make_version, src, dst):
        v = make_version(project, status=src)
        with pytest.raises(InvalidTransitionError, match=f"from {src} to {dst}"):
            version_service.set_status(v.id, project.id, tenant.id, dst)
        assert _status(v.id) == src

    def test_same_status_is_noop(self, project, tenant, make_version):
        v = make_version(project, status="IN_REVIEW")
        assert version_service.set_status(v.id, project.id, tenant.id, "IN_REVIEW").status == "IN_REVIEW"

    def test_unknown_status_is_validation_error(self, project, tenant, make_version):
        v = make_version(project)
        with pytest.raises(ValidationError) as exc:
            version_service.set_status(v.id, project.id, tenant.id, "PUBLISHED")
        assert not isinstance(exc.value, InvalidTransitionError)

    def test_review_path_does_not_stamp_approval(self, project, tenant, make_version):
        v = make_version(project, status="IN_REVIEW")
        updated = version_service.set_status(v.id, project.id, tenant.id, "APPROVED")
        assert updated.approved_by_id is None
        assert updated.approved_at is None

    def test_cross_tenant_not_found(self, project, other_tenant, make_version):
        v = make_version(project)
        with pytest.raises(NotFoundError):
            version_service.set_status(v.id, project.id, other_tenant.id, "IN_REVIEW")
        assert _status(v.id) == "DRAFT"


# ═════════════════════════════════════════════════════════════════════════════
# Client approval
# ═════════════════════════════════════════════════════════════════════════════


class TestApprove:
    @pytest.mark.parametrize("src", ["DRAFT", "IN_REVIEW", "CHANGES_REQUESTED"])
    def test_approve_bypasses_review_graph(self, project, tenant, pm_user, make_version, src):
        v = make_version(project, status=src)
        approved = version_service.approve(v.id, project.id, tenant.id, pm_user.id)
        assert approved.status == "APPROVED"
        assert approved.approved_by_id == pm_user.id
        assert approved.approved_at is not None

    def test_reapprove_is_noop(self, project, tenant, pm_user, make_version):
        """DRAFT → approve → approve again leaves approved_at untouched."""
        v = version_service.create_version(project.id, tenant.id, {"file_name": "cut.mp4"})
        first = version_service.approve(v.id, project.id, tenant.id, pm_user.id)
        approved_at = first.approved_at
        assert first.status == "APPROVED"
        assert approved_at is not None

        second = version_service.approve(v.id, project.id, tenant.id, pm_user.id)
        assert second.status == "APPROVED"
        assert second.approved_at == approved_at

    def test_approve_final_is_terminal(self, project, tenant, pm_user, make_version):
        v = make_version(project, status="FINAL")
        with pytest.raises(TerminalStateError):
            version_service.approve(v.id, project.id, tenant.id, pm_user.id)
        assert _status(v.id) == "FINAL"

    def test_approver_must_belong_to_tenant(self, project, tenant, other_user, make_version):
        v = make_version(project)
        with pytest.raises(NotFoundError):
            version_service.approve(v.id, project.id, tenant.id, other_user.id)
        assert _status(v.id) == "DRAFT"

    def test_approved_version_can_go_final(self, project, tenant, pm_user, make_version):
        v = make_version(project)
        version_service.approve(v.id, project.id, tenant.id, pm_user.id)
        assert version_service.set_status(v.id, project.id, tenant.id, "FINAL").status == "FINAL"
