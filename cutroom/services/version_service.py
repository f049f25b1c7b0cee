"""
Version Approval Engine — Service Layer.

Business logic for:
    - Version registry:  per-project version numbering, listing, latest
    - Editorial review:  set_status() along the strict VERSION_TRANSITIONS graph
    - Client approval:   approve() — one step to APPROVED from any non-final state

The two status paths are deliberately separate: review moves must follow
the review cycle, while client approval is a business event that is always
reachable once a version exists (clients may approve a first draft).
Only approve() stamps approved_by_id / approved_at.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from cutroom.core.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    TerminalStateError,
    ValidationError,
)
from cutroom.models import db
from cutroom.models.asset import (
    TERMINAL_VERSION_STATUS,
    VERSION_STATUSES,
    AssetVersion,
    validate_version_transition,
)
from cutroom.models.auth import User
from cutroom.models.base import utcnow
from cutroom.models.project import Project
from cutroom.services.helpers.scoped_queries import exists_scoped, get_scoped
from cutroom.utils.helpers import text_field

logger = logging.getLogger(__name__)


def _log_status(version: AssetVersion, event: str, old: str) -> None:
    logger.info(
        "Version %s: id=%s v%s %s → %s",
        event, version.id, version.version_no, old, version.status,
        extra={
            "tenant_id": version.tenant_id,
            "project_id": version.project_id,
            "event_type": f"version.{event}",
        },
    )


# ── Version registry ─────────────────────────────────────────────────────────


def next_version_no(project_id: int) -> int:
    """Next per-project version number: 1, 2, 3, ..."""
    current = db.session.execute(
        select(func.max(AssetVersion.version_no)).where(AssetVersion.project_id == project_id)
    ).scalar()
    return (current or 0) + 1


def create_version(project_id: int, tenant_id: int, data: dict) -> AssetVersion:
    """Register an uploaded cut. New versions always start in DRAFT.

    Raises:
        NotFoundError: project not in tenant.
        ValidationError: file_name missing or file_size invalid.
        ConflictError: a concurrent upload took the same version number.
    """
    file_name = text_field(data, "file_name")
    if not file_name:
        raise ValidationError("file_name is required", details={"file_name": "required"})
    file_size = data.get("file_size")
    if file_size is not None and (not isinstance(file_size, int) or isinstance(file_size, bool) or file_size < 0):
        raise ValidationError("file_size must be a non-negative integer", details={"file_size": file_size})

    get_scoped(Project, project_id, tenant_id=tenant_id, lock=True)
    version = AssetVersion(
        tenant_id=tenant_id,
        project_id=project_id,
        version_no=next_version_no(project_id),
        file_name=file_name,
        file_url=data.get("file_url"),
        file_size=file_size,
        status="DRAFT",
    )
    db.session.add(version)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("AssetVersion", "version_no", str(version.version_no))

    logger.info(
        "Version created: id=%s project=%s v%s",
        version.id, project_id, version.version_no,
        extra={"tenant_id": tenant_id, "project_id": project_id, "event_type": "version.created"},
    )
    return version


def get_version(version_id: int, project_id: int, tenant_id: int) -> AssetVersion:
    return get_scoped(AssetVersion, version_id, tenant_id=tenant_id, project_id=project_id)


def list_versions(project_id: int, tenant_id: int) -> list[AssetVersion]:
    """All versions of a project, highest version number first."""
    get_scoped(Project, project_id, tenant_id=tenant_id)
    return db.session.execute(
        select(AssetVersion)
        .where(AssetVersion.project_id == project_id, AssetVersion.tenant_id == tenant_id)
        .order_by(AssetVersion.version_no.desc())
    ).scalars().all()


def get_latest_version(project_id: int, tenant_id: int) -> AssetVersion | None:
    versions = list_versions(project_id, tenant_id)
    return versions[0] if versions else None


# ── Lifecycle Transitions ────────────────────────────────────────────────────


def set_status(version_id: int, project_id: int, tenant_id: int, target_status: str) -> AssetVersion:
    """Move a version along the strict review graph.

    Re-setting the current status is a no-op, not an error.

    Raises:
        ValidationError: target_status is not a known status.
        NotFoundError: version not in (project, tenant).
        InvalidTransitionError: edge not in VERSION_TRANSITIONS.
    """
    if target_status not in VERSION_STATUSES:
        raise ValidationError(
            f"status must be one of: {', '.join(VERSION_STATUSES)}",
            details={"status": target_status},
        )

    try:
        version = get_scoped(
            AssetVersion, version_id, tenant_id=tenant_id, project_id=project_id, lock=True,
        )
        old = version.status
        if old == target_status:
            db.session.rollback()
            return version
        if not validate_version_transition(old, target_status):
            raise InvalidTransitionError(
                f"Invalid status transition from {old} to {target_status}",
                current=old, target=target_status,
            )
        version.status = target_status
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    _log_status(version, "status", old)
    return version


def approve(version_id: int, project_id: int, tenant_id: int, approved_by_id: int) -> AssetVersion:
    """Approve a version in one step from any state except FINAL.

    Bypasses VERSION_TRANSITIONS on purpose. Re-approving an APPROVED
    version returns it untouched (approved_at is not refreshed).

    Raises:
        NotFoundError: version or approving user not in the tenant.
        TerminalStateError: version is FINAL.
    """
    try:
        version = get_scoped(
            AssetVersion, version_id, tenant_id=tenant_id, project_id=project_id, lock=True,
        )
        if not exists_scoped(User, approved_by_id, tenant_id=tenant_id):
            raise NotFoundError(resource="User", resource_id=approved_by_id)

        old = version.status
        if old == "APPROVED":
            db.session.rollback()
            return version
        if old == TERMINAL_VERSION_STATUS:
            raise TerminalStateError(
                "Cannot approve a version that is already FINAL", state=old,
            )

        version.status = "APPROVED"
        version.approved_by_id = approved_by_id
        version.approved_at = utcnow()
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    _log_status(version, "approve", old)
    return version
