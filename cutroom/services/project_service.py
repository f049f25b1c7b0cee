"""
Project Service — project records and the tenant/user collaborator lookups.

Project creation bootstraps the workflow stage set in the same commit, so a
project never exists without its stages.
"""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import select

from cutroom.core.exceptions import NotFoundError, ValidationError
from cutroom.models import db
from cutroom.models.auth import Tenant, User
from cutroom.models.project import PROJECT_STATUSES, Project
from cutroom.models.workflow import StageConfig
from cutroom.services.helpers.scoped_queries import exists_scoped, get_scoped
from cutroom.utils.helpers import text_field
from cutroom.services.workflow_service import WorkflowService

logger = logging.getLogger(__name__)


def _parse_due_date(raw) -> date | None:
    if raw in (None, ""):
        return None
    if isinstance(raw, date):
        return raw
    try:
        return date.fromisoformat(str(raw))
    except ValueError:
        raise ValidationError("due_date must be an ISO date (YYYY-MM-DD)", details={"due_date": raw})


# ── Collaborator lookups ─────────────────────────────────────────────────────


def project_exists(project_id: int, tenant_id: int) -> bool:
    """True if the project exists inside the tenant."""
    return exists_scoped(Project, project_id, tenant_id=tenant_id)


def user_exists(user_id: int, tenant_id: int) -> bool:
    """True if the user exists inside the tenant."""
    return exists_scoped(User, user_id, tenant_id=tenant_id)


# ── CRUD ─────────────────────────────────────────────────────────────────────


def create_project(tenant_id: int, data: dict, stage_config: StageConfig | None = None) -> Project:
    """Create a project and bootstrap its workflow stages atomically.

    Args:
        tenant_id: Owning tenant.
        data: name (required), description, status, due_date.
        stage_config: Stage sequence for the bootstrap.

    Raises:
        ValidationError: name missing or status unknown.
        NotFoundError: tenant does not exist.
    """
    if db.session.get(Tenant, tenant_id) is None:
        raise NotFoundError(resource="Tenant", resource_id=tenant_id)
    name = text_field(data, "name")
    if not name:
        raise ValidationError("name is required", details={"name": "required"})
    status = data.get("status") or "draft"
    if not isinstance(status, str) or status not in PROJECT_STATUSES:
        raise ValidationError(
            f"status must be one of: {', '.join(sorted(PROJECT_STATUSES))}",
            details={"status": status},
        )

    project = Project(
        tenant_id=tenant_id,
        name=name,
        description=text_field(data, "description"),
        status=status,
        due_date=_parse_due_date(data.get("due_date")),
    )
    try:
        db.session.add(project)
        db.session.flush()
        WorkflowService(stage_config).bootstrap(project.id, tenant_id, commit=False)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        "Project created: id=%s name=%r",
        project.id, project.name,
        extra={"tenant_id": tenant_id, "project_id": project.id, "event_type": "project.created"},
    )
    return project


def get_project(project_id: int, tenant_id: int) -> Project:
    return get_scoped(Project, project_id, tenant_id=tenant_id)


def list_projects(tenant_id: int) -> list[Project]:
    """Tenant's projects, newest first."""
    return db.session.execute(
        select(Project)
        .where(Project.tenant_id == tenant_id)
        .order_by(Project.created_at.desc(), Project.id.desc())
    ).scalars().all()
