"""
Workflow Stage Engine — Service Layer.

Drives a project through its ordered, SLA-timed production stages.

Business logic for:
    - Bootstrap:     create every configured stage, start the first
    - Transitions:   advance to the next stage, jump to any open stage
    - Completion:    single stage (admin correction) or whole project
    - SLA:           overdue scan across a tenant
    - Metrics:       per-project stage aggregates

Rules:
    - tenant_id is always an explicit parameter.
    - Stage order comes from the injected StageConfig only.
    - Each mutating call locks the project row first, validates, mutates and
      commits once; on any failure the session is rolled back and no row
      changes.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from cutroom.core.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    TerminalStateError,
)
from cutroom.models import db
from cutroom.models.auth import User
from cutroom.models.base import as_utc, utcnow
from cutroom.models.project import Project
from cutroom.models.workflow import StageConfig, WorkflowStage
from cutroom.services.helpers.scoped_queries import exists_scoped, get_scoped

logger = logging.getLogger(__name__)


class WorkflowService:
    """Stage engine bound to one StageConfig.

    Stateless apart from the config; construct one per request or share it.
    """

    def __init__(self, stage_config: StageConfig | None = None):
        self.config = stage_config or StageConfig()

    # ── Internal helpers ─────────────────────────────────────────────────

    def _lock_project(self, project_id: int, tenant_id: int) -> Project:
        """Load the project inside the tenant and hold its row lock.

        The project row is the lock key for its whole stage set, so two
        concurrent transitions on one project serialise here.
        """
        return get_scoped(Project, project_id, tenant_id=tenant_id, lock=True)

    def _stages(self, project_id: int) -> list[WorkflowStage]:
        rows = db.session.execute(
            select(WorkflowStage).where(WorkflowStage.project_id == project_id)
        ).scalars().all()
        return sorted(rows, key=lambda s: (self.config.sort_key(s.stage_name), s.id))

    def _active(self, project_id: int) -> WorkflowStage | None:
        return db.session.execute(
            select(WorkflowStage).where(
                WorkflowStage.project_id == project_id,
                WorkflowStage.started_at.is_not(None),
                WorkflowStage.completed_at.is_(None),
            )
        ).scalars().first()

    def _by_name(self, project_id: int, stage_name: str) -> WorkflowStage:
        stage = db.session.execute(
            select(WorkflowStage).where(
                WorkflowStage.project_id == project_id,
                WorkflowStage.stage_name == stage_name,
            )
        ).scalar_one_or_none()
        if stage is None:
            raise NotFoundError(resource="WorkflowStage", resource_id=stage_name)
        return stage

    def _log_transition(self, event: str, stage: WorkflowStage, tenant_id: int) -> None:
        logger.info(
            "Workflow %s: project=%s stage=%s",
            event, stage.project_id, stage.stage_name,
            extra={
                "tenant_id": tenant_id,
                "project_id": stage.project_id,
                "event_type": f"workflow.{event}",
            },
        )

    # ── Bootstrap ────────────────────────────────────────────────────────

    def bootstrap(self, project_id: int, tenant_id: int, *, commit: bool = True) -> list[WorkflowStage]:
        """Create one stage per configured name; start the first one.

        Args:
            project_id: Project to bootstrap. Must belong to tenant_id.
            tenant_id: Owning tenant.
            commit: False when the caller commits (project creation does so
                    to keep project + stages in one transaction).

        Returns:
            Created stages in configured order.

        Raises:
            NotFoundError: project missing or owned by another tenant.
            ConflictError: stages already exist for the project.
        """
        try:
            self._lock_project(project_id, tenant_id)

            existing = db.session.execute(
                select(WorkflowStage.id).where(WorkflowStage.project_id == project_id).limit(1)
            ).first()
            if existing is not None:
                raise ConflictError("WorkflowStage", "project_id", str(project_id))

            now = utcnow()
            created = []
            for index, name in enumerate(self.config.order):
                stage = WorkflowStage(
                    tenant_id=tenant_id,
                    project_id=project_id,
                    stage_name=name,
                    sla_hours=self.config.default_sla(name),
                    started_at=now if index == 0 else None,
                )
                db.session.add(stage)
                created.append(stage)
            db.session.flush()
        except IntegrityError:
            # A concurrent bootstrap won the (project_id, stage_name) race.
            db.session.rollback()
            raise ConflictError("WorkflowStage", "project_id", str(project_id))
        except Exception:
            db.session.rollback()
            raise

        if commit:
            self._commit_unique(project_id)
        logger.info(
            "Workflow bootstrapped: project=%s stages=%d",
            project_id, len(created),
            extra={"tenant_id": tenant_id, "project_id": project_id, "event_type": "workflow.bootstrap"},
        )
        return created

    def _commit_unique(self, project_id: int) -> None:
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise ConflictError("WorkflowStage", "project_id", str(project_id))

    # ── Reads ────────────────────────────────────────────────────────────

    def list_stages(self, project_id: int, tenant_id: int) -> list[WorkflowStage]:
        """All stages of a project in configured order."""
        get_scoped(Project, project_id, tenant_id=tenant_id)
        return self._stages(project_id)

    def get_active_stage(self, project_id: int, tenant_id: int) -> WorkflowStage | None:
        """The single started-but-not-completed stage, or None."""
        get_scoped(Project, project_id, tenant_id=tenant_id)
        return self._active(project_id)

    # ── Transitions ──────────────────────────────────────────────────────

    def advance(self, project_id: int, tenant_id: int) -> WorkflowStage:
        """Complete the active stage and start the next one in sequence.

        Raises:
            NotFoundError: project not in tenant.
            InvalidTransitionError: no active stage.
            TerminalStateError: active stage is the last configured one.
        """
        try:
            self._lock_project(project_id, tenant_id)

            current = self._active(project_id)
            if current is None:
                raise InvalidTransitionError("No active stage to transition from")

            if current.stage_name not in self.config:
                raise InvalidTransitionError(
                    f"Active stage {current.stage_name} is not part of the configured sequence",
                    current=current.stage_name,
                )
            next_name = self.config.next_after(current.stage_name)
            if next_name is None:
                raise TerminalStateError(
                    "Cannot transition: already at final stage", state=current.stage_name,
                )
            nxt = self._by_name(project_id, next_name)

            now = utcnow()
            current.completed_at = now
            nxt.started_at = now
            nxt.completed_at = None
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        self._log_transition("advance", nxt, tenant_id)
        return nxt

    def jump_to(
        self,
        project_id: int,
        tenant_id: int,
        target_stage_name: str,
        owner_user_id: int | None = None,
    ) -> WorkflowStage:
        """Activate any not-yet-completed stage, completing the current one.

        Sequence order is NOT enforced: stages may be skipped. Jumping with
        no active stage is allowed. Jumping to the stage that is already
        active keeps its SLA clock and only (re)assigns the owner.

        Raises:
            ValidationError: target_stage_name not in the config.
            NotFoundError: project or owner not in tenant, or stage row missing.
            InvalidTransitionError: target stage already completed.
        """
        self.config.require(target_stage_name)
        try:
            self._lock_project(project_id, tenant_id)

            if owner_user_id is not None and not exists_scoped(User, owner_user_id, tenant_id=tenant_id):
                raise NotFoundError(resource="User", resource_id=owner_user_id)

            target = self._by_name(project_id, target_stage_name)
            if target.completed_at is not None:
                raise InvalidTransitionError(
                    f"Target stage {target_stage_name} is already completed",
                    target=target_stage_name,
                )

            now = utcnow()
            current = self._active(project_id)
            if current is not None and current.id != target.id:
                current.completed_at = now
            if not target.is_active:
                target.started_at = now
            if owner_user_id is not None:
                target.owner_user_id = owner_user_id
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        self._log_transition("jump", target, tenant_id)
        return target

    def complete_by_id(self, stage_id: int, tenant_id: int) -> WorkflowStage:
        """Mark one stage completed regardless of its state (admin correction).

        An inert stage gets started_at stamped with the same instant so that
        completed_at never exists without started_at. Already-completed
        stages are returned unchanged.
        """
        try:
            stage = get_scoped(WorkflowStage, stage_id, tenant_id=tenant_id)
            self._lock_project(stage.project_id, tenant_id)
            if stage.completed_at is not None:
                db.session.rollback()
                return stage

            now = utcnow()
            if stage.started_at is None:
                stage.started_at = now
            stage.completed_at = now
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        self._log_transition("complete", stage, tenant_id)
        return stage

    def complete_project(self, project_id: int, tenant_id: int) -> int:
        """Close every open stage of a project. Returns how many were closed."""
        try:
            self._lock_project(project_id, tenant_id)
            now = utcnow()
            closed = 0
            for stage in self._stages(project_id):
                if stage.completed_at is None:
                    if stage.started_at is None:
                        stage.started_at = now
                    stage.completed_at = now
                    closed += 1
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        logger.info(
            "Workflow completed: project=%s closed=%d",
            project_id, closed,
            extra={"tenant_id": tenant_id, "project_id": project_id, "event_type": "workflow.complete_project"},
        )
        return closed

    # ── SLA ──────────────────────────────────────────────────────────────

    def scan_overdue(self, tenant_id: int, now: datetime | None = None) -> list[WorkflowStage]:
        """Every active stage in the tenant that has outrun its SLA.

        Pure read; meant to be polled by an external scheduler.
        """
        now = as_utc(now) or utcnow()
        candidates = db.session.execute(
            select(WorkflowStage)
            .where(
                WorkflowStage.tenant_id == tenant_id,
                WorkflowStage.started_at.is_not(None),
                WorkflowStage.completed_at.is_(None),
                WorkflowStage.sla_hours > 0,
            )
            .order_by(WorkflowStage.started_at)
        ).scalars().all()
        return [stage for stage in candidates if stage.is_overdue(now)]

    # ── Metrics ──────────────────────────────────────────────────────────

    def metrics(self, project_id: int, tenant_id: int, now: datetime | None = None) -> dict:
        """Aggregate stage statistics for one project."""
        get_scoped(Project, project_id, tenant_id=tenant_id)
        now = as_utc(now) or utcnow()
        stages = self._stages(project_id)

        active = next((s for s in stages if s.is_active), None)
        durations = [
            (as_utc(s.completed_at) - as_utc(s.started_at)).total_seconds() / 3600
            for s in stages
            if s.started_at is not None and s.completed_at is not None
        ]
        return {
            "total_stages": len(stages),
            "completed_stages": sum(1 for s in stages if s.completed_at is not None),
            "active_stage": active.stage_name if active else None,
            "overdue_stages": sum(1 for s in stages if s.is_overdue(now)),
            "average_completion_hours": (sum(durations) / len(durations)) if durations else 0,
        }
