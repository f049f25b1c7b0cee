"""
Cutroom
Workflow stage model — production phases of a project.

Models:
    - WorkflowStage: one row per (project, stage name), SLA-timed

Lifecycle (per row):
    inert (started_at NULL) → active (started_at set) → completed (completed_at set)

Rules:
    - Stage order comes from a StageConfig, never from the data.
    - At most one active stage per project.
    - is_active / is_overdue / remaining_hours are derived at read time
      from the stored timestamps; they are never persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Mapping

from cutroom.core.exceptions import ValidationError
from cutroom.models import db
from cutroom.models.base import TenantModel, as_utc, isoformat, utcnow


# ── Constants ────────────────────────────────────────────────────────────────

DEFAULT_STAGE_ORDER = (
    "BRIEFING",
    "PRODUCTION",
    "CLIENT_REVIEW",
    "REVISIONS",
    "APPROVAL",
    "DELIVERY",
    "COMPLETED",
)

# Hours allotted once a stage becomes active. 0 = no SLA (never overdue).
DEFAULT_STAGE_SLA = {
    "BRIEFING": 24,
    "PRODUCTION": 72,
    "CLIENT_REVIEW": 48,
    "REVISIONS": 48,
    "APPROVAL": 24,
    "DELIVERY": 24,
    "COMPLETED": 0,
}


# ── Stage configuration ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class StageConfig:
    """Immutable ordered stage list plus default SLA lookup.

    Built once at app creation and handed to WorkflowService, so tests can
    run the engine against alternate sequences.
    """

    order: tuple[str, ...] = DEFAULT_STAGE_ORDER
    sla_hours: Mapping[str, int] = field(default_factory=lambda: dict(DEFAULT_STAGE_SLA))

    def __post_init__(self):
        order = tuple(self.order)
        if not order:
            raise ValueError("StageConfig requires at least one stage")
        if len(set(order)) != len(order):
            raise ValueError(f"StageConfig has duplicate stage names: {order}")
        missing = [name for name in order if name not in self.sla_hours]
        if missing:
            raise ValueError(f"StageConfig has no SLA for stage(s): {missing}")
        for name in order:
            hours = self.sla_hours[name]
            if not isinstance(hours, int) or isinstance(hours, bool) or hours < 0:
                raise ValueError(f"SLA for {name} must be a non-negative integer, got {hours!r}")
        object.__setattr__(self, "order", order)
        object.__setattr__(
            self, "sla_hours", MappingProxyType({name: self.sla_hours[name] for name in order}),
        )

    @classmethod
    def from_settings(cls, order=None, sla_overrides=None) -> "StageConfig":
        """Build a config from app settings, falling back to the defaults.

        Args:
            order: Optional sequence of stage names replacing DEFAULT_STAGE_ORDER.
            sla_overrides: Optional {stage_name: hours} merged over DEFAULT_STAGE_SLA.
        """
        names = tuple(order) if order else DEFAULT_STAGE_ORDER
        sla = dict(DEFAULT_STAGE_SLA)
        sla.update(sla_overrides or {})
        return cls(order=names, sla_hours=sla)

    def __contains__(self, stage_name) -> bool:
        return stage_name in self.sla_hours

    def require(self, stage_name: str | None) -> str:
        """Return stage_name if configured, else raise ValidationError."""
        if not stage_name or stage_name not in self:
            raise ValidationError(
                f"Unknown stage '{stage_name}'. Must be one of: {', '.join(self.order)}",
                details={"stage_name": stage_name},
            )
        return stage_name

    def index_of(self, stage_name: str) -> int:
        return self.order.index(self.require(stage_name))

    def next_after(self, stage_name: str) -> str | None:
        """Name of the stage following stage_name, or None for the last one."""
        idx = self.index_of(stage_name)
        if idx == len(self.order) - 1:
            return None
        return self.order[idx + 1]

    def default_sla(self, stage_name: str) -> int:
        return self.sla_hours[self.require(stage_name)]

    def sort_key(self, stage_name: str) -> int:
        """Sort position; names no longer in the config sort last."""
        try:
            return self.order.index(stage_name)
        except ValueError:
            return len(self.order)


# ── Derived state (pure functions of stored timestamps) ──────────────────────


def elapsed_hours(started_at: datetime | None, now: datetime | None = None) -> float | None:
    """Hours since started_at, or None if the stage never started."""
    started_at = as_utc(started_at)
    if started_at is None:
        return None
    now = as_utc(now) or utcnow()
    return (now - started_at).total_seconds() / 3600


def is_stage_active(started_at: datetime | None, completed_at: datetime | None) -> bool:
    return started_at is not None and completed_at is None


def remaining_hours(
    started_at: datetime | None,
    completed_at: datetime | None,
    sla_hours: int,
    now: datetime | None = None,
) -> float | None:
    """SLA hours left for an active stage (negative once breached); None otherwise."""
    if not is_stage_active(started_at, completed_at):
        return None
    return sla_hours - elapsed_hours(started_at, now)


def is_stage_overdue(
    started_at: datetime | None,
    completed_at: datetime | None,
    sla_hours: int,
    now: datetime | None = None,
) -> bool:
    """Active, has an SLA, and has run longer than it."""
    if sla_hours <= 0 or not is_stage_active(started_at, completed_at):
        return False
    return elapsed_hours(started_at, now) > sla_hours


# ═════════════════════════════════════════════════════════════════════════════
# WorkflowStage
# ═════════════════════════════════════════════════════════════════════════════


class WorkflowStage(TenantModel):
    """
    One named, time-boxed phase of a project's production lifecycle.

    All rows for a project are created together at bootstrap; only the
    first starts immediately. Rows are never deleted — they only gain
    timestamps and an owner over time.

    tenant_id is denormalised from the owning project so every lookup can
    be tenant-scoped through get_scoped() without a join.
    """

    __tablename__ = "workflow_stages"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer,
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    stage_name = db.Column(db.String(40), nullable=False)
    sla_hours = db.Column(db.Integer, nullable=False, default=0)
    started_at = db.Column(db.DateTime(timezone=True), nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    owner_user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        db.UniqueConstraint("project_id", "stage_name", name="uq_workflow_stage_project_name"),
        db.Index("ix_workflow_stages_tenant_open", "tenant_id", "completed_at"),
    )

    project = db.relationship("Project", back_populates="stages")
    owner = db.relationship("User", foreign_keys=[owner_user_id])

    # ── Derived state ────────────────────────────────────────────────────

    @property
    def is_active(self) -> bool:
        return is_stage_active(self.started_at, self.completed_at)

    def is_overdue(self, now: datetime | None = None) -> bool:
        return is_stage_overdue(self.started_at, self.completed_at, self.sla_hours, now)

    def remaining_hours(self, now: datetime | None = None) -> float | None:
        return remaining_hours(self.started_at, self.completed_at, self.sla_hours, now)

    def to_dict(self, now: datetime | None = None) -> dict:
        now = now or utcnow()
        remaining = self.remaining_hours(now)
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "project_id": self.project_id,
            "stage_name": self.stage_name,
            "sla_hours": self.sla_hours,
            "started_at": isoformat(self.started_at),
            "completed_at": isoformat(self.completed_at),
            "owner": (
                {"id": self.owner.id, "name": self.owner.full_name}
                if self.owner else None
            ),
            "is_active": self.is_active,
            "is_overdue": self.is_overdue(now),
            "remaining_hours": round(remaining, 2) if remaining is not None else None,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }

    def __repr__(self) -> str:
        return f"<WorkflowStage #{self.id} project={self.project_id} {self.stage_name}>"
