"""
Scope Governance Engine — Service Layer.

Polices contract-scope creep: every feedback item an automated classifier
scores gets one ScopeDecision; a PM then records (and may later replace)
the human verdict.

Design decisions:
    - One decision per feedback item. The "already exists" guarantee is the
      unique constraint on scope_decisions.feedback_item_id; the pre-check
      only produces a friendlier error in the common case.
    - AI fields are write-once. record_pm_decision() never touches them.
    - PM fields have no state machine: any verdict may replace any other,
      and every call overwrites all of them (omitted values become NULL).
    - The classifier is an opaque callable injected by the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Callable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from cutroom.core.exceptions import ConflictError, NotFoundError, ValidationError
from cutroom.models import db
from cutroom.models.auth import User
from cutroom.models.base import utcnow
from cutroom.models.feedback import FeedbackItem
from cutroom.models.project import Project
from cutroom.models.scope import AI_LABELS, PM_DECISIONS, ScopeDecision
from cutroom.services.feedback_service import get_feedback_scope
from cutroom.services.helpers.scoped_queries import exists_scoped, get_scoped

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScopeClassification:
    """Classifier verdict on one feedback text."""

    label: str
    confidence: float
    reasoning: str | None = None


ScopeClassifier = Callable[[str], ScopeClassification]


# ── Validation helpers ───────────────────────────────────────────────────────


def _validate_ai_fields(ai_label, ai_confidence) -> float:
    if ai_label not in AI_LABELS:
        raise ValidationError(
            f"ai_label must be one of: {', '.join(AI_LABELS)}",
            details={"ai_label": ai_label},
        )
    if isinstance(ai_confidence, bool) or not isinstance(ai_confidence, (int, float)):
        raise ValidationError("ai_confidence must be a number", details={"ai_confidence": ai_confidence})
    if not 0 <= ai_confidence <= 1:
        raise ValidationError("ai_confidence must be between 0 and 1", details={"ai_confidence": ai_confidence})
    return float(ai_confidence)


def _parse_amount(raw) -> Decimal | None:
    if raw is None:
        return None
    if isinstance(raw, bool):
        raise ValidationError("change_request_amount must be a number", details={"change_request_amount": raw})
    try:
        amount = Decimal(str(raw))
    except InvalidOperation:
        raise ValidationError("change_request_amount must be a number", details={"change_request_amount": raw})
    if not amount.is_finite() or amount < 0:
        raise ValidationError(
            "change_request_amount must be a non-negative amount",
            details={"change_request_amount": raw},
        )
    return amount


def _decision_exists(feedback_item_id: int) -> bool:
    return db.session.execute(
        select(ScopeDecision.id).where(ScopeDecision.feedback_item_id == feedback_item_id)
    ).first() is not None


# ── Public API ───────────────────────────────────────────────────────────────


def create_decision(
    project_id: int,
    feedback_item_id: int,
    tenant_id: int,
    ai_label: str,
    ai_confidence: float,
    ai_reasoning: str | None = None,
) -> ScopeDecision:
    """Record the classifier's verdict for a feedback item.

    Raises:
        ValidationError: label unknown or confidence outside [0, 1].
        NotFoundError: feedback item missing, in another tenant, or in
                       another project (indistinguishable on purpose).
        ConflictError: a decision already exists for the feedback item.
    """
    confidence = _validate_ai_fields(ai_label, ai_confidence)
    if ai_reasoning is not None and not isinstance(ai_reasoning, str):
        raise ValidationError("ai_reasoning must be a string", details={"ai_reasoning": ai_reasoning})

    owner = get_feedback_scope(feedback_item_id)
    if owner is None or owner != (project_id, tenant_id):
        raise NotFoundError(resource="FeedbackItem", resource_id=feedback_item_id)

    if _decision_exists(feedback_item_id):
        raise ConflictError("ScopeDecision", "feedback_item_id", str(feedback_item_id))

    decision = ScopeDecision(
        tenant_id=tenant_id,
        project_id=project_id,
        feedback_item_id=feedback_item_id,
        ai_label=ai_label,
        ai_confidence=confidence,
        ai_reasoning=ai_reasoning,
    )
    db.session.add(decision)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("ScopeDecision", "feedback_item_id", str(feedback_item_id))

    logger.info(
        "Scope decision created: id=%s feedback=%s label=%s confidence=%.2f",
        decision.id, feedback_item_id, ai_label, confidence,
        extra={"tenant_id": tenant_id, "project_id": project_id, "event_type": "scope.created"},
    )
    return decision


def get_decision(decision_id: int, tenant_id: int, project_id: int | None = None) -> ScopeDecision:
    return get_scoped(ScopeDecision, decision_id, tenant_id=tenant_id, project_id=project_id)


def list_decisions(project_id: int, tenant_id: int) -> list[ScopeDecision]:
    """Decisions of one project, newest first."""
    get_scoped(Project, project_id, tenant_id=tenant_id)
    return db.session.execute(
        select(ScopeDecision)
        .where(ScopeDecision.project_id == project_id, ScopeDecision.tenant_id == tenant_id)
        .order_by(ScopeDecision.created_at.desc(), ScopeDecision.id.desc())
    ).scalars().all()


def list_tenant_decisions(tenant_id: int, pending_only: bool = False) -> list[ScopeDecision]:
    """Decisions across every project of the tenant, newest first.

    pending_only keeps decisions still waiting for a PM verdict.
    """
    stmt = select(ScopeDecision).where(ScopeDecision.tenant_id == tenant_id)
    if pending_only:
        stmt = stmt.where(ScopeDecision.pm_decision.is_(None))
    stmt = stmt.order_by(ScopeDecision.created_at.desc(), ScopeDecision.id.desc())
    return db.session.execute(stmt).scalars().all()


def record_pm_decision(
    decision_id: int,
    tenant_id: int,
    pm_user_id: int,
    decision: str,
    reason: str | None = None,
    change_request_amount=None,
) -> ScopeDecision:
    """Overwrite the PM verdict on a scope decision.

    Raises:
        ValidationError: decision unknown or amount negative/non-numeric.
        NotFoundError: scope decision or PM user not in the tenant.
    """
    if decision not in PM_DECISIONS:
        raise ValidationError(
            f"decision must be one of: {', '.join(PM_DECISIONS)}",
            details={"decision": decision},
        )
    if reason is not None and not isinstance(reason, str):
        raise ValidationError("reason must be a string", details={"reason": reason})
    amount = _parse_amount(change_request_amount)

    try:
        record = get_scoped(ScopeDecision, decision_id, tenant_id=tenant_id, lock=True)
        if not exists_scoped(User, pm_user_id, tenant_id=tenant_id):
            raise NotFoundError(resource="User", resource_id=pm_user_id)

        previous = record.pm_decision
        record.pm_decision = decision
        record.pm_reason = (reason or "").strip() or None
        record.change_request_amount = amount
        record.decided_by_id = pm_user_id
        record.decided_at = utcnow()
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        "Scope decision %s: id=%s %s → %s",
        "revised" if previous else "decided", record.id, previous, decision,
        extra={"tenant_id": tenant_id, "project_id": record.project_id, "event_type": "scope.pm_decision"},
    )
    return record


def analyze_feedback(
    project_id: int,
    feedback_item_id: int,
    tenant_id: int,
    classifier: ScopeClassifier,
) -> tuple[ScopeClassification, ScopeDecision]:
    """Classify a feedback item and record the result as a new decision.

    The feedback is loaded inside the tenant first so the classifier never
    sees text from another tenant.
    """
    feedback = get_scoped(FeedbackItem, feedback_item_id, tenant_id=tenant_id)
    classification = classifier(feedback.text)
    decision = create_decision(
        project_id=project_id,
        feedback_item_id=feedback.id,
        tenant_id=tenant_id,
        ai_label=classification.label,
        ai_confidence=classification.confidence,
        ai_reasoning=classification.reasoning,
    )
    return classification, decision
