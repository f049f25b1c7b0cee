"""
Cutroom
Scope governance model — contract-scope adjudication per feedback item.

A ScopeDecision pairs an automated classification of a feedback item
(in scope / out of scope / unclear) with the PM's verdict on it.

Business rules:
- Exactly one decision per feedback item (unique constraint, no upsert).
- ai_* columns are written once at creation and never updated.
- pm_* columns, change_request_amount, decided_by_id and decided_at are
  replaced wholesale on every PM decision; any verdict may follow any other.
"""

from cutroom.models import db
from cutroom.models.base import TenantModel, isoformat, utcnow

AI_LABELS = ("IN_SCOPE", "OUT_OF_SCOPE", "UNCLEAR")

PM_DECISIONS = ("APPROVED", "REJECTED", "NEEDS_INFO")

# Columns owned by the classifier; never touched after insert.
AI_FIELDS = ("ai_label", "ai_confidence", "ai_reasoning")


class ScopeDecision(TenantModel):
    """Adjudication record for one classified feedback item."""

    __tablename__ = "scope_decisions"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer,
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    feedback_item_id = db.Column(
        db.Integer,
        db.ForeignKey("feedback_items.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        comment="One decision per feedback item.",
    )

    # Classifier output
    ai_label = db.Column(db.String(20), nullable=False, comment="IN_SCOPE | OUT_OF_SCOPE | UNCLEAR")
    ai_confidence = db.Column(db.Float, nullable=False)
    ai_reasoning = db.Column(db.Text, nullable=True)

    # PM verdict
    pm_decision = db.Column(db.String(20), nullable=True, comment="APPROVED | REJECTED | NEEDS_INFO")
    pm_reason = db.Column(db.Text, nullable=True)
    change_request_amount = db.Column(db.Numeric(12, 2), nullable=True)
    decided_by_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    decided_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        db.Index("ix_scope_decisions_tenant_project", "tenant_id", "project_id"),
    )

    decided_by = db.relationship("User", foreign_keys=[decided_by_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "project_id": self.project_id,
            "feedback_item_id": self.feedback_item_id,
            "ai_label": self.ai_label,
            "ai_confidence": self.ai_confidence,
            "ai_reasoning": self.ai_reasoning,
            "pm_decision": self.pm_decision,
            "pm_reason": self.pm_reason,
            "change_request_amount": (
                float(self.change_request_amount)
                if self.change_request_amount is not None else None
            ),
            "decided_by": (
                {"id": self.decided_by.id, "name": self.decided_by.full_name}
                if self.decided_by else None
            ),
            "decided_at": isoformat(self.decided_at),
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }

    def __repr__(self) -> str:
        return f"<ScopeDecision #{self.id} feedback={self.feedback_item_id} {self.ai_label}/{self.pm_decision}>"
