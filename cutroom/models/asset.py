"""
Cutroom
Asset version model — one uploaded cut of a project's video.

Lifecycle states:
    AssetVersion:  DRAFT → IN_REVIEW → CHANGES_REQUESTED ⇄ IN_REVIEW
                   IN_REVIEW → APPROVED → FINAL

Two ways to change status:
    - set_status(): editorial review, strict VERSION_TRANSITIONS graph
    - approve():    client approval, reaches APPROVED from any state but FINAL
                    and is the only path that stamps approved_by / approved_at
"""

from cutroom.models import db
from cutroom.models.base import TenantModel, isoformat, utcnow


# ── Constants ────────────────────────────────────────────────────────────────

VERSION_STATUSES = ("DRAFT", "IN_REVIEW", "CHANGES_REQUESTED", "APPROVED", "FINAL")

TERMINAL_VERSION_STATUS = "FINAL"


# ── Lifecycle Transition Guards ──────────────────────────────────────────────

VERSION_TRANSITIONS = {
    "DRAFT":             ["IN_REVIEW"],
    "IN_REVIEW":         ["CHANGES_REQUESTED", "APPROVED"],
    "CHANGES_REQUESTED": ["IN_REVIEW"],
    "APPROVED":          ["FINAL"],
    "FINAL":             [],
}


def validate_version_transition(old_status, new_status):
    """Return True if AssetVersion status transition is a strict-graph edge."""
    return new_status in VERSION_TRANSITIONS.get(old_status, [])


class AssetVersion(TenantModel):
    """
    Uploaded media version within a project.

    version_no is a per-project sequence (1, 2, 3, ...). Binary content
    lives in external storage; only its URL and metadata are kept here.
    """

    __tablename__ = "asset_versions"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer,
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    version_no = db.Column(db.Integer, nullable=False)
    file_name = db.Column(db.String(255), nullable=False)
    file_url = db.Column(db.String(1000), nullable=True)
    file_size = db.Column(db.BigInteger, nullable=True)
    status = db.Column(
        db.String(30), nullable=False, default="DRAFT",
        comment="DRAFT | IN_REVIEW | CHANGES_REQUESTED | APPROVED | FINAL",
    )
    approved_by_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        db.UniqueConstraint("project_id", "version_no", name="uq_asset_version_project_no"),
    )

    project = db.relationship("Project", back_populates="versions")
    feedback_items = db.relationship(
        "FeedbackItem", back_populates="asset_version", lazy="dynamic",
        cascade="all, delete-orphan",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "project_id": self.project_id,
            "version_no": self.version_no,
            "file_name": self.file_name,
            "file_url": self.file_url,
            "file_size": self.file_size,
            "status": self.status,
            "approved_by": self.approved_by_id,
            "approved_at": isoformat(self.approved_at),
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }

    def __repr__(self) -> str:
        return f"<AssetVersion #{self.id} project={self.project_id} v{self.version_no} {self.status}>"
