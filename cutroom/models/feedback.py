"""Feedback model — timestamped client comments on an asset version."""

from cutroom.models import db
from cutroom.models.base import TenantModel, isoformat, utcnow


class FeedbackItem(TenantModel):
    """A single comment left on a version, optionally pinned to a timecode.

    The owning project is reached through asset_version; scope decisions
    validate against that chain, not against a copied column.
    """

    __tablename__ = "feedback_items"

    id = db.Column(db.Integer, primary_key=True)
    asset_version_id = db.Column(
        db.Integer,
        db.ForeignKey("asset_versions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    text = db.Column(db.Text, nullable=False)
    timecode_sec = db.Column(db.Float, nullable=True)
    status = db.Column(db.String(20), nullable=False, default="new")
    author_user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    asset_version = db.relationship("AssetVersion", back_populates="feedback_items")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "asset_version_id": self.asset_version_id,
            "text": self.text,
            "timecode_sec": self.timecode_sec,
            "status": self.status,
            "author_user_id": self.author_user_id,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
