"""Project domain model — one video engagement between the agency and a client."""

from cutroom.models import db
from cutroom.models.base import TenantModel, isoformat, utcnow

PROJECT_STATUSES = {
    "draft", "in_progress", "client_review",
    "completed", "on_hold", "cancelled",
}


class Project(TenantModel):
    """A client engagement. Owns its workflow stages, versions and scope decisions."""

    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(
        db.String(30), nullable=False, default="draft",
        comment="draft | in_progress | client_review | completed | on_hold | cancelled",
    )
    due_date = db.Column(db.Date, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    stages = db.relationship(
        "WorkflowStage", back_populates="project", lazy="dynamic",
        cascade="all, delete-orphan",
    )
    versions = db.relationship(
        "AssetVersion", back_populates="project", lazy="dynamic",
        cascade="all, delete-orphan",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "description": self.description,
            "status": self.status,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }

    def __repr__(self) -> str:
        return f"<Project #{self.id} {self.name!r}>"
