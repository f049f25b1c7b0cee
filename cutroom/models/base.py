"""
TenantModel — Abstract base class for tenant-scoped models.

All models that need tenant isolation inherit from TenantModel
instead of db.Model directly. It adds the indexed tenant_id FK column
that get_scoped() filters on.
"""

from datetime import datetime, timezone

from cutroom.models import db


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Normalise a datetime to UTC-aware.

    SQLite hands back naive datetimes even for timezone=True columns;
    all arithmetic in the services goes through this helper.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def isoformat(value: datetime | None) -> str | None:
    value = as_utc(value)
    return value.isoformat() if value else None


class TenantModel(db.Model):
    """Abstract base for tenant-scoped tables."""
    __abstract__ = True

    tenant_id = db.Column(
        db.Integer,
        db.ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
