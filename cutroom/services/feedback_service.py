"""Feedback Service — client comments on asset versions.

Also provides the feedback → (project, tenant) lookup the scope engine
validates against.
"""

from __future__ import annotations

import logging

from sqlalchemy import select

from cutroom.core.exceptions import NotFoundError, ValidationError
from cutroom.models import db
from cutroom.models.asset import AssetVersion
from cutroom.models.auth import User
from cutroom.models.feedback import FeedbackItem
from cutroom.services.helpers.scoped_queries import exists_scoped, get_scoped
from cutroom.utils.helpers import text_field

logger = logging.getLogger(__name__)


def create_feedback(
    version_id: int,
    project_id: int,
    tenant_id: int,
    data: dict,
    author_user_id: int | None = None,
) -> FeedbackItem:
    """Attach a comment to a version of a project in the tenant."""
    text = text_field(data, "text")
    if not text:
        raise ValidationError("text is required", details={"text": "required"})
    timecode = data.get("timecode_sec")
    if timecode is not None:
        if not isinstance(timecode, (int, float)) or isinstance(timecode, bool) or timecode < 0:
            raise ValidationError("timecode_sec must be a non-negative number", details={"timecode_sec": timecode})

    version = get_scoped(AssetVersion, version_id, tenant_id=tenant_id, project_id=project_id)
    if author_user_id is not None and not exists_scoped(User, author_user_id, tenant_id=tenant_id):
        raise NotFoundError(resource="User", resource_id=author_user_id)
    item = FeedbackItem(
        tenant_id=tenant_id,
        asset_version_id=version.id,
        text=text,
        timecode_sec=float(timecode) if timecode is not None else None,
        author_user_id=author_user_id,
    )
    db.session.add(item)
    db.session.commit()
    logger.info(
        "Feedback created: id=%s version=%s",
        item.id, version.id,
        extra={"tenant_id": tenant_id, "project_id": project_id, "event_type": "feedback.created"},
    )
    return item


def get_feedback(feedback_item_id: int, tenant_id: int) -> FeedbackItem:
    return get_scoped(FeedbackItem, feedback_item_id, tenant_id=tenant_id)


def get_feedback_scope(feedback_item_id: int) -> tuple[int, int] | None:
    """Return (project_id, tenant_id) of a feedback item via its version, or None."""
    row = db.session.execute(
        select(AssetVersion.project_id, AssetVersion.tenant_id)
        .join(FeedbackItem, FeedbackItem.asset_version_id == AssetVersion.id)
        .where(FeedbackItem.id == feedback_item_id)
    ).first()
    if row is None:
        return None
    return row.project_id, row.tenant_id
