"""
Cutroom
Scheduled Jobs.

Entry points meant to be triggered by an external scheduler (cron, k8s
CronJob, `flask scan-overdue`). Nothing here runs on its own thread.

Jobs:
    - stage_overdue_scan: reports every active workflow stage past its SLA
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select

from cutroom.models import db
from cutroom.models.auth import Tenant
from cutroom.models.workflow import StageConfig
from cutroom.services.workflow_service import WorkflowService

logger = logging.getLogger(__name__)


def scan_overdue_stages(stage_config: StageConfig | None = None, tenant_id: int | None = None) -> dict[str, Any]:
    """Run the overdue scan for one tenant, or every active tenant.

    Returns:
        {"tenants_scanned": int, "overdue": [stage dicts]}
    """
    service = WorkflowService(stage_config)
    if tenant_id is not None:
        tenant_ids = [tenant_id]
    else:
        tenant_ids = db.session.execute(
            select(Tenant.id).where(Tenant.is_active.is_not(False)).order_by(Tenant.id)
        ).scalars().all()

    overdue = []
    for tid in tenant_ids:
        for stage in service.scan_overdue(tid):
            overdue.append(stage.to_dict())
            logger.warning(
                "Stage overdue: project=%s stage=%s remaining_hours=%.1f",
                stage.project_id, stage.stage_name, stage.remaining_hours(),
                extra={"tenant_id": tid, "project_id": stage.project_id, "event_type": "workflow.overdue"},
            )

    results = {"tenants_scanned": len(tenant_ids), "overdue": overdue}
    logger.info("Overdue scanner: tenants=%d overdue=%d", len(tenant_ids), len(overdue))
    return results
