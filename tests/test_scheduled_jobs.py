"""Overdue scan job + `flask scan-overdue` CLI."""

import logging
from datetime import timedelta

from cutroom.models import db
from cutroom.models.base import utcnow
from cutroom.services.scheduled_jobs import scan_overdue_stages
from cutroom.services.workflow_service import WorkflowService


def _make_overdue(project):
    stage = WorkflowService().get_active_stage(project.id, project.tenant_id)
    stage.started_at = utcnow() - timedelta(hours=stage.sla_hours + 5)
    db.session.commit()
    return stage


class TestScanOverdueStages:
    def test_reports_overdue_across_tenants(self, tenant, other_tenant, make_project, caplog):
        late = make_project(tenant.id, "Late")
        make_project(tenant.id, "On time")
        foreign_late = make_project(other_tenant.id, "Foreign late")
        _make_overdue(late)
        _make_overdue(foreign_late)

        with caplog.at_level(logging.WARNING, logger="cutroom.services.scheduled_jobs"):
            result = scan_overdue_stages()

        assert result["tenants_scanned"] == 2
        assert sorted(s["project_id"] for s in result["overdue"]) == sorted([late.id, foreign_late.id])
        assert all(s["is_overdue"] for s in result["overdue"])
        assert len([r for r in caplog.records if "Stage overdue" in r.getMessage()]) == 2

    def test_single_tenant_scan(self, tenant, other_tenant, make_project):
        _make_overdue(make_project(other_tenant.id, "Foreign late"))
        result = scan_overdue_stages(tenant_id=tenant.id)
        assert result == {"tenants_scanned": 1, "overdue": []}

    def test_inactive_tenant_skipped(self, tenant, make_project):
        _make_overdue(make_project(tenant.id))
        tenant.is_active = False
        db.session.commit()
        assert scan_overdue_stages() == {"tenants_scanned": 0, "overdue": []}


class TestScanOverdueCli:
    def test_cli_prints_summary(self, app, tenant, make_project):
        _make_overdue(make_project(tenant.id))
        runner = app.test_cli_runner()
        result = runner.invoke(args=["scan-overdue", "--tenant-id", str(tenant.id)])
        assert result.exit_code == 0
        assert "1 overdue stage(s)" in result.output
