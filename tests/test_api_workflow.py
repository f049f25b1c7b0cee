"""
HTTP tests — projects + workflow blueprints.

Error mapping checked here:
    NotFoundError → 404, ValidationError/InvalidTransitionError → 422,
    ConflictError/TerminalStateError → 409, missing tenant_id → 400.
"""

from datetime import timedelta

import pytest

from cutroom.models import db
from cutroom.models.base import utcnow
from cutroom.models.workflow import WorkflowStage


@pytest.fixture()
def api_project(client, tenant):
    res = client.post("/api/v1/projects", json={"tenant_id": tenant.id, "name": "Brand Film"})
    assert res.status_code == 201
    return res.get_json()


def _wf(pid, suffix=""):
    return f"/api/v1/projects/{pid}/workflow{suffix}"


class TestProjectsApi:
    def test_create_returns_bootstrapped_stages(self, api_project):
        assert api_project["name"] == "Brand Film"
        names = [s["stage_name"] for s in api_project["stages"]]
        assert names[0] == "BRIEFING" and names[-1] == "COMPLETED"
        assert api_project["stages"][0]["is_active"] is True
        assert all(s["started_at"] is None for s in api_project["stages"][1:])

    def test_create_requires_tenant(self, client):
        res = client.post("/api/v1/projects", json={"name": "X"})
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_REQUIRED"

    def test_create_requires_name(self, client, tenant):
        res = client.post("/api/v1/projects", json={"tenant_id": tenant.id})
        assert res.status_code == 422
        assert res.get_json()["code"] == "ERR_VALIDATION_INVALID"

    def test_non_string_name_is_422(self, client, tenant):
        res = client.post("/api/v1/projects", json={"tenant_id": tenant.id, "name": ["Launch"]})
        assert res.status_code == 422
        assert res.get_json()["code"] == "ERR_VALIDATION_INVALID"

    def test_list_and_get(self, client, tenant, api_project):
        res = client.get(f"/api/v1/projects?tenant_id={tenant.id}")
        assert res.status_code == 200
        assert res.get_json()["total"] == 1

        res = client.get(f"/api/v1/projects/{api_project['id']}?tenant_id={tenant.id}")
        assert res.status_code == 200
        assert res.get_json()["id"] == api_project["id"]

    def test_cross_tenant_get_is_404(self, client, other_tenant, api_project):
        res = client.get(f"/api/v1/projects/{api_project['id']}?tenant_id={other_tenant.id}")
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"

    def test_non_json_body_rejected(self, client, tenant):
        res = client.post(
            f"/api/v1/projects?tenant_id={tenant.id}", data="name=X", content_type="text/plain",
        )
        assert res.status_code == 415


class TestWorkflowApi:
    def test_get_workflow(self, client, tenant, api_project):
        res = client.get(f"{_wf(api_project['id'])}?tenant_id={tenant.id}")
        assert res.status_code == 200
        body = res.get_json()
        assert len(body["stages"]) == 7
        assert body["active_stage"]["stage_name"] == "BRIEFING"
        assert body["active_stage"]["remaining_hours"] <= 24

    def test_advance_then_metrics(self, client, tenant, api_project):
        pid = api_project["id"]
        res = client.post(_wf(pid, "/advance"), json={"tenant_id": tenant.id})
        assert res.status_code == 200
        assert res.get_json()["stage_name"] == "PRODUCTION"

        metrics = client.get(f"{_wf(pid, '/metrics')}?tenant_id={tenant.id}").get_json()
        assert metrics["completed_stages"] == 1
        assert metrics["active_stage"] == "PRODUCTION"

    def test_advance_at_final_stage_is_409(self, client, tenant, api_project):
        pid = api_project["id"]
        client.post(_wf(pid, "/transition"), json={"tenant_id": tenant.id, "stage_name": "COMPLETED"})
        res = client.post(_wf(pid, "/advance"), json={"tenant_id": tenant.id})
        assert res.status_code == 409
        assert res.get_json()["code"] == "ERR_CONFLICT_STATE"

    def test_advance_without_active_stage_is_422(self, client, tenant, api_project):
        pid = api_project["id"]
        client.post(_wf(pid, "/complete"), json={"tenant_id": tenant.id})
        res = client.post(_wf(pid, "/advance"), json={"tenant_id": tenant.id})
        assert res.status_code == 422
        assert res.get_json()["code"] == "ERR_INVALID_TRANSITION"

    def test_transition_with_owner(self, client, tenant, pm_user, api_project):
        res = client.post(
            _wf(api_project["id"], "/transition"),
            json={"tenant_id": tenant.id, "stage_name": "client_review", "owner_user_id": pm_user.id},
        )
        assert res.status_code == 200
        body = res.get_json()
        assert body["stage_name"] == "CLIENT_REVIEW"
        assert body["owner"]["id"] == pm_user.id

    def test_transition_validation(self, client, tenant, api_project):
        pid = api_project["id"]
        assert client.post(_wf(pid, "/transition"), json={"tenant_id": tenant.id}).status_code == 400
        res = client.post(_wf(pid, "/transition"), json={"tenant_id": tenant.id, "stage_name": "MIXING"})
        assert res.status_code == 422
        res = client.post(
            _wf(pid, "/transition"),
            json={"tenant_id": tenant.id, "stage_name": "DELIVERY", "owner_user_id": "bob"},
        )
        assert res.status_code == 422

    def test_transition_non_string_stage_name_is_422(self, client, tenant, api_project):
        res = client.post(_wf(api_project["id"], "/transition"), json={"tenant_id": tenant.id, "stage_name": 5})
        assert res.status_code == 422
        assert res.get_json()["code"] == "ERR_VALIDATION_INVALID"

    def test_transition_to_completed_stage_is_422(self, client, tenant, api_project):
        pid = api_project["id"]
        client.post(_wf(pid, "/advance"), json={"tenant_id": tenant.id})
        res = client.post(_wf(pid, "/transition"), json={"tenant_id": tenant.id, "stage_name": "BRIEFING"})
        assert res.status_code == 422
        assert res.get_json()["details"]["target"] == "BRIEFING"

    def test_complete_project(self, client, tenant, api_project):
        res = client.post(_wf(api_project["id"], "/complete"), json={"tenant_id": tenant.id})
        assert res.status_code == 200
        body = res.get_json()
        assert body["closed_stages"] == 7
        assert body["active_stage"] is None

    def test_complete_single_stage(self, client, tenant, other_tenant, api_project):
        stage_id = api_project["stages"][0]["id"]
        res = client.post(f"/api/v1/workflow/stages/{stage_id}/complete", json={"tenant_id": other_tenant.id})
        assert res.status_code == 404
        res = client.post(f"/api/v1/workflow/stages/{stage_id}/complete", json={"tenant_id": tenant.id})
        assert res.status_code == 200
        assert res.get_json()["completed_at"] is not None

    def test_overdue_endpoint(self, client, tenant, api_project):
        stage = db.session.get(WorkflowStage, api_project["stages"][0]["id"])
        stage.started_at = utcnow() - timedelta(hours=30)
        db.session.commit()

        res = client.get(f"/api/v1/workflow/overdue?tenant_id={tenant.id}")
        assert res.status_code == 200
        body = res.get_json()
        assert body["total"] == 1
        assert body["items"][0]["is_overdue"] is True
        assert body["items"][0]["remaining_hours"] < 0

    def test_workflow_of_foreign_project_is_404(self, client, other_tenant, api_project):
        res = client.post(_wf(api_project["id"], "/advance"), json={"tenant_id": other_tenant.id})
        assert res.status_code == 404


class TestHealthApi:
    def test_ready(self, client):
        res = client.get("/api/v1/health/ready")
        assert res.status_code == 200
        assert res.get_json() == {"status": "ok"}

    def test_live_reports_database_and_stages(self, client):
        res = client.get("/api/v1/health/live")
        assert res.status_code == 200
        checks = res.get_json()["checks"]
        assert checks["database"]["status"] == "ok"
        assert checks["workflow"]["stages"][0] == "BRIEFING"

    def test_request_id_header(self, client):
        res = client.get("/api/v1/health/ready", headers={"X-Request-ID": "abc123"})
        assert res.headers["X-Request-ID"] == "abc123"
        assert "X-Request-Duration-Ms" in res.headers

    def test_unknown_api_path_is_json_404(self, client):
        res = client.get("/api/v1/nope")
        assert res.status_code == 404
        assert res.get_json()["error"] == "Not found"
