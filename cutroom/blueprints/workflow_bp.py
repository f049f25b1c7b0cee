"""
Workflow Blueprint — stage engine HTTP surface.

Endpoints:
    GET  /api/v1/projects/<id>/workflow              — stages + active stage
    POST /api/v1/projects/<id>/workflow/advance      — complete active, start next
    POST /api/v1/projects/<id>/workflow/transition   — jump to any open stage
    POST /api/v1/projects/<id>/workflow/complete     — close every open stage
    GET  /api/v1/projects/<id>/workflow/metrics      — stage aggregates
    POST /api/v1/workflow/stages/<id>/complete       — admin stage correction
    GET  /api/v1/workflow/overdue                    — SLA scan (workflow_sla_bp)
"""

from flask import Blueprint, jsonify

from cutroom.blueprints import (
    int_field,
    json_body,
    register_error_handlers,
    stage_config,
    tenant_required,
)
from cutroom.models.base import utcnow
from cutroom.services.workflow_service import WorkflowService
from cutroom.utils.errors import E, api_error

workflow_bp = Blueprint("workflow", __name__, url_prefix="/api/v1")
register_error_handlers(workflow_bp)

# Polled by dashboards and schedulers; rate-limited separately from writes.
workflow_sla_bp = Blueprint("workflow_sla", __name__, url_prefix="/api/v1/workflow")
register_error_handlers(workflow_sla_bp)


def _service() -> WorkflowService:
    return WorkflowService(stage_config())


def _workflow_payload(service: WorkflowService, project_id: int, tenant_id: int) -> dict:
    now = utcnow()
    stages = service.list_stages(project_id, tenant_id)
    active = next((s for s in stages if s.is_active), None)
    return {
        "project_id": project_id,
        "stages": [s.to_dict(now) for s in stages],
        "active_stage": active.to_dict(now) if active else None,
    }


# ═════════════════════════════════════════════════════════════════════════════
# Project workflow
# ═════════════════════════════════════════════════════════════════════════════


@workflow_bp.route("/projects/<int:project_id>/workflow", methods=["GET"])
def get_workflow(project_id):
    tid, err = tenant_required()
    if err:
        return err
    return jsonify(_workflow_payload(_service(), project_id, tid)), 200


@workflow_bp.route("/projects/<int:project_id>/workflow/advance", methods=["POST"])
def advance(project_id):
    tid, err = tenant_required()
    if err:
        return err
    stage = _service().advance(project_id, tid)
    return jsonify(stage.to_dict()), 200


@workflow_bp.route("/projects/<int:project_id>/workflow/transition", methods=["POST"])
def transition(project_id):
    """Jump to a named stage. Body: {"stage_name": "...", "owner_user_id": 3}"""
    tid, err = tenant_required()
    if err:
        return err
    data = json_body()
    stage_name = data.get("stage_name")
    if stage_name is not None and not isinstance(stage_name, str):
        return api_error(E.VALIDATION_INVALID, "stage_name must be a string")
    stage_name = (stage_name or "").strip().upper()
    if not stage_name:
        return api_error(E.VALIDATION_REQUIRED, "stage_name is required")
    owner_user_id = None
    if data.get("owner_user_id") is not None:
        owner_user_id = int_field(data, "owner_user_id")
        if owner_user_id is None:
            return api_error(E.VALIDATION_INVALID, "owner_user_id must be an integer")

    stage = _service().jump_to(project_id, tid, stage_name, owner_user_id=owner_user_id)
    return jsonify(stage.to_dict()), 200


@workflow_bp.route("/projects/<int:project_id>/workflow/complete", methods=["POST"])
def complete_project(project_id):
    tid, err = tenant_required()
    if err:
        return err
    service = _service()
    closed = service.complete_project(project_id, tid)
    payload = _workflow_payload(service, project_id, tid)
    payload["closed_stages"] = closed
    return jsonify(payload), 200


@workflow_bp.route("/projects/<int:project_id>/workflow/metrics", methods=["GET"])
def metrics(project_id):
    tid, err = tenant_required()
    if err:
        return err
    return jsonify(_service().metrics(project_id, tid)), 200


@workflow_bp.route("/workflow/stages/<int:stage_id>/complete", methods=["POST"])
def complete_stage(stage_id):
    tid, err = tenant_required()
    if err:
        return err
    stage = _service().complete_by_id(stage_id, tid)
    return jsonify(stage.to_dict()), 200


# ═════════════════════════════════════════════════════════════════════════════
# SLA
# ═════════════════════════════════════════════════════════════════════════════


@workflow_sla_bp.route("/overdue", methods=["GET"])
def overdue():
    tid, err = tenant_required()
    if err:
        return err
    now = utcnow()
    stages = _service().scan_overdue(tid, now=now)
    return jsonify({"items": [s.to_dict(now) for s in stages], "total": len(stages)}), 200
