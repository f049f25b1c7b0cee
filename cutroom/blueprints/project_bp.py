"""
Project Blueprint.

Endpoints:
    GET/POST /api/v1/projects
    GET      /api/v1/projects/<id>

Creating a project bootstraps its workflow stages in the same transaction.
"""

from flask import Blueprint, jsonify

from cutroom.blueprints import json_body, register_error_handlers, stage_config, tenant_required
from cutroom.services import project_service
from cutroom.services.workflow_service import WorkflowService

project_bp = Blueprint("projects", __name__, url_prefix="/api/v1/projects")
register_error_handlers(project_bp)


@project_bp.route("", methods=["GET"])
def list_projects():
    tid, err = tenant_required()
    if err:
        return err
    projects = project_service.list_projects(tid)
    return jsonify({"items": [p.to_dict() for p in projects], "total": len(projects)}), 200


@project_bp.route("", methods=["POST"])
def create_project():
    tid, err = tenant_required()
    if err:
        return err
    project = project_service.create_project(tid, json_body(), stage_config())
    result = project.to_dict()
    result["stages"] = [s.to_dict() for s in WorkflowService(stage_config()).list_stages(project.id, tid)]
    return jsonify(result), 201


@project_bp.route("/<int:project_id>", methods=["GET"])
def get_project(project_id):
    tid, err = tenant_required()
    if err:
        return err
    return jsonify(project_service.get_project(project_id, tid).to_dict()), 200
