"""
Version Blueprint — asset versions, review status, client approval, feedback.

Endpoints:
    GET/POST /api/v1/projects/<pid>/versions
    GET      /api/v1/projects/<pid>/versions/<vid>
    PATCH    /api/v1/projects/<pid>/versions/<vid>/status     — strict review graph
    POST     /api/v1/projects/<pid>/versions/<vid>/approve    — client approval
    POST     /api/v1/projects/<pid>/versions/<vid>/feedback   — client comment
"""

from flask import Blueprint, jsonify

from cutroom.blueprints import int_field, json_body, register_error_handlers, tenant_required
from cutroom.services import feedback_service, version_service
from cutroom.utils.errors import E, api_error

version_bp = Blueprint("versions", __name__, url_prefix="/api/v1/projects/<int:project_id>/versions")
register_error_handlers(version_bp)


@version_bp.route("", methods=["GET"])
def list_versions(project_id):
    tid, err = tenant_required()
    if err:
        return err
    versions = version_service.list_versions(project_id, tid)
    return jsonify({"items": [v.to_dict() for v in versions], "total": len(versions)}), 200


@version_bp.route("", methods=["POST"])
def create_version(project_id):
    tid, err = tenant_required()
    if err:
        return err
    version = version_service.create_version(project_id, tid, json_body())
    return jsonify(version.to_dict()), 201


@version_bp.route("/<int:version_id>", methods=["GET"])
def get_version(project_id, version_id):
    tid, err = tenant_required()
    if err:
        return err
    version = version_service.get_version(version_id, project_id, tid)
    return jsonify(version.to_dict()), 200


@version_bp.route("/<int:version_id>/status", methods=["PATCH"])
def set_status(project_id, version_id):
    """Body: {"status": "IN_REVIEW"}"""
    tid, err = tenant_required()
    if err:
        return err
    status = json_body().get("status")
    if status is not None and not isinstance(status, str):
        return api_error(E.VALIDATION_INVALID, "status must be a string")
    status = (status or "").strip().upper()
    if not status:
        return api_error(E.VALIDATION_REQUIRED, "status is required")
    version = version_service.set_status(version_id, project_id, tid, status)
    return jsonify(version.to_dict()), 200


@version_bp.route("/<int:version_id>/approve", methods=["POST"])
def approve(project_id, version_id):
    """Body: {"approved_by_id": 7}"""
    tid, err = tenant_required()
    if err:
        return err
    approved_by_id = int_field(json_body(), "approved_by_id")
    if approved_by_id is None:
        return api_error(E.VALIDATION_REQUIRED, "approved_by_id is required")
    version = version_service.approve(version_id, project_id, tid, approved_by_id)
    return jsonify(version.to_dict()), 200


@version_bp.route("/<int:version_id>/feedback", methods=["POST"])
def create_feedback(project_id, version_id):
    """Body: {"text": "...", "timecode_sec": 12.5, "author_user_id": 3}"""
    tid, err = tenant_required()
    if err:
        return err
    data = json_body()
    item = feedback_service.create_feedback(
        version_id, project_id, tid, data, author_user_id=int_field(data, "author_user_id"),
    )
    return jsonify(item.to_dict()), 201
