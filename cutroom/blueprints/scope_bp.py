"""
Scope Blueprint — scope-creep decisions on client feedback.

Endpoints:
    GET  /api/v1/scope/decisions               — tenant-wide, or ?project_id=
    POST /api/v1/scope/decisions               — record a classifier verdict
    GET  /api/v1/scope/decisions/<id>
    POST /api/v1/scope/decisions/<id>/decide   — PM verdict (overwrites)
    POST /api/v1/scope/analyze                 — classify + record (scope_ai_bp)
"""

import logging

from flask import Blueprint, jsonify, request

from cutroom.blueprints import (
    int_field,
    json_body,
    register_error_handlers,
    scope_classifier,
    tenant_required,
)
from cutroom.services import scope_service
from cutroom.utils.errors import E, api_error

logger = logging.getLogger(__name__)

scope_bp = Blueprint("scope", __name__, url_prefix="/api/v1/scope")
register_error_handlers(scope_bp)

# Calls the external classifier; limited more tightly than plain writes.
scope_ai_bp = Blueprint("scope_ai", __name__, url_prefix="/api/v1/scope")
register_error_handlers(scope_ai_bp)


def _require_ints(data: dict, *names: str):
    """Return ({name: int}, None) or (None, error response) for the first bad field."""
    values = {}
    for name in names:
        value = int_field(data, name)
        if value is None:
            return None, api_error(E.VALIDATION_REQUIRED, f"{name} is required")
        values[name] = value
    return values, None


@scope_bp.route("/decisions", methods=["GET"])
def list_decisions():
    tid, err = tenant_required()
    if err:
        return err
    project_id = request.args.get("project_id", type=int)
    if project_id:
        decisions = scope_service.list_decisions(project_id, tid)
    else:
        pending = request.args.get("pending", "").lower() in ("1", "true", "yes")
        decisions = scope_service.list_tenant_decisions(tid, pending_only=pending)
    return jsonify({"items": [d.to_dict() for d in decisions], "total": len(decisions)}), 200


@scope_bp.route("/decisions", methods=["POST"])
def create_decision():
    """Body: {"project_id", "feedback_item_id", "ai_label", "ai_confidence", "ai_reasoning"}"""
    tid, err = tenant_required()
    if err:
        return err
    data = json_body()
    ids, err = _require_ints(data, "project_id", "feedback_item_id")
    if err:
        return err
    decision = scope_service.create_decision(
        project_id=ids["project_id"],
        feedback_item_id=ids["feedback_item_id"],
        tenant_id=tid,
        ai_label=data.get("ai_label"),
        ai_confidence=data.get("ai_confidence"),
        ai_reasoning=data.get("ai_reasoning"),
    )
    return jsonify(decision.to_dict()), 201


@scope_bp.route("/decisions/<int:decision_id>", methods=["GET"])
def get_decision(decision_id):
    tid, err = tenant_required()
    if err:
        return err
    decision = scope_service.get_decision(
        decision_id, tid, project_id=request.args.get("project_id", type=int),
    )
    return jsonify(decision.to_dict()), 200


@scope_bp.route("/decisions/<int:decision_id>/decide", methods=["POST"])
def decide(decision_id):
    """Body: {"pm_user_id", "decision", "reason", "change_request_amount"}"""
    tid, err = tenant_required()
    if err:
        return err
    data = json_body()
    ids, err = _require_ints(data, "pm_user_id")
    if err:
        return err
    if not data.get("decision"):
        return api_error(E.VALIDATION_REQUIRED, "decision is required")
    decision = scope_service.record_pm_decision(
        decision_id,
        tid,
        ids["pm_user_id"],
        data["decision"],
        reason=data.get("reason"),
        change_request_amount=data.get("change_request_amount"),
    )
    return jsonify(decision.to_dict()), 200


@scope_ai_bp.route("/analyze", methods=["POST"])
def analyze():
    """Classify a feedback item and record the verdict.

    Body: {"project_id", "feedback_item_id"}
    """
    tid, err = tenant_required()
    if err:
        return err
    classifier = scope_classifier()
    if classifier is None:
        logger.warning("Scope analysis requested without a classifier", extra={"tenant_id": tid})
        return api_error(E.UNAVAILABLE, "Scope classifier is not configured")
    ids, err = _require_ints(json_body(), "project_id", "feedback_item_id")
    if err:
        return err

    classification, decision = scope_service.analyze_feedback(
        ids["project_id"], ids["feedback_item_id"], tid, classifier,
    )
    return jsonify({
        "analysis": {
            "label": classification.label,
            "confidence": classification.confidence,
            "reasoning": classification.reasoning,
        },
        "decision": decision.to_dict(),
    }), 201
