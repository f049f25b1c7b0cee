"""
Cutroom
Blueprint registry and shared request helpers.

tenant_id is resolved from the query string or JSON body. Auth and
session handling live in front of these blueprints; the service layer
owns all business logic and commits.
"""

import logging

from flask import current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from cutroom.core.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    TerminalStateError,
    ValidationError,
)
from cutroom.models.workflow import StageConfig
from cutroom.utils.errors import E, api_error

logger = logging.getLogger(__name__)

EXTENSION_KEY = "cutroom"


# ── Request helpers ──────────────────────────────────────────────────────────


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _as_int(value):
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def tenant_id_from_request() -> int | None:
    """Extract tenant_id from query string or JSON body."""
    tid = request.args.get("tenant_id", type=int)
    if tid:
        return tid
    return _as_int(json_body().get("tenant_id"))


def tenant_required() -> tuple[int | None, tuple | None]:
    tid = tenant_id_from_request()
    if not tid:
        return None, api_error(E.VALIDATION_REQUIRED, "tenant_id is required")
    return tid, None


def int_field(data: dict, name: str) -> int | None:
    """Integer field from a JSON body; None when absent or not an integer."""
    return _as_int(data.get(name))


def stage_config() -> StageConfig:
    return current_app.extensions[EXTENSION_KEY]["stage_config"]


def scope_classifier():
    return current_app.extensions[EXTENSION_KEY].get("scope_classifier")


# ── Error handlers ───────────────────────────────────────────────────────────


def register_error_handlers(bp):
    """Map the service exception taxonomy to JSON responses on a blueprint."""

    @bp.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        return api_error(E.NOT_FOUND, str(error))

    @bp.errorhandler(InvalidTransitionError)
    def _handle_invalid_transition(error: InvalidTransitionError):
        return api_error(E.INVALID_TRANSITION, str(error), details=error.details)

    @bp.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        return api_error(E.VALIDATION_INVALID, str(error), details=error.details)

    @bp.errorhandler(ConflictError)
    def _handle_conflict(error: ConflictError):
        return api_error(E.CONFLICT_DUPLICATE, str(error))

    @bp.errorhandler(TerminalStateError)
    def _handle_terminal(error: TerminalStateError):
        return api_error(E.CONFLICT_STATE, str(error))

    @bp.errorhandler(Exception)
    def _handle_unexpected(error: Exception):
        if isinstance(error, HTTPException):
            return error
        logger.exception("Unexpected error in %s endpoint=%s", bp.name, request.endpoint)
        return jsonify({"error": "Internal server error", "code": E.INTERNAL}), 500

    return bp
