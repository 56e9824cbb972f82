"""JSON error bodies shared by every blueprint.

Every error response has the shape ``{"error", "code", "details"?}``:

    from app.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "Process not found")
    return api_error(E.VALIDATION_REQUIRED, "element_id is required",
                     details={"element_id": "required"})
"""

from __future__ import annotations

from flask import jsonify


class E:
    """Error codes (``ERR_`` prefix) returned in the ``code`` field."""

    # 400: body missing, not an object, or a required field is blank
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"
    # 422: well-formed input that breaks a framework rule
    VALIDATION_RULE = "ERR_VALIDATION_RULE"

    NOT_FOUND = "ERR_NOT_FOUND"
    # 409: element_number / process_number already taken
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"

    DATABASE = "ERR_DATABASE"
    EXPORT = "ERR_EXPORT"
    INTERNAL = "ERR_INTERNAL"


STATUS_BY_CODE: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.VALIDATION_RULE: 422,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.DATABASE: 500,
    E.EXPORT: 500,
    E.INTERNAL: 500,
}


def api_error(code: str, message: str, *, status: int | None = None, details: dict | None = None):
    """Build ``(response, status)`` for *code*.

    ``status`` overrides the code's default; unknown codes map to 400.
    ``details`` (field name → problem) is included only when non-empty.
    """
    body: dict = {"error": message, "code": code}
    if details:
        body["details"] = details
    return jsonify(body), status or STATUS_BY_CODE.get(code, 400)
