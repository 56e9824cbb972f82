"""
Operational Excellence Manager
Blueprint registry and shared blueprint plumbing.
"""

import logging

from flask import request
from werkzeug.exceptions import HTTPException

from app.core.exceptions import (
    ConflictError,
    ExportFormattingError,
    NotFoundError,
    ValidationError,
)
from app.models import db
from app.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def register_error_handlers(bp):
    """Map service-layer exceptions to JSON responses for *bp*.

    NotFoundError → 404, ValidationError → 422 with field ``details``,
    ConflictError → 409; anything else is logged and returned as 500.
    HTTP errors raised by Flask itself pass through unchanged.
    """

    @bp.errorhandler(NotFoundError)
    def _handle_not_found(error):
        return api_error(E.NOT_FOUND, str(error))

    @bp.errorhandler(ValidationError)
    def _handle_validation(error):
        db.session.rollback()
        return api_error(E.VALIDATION_RULE, str(error), details=error.details)

    @bp.errorhandler(ConflictError)
    def _handle_conflict(error):
        db.session.rollback()
        return api_error(E.CONFLICT_DUPLICATE, str(error), details={error.field: "already exists"})

    @bp.errorhandler(ExportFormattingError)
    def _handle_export(error):
        logger.error("Export layout failed endpoint=%s: %s", request.endpoint, error)
        return api_error(E.EXPORT, str(error))

    @bp.errorhandler(Exception)
    def _handle_unexpected(error):
        if isinstance(error, HTTPException):
            return error
        db.session.rollback()
        logger.exception("Unexpected error in %s endpoint=%s", bp.name, request.endpoint)
        return api_error(E.INTERNAL, "Internal server error")

    return bp
