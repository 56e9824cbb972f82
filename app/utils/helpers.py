"""Shared request/DB helpers for blueprints and services.

parse_date:          lenient date parsing (None on bad input)
json_body:           JSON object body or a 400 error tuple
missing_fields:      required-field check for create payloads
coerce_text/int/bool: typed payload fields, collecting per-field errors
db_commit_or_error:  commit, mapping DB failures to JSON error tuples
"""
import logging
from datetime import date, datetime

from flask import request
from sqlalchemy.exc import IntegrityError, OperationalError

from app.models import db
from app.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def parse_date(value):
    """Parse a date string (ISO or DD.MM.YYYY) to a date object.

    Returns None for empty/invalid input. Supports:
    - YYYY-MM-DD
    - YYYY-MM-DDTHH:MM:SS (datetime ISO → .date())
    - DD.MM.YYYY
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    for parse in (
        date.fromisoformat,
        lambda v: datetime.fromisoformat(v).date(),
        lambda v: datetime.strptime(v, "%d.%m.%Y").date(),
    ):
        try:
            return parse(str(value))
        except (ValueError, TypeError):
            continue
    logger.debug("Unparseable date %r ignored", value)
    return None


def json_body():
    """Return ``(data, None)`` or ``(None, error_tuple)`` for the request body.

    Usage::

        data, err = json_body()
        if err:
            return err
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return None, api_error(E.VALIDATION_INVALID, "Request body must be a JSON object")
    return data, None


def missing_fields(data, *fields):
    """Return a 400 error tuple naming blank required fields, else None."""
    missing = [f for f in fields if data.get(f) is None or not str(data.get(f)).strip()]
    if missing:
        return api_error(
            E.VALIDATION_REQUIRED,
            f"Missing required field(s): {', '.join(missing)}",
            details={f: "required" for f in missing},
        )
    return None


# ── Database commit helper ───────────────────────────────────────────────────

def db_commit_or_error():
    """Commit the current SQLAlchemy session, returning an error response on failure.

    Returns:
        None on success.
        (response, status_code) tuple on failure — ready for ``return``.

    Usage::

        err = db_commit_or_error()
        if err:
            return err

    IntegrityError → 409 (duplicate / constraint violation)
    OperationalError → 500 (connection / lock issues)
    Other → 500 (unexpected)
    """
    try:
        db.session.commit()
        return None
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Integrity error on commit: %s", exc.orig)
        return api_error(E.CONFLICT_DUPLICATE, "Duplicate or constraint violation")
    except OperationalError:
        db.session.rollback()
        logger.exception("Database operational error on commit")
        return api_error(E.DATABASE, "Database error")
    except Exception:
        db.session.rollback()
        logger.exception("Unexpected database error on commit")
        return api_error(E.DATABASE, "Database error")


# ── Typed payload fields ─────────────────────────────────────────────────────
# Each returns ``default`` for a null/absent field and records a message in
# ``errors[field]`` when the JSON value has the wrong type.

def coerce_text(data, field, errors, default=""):
    value = data.get(field)
    if value is None:
        return default
    if not isinstance(value, str):
        errors[field] = "must be a string"
        return default
    return value


def coerce_int(data, field, errors, default=None):
    """Accept ints and integer strings (``"3"``); booleans are rejected."""
    value = data.get(field)
    if value is None or value == "":
        return default
    if isinstance(value, bool) or isinstance(value, float) and not value.is_integer():
        errors[field] = "must be an integer"
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        errors[field] = "must be an integer"
        return default


def coerce_bool(data, field, errors, default=False):
    value = data.get(field)
    if value is None:
        return default
    if not isinstance(value, bool):
        errors[field] = "must be true or false"
        return default
    return value
