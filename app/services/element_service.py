"""Element service layer — CRUD for framework elements.

Transaction policy: methods use flush() for ID generation, never commit().
Caller (route handler) is responsible for db.session.commit().
"""
import logging

from sqlalchemy import select

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models import db
from app.models.audit import log_activity
from app.models.framework import OeElement
from app.utils.helpers import coerce_bool, coerce_text

logger = logging.getLogger(__name__)


def get_element(element_id):
    element = db.session.get(OeElement, element_id)
    if element is None:
        raise NotFoundError(resource="OeElement", resource_id=element_id)
    return element


def _coerce_element_number(value):
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(
            "element_number must be an integer", details={"element_number": "invalid"},
        ) from exc
    if number < 1:
        raise ValidationError(
            "element_number must be positive", details={"element_number": "must be >= 1"},
        )
    return number


def _element_values(data, partial=False):
    """Type-check the editable fields present in *data*.

    Returns the values to assign; ``title`` comes back stripped.
    """
    errors = {}
    values = {}
    if not partial or "title" in data:
        values["title"] = coerce_text(data, "title", errors).strip()
        if not values["title"]:
            errors.setdefault("title", "required")
    if not partial or "description" in data:
        values["description"] = coerce_text(data, "description", errors)
    for field in ("icon", "color"):
        if not partial or field in data:
            values[field] = coerce_text(data, field, errors, default=None)
    if not partial or "is_active" in data:
        values["is_active"] = coerce_bool(data, "is_active", errors, default=True)
    labels = data.get("enabling_elements")
    if labels is not None and not isinstance(labels, list):
        errors["enabling_elements"] = "must be a list"
    if errors:
        raise ValidationError("Invalid element data", details=errors)
    return values


def _ensure_number_free(number, exclude_id=None):
    stmt = select(OeElement.id).where(OeElement.element_number == number)
    existing = db.session.execute(stmt).scalar_one_or_none()
    if existing is not None and existing != exclude_id:
        raise ConflictError(resource="OeElement", field="element_number", value=str(number))


def create_element(data, user_id="system"):
    """Create an element and log the activity.

    Returns:
        OeElement instance (already flushed).
    """
    number = _coerce_element_number(data.get("element_number"))
    values = _element_values(data)
    _ensure_number_free(number)

    element = OeElement(element_number=number, **values)
    element.set_enabling_elements(data.get("enabling_elements"))
    db.session.add(element)
    db.session.flush()

    log_activity(
        action="created", entity_type="element", entity_id=element.id,
        entity_name=element.title, user_id=user_id,
        description=f'Created OE element "{element.title}"',
    )
    logger.info("Element created id=%s number=%s", element.id, element.element_number)
    return element


def update_element(element, data, user_id="system"):
    """Partial update. Returns the updated OeElement."""
    values = _element_values(data, partial=True)

    if "element_number" in data:
        number = _coerce_element_number(data["element_number"])
        _ensure_number_free(number, exclude_id=element.id)
        element.element_number = number

    for field, value in values.items():
        setattr(element, field, value)

    if "enabling_elements" in data:
        element.set_enabling_elements(data["enabling_elements"])

    db.session.flush()
    log_activity(
        action="updated", entity_type="element", entity_id=element.id,
        entity_name=element.title, user_id=user_id,
    )
    return element


def delete_element(element, user_id="system"):
    """Delete an element; its processes, goals and metrics go with it."""
    element_id, title = element.id, element.title
    db.session.delete(element)
    db.session.flush()
    log_activity(
        action="deleted", entity_type="element", entity_id=element_id,
        entity_name=title, user_id=user_id,
        description=f'Deleted OE element "{title}"',
    )
    logger.info("Element deleted id=%s", element_id)
