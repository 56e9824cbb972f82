"""Strategic goals and element performance metrics.

Transaction policy: methods use flush() for ID generation, never commit().
Caller (route handler) is responsible for db.session.commit().
"""
import logging

from sqlalchemy import select, update

from app.core.exceptions import NotFoundError, ValidationError
from app.models import db
from app.models.audit import log_activity
from app.models.framework import (
    GOAL_PRIORITIES,
    METRIC_TRENDS,
    SCORECARD_CATEGORIES,
    ElementPerformanceMetric,
    OeElement,
    PerformanceMeasure,
    StrategicGoal,
)
from app.utils.helpers import coerce_text

logger = logging.getLogger(__name__)

_CATEGORY_RANK = {c: i for i, c in enumerate(SCORECARD_CATEGORIES)}
_PRIORITY_RANK = {p: i for i, p in enumerate(GOAL_PRIORITIES)}


def _float(data, field, errors, default=0.0):
    value = data.get(field, default)
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        errors[field] = "must be a number"
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        errors[field] = "must be a number"
        return default


def _require_element(element_id):
    if not isinstance(element_id, str) or db.session.get(OeElement, element_id) is None:
        raise ValidationError(
            "element_id does not reference an existing element",
            details={"element_id": "not found"},
        )


def _goal_sort_key(goal):
    return (
        _CATEGORY_RANK.get(goal.category, len(_CATEGORY_RANK)),
        _PRIORITY_RANK.get(goal.priority, len(_PRIORITY_RANK)),
        goal.title or "",
    )


# ── Goals ────────────────────────────────────────────────────────────────


def get_goal(goal_id):
    goal = db.session.get(StrategicGoal, goal_id)
    if goal is None:
        raise NotFoundError(resource="StrategicGoal", resource_id=goal_id)
    return goal


def list_goals(element_id=None):
    """Goals ordered by scorecard category, then priority (High first)."""
    stmt = select(StrategicGoal)
    if element_id:
        stmt = stmt.where(StrategicGoal.element_id == element_id)
    goals = db.session.execute(stmt).scalars().all()
    return sorted(goals, key=_goal_sort_key)


def _text_values(data, required, optional, errors, partial):
    values = {}
    if not partial or required in data:
        values[required] = coerce_text(data, required, errors).strip()
        if not values[required]:
            errors.setdefault(required, "required")
    for field in optional:
        if not partial or field in data:
            values[field] = coerce_text(data, field, errors)
    return values


def _validate_goal(data, partial=False):
    """Return the typed goal values present in *data* (title stripped)."""
    errors = {}
    values = _text_values(data, "title", ("description", "unit"), errors, partial)
    category = data.get("category")
    if category is not None and category not in SCORECARD_CATEGORIES:
        errors["category"] = f"must be one of: {', '.join(SCORECARD_CATEGORIES)}"
    priority = data.get("priority")
    if priority is not None and priority not in GOAL_PRIORITIES:
        errors["priority"] = f"must be one of: {', '.join(GOAL_PRIORITIES)}"
    for field in ("target_value", "current_value"):
        if not partial or field in data:
            values[field] = _float(data, field, errors)
    if errors:
        raise ValidationError("Invalid goal data", details=errors)
    return values


def create_goal(data, user_id="system"):
    _require_element(data.get("element_id"))
    values = _validate_goal(data)
    goal = StrategicGoal(
        element_id=data["element_id"],
        category=data.get("category") or "Financial",
        priority=data.get("priority") or "Medium",
        **values,
    )
    db.session.add(goal)
    db.session.flush()
    log_activity(
        action="created", entity_type="goal", entity_id=goal.id,
        entity_name=goal.title, user_id=user_id,
    )
    logger.info("Strategic goal created id=%s category=%s", goal.id, goal.category)
    return goal


def update_goal(goal, data, user_id="system"):
    values = _validate_goal(data, partial=True)
    if "element_id" in data and data["element_id"] != goal.element_id:
        _require_element(data["element_id"])
        goal.element_id = data["element_id"]
    for field in ("category", "priority"):
        if data.get(field):
            setattr(goal, field, data[field])
    for field, value in values.items():
        setattr(goal, field, value)
    db.session.flush()
    log_activity(
        action="updated", entity_type="goal", entity_id=goal.id,
        entity_name=goal.title, user_id=user_id,
    )
    return goal


def delete_goal(goal, user_id="system"):
    """Delete a goal. Measures linked to it keep existing, unlinked."""
    goal_id, title = goal.id, goal.title
    db.session.execute(
        update(PerformanceMeasure)
        .where(PerformanceMeasure.strategic_goal_id == goal_id)
        .values(strategic_goal_id=None)
        .execution_options(synchronize_session="fetch")
    )
    db.session.delete(goal)
    db.session.flush()
    log_activity(
        action="deleted", entity_type="goal", entity_id=goal_id,
        entity_name=title, user_id=user_id,
    )


# ── Element performance metrics ──────────────────────────────────────────


def get_metric(metric_id):
    metric = db.session.get(ElementPerformanceMetric, metric_id)
    if metric is None:
        raise NotFoundError(resource="ElementPerformanceMetric", resource_id=metric_id)
    return metric


def list_metrics(element_id=None):
    stmt = select(ElementPerformanceMetric).order_by(ElementPerformanceMetric.metric_name)
    if element_id:
        stmt = stmt.where(ElementPerformanceMetric.element_id == element_id)
    return db.session.execute(stmt).scalars().all()


def _validate_metric(data, partial=False):
    errors = {}
    values = _text_values(data, "metric_name", ("unit",), errors, partial)
    trend = data.get("trend")
    if trend is not None and trend not in METRIC_TRENDS:
        errors["trend"] = f"must be one of: {', '.join(METRIC_TRENDS)}"
    for field in ("current_value", "target_value"):
        if not partial or field in data:
            values[field] = _float(data, field, errors)
    if errors:
        raise ValidationError("Invalid metric data", details=errors)
    return values


def create_metric(data):
    _require_element(data.get("element_id"))
    values = _validate_metric(data)
    metric = ElementPerformanceMetric(
        element_id=data["element_id"],
        trend=data.get("trend") or "stable",
        **values,
    )
    metric.recalculate_percentage()
    db.session.add(metric)
    db.session.flush()
    return metric


def update_metric(metric, data):
    values = _validate_metric(data, partial=True)
    if data.get("trend"):
        metric.trend = data["trend"]
    for field, value in values.items():
        setattr(metric, field, value)
    metric.recalculate_percentage()
    db.session.flush()
    return metric


def delete_metric(metric):
    db.session.delete(metric)
    db.session.flush()
