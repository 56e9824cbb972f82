"""Dashboard statistics, activity feed, risk register and public site info."""
import logging

from flask import current_app
from sqlalchemy import func, select

from app.models import db
from app.models.audit import ActivityLog
from app.models.framework import OeElement, OeProcess, risk_level
from app.utils.natural_sort import natural_sorted

logger = logging.getLogger(__name__)

RISK_REGISTER_LEVELS = ("High Risk", "Medium Risk", "Low Risk", "Not Assessed")
DEFAULT_ACTIVITY_LIMIT = 10
MAX_ACTIVITY_LIMIT = 100


def _count(stmt):
    return db.session.execute(stmt).scalar() or 0


def get_dashboard_stats():
    """Headline numbers for the dashboard.

    ``completion_rate`` is the share of processes in ``active`` status,
    rounded to a whole percent (0 when there are no processes).
    """
    total = _count(select(func.count(OeProcess.id)))
    active_processes = _count(
        select(func.count(OeProcess.id)).where(OeProcess.status == "active")
    )
    return {
        "total_processes": total,
        "active_elements": _count(
            select(func.count(OeElement.id)).where(OeElement.is_active.is_(True))
        ),
        "pending_reviews": _count(
            select(func.count(OeProcess.id)).where(OeProcess.status == "review")
        ),
        "completion_rate": round(active_processes / total * 100) if total else 0,
    }


def get_recent_activity(limit=DEFAULT_ACTIVITY_LIMIT):
    limit = max(1, min(int(limit or DEFAULT_ACTIVITY_LIMIT), MAX_ACTIVITY_LIMIT))
    stmt = (
        select(ActivityLog)
        .order_by(ActivityLog.created_at.desc(), ActivityLog.id)
        .limit(limit)
    )
    return [a.to_dict() for a in db.session.execute(stmt).scalars().all()]


def get_risk_register():
    """Group every process by its assessed risk level.

    Returns:
        dict with ``levels`` ({level: [process summaries]}), ``counts``
        ({level: int}) and ``total``.
    """
    rows = db.session.execute(
        select(OeProcess, OeElement.element_number, OeElement.title)
        .join(OeElement, OeProcess.element_id == OeElement.id)
    ).all()

    levels = {level: [] for level in RISK_REGISTER_LEVELS}
    for process, element_number, element_title in natural_sorted(
        rows, key=lambda r: r[0].process_number,
    ):
        risk = risk_level(process.risk_frequency, process.risk_impact)
        levels[risk["level"]].append({
            "id": process.id,
            "process_number": process.process_number,
            "name": process.name,
            "element_number": element_number,
            "element_title": element_title,
            "risk_frequency": process.risk_frequency,
            "risk_impact": process.risk_impact,
            "risk_description": process.risk_description,
            "risk_mitigation": process.risk_mitigation,
            "risk": risk,
        })

    # High scores first within each level.
    for entries in levels.values():
        entries.sort(key=lambda e: -e["risk"]["score"])

    return {
        "levels": levels,
        "counts": {level: len(entries) for level, entries in levels.items()},
        "total": len(rows),
    }


def get_site_info():
    """Public summary of the framework for unauthenticated readers."""
    counts = dict(db.session.execute(
        select(OeProcess.element_id, func.count(OeProcess.id)).group_by(OeProcess.element_id)
    ).all())
    elements = db.session.execute(
        select(OeElement).order_by(OeElement.element_number)
    ).scalars().all()
    stats = get_dashboard_stats()

    return {
        "site_name": current_app.config["EXPORT_ORG_NAME"],
        "title": current_app.config["EXPORT_TITLE"],
        "statistics": {
            "total_processes": stats["total_processes"],
            "active_elements": stats["active_elements"],
            "total_elements": len(elements),
        },
        "elements": [
            {
                "number": e.element_number,
                "title": e.title,
                "description": e.description,
                "process_count": counts.get(e.id, 0),
            }
            for e in elements
        ],
    }
