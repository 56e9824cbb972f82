"""Balanced-scorecard grouping of performance measures.

Input rows are measure-with-context dicts::

    {"id", "measure_name", "formula", "source", "frequency", "target",
     "scorecard_category", "strategic_goal_id",
     "process_id", "process_number", "process_name",
     "element_id", "element_number", "element_title"}

The four fixed categories always appear in summaries.  Any other
non-blank category lands in the ``"Other"`` bucket: its measures are
listed but it is not one of the fixed-category counts.
"""

import logging

from sqlalchemy import select

from app.models import db
from app.models.framework import (
    OTHER_CATEGORY,
    SCORECARD_CATEGORIES,
    OeElement,
    OeProcess,
    PerformanceMeasure,
)
from app.utils.natural_sort import natural_sort_key

logger = logging.getLogger(__name__)


def normalize_category(category):
    """Map a raw category to one of the fixed categories or ``"Other"``."""
    if category in SCORECARD_CATEGORIES:
        return category
    return OTHER_CATEGORY


def _measure_view(row):
    return dict(row)


def summarize_scorecard(rows):
    """Roll measures up per category.

    ``count`` is the number of distinct (element_id, process_id) pairs with
    at least one measure in the category; ``measure_count`` is the number
    of measures.

    Returns:
        dict ordered as the four fixed categories then ``"Other"``:
        ``{category: {"count", "measure_count", "measures"}}``.
    """
    summary = {
        category: {"count": 0, "measure_count": 0, "measures": []}
        for category in (*SCORECARD_CATEGORIES, OTHER_CATEGORY)
    }
    pairs = {category: set() for category in summary}

    for row in rows:
        category = normalize_category(row.get("scorecard_category"))
        if category == OTHER_CATEGORY:
            logger.debug(
                "Measure id=%s has unrecognised category %r",
                row.get("id"), row.get("scorecard_category"),
            )
        bucket = summary[category]
        bucket["measures"].append(_measure_view(row))
        bucket["measure_count"] += 1
        pairs[category].add((row.get("element_id"), row.get("process_id")))

    for category, seen in pairs.items():
        summary[category]["count"] = len(seen)

    return summary


def group_by_category(rows):
    """Return ``{category: [measures]}`` for the overview cards."""
    groups = {category: [] for category in (*SCORECARD_CATEGORIES, OTHER_CATEGORY)}
    for row in rows:
        groups[normalize_category(row.get("scorecard_category"))].append(_measure_view(row))
    return groups


def group_by_element(rows):
    """Return per-element scorecard groupings ordered by element number.

    Each entry: ``{"element_id", "element_number", "element_title",
    "categories": {category: [measures]}}`` where only categories that have
    measures are present.
    """
    elements = {}
    for row in rows:
        element_id = row.get("element_id")
        entry = elements.get(element_id)
        if entry is None:
            entry = elements[element_id] = {
                "element_id": element_id,
                "element_number": row.get("element_number"),
                "element_title": row.get("element_title"),
                "categories": {},
            }
        category = normalize_category(row.get("scorecard_category"))
        entry["categories"].setdefault(category, []).append(_measure_view(row))

    ordered = sorted(elements.values(), key=lambda e: e.get("element_number") or 0)
    for entry in ordered:
        entry["categories"] = {
            category: entry["categories"][category]
            for category in (*SCORECARD_CATEGORIES, OTHER_CATEGORY)
            if category in entry["categories"]
        }
    return ordered


# ── Loader ───────────────────────────────────────────────────────────────


def load_scorecard_rows():
    """Load every categorised measure joined to its process and element.

    Measures with a null or blank category are not scorecard rows.
    """
    stmt = (
        select(
            PerformanceMeasure.id,
            PerformanceMeasure.measure_name,
            PerformanceMeasure.formula,
            PerformanceMeasure.source,
            PerformanceMeasure.frequency,
            PerformanceMeasure.target,
            PerformanceMeasure.scorecard_category,
            PerformanceMeasure.strategic_goal_id,
            PerformanceMeasure.process_id,
            OeProcess.process_number,
            OeProcess.name.label("process_name"),
            OeProcess.element_id,
            OeElement.element_number,
            OeElement.title.label("element_title"),
        )
        .join(OeProcess, PerformanceMeasure.process_id == OeProcess.id)
        .join(OeElement, OeProcess.element_id == OeElement.id)
        .where(PerformanceMeasure.scorecard_category.is_not(None))
        .where(PerformanceMeasure.scorecard_category != "")
        .order_by(
            OeElement.element_number,
            PerformanceMeasure.scorecard_category,
            PerformanceMeasure.measure_name,
        )
    )
    rows = [dict(r._mapping) for r in db.session.execute(stmt).all()]
    # Within an element, keep processes in natural order for display.
    rows.sort(key=lambda r: (r["element_number"], natural_sort_key(r["process_number"])))
    return rows


def get_scorecard_summary():
    """Category roll-up plus per-element and per-category groupings."""
    rows = load_scorecard_rows()
    summary = summarize_scorecard(rows)
    return {
        "categories": summary,
        "by_element": group_by_element(rows),
        "by_category": group_by_category(rows),
        "total_measures": len(rows),
    }
