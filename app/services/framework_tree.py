"""Framework tree aggregation — flat rows in, nested view models out.

Two shapes:
    - Element → Process → Step (/ Measure)   dashboard + elements mind map
    - Goal → Process → Measure               scorecard mind map + goals export

The ``build_*`` functions are pure: they take lists of plain dicts (the
models' ``to_dict()`` output), never mutate them, and return fresh nodes.
The ``get_*`` functions load one batch per entity level and hand the rows
to the builders.

Rows whose parent cannot be resolved are dropped and logged; the tree is
still returned.
"""

import logging

from sqlalchemy import select

from app.core.exceptions import NotFoundError
from app.models import db
from app.models.framework import (
    GOAL_PRIORITIES,
    SCORECARD_CATEGORIES,
    OeElement,
    OeProcess,
    PerformanceMeasure,
    ProcessStep,
    StrategicGoal,
)
from app.utils.natural_sort import natural_sorted

logger = logging.getLogger(__name__)


# ── Ordering helpers ─────────────────────────────────────────────────────


def _step_order(step):
    number = step.get("step_number")
    return number if number is not None else 0


def _measure_order(measure):
    return measure.get("measure_name") or ""


def _category_rank(category):
    try:
        return SCORECARD_CATEGORIES.index(category)
    except ValueError:
        return len(SCORECARD_CATEGORIES)


def _priority_rank(priority):
    try:
        return GOAL_PRIORITIES.index(priority)
    except ValueError:
        return len(GOAL_PRIORITIES)


def _group_by(rows, field, valid_ids, label):
    """Bucket *rows* by *field*; rows pointing outside *valid_ids* are dropped."""
    groups = {}
    for row in rows:
        parent_id = row.get(field)
        if parent_id not in valid_ids:
            logger.warning(
                "Dropping %s id=%s: dangling %s=%s", label, row.get("id"), field, parent_id,
            )
            continue
        groups.setdefault(parent_id, []).append(row)
    return groups


# ── Element → Process → Step ─────────────────────────────────────────────


def build_element_tree(elements, processes, steps, measures=None):
    """Nest flat rows into element nodes.

    Args:
        elements: element dicts.
        processes: process dicts carrying ``element_id``.
        steps: step dicts carrying ``process_id``.
        measures: optional measure dicts carrying ``process_id``. When
            ``None`` the process nodes have no ``measures`` key.

    Returns:
        List of element dicts ordered by ``element_number``, each with a
        ``processes`` list ordered naturally by ``process_number``; every
        process carries ``steps`` ordered by ``step_number`` (ties keep
        input order).
    """
    element_ids = {e["id"] for e in elements}
    processes_by_element = _group_by(processes, "element_id", element_ids, "process")

    process_ids = {p["id"] for group in processes_by_element.values() for p in group}
    steps_by_process = _group_by(steps, "process_id", process_ids, "step")
    measures_by_process = (
        _group_by(measures, "process_id", process_ids, "measure")
        if measures is not None else None
    )

    tree = []
    for element in sorted(elements, key=lambda e: e.get("element_number") or 0):
        process_nodes = []
        ordered = natural_sorted(
            processes_by_element.get(element["id"], []),
            key=lambda p: p.get("process_number"),
        )
        for process in ordered:
            node = dict(process)
            node["steps"] = [
                dict(s) for s in sorted(steps_by_process.get(process["id"], []), key=_step_order)
            ]
            if measures_by_process is not None:
                node["measures"] = [
                    dict(m)
                    for m in sorted(measures_by_process.get(process["id"], []), key=_measure_order)
                ]
            process_nodes.append(node)

        element_node = dict(element)
        element_node["processes"] = process_nodes
        element_node["process_count"] = len(process_nodes)
        tree.append(element_node)

    return tree


# ── Goal → Process → Measure ─────────────────────────────────────────────


def _element_summary(element):
    if element is None:
        return None
    return {
        "id": element["id"],
        "title": element.get("title"),
        "element_number": element.get("element_number"),
    }


def _process_summary(process):
    return {
        "id": process["id"],
        "name": process.get("name"),
        "process_number": process.get("process_number"),
        "description": process.get("description"),
        "status": process.get("status"),
        "element_id": process.get("element_id"),
        "measures": [],
    }


def _measure_summary(measure):
    return {
        "id": measure["id"],
        "name": measure.get("measure_name"),
        "formula": measure.get("formula"),
        "target": measure.get("target"),
        "frequency": measure.get("frequency"),
        "source": measure.get("source"),
        "scorecard_category": measure.get("scorecard_category"),
    }


def build_goal_tree(goals, measures, processes, elements=()):
    """Fan goals out to the processes their measures belong to.

    A process reached through several measures of the same goal appears
    once under that goal, with every such measure nested beneath it.
    Measures without a goal are ignored; measures whose goal or process
    does not resolve are dropped and logged.

    Returns:
        List of goal dicts ordered by scorecard category then priority,
        each with ``element`` (summary or ``None``) and ``processes``
        ordered naturally by ``process_number``.
    """
    elements_by_id = {e["id"]: e for e in elements}
    processes_by_id = {p["id"]: p for p in processes}
    goal_ids = {g["id"] for g in goals}

    linked = [m for m in measures if m.get("strategic_goal_id")]
    measures_by_goal = _group_by(linked, "strategic_goal_id", goal_ids, "measure")

    tree = []
    ordered_goals = sorted(
        goals, key=lambda g: (_category_rank(g.get("category")), _priority_rank(g.get("priority"))),
    )
    for goal in ordered_goals:
        process_nodes = {}
        for measure in sorted(measures_by_goal.get(goal["id"], []), key=_measure_order):
            process = processes_by_id.get(measure.get("process_id"))
            if process is None:
                logger.warning(
                    "Dropping measure id=%s from goal id=%s: dangling process_id=%s",
                    measure.get("id"), goal["id"], measure.get("process_id"),
                )
                continue
            node = process_nodes.get(process["id"])
            if node is None:
                node = process_nodes[process["id"]] = _process_summary(process)
            if all(m["id"] != measure["id"] for m in node["measures"]):
                node["measures"].append(_measure_summary(measure))

        goal_node = dict(goal)
        goal_node["element"] = _element_summary(elements_by_id.get(goal.get("element_id")))
        goal_node["processes"] = natural_sorted(
            process_nodes.values(), key=lambda p: p.get("process_number"),
        )
        goal_node["process_count"] = len(goal_node["processes"])
        tree.append(goal_node)

    return tree


# ── Loaders (one query per level) ────────────────────────────────────────


def _rows(model, *order_by, where=None):
    stmt = select(model)
    if where is not None:
        stmt = stmt.where(where)
    if order_by:
        stmt = stmt.order_by(*order_by)
    return [obj.to_dict() for obj in db.session.execute(stmt).scalars().all()]


def get_element_tree(include_measures=False):
    """Return the full Element → Process → Step tree, naturally sorted."""
    elements = _rows(OeElement, OeElement.element_number)
    processes = _rows(OeProcess)
    steps = _rows(ProcessStep, ProcessStep.step_number)
    measures = _rows(PerformanceMeasure) if include_measures else None
    return build_element_tree(elements, processes, steps, measures)


def get_element_detail(element_id):
    """Return one element node with processes, steps and measures.

    Raises:
        NotFoundError: the element does not exist.
    """
    element = db.session.get(OeElement, element_id)
    if element is None:
        raise NotFoundError(resource="OeElement", resource_id=element_id)

    processes = _rows(OeProcess, where=OeProcess.element_id == element_id)
    process_ids = [p["id"] for p in processes]
    if process_ids:
        steps = _rows(ProcessStep, ProcessStep.step_number, where=ProcessStep.process_id.in_(process_ids))
        measures = _rows(PerformanceMeasure, where=PerformanceMeasure.process_id.in_(process_ids))
    else:
        steps, measures = [], []

    tree = build_element_tree([element.to_dict()], processes, steps, measures)
    return tree[0]


def get_goal_tree():
    """Return the full Goal → Process → Measure tree, deduplicated."""
    goals = _rows(StrategicGoal)
    measures = _rows(
        PerformanceMeasure, where=PerformanceMeasure.strategic_goal_id.is_not(None),
    )
    process_ids = {m["process_id"] for m in measures}
    processes = (
        _rows(OeProcess, where=OeProcess.id.in_(process_ids)) if process_ids else []
    )
    elements = _rows(OeElement)
    return build_goal_tree(goals, measures, processes, elements)
