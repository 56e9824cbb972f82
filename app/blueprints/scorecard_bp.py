"""
Operational Excellence Manager
Read-only aggregate views: balanced scorecard and mind maps.

Endpoints:
    GET /api/v1/scorecard/summary                 category roll-up + per-element groups
    GET /api/v1/scorecard/performance-measures    categorised measures (optional ?category=)
    GET /api/v1/mindmap/elements                  Element → Process → Step tree
    GET /api/v1/mindmap/goals-processes           Goal → Process → Measure tree
"""

import logging

from flask import Blueprint, jsonify, request

from app.blueprints import register_error_handlers
from app.services.framework_tree import get_element_tree, get_goal_tree
from app.services.scorecard_service import (
    get_scorecard_summary,
    load_scorecard_rows,
    normalize_category,
)

logger = logging.getLogger(__name__)

scorecard_bp = register_error_handlers(Blueprint("scorecard", __name__, url_prefix="/api/v1"))


@scorecard_bp.route("/scorecard/summary", methods=["GET"])
def scorecard_summary():
    return jsonify(get_scorecard_summary())


@scorecard_bp.route("/scorecard/performance-measures", methods=["GET"])
def scorecard_measures():
    rows = load_scorecard_rows()
    category = request.args.get("category")
    if category:
        rows = [r for r in rows if normalize_category(r["scorecard_category"]) == category]
    return jsonify({"items": rows, "total": len(rows)})


@scorecard_bp.route("/mindmap/elements", methods=["GET"])
def mindmap_elements():
    include_measures = request.args.get("include_measures") == "1"
    return jsonify(get_element_tree(include_measures=include_measures))


@scorecard_bp.route("/mindmap/goals-processes", methods=["GET"])
def mindmap_goals():
    return jsonify(get_goal_tree())
