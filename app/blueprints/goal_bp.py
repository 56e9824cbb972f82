"""
Operational Excellence Manager
Strategic goal and element performance metric endpoints.

Endpoints:
    GOAL    /api/v1/strategic-goals                     GET, POST
            /api/v1/strategic-goals/element/<id>        GET
            /api/v1/strategic-goals/<id>                GET, PUT, DELETE
    METRIC  /api/v1/performance-metrics                 GET, POST
            /api/v1/performance-metrics/element/<id>    GET
            /api/v1/performance-metrics/<id>            PUT, DELETE
"""

import logging

from flask import Blueprint, jsonify

import app.services.goal_service as goal_service
from app.blueprints import register_error_handlers
from app.services.element_service import get_element
from app.utils.helpers import db_commit_or_error, json_body, missing_fields

logger = logging.getLogger(__name__)

goal_bp = register_error_handlers(Blueprint("goals", __name__, url_prefix="/api/v1"))


# ── Strategic goals ──────────────────────────────────────────────────────

@goal_bp.route("/strategic-goals", methods=["GET"])
def list_goals():
    goals = goal_service.list_goals()
    return jsonify({"items": [g.to_dict() for g in goals], "total": len(goals)})


@goal_bp.route("/strategic-goals/element/<element_id>", methods=["GET"])
def list_element_goals(element_id):
    get_element(element_id)
    goals = goal_service.list_goals(element_id=element_id)
    return jsonify({"items": [g.to_dict() for g in goals], "total": len(goals)})


@goal_bp.route("/strategic-goals", methods=["POST"])
def create_goal():
    data, err = json_body()
    if err:
        return err
    err = missing_fields(data, "element_id", "title")
    if err:
        return err

    goal = goal_service.create_goal(data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(goal.to_dict()), 201


@goal_bp.route("/strategic-goals/<goal_id>", methods=["GET"])
def get_goal(goal_id):
    return jsonify(goal_service.get_goal(goal_id).to_dict())


@goal_bp.route("/strategic-goals/<goal_id>", methods=["PUT"])
def update_goal(goal_id):
    goal = goal_service.get_goal(goal_id)
    data, err = json_body()
    if err:
        return err
    goal_service.update_goal(goal, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(goal.to_dict())


@goal_bp.route("/strategic-goals/<goal_id>", methods=["DELETE"])
def delete_goal(goal_id):
    goal_service.delete_goal(goal_service.get_goal(goal_id))
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"deleted": True, "id": goal_id})


# ── Element performance metrics ──────────────────────────────────────────

@goal_bp.route("/performance-metrics", methods=["GET"])
def list_metrics():
    metrics = goal_service.list_metrics()
    return jsonify({"items": [m.to_dict() for m in metrics], "total": len(metrics)})


@goal_bp.route("/performance-metrics/element/<element_id>", methods=["GET"])
def list_element_metrics(element_id):
    get_element(element_id)
    metrics = goal_service.list_metrics(element_id=element_id)
    return jsonify({"items": [m.to_dict() for m in metrics], "total": len(metrics)})


@goal_bp.route("/performance-metrics", methods=["POST"])
def create_metric():
    data, err = json_body()
    if err:
        return err
    err = missing_fields(data, "element_id", "metric_name")
    if err:
        return err

    metric = goal_service.create_metric(data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(metric.to_dict()), 201


@goal_bp.route("/performance-metrics/<metric_id>", methods=["PUT"])
def update_metric(metric_id):
    metric = goal_service.get_metric(metric_id)
    data, err = json_body()
    if err:
        return err
    goal_service.update_metric(metric, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(metric.to_dict())


@goal_bp.route("/performance-metrics/<metric_id>", methods=["DELETE"])
def delete_metric(metric_id):
    goal_service.delete_metric(goal_service.get_metric(metric_id))
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"deleted": True, "id": metric_id})
