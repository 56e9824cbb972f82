"""
Operational Excellence Manager
Dashboard, activity feed, risk register and public site info.

Endpoints:
    GET /api/v1/dashboard/stats
    GET /api/v1/activity-log?limit=10
    GET /api/v1/risk/register
    GET /api/v1/public/site-info
"""

import logging

from flask import Blueprint, jsonify, request

from app.blueprints import register_error_handlers
from app.services import dashboard_service

logger = logging.getLogger(__name__)

dashboard_bp = register_error_handlers(Blueprint("dashboard", __name__, url_prefix="/api/v1"))


@dashboard_bp.route("/dashboard/stats", methods=["GET"])
def dashboard_stats():
    return jsonify(dashboard_service.get_dashboard_stats())


@dashboard_bp.route("/activity-log", methods=["GET"])
def activity_log():
    limit = request.args.get("limit", dashboard_service.DEFAULT_ACTIVITY_LIMIT, type=int)
    return jsonify(dashboard_service.get_recent_activity(limit))


@dashboard_bp.route("/risk/register", methods=["GET"])
def risk_register():
    return jsonify(dashboard_service.get_risk_register())


@dashboard_bp.route("/public/site-info", methods=["GET"])
def site_info():
    return jsonify(dashboard_service.get_site_info())
