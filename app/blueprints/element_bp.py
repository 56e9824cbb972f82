"""
Operational Excellence Manager
Element blueprint — CRUD for framework elements.

Endpoints:
    GET    /api/v1/elements          list (ordered by element number)
    POST   /api/v1/elements
    GET    /api/v1/elements/<id>     element with processes, steps, measures
    PUT    /api/v1/elements/<id>
    DELETE /api/v1/elements/<id>     cascades to processes, goals, metrics
"""

import logging

from flask import Blueprint, jsonify, request
from sqlalchemy import func, select

import app.services.element_service as element_service
from app.blueprints import register_error_handlers
from app.models import db
from app.models.framework import OeElement, OeProcess
from app.services.framework_tree import get_element_detail
from app.utils.helpers import db_commit_or_error, json_body, missing_fields

logger = logging.getLogger(__name__)

element_bp = register_error_handlers(Blueprint("elements", __name__, url_prefix="/api/v1"))


@element_bp.route("/elements", methods=["GET"])
def list_elements():
    stmt = select(OeElement).order_by(OeElement.element_number)
    if request.args.get("active") == "1":
        stmt = stmt.where(OeElement.is_active.is_(True))
    elements = db.session.execute(stmt).scalars().all()

    counts = dict(db.session.execute(
        select(OeProcess.element_id, func.count(OeProcess.id)).group_by(OeProcess.element_id)
    ).all())
    items = []
    for element in elements:
        row = element.to_dict()
        row["process_count"] = counts.get(element.id, 0)
        items.append(row)
    return jsonify({"items": items, "total": len(items)})


@element_bp.route("/elements", methods=["POST"])
def create_element():
    data, err = json_body()
    if err:
        return err
    err = missing_fields(data, "element_number", "title")
    if err:
        return err

    element = element_service.create_element(data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(element.to_dict()), 201


@element_bp.route("/elements/<element_id>", methods=["GET"])
def get_element(element_id):
    return jsonify(get_element_detail(element_id))


@element_bp.route("/elements/<element_id>", methods=["PUT"])
def update_element(element_id):
    element = element_service.get_element(element_id)
    data, err = json_body()
    if err:
        return err

    element_service.update_element(element, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(element.to_dict())


@element_bp.route("/elements/<element_id>", methods=["DELETE"])
def delete_element(element_id):
    element = element_service.get_element(element_id)
    element_service.delete_element(element)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"deleted": True, "id": element_id})
