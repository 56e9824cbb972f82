"""
Operational Excellence Manager
Process blueprint — processes and their steps, outcomes, measures,
versions and document attachments.

Endpoints:
    PROCESS   /api/v1/processes                      GET (element_id, status, search), POST
              /api/v1/processes/<id>                 GET, PUT (replaces steps/measures), PATCH, DELETE
    STEP      /api/v1/processes/<id>/steps           GET, POST
              /api/v1/steps/<id>                     PUT, DELETE
    OUTCOME   /api/v1/processes/<id>/outcomes        GET, POST
              /api/v1/outcomes/<id>                  DELETE
              /api/v1/processes/<id>/graph           GET
    MEASURE   /api/v1/processes/<id>/measures        GET, POST
              /api/v1/measures/<id>                  PUT, DELETE
    VERSION   /api/v1/processes/<id>/versions        GET, POST
    DOCUMENT  /api/v1/processes/<id>/documents       GET, POST
              /api/v1/documents/<id>                 DELETE
"""

import logging

from flask import Blueprint, jsonify, request

import app.services.process_service as ps
from app.blueprints import register_error_handlers
from app.utils.helpers import db_commit_or_error, json_body, missing_fields

logger = logging.getLogger(__name__)

process_bp = register_error_handlers(Blueprint("processes", __name__, url_prefix="/api/v1"))


def _commit_and_return(payload, status=200):
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(payload), status


# ═══════════════════════════════════════════════════════════════════════════
#  PROCESS CRUD
# ═══════════════════════════════════════════════════════════════════════════

@process_bp.route("/processes", methods=["GET"])
def list_processes():
    items = ps.list_processes(
        element_id=request.args.get("element_id"),
        status=request.args.get("status"),
        search=(request.args.get("search") or "").strip() or None,
    )
    return jsonify({"items": items, "total": len(items)})


@process_bp.route("/processes", methods=["POST"])
def create_process():
    data, err = json_body()
    if err:
        return err
    err = missing_fields(data, "element_id", "process_number", "name")
    if err:
        return err

    process = ps.create_process(data)
    for step_data in data.get("steps") or []:
        ps.create_step(process, step_data)
    for measure_data in data.get("measures") or []:
        ps.create_measure(process, measure_data)

    err = db_commit_or_error()
    if err:
        return err
    return jsonify(ps.get_process_detail(process)), 201


@process_bp.route("/processes/<process_id>", methods=["GET"])
def get_process(process_id):
    return jsonify(ps.get_process_detail(ps.get_process(process_id)))


@process_bp.route("/processes/<process_id>", methods=["PUT"])
def update_process(process_id):
    process = ps.get_process(process_id)
    data, err = json_body()
    if err:
        return err
    ps.update_process(process, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(ps.get_process_detail(process))


@process_bp.route("/processes/<process_id>", methods=["PATCH"])
def patch_process(process_id):
    process = ps.get_process(process_id)
    data, err = json_body()
    if err:
        return err
    ps.patch_process(process, data)
    return _commit_and_return(process.to_dict())


@process_bp.route("/processes/<process_id>", methods=["DELETE"])
def delete_process(process_id):
    ps.delete_process(ps.get_process(process_id))
    return _commit_and_return({"deleted": True, "id": process_id})


# ═══════════════════════════════════════════════════════════════════════════
#  STEPS
# ═══════════════════════════════════════════════════════════════════════════

@process_bp.route("/processes/<process_id>/steps", methods=["GET"])
def list_steps(process_id):
    return jsonify(ps.list_steps(ps.get_process(process_id)))


@process_bp.route("/processes/<process_id>/steps", methods=["POST"])
def create_step(process_id):
    process = ps.get_process(process_id)
    data, err = json_body()
    if err:
        return err
    err = missing_fields(data, "step_number", "step_name")
    if err:
        return err
    step = ps.create_step(process, data)
    return _commit_and_return(step.to_dict(), 201)


@process_bp.route("/steps/<step_id>", methods=["PUT"])
def update_step(step_id):
    step = ps.get_step(step_id)
    data, err = json_body()
    if err:
        return err
    ps.update_step(step, data)
    return _commit_and_return(step.to_dict())


@process_bp.route("/steps/<step_id>", methods=["DELETE"])
def delete_step(step_id):
    ps.delete_step(ps.get_step(step_id))
    return _commit_and_return({"deleted": True, "id": step_id})


# ═══════════════════════════════════════════════════════════════════════════
#  OUTCOMES / DECISION GRAPH
# ═══════════════════════════════════════════════════════════════════════════

@process_bp.route("/processes/<process_id>/outcomes", methods=["GET"])
def list_outcomes(process_id):
    process = ps.get_process(process_id)
    return jsonify([o.to_dict() for o in process.outcomes])


@process_bp.route("/processes/<process_id>/outcomes", methods=["POST"])
def create_outcome(process_id):
    process = ps.get_process(process_id)
    data, err = json_body()
    if err:
        return err
    err = missing_fields(data, "from_step_id", "to_step_id")
    if err:
        return err
    outcome = ps.create_outcome(process, data)
    return _commit_and_return(outcome.to_dict(), 201)


@process_bp.route("/outcomes/<outcome_id>", methods=["DELETE"])
def delete_outcome(outcome_id):
    ps.delete_outcome(ps.get_outcome(outcome_id))
    return _commit_and_return({"deleted": True, "id": outcome_id})


@process_bp.route("/processes/<process_id>/graph", methods=["GET"])
def process_graph(process_id):
    return jsonify(ps.get_process_graph(ps.get_process(process_id)))


# ═══════════════════════════════════════════════════════════════════════════
#  MEASURES
# ═══════════════════════════════════════════════════════════════════════════

@process_bp.route("/processes/<process_id>/measures", methods=["GET"])
def list_measures(process_id):
    return jsonify(ps.list_measures(ps.get_process(process_id)))


@process_bp.route("/processes/<process_id>/measures", methods=["POST"])
def create_measure(process_id):
    process = ps.get_process(process_id)
    data, err = json_body()
    if err:
        return err
    err = missing_fields(data, "measure_name")
    if err:
        return err
    measure = ps.create_measure(process, data)
    return _commit_and_return(measure.to_dict(), 201)


@process_bp.route("/measures/<measure_id>", methods=["PUT"])
def update_measure(measure_id):
    measure = ps.get_measure(measure_id)
    data, err = json_body()
    if err:
        return err
    ps.update_measure(measure, data)
    return _commit_and_return(measure.to_dict())


@process_bp.route("/measures/<measure_id>", methods=["DELETE"])
def delete_measure(measure_id):
    ps.delete_measure(ps.get_measure(measure_id))
    return _commit_and_return({"deleted": True, "id": measure_id})


# ═══════════════════════════════════════════════════════════════════════════
#  VERSIONS & DOCUMENTS
# ═══════════════════════════════════════════════════════════════════════════

@process_bp.route("/processes/<process_id>/versions", methods=["GET"])
def list_versions(process_id):
    return jsonify(ps.list_versions(ps.get_process(process_id)))


@process_bp.route("/processes/<process_id>/versions", methods=["POST"])
def create_version(process_id):
    process = ps.get_process(process_id)
    data = {}
    if request.get_data():
        data, err = json_body()
        if err:
            return err
    version = ps.create_version(process, data)
    return _commit_and_return(version.to_dict(), 201)


@process_bp.route("/processes/<process_id>/documents", methods=["GET"])
def list_documents(process_id):
    return jsonify(ps.list_documents(ps.get_process(process_id)))


@process_bp.route("/processes/<process_id>/documents", methods=["POST"])
def create_document(process_id):
    process = ps.get_process(process_id)
    data, err = json_body()
    if err:
        return err
    err = missing_fields(data, "file_name", "file_url")
    if err:
        return err
    document = ps.create_document(process, data)
    return _commit_and_return(document.to_dict(), 201)


@process_bp.route("/documents/<document_id>", methods=["DELETE"])
def delete_document(document_id):
    ps.delete_document(ps.get_document(document_id))
    return _commit_and_return({"deleted": True, "id": document_id})
