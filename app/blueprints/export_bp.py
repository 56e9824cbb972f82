"""
Document and data exports.

    GET /api/v1/export/elements.pdf            framework tree as PDF
    GET /api/v1/export/goals.pdf               goals with linked processes
    GET /api/v1/export/processes/<id>.pdf      single process document
    GET /api/v1/export/processes.csv           process register
    GET /api/v1/export/scorecard.xlsx          scorecard workbook
    GET /api/v1/export/scorecard.csv           categorised measures
    GET /api/v1/export/blocks/<kind>           paginated blocks as JSON
                                               (kind=process needs ?process_id=)

Everything is generated in memory; nothing is written to disk.
"""

import logging
from datetime import datetime, timezone

from flask import Blueprint, Response, current_app, jsonify, request

import app.services.process_service as ps
from app.blueprints import register_error_handlers
from app.services.export_formatter import EXPORT_KINDS, format_for_export
from app.services.export_service import (
    generate_processes_csv,
    generate_scorecard_csv,
    generate_scorecard_xlsx,
    render_blocks_pdf,
)
from app.services.framework_tree import get_element_tree, get_goal_tree
from app.services.scorecard_service import load_scorecard_rows, summarize_scorecard
from app.utils.errors import E, api_error

logger = logging.getLogger(__name__)

export_bp = register_error_handlers(Blueprint("export", __name__, url_prefix="/api/v1"))

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _date_str():
    return datetime.now(timezone.utc).strftime("%Y%m%d")


def _attachment(content, mimetype, filename):
    return Response(
        content,
        mimetype=mimetype,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


def _tree_for(kind, process_id=None):
    """Return (tree, title) for an export kind."""
    if kind == "elements":
        return get_element_tree(), current_app.config["EXPORT_TITLE"]
    if kind == "goals":
        return get_goal_tree(), None
    process = ps.get_process(process_id)
    return ps.get_process_detail(process), None


def _pdf_response(kind, filename, process_id=None):
    tree, title = _tree_for(kind, process_id)
    blocks = format_for_export(tree, kind, title=title)
    content = render_blocks_pdf(blocks, title=title or filename)
    logger.info("PDF export kind=%s blocks=%d bytes=%d", kind, len(blocks), len(content))
    return _attachment(content, "application/pdf", filename)


@export_bp.route("/export/elements.pdf", methods=["GET"])
def export_elements_pdf():
    return _pdf_response("elements", f"OE_Framework_{_date_str()}.pdf")


@export_bp.route("/export/goals.pdf", methods=["GET"])
def export_goals_pdf():
    return _pdf_response("goals", f"OE_Strategic_Goals_{_date_str()}.pdf")


@export_bp.route("/export/processes/<process_id>.pdf", methods=["GET"])
def export_process_pdf(process_id):
    process = ps.get_process(process_id)
    filename = f"{process.process_number}_{_date_str()}.pdf".replace(" ", "_")
    return _pdf_response("process", filename, process_id=process_id)


@export_bp.route("/export/processes.csv", methods=["GET"])
def export_processes_csv():
    processes = ps.list_processes(
        element_id=request.args.get("element_id"),
        status=request.args.get("status"),
    )
    return _attachment(
        generate_processes_csv(processes), "text/csv", f"OE_Processes_{_date_str()}.csv",
    )


@export_bp.route("/export/scorecard.csv", methods=["GET"])
def export_scorecard_csv():
    rows = load_scorecard_rows()
    return _attachment(generate_scorecard_csv(rows), "text/csv", f"OE_Scorecard_{_date_str()}.csv")


@export_bp.route("/export/scorecard.xlsx", methods=["GET"])
def export_scorecard_xlsx():
    rows = load_scorecard_rows()
    content = generate_scorecard_xlsx(
        summarize_scorecard(rows), rows, org_name=current_app.config["EXPORT_ORG_NAME"],
    )
    return _attachment(content, XLSX_MIMETYPE, f"OE_Scorecard_{_date_str()}.xlsx")


@export_bp.route("/export/blocks/<kind>", methods=["GET"])
def export_blocks(kind):
    if kind not in EXPORT_KINDS:
        return api_error(
            E.VALIDATION_INVALID,
            f"Unknown export kind. Supported values: {', '.join(EXPORT_KINDS)}.",
        )
    process_id = request.args.get("process_id")
    if kind == "process" and not process_id:
        return api_error(E.VALIDATION_REQUIRED, "process_id is required for kind=process")

    tree, title = _tree_for(kind, process_id)
    blocks = format_for_export(tree, kind, title=title)
    pages = max((b.page for b in blocks), default=0)
    return jsonify({"kind": kind, "pages": pages, "blocks": [b.to_dict() for b in blocks]})
