"""File exports: PDF rendering of export blocks, CSV and Excel workbooks.

PDFs are drawn from the block sequence produced by
``export_formatter.format_for_export``; this module only maps the
already-paginated blocks onto ReportLab canvas pages.  Content is returned
in memory, no temp files are written.
"""
import csv
import io
import logging
from datetime import datetime, timezone

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

from app.models.framework import SCORECARD_CATEGORIES
from app.services.export_formatter import PageLayout

logger = logging.getLogger(__name__)

HEADER_FILL = PatternFill(start_color="354A5F", end_color="354A5F", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True, size=11)
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)
CATEGORY_FILLS = {
    "Financial": PatternFill(start_color="DCEBFA", end_color="DCEBFA", fill_type="solid"),
    "Customer": PatternFill(start_color="DFF3E3", end_color="DFF3E3", fill_type="solid"),
    "Internal Process": PatternFill(start_color="FFF1D6", end_color="FFF1D6", fill_type="solid"),
    "Learning & Growth": PatternFill(start_color="EDE3F7", end_color="EDE3F7", fill_type="solid"),
}

SCORECARD_COLUMNS = [
    "element_number", "element_title", "process_number", "process_name",
    "scorecard_category", "measure_name", "formula", "target", "frequency", "source",
]
PROCESS_COLUMNS = [
    "process_number", "name", "element_number", "element_title", "status",
    "process_owner", "issue_date", "revision", "risk_level", "step_count", "measure_count",
]


# ── PDF ──────────────────────────────────────────────────────────────────


def render_blocks_pdf(blocks, layout=None, title=None) -> bytes:
    """Draw a paginated block sequence onto an A4 canvas.

    Block ``y`` is the distance from the top of the page in millimetres;
    each line is drawn on its own baseline one line height further down.
    ``page_break`` blocks start a new canvas page.
    """
    layout = layout or PageLayout()
    buf = io.BytesIO()
    pdf = canvas.Canvas(buf, pagesize=(layout.page_width * mm, layout.page_height * mm))
    if title:
        pdf.setTitle(title)

    pages = 1
    for block in blocks:
        if block.kind == "page_break":
            pdf.showPage()
            pages += 1
            continue

        line_height = layout.line_height(block.font_size)
        pdf.setFont("Helvetica-Bold" if block.bold else "Helvetica", block.font_size)
        x = (layout.left_margin + block.indent) * mm
        for i, line in enumerate(block.lines, 1):
            baseline = layout.page_height - (block.y + i * line_height)
            pdf.drawString(x, baseline * mm, line)

    pdf.showPage()
    pdf.save()
    logger.debug("Rendered PDF: %d blocks on %d pages", len(blocks), pages)
    return buf.getvalue()


# ── CSV ──────────────────────────────────────────────────────────────────


def _csv_text(value):
    if value is None:
        return ""
    return str(value).replace("\n", " ")


def generate_scorecard_csv(rows) -> str:
    """One line per categorised measure, in scorecard row order."""
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(SCORECARD_COLUMNS)
    for row in rows:
        writer.writerow([_csv_text(row.get(col)) for col in SCORECARD_COLUMNS])
    return buf.getvalue()


def generate_processes_csv(processes) -> str:
    """Process register; *processes* are ``list_processes`` dicts."""
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(PROCESS_COLUMNS)
    for p in processes:
        element = p.get("element") or {}
        writer.writerow([
            p.get("process_number"),
            _csv_text(p.get("name")),
            element.get("element_number", ""),
            _csv_text(element.get("title")),
            p.get("status"),
            _csv_text(p.get("process_owner")),
            p.get("issue_date") or "",
            p.get("revision"),
            (p.get("risk") or {}).get("level", ""),
            p.get("step_count", 0),
            p.get("measure_count", 0),
        ])
    return buf.getvalue()


# ── Excel ────────────────────────────────────────────────────────────────


def _apply_header_style(ws, row: int, col_count: int) -> None:
    """Apply dark-header styling to an Excel row (1-indexed)."""
    for col in range(1, col_count + 1):
        cell = ws.cell(row=row, column=col)
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        cell.border = THIN_BORDER
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)


def _auto_width(ws) -> None:
    """Auto-size column widths based on content (capped at 60 chars)."""
    for col in ws.columns:
        max_len = 0
        col_letter = get_column_letter(col[0].column)
        for cell in col:
            if cell.value:
                max_len = max(max_len, min(len(str(cell.value)), 60))
        ws.column_dimensions[col_letter].width = max(max_len + 4, 12)


def generate_scorecard_xlsx(summary, rows, org_name="") -> bytes:
    """Scorecard workbook.

    Sheets:
        Summary   one row per category with pair and measure counts
        Measures  every categorised measure, coloured by category
    """
    wb = Workbook()

    ws = wb.active
    ws.title = "Summary"
    ws.merge_cells("A1:C1")
    ws["A1"] = f"Balanced Scorecard {org_name}".strip()
    ws["A1"].font = Font(size=16, bold=True)
    ws["A2"] = f"Generated: {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M UTC')}"
    ws["A2"].font = Font(size=10, italic=True, color="666666")

    header_row = 4
    for col, header in enumerate(["Category", "Processes", "Measures"], 1):
        ws.cell(row=header_row, column=col, value=header)
    _apply_header_style(ws, header_row, 3)

    row = header_row
    for category, bucket in summary.items():
        row += 1
        name_cell = ws.cell(row=row, column=1, value=category)
        name_cell.border = THIN_BORDER
        if category in CATEGORY_FILLS:
            name_cell.fill = CATEGORY_FILLS[category]
        for col, value in ((2, bucket["count"]), (3, bucket["measure_count"])):
            cell = ws.cell(row=row, column=col, value=value)
            cell.border = THIN_BORDER
            cell.alignment = Alignment(horizontal="center")
    _auto_width(ws)

    ws2 = wb.create_sheet("Measures")
    for col, header in enumerate(SCORECARD_COLUMNS, 1):
        ws2.cell(row=1, column=col, value=header.replace("_", " ").title())
    _apply_header_style(ws2, 1, len(SCORECARD_COLUMNS))
    for i, measure in enumerate(rows, 2):
        for col, key in enumerate(SCORECARD_COLUMNS, 1):
            cell = ws2.cell(row=i, column=col, value=measure.get(key))
            cell.border = THIN_BORDER
        category = measure.get("scorecard_category")
        if category in SCORECARD_CATEGORIES:
            ws2.cell(row=i, column=SCORECARD_COLUMNS.index("scorecard_category") + 1).fill = (
                CATEGORY_FILLS[category]
            )
    ws2.freeze_panes = "A2"
    _auto_width(ws2)

    buf = io.BytesIO()
    wb.save(buf)
    logger.info("Scorecard workbook generated: %d measures", len(rows))
    return buf.getvalue()
