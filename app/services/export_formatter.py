"""Export formatter — aggregated trees to paginated draw instructions.

The output is an ordered list of ``ExportBlock`` objects (headings,
word-wrapped paragraphs and explicit page breaks) with page and vertical
position already resolved.  A renderer only has to draw them; see
``export_service.render_blocks_pdf``.

Units are millimetres on an A4 portrait page; font sizes are points.

Pagination rules:
    - A block never extends below ``PageLayout.bottom_limit``.
    - A heading needs room for itself plus a reserve (20 for level 1,
      15 below that) so it is never stranded at the foot of a page.
    - A paragraph taller than the remaining space is split line by line
      and continues on the next page.
    - Every new page starts with a ``page_break`` block.
"""

from __future__ import annotations

import logging
import math
import textwrap
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone

from app.core.exceptions import ExportFormattingError
from app.models.framework import risk_level

logger = logging.getLogger(__name__)

EXPORT_KINDS = ("elements", "goals", "process")

_EPSILON = 1e-9


@dataclass(frozen=True)
class PageLayout:
    """Page geometry and typographic constants for block layout."""

    page_width: float = 210.0
    page_height: float = 297.0
    top_margin: float = 20.0
    bottom_limit: float = 280.0
    left_margin: float = 20.0
    content_width: float = 170.0
    line_height_factor: float = 0.5
    block_spacing: float = 5.0
    # Average Helvetica glyph advance in mm per point of font size.
    glyph_width_factor: float = 0.18
    major_heading_reserve: float = 20.0
    minor_heading_reserve: float = 15.0

    @property
    def budget(self) -> float:
        return self.bottom_limit - self.top_margin

    def line_height(self, font_size: float) -> float:
        return font_size * self.line_height_factor

    def max_chars(self, font_size: float, width: float) -> int:
        return max(1, int(width / (font_size * self.glyph_width_factor)))

    def heading_reserve(self, level: int) -> float:
        return self.major_heading_reserve if level <= 1 else self.minor_heading_reserve


@dataclass
class ExportBlock:
    kind: str
    text: str = ""
    lines: list[str] = field(default_factory=list)
    number: str | None = None
    level: int = 0
    font_size: float = 10.0
    bold: bool = False
    indent: float = 0.0
    page: int = 1
    y: float = 0.0
    height: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


# ── Text wrapping ────────────────────────────────────────────────────────


def wrap_text(text: str, font_size: float, width: float, layout: PageLayout | None = None) -> list[str]:
    """Split *text* into lines that fit *width* at *font_size*.

    Explicit newlines are kept; blank source lines stay as empty lines.
    Words longer than a line are broken.
    """
    layout = layout or PageLayout()
    limit = layout.max_chars(font_size, width)
    lines: list[str] = []
    for raw in (text or "").splitlines() or [""]:
        if not raw.strip():
            lines.append("")
            continue
        lines.extend(textwrap.wrap(raw, width=limit, break_long_words=True, break_on_hyphens=False))
    return lines


# ── Pagination ───────────────────────────────────────────────────────────


class BlockPaginator:
    """Places heading/paragraph blocks on pages, inserting page breaks."""

    def __init__(self, layout: PageLayout | None = None):
        self.layout = layout or PageLayout()
        if self.layout.budget <= 0 or self.layout.content_width <= 0:
            raise ExportFormattingError(
                f"Page layout has no usable area (budget={self.layout.budget}, "
                f"width={self.layout.content_width})"
            )
        self.page = 1
        self.y = self.layout.top_margin
        self.blocks: list[ExportBlock] = []

    # -- cursor --------------------------------------------------------

    @property
    def remaining(self) -> float:
        return self.layout.bottom_limit - self.y

    @property
    def at_page_top(self) -> bool:
        return self.y <= self.layout.top_margin + _EPSILON

    def new_page(self) -> None:
        self.page += 1
        self.y = self.layout.top_margin
        self.blocks.append(ExportBlock(kind="page_break", page=self.page, y=self.y))

    def _place(self, block: ExportBlock, lines: list[str]) -> None:
        lh = self.layout.line_height(block.font_size)
        placed = ExportBlock(
            kind=block.kind,
            text=block.text,
            lines=list(lines),
            number=block.number,
            level=block.level,
            font_size=block.font_size,
            bold=block.bold,
            indent=block.indent,
            page=self.page,
            y=self.y,
            height=len(lines) * lh + self.layout.block_spacing,
        )
        self.blocks.append(placed)
        self.y += placed.height

    def _check_line_fits_page(self, block: ExportBlock) -> float:
        lh = self.layout.line_height(block.font_size)
        if lh + self.layout.block_spacing > self.layout.budget + _EPSILON:
            raise ExportFormattingError(
                f"A single {block.font_size}pt line does not fit a {self.layout.budget}mm page"
            )
        return lh

    # -- placement -----------------------------------------------------

    def add(self, block: ExportBlock) -> None:
        if self.remaining < 0:
            logger.warning("Negative page budget (%.1f) on page %d; forcing break", self.remaining, self.page)
            self.new_page()

        lh = self._check_line_fits_page(block)
        if block.kind == "heading":
            self._add_heading(block, lh)
        else:
            self._add_paragraph(block, lh)

    def _add_heading(self, block: ExportBlock, lh: float) -> None:
        height = len(block.lines) * lh + self.layout.block_spacing
        if height > self.layout.budget + _EPSILON:
            raise ExportFormattingError(f"Heading {block.number or block.text[:30]!r} is taller than a page")
        needed = min(height + self.layout.heading_reserve(block.level), self.layout.budget)
        if needed > self.remaining + _EPSILON and not self.at_page_top:
            self.new_page()
        self._place(block, block.lines)

    def _add_paragraph(self, block: ExportBlock, lh: float) -> None:
        pending = list(block.lines)
        while True:
            usable = self.remaining - self.layout.block_spacing
            fit = math.floor((usable + _EPSILON) / lh) if usable > 0 else 0
            if fit >= len(pending):
                self._place(block, pending)
                return
            if fit < 1:
                self.new_page()
                continue
            self._place(block, pending[:fit])
            pending = pending[fit:]
            self.new_page()


def paginate(blocks: list[ExportBlock], layout: PageLayout | None = None) -> list[ExportBlock]:
    """Lay out unplaced blocks; returns a new list including page breaks."""
    paginator = BlockPaginator(layout)
    for block in blocks:
        paginator.add(block)
    return paginator.blocks


def page_heights(blocks: list[ExportBlock]) -> dict[int, float]:
    """Total content height per page, for checks and diagnostics."""
    totals: dict[int, float] = {}
    for block in blocks:
        if block.kind != "page_break":
            totals[block.page] = totals.get(block.page, 0.0) + block.height
    return totals


# ── Document builders ────────────────────────────────────────────────────


class _DocumentBuilder:
    """Collects unplaced blocks with wrapped lines."""

    def __init__(self, layout: PageLayout):
        self.layout = layout
        self.blocks: list[ExportBlock] = []

    def heading(self, text, level=1, number=None, font_size=None):
        font_size = font_size or {0: 20, 1: 16, 2: 12}.get(level, 11)
        label = f"{number} {text}" if number else text
        self.blocks.append(ExportBlock(
            kind="heading",
            text=label,
            lines=wrap_text(label, font_size, self.layout.content_width, self.layout),
            number=number,
            level=level,
            font_size=font_size,
            bold=True,
        ))

    def paragraph(self, text, font_size=10, indent=0.0, bold=False):
        if text is None or not str(text).strip():
            return
        width = self.layout.content_width - indent
        self.blocks.append(ExportBlock(
            kind="paragraph",
            text=str(text),
            lines=wrap_text(str(text), font_size, width, self.layout),
            font_size=font_size,
            bold=bold,
            indent=indent,
        ))


def _generated_line(generated_at):
    stamp = (generated_at or datetime.now(timezone.utc)).strftime("%Y-%m-%d %H:%M UTC")
    return f"Generated on: {stamp}"


def _format_number(value):
    if value is None:
        return "-"
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


def _build_elements_document(doc, tree, title, generated_at):
    doc.heading(title, level=0)
    doc.paragraph(_generated_line(generated_at), font_size=10)

    for i, element in enumerate(tree, 1):
        number = str(i)
        doc.heading(f"Element {element.get('element_number')}: {element.get('title')}", level=1, number=number)
        doc.paragraph(element.get("description"))
        enabling = element.get("enabling_elements") or []
        if enabling:
            doc.paragraph("Enabling elements: " + ", ".join(enabling), font_size=9)

        processes = element.get("processes", [])
        if not processes:
            doc.paragraph("No processes documented.", font_size=9, indent=5)
            continue

        for j, process in enumerate(processes, 1):
            doc.heading(
                f"{process.get('process_number')} {process.get('name')}",
                level=2, number=f"{number}.{j}",
            )
            owner = process.get("process_owner") or "-"
            doc.paragraph(f"Status: {process.get('status')} | Owner: {owner}", font_size=9, indent=5)
            doc.paragraph(process.get("description"), indent=5)
            for step in process.get("steps", []):
                doc.paragraph(
                    f"Step {step.get('step_number')}: {step.get('step_name')}",
                    indent=10, bold=True,
                )
                doc.paragraph(step.get("step_details"), font_size=9, indent=15)


def _build_goals_document(doc, tree, title, generated_at):
    doc.heading(title, level=0)
    doc.paragraph(_generated_line(generated_at), font_size=10)

    for i, goal in enumerate(tree, 1):
        number = str(i)
        doc.heading(goal.get("title"), level=1, number=number)
        unit = goal.get("unit") or ""
        doc.paragraph(
            f"Category: {goal.get('category')} | Priority: {goal.get('priority')} | "
            f"Current {_format_number(goal.get('current_value'))} of "
            f"target {_format_number(goal.get('target_value'))} {unit}".rstrip(),
            font_size=9,
        )
        element = goal.get("element")
        if element:
            doc.paragraph(f"Element {element.get('element_number')}: {element.get('title')}", font_size=9)
        doc.paragraph(goal.get("description"))

        processes = goal.get("processes", [])
        if not processes:
            doc.paragraph("No linked processes.", font_size=9, indent=5)
            continue

        for j, process in enumerate(processes, 1):
            doc.heading(
                f"{process.get('process_number')} {process.get('name')}",
                level=2, number=f"{number}.{j}",
            )
            for measure in process.get("measures", []):
                parts = [measure.get("name") or "Untitled measure"]
                if measure.get("target"):
                    parts.append(f"target {measure['target']}")
                if measure.get("frequency"):
                    parts.append(measure["frequency"])
                doc.paragraph("- " + ", ".join(parts), indent=5)
                if measure.get("formula"):
                    doc.paragraph(f"Formula: {measure['formula']}", font_size=9, indent=10)


_TOC_SECTIONS = (
    ("EXPECTATIONS", "expectations",
     "Define clear expectations for this process including what outcomes are expected, "
     "quality standards, and success criteria."),
    ("RESPONSIBILITIES", "responsibilities",
     "Outline roles and responsibilities for all stakeholders involved in this process, "
     "including process owners, participants, and approvers."),
    ("PROCESS STEPS", "process_steps_content",
     "Provide comprehensive guidance on executing process steps, including methodology, "
     "best practices, and coordination requirements."),
    ("PERFORMANCE MEASURE", "performance_measure_content",
     "Establish performance measurement framework including key metrics, monitoring "
     "procedures, and reporting requirements."),
)


def _build_process_document(doc, process, title, generated_at):
    doc.heading(title, level=0)
    doc.paragraph(process.get("name"), font_size=16, bold=True)
    doc.paragraph(f"Process Number: {process.get('process_number')}", font_size=12)
    if process.get("issue_date"):
        doc.paragraph(f"Issue Date: {process['issue_date']}", font_size=12)
    element = process.get("element")
    if element:
        doc.paragraph(f"Element {element.get('element_number')}: {element.get('title')}", font_size=12)

    steps = process.get("steps", [])
    doc.heading("PROCESS FLOW", level=1)
    if steps:
        flow = " -> ".join(f"[{s.get('step_number')}] {s.get('step_name')}" for s in steps)
        doc.paragraph(f"Flow Summary: {flow}")
        doc.heading("DETAILED PROCESS STEPS", level=1)
        for step in steps:
            doc.heading(f"Step {step.get('step_number')}: {step.get('step_name')}", level=2, font_size=11)
            doc.paragraph(f"Details: {step['step_details']}" if step.get("step_details") else None, indent=10)
            doc.paragraph(
                f"Responsibilities: {step['responsibilities']}" if step.get("responsibilities") else None,
                indent=10,
            )
            doc.paragraph(f"References: {step['references']}" if step.get("references") else None, indent=10)
    else:
        doc.paragraph("No steps documented.")

    doc.heading("TABLE OF CONTENTS", level=1)
    for n, (label, key, fallback) in enumerate(_TOC_SECTIONS, 1):
        doc.heading(label, level=2, number=f"{n}.")
        doc.paragraph(process.get(key) or fallback, indent=5)
        if key == "performance_measure_content":
            for measure in process.get("measures", []):
                target = f" (target {measure['target']})" if measure.get("target") else ""
                doc.paragraph(f"- {measure.get('measure_name')}{target}", indent=10)

    risk = risk_level(process.get("risk_frequency"), process.get("risk_impact"))
    doc.heading("RISK ASSESSMENT", level=1)
    doc.paragraph(
        f"Risk level: {risk['level']} (frequency {process.get('risk_frequency') or '-'}, "
        f"impact {process.get('risk_impact') or '-'}, score {risk['score']})",
    )
    doc.paragraph(f"Description: {process['risk_description']}" if process.get("risk_description") else None)
    doc.paragraph(f"Mitigation: {process['risk_mitigation']}" if process.get("risk_mitigation") else None)

    doc.paragraph(_generated_line(generated_at), font_size=10)


_BUILDERS = {
    "elements": (_build_elements_document, "Operational Excellence Framework"),
    "goals": (_build_goals_document, "Strategic Goals and Linked Processes"),
    "process": (_build_process_document, "Operational Excellence Process"),
}


def format_for_export(tree, kind, layout=None, title=None, generated_at=None):
    """Turn an aggregated tree into a paginated block sequence.

    Args:
        tree: element tree (``kind="elements"``), goal tree
            (``kind="goals"``) or a single process node with ``steps``,
            ``measures`` and optional ``element`` (``kind="process"``).
        kind: one of ``EXPORT_KINDS``.
        layout: optional ``PageLayout``.
        title: optional document title.
        generated_at: timestamp for the "Generated on" line (default: now).

    Raises:
        ValueError: unknown *kind*.
        ExportFormattingError: the layout cannot hold a single line.
    """
    if kind not in _BUILDERS:
        raise ValueError(f"Unknown export kind {kind!r}; expected one of {EXPORT_KINDS}")
    layout = layout or PageLayout()
    builder, default_title = _BUILDERS[kind]
    doc = _DocumentBuilder(layout)
    builder(doc, tree, title or default_title, generated_at)
    return paginate(doc.blocks, layout)
