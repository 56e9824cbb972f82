"""
Tests — export formatter (tree → paginated blocks).

Covers:
    - wrap_text line limits and explicit newlines
    - paginator: paragraph splitting, heading reserve, page-top placement
    - every block fits between top margin and bottom limit
    - layout errors (no usable area, line taller than a page)
    - elements / goals / process documents: structure and numbering
"""

from datetime import datetime, timezone

import pytest

from app.core.exceptions import ExportFormattingError
from app.services.export_formatter import (
    BlockPaginator,
    ExportBlock,
    PageLayout,
    format_for_export,
    page_heights,
    paginate,
    wrap_text,
)

GENERATED = datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)


def _para(n_lines, font_size=10):
    return ExportBlock(kind="paragraph", lines=[f"line {i}" for i in range(n_lines)], font_size=font_size)


def _heading(text="Heading", level=1, font_size=16):
    return ExportBlock(kind="heading", text=text, lines=[text], level=level, font_size=font_size, bold=True)


def _content(blocks):
    return [b for b in blocks if b.kind != "page_break"]


def _element_tree(n_elements=2, n_processes=3, details="Do the work."):
    tree = []
    for e in range(1, n_elements + 1):
        processes = []
        for p in range(1, n_processes + 1):
            processes.append({
                "id": f"p{e}{p}", "process_number": f"OE-{e}.{p}", "name": f"Process {e}.{p}",
                "status": "active", "description": "Process description.",
                "steps": [{"step_number": 1, "step_name": "Start", "step_details": details}],
            })
        tree.append({
            "id": f"e{e}", "element_number": e, "title": f"Element {e}",
            "description": "Element description.", "processes": processes,
        })
    return tree


class TestWrapText:
    def test_respects_line_limit(self):
        layout = PageLayout()
        limit = layout.max_chars(10, 170)
        lines = wrap_text("word " * 200, 10, 170)
        assert len(lines) > 1
        assert all(len(line) <= limit for line in lines)

    def test_keeps_explicit_newlines(self):
        assert wrap_text("first\n\nthird", 10, 170) == ["first", "", "third"]

    def test_breaks_long_words(self):
        limit = PageLayout().max_chars(10, 20)
        lines = wrap_text("x" * (limit * 3), 10, 20)
        assert len(lines) == 3


class TestPaginator:
    def test_first_block_at_top_margin(self):
        blocks = paginate([_para(2)])
        assert blocks[0].page == 1
        assert blocks[0].y == 20
        assert blocks[0].height == 2 * 5 + 5

    def test_paragraph_split_across_pages(self):
        blocks = paginate([_para(60)])

        assert [b.kind for b in blocks] == ["paragraph", "page_break", "paragraph"]
        assert len(blocks[0].lines) == 51
        assert blocks[2].page == 2
        assert blocks[2].y == 20
        assert blocks[0].lines + blocks[2].lines == [f"line {i}" for i in range(60)]

    def test_heading_not_stranded_at_page_foot(self):
        # 49 lines leave 10mm; a level-1 heading needs its height plus 20
        blocks = paginate([_para(49), _heading()])

        assert [b.kind for b in blocks] == ["paragraph", "page_break", "heading"]
        assert blocks[-1].page == 2
        assert blocks[-1].y == 20

    def test_heading_fits_with_reserve(self):
        blocks = paginate([_para(10), _heading()])
        assert [b.kind for b in blocks] == ["paragraph", "heading"]
        assert blocks[1].page == 1

    def test_minor_heading_uses_smaller_reserve(self):
        layout = PageLayout()
        assert layout.heading_reserve(1) == 20
        assert layout.heading_reserve(2) == 15
        assert layout.heading_reserve(3) == 15

    def test_blocks_never_cross_bottom_limit(self):
        layout = PageLayout()
        blocks = format_for_export(_element_tree(6, 8, details="detail " * 80), "elements",
                                   generated_at=GENERATED)
        assert max(b.page for b in blocks) > 1
        for block in _content(blocks):
            assert block.y >= layout.top_margin
            assert block.y + block.height <= layout.bottom_limit + 1e-6
        for page, height in page_heights(blocks).items():
            assert height <= layout.budget + 1e-6

    def test_page_breaks_number_pages(self):
        blocks = paginate([_para(60), _para(60)])
        breaks = [b.page for b in blocks if b.kind == "page_break"]
        assert breaks == list(range(2, len(breaks) + 2))

    def test_no_usable_area(self):
        with pytest.raises(ExportFormattingError):
            BlockPaginator(PageLayout(top_margin=20, bottom_limit=20))

    def test_line_taller_than_page(self):
        paginator = BlockPaginator(PageLayout(top_margin=20, bottom_limit=30))
        paginator.add(_para(1))  # 5 + 5 fits exactly
        with pytest.raises(ExportFormattingError):
            paginator.add(_heading(font_size=20))


class TestDocuments:
    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            format_for_export([], "bogus")

    def test_elements_numbering(self):
        blocks = format_for_export(_element_tree(2, 2), "elements", generated_at=GENERATED)
        numbers = [b.number for b in blocks if b.kind == "heading" and b.number]
        assert numbers == ["1", "1.1", "1.2", "2", "2.1", "2.2"]

        first = blocks[0]
        assert first.kind == "heading" and first.level == 0
        assert first.text == "Operational Excellence Framework"
        assert any(b.text == "Generated on: 2024-05-01 09:30 UTC" for b in blocks)

    def test_elements_empty_tree(self):
        blocks = format_for_export([], "elements", title="Empty", generated_at=GENERATED)
        assert [b.text for b in blocks] == ["Empty", "Generated on: 2024-05-01 09:30 UTC"]

    def test_element_without_processes(self):
        tree = [{"id": "e1", "element_number": 1, "title": "Lonely", "processes": []}]
        blocks = format_for_export(tree, "elements", generated_at=GENERATED)
        assert "No processes documented." in [b.text for b in blocks]

    def test_goals_document(self):
        tree = [{
            "id": "g1", "title": "Cut cost", "category": "Financial", "priority": "High",
            "current_value": 3.5, "target_value": 5, "unit": "%",
            "element": {"id": "e1", "element_number": 1, "title": "Transition Plan"},
            "processes": [{
                "id": "p1", "process_number": "OE-1.1", "name": "Governance",
                "measures": [{"id": "m1", "name": "Variance", "target": "<= 5%",
                              "frequency": "Monthly", "formula": "actual / budget"}],
            }],
        }]
        blocks = format_for_export(tree, "goals", generated_at=GENERATED)
        texts = [b.text for b in blocks]

        assert "1 Cut cost" in texts
        assert "1.1 OE-1.1 Governance" in texts
        assert "Category: Financial | Priority: High | Current 3.5 of target 5 %" in texts
        assert "- Variance, target <= 5%, Monthly" in texts
        assert "Formula: actual / budget" in texts

    def test_process_document(self):
        process = {
            "id": "p1", "process_number": "OE-3.1", "name": "Water Quality Monitoring",
            "issue_date": "2024-01-15", "expectations": "Meet every limit.",
            "risk_frequency": "High", "risk_impact": "Medium",
            "element": {"element_number": 3, "title": "Plant Operations"},
            "steps": [
                {"step_number": 1, "step_name": "Sample", "step_details": "Take samples."},
                {"step_number": 2, "step_name": "Analyse"},
            ],
            "measures": [{"measure_name": "Samples within limits", "target": ">= 99%"}],
        }
        blocks = format_for_export(process, "process", generated_at=GENERATED)
        texts = [b.text for b in blocks]

        assert texts[0] == "Operational Excellence Process"
        assert "Process Number: OE-3.1" in texts
        assert "Flow Summary: [1] Sample -> [2] Analyse" in texts
        assert "Details: Take samples." in texts
        assert [b.number for b in blocks if b.number] == ["1.", "2.", "3.", "4."]
        assert "Meet every limit." in texts
        # Missing section content falls back to guidance text
        assert any(t.startswith("Outline roles and responsibilities") for t in texts)
        assert "- Samples within limits (target >= 99%)" in texts
        assert any(t.startswith("Risk level: Medium Risk") for t in texts)
        assert texts[-1] == "Generated on: 2024-05-01 09:30 UTC"

    def test_process_without_steps(self):
        process = {"process_number": "OE-1.1", "name": "Empty", "steps": [], "measures": []}
        texts = [b.text for b in format_for_export(process, "process", generated_at=GENERATED)]
        assert "No steps documented." in texts
        assert any(t.startswith("Risk level: Not Assessed") for t in texts)

    def test_blocks_serialise(self):
        blocks = format_for_export(_element_tree(1, 1), "elements", generated_at=GENERATED)
        data = blocks[0].to_dict()
        assert set(data) >= {"kind", "text", "lines", "page", "y", "height", "font_size"}
