"""
Tests — framework tree aggregation.

Covers:
    - Element → Process → Step nesting and ordering
    - dangling processes / steps dropped, tree still returned
    - optional measures level
    - Goal → Process → Measure fan-out with per-goal process dedup
    - goal ordering by scorecard category then priority
    - loaders against the database (element detail, goal tree)
"""

import pytest

from app.core.exceptions import NotFoundError
from app.services.framework_tree import (
    build_element_tree,
    build_goal_tree,
    get_element_detail,
    get_goal_tree,
)


def _el(id_, number):
    return {"id": id_, "element_number": number, "title": f"Element {number}"}


def _proc(id_, element_id, number):
    return {"id": id_, "element_id": element_id, "process_number": number, "name": f"P {number}"}


def _step(id_, process_id, number):
    return {"id": id_, "process_id": process_id, "step_number": number, "step_name": f"S{number}"}


def _measure(id_, process_id, goal_id=None, name=None, category="Financial"):
    return {
        "id": id_, "process_id": process_id, "strategic_goal_id": goal_id,
        "measure_name": name or id_, "scorecard_category": category,
    }


def _goal(id_, category, priority="Medium", element_id=None):
    return {"id": id_, "title": id_, "category": category, "priority": priority, "element_id": element_id}


class TestBuildElementTree:
    def test_nesting_and_natural_order(self):
        elements = [_el("e4", 4), _el("e1", 1)]
        processes = [
            _proc("p10", "e1", "OE-1.10"),
            _proc("p2", "e1", "OE-1.2"),
            _proc("p41", "e4", "OE-4.1"),
        ]
        steps = [_step("s2", "p2", 2), _step("s1", "p2", 1)]

        tree = build_element_tree(elements, processes, steps)

        assert [e["id"] for e in tree] == ["e1", "e4"]
        assert [p["process_number"] for p in tree[0]["processes"]] == ["OE-1.2", "OE-1.10"]
        assert [s["id"] for s in tree[0]["processes"][0]["steps"]] == ["s1", "s2"]
        assert tree[0]["process_count"] == 2
        assert tree[1]["processes"][0]["steps"] == []
        assert "measures" not in tree[0]["processes"][0]

    def test_empty_element_kept(self):
        tree = build_element_tree([_el("e1", 1)], [], [])
        assert tree == [{**_el("e1", 1), "processes": [], "process_count": 0}]

    def test_dangling_rows_dropped(self, caplog):
        tree = build_element_tree(
            [_el("e1", 1)],
            [_proc("p1", "e1", "OE-1.1"), _proc("px", "missing", "OE-9.1")],
            [_step("s1", "p1", 1), _step("sx", "px", 1)],
        )
        assert [p["id"] for p in tree[0]["processes"]] == ["p1"]
        assert [s["id"] for s in tree[0]["processes"][0]["steps"]] == ["s1"]
        assert "dangling" in caplog.text

    def test_equal_step_numbers_keep_input_order(self):
        steps = [_step("a", "p1", 1), _step("b", "p1", 1), _step("c", "p1", 0)]
        tree = build_element_tree([_el("e1", 1)], [_proc("p1", "e1", "OE-1.1")], steps)
        assert [s["id"] for s in tree[0]["processes"][0]["steps"]] == ["c", "a", "b"]

    def test_measures_level(self):
        tree = build_element_tree(
            [_el("e1", 1)], [_proc("p1", "e1", "OE-1.1")], [],
            measures=[_measure("m2", "p1", name="Zeta"), _measure("m1", "p1", name="Alpha")],
        )
        assert [m["id"] for m in tree[0]["processes"][0]["measures"]] == ["m1", "m2"]

    def test_inputs_not_mutated(self):
        elements = [_el("e1", 1)]
        processes = [_proc("p1", "e1", "OE-1.1")]
        build_element_tree(elements, processes, [])
        assert "processes" not in elements[0]
        assert "steps" not in processes[0]


class TestBuildGoalTree:
    def test_process_listed_once_per_goal(self):
        goals = [_goal("g1", "Customer")]
        processes = [_proc("p1", "e1", "OE-1.1")]
        measures = [
            _measure("m1", "p1", "g1", name="A"),
            _measure("m2", "p1", "g1", name="B"),
        ]
        tree = build_goal_tree(goals, measures, processes)

        assert tree[0]["process_count"] == 1
        node = tree[0]["processes"][0]
        assert node["id"] == "p1"
        assert [m["id"] for m in node["measures"]] == ["m1", "m2"]
        assert node["measures"][0]["name"] == "A"

    def test_same_process_under_two_goals(self):
        goals = [_goal("g1", "Financial"), _goal("g2", "Customer")]
        processes = [_proc("p1", "e1", "OE-1.1")]
        measures = [_measure("m1", "p1", "g1"), _measure("m2", "p1", "g2")]
        tree = build_goal_tree(goals, measures, processes)
        assert [g["processes"][0]["id"] for g in tree] == ["p1", "p1"]

    def test_goal_order_category_then_priority(self):
        goals = [
            _goal("learn", "Learning & Growth", "High"),
            _goal("fin-low", "Financial", "Low"),
            _goal("cust", "Customer", "Medium"),
            _goal("fin-high", "Financial", "High"),
            _goal("internal", "Internal Process", "Medium"),
        ]
        tree = build_goal_tree(goals, [], [])
        assert [g["id"] for g in tree] == ["fin-high", "fin-low", "cust", "internal", "learn"]

    def test_unlinked_and_dangling_measures_ignored(self):
        goals = [_goal("g1", "Financial")]
        processes = [_proc("p1", "e1", "OE-1.1")]
        measures = [
            _measure("free", "p1", None),
            _measure("lost-goal", "p1", "nope"),
            _measure("lost-process", "missing", "g1"),
        ]
        tree = build_goal_tree(goals, measures, processes)
        assert tree[0]["processes"] == []
        assert tree[0]["process_count"] == 0

    def test_element_summary(self):
        goals = [_goal("g1", "Financial", element_id="e1"), _goal("g2", "Customer", element_id="gone")]
        tree = build_goal_tree(goals, [], [], elements=[_el("e1", 1)])
        assert tree[0]["element"] == {"id": "e1", "title": "Element 1", "element_number": 1}
        assert tree[1]["element"] is None

    def test_processes_naturally_sorted(self):
        goals = [_goal("g1", "Financial")]
        processes = [_proc("p10", "e1", "OE-1.10"), _proc("p9", "e1", "OE-1.9")]
        measures = [_measure("m1", "p10", "g1"), _measure("m2", "p9", "g1")]
        tree = build_goal_tree(goals, measures, processes)
        assert [p["process_number"] for p in tree[0]["processes"]] == ["OE-1.9", "OE-1.10"]


class TestLoaders:
    def test_element_detail(self, client, process, element):
        detail = get_element_detail(element["id"])
        assert detail["process_count"] == 1
        node = detail["processes"][0]
        assert [s["step_name"] for s in node["steps"]] == ["Initiate", "Review", "Close"]
        assert node["measures"][0]["measure_name"] == "On-time milestones"

    def test_element_detail_missing(self):
        with pytest.raises(NotFoundError):
            get_element_detail("does-not-exist")

    def test_goal_tree_from_db(self, client, make_element, make_process):
        el = make_element()
        proc = make_process(el["id"])
        goal = client.post("/api/v1/strategic-goals", json={
            "element_id": el["id"], "title": "Cut cost", "category": "Financial",
        }).get_json()
        for name in ("Variance", "Spend"):
            client.post(f"/api/v1/processes/{proc['id']}/measures", json={
                "measure_name": name, "strategic_goal_id": goal["id"],
                "scorecard_category": "Financial",
            })

        tree = get_goal_tree()
        assert len(tree) == 1
        assert tree[0]["process_count"] == 1
        assert tree[0]["element"]["id"] == el["id"]
        assert sorted(m["name"] for m in tree[0]["processes"][0]["measures"]) == ["Spend", "Variance"]
