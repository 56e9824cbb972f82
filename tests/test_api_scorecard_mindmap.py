"""
Operational Excellence Manager
Tests — scorecard and mind map endpoints.
"""

import pytest

pytestmark = pytest.mark.integration


def _measure(client, process_id, name, category=None, goal_id=None):
    payload = {"measure_name": name}
    if category is not None:
        payload["scorecard_category"] = category
    if goal_id is not None:
        payload["strategic_goal_id"] = goal_id
    res = client.post(f"/api/v1/processes/{process_id}/measures", json=payload)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


class TestScorecardEndpoints:
    def test_summary_counts_and_other_bucket(self, client, element, make_process):
        p1 = make_process(element["id"], "OE-1.1", "Governance")
        p2 = make_process(element["id"], "OE-1.2", "Handover")
        _measure(client, p1["id"], "Budget variance", "Financial")
        _measure(client, p1["id"], "Cost per unit", "Financial")
        _measure(client, p2["id"], "Handover cost", "Financial")
        _measure(client, p2["id"], "Community events", "Community")

        data = client.get("/api/v1/scorecard/summary").get_json()
        categories = data["categories"]
        assert list(categories) == [
            "Financial", "Customer", "Internal Process", "Learning & Growth", "Other",
        ]
        assert categories["Financial"]["count"] == 2
        assert categories["Financial"]["measure_count"] == 3
        assert categories["Customer"]["count"] == 0
        assert categories["Other"]["measures"][0]["measure_name"] == "Community events"
        assert data["total_measures"] == 4

    def test_performance_measures_filter(self, client, process):
        _measure(client, process["id"], "Budget variance", "Financial")
        _measure(client, process["id"], "Loose", None)

        everything = client.get("/api/v1/scorecard/performance-measures").get_json()
        assert everything["total"] == 2  # fixture measure counted, "Loose" is uncategorised

        financial = client.get("/api/v1/scorecard/performance-measures?category=Financial").get_json()
        assert [r["measure_name"] for r in financial["items"]] == ["Budget variance"]
        assert financial["items"][0]["process_number"] == "OE-1.1"
        assert financial["items"][0]["element_number"] == 1

    def test_other_filter(self, client, process):
        _measure(client, process["id"], "Neighbour survey", "Community")
        data = client.get("/api/v1/scorecard/performance-measures?category=Other").get_json()
        assert [r["scorecard_category"] for r in data["items"]] == ["Community"]


class TestMindmaps:
    def test_elements_tree(self, client, make_element, make_process):
        e3 = make_element(3, "Plant Operations")
        e1 = make_element(1, "Transition Plan")
        make_process(e3["id"], "OE-3.10", "Later", steps=[
            {"step_number": 2, "step_name": "Second"},
            {"step_number": 1, "step_name": "First"},
        ])
        make_process(e3["id"], "OE-3.2", "Earlier")

        tree = client.get("/api/v1/mindmap/elements").get_json()
        assert [e["id"] for e in tree] == [e1["id"], e3["id"]]
        assert tree[0]["processes"] == []
        assert [p["process_number"] for p in tree[1]["processes"]] == ["OE-3.2", "OE-3.10"]
        assert [s["step_name"] for s in tree[1]["processes"][1]["steps"]] == ["First", "Second"]
        assert "measures" not in tree[1]["processes"][0]

    def test_elements_tree_with_measures(self, client, process):
        tree = client.get("/api/v1/mindmap/elements?include_measures=1").get_json()
        assert tree[0]["processes"][0]["measures"][0]["measure_name"] == "On-time milestones"

    def test_goals_tree_dedupes_processes(self, client, element, make_process):
        goal = client.post("/api/v1/strategic-goals", json={
            "element_id": element["id"], "title": "Deliver on time", "category": "Customer",
        }).get_json()
        idle = client.post("/api/v1/strategic-goals", json={
            "element_id": element["id"], "title": "Grow margin", "category": "Financial",
        }).get_json()
        p2 = make_process(element["id"], "OE-1.2", "Handover")
        p1 = make_process(element["id"], "OE-1.1", "Governance")
        _measure(client, p2["id"], "Late handovers", goal_id=goal["id"])
        _measure(client, p2["id"], "Handover lead time", goal_id=goal["id"])
        _measure(client, p1["id"], "Milestones met", goal_id=goal["id"])
        _measure(client, p1["id"], "Unlinked")

        tree = client.get("/api/v1/mindmap/goals-processes").get_json()
        assert [g["id"] for g in tree] == [idle["id"], goal["id"]]
        assert tree[0]["processes"] == []

        node = tree[1]
        assert node["element"]["element_number"] == 1
        assert node["process_count"] == 2
        assert [p["process_number"] for p in node["processes"]] == ["OE-1.1", "OE-1.2"]
        assert [m["name"] for m in node["processes"][1]["measures"]] == [
            "Handover lead time", "Late handovers",
        ]
