"""
Operational Excellence Manager
Tests — Process API.

Covers:
    - create with nested steps / measures, required fields, duplicates
    - list filters (element, status, search) and natural number order
    - PUT replaces steps and measures, PATCH touches fields only
    - steps, measures (goal links), versions, documents
    - request guards (non-JSON body, unknown id)
"""

import pytest

pytestmark = pytest.mark.integration


class TestProcessCreate:
    def test_create_with_children(self, client, process):
        assert process["process_number"] == "OE-1.1"
        assert process["status"] == "draft"
        assert process["revision"] == 1
        assert [s["step_name"] for s in process["steps"]] == ["Initiate", "Review", "Close"]
        assert process["measures"][0]["scorecard_category"] == "Internal Process"
        assert process["element"]["element_number"] == 1

    def test_missing_fields(self, client, element):
        res = client.post("/api/v1/processes", json={"element_id": element["id"]})
        assert res.status_code == 400
        assert set(res.get_json()["details"]) == {"process_number", "name"}

    def test_unknown_element(self, client):
        res = client.post("/api/v1/processes", json={
            "element_id": "nope", "process_number": "OE-9.1", "name": "Orphan",
        })
        assert res.status_code == 422
        assert res.get_json()["details"] == {"element_id": "not found"}

    def test_duplicate_number(self, client, element, process):
        res = client.post("/api/v1/processes", json={
            "element_id": element["id"], "process_number": "OE-1.1", "name": "Copy",
        })
        assert res.status_code == 409

    def test_invalid_status(self, client, element):
        res = client.post("/api/v1/processes", json={
            "element_id": element["id"], "process_number": "OE-1.1", "name": "X",
            "status": "finished",
        })
        assert res.status_code == 422
        assert "status" in res.get_json()["details"]

    def test_non_json_body_rejected(self, client):
        res = client.post("/api/v1/processes", data="name=x", content_type="text/plain")
        assert res.status_code == 415


class TestProcessList:
    def test_natural_order(self, client, element, make_process):
        for number in ("OE-1.10", "OE-1.2", "OE-1.1"):
            make_process(element["id"], number, f"Process {number}")

        data = client.get("/api/v1/processes").get_json()
        assert data["total"] == 3
        assert [p["process_number"] for p in data["items"]] == ["OE-1.1", "OE-1.2", "OE-1.10"]
        assert data["items"][0]["element"]["title"] == "Transition Plan"

    def test_counts(self, client, process):
        item = client.get("/api/v1/processes").get_json()["items"][0]
        assert item["step_count"] == 3
        assert item["measure_count"] == 1

    def test_filters(self, client, make_element, make_process):
        e1 = make_element(1, "Transition Plan")
        e3 = make_element(3, "Plant Operations")
        make_process(e1["id"], "OE-1.1", "Governance", status="active")
        make_process(e3["id"], "OE-3.1", "Water Quality Monitoring")

        by_element = client.get(f"/api/v1/processes?element_id={e3['id']}").get_json()
        assert [p["process_number"] for p in by_element["items"]] == ["OE-3.1"]

        by_status = client.get("/api/v1/processes?status=active").get_json()
        assert [p["process_number"] for p in by_status["items"]] == ["OE-1.1"]

        by_search = client.get("/api/v1/processes?search=water").get_json()
        assert by_search["total"] == 1
        assert by_search["items"][0]["name"] == "Water Quality Monitoring"

    def test_get_not_found(self, client):
        res = client.get("/api/v1/processes/does-not-exist")
        assert res.status_code == 404


class TestProcessUpdate:
    def test_put_replaces_children(self, client, process):
        res = client.put(f"/api/v1/processes/{process['id']}", json={
            "name": "Transition Governance v2",
            "steps": [{"step_number": 1, "step_name": "Only step"}],
            "measures": [],
        })
        assert res.status_code == 200
        data = res.get_json()
        assert data["name"] == "Transition Governance v2"
        assert [s["step_name"] for s in data["steps"]] == ["Only step"]
        assert data["measures"] == []

    def test_put_without_children_keeps_them(self, client, process):
        data = client.put(f"/api/v1/processes/{process['id']}",
                          json={"status": "review"}).get_json()
        assert data["status"] == "review"
        assert len(data["steps"]) == 3
        assert len(data["measures"]) == 1

    def test_put_drops_outcomes_of_replaced_steps(self, client, process):
        ids = [s["id"] for s in process["steps"]]
        client.post(f"/api/v1/processes/{process['id']}/outcomes",
                    json={"from_step_id": ids[0], "to_step_id": ids[1]})

        data = client.put(f"/api/v1/processes/{process['id']}", json={
            "steps": [{"step_number": 1, "step_name": "Fresh"}],
        }).get_json()
        assert data["outcomes"] == []

    def test_patch(self, client, process):
        res = client.patch(f"/api/v1/processes/{process['id']}", json={
            "process_owner": "Plant Manager", "risk_frequency": "High", "risk_impact": "Low",
            "issue_date": "15.01.2024",
        })
        assert res.status_code == 200
        data = res.get_json()
        assert data["process_owner"] == "Plant Manager"
        assert data["issue_date"] == "2024-01-15"
        assert data["risk"]["level"] == "Medium Risk"

    def test_patch_number_conflict(self, client, element, process, make_process):
        other = make_process(element["id"], "OE-1.2", "Other")
        res = client.patch(f"/api/v1/processes/{other['id']}", json={"process_number": "OE-1.1"})
        assert res.status_code == 409

    def test_delete(self, client, process):
        assert client.delete(f"/api/v1/processes/{process['id']}").status_code == 200
        assert client.get(f"/api/v1/processes/{process['id']}").status_code == 404
        assert client.get("/api/v1/processes").get_json()["total"] == 0


class TestSteps:
    def test_add_and_order(self, client, process):
        res = client.post(f"/api/v1/processes/{process['id']}/steps",
                          json={"step_number": 0, "step_name": "Prepare", "step_type": "task"})
        assert res.status_code == 201

        names = [s["step_name"] for s in client.get(f"/api/v1/processes/{process['id']}/steps").get_json()]
        assert names == ["Prepare", "Initiate", "Review", "Close"]

    def test_invalid_step_type(self, client, process):
        res = client.post(f"/api/v1/processes/{process['id']}/steps",
                          json={"step_number": 4, "step_name": "Loop", "step_type": "loop"})
        assert res.status_code == 422

    def test_update_step(self, client, process):
        step_id = process["steps"][0]["id"]
        res = client.put(f"/api/v1/steps/{step_id}", json={"step_details": "Open the file."})
        assert res.status_code == 200
        assert res.get_json()["step_details"] == "Open the file."

    def test_bad_step_number(self, client, process):
        step_id = process["steps"][0]["id"]
        res = client.put(f"/api/v1/steps/{step_id}", json={"step_number": "first"})
        assert res.status_code == 422


class TestMeasures:
    def _goal(self, client, element_id):
        res = client.post("/api/v1/strategic-goals", json={
            "element_id": element_id, "title": "Deliver on time", "category": "Internal Process",
        })
        return res.get_json()

    def test_link_and_unlink_goal(self, client, element, process):
        goal = self._goal(client, element["id"])
        res = client.post(f"/api/v1/processes/{process['id']}/measures", json={
            "measure_name": "Schedule variance", "strategic_goal_id": goal["id"],
            "scorecard_category": " Financial ",
        })
        assert res.status_code == 201
        measure = res.get_json()
        assert measure["strategic_goal_id"] == goal["id"]
        assert measure["scorecard_category"] == "Financial"

        res = client.put(f"/api/v1/measures/{measure['id']}", json={"strategic_goal_id": "none"})
        assert res.get_json()["strategic_goal_id"] is None

    def test_unknown_goal(self, client, process):
        res = client.post(f"/api/v1/processes/{process['id']}/measures", json={
            "measure_name": "Orphan", "strategic_goal_id": "missing",
        })
        assert res.status_code == 422

    def test_blank_category_is_uncategorised(self, client, process):
        res = client.post(f"/api/v1/processes/{process['id']}/measures", json={
            "measure_name": "Loose", "scorecard_category": "   ",
        })
        assert res.get_json()["scorecard_category"] is None

    def test_delete_measure(self, client, process):
        measure_id = process["measures"][0]["id"]
        assert client.delete(f"/api/v1/measures/{measure_id}").status_code == 200
        assert client.get(f"/api/v1/processes/{process['id']}/measures").get_json() == []


class TestVersionsAndDocuments:
    def test_versions_increment_revision(self, client, process):
        first = client.post(f"/api/v1/processes/{process['id']}/versions",
                            json={"change_log": "Initial issue"}).get_json()
        second = client.post(f"/api/v1/processes/{process['id']}/versions",
                             json={"change_log": "Review", "approved_by": "QA Lead"}).get_json()

        assert first["version_number"] == 1
        assert second["version_number"] == 2
        assert second["approved_at"] is not None

        versions = client.get(f"/api/v1/processes/{process['id']}/versions").get_json()
        assert [v["version_number"] for v in versions] == [2, 1]
        assert client.get(f"/api/v1/processes/{process['id']}").get_json()["revision"] == 2

    def test_version_without_body(self, client, process):
        res = client.post(f"/api/v1/processes/{process['id']}/versions")
        assert res.status_code == 201

    def test_documents(self, client, process):
        res = client.post(f"/api/v1/processes/{process['id']}/documents", json={
            "file_name": "flowchart.pdf", "file_url": "https://files.example.com/flowchart.pdf",
            "file_size": 1024, "mime_type": "application/pdf",
        })
        assert res.status_code == 201
        doc = res.get_json()

        docs = client.get(f"/api/v1/processes/{process['id']}/documents").get_json()
        assert [d["file_name"] for d in docs] == ["flowchart.pdf"]

        assert client.delete(f"/api/v1/documents/{doc['id']}").status_code == 200
        assert client.get(f"/api/v1/processes/{process['id']}/documents").get_json() == []

    def test_document_requires_url(self, client, process):
        res = client.post(f"/api/v1/processes/{process['id']}/documents",
                          json={"file_name": "a.pdf"})
        assert res.status_code == 400


class TestTypedInput:
    """Wrongly typed JSON values are field errors, never server errors."""

    def _post(self, client, element, **kw):
        payload = {"element_id": element["id"], "process_number": "OE-1.5", "name": "Typed"}
        payload.update(kw)
        return client.post("/api/v1/processes", json=payload)

    @pytest.mark.parametrize("field, value", [
        ("process_number", 12),
        ("name", ["Typed"]),
        ("revision", "abc"),
        ("revision", True),
        ("is_mandatory", "yes"),
        ("description", {"text": "x"}),
        ("steps", "Initiate"),
    ])
    def test_create_rejects_wrong_type(self, client, element, field, value):
        res = self._post(client, element, **{field: value})
        assert res.status_code == 422
        assert field in res.get_json()["details"]
        assert client.get("/api/v1/processes").get_json()["total"] == 0

    def test_create_accepts_numeric_revision_string(self, client, element):
        res = self._post(client, element, revision="3", is_mandatory=True)
        assert res.status_code == 201
        assert res.get_json()["revision"] == 3
        assert res.get_json()["is_mandatory"] is True

    def test_element_id_must_be_string(self, client, element):
        res = self._post(client, element, element_id=[element["id"]])
        assert res.status_code == 422
        assert res.get_json()["details"] == {"element_id": "not found"}

    def test_patch_rejects_wrong_type(self, client, process):
        res = client.patch(f"/api/v1/processes/{process['id']}",
                           json={"process_number": 7, "revision": "abc"})
        assert res.status_code == 422
        assert set(res.get_json()["details"]) == {"process_number", "revision"}
        assert client.get(f"/api/v1/processes/{process['id']}").get_json()["process_number"] == "OE-1.1"

    def test_put_rejects_malformed_children(self, client, process):
        res = client.put(f"/api/v1/processes/{process['id']}", json={"steps": ["Only step"]})
        assert res.status_code == 422
        assert "steps" in res.get_json()["details"]
        assert len(client.get(f"/api/v1/processes/{process['id']}/steps").get_json()) == 3

    def test_step_name_must_be_string(self, client, process):
        res = client.post(f"/api/v1/processes/{process['id']}/steps",
                          json={"step_number": 4, "step_name": 42})
        assert res.status_code == 422
        assert res.get_json()["details"] == {"step_name": "must be a string"}

    def test_outcome_priority_must_be_integer(self, client, process):
        ids = [s["id"] for s in client.get(f"/api/v1/processes/{process['id']}/steps").get_json()]
        res = client.post(f"/api/v1/processes/{process['id']}/outcomes", json={
            "from_step_id": ids[1], "to_step_id": ids[2], "priority": "high",
        })
        assert res.status_code == 422
        assert res.get_json()["details"] == {"priority": "must be an integer"}

    def test_outcome_step_ids_must_be_strings(self, client, process):
        res = client.post(f"/api/v1/processes/{process['id']}/outcomes",
                          json={"from_step_id": ["a"], "to_step_id": {"id": "b"}})
        assert res.status_code == 422
        assert set(res.get_json()["details"]) == {"from_step_id", "to_step_id"}

    def test_measure_fields_must_be_strings(self, client, process):
        res = client.post(f"/api/v1/processes/{process['id']}/measures", json={
            "measure_name": "Cost", "target": 95, "scorecard_category": 1,
        })
        assert res.status_code == 422
        assert set(res.get_json()["details"]) == {"target", "scorecard_category"}

    def test_document_fields_typed(self, client, process):
        res = client.post(f"/api/v1/processes/{process['id']}/documents", json={
            "file_name": 3, "file_url": "https://files.example.com/a.pdf", "file_size": "big",
        })
        assert res.status_code == 422
        assert res.get_json()["details"] == {
            "file_name": "must be a string", "file_size": "must be an integer",
        }

    def test_version_change_log_must_be_string(self, client, process):
        res = client.post(f"/api/v1/processes/{process['id']}/versions", json={"change_log": 1})
        assert res.status_code == 422
        assert "change_log" in res.get_json()["details"]
