"""API tests for builder sessions: editing, terminal closure, import/export, save/load."""

import json

import pytest
from fastapi.testclient import TestClient

CBC = {
    "name": "Complete blood count",
    "parameters": [{"name": "hemoglobin"}],
    "actions": [{"name": "RERUN_TEST", "type": "process"}, {"name": "VALIDATE", "type": "result"}],
}


@pytest.fixture
def template_code(client: TestClient) -> str:
    client.post("/api/global-parameters/", json={"name": "glucose", "label": "Glucose"})
    client.post("/api/global-parameters/", json={"name": "age", "label": "Age", "type": "number"})
    return client.post("/api/templates/", json=CBC).json()["data"]["code"]


@pytest.fixture
def sid(client: TestClient, template_code: str) -> str:
    r = client.post("/api/builder/sessions")
    assert r.status_code == 201
    session_id = r.json()["session_id"]
    r = client.put(f"/api/builder/sessions/{session_id}/template", json={"code": template_code})
    assert r.status_code == 200
    return session_id


def _url(sid: str, suffix: str = "") -> str:
    return f"/api/builder/sessions/{sid}{suffix}"


def _build_scenario(client: TestClient, sid: str) -> None:
    client.put(_url(sid, "/meta"), json={"name": "Glucose check"})
    client.patch(_url(sid, "/nodes/node-1"), json={"field": "parameter", "value": "glucose"})
    client.patch(_url(sid, "/nodes/node-1"), json={"field": "value", "value": "120"})
    client.post(
        _url(sid, "/drop"),
        json={"item_kind": "parameter", "value": "age", "target_id": "node-1", "drop_zone": "children"},
    )
    r = client.post(_url(sid, "/nodes/node-2/actions"), json={"kind": "result", "name": "VALIDATE"})
    assert r.status_code == 200


def test_open_session_snapshot(client: TestClient):
    r = client.post("/api/builder/sessions")
    assert r.status_code == 201
    snap = r.json()
    assert snap["tree"] == []
    assert snap["template"] == ""
    assert snap["complete"] is False
    assert snap["placeholder_actions"] == {"process": True, "result": True}


def test_unknown_session_is_404(client: TestClient):
    r = client.get(_url("nope"))
    assert r.status_code == 404
    assert r.json()["error"] == "LOOKUP_MISS"


def test_catalog_endpoints(client: TestClient, sid: str):
    params = client.get(_url(sid, "/parameters")).json()
    assert params[0] == {"value": "hemoglobin.result", "label": "hemoglobin - result"}
    # global parameters follow the template facets
    assert {p["value"] for p in params[-2:]} == {"glucose", "age"}
    actions = client.get(_url(sid, "/actions")).json()
    assert actions["process"] == ["RERUN_TEST"]
    assert actions["result"] == ["VALIDATE"]
    assert actions["result_is_placeholder"] is False


def test_scenario_and_terminal_rejection(client: TestClient, sid: str):
    _build_scenario(client, sid)
    snap = client.get(_url(sid)).json()
    root = snap["tree"][0]
    assert root["parameter"] == "glucose"
    assert root["value"] == "120"
    child = root["children"][0]
    assert child["id"] == "node-2"
    assert child["parameter"] == "age"
    assert child["resultActions"] == ["VALIDATE"]

    r = client.post(_url(sid, "/nodes/node-2/children"))
    assert r.status_code == 422
    body = r.json()
    assert body["error"] == "VALIDATION_REJECTED"
    assert "terminal" in body["detail"]
    assert client.get(_url(sid)).json()["tree"] == snap["tree"]


def test_result_action_on_parent_is_422(client: TestClient, sid: str):
    assert client.post(_url(sid, "/nodes/node-1/children")).status_code == 201
    r = client.post(_url(sid, "/nodes/node-1/actions"), json={"kind": "result", "name": "VALIDATE"})
    assert r.status_code == 422


def test_incompatible_drop_is_ignored(client: TestClient, sid: str):
    before = client.get(_url(sid)).json()["tree"]
    r = client.post(
        _url(sid, "/drop"),
        json={"item_kind": "action", "value": "VALIDATE", "action_kind": "result", "target_id": "node-1",
              "drop_zone": "process"},
    )
    assert r.status_code == 200
    assert r.json()["tree"] == before


def test_add_root_requires_template(client: TestClient):
    sid = client.post("/api/builder/sessions").json()["session_id"]
    r = client.post(_url(sid, "/roots"))
    assert r.status_code == 422


def test_range_edit_and_violations(client: TestClient, sid: str):
    client.patch(_url(sid, "/nodes/node-1"), json={"field": "operator", "value": "range"})
    r = client.patch(_url(sid, "/nodes/node-1"), json={"field": "min", "value": "70"})
    assert r.json()["tree"][0]["value"] == {"min": "70", "max": ""}
    r = client.patch(_url(sid, "/nodes/node-1"), json={"field": "operator", "value": "between"})
    assert r.status_code == 422

    report = client.get(_url(sid, "/violations")).json()
    assert report["valid"] is False
    assert report["errors"][0]["code"] == "unset_parameter"


def test_remove_action_and_node(client: TestClient, sid: str):
    _build_scenario(client, sid)
    r = client.delete(_url(sid, "/nodes/node-2/actions/result/VALIDATE"))
    assert r.json()["tree"][0]["children"][0]["resultActions"] == []
    r = client.delete(_url(sid, "/nodes/node-1"))
    assert r.json()["tree"] == []


def test_export_download(client: TestClient, sid: str):
    assert client.get(_url(sid, "/export")).status_code == 422
    _build_scenario(client, sid)
    r = client.get(_url(sid, "/export"))
    assert r.status_code == 200
    assert 'filename="glucose_check_algorithm.json"' in r.headers["content-disposition"]
    doc = json.loads(r.text)
    assert doc["name"] == "Glucose check"
    assert doc["tree"][0]["children"][0]["resultActions"] == ["VALIDATE"]


def test_import_file_round_trip(client: TestClient, sid: str):
    _build_scenario(client, sid)
    text = client.get(_url(sid, "/export")).text
    other = client.post("/api/builder/sessions").json()["session_id"]
    r = client.post(_url(other, "/import"), files={"file": ("algo.json", text, "application/json")})
    assert r.status_code == 200
    assert r.json()["tree"] == json.loads(text)["tree"]
    assert r.json()["name"] == "Glucose check"


def test_bad_import_is_400_and_keeps_state(client: TestClient, sid: str):
    _build_scenario(client, sid)
    before = client.get(_url(sid)).json()
    r = client.post(_url(sid, "/import"), files={"file": ("algo.json", "{oops", "application/json")})
    assert r.status_code == 400
    assert r.json()["detail"] == "Error parsing algorithm file"
    r = client.post(_url(sid, "/import-json"), json={"name": "x", "template": "cbc"})
    assert r.status_code == 400
    assert client.get(_url(sid)).json() == before


def test_import_json_legacy_root(client: TestClient, sid: str):
    doc = {"name": "Legacy", "template": "cbc", "tree": {"id": "root", "parameter": "glucose"}}
    r = client.post(_url(sid, "/import-json"), json=doc)
    assert r.status_code == 200
    assert [n["id"] for n in r.json()["tree"]] == ["root"]


def test_save_and_load(client: TestClient, sid: str):
    assert client.post(_url(sid, "/save")).status_code == 422
    _build_scenario(client, sid)
    r = client.post(_url(sid, "/save"))
    assert r.status_code == 200
    saved = r.json()["data"]
    assert client.get(_url(sid)).json()["algorithm_id"] == saved["id"]

    listed = client.get("/api/algorithms/").json()["data"]
    assert [a["id"] for a in listed] == [saved["id"]]

    other = client.post("/api/builder/sessions").json()["session_id"]
    r = client.post(_url(other, f"/load/{saved['id']}"))
    assert r.status_code == 200
    assert r.json()["tree"] == client.get(_url(sid)).json()["tree"]
    assert r.json()["algorithm_id"] == saved["id"]


def test_load_missing_algorithm_is_502(client: TestClient, sid: str):
    r = client.post(_url(sid, "/load/missing"))
    assert r.status_code == 502
    assert r.json()["error"] == "STORAGE_ERROR"


def test_clear_and_close(client: TestClient, sid: str):
    _build_scenario(client, sid)
    r = client.post(_url(sid, "/clear"))
    assert r.json()["tree"] == [] and r.json()["name"] == ""
    assert client.delete(_url(sid)).status_code == 204
    assert client.get(_url(sid)).status_code == 404


def test_metrics_counts(client: TestClient, sid: str):
    data = client.get("/api/metrics").json()
    assert data["templates"] == 1
    assert data["global_parameters"] == 2
    assert data["open_sessions"] == 1


def test_malformed_range_value_is_422(client: TestClient, sid: str):
    client.patch(_url(sid, "/nodes/node-1"), json={"field": "operator", "value": "range"})
    before = client.get(_url(sid)).json()["tree"]
    for value in ({"min": [1], "max": "2"}, {"min": "1", "lo": "2"}):
        r = client.patch(_url(sid, "/nodes/node-1"), json={"field": "value", "value": value})
        assert r.status_code == 422
        assert r.json()["error"] == "VALIDATION_REJECTED"
    assert client.get(_url(sid)).json()["tree"] == before
