# =======================================================================================
# tests/test_api.py - HTTP Surface
# =======================================================================================
from decimal import Decimal
from campus_access.config import config
from campus_access.database import DatabaseManager
from campus_access.main import create_app
from campus_access.services import DashboardService
from fastapi.testclient import TestClient

ANN = {
    "rfid": "A1",
    "student_id": "S1",
    "email": "e@x.com",
    "name": "Ann",
    "program": "CS",
    "school": "X",
}


def test_register_tap_and_history_scenario(client):
    created = client.post("/api/students", json=ANN)
    assert created.status_code == 201
    body = created.json()
    assert Decimal(str(body["balance"])) == 0
    assert body["type"] == "student"
    assert body["created_at"]

    clash = client.post("/api/students", json={**ANN, "student_id": "S2", "email": "f@x.com"})
    assert clash.status_code == 409
    assert clash.json()["error"]

    tap = client.post("/api/taps", json={"rfid": "A1", "tap_type": "entry"})
    assert tap.status_code == 201
    assert tap.json()["tap_type"] == "entry"
    assert Decimal(str(tap.json()["user_balance"])) == 0

    history = client.get("/api/students/A1/taps")
    assert history.status_code == 200
    assert [t["tap_type"] for t in history.json()] == ["entry"]

    profile = client.get("/api/students/A1")
    assert profile.status_code == 200
    assert profile.json()["name"] == "Ann"
    assert profile.json()["email"] == "e@x.com"
    assert [t["tap_type"] for t in profile.json()["taps"]] == ["entry"]

    missing = client.get("/api/students/ghost")
    assert missing.status_code == 404
    assert missing.json() == {"error": "Student not found."}


def test_register_validation_errors_are_400(client):
    missing_name = {k: v for k, v in ANN.items() if k != "name"}
    assert client.post("/api/students", json=missing_name).status_code == 400
    assert client.post("/api/students", json={**ANN, "school": "  "}).status_code == 400
    assert client.post("/api/students", json={**ANN, "type": "alien"}).status_code == 400

    bad_balance = client.post("/api/students", json={**ANN, "balance": "lots"})
    assert bad_balance.status_code == 400
    assert "error" in bad_balance.json()


def test_blank_balance_from_form_defaults_to_zero(client):
    response = client.post("/api/students", json={**ANN, "balance": ""})

    assert response.status_code == 201
    assert Decimal(str(response.json()["balance"])) == 0


def test_tap_errors(client):
    client.post("/api/students", json=ANN)

    assert client.post("/api/taps", json={"rfid": "A1", "tap_type": "sideways"}).status_code == 400
    assert client.post("/api/taps", json={"rfid": "A1"}).status_code == 400
    assert client.post("/api/taps", json={"rfid": "ghost", "tap_type": "entry"}).status_code == 404
    assert client.get("/api/students/ghost/taps").status_code == 404


def test_alternation_guard_is_409_when_enabled(db, monkeypatch):
    monkeypatch.setattr(config, "TAP_ENFORCE_ALTERNATION", True)
    with TestClient(create_app(db=db, start_reader=False)) as guarded:
        guarded.post("/api/students", json=ANN)

        assert guarded.post("/api/taps", json={"rfid": "A1", "tap_type": "exit"}).status_code == 409
        assert guarded.post("/api/taps", json={"rfid": "A1", "tap_type": "entry"}).status_code == 201


def test_list_and_search(client):
    client.post("/api/students", json=ANN)
    client.post("/api/students", json={**ANN, "rfid": "B2", "student_id": "S2", "email": "b@x.com", "name": "Bob"})

    listed = client.get("/api/students")
    assert listed.status_code == 200
    assert {s["rfid"] for s in listed.json()} == {"A1", "B2"}
    assert len(client.get("/api/students", params={"limit": 1}).json()) == 1
    assert client.get("/api/students", params={"limit": 0}).status_code == 400

    found = client.get("/api/students", params={"query": "bob"})
    assert found.status_code == 200
    assert [s["rfid"] for s in found.json()] == ["B2"]


def test_import_csv(client):
    data = (
        "rfid,student_id,name,email,program,school,balance,type\n"
        "A1,S1,Ann,e@x.com,CS,X,,\n"
        "A1,S2,Ann,e2@x.com,CS,X,,\n"
    ).encode("utf-8")

    response = client.post("/api/students/import", files={"file": ("students.csv", data, "text/csv")})

    assert response.status_code == 200
    assert response.json() == {"inserted": 1, "duplicates": 1, "invalid": 0}


def test_dashboard_endpoints(client):
    client.post("/api/students", json=ANN)
    client.post("/api/taps", json={"rfid": "A1", "tap_type": "entry"})

    analytics = client.get("/api/analytics")
    assert analytics.json() == {"summary": {"total_cardholders": 1, "total_taps": 1, "inside_now": 1}}

    recent = client.get("/api/taps", params={"limit": 5})
    assert [t["rfid"] for t in recent.json()] == ["A1"]

    health = client.get("/api/health")
    assert health.json()["status"] == "ok"
    assert health.json()["dataAvailable"] is True


def test_store_outage_is_500_without_driver_detail(tmp_path):
    broken = DatabaseManager(f"sqlite:///{tmp_path / 'missing' / 'x.db'}")
    # no `with`, startup (schema creation) would fail against the broken store
    client = TestClient(create_app(db=broken, start_reader=False))

    response = client.get("/api/students")

    assert response.status_code == 500
    assert response.json() == {"error": "A database error occurred. Please try again later."}
    assert client.get("/api/health").json()["dataAvailable"] is False


def test_search_query_on_list_route(client):
    client.post("/api/students", json=ANN)

    assert [s["rfid"] for s in client.get("/api/students", params={"query": "S1"}).json()] == ["A1"]
    assert client.get("/api/students", params={"query": "%"}).json() == []
    blank = client.get("/api/students", params={"query": "  "})
    assert blank.status_code == 400
    assert "error" in blank.json()


def test_any_rfid_reaches_its_profile(client):
    created = client.post("/api/students", json={**ANN, "rfid": "search"})
    assert created.status_code == 201

    profile = client.get("/api/students/search")
    assert profile.status_code == 200
    assert profile.json()["rfid"] == "search"
    assert profile.json()["taps"] == []

    slashed = client.post("/api/students", json={**ANN, "rfid": "a/b", "student_id": "S2", "email": "f@x.com"})
    assert slashed.status_code == 400


def test_values_outside_columns_are_400(client):
    assert client.post("/api/students", json={**ANN, "balance": "12.345"}).status_code == 400
    assert client.post("/api/students", json={**ANN, "balance": "10000000000"}).status_code == 400

    long_name = client.post("/api/students", json={**ANN, "name": "N" * 256})
    assert long_name.status_code == 400
    assert long_name.json() == {"error": "Field 'name' must be at most 255 characters"}

    assert client.get("/api/students").json() == []


def test_malformed_csv_import_is_400(client):
    data = (
        "rfid,student_id,name,email,program,school,balance,type\n"
        + "A" * 200000 + ",S1,Ann,e@x.com,CS,X,,\n"
    ).encode("utf-8")

    response = client.post("/api/students/import", files={"file": ("students.csv", data, "text/csv")})

    assert response.status_code == 400
    assert response.json() == {"error": "Malformed CSV at line 2"}


def test_unexpected_error_keeps_error_payload(db, monkeypatch):
    def explode(self):
        raise RuntimeError("boom")

    monkeypatch.setattr(DashboardService, "get_summary", explode)
    with TestClient(create_app(db=db, start_reader=False), raise_server_exceptions=False) as failing:
        response = failing.get("/api/analytics")

    assert response.status_code == 500
    assert response.json() == {"error": "Internal error"}
