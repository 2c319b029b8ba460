import logging

import pytest
from fastapi.testclient import TestClient

from payscale_backend.api.main import app
from payscale_backend.payscales.router import get_pay_scale_store, get_personnel_grade_store
from payscale_backend.payscales.store import InMemoryPayScaleStore, InMemoryPersonnelGradeStore

PAY_SCALE = {"grade": 1, "step": 1, "basic_salary": 150000, "effective_date": "2024-04-01T00:00:00Z"}


@pytest.fixture
def client():
    pay_store = InMemoryPayScaleStore()
    grade_store = InMemoryPersonnelGradeStore()
    app.dependency_overrides[get_pay_scale_store] = lambda: pay_store
    app.dependency_overrides[get_personnel_grade_store] = lambda: grade_store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def failing_client(failing_store):
    app.dependency_overrides[get_pay_scale_store] = lambda: failing_store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_health_reports_encryption_self_test(client):
    r = client.get("/")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "ok"
    assert body["data"]["message"] == "Healthy"
    assert body["data"]["encryption_ready"] is True
    assert body["data"]["key_strong"] is True
    assert r.headers["X-Request-ID"]


def test_request_id_is_echoed(client):
    r = client.get("/", headers={"X-Request-ID": "abc-123"})
    assert r.headers["X-Request-ID"] == "abc-123"


def test_metrics(client):
    client.get("/")
    r = client.get("/_metrics")
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["requests_total"] >= 1
    assert data["responses_2xx_total"] >= 1
    assert "decrypt_failures_total" in data


def test_pay_scale_crud(client):
    r = client.post("/pay-scales", json=PAY_SCALE)
    assert r.status_code == 201
    doc_id = r.json()["data"]["id"]

    r = client.get("/pay-scales")
    assert r.status_code == 200
    body = r.json()
    assert body["meta"]["count"] == 1
    assert body["data"][0]["id"] == doc_id
    assert body["data"][0]["total_salary"] == 150000

    r = client.patch(f"/pay-scales/{doc_id}", json={"remarks": "revised"})
    assert r.status_code == 200
    assert r.json()["data"]["remarks"] == "revised"

    r = client.delete(f"/pay-scales/{doc_id}")
    assert r.status_code == 200
    assert client.get("/pay-scales").json()["data"] == []


def test_duplicate_pay_scale_is_a_400(client):
    client.post("/pay-scales", json=PAY_SCALE)
    r = client.post("/pay-scales", json=PAY_SCALE)
    assert r.status_code == 400
    body = r.json()
    assert body["status"] == "error"
    assert body["code"] == "VALIDATION_ERROR"
    assert body["message"] == "Pay scale for Grade 1, Step 1 already exists"


def test_out_of_range_pay_scale_is_a_400(client):
    r = client.post("/pay-scales", json={**PAY_SCALE, "grade": 25})
    assert r.status_code == 400
    assert r.json()["details"]["errors"] == ["Grade must be between 1 and 20"]


def test_update_unknown_pay_scale_is_a_404(client):
    r = client.patch("/pay-scales/nope", json={"remarks": "x"})
    assert r.status_code == 404
    assert r.json()["code"] == "NOT_FOUND"


def test_validate_endpoint(client):
    r = client.post("/pay-scales/validate", json={"grade": 0, "step": 3, "basic_salary": 10, "effective_date": "2024-01-01"})
    assert r.status_code == 200
    assert r.json()["data"] == {"valid": False, "errors": ["Grade must be between 1 and 20"]}

    r = client.post("/pay-scales/validate", json=PAY_SCALE)
    assert r.json()["data"] == {"valid": True, "errors": []}


def test_defaults_matrix_and_salary(client):
    r = client.post("/pay-scales/defaults")
    assert r.status_code == 201
    assert r.json()["data"]["count"] == 200

    matrix = client.get("/pay-scales/matrix").json()["data"]
    assert len(matrix) == 20
    assert [s["step"] for s in matrix["1"]] == list(range(1, 11))

    r = client.get("/pay-scales/1/1/salary")
    assert r.status_code == 200
    assert r.json()["data"] == {
        "grade": 1,
        "step": 1,
        "total_salary": 373250,
        "next_step_salary": 379000,
        "promotion_salary": 430750,
    }

    top = client.get("/pay-scales/20/10/salary").json()["data"]
    assert top["next_step_salary"] is None
    assert top["promotion_salary"] is None


def test_salary_path_is_range_checked(client):
    assert client.get("/pay-scales/21/1/salary").status_code == 422


def test_import_is_all_or_nothing_on_validation(client):
    r = client.post("/pay-scales/import", json=[PAY_SCALE, {**PAY_SCALE, "step": 2, "basic_salary": -5}])
    assert r.status_code == 400
    assert client.get("/pay-scales").json()["data"] == []

    r = client.post("/pay-scales/import", json=[PAY_SCALE, {**PAY_SCALE, "step": 2}])
    assert r.status_code == 201
    assert r.json()["data"]["count"] == 2


def test_store_failure_is_a_502(failing_client):
    r = failing_client.get("/pay-scales")
    assert r.status_code == 502
    body = r.json()
    assert body["code"] == "OPERATION_FAILED"
    assert body["message"] == "Failed to fetch pay scales"


def test_personnel_grade_routes(client):
    assert client.get("/personnel-grades/P-1").status_code == 404

    payload = {
        "current_grade": 5,
        "current_step": 2,
        "appointment_date": "2019-06-01T00:00:00Z",
        "next_eligible_date": "2025-06-01T00:00:00Z",
    }
    r = client.post("/personnel-grades/P-1", json=payload)
    assert r.status_code == 201
    assert r.json()["data"]["personnel_id"] == "P-1"

    assert client.post("/personnel-grades/P-1", json=payload).status_code == 400

    r = client.patch("/personnel-grades/P-1", json={"current_step": 3})
    assert r.status_code == 200
    assert r.json()["data"]["current_step"] == 3

    r = client.get("/personnel-grades/P-1")
    assert r.json()["data"]["current_step"] == 3

    assert client.patch("/personnel-grades/P-2", json={"current_step": 3}).status_code == 404


def test_request_logs_use_route_template_not_raw_path(client, caplog):
    with caplog.at_level(logging.INFO):
        client.get("/personnel-grades/P-SECRET-77")

    request_logs = [r for r in caplog.records if r.getMessage() == "request"]
    assert request_logs
    assert request_logs[-1].route == "/personnel-grades/{personnel_id}"
    assert request_logs[-1].status == 404
    own_records = [r for r in caplog.records if r.name.startswith("payscale_backend")]
    assert all("P-SECRET-77" not in r.getMessage() + str(getattr(r, "route", "")) for r in own_records)


def test_null_patch_is_rejected_and_list_still_works(client):
    doc_id = client.post("/pay-scales", json=PAY_SCALE).json()["data"]["id"]

    r = client.patch(f"/pay-scales/{doc_id}", json={"allowances": None})
    assert r.status_code == 422
    r = client.patch(f"/pay-scales/{doc_id}", json={"basic_salary": -5})
    assert r.status_code == 422

    r = client.get("/pay-scales")
    assert r.status_code == 200
    assert r.json()["data"][0]["basic_salary"] == 150000


def test_health_reports_weak_key(monkeypatch):
    from payscale_backend.api import main
    from payscale_backend.core.encryption import EncryptionService
    from payscale_backend.core.settings import DEFAULT_ENCRYPTION_KEY

    monkeypatch.setattr(main, "get_encryption_service", lambda: EncryptionService(DEFAULT_ENCRYPTION_KEY))
    monkeypatch.delattr(app.state, "encryption_status", raising=False)

    try:
        data = TestClient(app).get("/").json()["data"]
    finally:
        del app.state.encryption_status

    assert data["encryption_ready"] is True
    assert data["key_strong"] is False
