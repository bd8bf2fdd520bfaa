"""HTTP-level tests: FastAPI TestClient with the DB and registry dependencies overridden."""
import pytest
from fastapi.testclient import TestClient

from app.db.session import get_db
from app.main import app
from app.services.auth.identity import issue_session_token
from app.services.entitlements.service import EntitlementService
from app.verticals.registry import get_registry


@pytest.fixture
def client(session_factory, registry):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_registry] = lambda: registry
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth():
    return {"Authorization": f"Bearer {issue_session_token('acct-1')}"}


def test_health(client):
    resp = client.get("/health", headers={"X-Request-Id": "req-42"})
    assert resp.json() == {"status": "ok"}
    assert resp.headers["X-Request-Id"] == "req-42"


def test_list_verticals(client):
    resp = client.get("/verticals")
    assert resp.status_code == 200
    body = resp.json()
    assert len(body) == 16
    assert body[0]["key"] == "dealflow"
    assert body[0]["unlock_operation"] == "unlock_dealflow_companies"


def test_unknown_vertical_is_404(client, auth):
    resp = client.get("/verticals/nope")
    assert resp.status_code == 404
    assert resp.json()["detail"]["error"] == "UnknownVertical"

    resp = client.post("/verticals/nope/unlock", json={"record_ids": ["a"]}, headers=auth)
    assert resp.status_code == 404
    assert resp.json()["detail"]["error"] == "UnknownVertical"


def test_requires_session(client):
    resp = client.get("/verticals/dealflow/entitlements")
    assert resp.status_code == 401

    resp = client.post(
        "/verticals/dealflow/unlock",
        json={"record_ids": ["a"]},
        headers={"Authorization": "Bearer forged.token.value"},
    )
    assert resp.status_code == 401


def test_records(client, auth, dealflow_records):
    resp = client.get("/verticals/dealflow/records", params={"limit": 2}, headers=auth)
    assert resp.status_code == 200
    body = resp.json()
    assert body["vertical_key"] == "dealflow"
    assert [r["id"] for r in body["records"]] == ["c1", "c2"]
    assert body["records"][0]["name"] == "Company 1"


def test_records_missing_table_is_503(client, auth):
    resp = client.get("/verticals/salesintel/records", headers=auth)
    assert resp.status_code == 503
    assert resp.json()["detail"]["error"] == "StoreUnavailable"
    assert resp.headers["Retry-After"] == "1"


def test_unlock_flow(client, auth, fund):
    fund("acct-1", 5)

    resp = client.post("/verticals/dealflow/unlock", json={"record_ids": ["c1", "c2", "c3"]}, headers=auth)
    assert resp.status_code == 200
    assert resp.json() == {
        "newly_granted": ["c1", "c2", "c3"],
        "already_granted": [],
        "charged": 3,
        "remaining_balance": 2,
    }

    resp = client.post("/verticals/dealflow/unlock", json={"record_ids": ["c1", "c2", "c3", "c4"]}, headers=auth)
    assert resp.json()["newly_granted"] == ["c4"]
    assert resp.json()["charged"] == 1
    assert resp.json()["remaining_balance"] == 1

    resp = client.get("/verticals/dealflow/entitlements", headers=auth)
    assert resp.json() == {"vertical_key": "dealflow", "record_ids": ["c1", "c2", "c3", "c4"]}

    assert client.get("/credits/balance", headers=auth).json() == {"balance": 1}


def test_unlock_insufficient_credits_is_402(client, auth, fund, session_factory):
    fund("acct-1", 1)
    resp = client.post("/verticals/dealflow/unlock", json={"record_ids": ["c1", "c2"]}, headers=auth)
    assert resp.status_code == 402
    assert resp.json()["detail"] == {
        "error": "InsufficientCredits",
        "message": "Insufficient credits. Required: 2, available: 1.",
        "required": 2,
        "available": 1,
    }
    session = session_factory()
    try:
        assert EntitlementService(session).list_granted("acct-1", "dealflow") == set()
    finally:
        session.close()


def test_unlock_rejects_empty_request(client, auth):
    resp = client.post("/verticals/dealflow/unlock", json={"record_ids": []}, headers=auth)
    assert resp.status_code == 422

    resp = client.post("/verticals/dealflow/unlock", json={"record_ids": ["  "]}, headers=auth)
    assert resp.status_code == 422


def test_unlock_accepts_numeric_ids(client, auth, fund):
    fund("acct-1", 5)
    resp = client.post("/verticals/dealflow/unlock", json={"record_ids": [1, 2, "2"]}, headers=auth)
    assert resp.status_code == 200
    assert resp.json()["newly_granted"] == ["1", "2"]
    assert resp.json()["charged"] == 2

    resp = client.post("/rpc/unlock_dealflow_companies", json={"company_ids": [2, 3]}, headers=auth)
    assert resp.json()["newly_granted"] == ["3"]
    assert resp.json()["already_granted"] == ["2"]


def test_legacy_rpc_operation(client, auth, fund):
    fund("acct-1", 5)
    resp = client.post("/rpc/unlock_dealflow_companies", json={"company_ids": ["c1", "c2"]}, headers=auth)
    assert resp.status_code == 200
    assert resp.json()["newly_granted"] == ["c1", "c2"]

    # Same batch through the generic route is a no-op
    resp = client.post("/verticals/dealflow/unlock", json={"record_ids": ["c1", "c2"]}, headers=auth)
    assert resp.json()["charged"] == 0
    assert resp.json()["remaining_balance"] == 3


def test_legacy_rpc_errors(client, auth):
    resp = client.post("/rpc/unlock_everything", json={"ids": ["a"]}, headers=auth)
    assert resp.status_code == 404
    assert resp.json()["detail"]["error"] == "UnknownVertical"

    resp = client.post("/rpc/unlock_dealflow_companies", json={"record_ids": ["a"]}, headers=auth)
    assert resp.status_code == 422


def test_credit_history(client, auth, fund):
    fund("acct-1", 5)
    client.post("/verticals/dealflow/unlock", json={"record_ids": ["c1", "c2"]}, headers=auth)

    body = client.get("/credits/history", headers=auth).json()
    assert body["balance"] == 3
    assert [e["delta"] for e in body["entries"]] == [-2, 5]
    assert body["entries"][0]["reason"] == "unlock:dealflow"
    assert body["entries"][0]["reference_id"]


def test_admin_adjustments(client, auth):
    resp = client.post("/admin/credits/acct-1", json={"delta": 10, "reason": "purchase"})
    assert resp.status_code == 403

    headers = {"X-Admin-Key": "test-admin-key"}
    resp = client.post("/admin/credits/acct-1", json={"delta": 10, "reason": "purchase"}, headers=headers)
    assert resp.json() == {"balance": 10}

    resp = client.post("/admin/credits/acct-1", json={"delta": -3, "reason": "refund_reversal"}, headers=headers)
    assert resp.json() == {"balance": 7}

    resp = client.post("/admin/credits/acct-1", json={"delta": 0}, headers=headers)
    assert resp.status_code == 422

    body = client.get("/admin/credits/acct-1", headers=headers).json()
    assert body["balance"] == 7
    assert [e["reason"] for e in body["entries"]] == ["refund_reversal", "purchase"]

    assert client.get("/credits/balance", headers=auth).json() == {"balance": 7}


def test_metrics_endpoint(client):
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "unlock_requests_total" in resp.text
