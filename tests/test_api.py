"""API tests: pass lifecycle, verification links and scanner control over HTTP."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
import pytz
from datetime import datetime, timedelta
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from app.config import settings
from app.database import get_db, get_session_factory
from app.main import app, BASE_PATH


def local_today():
    return datetime.now(pytz.timezone(settings.TIMEZONE)).date()


@pytest.fixture
def client(engine, host, monkeypatch):
    TestSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        db = TestSession()
        try:
            yield db
        finally:
            db.close()

    monkeypatch.setattr(settings, "SHARE_WEBHOOK_URL", None)
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: TestSession
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def headers(host):
    return {"X-Host-Id": host.id}


def issue(client, headers, days_ahead=1, **overrides):
    body = {
        "visitor_name": "Alice Tan",
        "visitor_phone": "0123456789",
        "vehicle_plate": "WXY 1234",
        "vehicle_type": "car",
        "scheduled_date": (local_today() + timedelta(days=days_ahead)).isoformat(),
        "reason": "Family visit",
    }
    body.update(overrides)
    return client.post("/api/v1/passes", json=body, headers=headers)


class TestPassesApi:
    def test_issue_pass(self, client, headers, host):
        resp = issue(client, headers)
        assert resp.status_code == 201
        data = resp.json()
        assert data["host_id"] == host.id
        assert data["host_name"] == "Farid Ismail"
        assert data["verification_url"].endswith(f"/verify-visitor/{data['pass_token']}")

    def test_missing_host_header(self, client):
        assert issue(client, {}).status_code == 401

    def test_unknown_host(self, client):
        assert issue(client, {"X-Host-Id": "nobody"}).status_code == 401

    def test_past_date_rejected(self, client, headers):
        assert issue(client, headers, days_ahead=-1).status_code == 400

    def test_blank_field_rejected(self, client, headers):
        assert issue(client, headers, vehicle_plate="  ").status_code == 422

    def test_list_and_delete(self, client, headers):
        first = issue(client, headers, days_ahead=1).json()
        second = issue(client, headers, days_ahead=3, visitor_name="Bob Lee").json()

        listed = client.get("/api/v1/passes", headers=headers).json()
        assert [p["id"] for p in listed] == [second["id"], first["id"]]

        resp = client.delete(f"/api/v1/passes/{first['id']}", headers=headers)
        assert resp.status_code == 200
        assert resp.json() == {"status": "deleted", "id": first["id"]}
        assert client.get(f"/api/v1/passes/{first['id']}", headers=headers).status_code == 404

    def test_qr_png(self, client, headers):
        created = issue(client, headers).json()
        resp = client.get(f"/api/v1/passes/{created['id']}/qr", headers=headers)
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "image/png"
        assert resp.content[:4] == b"\x89PNG"

    def test_share_falls_back_to_download(self, client, headers):
        created = issue(client, headers).json()
        resp = client.post(f"/api/v1/passes/{created['id']}/share", headers=headers)
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "image/png"
        assert 'filename="VisitorPass-Alice_Tan.png"' in resp.headers["content-disposition"]


class TestVerificationApi:
    def test_link_for_future_pass(self, client, headers):
        created = issue(client, headers, days_ahead=1).json()
        resp = client.get(f"{BASE_PATH}/verify-visitor/{created['pass_token']}")
        assert resp.status_code == 200
        data = resp.json()
        assert data["state"] == "future"
        assert data["headline"] == "FUTURE DATE"
        assert data["invitation"]["visitor_name"] == "Alice Tan"

    def test_link_for_todays_pass(self, client, headers):
        created = issue(client, headers, days_ahead=0).json()
        data = client.get(f"{BASE_PATH}/verify-visitor/{created['pass_token']}").json()
        assert data["state"] == "valid"
        assert data["host_address"] == "No. 12, Jalan Ukay Perdana 3"

    def test_scan_payload(self, client, headers):
        created = issue(client, headers, days_ahead=0).json()
        resp = client.post("/api/v1/verify/scan", json={"payload": created["verification_url"]})
        assert resp.json()["state"] == "valid"

    def test_scan_unrecognised(self, client):
        data = client.post("/api/v1/verify/scan", json={"payload": "hello"}).json()
        assert data["state"] == "invalid"
        assert data["message"] == "QR code format not recognized."

    def test_revoked_pass_is_invalid(self, client, headers):
        created = issue(client, headers, days_ahead=0).json()
        client.delete(f"/api/v1/passes/{created['id']}", headers=headers)
        data = client.get(f"{BASE_PATH}/verify-visitor/{created['pass_token']}").json()
        assert data["state"] == "invalid"
        assert data["message"] == "Invitation not found."


class TestScannerApi:
    def test_status(self, client):
        resp = client.get("/api/v1/scanner/status")
        assert resp.status_code == 200
        assert resp.json()["camera_source"] == settings.SCANNER_CAMERA_SOURCE

    def test_reset_without_session(self, client):
        client.post("/api/v1/scanner/cancel")
        assert client.post("/api/v1/scanner/reset").status_code == 409


class TestHealthApi:
    def test_health(self, client):
        data = client.get("/api/v1/health").json()
        assert data["database"] == "ok"
        assert data["share_gateway"] == "download_only"
