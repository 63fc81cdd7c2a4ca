"""
Tests for the FastAPI backend: health, auth, profile, envelopes and headers.

These tests stay offline (no network / no LLM calls).
"""

from __future__ import annotations

from fastapi.testclient import TestClient
from starlette.requests import Request

from cropmarket.api.middleware import get_client_ip

from conftest import PASSWORD

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def test_health(client):
    resp = client.get("/v1/health")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "db": True}
    assert resp.headers["Cache-Control"] == "no-store"


def test_request_id_and_security_headers(client):
    resp = client.get("/v1/health", headers={"X-Request-ID": "req-abc"})
    assert resp.headers["X-Request-ID"] == "req-abc"
    assert resp.headers["X-Content-Type-Options"] == "nosniff"
    assert resp.headers["X-Frame-Options"] == "DENY"

    assert client.get("/v1/health").headers["X-Request-ID"]


def test_oversized_request_rejected(client):
    resp = client.post("/v1/auth/signin", content=b"{}", headers={"Content-Length": "20000000"})
    assert resp.status_code == 413
    assert resp.json()["error"] == "payload_too_large"


class TestClientIp:
    def _request(self, app, peer="10.0.0.1"):
        return Request(
            {
                "type": "http",
                "headers": [(b"x-forwarded-for", b"203.0.113.9, 10.0.0.1")],
                "client": (peer, 5000),
                "app": app,
            }
        )

    def test_forwarded_header_ignored_by_default(self, app):
        assert get_client_ip(self._request(app)) == "10.0.0.1"

    def test_trusted_proxy(self, app, settings):
        settings.trust_proxy_headers = True
        settings.trusted_proxy_ips = {"10.0.0.1"}
        assert get_client_ip(self._request(app)) == "203.0.113.9"
        assert get_client_ip(self._request(app, peer="10.0.0.2")) == "10.0.0.2"


class TestAuth:
    def test_signup_signin_signout(self, client):
        resp = client.post(
            "/v1/auth/signup",
            json={"email": "Ravi@Example.com", "password": PASSWORD, "role": "farmer", "full_name": "Ravi"},
        )
        assert resp.status_code == 201
        profile = resp.json()
        assert profile["email"] == "ravi@example.com"
        assert profile["role"] == "farmer"
        assert "password_hash" not in profile

        resp = client.post("/v1/auth/signin", json={"email": "ravi@example.com", "password": PASSWORD})
        assert resp.status_code == 200
        body = resp.json()
        assert body["token_type"] == "bearer"
        headers = {"Authorization": f"Bearer {body['access_token']}"}

        assert client.get("/v1/profile", headers=headers).json()["id"] == profile["id"]
        assert client.post("/v1/auth/signout", headers=headers).json() == {"ok": True}
        assert client.get("/v1/profile", headers=headers).status_code == 401

    def test_duplicate_signup(self, client):
        payload = {"email": "a@example.com", "password": PASSWORD}
        assert client.post("/v1/auth/signup", json=payload).status_code == 201
        resp = client.post("/v1/auth/signup", json=payload)
        assert resp.status_code == 409
        assert resp.json()["error"] == "conflict"

    def test_admin_cannot_self_register(self, client):
        resp = client.post("/v1/auth/signup", json={"email": "a@example.com", "password": PASSWORD, "role": "admin"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "validation_error"

    def test_short_password(self, client):
        resp = client.post("/v1/auth/signup", json={"email": "a@example.com", "password": "123"})
        assert resp.status_code == 400
        assert resp.json()["message"].startswith("password:")

    def test_overlong_password(self, client):
        resp = client.post("/v1/auth/signup", json={"email": "a@example.com", "password": "p" * 80})
        assert resp.status_code == 400
        assert resp.json()["message"].startswith("password:")

    def test_wrong_password(self, client, buyer):
        resp = client.post("/v1/auth/signin", json={"email": buyer["profile"]["email"], "password": "nope-nope"})
        assert resp.status_code == 401
        body = resp.json()
        assert body["error"] == "authentication_error"
        assert body["message"] == "Invalid login credentials"
        assert body["request_id"] == resp.headers["X-Request-ID"]

    def test_signout_requires_token(self, client):
        assert client.post("/v1/auth/signout").status_code == 401

    def test_garbage_token(self, client):
        resp = client.get("/v1/profile", headers={"Authorization": "Bearer not-a-session"})
        assert resp.status_code == 401
        resp = client.get("/v1/profile", headers={"Authorization": "Basic abc"})
        assert resp.status_code == 401


class TestProfile:
    def test_completion_flag(self, client, buyer):
        headers = buyer["headers"]
        resp = client.patch("/v1/profile", json={"phone": "9876543210"}, headers=headers)
        assert resp.status_code == 200
        assert resp.json()["profile_complete"] is False

        resp = client.patch("/v1/profile", json={"address": "12 MG Road, Pune", "geo_lat": 18.52, "geo_lng": 73.85}, headers=headers)
        body = resp.json()
        assert body["profile_complete"] is True
        assert body["geo_lat"] == 18.52

        resp = client.patch("/v1/profile", json={"address": "  "}, headers=headers)
        assert resp.json()["profile_complete"] is False

    def test_invalid_phone(self, client, buyer):
        resp = client.patch("/v1/profile", json={"phone": "abc"}, headers=buyer["headers"])
        assert resp.status_code == 400

    def test_role_not_editable(self, client, buyer):
        resp = client.patch("/v1/profile", json={"role": "admin"}, headers=buyer["headers"])
        assert resp.status_code == 422

    def test_avatar_upload_is_served(self, client, buyer):
        resp = client.post(
            "/v1/profile/avatar",
            files={"file": ("me.png", PNG_BYTES, "image/png")},
            headers=buyer["headers"],
        )
        assert resp.status_code == 200
        url = resp.json()["avatar_url"]
        assert url.startswith(f"/storage/avatars/{buyer['id']}/")

        served = client.get(url)
        assert served.status_code == 200
        assert served.content == PNG_BYTES

    def test_avatar_must_be_image(self, client, buyer):
        resp = client.post(
            "/v1/profile/avatar",
            files={"file": ("notes.txt", b"hello", "text/plain")},
            headers=buyer["headers"],
        )
        assert resp.status_code == 400


def test_unexpected_error_envelope(app, monkeypatch):
    def broken_ping():
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(app.state.state.store, "ping", broken_ping)
    client = TestClient(app, raise_server_exceptions=False)

    resp = client.get("/v1/health")
    assert resp.status_code == 500
    body = resp.json()
    assert body["error"] == "internal_error"
    assert "disk on fire" not in body["message"]
