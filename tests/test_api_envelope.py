"""
FASE Platform
Tests — API envelope, authentication and cross-cutting middleware.

Covers:
    - 401 without / with invalid / with expired token
    - 403 for deactivated accounts and foreign company tokens
    - error envelope for 404 (entity + unknown route) and 405
    - 415 on non-JSON bodies
    - health check (no auth)
    - security headers + request id
"""

from datetime import datetime, timedelta, timezone

import jwt

from fase.core.roles import Role


class TestAuthentication:
    def test_missing_token(self, client):
        res = client.get("/api/big-rocks")
        assert res.status_code == 401
        assert res.get_json() == {
            "success": False, "error": "No autenticado", "code": "ERR_UNAUTHENTICATED",
        }

    def test_garbage_token(self, client):
        res = client.get("/api/big-rocks", headers={"Authorization": "Bearer not-a-jwt"})
        assert res.status_code == 401

    def test_expired_token(self, app, client, make_user):
        user = make_user()
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": str(user.id), "type": "access",
             "iat": now - timedelta(hours=2), "exp": now - timedelta(hours=1)},
            app.config["JWT_SECRET_KEY"], algorithm="HS256",
        )
        res = client.get("/api/big-rocks", headers={"Authorization": f"Bearer {token}"})
        assert res.status_code == 401
        assert res.get_json()["error"] == "Sesión expirada"

    def test_wrong_token_type(self, app, client, make_user):
        user = make_user()
        token = jwt.encode(
            {"sub": str(user.id), "type": "refresh"},
            app.config["JWT_SECRET_KEY"], algorithm="HS256",
        )
        res = client.get("/api/big-rocks", headers={"Authorization": f"Bearer {token}"})
        assert res.status_code == 401

    def test_deactivated_user(self, client, make_user, auth_headers):
        user = make_user(status="DEACTIVATED")
        res = client.get("/api/big-rocks", headers=auth_headers(user))
        assert res.status_code == 403
        assert res.get_json()["code"] == "ERR_FORBIDDEN"

    def test_token_for_foreign_company(self, client, make_user, make_company, auth_headers):
        user = make_user()
        other = make_company("Otra")
        res = client.get("/api/big-rocks", headers=auth_headers(user, other.id))
        assert res.status_code == 403

    def test_superadmin_may_switch_company(self, client, make_user, make_company, auth_headers):
        root = make_user(Role.SUPERADMIN)
        other = make_company("Otra")
        res = client.get("/api/big-rocks", headers=auth_headers(root, other.id))
        assert res.status_code == 200


class TestEnvelope:
    def test_success_envelope(self, client, make_user, auth_headers):
        res = client.get("/api/big-rocks", headers=auth_headers(make_user()))
        assert res.get_json() == {"success": True, "data": []}

    def test_entity_not_found(self, client, make_user, auth_headers):
        res = client.get("/api/big-rocks/9999", headers=auth_headers(make_user()))
        assert res.status_code == 404
        body = res.get_json()
        assert body["success"] is False
        assert body["code"] == "ERR_NOT_FOUND"
        assert body["error"] == "Big Rock no encontrado"

    def test_unknown_route(self, client):
        res = client.get("/api/does-not-exist")
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"

    def test_method_not_allowed(self, client):
        res = client.patch("/api/health")
        assert res.status_code == 405
        assert res.get_json()["success"] is False

    def test_non_json_body(self, client, make_user, auth_headers):
        res = client.post(
            "/api/big-rocks", data="title=x", content_type="application/x-www-form-urlencoded",
            headers=auth_headers(make_user()),
        )
        assert res.status_code == 415
        assert res.get_json()["code"] == "ERR_UNSUPPORTED_MEDIA"

    def test_validation_details(self, client, make_user, auth_headers):
        res = client.post("/api/big-rocks", json={}, headers=auth_headers(make_user()))
        assert res.status_code == 400
        details = res.get_json()["details"]
        assert {"title", "description", "indicator", "numTars", "month"} <= set(details)


class TestHealthAndHeaders:
    def test_health(self, client):
        res = client.get("/api/health")
        assert res.status_code == 200
        data = res.get_json()["data"]
        assert data["status"] == "ok"

    def test_security_headers(self, client):
        res = client.get("/api/health")
        assert res.headers["X-Content-Type-Options"] == "nosniff"
        assert res.headers["X-Frame-Options"] == "DENY"
        assert res.headers["Cache-Control"] == "no-store"
        assert "Server" not in res.headers

    def test_request_id_header(self, client):
        res = client.get("/api/health", headers={"X-Request-ID": "abc-123"})
        assert res.headers.get("X-Request-ID") == "abc-123"
