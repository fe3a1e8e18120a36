"""에러 응답 포맷 / Bearer 인증"""

from __future__ import annotations

from unittest.mock import patch

import pytest
from firebase_admin import auth as fb_auth

from app.core import deps


class TestEnvelope:
    async def test_unknown_route(self, client) -> None:
        resp = await client.get("/nope")
        assert resp.status_code == 404
        body = resp.json()
        assert body["error"] is True
        assert body["message"] == "Route not found: GET /nope"
        assert "timestamp" in body

    async def test_validation_error_is_400(self, client) -> None:
        resp = await client.post("/user/recipes", json={"title": "x", "ingredients": "not-a-list", "tags": [{"a": 1}]})
        assert resp.status_code == 400
        assert resp.json()["message"] == "Validation error"

    async def test_search_failure_is_500_with_user_message(self, client) -> None:
        with patch("app.api.routes_discover.run_search", side_effect=_search_failed()):
            resp = await client.get("/discover/search")
        assert resp.status_code == 500
        assert resp.json()["message"].startswith("We couldn't search recipes")

    async def test_root_and_health(self, client) -> None:
        assert (await client.get("/")).json()["status"] == "ok"
        health = (await client.get("/health")).json()
        assert health["status"] == "ok"


def _search_failed():
    from app.services.search.engine import SearchFailed
    return SearchFailed("count", RuntimeError("db down"))


class TestBearer:
    async def test_missing_header(self, anon_client) -> None:
        resp = await anon_client.get("/discover/search")
        assert resp.status_code == 401
        assert resp.json()["message"] == "No valid authentication token provided"

    async def test_wrong_scheme(self, anon_client) -> None:
        resp = await anon_client.get("/discover/search", headers={"Authorization": "Basic abc"})
        assert resp.status_code == 401

    @pytest.mark.parametrize("exc,message", [
        (fb_auth.ExpiredIdTokenError("expired", cause=None), "Authentication token has expired"),
        (fb_auth.RevokedIdTokenError("revoked"), "Authentication token has been revoked"),
        (fb_auth.InvalidIdTokenError("bad"), "Invalid authentication token"),
        (RuntimeError("firebase-admin is not initialized"), "Authentication failed"),
    ])
    async def test_verification_errors(self, anon_client, exc, message) -> None:
        with patch.object(deps, "verify_id_token", side_effect=exc):
            resp = await anon_client.get("/users/profile", headers={"Authorization": "Bearer tok"})
        assert resp.status_code == 401
        assert resp.json()["message"] == message

    async def test_valid_token(self, anon_client, db) -> None:
        await db["users"].insert_one({"_id": "u1", "displayName": "U"})
        with patch.object(deps, "verify_id_token", return_value={"uid": "u1", "email": "u@example.com"}):
            resp = await anon_client.get("/users/profile", headers={"Authorization": "Bearer tok"})
        assert resp.status_code == 200
        assert resp.json()["uid"] == "u1"
