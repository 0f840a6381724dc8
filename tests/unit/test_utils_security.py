from typing import Any, Dict

import pytest
from fastapi import FastAPI, Depends
from fastapi.testclient import TestClient

from unishift.app_setup.exceptions import register_exception_handlers
from unishift.users.repository import get_users_repository
from unishift.utils.security import (
    require_user,
    require_admin,
    require_own_data_or_admin,
)


def _make_app(users_repo):
    app = FastAPI()
    register_exception_handlers(app)
    app.dependency_overrides[get_users_repository] = lambda: users_repo

    @app.get("/me")
    def me(user: Dict[str, Any] = Depends(require_user)):
        return user

    @app.get("/admin")
    def admin(user: Dict[str, Any] = Depends(require_admin)):
        return {"ok": True}

    @app.get("/data/{email}")
    def own(email: str, user: Dict[str, Any] = Depends(require_own_data_or_admin)):
        return {"ok": True}

    return app


def _token_user(monkeypatch, email="sender@example.com"):
    monkeypatch.setattr(
        "unishift.auth.service.get_user_from_access_token",
        lambda token: {"id": f"uid-{token}", "email": email, "email_confirmed_at": "2024-01-01T00:00:00Z"},
    )


def test_missing_token(users_repo):
    client = TestClient(_make_app(users_repo))
    r = client.get("/me")
    assert r.status_code == 401
    assert r.json() == {"success": False, "message": "Unauthorized: No token provided"}


def test_valid_token_gives_principal(users_repo, monkeypatch):
    _token_user(monkeypatch)
    client = TestClient(_make_app(users_repo))
    r = client.get("/me", headers={"Authorization": "Bearer abc"})
    assert r.status_code == 200
    assert r.json() == {"uid": "uid-abc", "email": "sender@example.com", "email_verified": True, "token": "abc"}


@pytest.mark.parametrize("error,message", [
    ("JWT expired", "Token expired. Please login again."),
    ("invalid JWT: unable to parse", "Invalid token"),
])
def test_rejected_token(users_repo, monkeypatch, error, message):
    def boom(token):
        raise RuntimeError(error)

    monkeypatch.setattr("unishift.auth.service.get_user_from_access_token", boom)
    client = TestClient(_make_app(users_repo))
    r = client.get("/me", headers={"Authorization": "Bearer abc"})
    assert r.status_code == 401
    assert r.json()["message"] == message


def test_admin_unknown_profile(users_repo, monkeypatch):
    _token_user(monkeypatch)
    client = TestClient(_make_app(users_repo))
    r = client.get("/admin", headers={"Authorization": "Bearer abc"})
    assert r.status_code == 404
    assert r.json()["message"] == "User not found in database"


def test_admin_requires_admin_role(users_repo, monkeypatch):
    _token_user(monkeypatch)
    users_repo.add("sender@example.com", role="rider")
    client = TestClient(_make_app(users_repo))
    r = client.get("/admin", headers={"Authorization": "Bearer abc"})
    assert r.status_code == 403
    assert r.json()["message"] == "Forbidden: Admin access required"


def test_admin_passes(users_repo, monkeypatch):
    _token_user(monkeypatch, email="boss@example.com")
    users_repo.add("boss@example.com", role="admin")
    client = TestClient(_make_app(users_repo))
    assert client.get("/admin", headers={"Authorization": "Bearer abc"}).status_code == 200


def test_own_data(users_repo, monkeypatch):
    _token_user(monkeypatch)
    users_repo.add("sender@example.com")
    client = TestClient(_make_app(users_repo))
    headers = {"Authorization": "Bearer abc"}

    assert client.get("/data/sender@example.com", headers=headers).status_code == 200
    r = client.get("/data/other@example.com", headers=headers)
    assert r.status_code == 403
    assert r.json()["message"] == "Forbidden: Can only access your own data"


def test_admin_can_read_other_data(users_repo, monkeypatch):
    _token_user(monkeypatch, email="boss@example.com")
    users_repo.add("boss@example.com", role="admin")
    client = TestClient(_make_app(users_repo))
    r = client.get("/data/other@example.com", headers={"Authorization": "Bearer abc"})
    assert r.status_code == 200

