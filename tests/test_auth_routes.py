from datetime import datetime, timedelta, timezone

from autovision.auth.models import IdentityClaim, Role

from conftest import ADMIN_EMAIL, ADMIN_PASSWORD


def test_login_returns_user_and_token_pair(client):
    res = client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["user"]["email"] == ADMIN_EMAIL
    assert body["user"]["role"] == "admin"
    assert "passwordHash" not in body["user"]
    assert body["accessToken"] and body["refreshToken"]
    assert body["accessToken"] != body["refreshToken"]


def test_invalid_login(client):
    wrong_password = client.post(
        "/api/auth/login", json={"email": ADMIN_EMAIL, "password": "wrong-password"}
    )
    unknown_email = client.post(
        "/api/auth/login", json={"email": "nobody@example.com", "password": "whatever"}
    )
    assert wrong_password.status_code == 401
    assert unknown_email.status_code == 401
    # Same message either way
    assert wrong_password.json()["detail"] == unknown_email.json()["detail"]


def test_me(client, admin_session, auth_headers):
    res = client.get("/api/auth/me", headers=auth_headers(admin_session["accessToken"]))
    assert res.status_code == 200
    assert res.json()["email"] == ADMIN_EMAIL


def test_me_requires_token(client):
    assert client.get("/api/auth/me").status_code == 401
    assert client.get("/api/auth/me", headers={"Authorization": "Bearer nope"}).status_code == 403


def test_refresh_issues_new_pair(client, admin_session, auth_headers):
    res = client.post("/api/auth/refresh", json={"refreshToken": admin_session["refreshToken"]})
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["user"]["email"] == ADMIN_EMAIL
    assert body["refreshToken"] != admin_session["refreshToken"]
    me = client.get("/api/auth/me", headers=auth_headers(body["accessToken"]))
    assert me.status_code == 200


def test_refresh_failures(client, app):
    assert client.post("/api/auth/refresh", json={}).status_code == 401
    assert client.post("/api/auth/refresh", json={"refreshToken": "garbage"}).status_code == 403

    tokens = app.state.services.tokens
    admin = app.state.services.users.get_user_by_email(ADMIN_EMAIL)
    stale = tokens.issue(
        IdentityClaim.for_user(admin), now=datetime.now(timezone.utc) - timedelta(days=8)
    )
    assert client.post("/api/auth/refresh", json={"refreshToken": stale.refresh_token}).status_code == 403


def test_refresh_for_unknown_user(client, app):
    ghost = app.state.services.tokens.issue(
        IdentityClaim(id="ghost", email="ghost@example.com", role=Role.ADMIN)
    )
    res = client.post("/api/auth/refresh", json={"refreshToken": ghost.refresh_token})
    assert res.status_code == 401


def test_login_is_recorded(client, admin_session, auth_headers):
    admin_id = admin_session["user"]["id"]
    res = client.get(f"/api/users/{admin_id}/activity", headers=auth_headers(admin_session["accessToken"]))
    assert res.status_code == 200
    actions = [entry["action"] for entry in res.json()]
    assert "LOGIN" in actions


def test_users_admin_only(client, make_user, auth_headers):
    session = make_user("plain@example.com")
    assert session["user"]["role"] == "common"
    res = client.get("/api/users", headers=auth_headers(session["accessToken"]))
    assert res.status_code == 403


def test_duplicate_email_conflict(client, admin_session, auth_headers):
    res = client.post(
        "/api/users",
        json={"name": "Dup", "email": ADMIN_EMAIL.upper(), "password": "password123"},
        headers=auth_headers(admin_session["accessToken"]),
    )
    assert res.status_code == 409


def test_activity_only_for_self_or_admin(client, make_user, admin_session, auth_headers):
    alice = make_user("alice@example.com")
    bob = make_user("bob@example.com")
    own = client.get(
        f"/api/users/{alice['user']['id']}/activity", headers=auth_headers(alice["accessToken"])
    )
    other = client.get(
        f"/api/users/{bob['user']['id']}/activity", headers=auth_headers(alice["accessToken"])
    )
    assert own.status_code == 200
    assert other.status_code == 403
