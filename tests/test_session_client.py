import json
import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest
import requests
from fastapi.testclient import TestClient

from autovision.auth.models import IdentityClaim, TokenPair
from autovision.client import FileTokenStore, MemoryTokenStore, SessionClient
from autovision.core.exceptions import ApiError, SessionExpired, Unauthenticated

BASE_URL = "http://api.local/api"


class FakeResponse:
    def __init__(self, status_code: int, body: Any = None, text: str = ""):
        self.status_code = status_code
        self._body = body
        self.text = text or (json.dumps(body) if body is not None else "")
        self.content = self.text.encode()

    def json(self) -> Any:
        if self._body is None:
            raise ValueError("No JSON body")
        return self._body


class FakeHttp:
    """Scripted transport: a handler decides each response."""

    def __init__(self, handler):
        self.handler = handler
        self.calls: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def request(self, method, url, headers=None, json=None, params=None, timeout=None):
        call = {"method": method, "url": url, "headers": headers or {}, "json": json}
        with self._lock:
            self.calls.append(call)
        return self.handler(call)

    def paths(self) -> List[str]:
        return [c["url"][len(BASE_URL):] for c in self.calls]


def _bearer(call) -> Optional[str]:
    value = call["headers"].get("Authorization")
    return value[7:] if value else None


def _refresh_ok(call):
    return FakeResponse(
        200, {"user": {}, "accessToken": "access-2", "refreshToken": "refresh-2"}
    )


@pytest.fixture
def store():
    return MemoryTokenStore(TokenPair(access_token="access-1", refresh_token="refresh-1"))


def test_single_refresh_and_single_retry(store):
    def handler(call):
        if call["url"].endswith("/auth/refresh"):
            assert call["json"] == {"refreshToken": "refresh-1"}
            assert "Authorization" not in call["headers"]
            return _refresh_ok(call)
        if _bearer(call) == "access-1":
            return FakeResponse(403, {"detail": "Token expired"})
        return FakeResponse(200, {"vehicles": [], "total": 0})

    http = FakeHttp(handler)
    client = SessionClient(BASE_URL, store, http=http)

    assert client.list_vehicles() == {"vehicles": [], "total": 0}
    assert http.paths() == ["/vehicles", "/auth/refresh", "/vehicles"]
    assert _bearer(http.calls[-1]) == "access-2"
    assert store.get().refresh_token == "refresh-2"


def test_failed_refresh_expires_session(store):
    expired = []

    def handler(call):
        if call["url"].endswith("/auth/refresh"):
            return FakeResponse(403, {"detail": "Token expired"})
        return FakeResponse(403, {"detail": "Token expired"})

    http = FakeHttp(handler)
    client = SessionClient(BASE_URL, store, http=http, on_session_expired=lambda: expired.append(True))

    with pytest.raises(SessionExpired):
        client.me()
    assert expired == [True]
    assert store.get().access_token is None
    assert store.get().refresh_token is None

    calls_before = len(http.calls)
    with pytest.raises(Unauthenticated):
        client.me()
    assert len(http.calls) == calls_before


def test_refresh_network_error_expires_session(store):
    def handler(call):
        if call["url"].endswith("/auth/refresh"):
            raise requests.ConnectionError("offline")
        return FakeResponse(403, {"detail": "Token expired"})

    client = SessionClient(BASE_URL, store, http=FakeHttp(handler))
    with pytest.raises(SessionExpired):
        client.me()
    assert store.get().refresh_token is None


def test_refresh_with_bad_body_expires_session(store):
    def handler(call):
        if call["url"].endswith("/auth/refresh"):
            return FakeResponse(200, {"unexpected": True})
        return FakeResponse(403, {"detail": "Token expired"})

    client = SessionClient(BASE_URL, store, http=FakeHttp(handler))
    with pytest.raises(SessionExpired):
        client.me()
    assert store.get().access_token is None


@pytest.mark.parametrize("status_code", [400, 401, 404, 409, 500])
def test_other_errors_surface_server_message(store, status_code):
    http = FakeHttp(lambda call: FakeResponse(status_code, {"detail": "Vehicle is already approved"}))
    client = SessionClient(BASE_URL, store, http=http)

    with pytest.raises(ApiError) as excinfo:
        client.request_approval("v-1")
    assert excinfo.value.message == "Vehicle is already approved"
    assert excinfo.value.status_code == status_code
    assert len(http.calls) == 1


def test_plain_text_error_body(store):
    http = FakeHttp(lambda call: FakeResponse(502, None, text="Bad gateway"))
    client = SessionClient(BASE_URL, store, http=http)
    with pytest.raises(ApiError) as excinfo:
        client.me()
    assert excinfo.value.message == "Bad gateway"


def test_retry_still_forbidden_is_not_retried_again(store):
    def handler(call):
        if call["url"].endswith("/auth/refresh"):
            return _refresh_ok(call)
        return FakeResponse(403, {"detail": "Access denied"})

    http = FakeHttp(handler)
    client = SessionClient(BASE_URL, store, http=http)

    with pytest.raises(ApiError) as excinfo:
        client.pending_vehicles()
    assert excinfo.value.status_code == 403
    assert excinfo.value.message == "Access denied"
    assert http.paths() == ["/vehicles/pending", "/auth/refresh", "/vehicles/pending"]


def test_forbidden_without_refresh_token(tmp_path):
    path = tmp_path / "tokens.json"
    path.write_text(json.dumps({"accessToken": "access-1"}))
    store = FileTokenStore(path)

    http = FakeHttp(lambda call: FakeResponse(403, {"detail": "Token expired"}))
    client = SessionClient(BASE_URL, store, http=http)
    with pytest.raises(ApiError):
        client.me()
    assert http.paths() == ["/auth/me"]


def test_no_token_means_no_request():
    http = FakeHttp(lambda call: FakeResponse(200, {}))
    client = SessionClient(BASE_URL, MemoryTokenStore(), http=http)
    with pytest.raises(Unauthenticated):
        client.list_vehicles()
    assert http.calls == []


def test_login_stores_pair_without_auth_header():
    def handler(call):
        assert "Authorization" not in call["headers"]
        return FakeResponse(200, {"user": {"id": "u-1"}, "accessToken": "a", "refreshToken": "r"})

    store = MemoryTokenStore()
    client = SessionClient(BASE_URL, store, http=FakeHttp(handler))
    body = client.login("ana@example.com", "secret")
    assert body["user"]["id"] == "u-1"
    assert (store.get().access_token, store.get().refresh_token) == ("a", "r")

    client.logout()
    assert store.get().access_token is None


def test_authenticated_url(store):
    client = SessionClient(BASE_URL, store, http=FakeHttp(lambda call: None))
    assert client.authenticated_url("/documents/1") == f"{BASE_URL}/documents/1?token=access-1"
    assert client.authenticated_url("/documents/1?page=2") == f"{BASE_URL}/documents/1?page=2&token=access-1"

    client.logout()
    assert client.authenticated_url("/documents/1") == f"{BASE_URL}/documents/1"


def test_no_content_response(store):
    client = SessionClient(BASE_URL, store, http=FakeHttp(lambda call: FakeResponse(204)))
    assert client.delete_vehicle("v-1") is None


def test_file_token_store(tmp_path):
    path = tmp_path / "session" / "tokens.json"
    store = FileTokenStore(path)
    assert store.get().access_token is None

    store.set(TokenPair(access_token="a", refresh_token="r"))
    assert json.loads(path.read_text()) == {"accessToken": "a", "refreshToken": "r"}
    assert FileTokenStore(path).get().refresh_token == "r"

    store.clear()
    assert not path.exists()
    assert store.get().refresh_token is None


def test_unreadable_token_file_reads_as_signed_out(tmp_path):
    path = tmp_path / "tokens.json"
    path.write_text("{not json")
    assert FileTokenStore(path).get().access_token is None


def test_concurrent_forbidden_share_one_refresh(store):
    barrier = threading.Barrier(2, timeout=5)
    refresh_calls = []

    def handler(call):
        if call["url"].endswith("/auth/refresh"):
            refresh_calls.append(call)
            return _refresh_ok(call)
        if _bearer(call) == "access-1":
            # Both callers see the stale token before either refreshes
            barrier.wait()
            return FakeResponse(403, {"detail": "Token expired"})
        return FakeResponse(200, {"ok": True})

    client = SessionClient(BASE_URL, store, http=FakeHttp(handler))
    results, errors = [], []

    def worker():
        try:
            results.append(client.me())
        except Exception as e:  # surfaced through the assertion below
            errors.append(e)

    threads = [threading.Thread(target=worker) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    assert errors == []
    assert results == [{"ok": True}, {"ok": True}]
    assert len(refresh_calls) == 1


def test_end_to_end_silent_refresh(app, settings):
    services = app.state.services
    admin = services.users.get_user_by_email(settings.admin_email)
    stale = services.tokens.issue(
        IdentityClaim.for_user(admin), now=datetime.now(timezone.utc) - timedelta(minutes=30)
    )
    store = MemoryTokenStore(stale)
    client = SessionClient("http://testserver/api", store, http=TestClient(app))

    me = client.me()
    assert me["email"] == settings.admin_email
    assert store.get().access_token != stale.access_token
    assert store.get().refresh_token != stale.refresh_token


def test_end_to_end_login_and_workflow(app, settings, vehicle_payload):
    client = SessionClient("http://testserver/api", MemoryTokenStore(), http=TestClient(app))
    client.login(settings.admin_email, settings.admin_password)

    vehicle = client.create_vehicle(vehicle_payload)
    assert vehicle["approvalStatus"] == "pending"
    assert [v["id"] for v in client.pending_vehicles()] == [vehicle["id"]]

    approved = client.approve_vehicle(vehicle["id"])
    assert approved["approvalStatus"] == "approved"

    with pytest.raises(ApiError) as excinfo:
        client.request_approval(vehicle["id"])
    assert excinfo.value.status_code == 409
    assert excinfo.value.message == "Vehicle is already approved"

    assert client.list_vehicles(make="Toyota")["total"] == 1
    history = client.vehicle_history(vehicle["id"])
    assert [h["action"] for h in history] == ["APPROVE", "CREATE"]


@pytest.mark.parametrize("content", ['["x"]', '"token"', "42", "null"])
def test_token_file_without_mapping_reads_as_signed_out(tmp_path, content):
    path = tmp_path / "tokens.json"
    path.write_text(content)
    tokens = FileTokenStore(path).get()
    assert tokens.access_token is None
    assert tokens.refresh_token is None


def test_end_to_end_user_management_and_dashboard(app, settings, vehicle_payload):
    client = SessionClient("http://testserver/api", MemoryTokenStore(), http=TestClient(app))
    client.login(settings.admin_email, settings.admin_password)

    ana = client.create_user({"name": "Ana", "email": "ana@example.com", "password": "secret1"})
    assert client.update_user(ana["id"], {"phone": "1133334444"})["phone"] == "1133334444"

    first = client.create_vehicle(vehicle_payload)
    second = client.create_vehicle({**vehicle_payload, "status": "sold"})
    compared = client.compare_vehicles([first["id"], second["id"]])
    assert [v["id"] for v in compared["vehicles"]] == [first["id"], second["id"]]

    assert client.stats()["soldVehicles"] == 1
    assert {row["status"]: row["count"] for row in client.vehicles_by_status()}["sold"] == 1
    assert sum(row["sales"] for row in client.sales()) == 1

    profile = client.update_profile({"name": "Chief", "email": settings.admin_email})
    assert profile["name"] == "Chief"

    assert client.delete_user(ana["id"]) == {"message": "User deleted"}
    with pytest.raises(ApiError) as excinfo:
        client.delete_user(ana["id"])
    assert excinfo.value.status_code == 404
