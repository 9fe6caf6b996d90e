from typing import Callable, Dict

import pytest
from fastapi.testclient import TestClient

ADMIN_EMAIL = "admin@autovision.com"
ADMIN_PASSWORD = "admin123"


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    # Point all stores at an isolated data directory
    monkeypatch.setenv("AUTOVISION_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("AUTOVISION_BCRYPT_ROUNDS", "4")
    monkeypatch.setenv("AUTOVISION_JWT_SECRET", "test-secret-with-enough-length-for-hs256")
    monkeypatch.setenv("AUTOVISION_ENVIRONMENT", "test")
    monkeypatch.delenv("AUTOVISION_CONFIG", raising=False)
    monkeypatch.delenv("AUTOVISION_LOG_FILE", raising=False)
    return tmp_path


@pytest.fixture
def settings(data_dir):
    from autovision.core.config import get_settings

    return get_settings()


@pytest.fixture
def app(settings):
    from autovision_web.main import create_app

    return create_app(settings)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def login(client) -> Callable[[str, str], Dict]:
    def _login(email: str, password: str) -> Dict:
        res = client.post("/api/auth/login", json={"email": email, "password": password})
        assert res.status_code == 200, res.text
        return res.json()

    return _login


def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers() -> Callable[[str], Dict[str, str]]:
    return bearer


@pytest.fixture
def admin_session(login) -> Dict:
    return login(ADMIN_EMAIL, ADMIN_PASSWORD)


@pytest.fixture
def make_user(client, admin_session, login) -> Callable[..., Dict]:
    """Create a user through the admin API and return its login session."""

    def _make_user(email: str, password: str = "password123", role: str = "common") -> Dict:
        res = client.post(
            "/api/users",
            json={"name": email.split("@")[0], "email": email, "password": password, "role": role},
            headers=bearer(admin_session["accessToken"]),
        )
        assert res.status_code == 201, res.text
        return login(email, password)

    return _make_user


@pytest.fixture
def vehicle_payload() -> Dict:
    return {
        "make": "Toyota",
        "model": "Corolla",
        "fabricateYear": 2020,
        "modelYear": 2021,
        "color": "Silver",
        "km": 35000,
        "price": "98000",
        "transmissionType": "automatic",
        "fuelType": "flex",
        "licensePlate": "ABC1D23",
    }
