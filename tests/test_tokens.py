from datetime import datetime, timedelta, timezone

import jwt
import pytest

from autovision.auth.models import IdentityClaim, Role
from autovision.auth.tokens import TokenService
from autovision.core.exceptions import TokenExpired, TokenInvalid

SECRET = "unit-test-secret-with-enough-length-for-hs256"


@pytest.fixture
def service():
    return TokenService(SECRET)


@pytest.mark.parametrize("role", [Role.ADMIN, Role.COMMON])
def test_round_trip_for_both_tokens(service, role):
    identity = IdentityClaim(id="u-1", email="ana@example.com", role=role)
    pair = service.issue(identity)

    for token in (pair.access_token, pair.refresh_token):
        claim = service.verify(token)
        assert (claim.id, claim.email, claim.role) == (identity.id, identity.email, identity.role)
        assert claim.iat is not None and claim.exp is not None


def test_lifetimes(service):
    pair = service.issue(IdentityClaim(id="u-1", email="a@example.com", role=Role.COMMON))
    access = service.verify(pair.access_token)
    refresh = service.verify(pair.refresh_token)
    assert access.exp - access.iat == 15 * 60
    assert refresh.exp - refresh.iat == 7 * 24 * 60 * 60
    assert pair.access_token != pair.refresh_token


def test_expired_access_token(service):
    identity = IdentityClaim(id="u-1", email="a@example.com", role=Role.ADMIN)
    pair = service.issue(identity, now=datetime.now(timezone.utc) - timedelta(minutes=16))

    with pytest.raises(TokenExpired):
        service.verify(pair.access_token)
    # Refresh token from the same pair expires independently
    assert service.verify(pair.refresh_token).id == "u-1"


def test_expired_refresh_token(service):
    identity = IdentityClaim(id="u-1", email="a@example.com", role=Role.COMMON)
    pair = service.issue(identity, now=datetime.now(timezone.utc) - timedelta(days=8))
    with pytest.raises(TokenExpired):
        service.verify(pair.refresh_token)


def test_wrong_signature_is_invalid_not_expired(service):
    other = TokenService("another-secret-with-enough-length-for-hs256")
    pair = other.issue(IdentityClaim(id="u-1", email="a@example.com", role=Role.ADMIN))
    with pytest.raises(TokenInvalid) as excinfo:
        service.verify(pair.access_token)
    assert not isinstance(excinfo.value, TokenExpired)


def test_garbage_token(service):
    with pytest.raises(TokenInvalid):
        service.verify("not.a.jwt")


def test_unknown_role_rejected(service):
    now = int(datetime.now(timezone.utc).timestamp())
    token = jwt.encode(
        {"id": "u-1", "email": "a@example.com", "role": "manager", "iat": now, "exp": now + 60},
        SECRET,
        algorithm="HS256",
    )
    with pytest.raises(TokenInvalid):
        service.verify(token)


def test_missing_expiry_rejected(service):
    token = jwt.encode({"id": "u-1", "email": "a@example.com", "role": "admin"}, SECRET, algorithm="HS256")
    with pytest.raises(TokenInvalid):
        service.verify(token)


def test_from_settings(settings):
    service = TokenService.from_settings(settings)
    assert service.secret == "test-secret-with-enough-length-for-hs256"
    assert service.access_ttl == timedelta(minutes=15)
    assert service.refresh_ttl == timedelta(days=7)
