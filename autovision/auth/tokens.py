"""
Signed, time-limited access/refresh tokens (JWT, HS256 by default).

Both tokens of a pair carry the same identity claims and are signed
independently with the shared secret; the access token lives 15 minutes,
the refresh token 7 days. Verification is purely cryptographic: there is
no server-side revocation list, so a leaked refresh token stays valid
until it expires.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import uuid4

import jwt
from pydantic import ValidationError

from ..core.config import Settings, get_settings
from ..core.exceptions import TokenExpired, TokenInvalid
from .models import IdentityClaim, TokenPair


class TokenService:
    """Issue and verify token pairs."""

    def __init__(
        self,
        secret: str,
        *,
        algorithm: str = "HS256",
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=7),
    ) -> None:
        if not secret:
            raise ValueError("Token secret must not be empty")
        self.secret = secret
        self.algorithm = algorithm
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "TokenService":
        settings = settings or get_settings()
        return cls(
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            access_ttl=timedelta(minutes=settings.access_token_ttl_minutes),
            refresh_ttl=timedelta(days=settings.refresh_token_ttl_days),
        )

    def _sign(self, identity: IdentityClaim, now: datetime, ttl: timedelta) -> str:
        payload = {
            "id": identity.id,
            "email": identity.email,
            "role": identity.role.value,
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
            "jti": uuid4().hex,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def issue(self, identity: IdentityClaim, now: Optional[datetime] = None) -> TokenPair:
        """Sign a fresh access/refresh pair for the identity. Stateless."""
        now = now or datetime.now(timezone.utc)
        return TokenPair(
            access_token=self._sign(identity, now, self.access_ttl),
            refresh_token=self._sign(identity, now, self.refresh_ttl),
        )

    def verify(self, token: str) -> IdentityClaim:
        """
        Validate signature and expiry and return the identity claims.

        Raises:
            TokenExpired: the token is past its exp timestamp
            TokenInvalid: bad signature, malformed token or bad claims
        """
        try:
            decoded = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "iat"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpired("Token expired") from exc
        except jwt.InvalidTokenError as exc:
            raise TokenInvalid(f"Invalid token: {exc}") from exc
        try:
            return IdentityClaim(
                id=decoded["id"],
                email=decoded["email"],
                role=decoded["role"],
                iat=decoded["iat"],
                exp=decoded["exp"],
            )
        except (KeyError, ValidationError) as exc:
            raise TokenInvalid("Invalid token claims") from exc
