"""
Auth dependencies for protected routes.

require_auth:
- Reads the bearer token from the Authorization header, falling back to
  the ?token= query parameter (embedded document viewers and new-tab
  opens cannot set headers)
- No token: 401. Token present but invalid or expired: 403, which is the
  client's cue to try a silent refresh
- Returns the IdentityClaim and stores it on request.state.identity

require_role(...) runs after require_auth and answers 403 for any role
outside the allowed set.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request

from autovision.auth.models import IdentityClaim, Role
from autovision.auth.tokens import TokenService
from autovision.core.exceptions import Forbidden, Unauthenticated

from .deps import get_token_service


def extract_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.lower().startswith("bearer "):
        token = auth_header[7:].strip()
        if token:
            return token
    return request.query_params.get("token") or None


async def require_auth(
    request: Request,
    tokens: TokenService = Depends(get_token_service),
) -> IdentityClaim:
    token = extract_token(request)
    if not token:
        raise Unauthenticated("Access token required")
    identity = tokens.verify(token)
    request.state.identity = identity
    return identity


def require_role(*roles: Role):
    """Dependency factory for role-based access control"""
    allowed = frozenset(Role(r) for r in roles)

    async def role_checker(identity: IdentityClaim = Depends(require_auth)) -> IdentityClaim:
        if identity.role not in allowed:
            raise Forbidden("Access denied")
        return identity

    return role_checker


# Pre-configured dependencies
require_admin = require_role(Role.ADMIN)
