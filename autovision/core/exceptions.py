"""Custom exceptions for the Autovision backend"""

from typing import Optional


class AutovisionError(Exception):
    """Base exception for Autovision"""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class Unauthenticated(AutovisionError):
    """No credential was presented"""

    status_code = 401


class TokenInvalid(AutovisionError):
    """Credential present but rejected (bad signature, malformed)"""

    status_code = 403


class TokenExpired(TokenInvalid):
    """Credential present but past its expiry"""

    pass


class Forbidden(AutovisionError):
    """Valid credential, insufficient privilege"""

    status_code = 403


class InvalidTransition(AutovisionError):
    """Workflow rule violation"""

    status_code = 409


class NotFound(AutovisionError):
    status_code = 404


class ValidationFailed(AutovisionError):
    status_code = 400


class Conflict(AutovisionError):
    status_code = 409


class PersistenceFailure(AutovisionError):
    """Error raised by a storage collaborator"""

    pass


class SessionExpired(AutovisionError):
    """Client-side: the refresh attempt itself failed"""

    status_code = 401


class ApiError(AutovisionError):
    """Client-side: non-2xx response, message is the server's verbatim"""

    def __init__(self, message: str, status_code: int):
        super().__init__(message, status_code=status_code)


class ConfigError(AutovisionError):
    """Configuration error"""

    pass
