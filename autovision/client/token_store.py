"""
Client-side token storage.

get/set/clear is the whole mutation surface. Stores are read on every
request so a pair refreshed by a concurrent flow is picked up; writes are
last-writer-wins.
"""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..auth.models import TokenPair
from ..core.logger import get_logger
from ..core.storage import atomic_write

logger = get_logger(__name__)

ACCESS_TOKEN_KEY = "accessToken"
REFRESH_TOKEN_KEY = "refreshToken"


@dataclass(frozen=True)
class StoredTokens:
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None


class TokenStore:
    """Interface for token persistence."""

    def get(self) -> StoredTokens:
        raise NotImplementedError

    def set(self, pair: TokenPair) -> None:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


class MemoryTokenStore(TokenStore):
    def __init__(self, pair: Optional[TokenPair] = None):
        self._lock = threading.Lock()
        self._tokens = StoredTokens()
        if pair is not None:
            self.set(pair)

    def get(self) -> StoredTokens:
        with self._lock:
            return self._tokens

    def set(self, pair: TokenPair) -> None:
        with self._lock:
            self._tokens = StoredTokens(pair.access_token, pair.refresh_token)

    def clear(self) -> None:
        with self._lock:
            self._tokens = StoredTokens()


class FileTokenStore(TokenStore):
    """Durable store: a small JSON file with two fixed keys."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def get(self) -> StoredTokens:
        if not self.path.exists():
            return StoredTokens()
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Unreadable token file, treating as signed out", path=str(self.path), error=str(e))
            return StoredTokens()
        if not isinstance(raw, dict):
            logger.warning("Token file is not a mapping, treating as signed out", path=str(self.path))
            return StoredTokens()
        return StoredTokens(raw.get(ACCESS_TOKEN_KEY), raw.get(REFRESH_TOKEN_KEY))

    def set(self, pair: TokenPair) -> None:
        atomic_write(
            self.path,
            {ACCESS_TOKEN_KEY: pair.access_token, REFRESH_TOKEN_KEY: pair.refresh_token},
        )

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
