"""
JSON document persistence under the configured data directory.

Each store owns one file. Writes go to a temp file in the same directory
and are moved into place, so readers never see a half-written document.
"""

from __future__ import annotations

import json
import shutil
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator

from .exceptions import PersistenceFailure
from .logger import get_logger

logger = get_logger(__name__)

_locks: Dict[str, threading.RLock] = {}
_locks_guard = threading.Lock()


def _lock_for(path: Path) -> threading.RLock:
    key = str(path.resolve())
    with _locks_guard:
        if key not in _locks:
            _locks[key] = threading.RLock()
        return _locks[key]


def atomic_write(path: Path, payload: Dict[str, Any]) -> None:
    """Atomically write JSON to the target path."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        mode="w", dir=str(path.parent), delete=False, encoding="utf-8"
    ) as tf:
        json.dump(payload, tf, indent=2, ensure_ascii=False, default=str)
        temp_path = Path(tf.name)
    try:
        shutil.move(str(temp_path), str(path))
    except Exception:
        if temp_path.exists():
            temp_path.unlink()
        raise


class JsonDocument:
    """A single JSON file holding one top-level mapping."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except json.JSONDecodeError as e:
            logger.error("Corrupt data file", path=str(self.path), error=str(e))
            raise PersistenceFailure(f"Corrupt data file: {self.path.name}") from e
        except OSError as e:
            raise PersistenceFailure(f"Cannot read {self.path.name}: {e}") from e
        return raw if isinstance(raw, dict) else {}

    def save(self, payload: Dict[str, Any]) -> None:
        try:
            atomic_write(self.path, payload)
        except OSError as e:
            raise PersistenceFailure(f"Cannot write {self.path.name}: {e}") from e

    @contextmanager
    def update(self) -> Generator[Dict[str, Any], None, None]:
        """Read-modify-write under a per-file lock; saves on clean exit."""
        with _lock_for(self.path):
            data = self.load()
            yield data
            self.save(data)
