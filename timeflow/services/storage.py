"""
Key-value persistence backends.

Every persisted collection (timer session, time entries, projects, tasks)
lives under a single key holding a JSON-compatible value. Backends report
usage against an optional quota and raise StorageQuotaExceeded instead of
writing past it.
"""

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from timeflow.errors import StorageError, StorageQuotaExceeded

logger = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


def _encode(value: Any) -> str:
    return json.dumps(value, indent=2, sort_keys=True)


def _validate_key(key: str) -> None:
    if not _KEY_PATTERN.match(key):
        raise ValueError(f"Invalid storage key: {key!r}")


@runtime_checkable
class KeyValueStore(Protocol):
    """Persistence backend with best-effort durability and a reported quota."""

    quota_bytes: Optional[int]

    def get(self, key: str) -> Optional[Any]:
        ...

    def set(self, key: str, value: Any) -> None:
        ...

    def remove(self, key: str) -> None:
        ...

    def usage_bytes(self) -> int:
        ...


class InMemoryStore:
    """
    Volatile store, used for tests and throw-away sessions.

    Values are stored JSON-encoded so they behave exactly like persisted
    data (no shared mutable references).
    """

    def __init__(self, quota_bytes: Optional[int] = None):
        self.quota_bytes = quota_bytes
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[Any]:
        raw = self._data.get(key)
        return None if raw is None else json.loads(raw)

    def set(self, key: str, value: Any) -> None:
        _validate_key(key)
        encoded = _encode(value)
        _check_quota(self, key, len(encoded.encode("utf-8")), self._size_of(key))
        self._data[key] = encoded

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def usage_bytes(self) -> int:
        return sum(len(raw.encode("utf-8")) for raw in self._data.values())

    def _size_of(self, key: str) -> int:
        raw = self._data.get(key)
        return 0 if raw is None else len(raw.encode("utf-8"))


class JsonFileStore:
    """
    Directory-backed store with one JSON file per key.

    Writes go to a temp file in the same directory followed by an atomic
    rename, so a crash mid-write never leaves a truncated record behind.

    Example:
        >>> store = JsonFileStore(Path("~/.timeflow").expanduser())
        >>> store.set("timerSession", {"projectId": "p-1"})
        >>> store.get("timerSession")
        {'projectId': 'p-1'}
    """

    SUFFIX = ".json"

    def __init__(self, directory: Path, quota_bytes: Optional[int] = None):
        self.directory = Path(directory)
        self.quota_bytes = quota_bytes

    def _path(self, key: str) -> Path:
        _validate_key(key)
        return self.directory / f"{key}{self.SUFFIX}"

    def get(self, key: str) -> Optional[Any]:
        """
        Read a value.

        Returns:
            The decoded value, or None if the key was never written

        Raises:
            StorageError: If the file cannot be read or is not valid JSON
        """
        path = self._path(key)
        if not path.exists():
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise StorageError(f"Stored value for {key!r} is corrupted: {e}")
        except OSError as e:
            raise StorageError(f"Failed to read {key!r}: {e}")

    def set(self, key: str, value: Any) -> None:
        """
        Write a value atomically (temp file + rename).

        Raises:
            StorageQuotaExceeded: If the write would exceed the quota
            StorageError: If the write fails
        """
        path = self._path(key)
        encoded = _encode(value)
        existing = path.stat().st_size if path.exists() else 0
        _check_quota(self, key, len(encoded.encode("utf-8")), existing)

        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            temp_fd, temp_path = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
        except OSError as e:
            raise StorageError(f"Failed to prepare write for {key!r}: {e}")

        try:
            with os.fdopen(temp_fd, "w", encoding="utf-8") as f:
                f.write(encoded)
            os.replace(temp_path, path)
        except OSError as e:
            try:
                os.unlink(temp_path)
            except OSError:
                # Temp file may already be gone
                pass
            raise StorageError(f"Failed to write {key!r}: {e}")

        logger.debug(f"Wrote {key} ({len(encoded)} bytes) to {path}")

    def remove(self, key: str) -> None:
        """Delete a key; missing keys are ignored."""
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to remove {key!r}: {e}")

    def usage_bytes(self) -> int:
        if not self.directory.exists():
            return 0
        return sum(p.stat().st_size for p in self.directory.glob(f"*{self.SUFFIX}"))


def _check_quota(store: Any, key: str, new_size: int, current_size: int) -> None:
    if store.quota_bytes is None:
        return
    available = store.quota_bytes - (store.usage_bytes() - current_size)
    if new_size > available:
        logger.warning(
            f"Write of {key} rejected: {new_size} bytes requested, "
            f"{available} available"
        )
        raise StorageQuotaExceeded(requested=new_size, available=max(0, available))
