"""
Key-value persistence used for the coach's preference state.

Stores hold JSON-serializable values under string keys. Every operation
returns a StoreResult instead of raising, so callers decide how to react to
a full or corrupt store. Absent keys read as success with data=None.
"""

import errno
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Union

from thrive.errors import StorageError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoreResult:
    success: bool
    data: Any = None
    error: Optional[StorageError] = None


class KeyValueStore(Protocol):
    def get(self, key: str) -> StoreResult: ...

    def set(self, key: str, value: Any) -> StoreResult: ...

    def remove(self, key: str) -> StoreResult: ...


def _quota_error(capacity: int, needed: int) -> StorageError:
    return StorageError(
        f"Storage quota exceeded ({needed} > {capacity} bytes). Please clean up old data.",
        StorageError.QUOTA_EXCEEDED,
    )


# Write failures that mean the disk or the user quota is full.
FULL_ERRNOS = frozenset(
    code for code in (errno.ENOSPC, getattr(errno, "EDQUOT", None)) if code is not None
)


def _write_error(path: Path, exc: OSError) -> StorageError:
    if exc.errno in FULL_ERRNOS:
        return StorageError(f"No space left to write {path}", StorageError.QUOTA_EXCEEDED, exc)
    return StorageError(f"Failed to write {path}", StorageError.WRITE_FAILED, exc)


def _footprint(data: Dict[str, str]) -> int:
    return sum(len(k) + len(v) for k, v in data.items())


class MemoryStore:
    """In-process store holding serialized values, with an optional byte budget."""

    def __init__(self, capacity: Optional[int] = None):
        self.capacity = capacity
        self._data: Dict[str, str] = {}

    def used(self) -> int:
        return _footprint(self._data)

    def get(self, key: str) -> StoreResult:
        raw = self._data.get(key)
        if raw is None:
            return StoreResult(True)
        return StoreResult(True, json.loads(raw))

    def set(self, key: str, value: Any) -> StoreResult:
        try:
            serialized = json.dumps(value)
        except (TypeError, ValueError) as exc:
            return StoreResult(False, error=StorageError(
                f"Value for {key} is not serializable", StorageError.INVALID_DATA, exc,
            ))

        candidate = dict(self._data)
        candidate[key] = serialized
        needed = _footprint(candidate)
        if self.capacity is not None and needed > self.capacity:
            return StoreResult(False, error=_quota_error(self.capacity, needed))

        self._data = candidate
        return StoreResult(True)

    def remove(self, key: str) -> StoreResult:
        self._data.pop(key, None)
        return StoreResult(True)


class JsonFileStore:
    """
    All keys kept in one JSON document on disk.

    The file is re-read on every call and replaced atomically on writes.
    """

    def __init__(self, path: Union[str, Path], capacity: Optional[int] = None):
        self.path = Path(path)
        self.capacity = capacity

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            document = json.load(f)
        if not isinstance(document, dict):
            raise ValueError("store document must be a JSON object")
        return {str(k): json.dumps(v) for k, v in document.items()}

    def _write(self, data: Dict[str, str]) -> None:
        document = {k: json.loads(v) for k, v in data.items()}
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(document, f, indent=2, sort_keys=True)
        os.replace(tmp, self.path)

    def _read_error(self, exc: Exception) -> StoreResult:
        logger.warning("Unreadable store file %s: %s", self.path, exc)
        return StoreResult(False, error=StorageError(
            f"Failed to read {self.path}", StorageError.INVALID_DATA, exc,
        ))

    def get(self, key: str) -> StoreResult:
        try:
            data = self._load()
        except (OSError, ValueError) as exc:
            return self._read_error(exc)
        raw = data.get(key)
        return StoreResult(True, None if raw is None else json.loads(raw))

    def set(self, key: str, value: Any) -> StoreResult:
        try:
            data = self._load()
        except (OSError, ValueError) as exc:
            return self._read_error(exc)

        try:
            data[key] = json.dumps(value)
        except (TypeError, ValueError) as exc:
            return StoreResult(False, error=StorageError(
                f"Value for {key} is not serializable", StorageError.INVALID_DATA, exc,
            ))

        needed = _footprint(data)
        if self.capacity is not None and needed > self.capacity:
            return StoreResult(False, error=_quota_error(self.capacity, needed))

        try:
            self._write(data)
        except OSError as exc:
            logger.warning("Write to %s failed: %s", self.path, exc)
            return StoreResult(False, error=_write_error(self.path, exc))
        return StoreResult(True)

    def remove(self, key: str) -> StoreResult:
        try:
            data = self._load()
        except (OSError, ValueError) as exc:
            return self._read_error(exc)
        if key in data:
            del data[key]
            try:
                self._write(data)
            except OSError as exc:
                logger.warning("Write to %s failed: %s", self.path, exc)
                return StoreResult(False, error=_write_error(self.path, exc))
        return StoreResult(True)
