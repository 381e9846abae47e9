"""
Exception hierarchy for the Thrive engine.

Every error carries a machine-readable `code` so callers can branch on it
without parsing English messages. Sparse history is never an error; it is
reported through `is_valid` on the score results.
"""

from typing import Any, Dict, List, Optional


class ThriveError(Exception):
    """Base class for all engine-level errors."""

    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class InvalidEntryError(ThriveError, ValueError):
    code = "INVALID_ENTRY"

    def __init__(self, entry_id: Optional[str], problems: List[str]):
        label = entry_id or "<unknown>"
        super().__init__(
            message=f"Entry {label} is malformed: {'; '.join(problems)}",
            details={"entry_id": entry_id, "problems": problems},
        )
        self.entry_id = entry_id
        self.problems = problems


class StorageError(ThriveError):
    """Failure reported by a key-value store. Returned, not raised."""

    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    INVALID_DATA = "INVALID_DATA"
    WRITE_FAILED = "WRITE_FAILED"
    MIGRATION_FAILED = "MIGRATION_FAILED"

    def __init__(self, message: str, code: str, cause: Optional[Exception] = None):
        super().__init__(message=message, details={"reason": code})
        self.code = code
        self.cause = cause


class PersistenceError(ThriveError):
    code = "PERSISTENCE_FAILED"

    def __init__(self, key: str, error: StorageError):
        super().__init__(
            message=f"Could not persist {key}: {error.message}",
            details={"key": key, "reason": error.code},
        )
        self.key = key
        self.error = error


class ImportFormatError(ThriveError, ValueError):
    code = "IMPORT_FAILED"
