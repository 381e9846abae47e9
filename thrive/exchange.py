"""
Import and export of the entry collection.

Two formats:
    JSON  an envelope carrying the entries plus whatever derived analytics
          the caller wants to ship alongside them (scores, drivers, heatmap,
          tips, settings) and a small metadata block.
    CSV   one row per entry with its MC/DSS/LM/RI/CN scores computed from
          the strictly-earlier entries.

Every imported record goes through the same invariants as a live entry.
Bad records are reported in ImportResult.errors rather than raised, so one
corrupt row never blocks the rest of an import.
"""

import io
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import pandas as pd

from thrive.config import DEFAULT_CONFIG, ThriveConfig
from thrive.errors import ImportFormatError, InvalidEntryError
from thrive.models import MOOD_DIMENSIONS, Entry, entries_frame, to_local, validate_entry
from thrive.scoring import score_frame
from thrive.tips import Tip

logger = logging.getLogger(__name__)


REQUIRED_FIELDS = ("id", "timestamp", "time_bucket") + MOOD_DIMENSIONS

# Field names written by older exports of the app.
LEGACY_FIELDS = {
    "timeBucket": "time_bucket",
    "valence": "positivity",
    "deepworkMinutes": "focus_minutes",
    "tasksCompleted": "tasks_completed",
    "sleepHours": "sleep_hours",
    "recoveryAction": "recovery_action",
    "socialTouchpoints": "social_interactions",
    "moodEntries": "entries",
}

INTEGER_FIELDS = ("tasks_completed", "social_interactions")
FLOAT_FIELDS = ("focus_minutes", "sleep_hours")

CSV_COLUMNS = {
    "id": "ID",
    "timestamp": "Timestamp",
    "time_bucket": "Time Bucket",
    "positivity": "Positivity",
    "energy": "Energy",
    "focus": "Focus",
    "stress": "Stress",
    "tags": "Tags",
    "focus_minutes": "Focus Minutes",
    "tasks_completed": "Tasks Completed",
    "sleep_hours": "Sleep Hours",
    "recovery_action": "Recovery Action",
    "social_interactions": "Social Interactions",
}
CSV_SCORE_COLUMNS = {
    "mc": "MC Score",
    "dss": "DSS Score",
    "lm": "LM Score",
    "ri": "RI Score",
    "cn": "CN Score",
}
CSV_TAG_SEPARATOR = "; "


@dataclass
class ImportResult:
    success: bool
    message: str
    entries: List[Entry] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def imported_count(self) -> int:
        return len(self.entries)


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

def entry_to_record(entry: Entry) -> Dict[str, Any]:
    """JSON-ready dict for one entry. Unset optional attributes are omitted."""
    record: Dict[str, Any] = {
        "id": entry.id,
        "timestamp": entry.timestamp.isoformat(),
        "time_bucket": entry.time_bucket.value,
        "positivity": entry.positivity,
        "energy": entry.energy,
        "focus": entry.focus,
        "stress": entry.stress,
        "tags": list(entry.tags),
        "recovery_action": entry.recovery_action,
    }
    for name in FLOAT_FIELDS + INTEGER_FIELDS:
        value = getattr(entry, name)
        if value is not None:
            record[name] = value
    return record


def parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"timestamp {value!r} is not an ISO-8601 string")
    ts = pd.Timestamp(value.strip())
    if pd.isna(ts):
        raise ValueError(f"timestamp {value!r} is not a valid date")
    return ts.to_pydatetime()


def entry_from_record(record: Mapping[str, Any]) -> Entry:
    """
    Build and validate an Entry from a plain dict.

    Raises InvalidEntryError listing every problem found.
    """
    if not isinstance(record, Mapping):
        raise InvalidEntryError(None, [f"record must be an object, got {type(record).__name__}"])

    data = {LEGACY_FIELDS.get(k, k): v for k, v in record.items()}
    entry_id = data.get("id")

    missing = [name for name in REQUIRED_FIELDS if data.get(name) is None]
    if missing:
        raise InvalidEntryError(entry_id, [f"missing {name}" for name in missing])

    try:
        timestamp = parse_timestamp(data["timestamp"])
    except ValueError as exc:
        raise InvalidEntryError(entry_id, [str(exc)]) from exc

    tags = data.get("tags", [])
    if not isinstance(tags, (list, tuple)):
        raise InvalidEntryError(entry_id, ["tags must be a list"])

    entry = Entry(
        id=entry_id,
        timestamp=timestamp,
        time_bucket=data["time_bucket"],
        positivity=data["positivity"],
        energy=data["energy"],
        focus=data["focus"],
        stress=data["stress"],
        tags=tuple(tags),
        focus_minutes=data.get("focus_minutes"),
        tasks_completed=data.get("tasks_completed"),
        sleep_hours=data.get("sleep_hours"),
        recovery_action=False if data.get("recovery_action") is None else data["recovery_action"],
        social_interactions=data.get("social_interactions"),
    )
    return validate_entry(entry)


def _sorted_entries(entries: Iterable[Entry]) -> List[Entry]:
    return sorted(entries, key=lambda e: e.local_time)


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------

def _score_records(scores: Union[pd.DataFrame, Sequence[Mapping[str, Any]]]) -> List[Dict[str, Any]]:
    if isinstance(scores, pd.DataFrame):
        return json.loads(scores.to_json(orient="records", date_format="iso"))
    return [dict(s) for s in scores]


def export_data(
    entries: Iterable[Entry],
    now: datetime,
    drivers: Sequence[Mapping[str, Any]] = (),
    heatmap: Optional[Mapping[str, Any]] = None,
    tips: Sequence[Tip] = (),
    scores: Union[pd.DataFrame, Sequence[Mapping[str, Any]]] = (),
    settings: Optional[Mapping[str, Any]] = None,
    cfg: ThriveConfig = DEFAULT_CONFIG,
) -> Dict[str, Any]:
    """Complete export envelope. Entries are written oldest first."""
    ordered = _sorted_entries(entries)
    if heatmap is None:
        heatmap = {"matrix": [], "counts": [], "peak_hours": [], "low_hours": [],
                   "last_updated": now.isoformat()}

    return {
        "version": cfg.exchange.schema_version,
        "export_date": now.isoformat(),
        "entries": [entry_to_record(e) for e in ordered],
        "scores": _score_records(scores),
        "drivers": [dict(d) for d in drivers],
        "heatmap": dict(heatmap),
        "tips": [t.to_dict() for t in tips],
        "settings": dict(settings or {}),
        "metadata": {
            "total_entries": len(ordered),
            "date_range": {
                "start": ordered[0].timestamp.isoformat() if ordered else "",
                "end": ordered[-1].timestamp.isoformat() if ordered else "",
            },
            "app_version": cfg.exchange.app_version,
        },
    }


def export_json(entries: Iterable[Entry], now: datetime, **kwargs) -> str:
    return json.dumps(export_data(entries, now, **kwargs), indent=2)


def export_csv(entries: Iterable[Entry], cfg: ThriveConfig = DEFAULT_CONFIG) -> str:
    """
    Tabular export, one row per valid entry in timestamp order.

    Optional attributes that were never reported are left blank. Score
    columns use chronological replay: each row is scored against the
    entries strictly before it.
    """
    df = entries_frame(entries)
    if df.empty:
        return ",".join(list(CSV_COLUMNS.values()) + list(CSV_SCORE_COLUMNS.values())) + "\n"

    scores = score_frame(df, cfg, leave_one_out=False)
    rows = []
    for entry, (_, score) in zip(df["entry"], scores.iterrows()):
        row = {header: getattr(entry, name) for name, header in CSV_COLUMNS.items()}
        row["Timestamp"] = entry.timestamp.isoformat()
        row["Time Bucket"] = entry.time_bucket.value
        row["Tags"] = CSV_TAG_SEPARATOR.join(entry.tags)
        row["Recovery Action"] = "Yes" if entry.recovery_action else "No"
        for name, header in CSV_SCORE_COLUMNS.items():
            row[header] = round(float(score[name]), 3)
        rows.append(row)

    out = pd.DataFrame(rows, columns=list(CSV_COLUMNS.values()) + list(CSV_SCORE_COLUMNS.values()))
    return out.to_csv(index=False)


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------

def load_envelope(payload: Union[str, bytes, Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Parse and shape-check an export envelope.

    Raises ImportFormatError when the payload is not JSON or lacks the
    version/entries fields.
    """
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise ImportFormatError(f"Invalid JSON: {exc}") from exc

    if not isinstance(payload, Mapping):
        raise ImportFormatError("Export payload must be a JSON object")

    data = {LEGACY_FIELDS.get(k, k): v for k, v in payload.items()}
    if not data.get("version") or "entries" not in data:
        raise ImportFormatError("Invalid export format - missing required fields")
    if not isinstance(data["entries"], list):
        raise ImportFormatError("entries must be an array")
    return data


def _range_days(start: datetime, end: datetime) -> float:
    return (to_local(end) - to_local(start)).total_seconds() / 86400.0


def _long_range_warning(data: Mapping[str, Any], entries: List[Entry], cfg: ThriveConfig) -> Optional[str]:
    date_range = (data.get("metadata") or {}).get("date_range") or {}
    try:
        if date_range.get("start") and date_range.get("end"):
            days = _range_days(
                parse_timestamp(date_range["start"]), parse_timestamp(date_range["end"]),
            )
        elif entries:
            ordered = _sorted_entries(entries)
            days = _range_days(ordered[0].timestamp, ordered[-1].timestamp)
        else:
            return None
    except ValueError:
        return "Export metadata has an unreadable date range"

    if days > cfg.exchange.long_range_days:
        return "Import contains data spanning more than a year"
    return None


def _finish(entries: List[Entry], errors: List[str], warnings: List[str], source: str) -> ImportResult:
    success = not errors and bool(entries)
    if success:
        message = f"Successfully imported {len(entries)} entries{source}"
    elif errors:
        message = f"Import failed: {len(errors)} errors found"
    else:
        message = "Import failed: no entries found"
    logger.info("%s (%d warnings)", message, len(warnings))
    return ImportResult(success, message, entries, errors, warnings)


def import_json(
    payload: Union[str, bytes, Mapping[str, Any]],
    cfg: ThriveConfig = DEFAULT_CONFIG,
) -> ImportResult:
    """Validate an export envelope and return its entries."""
    try:
        data = load_envelope(payload)
    except ImportFormatError as exc:
        return ImportResult(False, "Invalid export format", errors=[exc.message])

    entries: List[Entry] = []
    errors: List[str] = []
    warnings: List[str] = []

    for record in data["entries"]:
        try:
            entries.append(entry_from_record(record))
        except InvalidEntryError as exc:
            errors.append(f"Invalid entry {exc.entry_id or 'unknown'}: {'; '.join(exc.problems)}")

    if data["version"] != cfg.exchange.schema_version:
        warnings.append(f"Export version {data['version']} may not be fully compatible")

    warning = _long_range_warning(data, entries, cfg)
    if warning:
        warnings.append(warning)

    return _finish(entries, errors, warnings, "")


def _csv_number(text: str, integer: bool):
    if text == "":
        return None
    value = float(text)
    if integer:
        if not value.is_integer():
            raise ValueError(f"{text!r} is not a whole number")
        return int(value)
    return value


def _csv_record(row: Mapping[str, str]) -> Dict[str, Any]:
    record: Dict[str, Any] = {
        "id": row["id"] or None,
        "timestamp": row["timestamp"] or None,
        "time_bucket": row["time_bucket"] or None,
    }
    for name in MOOD_DIMENSIONS:
        record[name] = float(row[name]) if row[name] != "" else None

    tags = row.get("tags", "")
    record["tags"] = [t.strip() for t in tags.split(";") if t.strip()]
    for name in FLOAT_FIELDS + INTEGER_FIELDS:
        record[name] = _csv_number(row.get(name, ""), name in INTEGER_FIELDS)

    recovery = row.get("recovery_action", "").strip().lower()
    record["recovery_action"] = recovery in ("yes", "true", "1")
    return record


def import_csv(text: str, cfg: ThriveConfig = DEFAULT_CONFIG) -> ImportResult:
    """
    Read entries from a CSV export. Score columns are ignored; scores are
    always recomputed from the imported entries.
    """
    try:
        df = pd.read_csv(io.StringIO(text), dtype=str, keep_default_na=False, skipinitialspace=True)
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        return ImportResult(False, "Failed to parse CSV content", errors=[f"CSV parsing error: {exc}"])

    if df.empty:
        return ImportResult(
            False, "Invalid CSV format",
            errors=["CSV file must contain at least a header row and one data row"],
        )

    by_header = {header.lower(): name for name, header in CSV_COLUMNS.items()}
    df = df.rename(columns=lambda c: by_header.get(str(c).strip().lower(), c))

    required = ("id", "timestamp", "time_bucket") + MOOD_DIMENSIONS
    missing = [CSV_COLUMNS[name] for name in required if name not in df.columns]
    if missing:
        return ImportResult(
            False, "Invalid CSV format",
            errors=[f"Missing required column(s): {', '.join(missing)}"],
        )

    warnings: List[str] = []
    absent = [h for n, h in CSV_COLUMNS.items() if n not in df.columns]
    if absent:
        warnings.append(f"Optional column(s) not found: {', '.join(absent)}")

    entries: List[Entry] = []
    errors: List[str] = []
    for i, row in enumerate(df.to_dict(orient="records")):
        row_number = i + 2  # header is row 1
        try:
            entries.append(entry_from_record(_csv_record(row)))
        except ValueError as exc:
            errors.append(f"Invalid data in row {row_number}: {exc}")

    warning = _long_range_warning({}, entries, cfg)
    if warning:
        warnings.append(warning)

    return _finish(entries, errors, warnings, " from CSV")


# ---------------------------------------------------------------------------
# Merging and usage
# ---------------------------------------------------------------------------

def merge_entries(existing: Iterable[Entry], imported: Iterable[Entry]) -> List[Entry]:
    """Existing entries plus imported ones whose ids are not already present."""
    merged = list(existing)
    seen = {e.id for e in merged}
    for entry in imported:
        if entry.id in seen:
            continue
        seen.add(entry.id)
        merged.append(entry)
    return merged


def replace_entries(imported: Iterable[Entry]) -> List[Entry]:
    return list(imported)


def storage_usage(entries: Iterable[Entry]) -> Dict[str, Any]:
    """Serialized size in bytes, entry count and the oldest/newest timestamps."""
    ordered = _sorted_entries(entries)
    serialized = json.dumps([entry_to_record(e) for e in ordered])
    return {
        "total_size": len(serialized.encode("utf-8")),
        "entry_count": len(ordered),
        "oldest_entry": ordered[0].timestamp.isoformat() if ordered else None,
        "newest_entry": ordered[-1].timestamp.isoformat() if ordered else None,
    }


def format_bytes(size: int) -> str:
    """Human-readable size, e.g. '1.5 KB'."""
    if size == 0:
        return "0 Bytes"
    units = ("Bytes", "KB", "MB", "GB")
    value = float(size)
    for unit in units:
        if value < 1024 or unit == units[-1]:
            return f"{round(value, 2):g} {unit}"
        value /= 1024
    return f"{size} Bytes"
