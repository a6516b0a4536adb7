"""Column constants, pipe helpers, and type coercion for CSV I/O."""

from __future__ import annotations

from datetime import datetime, tzinfo
from zoneinfo import ZoneInfo

# ---------------------------------------------------------------------------
# Input CSV column names
# ---------------------------------------------------------------------------

ORDERS_COLS = [
    "order_id",
    "order_number",
    "status",
    "technician_id",
    "estimated_hours",
    "created_at",
    "target_delivery_date",
]

ORDER_ITEMS_COLS = [
    "order_id",
    "item_id",
    "service_category_id",
    "quantity",
    "hours_per_unit",
    "shared_time",
]

TECHNICIANS_COLS = [
    "technician_id",
    "name",
]

SCHEDULES_COLS = [
    "technician_id",
    "work_days",
    "start",
    "end",
    "break_minutes",
]

# ---------------------------------------------------------------------------
# Output column names
# ---------------------------------------------------------------------------

WORKLOAD_COLS = [
    "technician_id",
    "technician_name",
    "open_orders",
    "queued_hours",
    "share_pct",
]

TRIAGE_COLS = [
    "order_id",
    "order_number",
    "status",
    "technician_id",
    "priority",
    "label",
    "created_at",
    "target_delivery_date",
    "age_hours",
    "estimated_hours",
]

# ---------------------------------------------------------------------------
# Pipe-separated field helpers
# ---------------------------------------------------------------------------

PIPE = "|"


def pipe_split(value: str | None) -> list[str]:
    """Split a pipe-separated string into a list. Empty/None -> empty list."""
    if not value or not str(value).strip():
        return []
    return [v.strip() for v in str(value).split(PIPE) if v.strip()]


# ---------------------------------------------------------------------------
# Type coercion helpers for reading CSV values
# ---------------------------------------------------------------------------


def to_float_or_none(value: str | None) -> float | None:
    """Coerce a CSV string to float, returning None for empty values."""
    if value is None or str(value).strip() == "":
        return None
    try:
        return float(value)
    except (ValueError, TypeError):
        return None


def to_int(value: str | None, default: int = 0) -> int:
    """Coerce a CSV string to int. Empty/None -> default."""
    if value is None or str(value).strip() == "":
        return default
    try:
        return int(float(value))
    except (ValueError, TypeError):
        return default


def to_bool(value: str | None) -> bool:
    """Coerce a CSV string to bool. TRUE/true/1/True -> True, else False."""
    if value is None:
        return False
    return str(value).strip().upper() in ("TRUE", "1", "YES")


def local_zone(name: str | None) -> tzinfo | None:
    """ZoneInfo for an IANA name such as ``America/Mexico_City``. Empty -> None."""
    if not name or not str(name).strip():
        return None
    return ZoneInfo(str(name).strip())


def to_datetime_or_none(value: str | None, tz: tzinfo | None = None) -> datetime | None:
    """Parse an ISO-8601 timestamp into naive local wall-clock time.

    ``Z`` and offset suffixes are converted into ``tz`` (the machine's local
    zone when None) before the tzinfo is dropped. Empty/invalid -> None.
    """
    if value is None or str(value).strip() == "":
        return None
    raw = str(value).strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(tz).replace(tzinfo=None)
    return dt
