from __future__ import annotations

import logging
from datetime import datetime
from typing import Any
from uuid import uuid4
from zoneinfo import ZoneInfo

from service_scheduling.calendar import DEFAULT_SCHEDULE, ScheduleConfig
from service_scheduling.errors import SchedulingError
from service_scheduling.shared_time import LineItem, allocate
from service_scheduling.time_utils import js_weekdays_to_python
from service_scheduling.workload import OrderSummary, Technician, is_open

from .config import SchedulingPolicy

logger = logging.getLogger(__name__)


def parse_timestamp(value: Any, tz: ZoneInfo | None = None) -> datetime | None:
    """Parse a database timestamp into local naive wall-clock time.

    Aware values are converted into ``tz`` first; naive values are taken as
    already local.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        raw = str(value).strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(raw)
        except ValueError:
            return None
    if dt.tzinfo is not None:
        if tz is not None:
            dt = dt.astimezone(tz)
        dt = dt.replace(tzinfo=None)
    return dt


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _float_or_none(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _normalize_items(rows: list[dict[str, Any]]) -> dict[str, list[dict[str, Any]]]:
    items: dict[str, list[dict[str, Any]]] = {}
    for raw in rows:
        order_id = raw.get("order_id")
        if order_id is None:
            continue
        try:
            quantity = int(raw.get("quantity") if raw.get("quantity") is not None else 1)
        except (TypeError, ValueError):
            logger.warning("skipping order item %s with bad quantity %r", raw.get("id"), raw.get("quantity"))
            continue
        items.setdefault(str(order_id), []).append(
            {
                "item_id": str(raw["id"]) if raw.get("id") is not None else None,
                "service_category_id": (
                    str(raw["service_type_id"]) if raw.get("service_type_id") is not None else None
                ),
                "quantity": quantity,
                "hours_per_unit": _float_or_none(raw.get("estimated_hours")),
                "shared_time": bool(raw.get("shared_time")),
            }
        )
    return items


def _normalize_schedules(rows: list[dict[str, Any]]) -> tuple[dict[str, dict[str, Any]], int]:
    schedules: dict[str, dict[str, Any]] = {}
    skipped = 0
    for raw in rows:
        emp_id = raw.get("employee_id")
        if emp_id is None or raw.get("is_active") is False:
            continue
        emp_key = str(emp_id)
        if emp_key in schedules:
            logger.info("technician %s has several active schedules; keeping the first", emp_key)
            continue
        try:
            config = ScheduleConfig.from_hhmm(
                js_weekdays_to_python(int(d) for d in raw.get("work_days") or []),
                str(raw.get("start_time") or ""),
                str(raw.get("end_time") or ""),
                int(raw.get("break_duration_minutes") or 0),
            )
            config.validate()
        except (SchedulingError, TypeError, ValueError) as exc:
            logger.warning("skipping unusable schedule for technician %s: %s", emp_key, exc)
            skipped += 1
            continue
        schedules[emp_key] = config.to_dict()
    return schedules, skipped


def _order_hours(raw: dict[str, Any], items: list[dict[str, Any]]) -> float | None:
    """Stored estimate, or one computed from the order's line items."""
    stored = _float_or_none(raw.get("average_service_time"))
    if stored is not None:
        return stored
    if not items:
        return None
    try:
        return allocate(line_items(items)).total_hours
    except SchedulingError as exc:
        logger.warning("cannot estimate order %s from its items: %s", raw.get("id"), exc)
        return None


def build_snapshot(
    payload: dict[str, Any],
    *,
    now: datetime,
    policy: SchedulingPolicy | None = None,
) -> dict[str, Any]:
    policy = policy or SchedulingPolicy()
    tz = ZoneInfo(policy.local_timezone)

    items_by_order = _normalize_items(payload.get("order_items", []))
    schedules, skipped_schedules = _normalize_schedules(payload.get("work_schedules", []))

    support_by_order: dict[str, list[dict[str, Any]]] = {}
    for raw in payload.get("support_technicians", []):
        if raw.get("order_id") is None or raw.get("technician_id") is None:
            continue
        support_by_order.setdefault(str(raw["order_id"]), []).append(
            {
                "technician_id": str(raw["technician_id"]),
                "reduction_percentage": _float_or_none(raw.get("reduction_percentage")) or 0.0,
            }
        )

    orders: list[dict[str, Any]] = []
    skipped_orders = 0
    for raw in payload.get("orders", []):
        if raw.get("id") is None:
            skipped_orders += 1
            continue
        order_id = str(raw["id"])
        if not is_open(raw.get("status")):
            continue
        target = raw.get("estimated_delivery_date") or raw.get("delivery_date")
        orders.append(
            {
                "order_id": order_id,
                "order_number": str(raw.get("order_number") or "") or None,
                "status": str(raw.get("status") or ""),
                "technician_id": (
                    str(raw["assigned_technician"]) if raw.get("assigned_technician") else None
                ),
                "estimated_hours": _order_hours(raw, items_by_order.get(order_id, [])),
                "created_at": _iso(parse_timestamp(raw.get("created_at"), tz)),
                "target_delivery_date": _iso(parse_timestamp(target, tz)),
                "is_home_service": bool(raw.get("is_home_service")),
                "support": support_by_order.get(order_id, []),
            }
        )

    technicians = sorted(
        (
            {"technician_id": str(raw["user_id"]), "name": str(raw.get("full_name") or "")}
            for raw in payload.get("technicians", [])
            if raw.get("user_id") is not None
        ),
        key=lambda row: (row["name"], row["technician_id"]),
    )

    return {
        "snapshot_id": f"snap-{now:%Y%m%d-%H%M%S}-{uuid4().hex[:8]}",
        "generated_at": now.isoformat(),
        "local_timezone": policy.local_timezone,
        "orders": sorted(orders, key=lambda o: (o["created_at"] or "", o["order_id"])),
        "order_items": items_by_order,
        "technicians": technicians,
        "schedules": schedules,
        "metadata": {
            "counts": {
                "orders": len(orders),
                "order_items": sum(len(v) for v in items_by_order.values()),
                "technicians": len(technicians),
                "schedules": len(schedules),
            },
            "skipped": {
                "orders": skipped_orders,
                "schedules": skipped_schedules,
            },
        },
    }


# ---------------------------------------------------------------------------
# Snapshot -> engine records
# ---------------------------------------------------------------------------


def _quantity(value: Any) -> int:
    # Missing means one unit; an explicit 0 stays 0.
    if value is None or value == "":
        return 1
    return int(value)


def line_items(rows: list[dict[str, Any]]) -> list[LineItem]:
    return [
        LineItem(
            item_id=row.get("item_id"),
            service_category_id=row.get("service_category_id"),
            quantity=_quantity(row.get("quantity")),
            hours_per_unit=row.get("hours_per_unit"),
            shared_time_eligible=bool(row.get("shared_time")),
        )
        for row in rows
    ]


def orders_from_snapshot(snapshot: dict[str, Any]) -> list[OrderSummary]:
    return [
        OrderSummary(
            order_id=row["order_id"],
            status=row.get("status", ""),
            assigned_technician_id=row.get("technician_id"),
            estimated_hours=row.get("estimated_hours"),
            created_at=parse_timestamp(row.get("created_at")),
            target_delivery_date=parse_timestamp(row.get("target_delivery_date")),
            order_number=row.get("order_number"),
        )
        for row in snapshot.get("orders", [])
    ]


def roster_from_snapshot(snapshot: dict[str, Any]) -> list[Technician]:
    return [
        Technician(technician_id=row["technician_id"], display_name=row.get("name", ""))
        for row in snapshot.get("technicians", [])
    ]


def schedule_for(
    snapshot: dict[str, Any],
    technician_id: str | None,
    overrides: dict[str, ScheduleConfig] | None = None,
) -> ScheduleConfig:
    """Override file first, then the synced schedule, then the default calendar."""
    if technician_id and overrides and technician_id in overrides:
        return overrides[technician_id]
    raw = (snapshot.get("schedules") or {}).get(technician_id or "")
    if raw:
        return ScheduleConfig.from_dict(raw)
    return DEFAULT_SCHEDULE
