"""Read a CSV input directory into engine records."""

from __future__ import annotations

import csv
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from service_scheduling.calendar import ScheduleConfig
from service_scheduling.shared_time import LineItem
from service_scheduling.workload import OrderSummary, Technician

from .schemas import local_zone, pipe_split, to_bool, to_datetime_or_none, to_float_or_none, to_int


@dataclass
class ScenarioInput:
    meta: dict[str, Any]
    orders: list[OrderSummary] = field(default_factory=list)
    items_by_order: dict[str, list[LineItem]] = field(default_factory=dict)
    roster: list[Technician] = field(default_factory=list)
    schedules: dict[str, ScheduleConfig] = field(default_factory=dict)

    @property
    def counts(self) -> dict[str, int]:
        return {
            "orders": len(self.orders),
            "order_items": sum(len(v) for v in self.items_by_order.values()),
            "technicians": len(self.roster),
            "schedules": len(self.schedules),
        }


def load_input(directory: Path) -> ScenarioInput:
    """Read CSV input dir -> ScenarioInput.

    Required: meta.json, orders.csv, order_items.csv, technicians.csv.
    schedules.csv is optional; technicians without a row use the default
    calendar. Timestamps with an offset are converted to naive wall-clock
    time in meta["local_timezone"] (machine local time when absent).
    Raises FileNotFoundError if a required file is missing.
    """
    d = Path(directory)

    # -- meta.json --------------------------------------------------------------
    meta = _read_json(d / "meta.json")
    tz = local_zone(meta.get("local_timezone"))

    # -- technicians.csv --------------------------------------------------------
    roster = [
        Technician(technician_id=row["technician_id"], display_name=row.get("name", "") or "")
        for row in _read_csv(d / "technicians.csv")
        if row.get("technician_id")
    ]

    # -- orders.csv -------------------------------------------------------------
    orders = []
    for row in _read_csv(d / "orders.csv"):
        orders.append(
            OrderSummary(
                order_id=row["order_id"],
                order_number=row.get("order_number") or None,
                status=row.get("status", ""),
                assigned_technician_id=(row.get("technician_id") or "").strip() or None,
                estimated_hours=to_float_or_none(row.get("estimated_hours")),
                created_at=to_datetime_or_none(row.get("created_at"), tz),
                target_delivery_date=to_datetime_or_none(row.get("target_delivery_date"), tz),
            )
        )

    # -- order_items.csv --------------------------------------------------------
    items_by_order: dict[str, list[LineItem]] = {}
    for row in _read_csv(d / "order_items.csv"):
        items_by_order.setdefault(row["order_id"], []).append(
            LineItem(
                item_id=row.get("item_id") or None,
                service_category_id=row.get("service_category_id") or None,
                quantity=to_int(row.get("quantity"), default=1),
                hours_per_unit=to_float_or_none(row.get("hours_per_unit")),
                shared_time_eligible=to_bool(row.get("shared_time")),
            )
        )

    # -- schedules.csv (optional) -----------------------------------------------
    schedules: dict[str, ScheduleConfig] = {}
    schedules_path = d / "schedules.csv"
    if schedules_path.exists():
        for row in _read_csv(schedules_path):
            schedules[row["technician_id"]] = ScheduleConfig.from_hhmm(
                [int(v) for v in pipe_split(row.get("work_days"))],
                row.get("start", ""),
                row.get("end", ""),
                to_int(row.get("break_minutes")),
            )

    return ScenarioInput(
        meta=meta,
        orders=orders,
        items_by_order=items_by_order,
        roster=roster,
        schedules=schedules,
    )


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _read_json(path: Path) -> dict:
    """Read and parse a JSON file."""
    if not path.exists():
        raise FileNotFoundError(f"Required file not found: {path}")
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def _read_csv(path: Path) -> list[dict[str, str]]:
    """Read a CSV file into a list of dicts via csv.DictReader."""
    if not path.exists():
        raise FileNotFoundError(f"Required file not found: {path}")
    with open(path, newline="", encoding="utf-8") as f:
        return list(csv.DictReader(f))
