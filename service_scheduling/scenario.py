"""End-to-end estimate for a new order: workload, support advice, delivery date.

This is the order-form flow in one call. Scheduling failures are reported in
the result instead of substituting a guessed date, so the caller can fall back
to manual entry.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from .calendar import DEFAULT_MAX_HORIZON_DAYS, DEFAULT_SCHEDULE, ScheduleConfig
from .delivery import combined_support_reduction, project_delivery
from .errors import SchedulingError
from .io.reader import ScenarioInput
from .io.schemas import local_zone, to_datetime_or_none
from .priority import DEFAULT_POLICY, PriorityPolicy, priority_counts
from .shared_time import allocate
from .workload import build_workload_report, suggest_support

DEFAULT_SUPPORT_THRESHOLD_HOURS = 16.0
DEFAULT_TRAVEL_HOURS = 1.0


def schedule_for(schedules: dict[str, ScheduleConfig], technician_id: str | None) -> ScheduleConfig:
    """Technician's own schedule, or the shared default calendar."""
    if technician_id and technician_id in schedules:
        return schedules[technician_id]
    return DEFAULT_SCHEDULE


def run_scenario(
    scenario: ScenarioInput,
    *,
    now: datetime | None = None,
    threshold_hours: float = DEFAULT_SUPPORT_THRESHOLD_HOURS,
    travel_hours: float = DEFAULT_TRAVEL_HOURS,
    max_horizon_days: int = DEFAULT_MAX_HORIZON_DAYS,
    priority_policy: PriorityPolicy = DEFAULT_POLICY,
) -> dict[str, Any]:
    """Run the new order described in ``scenario.meta["new_order"]``.

    Returns a JSON-ready dict with keys ``estimate``, ``workload``,
    ``support_suggestion``, ``delivery`` (or ``error``) and ``priority_counts``.
    """
    meta = scenario.meta
    new_order = meta.get("new_order", {}) or {}
    order_id = str(new_order.get("order_id", ""))
    primary_id = new_order.get("primary_technician_id") or None
    support_ids = [str(s) for s in new_order.get("support_technician_ids", []) or []]

    if now is None:
        tz = local_zone(meta.get("local_timezone"))
        now = to_datetime_or_none(meta.get("now"), tz) or datetime.now()

    items = scenario.items_by_order.get(order_id, [])
    report = build_workload_report(scenario.orders)

    result: dict[str, Any] = {
        "scenario_id": meta.get("scenario_id", ""),
        "order_id": order_id,
        "now": now.isoformat(),
        "primary_technician_id": primary_id,
        "support_technician_ids": support_ids,
        "workload": report.to_dict(),
        "priority_counts": priority_counts(
            [o for o in scenario.orders if o.is_open], now, policy=priority_policy
        ),
    }

    try:
        estimate = allocate(items)
    except SchedulingError as exc:
        result["error"] = {"type": type(exc).__name__, "message": str(exc)}
        return result
    result["estimate"] = estimate.to_dict()

    if primary_id:
        suggestion = suggest_support(
            primary_id,
            estimate.total_hours,
            scenario.roster,
            report.queued_hours,
            threshold_hours=threshold_hours,
        )
        result["support_suggestion"] = suggestion.to_dict()

    reduction = combined_support_reduction(new_order.get("support_reduction_percentages", []) or [])
    support_calendar = schedule_for(scenario.schedules, support_ids[0]) if support_ids else None

    try:
        projection = project_delivery(
            items,
            schedule_for(scenario.schedules, primary_id),
            support_calendar,
            now=now,
            primary_queued_hours=report.queued_hours.get(primary_id, 0.0) if primary_id else 0.0,
            support_reduction_factor=reduction,
            travel_hours=travel_hours if new_order.get("is_home_service") else 0.0,
            max_horizon_days=max_horizon_days,
        )
    except SchedulingError as exc:
        result["error"] = {"type": type(exc).__name__, "message": str(exc)}
        return result

    result["delivery"] = projection.to_dict()
    return result
