"""Dashboard triage summary for the open order board.

Pure list-in / dict-out: ranks open orders by urgency, counts tiers, and
describes how queued work is spread across technicians.
"""

from __future__ import annotations

import statistics
from datetime import datetime
from typing import Any, Iterable

from service_scheduling.priority import (
    DEFAULT_POLICY,
    PriorityPolicy,
    PriorityTier,
    badge_class,
    priority_label,
    sort_by_priority,
)
from service_scheduling.time_utils import format_hours
from service_scheduling.workload import OrderSummary, Technician, build_workload_report


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _gini(values: list[float]) -> float:
    """Gini coefficient for a list of non-negative values."""
    if not values or all(v == 0 for v in values):
        return 0.0
    sorted_vals = sorted(values)
    n = len(sorted_vals)
    cumulative = sum((i + 1) * v for i, v in enumerate(sorted_vals))
    total = sum(sorted_vals)
    return (2 * cumulative) / (n * total) - (n + 1) / n


def _stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"mean": 0, "median": 0, "std": 0, "min": 0, "max": 0}
    return {
        "mean": round(statistics.mean(values), 2),
        "median": round(statistics.median(values), 2),
        "std": round(statistics.stdev(values), 2) if len(values) > 1 else 0.0,
        "min": round(min(values), 2),
        "max": round(max(values), 2),
    }


def _age_hours(order: OrderSummary, now: datetime) -> float | None:
    if order.created_at is None:
        return None
    return round(max(0.0, (now - order.created_at).total_seconds() / 3600), 1)


def _order_row(order: OrderSummary, tier: PriorityTier, now: datetime, names: dict[str, str]) -> dict[str, Any]:
    tech = order.assigned_technician_id
    return {
        "order_id": order.order_id,
        "order_number": order.order_number,
        "status": order.status,
        "technician_id": tech,
        "technician_name": names.get(tech or "", "") or None,
        "priority": tier.key,
        "label": priority_label(tier),
        "badge_class": badge_class(tier),
        "age_hours": _age_hours(order, now),
        "target_delivery_date": (
            order.target_delivery_date.isoformat() if order.target_delivery_date else None
        ),
        "overdue": bool(order.target_delivery_date and now > order.target_delivery_date),
        "estimated_hours": order.estimated_hours,
    }


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------


def _technician_rows(
    queued: dict[str, float],
    counts: dict[str, int],
    roster: list[Technician],
) -> list[dict[str, Any]]:
    names = {t.technician_id: t.display_name for t in roster}
    tech_ids = list(dict.fromkeys([t.technician_id for t in roster] + list(queued)))
    rows = [
        {
            "technician_id": tech_id,
            "technician_name": names.get(tech_id, "") or None,
            "open_orders": counts.get(tech_id, 0),
            "queued_hours": round(queued.get(tech_id, 0.0), 2),
            "queued_display": format_hours(queued.get(tech_id, 0.0)),
        }
        for tech_id in tech_ids
    ]
    rows.sort(key=lambda r: (-r["queued_hours"], r["technician_id"]))
    return rows


def build_triage(
    snapshot_orders: Iterable[OrderSummary],
    now: datetime,
    *,
    roster: Iterable[Technician] = (),
    policy: PriorityPolicy = DEFAULT_POLICY,
) -> dict[str, Any]:
    """Triage summary of the open orders as seen at ``now``.

    Returns ``orders`` (most urgent first, with label and badge class),
    ``counts`` per tier, ``overdue`` order ids, ``workload`` per technician
    with its Gini concentration, and the ``unassigned`` backlog.
    """
    roster = list(roster)
    open_orders = [o for o in snapshot_orders if o.is_open]
    names = {t.technician_id: t.display_name for t in roster}

    ranked = sort_by_priority(open_orders, now, policy=policy)
    rows = [_order_row(order, tier, now, names) for order, tier in ranked]

    counts = {tier.key: 0 for tier in sorted(PriorityTier, reverse=True)}
    for _, tier in ranked:
        counts[tier.key] += 1

    report = build_workload_report(open_orders)
    technicians = _technician_rows(report.queued_hours, report.order_counts, roster)
    hours = [row["queued_hours"] for row in technicians]

    return {
        "generated_for": now.isoformat(),
        "total_open": len(rows),
        "counts": counts,
        "overdue": [row["order_id"] for row in rows if row["overdue"]],
        "orders": rows,
        "workload": {
            "technicians": technicians,
            "total_queued_hours": round(sum(report.queued_hours.values()), 2),
            "gini": round(_gini(hours), 4),
            "stats": _stats(hours),
        },
        "unassigned": {
            "orders": list(report.unassigned_orders),
            "hours": round(report.unassigned_hours, 2),
        },
    }
