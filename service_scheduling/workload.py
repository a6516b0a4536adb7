"""Technician queue depth and support-technician suggestions.

Workload is always rebuilt from the full list of orders handed in; nothing is
cached between calls.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime

# Terminal statuses, both the English names and the values stored by the
# hosted order database.
TERMINAL_STATUSES = frozenset({
    "finished",
    "completed",
    "cancelled",
    "canceled",
    "rejected",
    "finalizada",
    "cancelada",
    "rechazada",
})


def normalize_status(status: str | None) -> str:
    return str(status or "").strip().lower()


def is_open(status: str | None) -> bool:
    return normalize_status(status) not in TERMINAL_STATUSES


@dataclass(frozen=True)
class OrderSummary:
    order_id: str
    status: str
    assigned_technician_id: str | None = None
    estimated_hours: float | None = None
    created_at: datetime | None = None
    target_delivery_date: datetime | None = None
    order_number: str | None = None

    @property
    def queued_hours(self) -> float:
        return max(0.0, float(self.estimated_hours or 0.0))

    @property
    def is_open(self) -> bool:
        return is_open(self.status)


@dataclass(frozen=True)
class Technician:
    technician_id: str
    display_name: str = ""

    @property
    def label(self) -> str:
        return self.display_name or self.technician_id


@dataclass(frozen=True)
class SupportSuggestion:
    suggested: bool
    reason: str
    technician_id: str | None = None
    technician_name: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "suggested": self.suggested,
            "technician_id": self.technician_id,
            "technician_name": self.technician_name,
            "reason": self.reason,
        }


@dataclass
class WorkloadReport:
    queued_hours: dict[str, float] = field(default_factory=dict)
    order_counts: dict[str, int] = field(default_factory=dict)
    unassigned_hours: float = 0.0
    unassigned_orders: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "queued_hours": {k: round(v, 2) for k, v in self.queued_hours.items()},
            "order_counts": dict(self.order_counts),
            "unassigned_hours": round(self.unassigned_hours, 2),
            "unassigned_orders": list(self.unassigned_orders),
        }


def compute_workload(open_orders: Iterable[OrderSummary]) -> dict[str, float]:
    """Sum estimated hours of non-terminal orders per assigned technician."""
    return build_workload_report(open_orders).queued_hours


def build_workload_report(orders: Iterable[OrderSummary]) -> WorkloadReport:
    """Workload per technician plus the backlog of open orders nobody owns."""
    hours: dict[str, float] = defaultdict(float)
    counts: dict[str, int] = defaultdict(int)
    report = WorkloadReport()

    for order in orders:
        if not order.is_open:
            continue
        tech = order.assigned_technician_id
        if not tech:
            report.unassigned_hours += order.queued_hours
            report.unassigned_orders.append(order.order_id)
            continue
        hours[tech] += order.queued_hours
        counts[tech] += 1

    report.queued_hours = dict(hours)
    report.order_counts = dict(counts)
    return report


def _roster_entries(roster: Iterable[Technician | str]) -> list[Technician]:
    entries: list[Technician] = []
    seen: set[str] = set()
    for entry in roster:
        tech = entry if isinstance(entry, Technician) else Technician(str(entry))
        if tech.technician_id in seen:
            continue
        seen.add(tech.technician_id)
        entries.append(tech)
    return entries


def least_loaded(
    roster: Iterable[Technician | str],
    workload: Mapping[str, float],
    *,
    exclude: Iterable[str] = (),
) -> Technician | None:
    """Technician with the fewest queued hours; ties broken by technician id."""
    excluded = set(exclude)
    candidates = [t for t in _roster_entries(roster) if t.technician_id not in excluded]
    if not candidates:
        return None
    return min(candidates, key=lambda t: (float(workload.get(t.technician_id, 0.0)), t.technician_id))


def suggest_support(
    primary_id: str,
    incoming_hours: float,
    roster: Iterable[Technician | str],
    workload: Mapping[str, float],
    *,
    threshold_hours: float,
) -> SupportSuggestion:
    """Advise whether a second technician should join the incoming order.

    Support is suggested when the primary technician's queue plus the new work
    exceeds the least-loaded colleague's queue by more than ``threshold_hours``.
    The primary technician is never proposed as their own support.
    """
    primary_hours = float(workload.get(primary_id, 0.0))
    incoming = max(0.0, float(incoming_hours or 0.0))
    projected = primary_hours + incoming

    candidate = least_loaded(roster, workload, exclude=[primary_id])
    if candidate is None:
        return SupportSuggestion(
            suggested=False,
            reason="No other technician is available to support this order",
        )

    candidate_hours = float(workload.get(candidate.technician_id, 0.0))
    gap = projected - candidate_hours
    if gap > threshold_hours:
        return SupportSuggestion(
            suggested=True,
            technician_id=candidate.technician_id,
            technician_name=candidate.display_name or None,
            reason=(
                f"Primary technician would carry {projected:.1f}h "
                f"({primary_hours:.1f}h queued + {incoming:.1f}h new) while "
                f"{candidate.label} has {candidate_hours:.1f}h queued; "
                f"the {gap:.1f}h gap exceeds {threshold_hours:.1f}h"
            ),
        )

    return SupportSuggestion(
        suggested=False,
        reason=(
            f"Primary technician would carry {projected:.1f}h against "
            f"{candidate_hours:.1f}h for the least-loaded technician; "
            f"within the {threshold_hours:.1f}h threshold"
        ),
    )
