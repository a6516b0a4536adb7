"""Delivery date projection for a new order.

Composes the shared-time estimate, the primary technician's queue and their
working calendar into a delivery instant plus a breakdown the order form can
show verbatim.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from .calendar import ScheduleConfig, WorkCalendar, DEFAULT_MAX_HORIZON_DAYS
from .errors import InvalidCalendar, SchedulingUnavailable
from .shared_time import EffectiveEstimate, LineItem, allocate
from .time_utils import format_hours

logger = logging.getLogger(__name__)

SUPPORT_REDUCTION_PER_TECHNICIAN = 0.005
# Largest float below 1; a reduction never removes all of the work.
MAX_SUPPORT_REDUCTION = math.nextafter(1.0, 0.0)


@dataclass(frozen=True)
class DeliveryProjection:
    delivery_at: datetime
    queue_clear_at: datetime
    effective_hours: float
    estimate: EffectiveEstimate
    queued_hours: float
    support_reduction: float
    travel_hours: float
    support_overlap_days: int | None
    working_days: int
    breakdown: str

    def to_dict(self) -> dict[str, object]:
        return {
            "delivery_at": self.delivery_at.isoformat(),
            "delivery_date": self.delivery_at.date().isoformat(),
            "delivery_time": self.delivery_at.strftime("%H:%M"),
            "queue_clear_at": self.queue_clear_at.isoformat(),
            "effective_hours": round(self.effective_hours, 2),
            "queued_hours": round(self.queued_hours, 2),
            "support_reduction": self.support_reduction,
            "travel_hours": self.travel_hours,
            "support_overlap_days": self.support_overlap_days,
            "working_days": self.working_days,
            "estimate": self.estimate.to_dict(),
            "breakdown": self.breakdown,
        }


def clamp_reduction(factor: float | None, *, cap: float = MAX_SUPPORT_REDUCTION) -> float:
    """Clamp a support reduction fraction into ``[0, 1)``.

    Fractions below 1 pass through; 1 and above map to just under 1. A lower
    ``cap`` (site policy) tightens the bound.
    """
    cap = min(max(0.0, float(cap)), MAX_SUPPORT_REDUCTION)
    return min(max(0.0, float(factor or 0.0)), cap)


def combined_support_reduction(
    percentages: Iterable[float],
    *,
    cap: float = MAX_SUPPORT_REDUCTION,
) -> float:
    """Fold per-technician reduction percentages (e.g. ``[0.5, 0.5]``) into one fraction."""
    return clamp_reduction(sum(float(p or 0.0) for p in percentages) / 100.0, cap=cap)


def _as_calendar(
    calendar: WorkCalendar | ScheduleConfig,
    *,
    role: str,
    max_horizon_days: int,
) -> WorkCalendar:
    if isinstance(calendar, WorkCalendar):
        return calendar
    try:
        return WorkCalendar(calendar, max_horizon_days=max_horizon_days)
    except InvalidCalendar as exc:
        raise SchedulingUnavailable(f"{role} technician calendar is invalid: {exc}") from exc


def _breakdown(
    estimate: EffectiveEstimate,
    *,
    travel_hours: float,
    support_reduction: float,
    support_hours_saved: float,
    queued_hours: float,
    effective_hours: float,
    working_days: int,
    calendar: WorkCalendar,
) -> str:
    parts = [f"{format_hours(estimate.base_hours)} base"]
    if estimate.shared_reduction > 0:
        parts.append(
            f"-{format_hours(estimate.shared_reduction)} shared time "
            f"({estimate.discounted_units} discounted units)"
        )
    if travel_hours > 0:
        parts.append(f"+{format_hours(travel_hours)} travel")
    if support_reduction > 0:
        parts.append(
            f"-{format_hours(support_hours_saved)} support ({support_reduction * 100:.1f}%)"
        )
    line = " ".join(parts) + f" = {format_hours(effective_hours)} effective"
    if queued_hours > 0:
        line += f", after {format_hours(queued_hours)} already queued"
    else:
        line += ", no work queued ahead"
    usable = calendar.config.usable_hours_per_day
    line += (
        f"; {format_hours(usable)}/day on {calendar.config.describe()}"
        f" = {working_days} working day{'s' if working_days != 1 else ''}"
    )
    return line


def project_delivery(
    items: Iterable[LineItem],
    primary_calendar: WorkCalendar | ScheduleConfig,
    support_calendar: WorkCalendar | ScheduleConfig | None = None,
    *,
    now: datetime,
    primary_queued_hours: float = 0.0,
    support_reduction_factor: float = 0.0,
    travel_hours: float = 0.0,
    max_horizon_days: int = DEFAULT_MAX_HORIZON_DAYS,
) -> DeliveryProjection:
    """Project when a new order will be delivered.

    The order starts behind ``primary_queued_hours`` of existing work on the
    primary technician's calendar. A support calendar only shortens the work by
    ``support_reduction_factor`` and is checked for overlapping work days; the
    delivery instant is always computed on the primary calendar.

    Raises SchedulingUnavailable when a calendar is invalid or the walk exceeds
    the horizon, and InvalidLineItem for malformed items.
    """
    primary = _as_calendar(primary_calendar, role="Primary", max_horizon_days=max_horizon_days)

    overlap: int | None = None
    reduction = 0.0
    if support_calendar is not None:
        support = _as_calendar(support_calendar, role="Support", max_horizon_days=max_horizon_days)
        overlap = len(primary.shared_work_days(support))
        if overlap == 0:
            logger.warning("Support calendar %r shares no work days with primary %r", support, primary)
        reduction = clamp_reduction(support_reduction_factor)

    estimate = allocate(items)
    travel = max(0.0, float(travel_hours or 0.0))
    unreduced = estimate.total_hours + travel
    effective = unreduced * (1.0 - reduction)
    queued = max(0.0, float(primary_queued_hours or 0.0))

    queue_clear_at = primary.advance(now, queued)
    if effective > 0:
        delivery_at = primary.advance(queue_clear_at, effective)
    else:
        delivery_at = queue_clear_at
    logger.debug(
        "Projected %.2fh (queued %.2fh) from %s to %s", effective, queued, now.isoformat(), delivery_at.isoformat()
    )

    work_start = primary.next_work_start(queue_clear_at) if effective > 0 else queue_clear_at
    working_days = primary.working_days_between(work_start, delivery_at) if effective > 0 else 0

    return DeliveryProjection(
        delivery_at=delivery_at,
        queue_clear_at=queue_clear_at,
        effective_hours=effective,
        estimate=estimate,
        queued_hours=queued,
        support_reduction=reduction,
        travel_hours=travel,
        support_overlap_days=overlap,
        working_days=working_days,
        breakdown=_breakdown(
            estimate,
            travel_hours=travel,
            support_reduction=reduction,
            support_hours_saved=unreduced - effective,
            queued_hours=queued,
            effective_hours=effective,
            working_days=working_days,
            calendar=primary,
        ),
    )
