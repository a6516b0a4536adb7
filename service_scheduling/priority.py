"""Priority tiers for open-order triage.

Tiers are recomputed on every read from the order's age and target delivery
date; they are never stored as ground truth.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import IntEnum

from .workload import OrderSummary


class PriorityTier(IntEnum):
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4

    @property
    def key(self) -> str:
        return self.name.lower()


@dataclass(frozen=True)
class PriorityPolicy:
    due_soon: timedelta = timedelta(days=1)
    due_later: timedelta = timedelta(days=3)
    stale_age: timedelta = timedelta(hours=48)
    critical_age: timedelta = timedelta(hours=72)


DEFAULT_POLICY = PriorityPolicy()

PRIORITY_LABELS = {
    PriorityTier.LOW: "Normal",
    PriorityTier.MEDIUM: "Medium",
    PriorityTier.HIGH: "High",
    PriorityTier.CRITICAL: "Critical",
}

PRIORITY_BADGE_CLASSES = {
    PriorityTier.LOW: "bg-green-100 text-green-800 border-green-200",
    PriorityTier.MEDIUM: "bg-orange-100 text-orange-800 border-orange-200",
    PriorityTier.HIGH: "bg-orange-600 text-white border-orange-700",
    PriorityTier.CRITICAL: "bg-red-600 text-white border-red-700",
}


def classify(
    created_at: datetime,
    now: datetime,
    target_delivery_date: datetime | None = None,
    *,
    policy: PriorityPolicy = DEFAULT_POLICY,
) -> PriorityTier:
    """Classify an open order.

    With a target date the remaining time decides (overdue is always critical).
    Without one, age decides and the result is never LOW: open work with no
    deadline still needs attention.
    """
    if target_delivery_date is not None:
        if now > target_delivery_date:
            return PriorityTier.CRITICAL
        remaining = target_delivery_date - now
        if remaining < policy.due_soon:
            return PriorityTier.HIGH
        if remaining < policy.due_later:
            return PriorityTier.MEDIUM
        return PriorityTier.LOW

    age = now - created_at
    if age > policy.critical_age:
        return PriorityTier.CRITICAL
    if age > policy.stale_age:
        return PriorityTier.HIGH
    return PriorityTier.MEDIUM


def classify_order(
    order: OrderSummary,
    now: datetime,
    *,
    policy: PriorityPolicy = DEFAULT_POLICY,
) -> PriorityTier:
    created_at = order.created_at or now
    return classify(created_at, now, order.target_delivery_date, policy=policy)


def priority_label(tier: PriorityTier) -> str:
    return PRIORITY_LABELS[tier]


def badge_class(tier: PriorityTier) -> str:
    return PRIORITY_BADGE_CLASSES[tier]


def sort_by_priority(
    orders: Iterable[OrderSummary],
    now: datetime,
    *,
    policy: PriorityPolicy = DEFAULT_POLICY,
) -> list[tuple[OrderSummary, PriorityTier]]:
    """Pair each order with its tier, most urgent first, oldest first within a tier."""
    ranked = [(order, classify_order(order, now, policy=policy)) for order in orders]
    ranked.sort(key=lambda pair: (-int(pair[1]), pair[0].created_at or now, pair[0].order_id))
    return ranked


def priority_counts(
    orders: Iterable[OrderSummary],
    now: datetime,
    *,
    policy: PriorityPolicy = DEFAULT_POLICY,
) -> dict[str, int]:
    counts = Counter(classify_order(o, now, policy=policy) for o in orders)
    return {tier.key: counts.get(tier, 0) for tier in sorted(PriorityTier, reverse=True)}
