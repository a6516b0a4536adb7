"""Effective labor hours for a cart of line items.

Repeated units of a parallelizable service are discounted cyclically: within a
service category the first unit of every run of three costs its full time and
the two following units only a fraction of it.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from .errors import InvalidLineItem

SHARED_CYCLE = 3
SHARED_FOLLOWER_WEIGHT = 0.2
DISPLAY_PRECISION = 2


@dataclass(frozen=True)
class LineItem:
    service_category_id: str | None
    quantity: int = 1
    hours_per_unit: float | None = None
    shared_time_eligible: bool = False
    item_id: str | None = None

    @property
    def unit_hours(self) -> float:
        return float(self.hours_per_unit or 0.0)

    @property
    def total_base_hours(self) -> float:
        return max(0, int(self.quantity or 0)) * self.unit_hours

    def validate(self) -> None:
        if self.quantity is not None and self.quantity < 0:
            raise InvalidLineItem(f"Line item {self.label} has negative quantity {self.quantity}")
        if self.hours_per_unit is not None and self.hours_per_unit < 0:
            raise InvalidLineItem(
                f"Line item {self.label} has negative hours per unit {self.hours_per_unit}"
            )

    @property
    def label(self) -> str:
        return self.item_id or self.service_category_id or "<unnamed>"


@dataclass(frozen=True)
class UnitAllocation:
    service_category_id: str
    position: int
    hours_per_unit: float
    weight: float

    @property
    def hours(self) -> float:
        return self.hours_per_unit * self.weight

    @property
    def discounted(self) -> bool:
        return self.weight < 1.0


@dataclass(frozen=True)
class EffectiveEstimate:
    total_hours: float
    base_hours: float
    individual_hours: float
    shared_hours: float
    shared_units: tuple[UnitAllocation, ...] = ()

    @property
    def shared_reduction(self) -> float:
        return max(0.0, self.base_hours - self.total_hours)

    @property
    def display_hours(self) -> float:
        return round(self.total_hours, DISPLAY_PRECISION)

    @property
    def discounted_units(self) -> int:
        return sum(1 for u in self.shared_units if u.discounted)

    def to_dict(self) -> dict[str, object]:
        return {
            "total_hours": self.display_hours,
            "base_hours": round(self.base_hours, DISPLAY_PRECISION),
            "individual_hours": round(self.individual_hours, DISPLAY_PRECISION),
            "shared_hours": round(self.shared_hours, DISPLAY_PRECISION),
            "shared_reduction": round(self.shared_reduction, DISPLAY_PRECISION),
            "shared_units": [
                {
                    "service_category_id": u.service_category_id,
                    "position": u.position,
                    "hours_per_unit": u.hours_per_unit,
                    "weight": u.weight,
                    "hours": round(u.hours, DISPLAY_PRECISION),
                }
                for u in self.shared_units
            ],
        }


def cyclic_weight(position: int) -> float:
    """Weight of the unit at ``position`` (0-based) inside its category group."""
    return 1.0 if position % SHARED_CYCLE == 0 else SHARED_FOLLOWER_WEIGHT


def _group_key(item: LineItem, index: int) -> str:
    # Shared items without a category cannot batch with anything else.
    if item.service_category_id:
        return str(item.service_category_id)
    return f"__item_{item.item_id or index}"


def allocate(items: Iterable[LineItem]) -> EffectiveEstimate:
    """Compute effective hours for ``items``.

    Raises InvalidLineItem before any hours are summed if an item carries a
    negative quantity or negative hours.
    """
    items = list(items)
    for item in items:
        item.validate()

    individual = 0.0
    groups: dict[str, list[float]] = {}
    for index, item in enumerate(items):
        if not item.shared_time_eligible:
            individual += item.total_base_hours
            continue
        units = groups.setdefault(_group_key(item, index), [])
        units.extend([item.unit_hours] * max(0, int(item.quantity or 0)))

    allocations: list[UnitAllocation] = []
    for key, unit_hours in groups.items():
        for position, hours in enumerate(unit_hours):
            allocations.append(
                UnitAllocation(
                    service_category_id=key,
                    position=position,
                    hours_per_unit=hours,
                    weight=cyclic_weight(position),
                )
            )

    shared = sum(a.hours for a in allocations)
    base = individual + sum(a.hours_per_unit for a in allocations)
    return EffectiveEstimate(
        total_hours=max(0.0, individual + shared),
        base_hours=base,
        individual_hours=individual,
        shared_hours=shared,
        shared_units=tuple(allocations),
    )
