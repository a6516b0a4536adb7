"""Technician working calendars.

A calendar is a recurring weekly pattern: a set of work days, one daily window
and a break that is deducted from each day's capacity (the break is never
pinned to a clock time). ``WorkCalendar.advance`` walks forward across that
pattern consuming work hours.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from .errors import InvalidCalendar, SchedulingUnavailable
from .time_utils import parse_hhmm

DEFAULT_MAX_HORIZON_DAYS = 366

WEEKDAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


def _minutes(value: time) -> int:
    return value.hour * 60 + value.minute


@dataclass(frozen=True)
class ScheduleConfig:
    """Recurring business hours of one technician (weekdays: 0 = Monday)."""

    work_days: frozenset[int]
    start_time: time
    end_time: time
    break_minutes: int = 0

    @classmethod
    def from_hhmm(
        cls,
        work_days: Iterable[int],
        start: str,
        end: str,
        break_minutes: int = 0,
    ) -> ScheduleConfig:
        start_time = parse_hhmm(start)
        end_time = parse_hhmm(end)
        if start_time is None or end_time is None:
            raise InvalidCalendar(f"Unparseable business hours: {start!r}-{end!r}")
        return cls(
            work_days=frozenset(int(d) for d in work_days),
            start_time=start_time,
            end_time=end_time,
            break_minutes=int(break_minutes or 0),
        )

    @property
    def window_minutes(self) -> int:
        return _minutes(self.end_time) - _minutes(self.start_time)

    @property
    def usable_hours_per_day(self) -> float:
        return max(0, self.window_minutes - self.break_minutes) / 60.0

    def validate(self) -> None:
        """Raise InvalidCalendar unless this config can produce working time."""
        if not self.work_days:
            raise InvalidCalendar("Calendar has no work days")
        bad_days = sorted(d for d in self.work_days if d < 0 or d > 6)
        if bad_days:
            raise InvalidCalendar(f"Work days out of range 0-6: {bad_days}")
        if self.start_time >= self.end_time:
            raise InvalidCalendar(
                f"Daily start {self.start_time:%H:%M} is not before end {self.end_time:%H:%M}"
            )
        if self.break_minutes < 0:
            raise InvalidCalendar(f"Negative break duration: {self.break_minutes}")
        if self.break_minutes >= self.window_minutes:
            raise InvalidCalendar(
                f"Break of {self.break_minutes}min leaves no capacity in a "
                f"{self.window_minutes}min window"
            )

    def describe(self) -> str:
        days = ",".join(WEEKDAY_NAMES[d] for d in sorted(self.work_days) if 0 <= d <= 6)
        return (
            f"{days} {self.start_time:%H:%M}-{self.end_time:%H:%M} "
            f"(break {self.break_minutes}min)"
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "work_days": sorted(self.work_days),
            "start_time": self.start_time.strftime("%H:%M"),
            "end_time": self.end_time.strftime("%H:%M"),
            "break_minutes": self.break_minutes,
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> ScheduleConfig:
        return cls.from_hhmm(
            data.get("work_days") or [],
            str(data.get("start_time") or ""),
            str(data.get("end_time") or ""),
            int(data.get("break_minutes") or 0),
        )


# Fallback for technicians without an explicit schedule: Mon-Fri 08:00-16:00, 1h break.
DEFAULT_SCHEDULE = ScheduleConfig(
    work_days=frozenset({0, 1, 2, 3, 4}),
    start_time=time(8, 0),
    end_time=time(16, 0),
    break_minutes=60,
)


class WorkCalendar:
    """Work-hour arithmetic over a validated ScheduleConfig.

    Instances hold no mutable state; ``advance`` is a pure function of its
    arguments and the config.
    """

    def __init__(self, config: ScheduleConfig, *, max_horizon_days: int = DEFAULT_MAX_HORIZON_DAYS):
        config.validate()
        if max_horizon_days < 1:
            raise ValueError(f"max_horizon_days must be positive, got {max_horizon_days}")
        self.config = config
        self.max_horizon_days = max_horizon_days
        self._break_hours = config.break_minutes / 60.0

    def __repr__(self) -> str:
        return f"WorkCalendar({self.config.describe()})"

    def is_work_day(self, day: date) -> bool:
        return day.weekday() in self.config.work_days

    def day_start(self, day: date, tzinfo=None) -> datetime:
        return datetime.combine(day, self.config.start_time, tzinfo=tzinfo)

    def day_end(self, day: date, tzinfo=None) -> datetime:
        return datetime.combine(day, self.config.end_time, tzinfo=tzinfo)

    def is_within_business_window(self, moment: datetime) -> bool:
        if not self.is_work_day(moment.date()):
            return False
        return self.config.start_time <= moment.time() <= self.config.end_time

    def _next_active_day(self, day: date) -> date:
        # work_days is non-empty after validate(), so one week always suffices.
        for offset in range(7):
            candidate = day + timedelta(days=offset)
            if self.is_work_day(candidate):
                return candidate
        raise InvalidCalendar("Calendar has no work days")

    def next_work_start(self, moment: datetime) -> datetime:
        """Earliest instant at or after ``moment`` inside a business window."""
        day = moment.date()
        if self.is_work_day(day) and moment < self.day_end(day, moment.tzinfo):
            return max(moment, self.day_start(day, moment.tzinfo))
        nxt = self._next_active_day(day + timedelta(days=1))
        return self.day_start(nxt, moment.tzinfo)

    def advance(self, start: datetime, hours: float) -> datetime:
        """Return the instant at which ``hours`` of work started at ``start`` complete.

        Hours that do not fit in a day's usable capacity roll over to the next
        work day's start. Raises SchedulingUnavailable when the walk exceeds
        ``max_horizon_days``.
        """
        if hours is None or hours <= 0:
            return start

        remaining = float(hours)
        cursor = self.next_work_start(start)
        origin = start.date()

        while True:
            if (cursor.date() - origin).days > self.max_horizon_days:
                raise SchedulingUnavailable(
                    f"{hours:.2f}h cannot be scheduled within {self.max_horizon_days} days "
                    f"on calendar {self.config.describe()}"
                )
            window_left = (self.day_end(cursor.date(), cursor.tzinfo) - cursor).total_seconds() / 3600.0
            capacity = max(0.0, window_left - self._break_hours)
            if remaining <= capacity:
                return cursor + timedelta(seconds=round(remaining * 3600))
            remaining -= capacity
            nxt = self._next_active_day(cursor.date() + timedelta(days=1))
            cursor = self.day_start(nxt, cursor.tzinfo)

    def working_days_between(self, start: datetime, end: datetime) -> int:
        """Count work days touched by the interval ``[start, end]``."""
        if end < start:
            return 0
        count = 0
        day = start.date()
        while day <= end.date():
            if self.is_work_day(day):
                count += 1
            day += timedelta(days=1)
        return count

    def shared_work_days(self, other: WorkCalendar | ScheduleConfig) -> frozenset[int]:
        other_days = other.config.work_days if isinstance(other, WorkCalendar) else other.work_days
        return self.config.work_days & other_days
