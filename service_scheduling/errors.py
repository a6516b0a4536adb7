"""Validation failures raised by the scheduling engine.

None of these are transient: callers surface them and fall back to a manual
delivery date instead of retrying.
"""

from __future__ import annotations


class SchedulingError(ValueError):
    """Base class for engine validation failures."""


class InvalidCalendar(SchedulingError):
    """A ScheduleConfig that cannot produce working time."""


class SchedulingUnavailable(SchedulingError):
    """Calendar arithmetic could not produce a finite delivery instant."""


class InvalidLineItem(SchedulingError):
    """A line item with negative quantity or negative hours per unit."""
