"""Service time estimation and delivery scheduling engine."""

from .calendar import DEFAULT_SCHEDULE, ScheduleConfig, WorkCalendar
from .delivery import DeliveryProjection, combined_support_reduction, project_delivery
from .errors import InvalidCalendar, InvalidLineItem, SchedulingError, SchedulingUnavailable
from .priority import PriorityPolicy, PriorityTier, classify, sort_by_priority
from .shared_time import EffectiveEstimate, LineItem, allocate
from .time_utils import format_hours, parse_hhmm_to_minutes
from .workload import (
    OrderSummary,
    SupportSuggestion,
    Technician,
    build_workload_report,
    compute_workload,
    suggest_support,
)

# io re-exports; openpyxl stays lazy inside io
from .io import load_input, write_output

__all__ = [
    "DEFAULT_SCHEDULE",
    "DeliveryProjection",
    "EffectiveEstimate",
    "InvalidCalendar",
    "InvalidLineItem",
    "LineItem",
    "OrderSummary",
    "PriorityPolicy",
    "PriorityTier",
    "ScheduleConfig",
    "SchedulingError",
    "SchedulingUnavailable",
    "SupportSuggestion",
    "Technician",
    "WorkCalendar",
    "allocate",
    "build_workload_report",
    "classify",
    "combined_support_reduction",
    "compute_workload",
    "format_hours",
    "load_input",
    "parse_hhmm_to_minutes",
    "project_delivery",
    "sort_by_priority",
    "suggest_support",
    "write_output",
]
