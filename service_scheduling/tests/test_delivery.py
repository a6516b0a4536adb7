"""Tests for delivery projection."""

from __future__ import annotations

from datetime import datetime

import pytest

from service_scheduling.calendar import ScheduleConfig, WorkCalendar
from service_scheduling.delivery import (
    MAX_SUPPORT_REDUCTION,
    clamp_reduction,
    combined_support_reduction,
    project_delivery,
)
from service_scheduling.errors import InvalidLineItem, SchedulingUnavailable
from service_scheduling.shared_time import LineItem

MONDAY_8 = datetime(2026, 3, 2, 8, 0)


@pytest.fixture
def primary():
    return WorkCalendar(ScheduleConfig.from_hhmm([0, 1, 2, 3, 4], "08:00", "17:00", 60))


def hours(total):
    return [LineItem("cat-a", quantity=1, hours_per_unit=total)]


class TestProjectDelivery:
    def test_monday_ten_hours(self, primary):
        projection = project_delivery(hours(10), primary, now=MONDAY_8)
        assert projection.delivery_at == datetime(2026, 3, 3, 10, 0)
        assert projection.effective_hours == pytest.approx(10.0)
        assert projection.working_days == 2

    def test_queue_is_served_first(self, primary):
        projection = project_delivery(hours(2), primary, now=MONDAY_8, primary_queued_hours=8)
        assert projection.queue_clear_at == datetime(2026, 3, 2, 16, 0)
        assert projection.delivery_at == datetime(2026, 3, 3, 10, 0)

    def test_accepts_schedule_config(self):
        cfg = ScheduleConfig.from_hhmm([0, 1, 2, 3, 4], "08:00", "17:00", 60)
        projection = project_delivery(hours(10), cfg, now=MONDAY_8)
        assert projection.delivery_at == datetime(2026, 3, 3, 10, 0)

    def test_support_reduces_effective_hours(self, primary):
        projection = project_delivery(
            hours(10), primary, primary.config, now=MONDAY_8, support_reduction_factor=0.005,
        )
        assert projection.effective_hours == pytest.approx(9.95)
        assert projection.support_reduction == 0.005
        assert projection.support_overlap_days == 5

    def test_reduction_ignored_without_support(self, primary):
        projection = project_delivery(hours(10), primary, now=MONDAY_8, support_reduction_factor=0.5)
        assert projection.effective_hours == pytest.approx(10.0)
        assert projection.support_overlap_days is None

    def test_large_reduction_below_one_passes_through(self, primary):
        projection = project_delivery(
            hours(10), primary, primary, now=MONDAY_8, support_reduction_factor=0.95,
        )
        assert projection.support_reduction == 0.95
        assert projection.effective_hours == pytest.approx(0.5)
        assert projection.delivery_at == datetime(2026, 3, 2, 8, 30)

    def test_reduction_clamped_below_one(self, primary):
        projection = project_delivery(
            hours(10), primary, primary, now=MONDAY_8, support_reduction_factor=1.5,
        )
        assert projection.support_reduction == MAX_SUPPORT_REDUCTION
        assert projection.support_reduction < 1.0
        assert projection.effective_hours > 0

    def test_travel_hours_added(self, primary):
        projection = project_delivery(hours(2), primary, now=MONDAY_8, travel_hours=1)
        assert projection.effective_hours == pytest.approx(3.0)
        assert projection.delivery_at == datetime(2026, 3, 2, 11, 0)

    def test_shared_time_flows_through(self, primary):
        items = [LineItem("cat-a", quantity=4, hours_per_unit=2, shared_time_eligible=True)]
        projection = project_delivery(items, primary, now=MONDAY_8)
        assert projection.effective_hours == pytest.approx(4.8)
        assert projection.estimate.base_hours == pytest.approx(8.0)

    def test_invalid_primary_calendar(self):
        bad = ScheduleConfig.from_hhmm([], "08:00", "17:00", 60)
        with pytest.raises(SchedulingUnavailable):
            project_delivery(hours(4), bad, now=MONDAY_8)

    def test_invalid_support_calendar(self, primary):
        bad = ScheduleConfig.from_hhmm([0], "12:00", "09:00", 0)
        with pytest.raises(SchedulingUnavailable):
            project_delivery(hours(4), primary, bad, now=MONDAY_8)

    def test_horizon_overflow_is_not_swallowed(self):
        cal = WorkCalendar(ScheduleConfig.from_hhmm([0], "08:00", "09:00", 0), max_horizon_days=7)
        with pytest.raises(SchedulingUnavailable):
            project_delivery(hours(5), cal, now=MONDAY_8)

    def test_invalid_items_propagate(self, primary):
        with pytest.raises(InvalidLineItem):
            project_delivery([LineItem("cat-a", quantity=-2, hours_per_unit=1)], primary, now=MONDAY_8)

    def test_breakdown_documents_inputs(self, primary):
        items = [
            LineItem("cat-a", quantity=3, hours_per_unit=2, shared_time_eligible=True),
            LineItem("cat-b", quantity=1, hours_per_unit=1),
        ]
        projection = project_delivery(
            items, primary, primary, now=MONDAY_8,
            primary_queued_hours=4, support_reduction_factor=0.1, travel_hours=1,
        )
        text = projection.breakdown
        assert "7h base" in text
        assert "shared time" in text
        assert "travel" in text
        assert "support (10.0%)" in text
        assert "4h already queued" in text
        assert "working day" in text

    def test_to_dict(self, primary):
        payload = project_delivery(hours(10), primary, now=MONDAY_8).to_dict()
        assert payload["delivery_date"] == "2026-03-03"
        assert payload["delivery_time"] == "10:00"
        assert payload["estimate"]["total_hours"] == 10.0


class TestSupportReduction:
    def test_clamp(self):
        assert clamp_reduction(-0.2) == 0.0
        assert clamp_reduction(None) == 0.0
        assert clamp_reduction(0.3) == 0.3
        assert clamp_reduction(0.95) == 0.95
        assert clamp_reduction(0.999) == 0.999
        assert clamp_reduction(1) == MAX_SUPPORT_REDUCTION
        assert clamp_reduction(5) == MAX_SUPPORT_REDUCTION
        assert clamp_reduction(0.8, cap=0.5) == 0.5
        assert clamp_reduction(0.95, cap=3) == 0.95

    def test_combined_percentages(self):
        assert combined_support_reduction([0.5, 0.5]) == pytest.approx(0.01)
        assert combined_support_reduction([30, 30, 35]) == pytest.approx(0.95)
        assert combined_support_reduction([60, 60]) == MAX_SUPPORT_REDUCTION
        assert combined_support_reduction([]) == 0.0
