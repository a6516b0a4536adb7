"""Tests for the dashboard triage summary."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from service_desk.triage import _gini, build_triage
from service_scheduling.workload import OrderSummary, Technician

NOW = datetime(2026, 3, 2, 12, 0)


def order(order_id, tech=None, hours=1.0, age_h=1, target_in_h=None, status="pendiente"):
    return OrderSummary(
        order_id=order_id,
        status=status,
        assigned_technician_id=tech,
        estimated_hours=hours,
        created_at=NOW - timedelta(hours=age_h),
        target_delivery_date=NOW + timedelta(hours=target_in_h) if target_in_h is not None else None,
    )


@pytest.fixture
def summary():
    orders = [
        order("O-low", "T-1", hours=2, target_in_h=120),
        order("O-late", "T-1", hours=4, target_in_h=-5),
        order("O-old", "T-2", hours=1, age_h=80),
        order("O-new", None, hours=3),
        order("O-done", "T-2", hours=9, status="finalizada"),
    ]
    roster = [Technician("T-1", "Ana"), Technician("T-2", "Bruno"), Technician("T-3", "Carla")]
    return build_triage(orders, NOW, roster=roster)


class TestGini:
    def test_equal(self):
        assert _gini([3, 3, 3]) == pytest.approx(0.0)

    def test_empty_and_zero(self):
        assert _gini([]) == 0.0
        assert _gini([0, 0]) == 0.0

    def test_concentrated(self):
        assert _gini([0, 0, 9]) == pytest.approx(2 / 3)


class TestBuildTriage:
    def test_terminal_orders_dropped(self, summary):
        assert summary["total_open"] == 4
        assert "O-done" not in [o["order_id"] for o in summary["orders"]]

    def test_order_ranking(self, summary):
        assert [o["order_id"] for o in summary["orders"]] == ["O-old", "O-late", "O-new", "O-low"]

    def test_labels_and_badges(self, summary):
        first = summary["orders"][0]
        assert first["priority"] == "critical"
        assert first["label"] == "Critical"
        assert first["badge_class"]
        assert first["technician_name"] == "Bruno"

    def test_counts(self, summary):
        assert summary["counts"] == {"critical": 2, "high": 0, "medium": 1, "low": 1}

    def test_overdue(self, summary):
        assert summary["overdue"] == ["O-late"]

    def test_workload(self, summary):
        rows = summary["workload"]["technicians"]
        assert [(r["technician_id"], r["queued_hours"]) for r in rows] == [("T-1", 6.0), ("T-2", 1.0), ("T-3", 0.0)]
        assert rows[0]["open_orders"] == 2
        assert summary["workload"]["total_queued_hours"] == 7.0
        assert 0 < summary["workload"]["gini"] < 1

    def test_unassigned_backlog(self, summary):
        assert summary["unassigned"] == {"orders": ["O-new"], "hours": 3.0}
