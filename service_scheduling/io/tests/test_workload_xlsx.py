"""Tests for the workload / triage XLSX export."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import openpyxl
import pytest

from service_scheduling.io import load_input, render_workload_xlsx
from service_scheduling.io.schemas import TRIAGE_COLS, WORKLOAD_COLS
from service_scheduling.workload import build_workload_report

FIXTURES_DIR = Path(__file__).parent / "fixtures" / "minimal"
NOW = datetime(2026, 3, 2, 8, 0)


@pytest.fixture
def workbook(tmp_path):
    scenario = load_input(FIXTURES_DIR)
    report = build_workload_report(scenario.orders)
    path = render_workload_xlsx(
        report, scenario.orders, tmp_path / "out" / "workload.xlsx", now=NOW, roster=scenario.roster,
    )
    return openpyxl.load_workbook(path)


class TestWorkloadXlsx:
    def test_sheets(self, workbook):
        assert workbook.sheetnames == ["Workload", "Triage", "Meta"]

    def test_headers_styled(self, workbook):
        ws = workbook["Workload"]
        assert [c.value for c in ws[1]] == WORKLOAD_COLS
        assert ws["A1"].font.bold

    def test_workload_rows_most_loaded_first(self, workbook):
        rows = list(workbook["Workload"].iter_rows(min_row=2, values_only=True))
        assert [(r[0], r[3]) for r in rows] == [("T-100", 10), ("T-200", 3), ("T-300", 0)]
        assert rows[0][1] == "Ana Lopez"
        assert rows[0][4] == pytest.approx(76.9)

    def test_triage_rows_skip_finished_orders(self, workbook):
        ws = workbook["Triage"]
        assert [c.value for c in ws[1]] == TRIAGE_COLS
        ids = [r[0] for r in ws.iter_rows(min_row=2, values_only=True)]
        assert ids == ["O-5", "O-2", "O-4", "O-1"]

    def test_critical_rows_highlighted(self, workbook):
        ws = workbook["Triage"]
        assert ws["A2"].fill.start_color.rgb.endswith("F8CBAD")
        assert not str(ws["A4"].fill.start_color.rgb).endswith("F8CBAD")

    def test_meta(self, workbook):
        meta = dict(workbook["Meta"].iter_rows(min_row=2, values_only=True))
        assert meta["open_orders"] == 4
        assert meta["unassigned_orders"] == 1
        assert meta["unassigned_hours"] == 5
