"""Render workload and triage data to a multi-sheet XLSX workbook."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any

from service_scheduling.priority import priority_label, sort_by_priority
from service_scheduling.workload import OrderSummary, Technician, WorkloadReport

from .schemas import TRIAGE_COLS, WORKLOAD_COLS


def _get_openpyxl():
    try:
        from openpyxl import Workbook
        from openpyxl.styles import Font, PatternFill
        return Workbook, Font, PatternFill
    except ImportError as exc:
        raise ImportError("openpyxl is required for XLSX export: pip install openpyxl") from exc


def _style_headers(worksheets):
    """Apply bold + blue fill to header row of each worksheet."""
    _, Font, PatternFill = _get_openpyxl()
    header_font = Font(bold=True)
    header_fill = PatternFill(start_color="D9E1F2", end_color="D9E1F2", fill_type="solid")
    for ws in worksheets:
        for cell in ws[1]:
            cell.font = header_font
            cell.fill = header_fill


# ---------------------------------------------------------------------------
# Row builders
# ---------------------------------------------------------------------------

def _workload_rows(report: WorkloadReport, roster: list[Technician]) -> list[dict[str, Any]]:
    names = {t.technician_id: t.display_name for t in roster}
    tech_ids = list(dict.fromkeys([t.technician_id for t in roster] + list(report.queued_hours)))
    total = sum(report.queued_hours.values())
    rows = []
    for tech_id in tech_ids:
        hours = report.queued_hours.get(tech_id, 0.0)
        rows.append({
            "technician_id": tech_id,
            "technician_name": names.get(tech_id, ""),
            "open_orders": report.order_counts.get(tech_id, 0),
            "queued_hours": round(hours, 2),
            "share_pct": round(hours / total * 100, 1) if total else 0.0,
        })
    rows.sort(key=lambda r: (-r["queued_hours"], r["technician_id"]))
    return rows


def _triage_row(order: OrderSummary, tier, now: datetime) -> dict[str, Any]:
    age = (now - order.created_at).total_seconds() / 3600 if order.created_at else None
    return {
        "order_id": order.order_id,
        "order_number": order.order_number or "",
        "status": order.status,
        "technician_id": order.assigned_technician_id or "",
        "priority": tier.key,
        "label": priority_label(tier),
        "created_at": order.created_at.isoformat() if order.created_at else "",
        "target_delivery_date": (
            order.target_delivery_date.isoformat() if order.target_delivery_date else ""
        ),
        "age_hours": round(age, 1) if age is not None else "",
        "estimated_hours": order.estimated_hours if order.estimated_hours is not None else "",
    }


def render_workload_xlsx(
    report: WorkloadReport,
    orders: list[OrderSummary],
    path: Path,
    *,
    now: datetime,
    roster: list[Technician] | None = None,
) -> Path:
    """Render Workload, Triage and Meta sheets. Returns the path to the written file."""
    Workbook, Font, PatternFill = _get_openpyxl()
    critical_fill = PatternFill(start_color="F8CBAD", end_color="F8CBAD", fill_type="solid")

    wb = Workbook()
    all_sheets = []

    # --- Workload sheet ---
    ws_workload = wb.active
    ws_workload.title = "Workload"
    ws_workload.append(WORKLOAD_COLS)
    for row in _workload_rows(report, roster or []):
        ws_workload.append([row.get(c, "") for c in WORKLOAD_COLS])
    all_sheets.append(ws_workload)

    # --- Triage sheet (open orders, most urgent first) ---
    ws_triage = wb.create_sheet("Triage")
    ws_triage.append(TRIAGE_COLS)
    open_orders = [o for o in orders if o.is_open]
    for order, tier in sort_by_priority(open_orders, now):
        row = _triage_row(order, tier, now)
        ws_triage.append([row.get(c, "") for c in TRIAGE_COLS])
        if tier.key == "critical":
            for cell in ws_triage[ws_triage.max_row]:
                cell.fill = critical_fill
    all_sheets.append(ws_triage)

    # --- Meta sheet ---
    ws_meta = wb.create_sheet("Meta")
    ws_meta.append(["Field", "Value"])
    for field_name, value in (
        ("generated_for", now.isoformat()),
        ("open_orders", len(open_orders)),
        ("queued_hours", round(sum(report.queued_hours.values()), 2)),
        ("unassigned_orders", len(report.unassigned_orders)),
        ("unassigned_hours", round(report.unassigned_hours, 2)),
    ):
        ws_meta.append([field_name, value])
    all_sheets.append(ws_meta)

    _style_headers(all_sheets)
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    wb.save(path)
    return path
