"""service-desk MCP server.

Exposes tools for syncing the order database into local snapshots, checking
technician workload, suggesting support technicians, projecting delivery
dates for new orders, and triaging the open order board.
"""
from __future__ import annotations

import argparse
import logging
import os
from datetime import datetime
from typing import Any
from uuid import uuid4
from zoneinfo import ZoneInfo

from mcp.server.fastmcp import FastMCP

from service_scheduling.delivery import combined_support_reduction, project_delivery
from service_scheduling.errors import SchedulingError
from service_scheduling.time_utils import format_hours
from service_scheduling.workload import build_workload_report, suggest_support

from .config import (
    SchedulingPolicy,
    load_env,
    load_schedule_overrides,
    runtime_config,
    scheduling_policy,
    supabase_config,
)
from .ingest import (
    build_snapshot,
    line_items,
    orders_from_snapshot,
    parse_timestamp,
    roster_from_snapshot,
    schedule_for,
)
from .storage import (
    list_estimates as _list_estimates,
    list_snapshots as _list_snapshots,
    load_estimate as _load_estimate,
    load_snapshot as _load_snapshot,
    report_root,
    save_estimate as _save_estimate,
    save_snapshot as _save_snapshot,
)
from .supabase_client import ReadOnlySupabaseClient
from .triage import build_triage

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "service-desk",
    host=os.getenv("HOST", "127.0.0.1"),
    port=int(os.getenv("PORT", "8000")),
    instructions=(
        "Scheduling engine for a repair and installation service desk. "
        "Syncs open orders and technician schedules, projects delivery dates "
        "for new orders, suggests support technicians for overloaded queues, "
        "and ranks open orders by urgency. All database access is read-only."
    ),
)

_ENV_FILE: str | None = None
_CLIENT: ReadOnlySupabaseClient | None = None


def _client() -> ReadOnlySupabaseClient:
    global _CLIENT
    if _CLIENT is None:
        load_env(_ENV_FILE or os.getenv("SERVICE_DESK_ENV_FILE"))
        _CLIENT = ReadOnlySupabaseClient()
    return _CLIENT


def _artifact_root():
    load_env(_ENV_FILE or os.getenv("SERVICE_DESK_ENV_FILE"))
    return runtime_config().artifact_root


def _policy() -> SchedulingPolicy:
    load_env(_ENV_FILE or os.getenv("SERVICE_DESK_ENV_FILE"))
    return scheduling_policy()


def _local_now(policy: SchedulingPolicy, now: str | None = None) -> datetime:
    tz = ZoneInfo(policy.local_timezone)
    if now:
        parsed = parse_timestamp(now, tz)
        if parsed is None:
            raise ValueError(f"Unparseable timestamp: {now!r}")
        return parsed
    return datetime.now(tz).replace(tzinfo=None)


# -- Data sync --

@mcp.tool()
def sync_snapshot() -> dict[str, Any]:
    """Fetch open orders, line items, technicians and schedules into a local snapshot.

    Returns snapshot manifest with snapshot_id, counts, and file path.
    """
    policy = _policy()
    raw_payload = _client().fetch_snapshot_payload(supabase_config())
    snapshot = build_snapshot(raw_payload, now=_local_now(policy), policy=policy)
    target = _save_snapshot(_artifact_root(), snapshot, raw_payload)
    return {
        "snapshot_id": snapshot["snapshot_id"],
        "generated_at": snapshot["generated_at"],
        "counts": snapshot["metadata"]["counts"],
        "skipped": snapshot["metadata"]["skipped"],
        "path": str(target),
    }


# -- Snapshot CRUD --

@mcp.tool()
def list_snapshots(limit: int = 20) -> list[dict[str, Any]]:
    """List local snapshot manifests, newest first."""
    return _list_snapshots(_artifact_root(), limit=limit)


@mcp.tool()
def load_snapshot(snapshot_id: str | None = None) -> dict[str, Any]:
    """Load a full snapshot JSON by ID (or latest if omitted)."""
    return _load_snapshot(_artifact_root(), snapshot_id=snapshot_id)


# -- Workload --

@mcp.tool()
def technician_workload(snapshot_id: str | None = None) -> dict[str, Any]:
    """Queued hours and open order counts per technician, plus the unassigned backlog."""
    snapshot = _load_snapshot(_artifact_root(), snapshot_id=snapshot_id)
    report = build_workload_report(orders_from_snapshot(snapshot))
    names = {t.technician_id: t.display_name for t in roster_from_snapshot(snapshot)}
    result = report.to_dict()
    result["snapshot_id"] = snapshot["snapshot_id"]
    result["technicians"] = [
        {
            "technician_id": tech_id,
            "technician_name": names.get(tech_id) or None,
            "queued_hours": round(hours, 2),
            "queued_display": format_hours(hours),
            "open_orders": report.order_counts.get(tech_id, 0),
        }
        for tech_id, hours in sorted(report.queued_hours.items(), key=lambda kv: (-kv[1], kv[0]))
    ]
    return result


@mcp.tool()
def suggest_support_technician(
    primary_technician_id: str,
    incoming_hours: float,
    snapshot_id: str | None = None,
) -> dict[str, Any]:
    """Suggest a support technician when the primary technician's queue is too deep."""
    policy = _policy()
    snapshot = _load_snapshot(_artifact_root(), snapshot_id=snapshot_id)
    report = build_workload_report(orders_from_snapshot(snapshot))
    suggestion = suggest_support(
        primary_technician_id,
        incoming_hours,
        roster_from_snapshot(snapshot),
        report.queued_hours,
        threshold_hours=policy.support_threshold_hours,
    )
    return suggestion.to_dict()


# -- Delivery estimates --

@mcp.tool()
def estimate_delivery(
    items: list[dict[str, Any]],
    primary_technician_id: str,
    support_technician_ids: list[str] | None = None,
    support_reduction_percentages: list[float] | None = None,
    is_home_service: bool = False,
    snapshot_id: str | None = None,
    now: str | None = None,
    save: bool = True,
) -> dict[str, Any]:
    """Project the delivery date of a new order.

    ``items`` are line items with service_category_id, quantity,
    hours_per_unit and shared_time. The order is queued behind the primary
    technician's open work in the snapshot. When no date can be computed the
    result has status ``manual_date_required`` and the date must be entered
    by hand.
    """
    policy = _policy()
    artifact_root = _artifact_root()
    snapshot = _load_snapshot(artifact_root, snapshot_id=snapshot_id)
    overrides = load_schedule_overrides()
    moment = _local_now(policy, now)

    support_ids = [str(s) for s in support_technician_ids or []]
    if support_reduction_percentages is None:
        support_reduction_percentages = [policy.support_reduction_per_technician * 100] * len(support_ids)
    reduction = combined_support_reduction(
        support_reduction_percentages, cap=policy.max_support_reduction,
    )

    report = build_workload_report(orders_from_snapshot(snapshot))
    estimate: dict[str, Any] = {
        "estimate_id": f"est-{moment:%Y%m%d-%H%M%S}-{uuid4().hex[:8]}",
        "snapshot_id": snapshot["snapshot_id"],
        "generated_at": moment.isoformat(),
        "primary_technician_id": primary_technician_id,
        "support_technician_ids": support_ids,
        "is_home_service": is_home_service,
        "items": items,
    }

    try:
        projection = project_delivery(
            line_items(items),
            schedule_for(snapshot, primary_technician_id, overrides),
            schedule_for(snapshot, support_ids[0], overrides) if support_ids else None,
            now=moment,
            primary_queued_hours=report.queued_hours.get(primary_technician_id, 0.0),
            support_reduction_factor=reduction,
            travel_hours=policy.home_service_travel_hours if is_home_service else 0.0,
            max_horizon_days=policy.max_horizon_days,
        )
    except SchedulingError as exc:
        logger.warning("delivery estimate fell back to manual entry: %s", exc)
        estimate["status"] = "manual_date_required"
        estimate["error"] = {"type": type(exc).__name__, "message": str(exc)}
    else:
        estimate["status"] = "ok"
        estimate["delivery"] = projection.to_dict()
        estimate["support_suggestion"] = suggest_support(
            primary_technician_id,
            projection.estimate.total_hours,
            roster_from_snapshot(snapshot),
            report.queued_hours,
            threshold_hours=policy.support_threshold_hours,
        ).to_dict()

    if save:
        estimate["path"] = str(_save_estimate(artifact_root, estimate))
    return estimate


@mcp.tool()
def list_estimates(limit: int = 20) -> list[dict[str, Any]]:
    """List saved delivery estimate manifests, newest first."""
    return _list_estimates(_artifact_root(), limit=limit)


@mcp.tool()
def load_estimate(estimate_id: str | None = None) -> dict[str, Any]:
    """Load a saved delivery estimate by ID (or latest if omitted)."""
    return _load_estimate(_artifact_root(), estimate_id=estimate_id)


# -- Triage --

@mcp.tool()
def triage_orders(snapshot_id: str | None = None, now: str | None = None) -> dict[str, Any]:
    """Rank open orders by urgency with tier counts, overdue orders and workload spread."""
    snapshot = _load_snapshot(_artifact_root(), snapshot_id=snapshot_id)
    summary = build_triage(
        orders_from_snapshot(snapshot),
        _local_now(_policy(), now),
        roster=roster_from_snapshot(snapshot),
    )
    summary["snapshot_id"] = snapshot["snapshot_id"]
    return summary


@mcp.tool()
def export_workload_xlsx(snapshot_id: str | None = None, now: str | None = None) -> dict[str, Any]:
    """Write a Workload / Triage / Meta workbook for a snapshot. Returns the file path."""
    from service_scheduling.io import render_workload_xlsx

    artifact_root = _artifact_root()
    snapshot = _load_snapshot(artifact_root, snapshot_id=snapshot_id)
    orders = orders_from_snapshot(snapshot)
    path = render_workload_xlsx(
        build_workload_report(orders),
        orders,
        report_root(artifact_root) / f"workload-{snapshot['snapshot_id']}.xlsx",
        now=_local_now(_policy(), now),
        roster=roster_from_snapshot(snapshot),
    )
    return {"snapshot_id": snapshot["snapshot_id"], "path": str(path)}


# -- Server entrypoints --

async def _run_http() -> None:
    import uvicorn
    from starlette.middleware.base import BaseHTTPMiddleware
    from starlette.responses import JSONResponse, PlainTextResponse
    from starlette.routing import Route

    api_key = os.getenv("MCP_API_KEY")

    class BearerAuth(BaseHTTPMiddleware):
        async def dispatch(self, request, call_next):
            if request.url.path == "/health":
                return await call_next(request)
            auth = request.headers.get("authorization", "")
            if not auth.startswith("Bearer ") or auth[7:] != api_key:
                return JSONResponse({"error": "unauthorized"}, status_code=401)
            return await call_next(request)

    starlette_app = mcp.streamable_http_app()

    if api_key:
        starlette_app.add_middleware(BearerAuth)
    else:
        logger.warning("MCP_API_KEY is not set; HTTP transport is unauthenticated")

    starlette_app.routes.append(
        Route("/health", lambda r: PlainTextResponse("ok"))
    )

    config = uvicorn.Config(
        starlette_app,
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8080")),
        log_level="info",
    )
    await uvicorn.Server(config).serve()


def main() -> None:
    global _ENV_FILE

    parser = argparse.ArgumentParser(description="Run service-desk MCP server")
    parser.add_argument("--env-file", default=None, help="Path to .env file")
    parser.add_argument(
        "--transport",
        default=None,
        choices=["stdio", "sse", "streamable-http"],
        help="MCP transport (default: streamable-http when PORT is set, else stdio)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    args = parser.parse_args()
    _ENV_FILE = args.env_file

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    transport = args.transport
    if transport is None:
        transport = "streamable-http" if os.getenv("PORT") else "stdio"

    if transport == "streamable-http":
        import anyio
        anyio.run(_run_http)
    else:
        mcp.run(transport=transport)


if __name__ == "__main__":
    main()
