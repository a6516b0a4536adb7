from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from service_scheduling.calendar import DEFAULT_MAX_HORIZON_DAYS, ScheduleConfig
from service_scheduling.delivery import MAX_SUPPORT_REDUCTION, SUPPORT_REDUCTION_PER_TECHNICIAN
from service_scheduling.scenario import DEFAULT_SUPPORT_THRESHOLD_HOURS, DEFAULT_TRAVEL_HOURS


@dataclass(frozen=True)
class SupabaseConfig:
    url: str
    api_key: str


@dataclass(frozen=True)
class RuntimeConfig:
    artifact_root: Path
    supabase_url: str | None
    supabase_key: str | None


@dataclass(frozen=True)
class SchedulingPolicy:
    support_threshold_hours: float = DEFAULT_SUPPORT_THRESHOLD_HOURS
    support_reduction_per_technician: float = SUPPORT_REDUCTION_PER_TECHNICIAN
    max_support_reduction: float = MAX_SUPPORT_REDUCTION
    max_horizon_days: int = DEFAULT_MAX_HORIZON_DAYS
    home_service_travel_hours: float = DEFAULT_TRAVEL_HOURS
    local_timezone: str = "America/Mexico_City"


def load_env(dotenv_path: str | Path | None = None) -> None:
    path = Path(dotenv_path) if dotenv_path else None
    if path and path.exists():
        load_dotenv(path)
        return
    load_dotenv()


def runtime_config() -> RuntimeConfig:
    artifact_root = Path(os.getenv("SERVICE_DESK_ARTIFACT_DIR", "./artifacts")).expanduser().resolve()
    artifact_root.mkdir(parents=True, exist_ok=True)
    return RuntimeConfig(
        artifact_root=artifact_root,
        supabase_url=os.getenv("SUPABASE_URL", "").strip().rstrip("/") or None,
        supabase_key=os.getenv("SUPABASE_KEY", "").strip() or None,
    )


def supabase_config() -> SupabaseConfig:
    cfg = runtime_config()
    if not cfg.supabase_url or not cfg.supabase_key:
        raise ValueError(
            "Missing Supabase credentials. Expected env vars SUPABASE_URL and SUPABASE_KEY."
        )
    return SupabaseConfig(url=cfg.supabase_url, api_key=cfg.supabase_key)


def _env_number(name: str, default: float, cast=float):
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError as exc:
        raise ValueError(f"Invalid value for {name}: {raw!r}") from exc


def scheduling_policy() -> SchedulingPolicy:
    defaults = SchedulingPolicy()
    return SchedulingPolicy(
        support_threshold_hours=_env_number(
            "SCHEDULING_SUPPORT_THRESHOLD_HOURS", defaults.support_threshold_hours,
        ),
        support_reduction_per_technician=_env_number(
            "SCHEDULING_SUPPORT_REDUCTION_PER_TECHNICIAN", defaults.support_reduction_per_technician,
        ),
        max_support_reduction=_env_number(
            "SCHEDULING_MAX_SUPPORT_REDUCTION", defaults.max_support_reduction,
        ),
        max_horizon_days=_env_number(
            "SCHEDULING_MAX_HORIZON_DAYS", defaults.max_horizon_days, cast=int,
        ),
        home_service_travel_hours=_env_number(
            "SCHEDULING_HOME_SERVICE_TRAVEL_HOURS", defaults.home_service_travel_hours,
        ),
        local_timezone=os.getenv("SCHEDULING_LOCAL_TIMEZONE", "").strip() or defaults.local_timezone,
    )


def load_schedule_overrides(schedule_file: Path | None = None) -> dict[str, ScheduleConfig]:
    """Per-technician calendars from ``config/schedules.json`` keyed by technician id."""
    if schedule_file is None:
        schedule_file = Path(__file__).resolve().parent.parent / "config" / "schedules.json"
    if not schedule_file.exists():
        return {}
    with schedule_file.open("r", encoding="utf-8") as fh:
        raw: dict[str, Any] = json.load(fh)
    return {str(tech_id): ScheduleConfig.from_dict(entry) for tech_id, entry in raw.items()}
