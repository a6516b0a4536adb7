"""Tests for environment-driven configuration."""

from __future__ import annotations

import json
from datetime import time

import pytest

from service_desk.config import (
    SchedulingPolicy,
    load_schedule_overrides,
    runtime_config,
    scheduling_policy,
    supabase_config,
)

POLICY_VARS = (
    "SCHEDULING_SUPPORT_THRESHOLD_HOURS",
    "SCHEDULING_SUPPORT_REDUCTION_PER_TECHNICIAN",
    "SCHEDULING_MAX_SUPPORT_REDUCTION",
    "SCHEDULING_MAX_HORIZON_DAYS",
    "SCHEDULING_HOME_SERVICE_TRAVEL_HOURS",
    "SCHEDULING_LOCAL_TIMEZONE",
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in ("SUPABASE_URL", "SUPABASE_KEY", *POLICY_VARS):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SERVICE_DESK_ARTIFACT_DIR", str(tmp_path / "artifacts"))
    return monkeypatch


class TestRuntimeConfig:
    def test_artifact_dir_created(self, clean_env, tmp_path):
        cfg = runtime_config()
        assert cfg.artifact_root == (tmp_path / "artifacts").resolve()
        assert cfg.artifact_root.is_dir()
        assert cfg.supabase_url is None
        assert cfg.supabase_key is None

    def test_supabase_credentials_required_only_for_sync(self, clean_env):
        runtime_config()
        with pytest.raises(ValueError, match="SUPABASE_URL"):
            supabase_config()

    def test_supabase_url_trailing_slash_stripped(self, clean_env):
        clean_env.setenv("SUPABASE_URL", "https://example.supabase.co/")
        clean_env.setenv("SUPABASE_KEY", "anon-key")
        cfg = supabase_config()
        assert cfg.url == "https://example.supabase.co"
        assert cfg.api_key == "anon-key"


class TestSchedulingPolicy:
    def test_defaults(self, clean_env):
        policy = scheduling_policy()
        assert policy == SchedulingPolicy()
        assert policy.support_threshold_hours == 16.0
        assert 0.99 < policy.max_support_reduction < 1.0
        assert policy.max_horizon_days == 366
        assert policy.home_service_travel_hours == 1.0
        assert policy.local_timezone == "America/Mexico_City"

    def test_overrides(self, clean_env):
        clean_env.setenv("SCHEDULING_SUPPORT_THRESHOLD_HOURS", "24")
        clean_env.setenv("SCHEDULING_MAX_HORIZON_DAYS", "30")
        clean_env.setenv("SCHEDULING_LOCAL_TIMEZONE", "UTC")
        policy = scheduling_policy()
        assert policy.support_threshold_hours == 24.0
        assert policy.max_horizon_days == 30
        assert policy.local_timezone == "UTC"

    def test_empty_value_falls_back(self, clean_env):
        clean_env.setenv("SCHEDULING_HOME_SERVICE_TRAVEL_HOURS", "  ")
        assert scheduling_policy().home_service_travel_hours == 1.0

    def test_malformed_value_names_variable(self, clean_env):
        clean_env.setenv("SCHEDULING_MAX_HORIZON_DAYS", "a year")
        with pytest.raises(ValueError, match="SCHEDULING_MAX_HORIZON_DAYS"):
            scheduling_policy()


class TestScheduleOverrides:
    def test_missing_file(self, tmp_path):
        assert load_schedule_overrides(tmp_path / "schedules.json") == {}

    def test_reads_per_technician_calendars(self, tmp_path):
        path = tmp_path / "schedules.json"
        path.write_text(json.dumps({
            "T-100": {"work_days": [0, 1, 2, 3, 4, 5], "start_time": "09:00", "end_time": "18:00",
                      "break_minutes": 30},
        }), encoding="utf-8")
        overrides = load_schedule_overrides(path)
        assert set(overrides) == {"T-100"}
        config = overrides["T-100"]
        assert config.work_days == frozenset({0, 1, 2, 3, 4, 5})
        assert config.start_time == time(9, 0)
        assert config.break_minutes == 30
