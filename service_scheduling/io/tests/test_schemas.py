"""Tests for io.schemas helpers."""

from datetime import datetime, timezone

from service_scheduling.io.schemas import (
    local_zone,
    pipe_split,
    to_bool,
    to_datetime_or_none,
    to_float_or_none,
    to_int,
)


class TestPipeHelpers:
    def test_pipe_split_basic(self):
        assert pipe_split("0|1|2|3|4") == ["0", "1", "2", "3", "4"]

    def test_pipe_split_empty(self):
        assert pipe_split("") == []
        assert pipe_split(None) == []

    def test_pipe_split_strips_whitespace(self):
        assert pipe_split(" 5 | 6 ") == ["5", "6"]


class TestTypeCoercion:
    def test_to_float_or_none(self):
        assert to_float_or_none("1.75") == 1.75
        assert to_float_or_none("") is None
        assert to_float_or_none("n/a") is None

    def test_to_int(self):
        assert to_int("4") == 4
        assert to_int("4.9") == 4
        assert to_int("", default=1) == 1
        assert to_int("-2") == -2

    def test_to_bool(self):
        assert to_bool("TRUE") is True
        assert to_bool("yes") is True
        assert to_bool("1") is True
        assert to_bool("FALSE") is False
        assert to_bool(None) is False


class TestDatetimeCoercion:
    def test_naive_iso(self):
        assert to_datetime_or_none("2026-03-02T08:00:00") == datetime(2026, 3, 2, 8, 0)

    def test_zulu_suffix_converted_to_local_wall_clock(self):
        parsed = to_datetime_or_none("2026-03-02T14:00:00Z", local_zone("America/Mexico_City"))
        assert parsed == datetime(2026, 3, 2, 8, 0)
        assert parsed.tzinfo is None

    def test_offset_converted(self):
        parsed = to_datetime_or_none("2026-03-02T08:00:00-06:00", timezone.utc)
        assert parsed == datetime(2026, 3, 2, 14, 0)

    def test_aware_without_zone_is_naive(self):
        assert to_datetime_or_none("2026-03-02T08:00:00Z").tzinfo is None

    def test_empty_and_invalid(self):
        assert to_datetime_or_none("") is None
        assert to_datetime_or_none(None) is None
        assert to_datetime_or_none("next tuesday") is None


class TestLocalZone:
    def test_named_zone(self):
        assert str(local_zone("America/Mexico_City")) == "America/Mexico_City"

    def test_blank(self):
        assert local_zone(None) is None
        assert local_zone("  ") is None
