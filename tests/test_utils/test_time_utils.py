"""Tests for ISO date parsing and long-form formatting."""

from __future__ import annotations

from datetime import date, timezone

import pytest

from diversity_scorecard.utils.time_utils import format_long_date, parse_iso_date, utcnow


class TestParseIsoDate:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("2026-10-16", date(2026, 10, 16)),
            ("2026-10-16T23:59:59Z", date(2026, 10, 16)),
            ("2026-10-16T08:00:00.123+02:00", date(2026, 10, 16)),
            (" 2026-01-05 ", date(2026, 1, 5)),
        ],
    )
    def test_valid(self, text, expected):
        assert parse_iso_date(text) == expected

    @pytest.mark.parametrize("text", ["", "yesterday", "2026-13-01"])
    def test_invalid(self, text):
        assert parse_iso_date(text) is None


def test_format_long_date():
    assert format_long_date(date(2026, 10, 6)) == "October 6, 2026"


def test_utcnow_is_aware():
    assert utcnow().tzinfo == timezone.utc
