"""Unit tests for statement date normalization."""

from datetime import datetime, timedelta, timezone

import pytest

from passbook.domain.banking.services import month_end, parse_statement_date


class TestParseStatementDate:
    """Tests for parse_statement_date."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("2025-09-18", datetime(2025, 9, 18, tzinfo=timezone.utc)),
            ("2025/09/18", datetime(2025, 9, 18, tzinfo=timezone.utc)),
            ("2025/9/8", datetime(2025, 9, 8, tzinfo=timezone.utc)),
            ("2025-08-01 00:00:00Z", datetime(2025, 8, 1, tzinfo=timezone.utc)),
            ("2025-09-18T00:00:00.000+0000", datetime(2025, 9, 18, tzinfo=timezone.utc)),
            ("2025-09-18T00:00:00Z", datetime(2025, 9, 18, tzinfo=timezone.utc)),
            ("Sep 18, 2025", datetime(2025, 9, 18, tzinfo=timezone.utc)),
            ("Sept 18, 2025", datetime(2025, 9, 18, tzinfo=timezone.utc)),
            ("September 18, 2025", datetime(2025, 9, 18, tzinfo=timezone.utc)),
        ],
    )
    def test_accepted_shapes(self, raw, expected):
        """Every bank date shape normalizes to the same instant."""
        assert parse_statement_date(raw) == expected

    def test_offset_is_preserved(self):
        """Explicit offsets are kept rather than discarded."""
        parsed = parse_statement_date("2025-09-18T10:00:00-0500")

        assert parsed is not None
        assert parsed.utcoffset() == timedelta(hours=-5)

    def test_result_is_always_zone_aware(self):
        parsed = parse_statement_date("2025-09-18T10:00:00")

        assert parsed is not None
        assert parsed.tzinfo is not None

    @pytest.mark.parametrize("raw", [None, "", "   ", "not a date", "2025-13-45"])
    def test_unparseable_returns_none(self, raw):
        """Callers drop records whose date cannot be read."""
        assert parse_statement_date(raw) is None


class TestMonthEnd:
    """Tests for month_end."""

    def test_regular_month(self):
        assert month_end(2025, 9) == datetime(2025, 9, 30, tzinfo=timezone.utc)

    def test_leap_february(self):
        assert month_end(2024, 2) == datetime(2024, 2, 29, tzinfo=timezone.utc)

    def test_december(self):
        assert month_end(2024, 12) == datetime(2024, 12, 31, tzinfo=timezone.utc)
