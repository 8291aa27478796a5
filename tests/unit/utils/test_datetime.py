"""Tests for RSS date helpers."""

from datetime import datetime, timedelta, timezone

import pytest

from podstash.utils.datetime import EPOCH, format_rfc822, now_utc, parse_rfc822


class TestParseRFC822:
    """Tests for parse_rfc822."""

    def test_gmt_date(self) -> None:
        assert parse_rfc822("Mon, 01 Jan 2024 10:00:00 GMT") == datetime(
            2024, 1, 1, 10, 0, tzinfo=timezone.utc
        )

    def test_offset_converted_to_utc(self) -> None:
        parsed = parse_rfc822("Mon, 01 Jan 2024 10:00:00 -0500")
        assert parsed == datetime(2024, 1, 1, 15, 0, tzinfo=timezone.utc)
        assert parsed.utcoffset() == timedelta(0)

    def test_unknown_zone_treated_as_utc(self) -> None:
        """Test "-0000" (no zone information) is read as UTC."""
        assert parse_rfc822("Mon, 01 Jan 2024 10:00:00 -0000") == datetime(
            2024, 1, 1, 10, 0, tzinfo=timezone.utc
        )

    @pytest.mark.parametrize("value", [None, "", "   ", "yesterday", "32/13/2024"])
    def test_invalid_is_epoch(self, value: str | None) -> None:
        """Test missing or malformed dates become the epoch."""
        assert parse_rfc822(value) == EPOCH

    def test_out_of_range_after_conversion_is_epoch(self) -> None:
        """Test a date that overflows when converted to UTC becomes the epoch."""
        assert parse_rfc822("Fri, 31 Dec 9999 23:00:00 -0500") == EPOCH


class TestFormatRFC822:
    """Tests for format_rfc822."""

    def test_format_gmt(self) -> None:
        value = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)
        assert format_rfc822(value) == "Mon, 01 Jan 2024 10:00:00 GMT"

    def test_format_converts_offset(self) -> None:
        value = datetime(2024, 1, 1, 10, 0, tzinfo=timezone(timedelta(hours=2)))
        assert format_rfc822(value) == "Mon, 01 Jan 2024 08:00:00 GMT"

    def test_naive_is_utc(self) -> None:
        assert format_rfc822(datetime(1970, 1, 1)) == "Thu, 01 Jan 1970 00:00:00 GMT"


def test_now_utc_is_aware() -> None:
    assert now_utc().tzinfo is not None
    assert now_utc() > EPOCH
