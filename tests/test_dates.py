from __future__ import annotations

from datetime import UTC, date, datetime

import pytest

from courtside.core.dates import current_china_date, format_date_for_api, parse_date_token


def test_china_midnight_maps_to_previous_eastern_day_in_winter() -> None:
    # 2026-01-15T00:00+08:00 == 2026-01-14T11:00-05:00 (EST)
    assert format_date_for_api(date(2026, 1, 15)) == "20260114"


def test_china_midnight_maps_to_previous_eastern_day_in_summer() -> None:
    # 2026-07-01T00:00+08:00 == 2026-06-30T12:00-04:00 (EDT)
    assert format_date_for_api(date(2026, 7, 1)) == "20260630"


def test_year_boundary() -> None:
    assert format_date_for_api(date(2026, 1, 1)) == "20251231"


def test_datetime_input_uses_its_calendar_date() -> None:
    assert format_date_for_api(datetime(2026, 1, 15, 23, 59)) == "20260114"


def test_current_china_date_rolls_over_before_utc() -> None:
    assert current_china_date(datetime(2026, 1, 14, 17, 0, tzinfo=UTC)) == date(2026, 1, 15)
    assert current_china_date(datetime(2026, 1, 14, 15, 59, tzinfo=UTC)) == date(2026, 1, 14)


def test_parse_date_token_accepts_iso_and_compact() -> None:
    assert parse_date_token("2026-01-15") == date(2026, 1, 15)
    assert parse_date_token("20260115") == date(2026, 1, 15)
    with pytest.raises(ValueError):
        parse_date_token("15/01/2026")
