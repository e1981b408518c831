"""Tests for ecotrack/daykeys.py: local day keys and day arithmetic."""

from datetime import datetime, timedelta, timezone

import pytest

from ecotrack.daykeys import day_key, parse_day, previous_day, yesterday
from ecotrack.services.errors import ValidationError

TOKYO = timezone(timedelta(hours=9))
NEW_YORK = timezone(timedelta(hours=-5))


def test_day_key_zero_pads():
    assert day_key(datetime(2024, 1, 2, 8, 30)) == "2024-01-02"


def test_day_key_naive_is_local_wall_time():
    assert day_key(datetime(2024, 3, 5, 23, 59, 59)) == "2024-03-05"
    assert day_key(datetime(2024, 3, 6, 0, 0, 1)) == "2024-03-06"


def test_day_key_aware_instant_uses_configured_zone():
    instant = datetime(2024, 3, 1, 23, 30, tzinfo=timezone.utc)
    assert day_key(instant, TOKYO) == "2024-03-02"
    assert day_key(instant, NEW_YORK) == "2024-03-01"


def test_yesterday_rolls_over_month_and_leap_day():
    assert yesterday(datetime(2024, 3, 1, 0, 5)) == "2024-02-29"
    assert yesterday(datetime(2023, 3, 1, 0, 5)) == "2023-02-28"


def test_yesterday_rolls_over_year():
    assert yesterday(datetime(2025, 1, 1, 9, 0)) == "2024-12-31"


def test_yesterday_follows_zone_shift():
    instant = datetime(2024, 3, 31, 20, 0, tzinfo=timezone.utc)
    assert yesterday(instant, TOKYO) == "2024-03-31"


def test_previous_day():
    assert previous_day("2024-03-01") == "2024-02-29"
    assert previous_day("2024-12-10") == "2024-12-09"


@pytest.mark.parametrize("value", ["2024-3-1", "yesterday", "2024-02-30", "", None])
def test_parse_day_rejects_malformed(value):
    with pytest.raises(ValidationError):
        parse_day(value)
