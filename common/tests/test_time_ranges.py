import datetime

from django.core.exceptions import ValidationError

import pytest

from common.time_ranges import (
    iter_dates,
    overlaps,
    parse_time_of_day,
    to_day_of_week,
    validate_time_of_day,
)


def _dt(hour: int, minute: int = 0) -> datetime.datetime:
    return datetime.datetime(2025, 3, 3, hour, minute, tzinfo=datetime.UTC)


class TestOverlaps:
    @pytest.mark.parametrize(
        "first, second, expected",
        [
            ((_dt(9), _dt(10)), (_dt(9, 30), _dt(11)), True),
            ((_dt(9), _dt(12)), (_dt(10), _dt(11)), True),
            ((_dt(9), _dt(10)), (_dt(10), _dt(11)), False),
            ((_dt(9), _dt(10)), (_dt(11), _dt(12)), False),
        ],
    )
    def test_overlap_is_symmetric(self, first, second, expected):
        assert overlaps(*first, *second) is expected
        assert overlaps(*second, *first) is expected


class TestTimeOfDay:
    @pytest.mark.parametrize("value", ["00:00", "08:30", "23:59"])
    def test_valid_values(self, value):
        validate_time_of_day(value)

    @pytest.mark.parametrize("value", ["8:30", "24:00", "12:60", "noon", "", None])
    def test_invalid_values(self, value):
        with pytest.raises(ValidationError):
            validate_time_of_day(value)

    def test_parse(self):
        assert parse_time_of_day("07:45") == datetime.time(7, 45)


def test_to_day_of_week_starts_on_sunday():
    assert to_day_of_week(datetime.date(2025, 3, 2)) == 0  # Sunday
    assert to_day_of_week(datetime.date(2025, 3, 3)) == 1  # Monday
    assert to_day_of_week(datetime.date(2025, 3, 8)) == 6  # Saturday


def test_iter_dates_includes_both_ends():
    dates = list(iter_dates(datetime.date(2025, 3, 1), datetime.date(2025, 3, 3)))

    assert dates == [
        datetime.date(2025, 3, 1),
        datetime.date(2025, 3, 2),
        datetime.date(2025, 3, 3),
    ]
