from datetime import datetime

import pytest

from stock_engine.periods import (
    Granularity,
    iso_week,
    period_key,
    period_start,
    snap,
    sort_keys,
)


class TestPeriodKeys:
    def test_keys_per_granularity(self):
        moment = datetime(2024, 3, 7, 15, 45)
        assert period_key(moment, "day") == "2024-03-07"
        assert period_key(moment, "week") == "2024-W10"
        assert period_key(moment, "month") == "2024-03"
        assert period_key(moment, "year") == "2024"

    def test_iso_week_across_year_boundary(self):
        assert iso_week(datetime(2024, 12, 30)) == (2025, 1)
        assert iso_week(datetime(2021, 1, 3)) == (2020, 53)
        assert period_key(datetime(2021, 1, 3), Granularity.WEEK) == "2020-W53"

    def test_default_and_invalid_granularity(self):
        assert Granularity.coerce(None) is Granularity.MONTH
        with pytest.raises(ValueError):
            Granularity.coerce("quarter")


class TestPeriodStart:
    @pytest.mark.parametrize("granularity", ["day", "week", "month", "year"])
    @pytest.mark.parametrize(
        "moment",
        [
            datetime(2024, 1, 1),
            datetime(2024, 12, 31, 23, 59),
            datetime(2021, 1, 3, 12),
            datetime(2024, 2, 29, 8),
        ],
    )
    def test_start_never_after_moment(self, moment, granularity):
        key = period_key(moment, granularity)
        start = period_start(key, granularity)
        assert start <= moment
        assert period_key(start, granularity) == key

    def test_week_start_is_monday(self):
        assert period_start("2025-W01", "week") == datetime(2024, 12, 30)
        assert period_start("2020-W53", "week") == datetime(2020, 12, 28)

    def test_ordering_goes_through_start(self):
        keys = ["2025-W01", "2024-W52", "2024-W01"]
        assert sort_keys(keys, "week") == ["2024-W01", "2024-W52", "2025-W01"]

    def test_snap_to_bucket_start(self):
        assert snap(datetime(2024, 2, 29, 8), "month") == datetime(2024, 2, 1)
        assert snap(datetime(2024, 3, 7), "week") == datetime(2024, 3, 4)
