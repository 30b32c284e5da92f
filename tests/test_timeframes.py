"""Tests for timeframe lookup, countdown and backfill growth."""

from datetime import datetime, timedelta, timezone

import pytest

from kitechart.chart.timeframes import (
    TIMEFRAMES,
    format_countdown,
    get_timeframe,
    next_history_days,
    seconds_until_next_candle,
)


_T0 = datetime(2025, 3, 3, 10, 0, tzinfo=timezone.utc)


class TestLookup:
    def test_known_intervals(self):
        assert list(TIMEFRAMES) == [
            "minute", "3minute", "5minute", "10minute", "15minute", "30minute",
            "45minute", "60minute", "240minute", "day", "week", "month",
        ]

    def test_day_defaults(self):
        tf = get_timeframe("day")
        assert tf.default_days == 100
        assert tf.max_days == 365
        assert tf.bar_duration == timedelta(days=1)

    def test_unknown_raises(self):
        with pytest.raises(KeyError, match="Unknown timeframe"):
            get_timeframe("2minute")

    def test_default_never_exceeds_max(self):
        for tf in TIMEFRAMES.values():
            assert 0 < tf.default_days <= tf.max_days
            assert tf.refresh_seconds > 0


class TestCountdown:
    def test_seconds_until_next_candle(self):
        now = _T0 + timedelta(minutes=2)
        assert seconds_until_next_candle(_T0, "5minute", now) == 180

    def test_minute_format(self):
        now = _T0 + timedelta(seconds=15)
        assert format_countdown(_T0, "minute", now) == "0:45"

    def test_intraday_format_pads_seconds(self):
        now = _T0 + timedelta(minutes=10, seconds=55)
        assert format_countdown(_T0, "15minute", now) == "4:05"

    def test_hourly_format(self):
        start = datetime(2025, 3, 3, tzinfo=timezone.utc)
        now = start + timedelta(hours=5, minutes=30)
        assert format_countdown(start, "day", now) == "18h 30m"

    def test_elapsed_bucket(self):
        now = _T0 + timedelta(minutes=6)
        assert format_countdown(_T0, "5minute", now) == "Updating..."

    def test_no_candle(self):
        assert format_countdown(None, "day", _T0) == "--:--"


class TestHistoryGrowth:
    def test_grows_by_half(self):
        assert next_history_days(100, "day") == 150

    def test_capped_at_max(self):
        assert next_history_days(300, "day") == 365

    def test_at_max_returns_none(self):
        assert next_history_days(365, "day") is None

    def test_single_day_cannot_grow(self):
        # 1 + 1 // 2 == 1
        assert next_history_days(1, "minute") is None
        assert next_history_days(2, "minute") == 3
