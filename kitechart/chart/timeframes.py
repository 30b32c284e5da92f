"""Kite chart intervals — bar durations, history windows, refresh cadence.

Also hosts the "next candle forms in ..." countdown, a pure function of
the last candle's timestamp, the timeframe and the current time.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional


@dataclass(frozen=True)
class Timeframe:
    """One selectable chart interval."""

    value: str  # Kite interval key, e.g. "5minute"
    label: str
    bar_duration: timedelta
    default_days: int
    max_days: int
    refresh_seconds: int  # live polling cadence


_MIN = timedelta(minutes=1)
_DAY = timedelta(days=1)

TIMEFRAMES: dict[str, Timeframe] = {
    tf.value: tf
    for tf in (
        Timeframe("minute", "1m", _MIN, 1, 3, 3),
        Timeframe("3minute", "3m", 3 * _MIN, 2, 5, 5),
        Timeframe("5minute", "5m", 5 * _MIN, 3, 7, 8),
        Timeframe("10minute", "10m", 10 * _MIN, 5, 10, 10),
        Timeframe("15minute", "15m", 15 * _MIN, 7, 15, 15),
        Timeframe("30minute", "30m", 30 * _MIN, 10, 30, 20),
        Timeframe("45minute", "45m", 45 * _MIN, 15, 45, 25),
        Timeframe("60minute", "1h", 60 * _MIN, 20, 60, 30),
        Timeframe("240minute", "4h", 240 * _MIN, 60, 180, 60),
        Timeframe("day", "1D", _DAY, 100, 365, 45),
        Timeframe("week", "1W", 7 * _DAY, 365, 1825, 120),
        # Months are approximated as 30 days for the countdown.
        Timeframe("month", "1M", 30 * _DAY, 730, 3650, 180),
    )
}

# Countdown is shown in hours/minutes from 4h upwards.
_HOURLY_COUNTDOWN = {"240minute", "day", "week", "month"}


def get_timeframe(value: str) -> Timeframe:
    """Look up a timeframe by its Kite interval key.

    Raises ``KeyError`` if the interval is not supported.
    """
    if value not in TIMEFRAMES:
        raise KeyError(
            f"Unknown timeframe '{value}'. "
            f"Available: {', '.join(TIMEFRAMES.keys())}"
        )
    return TIMEFRAMES[value]


def seconds_until_next_candle(
    last_candle_time: datetime,
    timeframe: str,
    now: datetime,
) -> float:
    """Seconds until the bar starting at *last_candle_time* closes.

    Negative once the bar's bucket has elapsed.
    """
    tf = get_timeframe(timeframe)
    candle_end = last_candle_time + tf.bar_duration
    return (candle_end - now).total_seconds()


def format_countdown(
    last_candle_time: Optional[datetime],
    timeframe: str,
    now: datetime,
) -> str:
    """Render the countdown label shown next to the live candle."""
    if last_candle_time is None:
        return "--:--"

    remaining = seconds_until_next_candle(last_candle_time, timeframe, now)
    if remaining <= 0:
        return "Updating..."

    remaining_ms = int(remaining * 1000)
    if timeframe in _HOURLY_COUNTDOWN:
        hours = remaining_ms // 3_600_000
        minutes = (remaining_ms % 3_600_000) // 60_000
        return f"{hours}h {minutes}m"

    minutes = remaining_ms // 60_000
    seconds = (remaining_ms % 60_000) // 1000
    return f"{minutes}:{seconds:02d}"


def next_history_days(current_days: int, timeframe: str) -> Optional[int]:
    """Grow the backfill window by half, capped at the timeframe maximum.

    Returns ``None`` when the window is already at its maximum, i.e. there
    is no older data left to request.
    """
    tf = get_timeframe(timeframe)
    new_days = min(current_days + current_days // 2, tf.max_days)
    if new_days == current_days:
        return None
    return new_days
