"""Swing-based BUY/SELL signal detection — pure functions, no I/O.

A swing low (BUY candidate) is a bar whose low is the lowest within
*look_around* bars on each side and is not undercut by its immediate
neighbours.  A swing high (SELL candidate) is the mirror image on
``high``, and must additionally print on a bearish candle.

Candidates are walked left to right and accepted only when they flip the
direction of the last accepted signal and sit at least *min_distance*
bars after it, which yields a strictly alternating, spaced-out list.
"""

from typing import Optional, Sequence

from kitechart.chart.models import Candle, Signal


DEFAULT_LOOK_AROUND = 3
DEFAULT_MIN_DISTANCE = 10


def _is_swing_low(candles: Sequence[Candle], i: int, look_around: int) -> bool:
    low = candles[i].low
    window = candles[i - look_around : i + look_around + 1]
    if low > min(c.low for c in window):
        return False
    return candles[i - 1].low >= low and candles[i + 1].low >= low


def _is_swing_high(candles: Sequence[Candle], i: int, look_around: int) -> bool:
    high = candles[i].high
    window = candles[i - look_around : i + look_around + 1]
    if high < max(c.high for c in window):
        return False
    return candles[i - 1].high <= high and candles[i + 1].high <= high


def detect_signals(
    candles: Sequence[Candle],
    look_around: int = DEFAULT_LOOK_AROUND,
    min_distance: int = DEFAULT_MIN_DISTANCE,
) -> list[Signal]:
    """Build the alternating BUY/SELL signal list for *candles*.

    Args:
        candles: Full candle series, oldest first.
        look_around: Bars on each side used to confirm an extremum.
        min_distance: Minimum index gap between consecutive signals.

    Returns:
        Signals in index order.  BUY prices are the bar's low, SELL prices
        the bar's high.  Empty when the series is too short to confirm any
        extremum.
    """
    look_around = max(1, look_around)
    if len(candles) < 2 * look_around + 1:
        return []

    signals: list[Signal] = []
    last: Optional[Signal] = None

    for i in range(look_around, len(candles) - look_around):
        if last is not None and i - last.index < min_distance:
            continue

        candle = candles[i]
        # BUY is checked first; first qualifying index wins, no backtracking
        if (last is None or last.type != "BUY") and _is_swing_low(candles, i, look_around):
            last = Signal(index=i, type="BUY", price=candle.low, timestamp=candle.timestamp)
            signals.append(last)
        elif (
            (last is None or last.type != "SELL")
            and candle.is_bearish
            and _is_swing_high(candles, i, look_around)
        ):
            last = Signal(index=i, type="SELL", price=candle.high, timestamp=candle.timestamp)
            signals.append(last)

    return signals
