"""Price channel — upper/lower trendlines through recent local pivots."""

from typing import Optional, Sequence

from kitechart.chart.models import Candle, PriceChannel


def calculate_price_channel(
    candles: Sequence[Candle],
    start_index: int = 0,
) -> Optional[PriceChannel]:
    """Fit a channel through the latest local highs and lows of *candles*.

    *candles* is usually the visible window and *start_index* its offset in
    the full series, so the returned lines are expressed in global indices
    and can be extended past the window.

    Returns ``None`` for fewer than 10 candles or when fewer than two
    distinct pivots exist on either side.
    """
    n = len(candles)
    if n < 10:
        return None

    half = min(5, n // 10)
    highs: list[tuple[int, float]] = []
    lows: list[tuple[int, float]] = []

    for i, candle in enumerate(candles):
        window = candles[max(0, i - half) : min(n - 1, i + half) + 1]
        if candle.high == max(c.high for c in window):
            highs.append((start_index + i, candle.high))
        if candle.low == min(c.low for c in window):
            lows.append((start_index + i, candle.low))

    num_points = min(5, max(3, n // 20))
    highs = highs[-num_points:]
    lows = lows[-num_points:]
    if len(highs) < 2 or len(lows) < 2:
        return None

    upper = _line_through(highs[0], highs[-1])
    lower = _line_through(lows[0], lows[-1])
    if upper is None or lower is None:
        return None

    return PriceChannel(
        upper_slope=upper[0],
        upper_intercept=upper[1],
        lower_slope=lower[0],
        lower_intercept=lower[1],
        highs=highs,
        lows=lows,
        start_index=start_index,
        end_index=start_index + n - 1,
    )


def _line_through(
    first: tuple[int, float],
    last: tuple[int, float],
) -> Optional[tuple[float, float]]:
    """Slope and intercept of the line through two ``(index, price)`` points."""
    (x0, y0), (x1, y1) = first, last
    if x1 == x0:
        return None
    slope = (y1 - y0) / (x1 - x0)
    return slope, y0 - slope * x0
