"""Technical indicators — SMA, EMA, Bollinger Bands, RSI, MACD. Pure functions, no I/O.

Every function returns series the same length as its input.  Positions
without enough warm-up history are ``None``; a series shorter than the
required period yields an all-``None`` result rather than an error.

Indicators must be computed over the **full** candle series and only then
sliced to the visible window (see :func:`slice_indicators`).  Computing
over a sub-window truncates warm-up and makes lines jump while panning.
"""

import math
from dataclasses import dataclass, field
from typing import Optional, Sequence, Union

from kitechart.chart.models import Candle, IndicatorSeries


def _undefined(n: int) -> IndicatorSeries:
    return [None] * n


def _sub(a: IndicatorSeries, b: IndicatorSeries) -> IndicatorSeries:
    """Element-wise ``a - b``; any ``None`` operand gives ``None``."""
    return [
        x - y if x is not None and y is not None else None
        for x, y in zip(a, b)
    ]


# ── Moving averages ──────────────────────────────────────────────────────


def calculate_sma(candles: Sequence[Candle], period: int) -> IndicatorSeries:
    """Simple moving average of ``close`` over a trailing *period* window.

    The first ``period - 1`` entries are ``None``.
    """
    closes = [c.close for c in candles]
    sma = _undefined(len(closes))
    if period <= 0:
        return sma

    for i in range(period - 1, len(closes)):
        window = closes[i - period + 1 : i + 1]
        sma[i] = sum(window) / period
    return sma


def calculate_ema(candles: Sequence[Candle], period: int) -> IndicatorSeries:
    """Exponential moving average of ``close``.

    Seeded with the SMA of the first *period* closes at index
    ``period - 1``, then::

        ema[i] = (close[i] - ema[i-1]) * k + ema[i-1],   k = 2 / (period + 1)
    """
    closes = [c.close for c in candles]
    return _ema_of_values(closes, period)


def _ema_of_values(values: list[float], period: int) -> IndicatorSeries:
    ema = _undefined(len(values))
    if period <= 0 or len(values) < period:
        return ema

    k = 2.0 / (period + 1)
    prev = sum(values[:period]) / period
    ema[period - 1] = prev

    for i in range(period, len(values)):
        prev = (values[i] - prev) * k + prev
        ema[i] = prev
    return ema


# ── Bollinger Bands ──────────────────────────────────────────────────────


def calculate_bollinger(
    candles: Sequence[Candle],
    period: int = 20,
    std_dev: float = 2.0,
) -> tuple[IndicatorSeries, IndicatorSeries, IndicatorSeries]:
    """Calculate Bollinger Bands.

    Middle = SMA(close, *period*)
    Upper  = middle + *std_dev* × σ
    Lower  = middle − *std_dev* × σ

    σ is the population standard deviation over the SMA window.

    Returns ``(upper, middle, lower)``.
    """
    closes = [c.close for c in candles]
    middle = calculate_sma(candles, period)
    upper = _undefined(len(closes))
    lower = _undefined(len(closes))

    for i, mean in enumerate(middle):
        if mean is None:
            continue
        window = closes[i - period + 1 : i + 1]
        variance = sum((x - mean) ** 2 for x in window) / period
        sigma = math.sqrt(variance)
        upper[i] = mean + std_dev * sigma
        lower[i] = mean - std_dev * sigma

    return upper, middle, lower


# ── RSI ──────────────────────────────────────────────────────────────────


def calculate_rsi(candles: Sequence[Candle], period: int = 14) -> IndicatorSeries:
    """Relative Strength Index using simple (non-exponential) averaging.

    For each index ``i >= period`` the *period* bar-to-bar deltas ending at
    ``i`` are split into gains and losses; both sums are divided by
    *period*.  RSI is 100 when the average loss is exactly zero.

    The first *period* entries are ``None``.
    """
    closes = [c.close for c in candles]
    rsi = _undefined(len(closes))
    if period <= 0:
        return rsi

    # deltas[k] is the move from close[k] to close[k+1]
    deltas = [closes[i] - closes[i - 1] for i in range(1, len(closes))]

    for i in range(period, len(closes)):
        recent = deltas[i - period : i]
        avg_gain = sum(d for d in recent if d > 0) / period
        avg_loss = sum(-d for d in recent if d < 0) / period
        if avg_loss == 0:
            rsi[i] = 100.0
        else:
            rs = avg_gain / avg_loss
            rsi[i] = 100.0 - 100.0 / (1.0 + rs)

    return rsi


# ── MACD ─────────────────────────────────────────────────────────────────


def calculate_macd(
    candles: Sequence[Candle],
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> tuple[IndicatorSeries, IndicatorSeries, IndicatorSeries]:
    """Moving Average Convergence/Divergence.

    ``macd = EMA(fast) - EMA(slow)``.  The signal line is seeded with the
    mean of the first run of *signal_period* consecutive defined MACD
    values and EMA-smoothed from there.  ``histogram = macd - signal``.

    Returns ``(macd_line, signal_line, histogram)``.
    """
    macd_line = _sub(
        calculate_ema(candles, fast_period),
        calculate_ema(candles, slow_period),
    )
    signal_line = _undefined(len(macd_line))

    if signal_period > 0:
        k = 2.0 / (signal_period + 1)
        prev: Optional[float] = None
        run = 0
        for i, value in enumerate(macd_line):
            if value is None:
                run = 0
                continue
            if prev is None:
                run += 1
                if run >= signal_period:
                    seed = macd_line[i - signal_period + 1 : i + 1]
                    prev = sum(seed) / signal_period
                    signal_line[i] = prev
            else:
                prev = (value - prev) * k + prev
                signal_line[i] = prev

    histogram = _sub(macd_line, signal_line)
    return macd_line, signal_line, histogram


# ── Indicator sets ───────────────────────────────────────────────────────

IndicatorValue = Union[IndicatorSeries, tuple[IndicatorSeries, ...]]


@dataclass(frozen=True)
class IndicatorConfig:
    """Which overlays/panels are enabled and with what parameters.

    Defaults mirror the dashboard: SMA(20), EMA(20), RSI(14) and MACD on.
    """

    enabled: frozenset[str] = field(
        default_factory=lambda: frozenset({"sma20", "ema20", "rsi", "macd"})
    )
    sma_fast: int = 20
    sma_slow: int = 50
    ema_period: int = 20
    bb_period: int = 20
    bb_std_dev: float = 2.0
    rsi_period: int = 14
    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9


INDICATOR_NAMES = ("sma20", "sma50", "ema20", "bb", "rsi", "macd")


def compute_indicators(
    candles: Sequence[Candle],
    config: Optional[IndicatorConfig] = None,
) -> dict[str, IndicatorValue]:
    """Compute every enabled indicator over the full *candles* series.

    Returns a dict keyed by indicator name.  ``"bb"`` maps to
    ``(upper, middle, lower)`` and ``"macd"`` to
    ``(macd_line, signal_line, histogram)``.
    """
    config = config or IndicatorConfig()
    out: dict[str, IndicatorValue] = {}

    if "sma20" in config.enabled:
        out["sma20"] = calculate_sma(candles, config.sma_fast)
    if "sma50" in config.enabled:
        out["sma50"] = calculate_sma(candles, config.sma_slow)
    if "ema20" in config.enabled:
        out["ema20"] = calculate_ema(candles, config.ema_period)
    if "bb" in config.enabled:
        out["bb"] = calculate_bollinger(candles, config.bb_period, config.bb_std_dev)
    if "rsi" in config.enabled:
        out["rsi"] = calculate_rsi(candles, config.rsi_period)
    if "macd" in config.enabled:
        out["macd"] = calculate_macd(
            candles, config.macd_fast, config.macd_slow, config.macd_signal,
        )
    return out


def slice_indicators(
    indicators: dict[str, IndicatorValue],
    start: int,
    end: int,
) -> dict[str, IndicatorValue]:
    """Cut full-series indicators down to the visible ``[start, end)`` window."""
    sliced: dict[str, IndicatorValue] = {}
    for name, value in indicators.items():
        if isinstance(value, tuple):
            sliced[name] = tuple(series[start:end] for series in value)
        else:
            sliced[name] = value[start:end]
    return sliced
