"""Tests for swing-based BUY/SELL signal detection."""

import math
import random
from datetime import datetime, timedelta, timezone

import pytest

from kitechart.chart.models import Candle
from kitechart.chart.signals import detect_signals


_T0 = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _make_candle(i: int, mid: float, bearish: bool = True) -> Candle:
    o, c = (mid + 0.2, mid - 0.2) if bearish else (mid - 0.2, mid + 0.2)
    return Candle(
        timestamp=_T0 + timedelta(hours=i),
        open=o, high=mid + 1, low=mid - 1, close=c, volume=500,
    )


def _sine_candles(n: int = 96, bearish: bool = True) -> list[Candle]:
    """Sine wave with a 24-bar period: peaks at 6, 30, 54, 78; troughs at 18, 42, 66, 90."""
    return [
        _make_candle(i, 100 + 10 * math.sin(2 * math.pi * i / 24), bearish)
        for i in range(n)
    ]


def _random_walk(n: int = 400, seed: int = 7) -> list[Candle]:
    rng = random.Random(seed)
    candles = []
    price = 100.0
    for i in range(n):
        o = price
        c = price + rng.uniform(-2, 2)
        h = max(o, c) + rng.uniform(0, 1)
        l = min(o, c) - rng.uniform(0, 1)
        candles.append(Candle(_T0 + timedelta(minutes=i), o, h, l, c, 100))
        price = c
    return candles


class TestDetectSignals:
    def test_alternating_swings_on_wave(self):
        signals = detect_signals(_sine_candles(), look_around=3, min_distance=10)
        assert [(s.index, s.type) for s in signals] == [
            (6, "SELL"), (18, "BUY"), (30, "SELL"), (42, "BUY"),
            (54, "SELL"), (66, "BUY"), (78, "SELL"), (90, "BUY"),
        ]

    def test_prices_and_timestamps(self):
        candles = _sine_candles()
        signals = detect_signals(candles)
        for s in signals:
            candle = candles[s.index]
            assert s.timestamp == candle.timestamp
            if s.type == "BUY":
                assert s.price == candle.low
            else:
                assert s.price == candle.high

    def test_min_distance_skips_close_swings(self):
        signals = detect_signals(_sine_candles(), look_around=3, min_distance=13)
        assert [(s.index, s.type) for s in signals] == [
            (6, "SELL"), (42, "BUY"), (78, "SELL"),
        ]

    def test_sell_requires_bearish_candle(self):
        signals = detect_signals(_sine_candles(bearish=False))
        # Without a bearish swing high the list never flips back to SELL
        assert [(s.index, s.type) for s in signals] == [(18, "BUY")]

    def test_tiny_series_returns_empty(self):
        assert detect_signals(_sine_candles(6), look_around=3) == []
        assert detect_signals([]) == []

    @pytest.mark.parametrize("look_around,min_distance", [(3, 10), (2, 5), (5, 1)])
    def test_alternation_and_spacing_invariants(self, look_around, min_distance):
        signals = detect_signals(_random_walk(), look_around, min_distance)
        assert signals, "random walk should produce at least one swing"
        for prev, nxt in zip(signals, signals[1:]):
            assert prev.type != nxt.type
            assert nxt.index - prev.index >= min_distance

    def test_idempotent(self):
        candles = _random_walk()
        assert detect_signals(candles) == detect_signals(candles)

    def test_tolerates_malformed_candles(self):
        candles = _sine_candles(40)
        # high below low: garbage in, garbage out, but no exception
        candles[10] = Candle(candles[10].timestamp, 100, 90, 110, 95, 0)
        detect_signals(candles)
