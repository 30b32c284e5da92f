"""Chart session — one instrument/timeframe view and its cached analysis.

The session owns a :class:`CandleStore` and recomputes indicators,
signals, patterns and the price channel at most once per store mutation.
Everything is computed over the full series; visible-window views are
cut from that result afterwards.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from kitechart.chart.channel import calculate_price_channel
from kitechart.chart.indicators import (
    IndicatorConfig,
    IndicatorValue,
    compute_indicators,
    slice_indicators,
)
from kitechart.chart.models import Pattern, PriceChannel, Signal
from kitechart.chart.patterns import PatternConfig, detect_patterns
from kitechart.chart.signals import DEFAULT_LOOK_AROUND, DEFAULT_MIN_DISTANCE, detect_signals
from kitechart.chart.store import CandleStore
from kitechart.chart.timeframes import get_timeframe

logger = logging.getLogger("kitechart.session")


@dataclass(frozen=True)
class ChartSnapshot:
    """Analysis results for one version of the candle store."""

    version: int
    start: int
    end: int
    indicators: dict[str, IndicatorValue]
    signals: list[Signal]
    patterns: list[Pattern]
    channel: Optional[PriceChannel] = None


@dataclass
class ChartSession:
    """A single chart view: instrument, timeframe, store and settings.

    Args:
        instrument: Display symbol or instrument token.
        timeframe: Kite interval key, e.g. ``"5minute"``.
    """

    instrument: str
    timeframe: str
    indicator_config: IndicatorConfig = field(default_factory=IndicatorConfig)
    pattern_config: PatternConfig = field(default_factory=PatternConfig)
    look_around: int = DEFAULT_LOOK_AROUND
    min_distance: int = DEFAULT_MIN_DISTANCE
    store: CandleStore = field(default_factory=CandleStore)

    _cache: Optional[ChartSnapshot] = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        get_timeframe(self.timeframe)  # fail fast on unknown intervals

    # ── Public API ───────────────────────────────────────────────────────

    def analyze(self) -> ChartSnapshot:
        """Full-series analysis, recomputed only when the store changed."""
        version = self.store.version
        if self._cache is not None and self._cache.version == version:
            return self._cache

        candles = self.store.candles
        snapshot = ChartSnapshot(
            version=version,
            start=0,
            end=len(candles),
            indicators=compute_indicators(candles, self.indicator_config),
            signals=detect_signals(candles, self.look_around, self.min_distance),
            patterns=detect_patterns(candles, self.pattern_config),
        )
        logger.debug(
            "%s %s v%d: %d candles, %d signals, %d patterns",
            self.instrument, self.timeframe, version,
            len(candles), len(snapshot.signals), len(snapshot.patterns),
        )
        self._cache = snapshot
        return snapshot

    def visible_snapshot(self, visible_count: int = 100, pan_offset: int = 0) -> ChartSnapshot:
        """Analysis restricted to the on-screen window.

        Indicators are sliced from the full-series values; signals and
        patterns keep their full-series indices and are filtered to those
        touching ``[start, end)``.  The price channel is fitted to the
        visible bars only.
        """
        full = self.analyze()
        start, end = self.store.visible_range(visible_count, pan_offset)
        candles = self.store.candles

        return ChartSnapshot(
            version=full.version,
            start=start,
            end=end,
            indicators=slice_indicators(full.indicators, start, end),
            signals=[s for s in full.signals if start <= s.index < end],
            patterns=[p for p in full.patterns if _pattern_overlaps(p, start, end)],
            channel=calculate_price_channel(candles[start:end], start),
        )


def _pattern_overlaps(pattern: Pattern, start: int, end: int) -> bool:
    if pattern.pattern_type == "cup_and_handle":
        first, last = pattern.cup_start_index, pattern.handle_end_index
    else:
        first, last = pattern.left_shoulder_index, pattern.right_shoulder_index
    return first < end and last >= start
