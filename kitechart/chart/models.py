"""Chart data models — typed representations for candles and analysis outputs."""

from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Optional, Union


IndicatorSeries = list[Optional[float]]

SignalType = Literal["BUY", "SELL"]


@dataclass(frozen=True)
class Candle:
    """A single OHLCV bar.

    The OHLC invariant (``low <= min(open, close)``, ``high >= max(open,
    close)``) is not enforced; upstream data is used as-is.
    """

    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: int = 0

    @property
    def is_bearish(self) -> bool:
        return self.close < self.open


@dataclass(frozen=True)
class Signal:
    """A swing-based trade signal at a position in the full candle series."""

    index: int
    type: SignalType
    price: float
    timestamp: datetime


@dataclass(frozen=True)
class CupAndHandle:
    """A detected cup-and-handle formation.

    All indices reference the full candle series.
    """

    cup_start_index: int
    cup_bottom_index: int
    cup_end_index: int
    handle_start_index: int
    handle_end_index: int
    left_rim_price: float
    right_rim_price: float
    cup_bottom_price: float
    handle_low_price: float
    breakout_index: Optional[int] = None
    breakout_price: Optional[float] = None

    pattern_type: str = "cup_and_handle"


@dataclass(frozen=True)
class InvertedHeadAndShoulders:
    """A detected inverted head-and-shoulders formation."""

    left_shoulder_index: int
    head_index: int
    right_shoulder_index: int
    neckline_price: float
    left_shoulder_price: float
    head_price: float
    right_shoulder_price: float
    breakout_index: Optional[int] = None
    breakout_price: Optional[float] = None

    pattern_type: str = "inverted_head_and_shoulders"


Pattern = Union[CupAndHandle, InvertedHeadAndShoulders]


@dataclass(frozen=True)
class PriceChannel:
    """Upper/lower trendlines fitted through recent pivots.

    Lines are stored as slope/intercept over global candle indices so they
    can be extended beyond the window they were fitted on.
    """

    upper_slope: float
    upper_intercept: float
    lower_slope: float
    lower_intercept: float
    highs: list[tuple[int, float]]
    lows: list[tuple[int, float]]
    start_index: int
    end_index: int

    def upper_at(self, index: int) -> float:
        return self.upper_slope * index + self.upper_intercept

    def lower_at(self, index: int) -> float:
        return self.lower_slope * index + self.lower_intercept

    def mid_at(self, index: int) -> float:
        return (self.upper_at(index) + self.lower_at(index)) / 2


# ── Simulation ───────────────────────────────────────────────────────────


@dataclass(frozen=True)
class EntryOption:
    """Synthetic call contract bought at the BUY signal."""

    strike_price: float
    premium_per_share: float
    lot_size: int
    lots: int
    total_premium: float


@dataclass(frozen=True)
class ExitOption:
    """The same contract valued at the paired SELL signal."""

    premium_per_share: float
    total_value: float


@dataclass(frozen=True)
class SimulatedTrade:
    """P&L projection for one BUY → SELL signal pair."""

    buy_signal: Signal
    sell_signal: Signal
    entry_option: EntryOption
    exit_option: ExitOption
    pnl: float
    pnl_percentage: float
