"""Chart pattern recognition — cup-and-handle and inverted head-and-shoulders.

Both scanners are full rescans over the candle series (O(n × window)) and
return zero or more descriptors.  Overlapping matches across the two
pattern types are left for the caller to filter.

The thresholds in :class:`PatternConfig` are empirical; they are kept as
configuration rather than derived.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from kitechart.chart.models import Candle, CupAndHandle, InvertedHeadAndShoulders, Pattern


@dataclass(frozen=True)
class PatternConfig:
    """Tunable geometry and tolerance for the pattern scanners."""

    # Cup-and-handle
    rim_tolerance: float = 0.05
    min_cup_depth: float = 0.10
    min_handle_depth: float = 0.03
    max_handle_depth: float = 0.15
    max_cup_length: int = 60
    left_rim_window: int = 10
    right_rim_window: int = 15
    handle_length: int = 10

    # Inverted head-and-shoulders
    shoulder_tolerance: float = 0.10
    hs_lookback: int = 60
    hs_min_bars: int = 20
    trough_wing: int = 2

    # Both
    breakout_lookahead: int = 20


def _argmax_high(candles: Sequence[Candle], start: int, end: int) -> int:
    """Index of the highest high in ``[start, end)``; first occurrence wins."""
    best = start
    for j in range(start + 1, end):
        if candles[j].high > candles[best].high:
            best = j
    return best


def _argmin_low(candles: Sequence[Candle], start: int, end: int) -> int:
    """Index of the lowest low in ``[start, end)``; first occurrence wins."""
    best = start
    for j in range(start + 1, end):
        if candles[j].low < candles[best].low:
            best = j
    return best


def _find_breakout(
    candles: Sequence[Candle],
    after: int,
    level: float,
    lookahead: int,
) -> tuple[Optional[int], Optional[float]]:
    """First close above *level* within *lookahead* bars after index *after*."""
    for j in range(after + 1, min(len(candles), after + 1 + lookahead)):
        if candles[j].close > level:
            return j, candles[j].close
    return None, None


# ── Cup and handle ───────────────────────────────────────────────────────


def detect_cup_and_handle(
    candles: Sequence[Candle],
    config: Optional[PatternConfig] = None,
) -> list[CupAndHandle]:
    """Scan for cup-and-handle formations.

    For every bar ``i`` past ``max_cup_length``, the trailing window
    ``[i - max_cup_length, i]`` is split into a left rim (highest high of
    the first bars), a right rim (highest high of the bars just before
    ``i``) and a cup bottom (lowest low in between).  A match needs
    symmetric rims, a deep enough cup and a handle pullback inside the
    configured band.  Scanning resumes after the handle of each match.
    """
    cfg = config or PatternConfig()
    n = len(candles)
    found: list[CupAndHandle] = []

    i = cfg.max_cup_length
    while i < n:
        match = _cup_at(candles, i, cfg)
        if match is None:
            i += 1
            continue
        found.append(match)
        i = max(i + 1, match.handle_end_index + 1)

    return found


def _cup_at(candles: Sequence[Candle], i: int, cfg: PatternConfig) -> Optional[CupAndHandle]:
    n = len(candles)
    start = i - cfg.max_cup_length

    left_idx = _argmax_high(candles, start, min(start + cfg.left_rim_window, i))
    right_from = max(left_idx + 2, i - cfg.right_rim_window)
    if right_from >= i:
        return None
    right_idx = _argmax_high(candles, right_from, i)
    bottom_idx = _argmin_low(candles, left_idx + 1, right_idx)

    left_rim = candles[left_idx].high
    right_rim = candles[right_idx].high
    cup_bottom = candles[bottom_idx].low

    rim_max = max(left_rim, right_rim)
    if rim_max <= 0:
        return None
    if abs(left_rim - right_rim) / rim_max > cfg.rim_tolerance:
        return None
    if (rim_max - cup_bottom) / rim_max < cfg.min_cup_depth:
        return None

    handle_start = right_idx + 1
    handle_end = right_idx + cfg.handle_length
    if handle_end >= n:
        return None

    handle_low_idx = _argmin_low(candles, handle_start, handle_end + 1)
    handle_low = candles[handle_low_idx].low
    handle_depth = (right_rim - handle_low) / right_rim
    if not cfg.min_handle_depth <= handle_depth <= cfg.max_handle_depth:
        return None

    breakout_index, breakout_price = _find_breakout(
        candles, handle_end, right_rim, cfg.breakout_lookahead,
    )

    return CupAndHandle(
        cup_start_index=left_idx,
        cup_bottom_index=bottom_idx,
        cup_end_index=right_idx,
        handle_start_index=handle_start,
        handle_end_index=handle_end,
        left_rim_price=left_rim,
        right_rim_price=right_rim,
        cup_bottom_price=cup_bottom,
        handle_low_price=handle_low,
        breakout_index=breakout_index,
        breakout_price=breakout_price,
    )


# ── Inverted head and shoulders ──────────────────────────────────────────


def _find_troughs(candles: Sequence[Candle], start: int, end: int, wing: int) -> list[int]:
    """Bars in ``[start, end]`` whose low is strictly below *wing* bars each side."""
    troughs: list[int] = []
    for j in range(start + wing, end - wing + 1):
        low = candles[j].low
        if all(
            candles[j - k].low > low and candles[j + k].low > low
            for k in range(1, wing + 1)
        ):
            troughs.append(j)
    return troughs


def _neckline(candles: Sequence[Candle], ls: int, rs: int) -> float:
    """Mean of the highs between the shoulders that clear both shoulder lows.

    Falls back to the highest high over ``[ls, rs]``.
    """
    floor = max(candles[ls].low, candles[rs].low)
    highs = [candles[j].high for j in range(ls + 1, rs) if candles[j].high > floor]
    if highs:
        return sum(highs) / len(highs)
    return max(candles[j].high for j in range(ls, rs + 1))


def detect_inverted_head_and_shoulders(
    candles: Sequence[Candle],
    config: Optional[PatternConfig] = None,
) -> list[InvertedHeadAndShoulders]:
    """Scan for inverted (bullish) head-and-shoulders formations.

    Each window of the last ``hs_lookback`` bars is searched for troughs.
    The lowest trough is the head and its nearest troughs on either side
    are the shoulders.  A formation is reported once even when several
    windows contain it.
    """
    cfg = config or PatternConfig()
    n = len(candles)
    if n < cfg.hs_min_bars:
        return []

    found: list[InvertedHeadAndShoulders] = []
    seen: set[tuple[int, int, int]] = set()

    for end in range(cfg.hs_min_bars - 1, n):
        start = max(0, end - cfg.hs_lookback + 1)
        troughs = _find_troughs(candles, start, end, cfg.trough_wing)
        if len(troughs) < 3:
            continue

        head_pos = min(range(len(troughs)), key=lambda p: candles[troughs[p]].low)
        if head_pos == 0 or head_pos == len(troughs) - 1:
            continue

        ls, head, rs = troughs[head_pos - 1], troughs[head_pos], troughs[head_pos + 1]
        if (ls, head, rs) in seen:
            continue

        ls_price = candles[ls].low
        head_price = candles[head].low
        rs_price = candles[rs].low
        if not (head_price < ls_price and head_price < rs_price):
            continue
        shoulder_max = max(ls_price, rs_price)
        if shoulder_max <= 0 or abs(ls_price - rs_price) / shoulder_max > cfg.shoulder_tolerance:
            continue

        neckline = _neckline(candles, ls, rs)
        breakout_index, breakout_price = _find_breakout(
            candles, rs, neckline, cfg.breakout_lookahead,
        )

        seen.add((ls, head, rs))
        found.append(
            InvertedHeadAndShoulders(
                left_shoulder_index=ls,
                head_index=head,
                right_shoulder_index=rs,
                neckline_price=neckline,
                left_shoulder_price=ls_price,
                head_price=head_price,
                right_shoulder_price=rs_price,
                breakout_index=breakout_index,
                breakout_price=breakout_price,
            )
        )

    return found


def detect_patterns(
    candles: Sequence[Candle],
    config: Optional[PatternConfig] = None,
) -> list[Pattern]:
    """Run both scanners; cup-and-handle matches first, then head-and-shoulders."""
    return [
        *detect_cup_and_handle(candles, config),
        *detect_inverted_head_and_shoulders(candles, config),
    ]
