"""Options trade simulator — synthetic call P&L between paired signals.

This is a labelled *simulation*, not a pricing model: the premium is the
larger of intrinsic value and a floor percentage of spot, plus a fixed
time-value percentage of spot.  No volatility, no Greeks.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence

from kitechart.chart.models import EntryOption, ExitOption, Signal, SimulatedTrade

logger = logging.getLogger("kitechart.simulator")


@dataclass(frozen=True)
class OptionSimConfig:
    """Contract and premium-heuristic settings."""

    strike_step: float = 50.0
    lot_size: int = 50
    lots: int = 1
    min_premium_pct: float = 0.01  # premium floor as a fraction of spot
    time_value_pct: float = 0.02
    exit_time_value_factor: float = 0.8  # less time value left at exit


def strike_for_spot(spot: float, strike_step: float) -> float:
    """Round *spot* up to the next strike on the *strike_step* grid."""
    if strike_step <= 0:
        return spot
    return math.ceil(spot / strike_step) * strike_step


def premium_per_share(
    spot: float,
    strike: float,
    config: OptionSimConfig,
    time_value_factor: float = 1.0,
) -> float:
    """Heuristic call premium at *spot* for *strike*.

    ``max(intrinsic, floor% × spot) + time_value% × spot × factor``
    """
    intrinsic = max(spot - strike, 0.0)
    floor = config.min_premium_pct * spot
    time_value = config.time_value_pct * spot * time_value_factor
    return max(intrinsic, floor) + time_value


def find_paired_sell(signals: Sequence[Signal], buy_signal: Signal) -> Optional[Signal]:
    """First SELL signal after *buy_signal* in *signals*, if any."""
    for signal in signals:
        if signal.type == "SELL" and signal.index > buy_signal.index:
            return signal
    return None


def price_trade(
    buy_signal: Signal,
    sell_signal: Signal,
    config: Optional[OptionSimConfig] = None,
) -> SimulatedTrade:
    """Price one BUY → SELL pair using the signals' prices as spot."""
    cfg = config or OptionSimConfig()
    units = cfg.lot_size * cfg.lots

    entry_spot = buy_signal.price
    strike = strike_for_spot(entry_spot, cfg.strike_step)
    entry_premium = premium_per_share(entry_spot, strike, cfg)
    total_premium = entry_premium * units

    exit_premium = premium_per_share(
        sell_signal.price, strike, cfg, cfg.exit_time_value_factor,
    )
    total_value = exit_premium * units

    pnl = total_value - total_premium
    pnl_pct = pnl / total_premium * 100 if total_premium else 0.0

    return SimulatedTrade(
        buy_signal=buy_signal,
        sell_signal=sell_signal,
        entry_option=EntryOption(
            strike_price=strike,
            premium_per_share=entry_premium,
            lot_size=cfg.lot_size,
            lots=cfg.lots,
            total_premium=total_premium,
        ),
        exit_option=ExitOption(
            premium_per_share=exit_premium,
            total_value=total_value,
        ),
        pnl=pnl,
        pnl_percentage=pnl_pct,
    )


def simulate_trade(
    signals: Sequence[Signal],
    buy_signal: Signal,
    config: Optional[OptionSimConfig] = None,
) -> Optional[SimulatedTrade]:
    """Simulate buying a call at *buy_signal* and selling at the next SELL.

    Returns ``None`` when no later SELL exists, which is the normal case
    for the most recent BUY of a live series.

    Raises ``ValueError`` if *buy_signal* is not a BUY.
    """
    if buy_signal.type != "BUY":
        raise ValueError(f"Expected a BUY signal, got {buy_signal.type}")

    sell_signal = find_paired_sell(signals, buy_signal)
    if sell_signal is None:
        logger.debug("No paired SELL after BUY at index %d", buy_signal.index)
        return None

    return price_trade(buy_signal, sell_signal, config)


def simulate_all(
    signals: Sequence[Signal],
    config: Optional[OptionSimConfig] = None,
) -> list[SimulatedTrade]:
    """Simulate every BUY in *signals* that has a paired SELL."""
    trades: list[SimulatedTrade] = []
    for signal in signals:
        if signal.type != "BUY":
            continue
        trade = simulate_trade(signals, signal, config)
        if trade is not None:
            trades.append(trade)
    return trades
