"""CLI dashboard — prints a chart analysis summary to the console."""

from typing import Optional

from kitechart.chart.session import ChartSnapshot


def _last_defined(series) -> Optional[float]:
    for value in reversed(series):
        if value is not None:
            return value
    return None


def print_summary(
    instrument: str,
    timeframe: str,
    candle_count: int,
    snapshot: ChartSnapshot,
    stats: dict,
) -> str:
    """Format and print the analysis of one chart.

    Returns:
        The formatted string (also printed to stdout).
    """
    indicators = snapshot.indicators
    rsi = _last_defined(indicators["rsi"]) if "rsi" in indicators else None
    macd_hist = _last_defined(indicators["macd"][2]) if "macd" in indicators else None
    last_signal = snapshot.signals[-1] if snapshot.signals else None

    rsi_str = f"{rsi:.2f}" if rsi is not None else "N/A"
    macd_str = f"{macd_hist:+.4f}" if macd_hist is not None else "N/A"
    signal_str = (
        f"{last_signal.type} @ {last_signal.price:,.2f} (#{last_signal.index})"
        if last_signal else "none"
    )
    pnl_str = f"₹{stats['net_pnl']:,.2f}"

    lines = [
        "──────────────── kitechart Summary ────────────────",
        f"  Instrument:      {instrument}",
        f"  Timeframe:       {timeframe}",
        f"  Candles:         {candle_count}",
        f"  RSI:             {rsi_str}",
        f"  MACD hist:       {macd_str}",
        f"  Signals:         {len(snapshot.signals)}",
        f"  Last signal:     {signal_str}",
        f"  Patterns:        {len(snapshot.patterns)}",
        f"  Sim trades:      {stats['total_trades']} (win rate {stats['win_rate'] * 100:.1f}%)",
        f"  Sim net P&L:     {pnl_str}",
        "──────────────────────────────────────────────────",
    ]
    for pattern in snapshot.patterns:
        breakout = (
            f"breakout #{pattern.breakout_index}" if pattern.breakout_index is not None
            else "no breakout"
        )
        lines.insert(-1, f"    · {pattern.pattern_type} ({breakout})")

    output = "\n".join(lines)
    print(output)
    return output
