"""Simulation statistics — pure functions over simulated signal trades."""

from typing import Optional, Sequence

from kitechart.chart.models import SimulatedTrade


def calculate_stats(trades: Sequence[SimulatedTrade]) -> dict:
    """Summarise a list of simulated trades.

    Returns:
        Dict with ``total_trades``, ``winning_trades``, ``losing_trades``,
        ``win_rate``, ``profit_factor``, ``max_drawdown``, ``net_pnl``,
        ``capital_deployed`` and ``return_pct``.
    """
    if not trades:
        return {
            "total_trades": 0,
            "winning_trades": 0,
            "losing_trades": 0,
            "win_rate": 0.0,
            "profit_factor": None,
            "max_drawdown": 0.0,
            "net_pnl": 0.0,
            "capital_deployed": 0.0,
            "return_pct": 0.0,
        }

    pnls = [t.pnl for t in trades]
    total = len(pnls)
    winners = [p for p in pnls if p > 0]
    losers = [p for p in pnls if p <= 0]

    gross_profit = sum(winners)
    gross_loss = abs(sum(losers))
    profit_factor: Optional[float] = (
        gross_profit / gross_loss if gross_loss > 0 else None
    )

    net_pnl = sum(pnls)
    capital = sum(t.entry_option.total_premium for t in trades)

    return {
        "total_trades": total,
        "winning_trades": len(winners),
        "losing_trades": len(losers),
        "win_rate": round(len(winners) / total, 4),
        "profit_factor": round(profit_factor, 4) if profit_factor is not None else None,
        "max_drawdown": round(_max_drawdown(pnls), 2),
        "net_pnl": round(net_pnl, 2),
        "capital_deployed": round(capital, 2),
        "return_pct": round(net_pnl / capital * 100, 2) if capital else 0.0,
    }


def _max_drawdown(pnls: list[float]) -> float:
    """Largest peak-to-trough decline of the cumulative P&L curve."""
    cumulative = 0.0
    peak = 0.0
    max_dd = 0.0
    for p in pnls:
        cumulative += p
        if cumulative > peak:
            peak = cumulative
        dd = peak - cumulative
        if dd > max_dd:
            max_dd = dd
    return max_dd
