"""Internal API routers — /analyze, /simulate, /timeframes endpoints.

No business logic. Parses request bodies into candles and delegates to
the chart session and the trade simulator.
"""

import logging
from dataclasses import asdict, replace
from typing import Optional

from fastapi import APIRouter

from kitechart.chart.indicators import INDICATOR_NAMES, IndicatorConfig
from kitechart.chart.session import ChartSession
from kitechart.chart.signals import DEFAULT_LOOK_AROUND, DEFAULT_MIN_DISTANCE
from kitechart.chart.store import CandleStore
from kitechart.chart.timeframes import TIMEFRAMES, format_countdown
from kitechart.config import Config
from kitechart.feed.relay_client import normalize_candles, parse_timestamp
from kitechart.simulator.options import OptionSimConfig, simulate_all, simulate_trade
from kitechart.simulator.stats import calculate_stats

logger = logging.getLogger("kitechart")
router = APIRouter()

# ── Shared state (set during app startup) ────────────────────────────────

_defaults: dict = {
    "look_around": DEFAULT_LOOK_AROUND,
    "min_distance": DEFAULT_MIN_DISTANCE,
}
_sim_config = OptionSimConfig()


def configure_routers(config: Optional[Config] = None) -> None:
    """Inject settings from the application startup.

    Args:
        config: Loaded ``Config``; ``None`` restores built-in defaults.
    """
    global _sim_config  # noqa: PLW0603
    if config is None:
        _defaults["look_around"] = DEFAULT_LOOK_AROUND
        _defaults["min_distance"] = DEFAULT_MIN_DISTANCE
        _sim_config = OptionSimConfig()
        return
    _defaults["look_around"] = config.signal_look_around
    _defaults["min_distance"] = config.signal_min_distance
    _sim_config = config.option_sim


# ── Request parsing ──────────────────────────────────────────────────────


def _build_session(body: dict, errors: list[str]) -> Optional[ChartSession]:
    """Turn a request body into a loaded ``ChartSession`` (or record errors)."""
    timeframe = body.get("timeframe", "day")
    if timeframe not in TIMEFRAMES:
        errors.append(f"timeframe must be one of: {', '.join(TIMEFRAMES)}")

    try:
        candles = normalize_candles(body.get("candles", []))
    except (ValueError, KeyError, TypeError) as exc:
        errors.append(f"invalid candles: {exc}")
        candles = []

    enabled = body.get("indicators")
    if enabled is not None:
        if not isinstance(enabled, list) or not all(isinstance(n, str) for n in enabled):
            errors.append("indicators must be a list of indicator names")
        else:
            unknown = [name for name in enabled if name not in INDICATOR_NAMES]
            if unknown:
                errors.append(f"unknown indicators: {', '.join(unknown)}")

    try:
        look_around = int(body.get("look_around", _defaults["look_around"]))
        min_distance = int(body.get("min_distance", _defaults["min_distance"]))
    except (TypeError, ValueError):
        errors.append("look_around and min_distance must be integers")
        return None
    if look_around < 1:
        errors.append("look_around must be >= 1")
    if min_distance < 0:
        errors.append("min_distance must be >= 0")

    if errors:
        return None

    indicator_config = IndicatorConfig()
    if enabled is not None:
        indicator_config = replace(indicator_config, enabled=frozenset(enabled))

    return ChartSession(
        instrument=str(body.get("instrument", "")),
        timeframe=timeframe,
        indicator_config=indicator_config,
        look_around=look_around,
        min_distance=min_distance,
        store=CandleStore(sorted(candles, key=lambda c: c.timestamp)),
    )


# ── Endpoints ────────────────────────────────────────────────────────────


@router.get("/timeframes")
async def get_timeframes():
    """Return the supported chart intervals."""
    return {
        "timeframes": [
            {
                "value": tf.value,
                "label": tf.label,
                "bar_seconds": int(tf.bar_duration.total_seconds()),
                "default_days": tf.default_days,
                "max_days": tf.max_days,
                "refresh_seconds": tf.refresh_seconds,
            }
            for tf in TIMEFRAMES.values()
        ]
    }


@router.post("/analyze")
async def post_analyze(body: dict):
    """Compute indicators, signals, patterns and channel for posted candles.

    Optional ``visible_count`` / ``pan_offset`` restrict the response to the
    on-screen window; analysis always runs over the full series.
    """
    errors: list[str] = []
    session = _build_session(body, errors)
    if session is None:
        return {"status": "error", "errors": errors}

    if "visible_count" in body:
        try:
            visible_count = int(body["visible_count"])
            pan_offset = int(body.get("pan_offset", 0))
        except (TypeError, ValueError):
            return {"status": "error", "errors": ["visible_count and pan_offset must be integers"]}
        if visible_count < 1 or pan_offset < 0:
            return {"status": "error", "errors": ["visible_count must be >= 1 and pan_offset >= 0"]}
        snapshot = session.visible_snapshot(visible_count, pan_offset)
    else:
        snapshot = session.analyze()

    response = {
        "status": "ok",
        "candle_count": len(session.store),
        "start": snapshot.start,
        "end": snapshot.end,
        "indicators": snapshot.indicators,
        "signals": [asdict(s) for s in snapshot.signals],
        "patterns": [asdict(p) for p in snapshot.patterns],
        "channel": asdict(snapshot.channel) if snapshot.channel else None,
        "price_change_pct": session.store.price_change_pct(body.get("live_price")),
    }
    if "now" in body and session.store.last is not None:
        response["countdown"] = format_countdown(
            session.store.last.timestamp, session.timeframe, parse_timestamp(body["now"]),
        )
    return response


@router.post("/simulate")
async def post_simulate(body: dict):
    """Simulate option trades on the signals found in posted candles.

    With ``buy_index`` the BUY signal at that candle index is simulated;
    otherwise every pairable BUY is simulated and summarised.
    """
    errors: list[str] = []
    session = _build_session(body, errors)
    if session is None:
        return {"status": "error", "errors": errors}

    signals = session.analyze().signals

    if "buy_index" in body:
        try:
            buy_index = int(body["buy_index"])
        except (TypeError, ValueError):
            return {"status": "error", "errors": ["buy_index must be an integer"]}
        buy = next(
            (s for s in signals if s.type == "BUY" and s.index == buy_index), None,
        )
        if buy is None:
            return {"status": "error", "errors": [f"no BUY signal at index {buy_index}"]}
        trade = simulate_trade(signals, buy, _sim_config)
        if trade is None:
            return {"status": "ok", "available": False, "reason": "no_paired_signal"}
        return {"status": "ok", "available": True, "trade": asdict(trade)}

    trades = simulate_all(signals, _sim_config)
    logger.info("Simulated %d trades from %d signals", len(trades), len(signals))
    return {
        "status": "ok",
        "trades": [asdict(t) for t in trades],
        "stats": calculate_stats(trades),
    }
