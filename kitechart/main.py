"""kitechart — application entry point.

Boots the FastAPI internal server and provides the CLI entry point for
offline analysis of a candle file.
"""

import logging

from fastapi import FastAPI

from kitechart.api.routers import router

app = FastAPI(title="kitechart Internal API", version="0.1.0")
app.include_router(router)

logger = logging.getLogger("kitechart")


@app.get("/health")
async def health():
    return {"status": "ok"}


# ── CLI ──────────────────────────────────────────────────────────────────


def _run_cli(argv=None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command."""
    import argparse

    from kitechart.config import load_config

    parser = argparse.ArgumentParser(description="kitechart analysis engine")
    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", help="Analyse a JSON candle file")
    analyze.add_argument("path", help="JSON file in any relay envelope shape")
    analyze.add_argument("--instrument", default="")
    analyze.add_argument("--timeframe", default="day")
    analyze.add_argument("--look-around", type=int, default=None)
    analyze.add_argument("--min-distance", type=int, default=None)
    analyze.add_argument("--strike-step", type=float, default=None)
    analyze.add_argument("--lot-size", type=int, default=None)

    sub.add_parser("serve", help="Run the internal API server")

    args = parser.parse_args(argv)
    config = load_config()

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if args.command == "analyze":
        _run_analyze(config, args)
    else:
        _run_server(config)


def _run_analyze(config, args) -> None:
    """Load candles from disk, analyse them and print a summary."""
    import json
    from dataclasses import replace

    from kitechart.chart.session import ChartSession
    from kitechart.chart.store import CandleStore
    from kitechart.cli.dashboard import print_summary
    from kitechart.feed.relay_client import normalize_candles
    from kitechart.simulator.options import simulate_all
    from kitechart.simulator.stats import calculate_stats

    with open(args.path, "r", encoding="utf-8") as f:
        candles = normalize_candles(json.load(f))

    session = ChartSession(
        instrument=args.instrument or args.path,
        timeframe=args.timeframe,
        look_around=args.look_around or config.signal_look_around,
        min_distance=(
            args.min_distance if args.min_distance is not None
            else config.signal_min_distance
        ),
    )
    session.store.load(sorted(candles, key=lambda c: c.timestamp))
    snapshot = session.analyze()

    sim = config.option_sim
    if args.strike_step is not None:
        sim = replace(sim, strike_step=args.strike_step)
    if args.lot_size is not None:
        sim = replace(sim, lot_size=args.lot_size)

    trades = simulate_all(snapshot.signals, sim)
    stats = calculate_stats(trades)
    logger.info(
        "Analysis complete: %d candles, %d signals, %d patterns",
        len(session.store), len(snapshot.signals), len(snapshot.patterns),
    )
    print_summary(session.instrument, session.timeframe, len(session.store), snapshot, stats)


def _run_server(config) -> None:
    """Start the internal API with uvicorn."""
    import uvicorn

    from kitechart.api.routers import configure_routers

    configure_routers(config)
    logger.info("Internal API available at http://localhost:%d", config.api_port)
    uvicorn.run(app, host="0.0.0.0", port=config.api_port, log_level="info")


if __name__ == "__main__":
    _run_cli()
