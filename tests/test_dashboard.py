"""Tests for the CLI analysis summary."""

import math
from datetime import datetime, timedelta, timezone

from kitechart.chart.models import Candle
from kitechart.chart.session import ChartSession
from kitechart.chart.store import CandleStore
from kitechart.cli.dashboard import print_summary
from kitechart.simulator.options import simulate_all
from kitechart.simulator.stats import calculate_stats


_T0 = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _session() -> ChartSession:
    candles = []
    for i in range(96):
        mid = 100 + 10 * math.sin(2 * math.pi * i / 24)
        candles.append(Candle(_T0 + timedelta(days=i), mid + 0.2, mid + 1, mid - 1, mid - 0.2, 100))
    return ChartSession(instrument="NIFTY 50", timeframe="day", store=CandleStore(candles))


class TestPrintSummary:
    def test_summary_contents(self, capsys):
        session = _session()
        snapshot = session.analyze()
        stats = calculate_stats(simulate_all(snapshot.signals))

        output = print_summary("NIFTY 50", "day", len(session.store), snapshot, stats)

        assert output in capsys.readouterr().out
        assert "kitechart Summary" in output
        assert "NIFTY 50" in output
        assert "Candles:         96" in output
        assert "Signals:         8" in output
        assert "Last signal:     BUY @ 89.00 (#90)" in output
        assert "Sim trades:      3" in output
        assert "₹" in output

    def test_missing_indicators_shown_as_na(self, capsys):
        session = _session()
        snapshot = session.analyze()
        empty = type(snapshot)(
            version=snapshot.version, start=0, end=0,
            indicators={}, signals=[], patterns=[],
        )
        output = print_summary("X", "day", 0, empty, calculate_stats([]))
        assert "RSI:             N/A" in output
        assert "Last signal:     none" in output


class TestAnalyzeCommand:
    def test_analyze_file(self, tmp_path, capsys):
        import json

        from kitechart.main import _run_cli

        rows = []
        for i in range(96):
            mid = 100 + 10 * math.sin(2 * math.pi * i / 24)
            ts = (_T0 + timedelta(days=i)).isoformat()
            rows.append({"date": ts, "open": mid + 0.2, "high": mid + 1,
                         "low": mid - 1, "close": mid - 0.2, "volume": 100})
        path = tmp_path / "nifty.json"
        path.write_text(json.dumps({"data": rows}), encoding="utf-8")

        _run_cli(["analyze", str(path), "--instrument", "NIFTY 50", "--min-distance", "10"])

        out = capsys.readouterr().out
        assert "Instrument:      NIFTY 50" in out
        assert "Signals:         8" in out
