"""Tests for the candle store and live-tail reconciliation."""

import logging
from datetime import datetime, timedelta, timezone

import pytest

from kitechart.chart.models import Candle
from kitechart.chart.store import CandleStore


_T0 = datetime(2025, 3, 3, 9, 15, tzinfo=timezone.utc)


def _make_candle(i: int, close: float = 100.0, vol: int = 1000) -> Candle:
    return Candle(
        timestamp=_T0 + timedelta(minutes=5 * i),
        open=close - 0.5, high=close + 1, low=close - 1, close=close, volume=vol,
    )


def _store(n: int = 5) -> CandleStore:
    return CandleStore([_make_candle(i, 100 + i) for i in range(n)])


class TestReconcile:
    def test_same_timestamp_replaces_last(self):
        store = _store()
        updated = _make_candle(4, close=110.0, vol=2500)
        action = store.reconcile([_make_candle(3, 103), updated])
        assert action == "replaced_last"
        assert len(store) == 5
        assert store.last == updated

    def test_newer_timestamp_appends(self):
        store = _store()
        fresh = _make_candle(5, close=106)
        assert store.reconcile([_make_candle(4, 104), fresh]) == "appended"
        assert len(store) == 6
        assert store.last == fresh

    def test_older_timestamp_replaces_all_and_warns(self, caplog):
        store = _store()
        tail = [_make_candle(i, 90) for i in range(3)]
        with caplog.at_level(logging.WARNING, logger="kitechart.store"):
            action = store.reconcile(tail)
        assert action == "replaced_all"
        assert list(store.candles) == tail
        assert "Reconcile anomaly" in caplog.text

    def test_empty_tail_is_ignored(self):
        store = _store()
        version = store.version
        assert store.reconcile([]) == "ignored"
        assert store.version == version
        assert len(store) == 5

    def test_empty_store_loads_tail(self):
        store = CandleStore()
        tail = [_make_candle(i) for i in range(3)]
        assert store.reconcile(tail) == "loaded"
        assert list(store.candles) == tail

    def test_strictly_increasing_after_each_action(self):
        store = _store()
        for tail in (
            [_make_candle(4, 111)],
            [_make_candle(5, 112)],
            [_make_candle(5, 113)],
            [_make_candle(6, 114)],
        ):
            store.reconcile(tail)
            stamps = [c.timestamp for c in store.candles]
            assert stamps == sorted(set(stamps))


class TestMutations:
    def test_append_rejects_stale_candle(self, caplog):
        store = _store()
        version = store.version
        with caplog.at_level(logging.WARNING, logger="kitechart.store"):
            assert store.append(_make_candle(2)) is False
        assert len(store) == 5
        assert store.version == version
        assert "Rejected append" in caplog.text

    def test_replace_last_on_empty_store(self):
        store = CandleStore()
        store.replace_last(_make_candle(0))
        assert len(store) == 0
        assert store.version == 0

    def test_prepend_merges_sorted_and_keeps_existing(self):
        store = CandleStore([_make_candle(i, 100) for i in range(5, 10)])
        older = [_make_candle(i, 50) for i in (3, 1, 2, 0, 4, 5, 6)]
        added = store.prepend(older)
        assert added == 5
        assert len(store) == 10
        stamps = [c.timestamp for c in store.candles]
        assert stamps == sorted(stamps)
        # Bars 5 and 6 were already held: existing data wins
        assert store.candles[5].close == 100
        assert store.candles[6].close == 100
        assert store.candles[0].close == 50

    def test_prepend_nothing_new(self):
        store = _store()
        version = store.version
        assert store.prepend([_make_candle(0), _make_candle(1)]) == 0
        assert store.version == version

    def test_version_bumps_on_every_mutation(self):
        store = CandleStore()
        assert store.version == 0
        store.load([_make_candle(0)])
        store.append(_make_candle(1))
        store.replace_last(_make_candle(1, 101))
        store.prepend([_make_candle(-1)])
        assert store.version == 4

    def test_candles_is_a_snapshot(self):
        store = _store()
        snapshot = store.candles
        store.append(_make_candle(5))
        assert len(snapshot) == 5
        assert len(store.candles) == 6


class TestReadSurface:
    @pytest.mark.parametrize("count,pan,expected", [
        (100, 0, (0, 5)),
        (3, 0, (2, 5)),
        (3, 1, (1, 4)),
        (3, 10, (0, 3)),
    ])
    def test_visible_range(self, count, pan, expected):
        assert _store().visible_range(count, pan) == expected

    def test_visible_range_empty(self):
        assert CandleStore().visible_range(100) == (0, 0)

    def test_price_change_pct(self):
        store = _store()  # closes 100..104
        assert store.price_change_pct() == pytest.approx(4.0)
        assert store.price_change_pct(live_price=110) == pytest.approx(10.0)

    def test_price_change_pct_zero_live_price(self):
        assert _store().price_change_pct(live_price=0.0) == pytest.approx(-100.0)

    def test_price_change_pct_empty(self):
        assert CandleStore().price_change_pct() is None

    def test_last(self):
        assert CandleStore().last is None
        assert _store().last.close == 104
