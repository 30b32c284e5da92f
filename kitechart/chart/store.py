"""Candle store — the one mutable component of a chart session.

Holds the ordered bar series for one instrument/timeframe pair.  Live
polling reaches it only through :meth:`CandleStore.reconcile`, older-data
backfill through :meth:`CandleStore.prepend`.
"""

import logging
from typing import Iterable, Optional

from kitechart.chart.models import Candle

logger = logging.getLogger("kitechart.store")


class CandleStore:
    """Ascending, timestamp-unique sequence of candles.

    Every mutation bumps :attr:`version`, which callers use to recompute
    analysis once per mutation rather than once per read.
    """

    def __init__(self, candles: Optional[Iterable[Candle]] = None) -> None:
        self._candles: list[Candle] = []
        self._version = 0
        if candles:
            self.load(candles)

    # ── Read surface ─────────────────────────────────────────────────────

    @property
    def candles(self) -> tuple[Candle, ...]:
        """Immutable snapshot of the current series."""
        return tuple(self._candles)

    @property
    def last(self) -> Optional[Candle]:
        return self._candles[-1] if self._candles else None

    @property
    def version(self) -> int:
        return self._version

    def __len__(self) -> int:
        return len(self._candles)

    def visible_range(self, visible_count: int, pan_offset: int = 0) -> tuple[int, int]:
        """Return ``(start, end)`` of the window shown on screen.

        *pan_offset* counts candles scrolled back from the newest bar.
        """
        n = len(self._candles)
        start = max(0, n - visible_count - pan_offset)
        end = min(n, start + visible_count)
        return start, end

    def price_change_pct(self, live_price: Optional[float] = None) -> Optional[float]:
        """Percent change from the first bar's close to the current price.

        The current price is *live_price* when given, else the last close.
        """
        if not self._candles:
            return None
        first_close = self._candles[0].close
        current = live_price if live_price is not None else self._candles[-1].close
        if not first_close:
            return None
        return (current - first_close) / first_close * 100

    # ── Mutations ────────────────────────────────────────────────────────

    def load(self, candles: Iterable[Candle]) -> None:
        """Replace the whole series (initial fetch or manual refresh)."""
        self._candles = list(candles)
        self._bump()

    def append(self, candle: Candle) -> bool:
        """Add *candle* to the tail.

        Returns ``False`` (and leaves the store untouched) when the candle
        is not newer than the current last bar.
        """
        last = self.last
        if last is not None and candle.timestamp <= last.timestamp:
            logger.warning(
                "Rejected append: %s is not after last candle %s",
                candle.timestamp.isoformat(), last.timestamp.isoformat(),
            )
            return False
        self._candles.append(candle)
        self._bump()
        return True

    def replace_last(self, candle: Candle) -> None:
        """Overwrite the final bar with its updated, still-forming version."""
        if not self._candles:
            logger.warning("replace_last called on an empty store; ignoring")
            return
        self._candles[-1] = candle
        self._bump()

    def prepend(self, candles: Iterable[Candle]) -> int:
        """Merge an older-data batch at the head.

        Candles already held win over incoming duplicates.  The merged series
        is re-sorted ascending, which also repairs an unsorted fetch.

        Returns the number of candles added.
        """
        existing = {c.timestamp for c in self._candles}
        incoming: dict = {}
        for c in candles:
            if c.timestamp not in existing:
                incoming.setdefault(c.timestamp, c)

        if not incoming:
            return 0

        merged = list(incoming.values()) + self._candles
        merged.sort(key=lambda c: c.timestamp)
        self._candles = merged
        self._bump()
        return len(incoming)

    def reconcile(self, fresh_tail: list[Candle]) -> str:
        """Merge a freshly fetched tail into the store.

        Compares the newest fetched bar with the current last bar:

        * same timestamp → the bar is still forming → ``replace_last``
        * newer timestamp → a new bar has opened → ``append``
        * older timestamp → clock skew or backend replay → full replace

        Returns the action taken: ``"replaced_last"``, ``"appended"``,
        ``"replaced_all"``, ``"loaded"`` (store was empty) or ``"ignored"``
        (nothing fetched).
        """
        if not fresh_tail:
            logger.debug("Reconcile with empty tail; nothing to do")
            return "ignored"

        latest_new = fresh_tail[-1]
        latest_existing = self.last

        if latest_existing is None:
            self.load(fresh_tail)
            return "loaded"

        if latest_new.timestamp == latest_existing.timestamp:
            logger.debug("Updating forming candle at %s", latest_new.timestamp.isoformat())
            self.replace_last(latest_new)
            return "replaced_last"

        if latest_new.timestamp > latest_existing.timestamp:
            logger.debug("New candle formed at %s", latest_new.timestamp.isoformat())
            self.append(latest_new)
            return "appended"

        logger.warning(
            "Reconcile anomaly: fetched tail ends at %s, before stored %s; "
            "replacing all %d candles",
            latest_new.timestamp.isoformat(),
            latest_existing.timestamp.isoformat(),
            len(fresh_tail),
        )
        self.load(fresh_tail)
        return "replaced_all"

    # ── Helpers ──────────────────────────────────────────────────────────

    def _bump(self) -> None:
        self._version += 1
