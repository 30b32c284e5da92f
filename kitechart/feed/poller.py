"""Live poller — periodic fetch-and-reconcile for one chart session.

Each poll fetches the recent history window and hands it to
``CandleStore.reconcile``.  A per-session lock is held from the fetch
through the store update, so a slow response can never land after a newer
one, even if a manual refresh overlaps a tick.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from kitechart.chart.session import ChartSession
from kitechart.chart.timeframes import get_timeframe, next_history_days
from kitechart.feed.relay_client import RelayAuthError, RelayClient, RelayError

logger = logging.getLogger("kitechart.feed")


class LivePoller:
    """Keeps a ``ChartSession``'s store in sync with the relay.

    Args:
        session: The chart session whose store is updated.
        client: A ``RelayClient`` (or compatible duck-type / mock).
        instrument_token: Kite instrument token to poll.
        history_days: Initial history window; defaults to the timeframe's.
    """

    def __init__(
        self,
        session: ChartSession,
        client: RelayClient,
        instrument_token: str,
        history_days: Optional[int] = None,
    ) -> None:
        self._session = session
        self._client = client
        self._token = instrument_token
        self._timeframe = get_timeframe(session.timeframe)
        self._history_days = history_days or self._timeframe.default_days
        self._lock = asyncio.Lock()
        self._running = False
        self._poll_count = 0

    @property
    def history_days(self) -> int:
        return self._history_days

    @property
    def poll_count(self) -> int:
        return self._poll_count

    async def _fetch(self, days: int, utc_now: Optional[datetime] = None):
        now = utc_now or datetime.now(timezone.utc)
        return await self._client.fetch_historical(
            self._token,
            self._timeframe.value,
            now - timedelta(days=days),
            now,
        )

    async def poll_once(self, utc_now: Optional[datetime] = None) -> str:
        """Fetch the latest window and reconcile it into the store.

        Returns the reconcile action, or ``"error"`` when the fetch failed.
        ``RelayAuthError`` propagates so the caller can trigger a login.
        """
        async with self._lock:
            try:
                fresh = await self._fetch(self._history_days, utc_now)
            except RelayAuthError:
                raise
            except (RelayError, ValueError) as exc:
                logger.warning("Live update for %s failed: %s", self._session.instrument, exc)
                return "error"
            action = self._session.store.reconcile(fresh)
        self._poll_count += 1
        logger.debug(
            "Live update %s %s: %s (%d candles)",
            self._session.instrument, self._timeframe.value, action, len(self._session.store),
        )
        return action

    async def load_older(self, utc_now: Optional[datetime] = None) -> int:
        """Widen the history window and backfill older candles.

        Returns the number of candles added; 0 when already at the
        timeframe's maximum window or when the fetch failed.
        ``RelayAuthError`` propagates.
        """
        async with self._lock:
            new_days = next_history_days(self._history_days, self._timeframe.value)
            if new_days is None:
                return 0
            try:
                older = await self._fetch(new_days, utc_now)
            except RelayAuthError:
                raise
            except (RelayError, ValueError) as exc:
                logger.warning("Loading older data for %s failed: %s", self._session.instrument, exc)
                return 0
            added = self._session.store.prepend(older)
            self._history_days = new_days
        logger.info(
            "Loaded %d older candles for %s (%d days)",
            added, self._session.instrument, new_days,
        )
        return added

    async def run(self, max_polls: Optional[int] = None) -> None:
        """Poll at the timeframe's refresh cadence until stopped."""
        self._running = True
        logger.info(
            "Live refresh every %ds for %s %s",
            self._timeframe.refresh_seconds, self._session.instrument, self._timeframe.value,
        )
        polls = 0
        try:
            while self._running:
                await self.poll_once()
                polls += 1
                if max_polls is not None and polls >= max_polls:
                    break
                await asyncio.sleep(self._timeframe.refresh_seconds)
        finally:
            self._running = False

    def stop(self) -> None:
        """Signal the polling loop to stop after the current cycle."""
        self._running = False
