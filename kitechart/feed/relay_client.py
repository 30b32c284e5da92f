"""Kite relay async client — historical candles for the chart.

Talks to the dashboard's relay server, which fronts the Kite MCP tool
server.  Only candle fetching lives here; login and session handling stay
with the relay.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from kitechart.chart.models import Candle
from kitechart.config import Config

logger = logging.getLogger("kitechart.feed")

# Retry settings
_MAX_RETRIES = 3
_RETRY_BASE_DELAY = 2.0  # seconds; doubles each attempt
_RETRYABLE_STATUS_CODES = {502, 503, 504, 429}


class RelayError(Exception):
    """The relay could not produce candle data."""


class RelayAuthError(RelayError):
    """The relay needs a fresh Kite login."""


# ── Payload normalisation ────────────────────────────────────────────────


def parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        ts = value
    elif isinstance(value, (int, float)):
        # Epoch milliseconds
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    else:
        ts = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def _parse_volume(value: Any) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


def _parse_candle(row: Any) -> Candle:
    """One candle from a relay row: a dict or a Kite ``[ts, o, h, l, c, v]`` list."""
    if isinstance(row, dict):
        return Candle(
            timestamp=parse_timestamp(row.get("date") or row.get("timestamp")),
            open=float(row["open"]),
            high=float(row["high"]),
            low=float(row["low"]),
            close=float(row["close"]),
            volume=_parse_volume(row.get("volume")),
        )
    ts, o, h, l, c, *rest = row
    return Candle(
        timestamp=parse_timestamp(ts),
        open=float(o),
        high=float(h),
        low=float(l),
        close=float(c),
        volume=_parse_volume(rest[0] if rest else 0),
    )


def _candle_rows(payload: Any) -> list:
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        raise ValueError(f"Unsupported candle payload type: {type(payload).__name__}")

    data = payload.get("data")
    if isinstance(data, dict) and isinstance(data.get("candles"), list):
        return data["candles"]
    if isinstance(data, list):
        return data
    if isinstance(payload.get("candles"), list):
        return payload["candles"]

    keys = ", ".join(payload.keys()) or "none"
    raise ValueError(f"Unsupported candle payload shape. Keys: {keys}")


def normalize_candles(payload: Any) -> list[Candle]:
    """Turn any of the relay's response envelopes into ``Candle`` values.

    Accepted shapes::

        {"success": true, "data": {"candles": [...]}}
        {"data": [...]}
        {"candles": [...]}
        [...]

    Raises ``ValueError`` on any other shape.
    """
    return [_parse_candle(row) for row in _candle_rows(payload)]


# ── Client ───────────────────────────────────────────────────────────────


class RelayClient:
    """Async client for the relay's market-data endpoints."""

    def __init__(self, config: Config) -> None:
        self._base_url = config.relay_base_url
        self._headers = {"Accept": "application/json"}

    async def _request_with_retry(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Execute an HTTP request with exponential-backoff retry.

        Retries on transient server errors (502, 503, 504) and rate-limits
        (429).  A 401 raises ``RelayAuthError`` immediately; any other error
        status raises ``RelayError``.
        """
        last_exc: Optional[Exception] = None

        for attempt in range(_MAX_RETRIES):
            try:
                async with httpx.AsyncClient() as client:
                    resp = await getattr(client, method)(
                        url,
                        headers=self._headers,
                        timeout=30.0,
                        **kwargs,
                    )

                if resp.status_code == 401:
                    raise RelayAuthError("Authorization required. Please login to Kite.")

                if resp.status_code in _RETRYABLE_STATUS_CODES:
                    delay = _RETRY_BASE_DELAY * (2 ** attempt)
                    logger.warning(
                        "Relay %s %s returned %d, retry %d/%d in %.1fs",
                        method.upper(), url, resp.status_code,
                        attempt + 1, _MAX_RETRIES, delay,
                    )
                    last_exc = httpx.HTTPStatusError(
                        f"Server error '{resp.status_code}'",
                        request=resp.request,
                        response=resp,
                    )
                    await asyncio.sleep(delay)
                    continue

                if resp.is_error:
                    raise RelayError(
                        f"Relay {method.upper()} {url} returned {resp.status_code}"
                    )
                return resp

            except httpx.TransportError as exc:
                delay = _RETRY_BASE_DELAY * (2 ** attempt)
                logger.warning(
                    "Relay %s %s transport error (%s), retry %d/%d in %.1fs",
                    method.upper(), url, exc,
                    attempt + 1, _MAX_RETRIES, delay,
                )
                last_exc = exc
                await asyncio.sleep(delay)

        raise RelayError(f"Relay request failed after {_MAX_RETRIES} attempts") from last_exc

    async def fetch_historical(
        self,
        instrument_token: str,
        interval: str,
        from_dt: datetime,
        to_dt: datetime,
    ) -> list[Candle]:
        """Fetch candles for *instrument_token* between two dates.

        Args:
            instrument_token: Kite instrument token.
            interval: Kite interval key, e.g. ``"5minute"`` or ``"day"``.
            from_dt: Start of the range (only the date part is sent).
            to_dt: End of the range (only the date part is sent).

        Returns:
            Candles ordered as the relay returned them (oldest first).
        """
        url = f"{self._base_url}/api/market/historical/{instrument_token}"
        params = {
            "interval": interval,
            "from": from_dt.strftime("%Y-%m-%d") + " 00:00:00",
            "to": to_dt.strftime("%Y-%m-%d") + " 23:59:59",
        }

        resp = await self._request_with_retry("get", url, params=params)
        return normalize_candles(resp.json())
