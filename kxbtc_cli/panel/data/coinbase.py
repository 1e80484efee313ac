"""Coinbase Exchange data fetching."""

import asyncio
import logging
import time
from typing import List, Dict, Any, Optional

import aiohttp

from ..utils import to_number

logger = logging.getLogger(__name__)

GRANULARITY_SECONDS = {
    "1m": 60,
    "5m": 300,
    "15m": 900,
    "1h": 3600,
    "6h": 21600,
    "1d": 86400,
}

MAX_CANDLES = 300


def parse_candles(rows: Any, granularity: int) -> List[Dict[str, Any]]:
    """Convert Coinbase candle rows into oldest-first candle dicts.

    Coinbase returns [time, low, high, open, close, volume] rows, newest
    first, with `time` in seconds.
    """
    if not isinstance(rows, list):
        return []

    candles = []
    for row in rows:
        if not isinstance(row, (list, tuple)) or len(row) < 6:
            continue
        t = to_number(row[0])
        if t is None:
            continue
        candles.append({
            "openTime": int(t) * 1000,
            "open": to_number(row[3]),
            "high": to_number(row[2]),
            "low": to_number(row[1]),
            "close": to_number(row[4]),
            "volume": to_number(row[5]),
            "closeTime": (int(t) + granularity) * 1000
        })

    candles.sort(key=lambda c: c["openTime"])
    return candles


async def fetch_klines(
    session: aiohttp.ClientSession,
    product_id: str,
    interval: str,
    limit: int,
    base_url: str = "https://api.exchange.coinbase.com"
) -> List[Dict[str, Any]]:
    """Fetch candles from Coinbase (at most 300 per request)."""
    granularity = GRANULARITY_SECONDS.get(interval, 60)
    actual_limit = min(limit, MAX_CANDLES)
    end = int(time.time())
    start = end - granularity * actual_limit

    url = f"{base_url}/products/{product_id}/candles"
    params = {"start": str(start), "end": str(end), "granularity": str(granularity)}

    try:
        timeout = aiohttp.ClientTimeout(total=10)
        async with session.get(url, params=params, timeout=timeout) as response:
            if not response.ok:
                logger.warning("Coinbase candles error: %s %s", response.status, await response.text())
                return []
            data = await response.json()
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
        logger.warning("Coinbase candles fetch failed: %s", e)
        return []

    return parse_candles(data, granularity)


async def fetch_last_price(
    session: aiohttp.ClientSession,
    product_id: str,
    base_url: str = "https://api.exchange.coinbase.com"
) -> Optional[float]:
    """Fetch last traded price from Coinbase."""
    url = f"{base_url}/products/{product_id}/ticker"

    try:
        timeout = aiohttp.ClientTimeout(total=10)
        async with session.get(url, timeout=timeout) as response:
            if not response.ok:
                logger.warning("Coinbase ticker error: %s", response.status)
                return None
            data = await response.json()
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
        logger.warning("Coinbase ticker fetch failed: %s", e)
        return None

    return to_number(data.get("price")) if isinstance(data, dict) else None


async def fetch_24h_stats(
    session: aiohttp.ClientSession,
    product_id: str,
    base_url: str = "https://api.exchange.coinbase.com"
) -> Optional[Dict[str, Optional[float]]]:
    """Fetch 24h open/high/low/last/volume."""
    url = f"{base_url}/products/{product_id}/stats"

    try:
        timeout = aiohttp.ClientTimeout(total=10)
        async with session.get(url, timeout=timeout) as response:
            if not response.ok:
                logger.warning("Coinbase stats error: %s", response.status)
                return None
            data = await response.json()
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
        logger.warning("Coinbase stats fetch failed: %s", e)
        return None

    if not isinstance(data, dict):
        return None

    return {k: to_number(data.get(k)) for k in ("open", "high", "low", "last", "volume")}
