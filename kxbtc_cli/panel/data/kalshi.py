"""Kalshi market data fetching (public endpoints only)."""

import asyncio
import logging
import re
import time
from typing import Optional, Dict, Any, List

import aiohttp

from ..utils import to_number, parse_iso_ms

logger = logging.getLogger(__name__)

API_PREFIX = "/trade-api/v2"

STRIKE_RE = re.compile(r"-([TB])(\d+(?:\.\d+)?)")


def safe_time_ms(x: Any) -> Optional[int]:
    """Convert an ISO timestamp to milliseconds."""
    return parse_iso_ms(x)


def parse_strike(ticker: Optional[str]) -> Optional[float]:
    """Parse the strike from a ticker like KXBTCD-26FEB0201-T75000."""
    if not ticker:
        return None
    m = STRIKE_RE.search(ticker)
    return float(m.group(2)) if m else None


def market_strike(market: Dict[str, Any]) -> Optional[float]:
    """Strike price of a market, from its fields or its ticker."""
    for key in ("floor_strike", "cap_strike"):
        n = to_number(market.get(key))
        if n is not None:
            return n
    return parse_strike(market.get("ticker"))


def pick_current_market(
    markets: List[Dict[str, Any]],
    btc_price: Optional[float] = None,
    now_ms: Optional[int] = None,
    horizon_minutes: int = 120
) -> Optional[Dict[str, Any]]:
    """Pick the market closing soonest, nearest strike to the current price first."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    horizon_ms = now_ms + horizon_minutes * 60_000

    candidates = []
    for m in markets if isinstance(markets, list) else []:
        close_ms = safe_time_ms(m.get("close_time"))
        if close_ms is None or not (now_ms < close_ms <= horizon_ms):
            continue
        strike = market_strike(m)
        distance = abs(strike - btc_price) if strike is not None and btc_price is not None else float("inf")
        candidates.append((close_ms, distance, m))

    if not candidates:
        return None

    if btc_price is None:
        candidates.sort(key=lambda x: x[0])
    else:
        candidates.sort(key=lambda x: (x[0], x[1]))

    return candidates[0][2]


def _levels(side: Any) -> List[tuple]:
    """Bid levels as (price in dollars, size), best (highest) first."""
    out = []
    for level in side if isinstance(side, list) else []:
        if not isinstance(level, (list, tuple)) or len(level) < 2:
            continue
        price = to_number(level[0])
        size = to_number(level[1])
        if price is None or size is None:
            continue
        out.append((price / 100, size))
    out.sort(key=lambda x: x[0], reverse=True)
    return out


def summarize_order_book(book: Optional[Dict[str, Any]], depth_levels: int = 5) -> Dict[str, Any]:
    """Summarize a Kalshi order book into best bid/ask and liquidity per side.

    Kalshi only publishes bids. A NO bid at p is a YES offer at 1 - p, so each
    side's asks and ask liquidity come from the opposite side's bids.
    """
    book = book or {}
    yes_bids = _levels(book.get("yes"))
    no_bids = _levels(book.get("no"))

    def side_summary(bids: List[tuple], opposite: List[tuple]) -> Dict[str, Any]:
        best_bid = bids[0][0] if bids else None
        best_ask = round(1 - opposite[0][0], 4) if opposite else None
        spread = best_ask - best_bid if best_bid is not None and best_ask is not None else None
        return {
            "bestBid": best_bid,
            "bestAsk": best_ask,
            "spread": spread,
            "bidLiquidity": sum(size for _, size in bids[:depth_levels]),
            "askLiquidity": sum(size for _, size in opposite[:depth_levels])
        }

    return {
        "yes": side_summary(yes_bids, no_bids),
        "no": side_summary(no_bids, yes_bids)
    }


async def _get_json(session: aiohttp.ClientSession, url: str, params: Optional[Dict[str, Any]] = None) -> Optional[Any]:
    try:
        timeout = aiohttp.ClientTimeout(total=10)
        async with session.get(url, params=params, timeout=timeout) as response:
            if not response.ok:
                logger.warning("Kalshi error: %s %s", response.status, url)
                return None
            return await response.json()
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
        logger.warning("Kalshi fetch failed (%s): %s", url, e)
        return None


async def fetch_market_by_ticker(
    session: aiohttp.ClientSession,
    ticker: str,
    base_url: str = "https://api.elections.kalshi.com"
) -> Optional[Dict[str, Any]]:
    """Fetch one market by ticker."""
    data = await _get_json(session, f"{base_url}{API_PREFIX}/markets/{ticker}")
    return data.get("market") if isinstance(data, dict) else None


async def fetch_open_markets(
    session: aiohttp.ClientSession,
    series_ticker: str,
    base_url: str = "https://api.elections.kalshi.com",
    limit: int = 100
) -> List[Dict[str, Any]]:
    """Fetch open markets for a series."""
    params = {"series_ticker": series_ticker, "status": "open", "limit": limit}
    data = await _get_json(session, f"{base_url}{API_PREFIX}/markets", params)
    markets = data.get("markets") if isinstance(data, dict) else None
    return markets if isinstance(markets, list) else []


async def fetch_order_book(
    session: aiohttp.ClientSession,
    ticker: str,
    base_url: str = "https://api.elections.kalshi.com"
) -> Dict[str, Any]:
    """Fetch the order book for a market."""
    data = await _get_json(session, f"{base_url}{API_PREFIX}/markets/{ticker}/orderbook")
    book = data.get("orderbook") if isinstance(data, dict) else None
    return book if isinstance(book, dict) else {"yes": [], "no": []}


def _cents_to_prob(x: Any) -> Optional[float]:
    n = to_number(x)
    return n / 100 if n else None


async def fetch_kalshi_snapshot(
    session: aiohttp.ClientSession,
    kalshi_config: Dict[str, Any],
    btc_price: Optional[float] = None
) -> Dict[str, Any]:
    """Fetch the current hourly market with prices and order book summary."""
    base_url = kalshi_config["base_url"]

    if kalshi_config.get("market_ticker"):
        market = await fetch_market_by_ticker(session, kalshi_config["market_ticker"], base_url)
    else:
        markets = await fetch_open_markets(session, kalshi_config["series_ticker"], base_url)
        market = pick_current_market(
            markets,
            btc_price,
            horizon_minutes=kalshi_config.get("max_close_horizon_minutes", 120)
        )
    if not market:
        return {"ok": False, "reason": "market_not_found"}

    ticker = market.get("ticker")
    book = await fetch_order_book(session, ticker, base_url)
    summary = summarize_order_book(book, kalshi_config.get("depth_levels", 5))

    return {
        "ok": True,
        "market": market,
        "ticker": ticker,
        "strikePrice": market_strike(market),
        "closeTimeMs": safe_time_ms(market.get("close_time")),
        "prices": {
            # YES settles if price finishes at or above the strike
            "up": _cents_to_prob(market.get("yes_bid")),
            "down": _cents_to_prob(market.get("no_bid"))
        },
        "orderbook": {
            "up": summary["yes"],
            "down": summary["no"]
        }
    }
