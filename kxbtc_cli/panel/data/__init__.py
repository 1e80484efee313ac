"""Data fetching layer for panel module."""

from .coinbase import fetch_klines, fetch_last_price, fetch_24h_stats, parse_candles
from .coinbase_ws import CoinbaseTickerStream
from .kalshi import (
    fetch_market_by_ticker,
    fetch_open_markets,
    pick_current_market,
    parse_strike,
    fetch_order_book,
    summarize_order_book,
    fetch_kalshi_snapshot
)

__all__ = [
    "fetch_klines",
    "fetch_last_price",
    "fetch_24h_stats",
    "parse_candles",
    "CoinbaseTickerStream",
    "fetch_market_by_ticker",
    "fetch_open_markets",
    "pick_current_market",
    "parse_strike",
    "fetch_order_book",
    "summarize_order_book",
    "fetch_kalshi_snapshot",
]
