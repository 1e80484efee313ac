"""Coinbase WebSocket ticker stream."""

import asyncio
import json
import logging
import time
from typing import Dict, Any, Optional

import websockets
from websockets.exceptions import WebSocketException

from ..utils import to_number, parse_iso_ms

logger = logging.getLogger(__name__)


def parse_ticker_message(msg: Dict[str, Any], product_id: str) -> Optional[Dict[str, Any]]:
    """Extract a tick from a Coinbase `ticker` channel message."""
    if not isinstance(msg, dict) or msg.get("type") != "ticker" or msg.get("product_id") != product_id:
        return None

    price = to_number(msg.get("price"))
    if price is None:
        return None

    tick_time = parse_iso_ms(msg.get("time"))

    return {
        "price": price,
        "time": tick_time if tick_time is not None else int(time.time() * 1000),
        "bestBid": to_number(msg.get("best_bid")),
        "bestAsk": to_number(msg.get("best_ask")),
        "volume24h": to_number(msg.get("volume_24h"))
    }


class CoinbaseTickerStream:
    """Coinbase WebSocket ticker stream with automatic reconnect."""

    def __init__(
        self,
        product_id: str = "BTC-USD",
        ws_url: str = "wss://ws-feed.exchange.coinbase.com",
        max_age_ms: int = 10_000
    ):
        self.product_id = product_id
        self.ws_url = ws_url
        self.max_age_ms = max_age_ms
        self.last_tick: Optional[Dict[str, Any]] = None
        self.connected = False
        self._closed = False
        self._task: Optional[asyncio.Task] = None
        self._reconnect_ms = 500

    async def _run(self):
        """Connect, subscribe and read until closed; reconnect on failure."""
        while not self._closed:
            try:
                async with websockets.connect(self.ws_url) as ws:
                    await ws.send(json.dumps({
                        "type": "subscribe",
                        "product_ids": [self.product_id],
                        "channels": ["ticker"]
                    }))
                    self.connected = True
                    self._reconnect_ms = 500
                    logger.info("Coinbase WS connected (%s)", self.product_id)

                    async for message in ws:
                        if self._closed:
                            break
                        try:
                            tick = parse_ticker_message(json.loads(message), self.product_id)
                        except json.JSONDecodeError:
                            continue
                        if tick is not None:
                            self.last_tick = tick

            except asyncio.CancelledError:
                raise
            except (OSError, asyncio.TimeoutError, WebSocketException) as e:
                logger.warning("Coinbase WS error: %s", e)
            finally:
                self.connected = False

            if not self._closed:
                await asyncio.sleep(self._reconnect_ms / 1000)
                self._reconnect_ms = min(10000, int(self._reconnect_ms * 1.5))

    async def start(self):
        """Start the stream."""
        self._task = asyncio.create_task(self._run())

    def get_last(self, now_ms: Optional[int] = None) -> Optional[Dict[str, Any]]:
        """Get the most recent tick, or None while disconnected or stale."""
        tick = self.last_tick
        if tick is None or not self.connected:
            return None
        if now_ms is None:
            now_ms = int(time.time() * 1000)
        if now_ms - tick["time"] > self.max_age_ms:
            return None
        return tick

    def is_connected(self) -> bool:
        return self.connected

    async def close(self):
        """Close the stream."""
        self._closed = True
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
