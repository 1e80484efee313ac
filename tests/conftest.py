import pytest

from kxbtc_cli.panel.config import get_config

BASE_TIME_MS = 1_767_225_600_000  # 2026-01-01T00:00:00Z


def make_candles(closes, volume=10.0, start_ms=BASE_TIME_MS, spread=1.0):
    """Build 1m candles from closes; each opens at the previous close."""
    candles = []
    prev = closes[0] if closes else None
    for i, close in enumerate(closes):
        open_ = prev
        candles.append({
            "openTime": start_ms + i * 60_000,
            "open": open_,
            "high": max(open_, close) + spread,
            "low": min(open_, close) - spread,
            "close": close,
            "volume": volume,
            "closeTime": start_ms + (i + 1) * 60_000,
        })
        prev = close
    return candles


@pytest.fixture
def candle_factory():
    return make_candles


@pytest.fixture
def config():
    return get_config()


@pytest.fixture
def rising_candles():
    return make_candles([100_000 + 0.05 * i * i for i in range(240)])


@pytest.fixture
def falling_candles():
    return make_candles([100_000 - 0.05 * i * i for i in range(240)])
