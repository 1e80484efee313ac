"""Heiken Ashi indicator."""

from typing import List, Dict, Any


def compute_heiken_ashi(candles: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Compute Heiken Ashi candles.

    haClose is the OHLC mean. The first haOpen is seeded from the raw
    candle's (open + close) / 2; later ones are the midpoint of the previous
    HA body. Candles missing any OHLC value are skipped.
    """
    if not isinstance(candles, list) or len(candles) == 0:
        return []

    ha: List[Dict[str, Any]] = []

    for c in candles:
        if None in (c.get("open"), c.get("high"), c.get("low"), c.get("close")):
            continue

        ha_close = (c["open"] + c["high"] + c["low"] + c["close"]) / 4

        if ha:
            prev = ha[-1]
            ha_open = (prev["open"] + prev["close"]) / 2
        else:
            ha_open = (c["open"] + c["close"]) / 2

        ha_high = max(c["high"], ha_open, ha_close)
        ha_low = min(c["low"], ha_open, ha_close)

        ha.append({
            "open": ha_open,
            "high": ha_high,
            "low": ha_low,
            "close": ha_close,
            "isGreen": ha_close >= ha_open,
            "body": abs(ha_close - ha_open)
        })

    return ha


def count_consecutive(ha_candles: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Count consecutive same-color Heiken Ashi candles, newest first."""
    if not isinstance(ha_candles, list) or len(ha_candles) == 0:
        return {"color": None, "count": 0}

    target = "green" if ha_candles[-1].get("isGreen", False) else "red"

    count = 0
    for c in reversed(ha_candles):
        color = "green" if c.get("isGreen", False) else "red"
        if color != target:
            break
        count += 1

    return {"color": target, "count": count}
