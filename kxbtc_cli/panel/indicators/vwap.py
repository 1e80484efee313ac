"""VWAP (Volume Weighted Average Price) indicator."""

from typing import List, Dict, Any, Optional


def compute_session_vwap(candles: List[Dict[str, Any]]) -> Optional[float]:
    """Compute VWAP over the whole session."""
    if not isinstance(candles, list) or len(candles) == 0:
        return None

    pv = 0.0  # Close * Volume
    v = 0.0   # Volume

    for candle in candles:
        close = candle.get("close")
        volume = candle.get("volume")

        if close is None or volume is None:
            continue

        pv += close * volume
        v += volume

    if v <= 0:
        return None

    return pv / v


def compute_vwap_series(candles: List[Dict[str, Any]]) -> List[Optional[float]]:
    """Compute cumulative VWAP series; entry i covers candles 0..i."""
    series: List[Optional[float]] = []
    pv = 0.0
    v = 0.0

    for candle in candles if isinstance(candles, list) else []:
        close = candle.get("close")
        volume = candle.get("volume")

        if close is not None and volume is not None:
            pv += close * volume
            v += volume

        series.append(pv / v if v > 0 else None)

    return series


def vwap_slope(series: List[Optional[float]], lookback: int) -> Optional[float]:
    """VWAP change per candle over the last `lookback` candles."""
    if lookback <= 0 or not isinstance(series, list) or len(series) <= lookback:
        return None

    now = series[-1]
    then = series[-1 - lookback]
    if now is None or then is None:
        return None

    return (now - then) / lookback
