"""Regime detection engine."""

from typing import Dict, Any, Literal, Optional

from ..config import REGIME_CONFIG

RegimeLabel = Literal["TREND_UP", "TREND_DOWN", "RANGE", "VOLATILE"]


def detect_regime(
    price: Optional[float],
    vwap: Optional[float],
    vwap_slope: Optional[float],
    vwap_cross_count: Optional[int],
    volume_recent: Optional[float],
    volume_avg: Optional[float],
    config: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Detect market regime.

    Any gap in price, VWAP, slope or crossing count is RANGE. Otherwise a
    recent/average volume ratio above the volatile threshold is VOLATILE
    whatever price is doing.
    """
    cfg = config or REGIME_CONFIG

    volume_ratio = None
    if volume_recent is not None and volume_avg is not None and volume_avg > 0:
        volume_ratio = volume_recent / volume_avg

    if price is None or vwap is None or vwap_slope is None or vwap_cross_count is None:
        return {"regime": "RANGE", "reason": "missing_inputs", "volumeRatio": volume_ratio}

    if volume_ratio is not None and volume_ratio > cfg["volatile_volume_ratio"]:
        return {"regime": "VOLATILE", "reason": "volume_spike", "volumeRatio": volume_ratio}

    few_crosses = vwap_cross_count <= cfg["trend_max_crosses"]

    if vwap_slope > 0 and price > vwap and few_crosses:
        return {"regime": "TREND_UP", "reason": "price_above_vwap_slope_up", "volumeRatio": volume_ratio}

    if vwap_slope < 0 and price < vwap and few_crosses:
        return {"regime": "TREND_DOWN", "reason": "price_below_vwap_slope_down", "volumeRatio": volume_ratio}

    flat = vwap > 0 and abs(vwap_slope) / vwap < cfg["flat_slope_pct"]
    if vwap_cross_count >= cfg["range_min_crosses"] and flat:
        return {"regime": "RANGE", "reason": "frequent_vwap_cross", "volumeRatio": volume_ratio}

    return {"regime": "RANGE", "reason": "default", "volumeRatio": volume_ratio}
