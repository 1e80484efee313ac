"""Build an indicator snapshot from a candle series."""

import logging
from typing import List, Dict, Any, Optional

from .indicators import (
    compute_vwap_series, vwap_slope, compute_rsi_series, sma, slope_last,
    compute_macd, compute_heiken_ashi, count_consecutive
)
from .models import IndicatorSnapshot
from .utils import to_number

logger = logging.getLogger(__name__)

PRICE_FIELDS = ("open", "high", "low", "close", "volume")


def _non_negative(x: Any) -> Optional[float]:
    n = to_number(x)
    return n if n is not None and n >= 0 else None


def normalize_candles(candles: Optional[List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
    """Return candles oldest-first with one bar per openTime.

    Price and volume fields that fail numeric coercion or are negative
    become None. Bars without a usable open/close time span are dropped,
    and for duplicate openTimes the later bar wins.
    """
    by_open: Dict[int, Dict[str, Any]] = {}
    dropped = 0

    for c in candles or []:
        open_time = to_number(c.get("openTime"))
        close_time = to_number(c.get("closeTime"))
        if open_time is None or close_time is None or close_time <= open_time:
            dropped += 1
            continue

        bar = {k: _non_negative(c.get(k)) for k in PRICE_FIELDS}
        bar["openTime"] = int(open_time)
        bar["closeTime"] = int(close_time)
        by_open[bar["openTime"]] = bar

    if dropped:
        logger.debug("Dropped %d candle(s) without a valid time span", dropped)

    return [by_open[t] for t in sorted(by_open)]


def count_vwap_crosses(closes: List[Optional[float]], vwap_series: List[Optional[float]], lookback: int) -> Optional[int]:
    """Count VWAP crosses in lookback period."""
    if len(closes) < lookback or len(vwap_series) < lookback:
        return None

    crosses = 0
    for i in range(len(closes) - lookback + 1, len(closes)):
        if None in (closes[i - 1], vwap_series[i - 1], closes[i], vwap_series[i]):
            continue
        prev = closes[i - 1] - vwap_series[i - 1]
        cur = closes[i] - vwap_series[i]
        if prev == 0:
            continue
        if (prev > 0 and cur < 0) or (prev < 0 and cur > 0):
            crosses += 1

    return crosses


def detect_failed_vwap_reclaim(closes: List[Optional[float]], vwap_series: List[Optional[float]]) -> bool:
    """Previous close was above its VWAP, latest close is back below."""
    if len(closes) < 2 or len(vwap_series) < 3:
        return False

    if None in (closes[-1], closes[-2], vwap_series[-1], vwap_series[-2]):
        return False

    return closes[-1] < vwap_series[-1] and closes[-2] > vwap_series[-2]


def _close_ago(closes: List[float], n: int) -> Optional[float]:
    return closes[-1 - n] if len(closes) > n else None


def build_indicator_snapshot(
    candles: List[Dict[str, Any]],
    config: Dict[str, Any],
    price: Optional[float] = None,
    coarse_candles: Optional[List[Dict[str, Any]]] = None
) -> IndicatorSnapshot:
    """Compute every indicator over an ordered candle series.

    `price` is the latest traded price; the last close is used when it is
    not available.
    """
    aligned_closes = [c.get("close") for c in candles]
    closes = [x for x in aligned_closes if x is not None]

    vwap_series = compute_vwap_series(candles)
    vwap_now = vwap_series[-1] if vwap_series else None
    slope = vwap_slope(vwap_series, config["vwap_slope_lookback_minutes"])

    last_close = closes[-1] if closes else None
    price = to_number(price)
    if price is None:
        price = last_close

    vwap_dist = (price - vwap_now) / vwap_now if price is not None and vwap_now else None

    rsi_series = [r for r in compute_rsi_series(closes, config["rsi_period"]) if r is not None]
    rsi_now = rsi_series[-1] if rsi_series else None
    rsi_ma = sma(rsi_series, config["rsi_ma_period"])
    rsi_slope = slope_last(rsi_series, config["rsi_slope_points"])

    macd = compute_macd(closes, config["macd_fast"], config["macd_slow"], config["macd_signal"])

    consec = count_consecutive(compute_heiken_ashi(candles))

    coarse = {"color": None, "count": 0}
    if coarse_candles:
        coarse = count_consecutive(compute_heiken_ashi(coarse_candles))

    recent_n = config["volume_recent_candles"]
    avg_n = config["volume_avg_candles"]
    volumes = [c.get("volume") or 0 for c in candles]
    volume_recent = sum(volumes[-recent_n:]) if volumes else None
    volume_avg = sum(volumes[-avg_n:]) / (avg_n / recent_n) if len(volumes) >= avg_n else None

    delta_1m = None
    delta_3m = None
    if last_close is not None:
        prev_1 = _close_ago(closes, 1)
        prev_3 = _close_ago(closes, 3)
        delta_1m = last_close - prev_1 if prev_1 is not None else None
        delta_3m = last_close - prev_3 if prev_3 is not None else None

    return IndicatorSnapshot(
        price=price,
        vwap_now=vwap_now,
        vwap_slope=slope,
        vwap_dist=vwap_dist,
        vwap_cross_count=count_vwap_crosses(aligned_closes, vwap_series, config["vwap_cross_lookback"]),
        volume_recent=volume_recent,
        volume_avg=volume_avg,
        rsi_now=rsi_now,
        rsi_ma=rsi_ma,
        rsi_slope=rsi_slope,
        macd=macd,
        heiken_color=consec["color"],
        heiken_count=consec["count"],
        failed_vwap_reclaim=detect_failed_vwap_reclaim(aligned_closes, vwap_series),
        delta_1m=delta_1m,
        delta_3m=delta_3m,
        last_close=last_close,
        coarse_heiken_color=coarse["color"],
        coarse_heiken_count=coarse["count"]
    )
