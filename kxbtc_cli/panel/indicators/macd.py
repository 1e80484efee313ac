"""MACD (Moving Average Convergence Divergence) indicator."""

from typing import List, Dict, Any, Optional


def ema_series(values: List[float], period: int) -> List[Optional[float]]:
    """Compute an EMA series aligned with `values`.

    Seeded with the simple average of the first `period` values; entries
    before the seed are None.
    """
    if not isinstance(values, list) or period <= 0:
        return []

    out: List[Optional[float]] = [None] * len(values)
    if len(values) < period:
        return out

    k = 2 / (period + 1)
    prev = sum(values[:period]) / period
    out[period - 1] = prev

    for i in range(period, len(values)):
        prev = values[i] * k + prev * (1 - k)
        out[i] = prev

    return out


def compute_macd(closes: List[float], fast: int, slow: int, signal: int) -> Optional[Dict[str, Any]]:
    """Compute MACD line, signal line, histogram and histogram delta."""
    if not isinstance(closes, list) or len(closes) < slow + signal - 1:
        return None

    fast_series = ema_series(closes, fast)
    slow_series = ema_series(closes, slow)

    macd_series = [
        f - s
        for f, s in zip(fast_series, slow_series)
        if f is not None and s is not None
    ]

    signal_series = ema_series(macd_series, signal)
    hist_series = [
        m - s
        for m, s in zip(macd_series, signal_series)
        if s is not None
    ]

    if not hist_series:
        return None

    hist = hist_series[-1]
    hist_delta = hist - hist_series[-2] if len(hist_series) >= 2 else None

    return {
        "macdLine": macd_series[-1],
        "signalLine": signal_series[-1],
        "hist": hist,
        "histDelta": hist_delta
    }


def macd_label(macd: Optional[Dict[str, Any]]) -> str:
    """Describe MACD direction and whether momentum is expanding."""
    if macd is None:
        return "-"

    hist = macd.get("hist")
    hist_delta = macd.get("histDelta")

    if hist < 0:
        return "bearish (expanding)" if hist_delta is not None and hist_delta < 0 else "bearish"
    return "bullish (expanding)" if hist_delta is not None and hist_delta > 0 else "bullish"
