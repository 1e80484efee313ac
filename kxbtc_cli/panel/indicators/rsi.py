"""RSI (Relative Strength Index) indicator."""

from typing import List, Optional


def _rsi_from_averages(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        # No movement at all reads as neutral
        return 50.0 if avg_gain == 0 else 100.0

    rs = avg_gain / avg_loss
    return 100 - (100 / (1 + rs))


def compute_rsi_series(closes: List[float], period: int) -> List[Optional[float]]:
    """Compute Wilder's RSI for every prefix of `closes`.

    The result is aligned with `closes`: entry i is the RSI using closes
    0..i, and the first `period` entries are None. Wilder smoothing is
    recursive, so growing the series one close at a time gives the same
    values as recomputing each prefix from scratch.
    """
    if not isinstance(closes, list) or period <= 0:
        return []

    series: List[Optional[float]] = [None] * len(closes)
    if len(closes) < period + 1:
        return series

    gains = 0.0
    losses = 0.0
    for i in range(1, period + 1):
        diff = closes[i] - closes[i - 1]
        if diff > 0:
            gains += diff
        else:
            losses += -diff

    avg_gain = gains / period
    avg_loss = losses / period
    series[period] = _rsi_from_averages(avg_gain, avg_loss)

    for i in range(period + 1, len(closes)):
        diff = closes[i] - closes[i - 1]
        gain = diff if diff > 0 else 0.0
        loss = -diff if diff < 0 else 0.0
        avg_gain = (avg_gain * (period - 1) + gain) / period
        avg_loss = (avg_loss * (period - 1) + loss) / period
        series[i] = _rsi_from_averages(avg_gain, avg_loss)

    return series


def compute_rsi(closes: List[float], period: int) -> Optional[float]:
    """Compute the latest RSI value."""
    series = compute_rsi_series(closes, period)
    return series[-1] if series else None


def sma(values: List[float], period: int) -> Optional[float]:
    """Compute Simple Moving Average of the trailing `period` values."""
    if not isinstance(values, list) or period <= 0 or len(values) < period:
        return None

    slice_vals = values[-period:]
    return sum(slice_vals) / period


def slope_last(values: List[float], points: int) -> Optional[float]:
    """Change between the last value and the one `points` back, per point."""
    if not isinstance(values, list) or points <= 0 or len(values) <= points:
        return None

    return (values[-1] - values[-1 - points]) / points
