"""Technical indicators for panel module."""

from .vwap import compute_session_vwap, compute_vwap_series, vwap_slope
from .rsi import compute_rsi, compute_rsi_series, sma, slope_last
from .macd import compute_macd, macd_label
from .heiken_ashi import compute_heiken_ashi, count_consecutive

__all__ = [
    "compute_session_vwap",
    "compute_vwap_series",
    "vwap_slope",
    "compute_rsi",
    "compute_rsi_series",
    "sma",
    "slope_last",
    "compute_macd",
    "macd_label",
    "compute_heiken_ashi",
    "count_consecutive",
]
