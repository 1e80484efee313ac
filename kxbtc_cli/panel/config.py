"""Configuration for panel module."""

import os
from typing import Literal

from dotenv import load_dotenv

load_dotenv()

ProductType = Literal["BTC-USD"]


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


# Phase boundaries are calibrated for a 60-minute settlement window and
# scale proportionally for other window lengths.
GATE_CONFIG = {
    "reference_window_minutes": 60,
    "early_above_minutes": 40,
    "late_at_or_below_minutes": 20,
    "edge_threshold": {"EARLY": 0.05, "MID": 0.10, "LATE": 0.20},
    "min_prob": {"EARLY": 0.55, "MID": 0.60, "LATE": 0.65},
    "strong_edge": 0.20,
    "good_edge": 0.10,
}

REGIME_CONFIG = {
    "volatile_volume_ratio": 2.0,
    "trend_max_crosses": 2,
    "range_min_crosses": 3,
    # |vwap slope| / vwap per candle below this is "flat"
    "flat_slope_pct": 0.00005,
}

SCORER_CONFIG = {
    "prior": 0.5,
    "contribution_cap": 0.45,
    "vwap_dist_weight": 0.08,
    "vwap_dist_scale": 0.002,
    "vwap_slope_weight": 0.05,
    "rsi_level_weight": 0.06,
    "rsi_level_scale": 20.0,
    "rsi_slope_weight": 0.04,
    "rsi_slope_scale": 2.0,
    "macd_hist_weight": 0.08,
    "macd_line_weight": 0.03,
    "heiken_weight": 0.06,
    "heiken_full_run": 5,
    "failed_reclaim_penalty": 0.08,
    "regime_bias": 0.04,
    "regime_damping": {"TREND_UP": 1.0, "TREND_DOWN": 1.0, "RANGE": 0.75, "VOLATILE": 0.5},
    "min_prob": 0.01,
    "max_prob": 0.99,
}

DECAY_CONFIG = {
    # Log-odds multiplier at expiry; its inverse applies at window open.
    "gain": 2.0,
    # Fraction of the window remaining at which the transform is the identity.
    "pivot": 0.5,
}


def get_config(product: ProductType = "BTC-USD") -> dict:
    """Get configuration for a given product."""
    product_id = os.getenv("COINBASE_PRODUCT_ID", product).strip() or product
    log_dir = os.getenv("SIGNAL_LOG_DIR", "./logs").strip() or "./logs"

    return {
        "product_id": product_id,

        "coinbase": {
            "base_url": os.getenv("COINBASE_BASE_URL", "https://api.exchange.coinbase.com"),
            "ws_url": os.getenv("COINBASE_WS_URL", "wss://ws-feed.exchange.coinbase.com"),
            # Older ticks fall back to the REST ticker
            "ws_max_age_ms": _env_int("COINBASE_WS_MAX_AGE_MS", 10_000),
        },

        "kalshi": {
            "base_url": os.getenv("KALSHI_BASE_URL", "https://api.elections.kalshi.com"),
            # Hourly Bitcoin series
            "series_ticker": os.getenv("KALSHI_TICKER", "KXBTCD"),
            # Pin one market instead of picking the nearest strike each cycle
            "market_ticker": os.getenv("KALSHI_MARKET_TICKER", "").strip() or None,
            "depth_levels": 5,
            "max_close_horizon_minutes": 120,
        },

        "poll_interval_ms": _env_int("POLL_INTERVAL_MS", 2000),
        "candle_window_minutes": 60,

        "fine_interval": "1m",
        "fine_limit": 240,
        "coarse_interval": "5m",
        "coarse_limit": 200,

        "vwap_slope_lookback_minutes": 10,
        "vwap_cross_lookback": 20,
        "volume_recent_candles": 20,
        "volume_avg_candles": 120,

        "rsi_period": 14,
        "rsi_ma_period": 14,
        "rsi_slope_points": 2,

        "macd_fast": 12,
        "macd_slow": 26,
        "macd_signal": 9,

        "regime": dict(REGIME_CONFIG),
        "scorer": {**SCORER_CONFIG, "regime_damping": dict(SCORER_CONFIG["regime_damping"])},
        "decay": dict(DECAY_CONFIG),
        "gate": {
            **GATE_CONFIG,
            "edge_threshold": dict(GATE_CONFIG["edge_threshold"]),
            "min_prob": dict(GATE_CONFIG["min_prob"]),
        },

        "logs": {
            "csv_path": os.path.join(log_dir, "kalshi-signals.csv"),
            "json_path": os.path.join(log_dir, "current-signal.json"),
        },
    }
