"""Probability scoring engine."""

import math
from typing import Dict, Any, Optional

from ..config import SCORER_CONFIG, DECAY_CONFIG


def clamp(value: float, min_val: float, max_val: float) -> float:
    """Clamp value between min and max."""
    return max(min_val, min(max_val, value))


def _sign(x: float) -> float:
    return 1.0 if x > 0 else -1.0 if x < 0 else 0.0


def score_direction(
    price: Optional[float] = None,
    vwap: Optional[float] = None,
    vwap_slope: Optional[float] = None,
    rsi: Optional[float] = None,
    rsi_slope: Optional[float] = None,
    macd: Optional[Dict[str, Any]] = None,
    heiken_color: Optional[str] = None,
    heiken_count: Optional[int] = None,
    failed_vwap_reclaim: Optional[bool] = None,
    regime: Optional[str] = None,
    weights: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Score the probability that price closes the window higher.

    Starts from a neutral prior and adds one bounded contribution per
    available signal. Missing inputs contribute nothing. Each contribution
    is capped so no single indicator can leave the 0.05-0.95 band on its
    own, the regime damps or keeps the summed adjustment, and the result is
    clamped to [0.01, 0.99].

    Returns:
        {
            "rawUp": float,
            "rawDown": float,  # 1 - rawUp
            "contributions": {name: signed adjustment}
        }
    """
    w = weights or SCORER_CONFIG
    cap = w["contribution_cap"]
    contributions: Dict[str, float] = {}

    def add(name: str, value: float):
        contributions[name] = clamp(value, -cap, cap)

    # 1. Distance from VWAP
    if price is not None and vwap is not None and vwap > 0:
        dist = (price - vwap) / vwap
        add("vwapDist", clamp(dist / w["vwap_dist_scale"], -1, 1) * w["vwap_dist_weight"])

    # 2. VWAP slope direction
    if vwap_slope is not None and vwap_slope != 0:
        add("vwapSlope", _sign(vwap_slope) * w["vwap_slope_weight"])

    # 3. RSI level and slope
    if rsi is not None:
        add("rsiLevel", clamp((rsi - 50) / w["rsi_level_scale"], -1, 1) * w["rsi_level_weight"])

    if rsi_slope is not None:
        add("rsiSlope", clamp(rsi_slope / w["rsi_slope_scale"], -1, 1) * w["rsi_slope_weight"])

    # 4. MACD histogram (expanding counts more) and line vs zero
    if macd is not None:
        hist = macd.get("hist")
        hist_delta = macd.get("histDelta")
        macd_line = macd.get("macdLine")

        if hist is not None and hist != 0:
            macd_signal = 0.6 * _sign(hist)
            if hist_delta is not None and _sign(hist_delta) == _sign(hist):
                macd_signal += 0.4 * _sign(hist)
            add("macdHist", macd_signal * w["macd_hist_weight"])

        if macd_line is not None and macd_line != 0:
            add("macdLine", _sign(macd_line) * w["macd_line_weight"])

    # 5. Heiken Ashi color weighted by run length
    if heiken_color in ("green", "red") and heiken_count:
        run = min(heiken_count / w["heiken_full_run"], 1.0)
        direction = 1.0 if heiken_color == "green" else -1.0
        add("heiken", direction * run * w["heiken_weight"])

    # 6. Rejection at VWAP after a reclaim
    if failed_vwap_reclaim is True:
        add("failedVwapReclaim", -w["failed_reclaim_penalty"])

    # 7. Regime bias
    if regime == "TREND_UP":
        add("regime", w["regime_bias"])
    elif regime == "TREND_DOWN":
        add("regime", -w["regime_bias"])

    damping = w["regime_damping"].get(regime, 1.0) if regime else 1.0
    adjustment = sum(contributions.values()) * damping

    raw_up = clamp(w["prior"] + adjustment, w["min_prob"], w["max_prob"])

    return {
        "rawUp": raw_up,
        "rawDown": 1 - raw_up,
        "contributions": contributions
    }


def apply_time_awareness(
    raw_up: float,
    remaining_minutes: Optional[float],
    window_minutes: float,
    config: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Reshape a probability by time left in the settlement window.

    The log-odds of `raw_up` are scaled by gain ** e, where e rises linearly
    from -1 at window open to 0 at the pivot and +1 at expiry. Early in the
    window estimates are pulled toward 0.5; near expiry they are pushed
    further toward their side. The transform is monotonic in `raw_up` and
    leaves 0.5 unchanged.
    """
    cfg = config or DECAY_CONFIG
    gain = cfg["gain"]
    pivot = cfg["pivot"]

    if remaining_minutes is None:
        remaining_minutes = window_minutes

    time_decay = clamp(remaining_minutes / window_minutes, 0, 1) if window_minutes > 0 else 0.0

    if time_decay <= pivot:
        exponent = 1 - time_decay / pivot if pivot > 0 else 0.0
    else:
        exponent = -(time_decay - pivot) / (1 - pivot)

    k = gain ** exponent

    p = clamp(raw_up, 0, 1)
    if p in (0.0, 1.0) or p == 0.5:
        adjusted_up = p
    else:
        log_odds = math.log(p / (1 - p)) * k
        if log_odds >= 0:
            adjusted_up = 1 / (1 + math.exp(-log_odds))
        else:
            e = math.exp(log_odds)
            adjusted_up = e / (1 + e)

    return {
        "timeDecay": time_decay,
        "gain": k,
        "adjustedUp": adjusted_up,
        "adjustedDown": 1 - adjusted_up
    }
