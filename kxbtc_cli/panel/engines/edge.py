"""Edge computation and decision engine."""

import math
from typing import Dict, Any, Literal, Optional

from ..config import GATE_CONFIG

Phase = Literal["EARLY", "MID", "LATE"]


def clamp(value: float, min_val: float, max_val: float) -> float:
    """Clamp value between min and max."""
    return max(min_val, min(max_val, value))


def _finite(x: Optional[float]) -> Optional[float]:
    if x is None or isinstance(x, bool):
        return None
    try:
        x = float(x)
    except (TypeError, ValueError):
        return None
    return x if math.isfinite(x) else None


def compute_edge(
    model_up: float,
    model_down: float,
    market_yes: Optional[float],
    market_no: Optional[float]
) -> Dict[str, Any]:
    """Compute edge between model and market.

    Kalshi YES/NO prices are already 0-1 quotes, so each side passes through
    on its own. A YES + NO sum away from 1 is reported as `marketImbalance`
    and left uncorrected.
    """
    market_yes = _finite(market_yes)
    market_no = _finite(market_no)

    if market_yes is None or market_no is None:
        return {
            "marketUp": None,
            "marketDown": None,
            "edgeUp": None,
            "edgeDown": None,
            "marketImbalance": None
        }

    market_up = clamp(market_yes, 0, 1)
    market_down = clamp(market_no, 0, 1)

    return {
        "marketUp": market_up,
        "marketDown": market_down,
        "edgeUp": model_up - market_up,
        "edgeDown": model_down - market_down,
        "marketImbalance": market_up + market_down - 1
    }


def get_phase(
    remaining_minutes: float,
    window_minutes: float = 60,
    config: Optional[Dict[str, Any]] = None
) -> Phase:
    """Phase of the settlement window.

    For a 60-minute window: EARLY above 40 minutes left, MID above 20 up to
    and including 40, LATE at 20 or below. Boundaries scale with the window.
    """
    cfg = config or GATE_CONFIG
    ref = cfg["reference_window_minutes"]
    early_above = window_minutes * cfg["early_above_minutes"] / ref
    late_at_or_below = window_minutes * cfg["late_at_or_below_minutes"] / ref

    if remaining_minutes > early_above:
        return "EARLY"
    if remaining_minutes > late_at_or_below:
        return "MID"
    return "LATE"


def decide(
    remaining_minutes: float,
    edge_up: Optional[float],
    edge_down: Optional[float],
    model_up: Optional[float] = None,
    model_down: Optional[float] = None,
    window_minutes: float = 60,
    config: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Decide whether to enter based on edge and time left.

    The bar rises as the window closes: a directional thesis has less time
    to be proven right, so LATE needs more edge and a more confident model
    than EARLY.

    Args:
        remaining_minutes: Time left until settlement
        edge_up: Model probability - market probability for UP
        edge_down: Model probability - market probability for DOWN
        model_up: Model's UP probability
        model_down: Model's DOWN probability
        window_minutes: Settlement window length
        config: Gate thresholds (defaults to GATE_CONFIG)

    Returns:
        Decision dict with action, side, phase, strength, edges and reason.
    """
    cfg = config or GATE_CONFIG
    phase = get_phase(remaining_minutes, window_minutes, cfg)
    threshold = cfg["edge_threshold"][phase]
    min_prob = cfg["min_prob"][phase]

    decision = {
        "action": "NO_TRADE",
        "side": None,
        "phase": phase,
        "strength": None,
        "edgeUp": edge_up,
        "edgeDown": edge_down,
        "edge": None,
        "threshold": threshold,
        "minProb": min_prob,
        "reason": None
    }

    if edge_up is None or edge_down is None:
        decision["reason"] = "missing_market_data"
        return decision

    best_side = "UP" if edge_up > edge_down else "DOWN"
    best_edge = edge_up if best_side == "UP" else edge_down
    best_model = model_up if best_side == "UP" else model_down

    if best_edge < threshold:
        decision["reason"] = f"edge_below_{threshold}"
        return decision

    if best_model is not None and best_model < min_prob:
        decision["reason"] = f"prob_below_{min_prob}"
        return decision

    if best_edge >= cfg["strong_edge"]:
        strength = "STRONG"
    elif best_edge >= cfg["good_edge"]:
        strength = "GOOD"
    else:
        strength = "OPTIONAL"

    decision.update({
        "action": "ENTER",
        "side": best_side,
        "strength": strength,
        "edge": best_edge,
        "reason": f"edge_above_{threshold}"
    })
    return decision
