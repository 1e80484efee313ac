"""One signal cycle: candles and market quote in, decision out."""

import logging
from typing import List, Dict, Any, Optional

from .engines import detect_regime, score_direction, apply_time_awareness, compute_edge, decide
from .models import MarketQuote, CycleResult
from .snapshot import normalize_candles, build_indicator_snapshot

logger = logging.getLogger(__name__)


def run_cycle(
    candles: List[Dict[str, Any]],
    quote: Optional[MarketQuote],
    remaining_minutes: Optional[float],
    window_minutes: float,
    config: Dict[str, Any],
    price: Optional[float] = None,
    coarse_candles: Optional[List[Dict[str, Any]]] = None
) -> CycleResult:
    """Run indicators, regime, scoring, time decay, edge and the gate.

    Pure and synchronous. Missing history or a missing quote never raises;
    the cycle still ends in a well-formed NO_TRADE decision.
    """
    candles = normalize_candles(candles)
    coarse = normalize_candles(coarse_candles) if coarse_candles else None

    if remaining_minutes is None:
        remaining_minutes = window_minutes

    snapshot = build_indicator_snapshot(candles, config, price=price, coarse_candles=coarse)

    regime_info = detect_regime(
        snapshot.price,
        snapshot.vwap_now,
        snapshot.vwap_slope,
        snapshot.vwap_cross_count,
        snapshot.volume_recent,
        snapshot.volume_avg,
        config["regime"]
    )

    scored = score_direction(
        price=snapshot.price,
        vwap=snapshot.vwap_now,
        vwap_slope=snapshot.vwap_slope,
        rsi=snapshot.rsi_now,
        rsi_slope=snapshot.rsi_slope,
        macd=snapshot.macd,
        heiken_color=snapshot.heiken_color,
        heiken_count=snapshot.heiken_count,
        failed_vwap_reclaim=snapshot.failed_vwap_reclaim,
        regime=regime_info["regime"],
        weights=config["scorer"]
    )

    time_aware = apply_time_awareness(scored["rawUp"], remaining_minutes, window_minutes, config["decay"])

    quote = quote or MarketQuote()
    edge = compute_edge(
        time_aware["adjustedUp"],
        time_aware["adjustedDown"],
        quote.implied_up,
        quote.implied_down
    )

    rec = decide(
        remaining_minutes,
        edge["edgeUp"],
        edge["edgeDown"],
        time_aware["adjustedUp"],
        time_aware["adjustedDown"],
        window_minutes=window_minutes,
        config=config["gate"]
    )

    logger.debug(
        "cycle regime=%s rawUp=%.3f adjUp=%.3f action=%s reason=%s",
        regime_info["regime"], scored["rawUp"], time_aware["adjustedUp"], rec["action"], rec["reason"]
    )

    return CycleResult(
        snapshot=snapshot,
        regime=regime_info,
        raw=scored,
        adjusted=time_aware,
        edge=edge,
        decision=rec,
        remaining_minutes=remaining_minutes,
        window_minutes=window_minutes
    )
