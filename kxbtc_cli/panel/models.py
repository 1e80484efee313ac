"""Value types passed between pipeline stages."""

from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Optional, Dict, Any


@dataclass(frozen=True)
class MarketQuote:
    """Implied probabilities from the prediction market (0-1, may not sum to 1)."""
    implied_up: Optional[float] = None
    implied_down: Optional[float] = None


@dataclass(frozen=True)
class IndicatorSnapshot:
    """Latest indicator values computed from one candle series."""
    price: Optional[float] = None
    vwap_now: Optional[float] = None
    vwap_slope: Optional[float] = None
    vwap_dist: Optional[float] = None
    vwap_cross_count: Optional[int] = None
    volume_recent: Optional[float] = None
    volume_avg: Optional[float] = None
    rsi_now: Optional[float] = None
    rsi_ma: Optional[float] = None
    rsi_slope: Optional[float] = None
    macd: Optional[Dict[str, Any]] = None  # macdLine, signalLine, hist, histDelta
    heiken_color: Optional[str] = None  # "green", "red" or None
    heiken_count: int = 0
    failed_vwap_reclaim: bool = False
    delta_1m: Optional[float] = None
    delta_3m: Optional[float] = None
    last_close: Optional[float] = None
    coarse_heiken_color: Optional[str] = None
    coarse_heiken_count: int = 0


@dataclass(frozen=True)
class CycleResult:
    """Everything one pipeline pass produced."""
    snapshot: IndicatorSnapshot
    regime: Dict[str, Any]
    raw: Dict[str, Any]
    adjusted: Dict[str, Any]
    edge: Dict[str, Any]
    decision: Dict[str, Any]
    remaining_minutes: float
    window_minutes: float

    @property
    def signal(self) -> str:
        """Short action label: BUY_YES, BUY_NO or NO_TRADE."""
        if self.decision["action"] != "ENTER":
            return "NO_TRADE"
        return "BUY_YES" if self.decision["side"] == "UP" else "BUY_NO"

    def to_signal(
        self,
        ticker: Optional[str] = None,
        timestamp: Optional[datetime] = None,
        orderbook: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """JSON-ready record for the downstream executor.

        `orderbook` is the per-side summary (`up`/`down`) from the market
        snapshot.
        """
        ts = timestamp or datetime.now(timezone.utc)
        d = self.decision
        macd = self.snapshot.macd

        return {
            "timestamp": ts.isoformat(),
            "ticker": ticker,
            "btc_price": self.snapshot.price,
            "signal": self.signal,
            "signal_side": d["side"],
            "phase": d["phase"],
            "strength": d["strength"],
            "reason": d["reason"],
            "edge_up": self.edge["edgeUp"],
            "edge_down": self.edge["edgeDown"],
            "best_edge": d["edge"],
            "model_up": self.adjusted["adjustedUp"],
            "model_down": self.adjusted["adjustedDown"],
            "raw_up": self.raw["rawUp"],
            "market_yes": self.edge["marketUp"],
            "market_no": self.edge["marketDown"],
            "market_imbalance": self.edge["marketImbalance"],
            "orderbook": orderbook,
            "time_remaining_min": self.remaining_minutes,
            "regime": self.regime["regime"],
            "rsi": self.snapshot.rsi_now,
            "macd_signal": None if macd is None else ("bearish" if macd["hist"] < 0 else "bullish"),
            "heiken_ashi": {
                "color": self.snapshot.heiken_color,
                "count": self.snapshot.heiken_count
            },
            "snapshot": asdict(self.snapshot)
        }
