"""Signal panel: indicators, engines and the live loop."""

from .config import get_config
from .models import MarketQuote, IndicatorSnapshot, CycleResult
from .pipeline import run_cycle
from .main import run_panel, run_panel_async, run_signal_once

__all__ = [
    "get_config",
    "MarketQuote",
    "IndicatorSnapshot",
    "CycleResult",
    "run_cycle",
    "run_panel",
    "run_panel_async",
    "run_signal_once",
]
