"""Decision engines for panel module."""

from .regime import detect_regime, RegimeLabel
from .probability import score_direction, apply_time_awareness
from .edge import compute_edge, get_phase, decide, Phase

__all__ = [
    "detect_regime",
    "RegimeLabel",
    "score_direction",
    "apply_time_awareness",
    "compute_edge",
    "get_phase",
    "decide",
    "Phase",
]
