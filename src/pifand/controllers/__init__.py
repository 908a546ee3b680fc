"""Control algorithms: hysteresis, failure handling and the tick loop."""

from .failsafe import SYNTHETIC_TEMPERATURE, FailureEscalation, RunawayGuard
from .fixed import FixedLevelController
from .hysteresis import next_tier, promoting_threshold, target_tier
from .loop import ControlLoop

__all__ = [
    "SYNTHETIC_TEMPERATURE",
    "ControlLoop",
    "FailureEscalation",
    "FixedLevelController",
    "RunawayGuard",
    "next_tier",
    "promoting_threshold",
    "target_tier",
]
