"""Engine modules for Habit Targets integration.

Contains pure computation engines:
- window_engine: Window keys and bounds per window type
- instance_engine: Instance state machine and reconciliation planning
"""

# Use relative imports within package to avoid mypy module resolution issues
from .instance_engine import (
    InstanceEngine,
    InvalidTransitionError,
    ReconcilePlan,
    TransitionResult,
)
from .window_engine import Window, WindowBounds, WindowEngine, WindowType

__all__ = [
    "InstanceEngine",
    "InvalidTransitionError",
    "ReconcilePlan",
    "TransitionResult",
    "Window",
    "WindowBounds",
    "WindowEngine",
    "WindowType",
]
