"""Manager modules for Habit Targets integration.

Managers orchestrate workflows and coordinate between engines.
They are stateful, event-aware, and handle cross-cutting concerns.
"""

from .base_manager import BaseManager, get_event_signal
from .target_manager import TargetManager

__all__ = [
    "BaseManager",
    "TargetManager",
    "get_event_signal",
]
