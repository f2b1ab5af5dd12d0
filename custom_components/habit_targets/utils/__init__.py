# File: utils/__init__.py
"""Pure Python utilities for Habit Targets.

This module contains pure Python functions with ZERO Home Assistant dependencies.
All functions here can be unit tested without Home Assistant mocking.

⚠️ UTILS PURITY: NO `homeassistant.*` imports allowed in this module.

Submodules:
    - dt_utils: Timezone resolution, local calendar boundaries, ISO conversion

Usage:
    from . import dt_utils
    from .dt_utils import resolve_timezone
"""

from . import dt_utils

__all__ = ["dt_utils"]
