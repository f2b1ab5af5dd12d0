"""Diagnostics support for Habit Targets integration.

The diagnostics JSON returns raw storage data - identical to the
habit_targets_data file, so it can be pasted back during data recovery.
"""

from typing import Any

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant

from . import const
from .storage_manager import HabitTargetsStorageManager


async def async_get_config_entry_diagnostics(
    hass: HomeAssistant, entry: ConfigEntry
) -> dict[str, Any]:
    """Return diagnostics for a config entry.

    Returns the raw storage data directly, all users included.
    """
    storage_manager: HabitTargetsStorageManager = hass.data[const.DOMAIN][
        entry.entry_id
    ][const.STORAGE_MANAGER]

    return storage_manager.data
