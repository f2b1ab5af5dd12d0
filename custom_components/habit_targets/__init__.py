# File: __init__.py
"""Initialization file for the Habit Targets integration.

Handles setting up the integration, including loading configuration entries,
initializing data storage, and preparing the target manager.

Key Features:
- Config entry setup and unload support.
- Storage management for persistent per-user targets and instances.
- Service registration for reconcile, complete and target management.
"""

from __future__ import annotations

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant

from . import const
from .managers import TargetManager
from .services import async_setup_services, async_unload_services
from .storage_manager import HabitTargetsStorageManager


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up the integration from a config entry."""
    const.LOGGER.info("Starting setup for Habit Targets entry: %s", entry.entry_id)

    # Initialize the storage manager to handle persistent data.
    storage_manager = HabitTargetsStorageManager(hass, const.STORAGE_KEY)
    await storage_manager.async_initialize()

    target_manager = TargetManager(
        hass,
        entry.entry_id,
        storage_manager,
        retry_attempts=int(
            entry.options.get(const.CONF_RETRY_ATTEMPTS, const.DEFAULT_RETRY_ATTEMPTS)
        ),
        retry_base_delay=float(
            entry.options.get(
                const.CONF_RETRY_BASE_DELAY, const.DEFAULT_RETRY_BASE_DELAY
            )
        ),
    )

    hass.data.setdefault(const.DOMAIN, {})[entry.entry_id] = {
        const.TARGET_MANAGER: target_manager,
        const.STORAGE_MANAGER: storage_manager,
    }

    # Set up services required by the integration.
    async_setup_services(hass)

    # Options only affect the retry policy, applied on reload
    entry.async_on_unload(entry.add_update_listener(_async_update_listener))

    const.LOGGER.info("Habit Targets setup complete for entry: %s", entry.entry_id)
    return True


async def _async_update_listener(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Reload the entry after its options changed."""
    const.LOGGER.debug("Options updated for entry %s, reloading", entry.entry_id)
    await hass.config_entries.async_reload(entry.entry_id)


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    const.LOGGER.info("Unloading Habit Targets entry: %s", entry.entry_id)

    hass.data[const.DOMAIN].pop(entry.entry_id, None)
    if not hass.data[const.DOMAIN]:
        await async_unload_services(hass)

    return True


async def async_remove_entry(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Handle removal of a config entry."""
    const.LOGGER.info("Removing Habit Targets entry: %s", entry.entry_id)

    # The entry is unloaded by now, so open the store directly
    storage_manager = HabitTargetsStorageManager(hass, const.STORAGE_KEY)
    await storage_manager.async_delete_storage()

    const.LOGGER.info("Habit Targets entry data cleared: %s", entry.entry_id)
