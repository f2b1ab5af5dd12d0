"""Base manager class for Habit Targets managers."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from homeassistant.helpers.dispatcher import async_dispatcher_send

from .. import const

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant


def get_event_signal(entry_id: str, suffix: str) -> str:
    """Build instance-scoped event signal name for dispatcher.

    Format: 'habit_targets_{entry_id}_{suffix}'
    """
    return f"{const.DOMAIN}_{entry_id}_{suffix}"


class BaseManager:
    """Base class for Habit Targets managers with scoped event support.

    Events are dispatcher signals namespaced by the config entry id so that
    listeners of one entry never see another entry's events.
    """

    def __init__(self, hass: HomeAssistant, entry_id: str) -> None:
        """Initialize manager.

        Args:
            hass: Home Assistant instance
            entry_id: Config entry id used to scope emitted signals
        """
        self.hass = hass
        self.entry_id = entry_id

    def emit(self, suffix: str, **payload: Any) -> None:
        """Emit instance-scoped event to listeners.

        Args:
            suffix: Signal suffix constant (e.g., const.SIGNAL_SUFFIX_INSTANCE_CREATED)
            **payload: Event data dict passed to listeners (must be JSON-serializable)
        """
        signal = get_event_signal(self.entry_id, suffix)
        const.LOGGER.debug(
            "Emitting event '%s' for entry %s with payload keys: %s",
            suffix,
            self.entry_id,
            list(payload.keys()),
        )
        # Pass payload as single dict argument (dispatcher only supports *args)
        async_dispatcher_send(self.hass, signal, payload)
