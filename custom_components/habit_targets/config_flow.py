# File: config_flow.py
"""Config flow for the Habit Targets integration.

Only one entry is allowed; all targets and instances live in a single
storage file bucketed per user.
"""

from __future__ import annotations

from typing import Any

import voluptuous as vol
from homeassistant import config_entries
from homeassistant.core import callback

from . import const
from .options_flow import HabitTargetsOptionsFlowHandler


class HabitTargetsConfigFlow(config_entries.ConfigFlow, domain=const.DOMAIN):
    """Config Flow for Habit Targets."""

    VERSION = 1

    async def async_step_user(self, user_input: dict[str, Any] | None = None):
        """Confirm and create the single entry."""
        if self._async_current_entries():
            return self.async_abort(reason=const.TRANS_KEY_ERROR_SINGLE_INSTANCE)

        if user_input is not None:
            const.LOGGER.info("Creating Habit Targets config entry")
            return self.async_create_entry(
                title=const.HABIT_TARGETS_TITLE,
                data={},
                options={
                    const.CONF_RETRY_ATTEMPTS: const.DEFAULT_RETRY_ATTEMPTS,
                    const.CONF_RETRY_BASE_DELAY: const.DEFAULT_RETRY_BASE_DELAY,
                },
            )

        return self.async_show_form(
            step_id=const.CONFIG_FLOW_STEP_USER, data_schema=vol.Schema({})
        )

    @staticmethod
    @callback
    def async_get_options_flow(config_entry):
        """Return the Options Flow."""
        return HabitTargetsOptionsFlowHandler()
