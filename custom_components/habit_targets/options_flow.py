# File: options_flow.py
"""Options Flow for the Habit Targets integration.

Edits the storage retry policy. Saving the options reloads the entry so the
target manager picks the new values up.
"""

from __future__ import annotations

from typing import Any

import voluptuous as vol
from homeassistant import config_entries

from . import const


def build_retry_schema(options: dict[str, Any]) -> vol.Schema:
    """Build the retry policy schema, defaulting to the current options."""
    return vol.Schema(
        {
            vol.Required(
                const.CONF_RETRY_ATTEMPTS,
                default=options.get(
                    const.CONF_RETRY_ATTEMPTS, const.DEFAULT_RETRY_ATTEMPTS
                ),
            ): vol.All(
                vol.Coerce(int),
                vol.Range(min=const.MIN_RETRY_ATTEMPTS, max=const.MAX_RETRY_ATTEMPTS),
            ),
            vol.Required(
                const.CONF_RETRY_BASE_DELAY,
                default=options.get(
                    const.CONF_RETRY_BASE_DELAY, const.DEFAULT_RETRY_BASE_DELAY
                ),
            ): vol.All(
                vol.Coerce(float),
                vol.Range(min=0.0, max=const.MAX_RETRY_BASE_DELAY),
            ),
        }
    )


class HabitTargetsOptionsFlowHandler(config_entries.OptionsFlow):
    """Options Flow for the retry policy."""

    async def async_step_init(self, user_input: dict[str, Any] | None = None):
        """Show and save the retry policy form."""
        if user_input is not None:
            const.LOGGER.debug("Saving Habit Targets options: %s", user_input)
            return self.async_create_entry(title="", data=user_input)

        return self.async_show_form(
            step_id=const.OPTIONS_FLOW_STEP_INIT,
            data_schema=build_retry_schema(dict(self.config_entry.options)),
        )
