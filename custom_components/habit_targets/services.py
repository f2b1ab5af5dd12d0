# File: services.py
"""Defines custom services for the Habit Targets integration.

These services allow direct actions through scripts or automations.
Reconcile, complete and create return a response; the other services
only act.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import voluptuous as vol
from homeassistant.core import HomeAssistant, ServiceCall, SupportsResponse
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers import config_validation as cv

from . import const

if TYPE_CHECKING:
    from homeassistant.core import ServiceResponse

    from .managers import TargetManager

# --- Service Schemas ---
_TARGET_FIELDS = {
    vol.Optional(const.DATA_TARGET_DESCRIPTION): cv.string,
    vol.Optional(const.DATA_TARGET_SUCCESS_CRITERIA_TEXT): cv.string,
    vol.Optional(const.DATA_TARGET_ICON): cv.icon,
    vol.Optional(const.DATA_TARGET_COLOR): cv.string,
    vol.Optional(const.DATA_TARGET_CUSTOM_DURATION_DAYS): vol.All(
        vol.Coerce(int), vol.Range(min=1)
    ),
    vol.Optional(const.DATA_TARGET_REQUIRED_COUNT): vol.All(
        vol.Coerce(int), vol.Range(min=1)
    ),
    vol.Optional(const.DATA_TARGET_IS_RECURRING): cv.boolean,
}

RECONCILE_TARGETS_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_USER_ID): cv.string,
        vol.Optional(const.FIELD_TIMEZONE): cv.time_zone,
    }
)

COMPLETE_TARGET_INSTANCE_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_USER_ID): cv.string,
        vol.Required(const.FIELD_INSTANCE_ID): cv.string,
    }
)

CREATE_TARGET_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_USER_ID): cv.string,
        vol.Required(const.DATA_TARGET_TITLE): cv.string,
        vol.Required(const.DATA_TARGET_WINDOW_TYPE): vol.In(const.WINDOW_TYPE_OPTIONS),
        vol.Optional(const.FIELD_TIMEZONE): cv.time_zone,
        **_TARGET_FIELDS,
    }
)

UPDATE_TARGET_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_USER_ID): cv.string,
        vol.Required(const.FIELD_TARGET_ID): cv.string,
        vol.Optional(const.DATA_TARGET_TITLE): cv.string,
        vol.Optional(const.DATA_TARGET_WINDOW_TYPE): vol.In(const.WINDOW_TYPE_OPTIONS),
        **_TARGET_FIELDS,
    }
)

ARCHIVE_TARGET_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_USER_ID): cv.string,
        vol.Required(const.FIELD_TARGET_ID): cv.string,
    }
)


def get_first_habit_targets_entry(hass: HomeAssistant) -> str | None:
    """Retrieve the first Habit Targets config entry ID."""
    domain_entries = hass.data.get(const.DOMAIN)
    if not domain_entries:
        return None
    return next(iter(domain_entries.keys()), None)


def _get_target_manager(hass: HomeAssistant, service: str) -> TargetManager:
    entry_id = get_first_habit_targets_entry(hass)
    if not entry_id:
        const.LOGGER.warning("%s: no Habit Targets entry found", service)
        raise HomeAssistantError(
            translation_domain=const.DOMAIN,
            translation_key=const.TRANS_KEY_ERROR_NOT_LOADED,
        )
    return hass.data[const.DOMAIN][entry_id][const.TARGET_MANAGER]


def _call_timezone(hass: HomeAssistant, call: ServiceCall) -> str:
    """Return the requested timezone, or the one Home Assistant is set to."""
    return call.data.get(const.FIELD_TIMEZONE) or hass.config.time_zone


def async_setup_services(hass: HomeAssistant) -> None:
    """Register Habit Targets services."""

    async def handle_reconcile_targets(call: ServiceCall) -> ServiceResponse:
        """Handle reconciling a user's targets and returning active instances."""
        manager = _get_target_manager(hass, const.SERVICE_RECONCILE_TARGETS)
        active = await manager.async_reconcile_user(
            call.data[const.FIELD_USER_ID], _call_timezone(hass, call)
        )
        return {const.RESPONSE_ACTIVE_INSTANCES: [dict(inst) for inst in active]}

    async def handle_complete_target_instance(call: ServiceCall) -> ServiceResponse:
        """Handle completing one active target instance."""
        manager = _get_target_manager(hass, const.SERVICE_COMPLETE_TARGET_INSTANCE)
        instance = await manager.async_complete(
            call.data[const.FIELD_USER_ID], call.data[const.FIELD_INSTANCE_ID]
        )
        return {const.RESPONSE_INSTANCE: dict(instance)}

    async def handle_create_target(call: ServiceCall) -> ServiceResponse:
        """Handle creating a target and its first instance."""
        manager = _get_target_manager(hass, const.SERVICE_CREATE_TARGET)
        data: dict[str, Any] = {
            key: value
            for key, value in call.data.items()
            if key not in (const.FIELD_USER_ID, const.FIELD_TIMEZONE)
        }
        target = await manager.async_create_target(
            call.data[const.FIELD_USER_ID], data, _call_timezone(hass, call)
        )
        return {const.RESPONSE_ID: target[const.DATA_TARGET_ID]}

    async def handle_update_target(call: ServiceCall) -> None:
        """Handle updating editable fields of a target."""
        manager = _get_target_manager(hass, const.SERVICE_UPDATE_TARGET)
        updates = {
            key: value
            for key, value in call.data.items()
            if key in const.TARGET_EDITABLE_FIELDS
        }
        await manager.async_update_target(
            call.data[const.FIELD_USER_ID], call.data[const.FIELD_TARGET_ID], updates
        )

    async def handle_archive_target(call: ServiceCall) -> None:
        """Handle archiving a target."""
        manager = _get_target_manager(hass, const.SERVICE_ARCHIVE_TARGET)
        await manager.async_archive_target(
            call.data[const.FIELD_USER_ID], call.data[const.FIELD_TARGET_ID]
        )

    # --- Register Services ---
    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_RECONCILE_TARGETS,
        handle_reconcile_targets,
        schema=RECONCILE_TARGETS_SCHEMA,
        supports_response=SupportsResponse.ONLY,
    )
    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_COMPLETE_TARGET_INSTANCE,
        handle_complete_target_instance,
        schema=COMPLETE_TARGET_INSTANCE_SCHEMA,
        supports_response=SupportsResponse.OPTIONAL,
    )
    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_CREATE_TARGET,
        handle_create_target,
        schema=CREATE_TARGET_SCHEMA,
        supports_response=SupportsResponse.OPTIONAL,
    )
    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_UPDATE_TARGET,
        handle_update_target,
        schema=UPDATE_TARGET_SCHEMA,
    )
    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_ARCHIVE_TARGET,
        handle_archive_target,
        schema=ARCHIVE_TARGET_SCHEMA,
    )

    const.LOGGER.info("Habit Targets services have been registered successfully")


async def async_unload_services(hass: HomeAssistant) -> None:
    """Unregister Habit Targets services when unloading the integration."""
    for service in const.SERVICES:
        if hass.services.has_service(const.DOMAIN, service):
            hass.services.async_remove(const.DOMAIN, service)

    const.LOGGER.info("Habit Targets services have been unregistered")
