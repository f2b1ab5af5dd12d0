"""Shared fixtures for Habit Targets tests."""

from collections.abc import AsyncGenerator
from typing import Any
from unittest.mock import patch

import pytest
from homeassistant.core import HomeAssistant
from pytest_homeassistant_custom_component.common import MockConfigEntry

from custom_components.habit_targets import const
from custom_components.habit_targets.managers import TargetManager
from custom_components.habit_targets.storage_manager import (
    HabitTargetsStorageManager,
)
from tests.helpers import TEST_TIMEZONE

# pylint: disable=invalid-name
pytest_plugins = "pytest_homeassistant_custom_component"
# pylint: enable=invalid-name


@pytest.fixture(autouse=True)
def auto_enable_custom_integrations(enable_custom_integrations: Any) -> Any:
    """Enable custom integrations in tests."""
    # pylint: disable=unused-argument
    yield


@pytest.fixture
def mock_config_entry() -> MockConfigEntry:
    """Return a mock config entry."""
    return MockConfigEntry(
        domain=const.DOMAIN,
        title=const.HABIT_TARGETS_TITLE,
        data={},
        options={
            const.CONF_RETRY_ATTEMPTS: const.DEFAULT_RETRY_ATTEMPTS,
            const.CONF_RETRY_BASE_DELAY: 0.0,
        },
        entry_id="test_entry_id",
        unique_id="test_unique_id",
    )


@pytest.fixture
async def storage_manager(hass: HomeAssistant) -> HabitTargetsStorageManager:
    """Return an initialized storage manager backed by an empty store."""
    manager = HabitTargetsStorageManager(hass, const.STORAGE_KEY)
    with patch(
        "homeassistant.helpers.storage.Store.async_load", return_value=None
    ):
        await manager.async_initialize()
    return manager


@pytest.fixture
def target_manager(
    hass: HomeAssistant,
    storage_manager: HabitTargetsStorageManager,  # pylint: disable=redefined-outer-name
) -> TargetManager:
    """Return a target manager with retries that do not sleep."""
    return TargetManager(
        hass,
        "test_entry_id",
        storage_manager,
        retry_attempts=3,
        retry_base_delay=0.0,
    )


@pytest.fixture
async def init_integration(
    hass: HomeAssistant,
    mock_config_entry: MockConfigEntry,  # pylint: disable=redefined-outer-name
) -> AsyncGenerator[MockConfigEntry]:
    """Set up the integration with an empty store."""
    await hass.config.async_set_time_zone(TEST_TIMEZONE)
    mock_config_entry.add_to_hass(hass)
    with patch(
        "homeassistant.helpers.storage.Store.async_load", return_value=None
    ):
        assert await hass.config_entries.async_setup(mock_config_entry.entry_id)
        await hass.async_block_till_done()
    yield mock_config_entry
