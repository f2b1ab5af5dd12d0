# File: storage_manager.py
"""Handles persistent data storage for the Habit Targets integration.

Uses Home Assistant's Storage helper to save and load per-user target
definitions and target instances, ensuring the state is preserved across
restarts.

Every read-modify-write goes through one asyncio.Lock. That lock is the atomic
primitive the lifecycle relies on: instance creation is a create-if-absent
keyed by the deterministic instance id, and status changes are
compare-and-set on the stored status.
"""

from __future__ import annotations

import asyncio
import copy
from typing import TYPE_CHECKING, Any

from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.storage import Store

from . import const

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

    from .type_defs import TargetData, TargetInstanceData, UserBucket


class StorageWriteError(HomeAssistantError):
    """Raised when persisting to storage fails."""


class HabitTargetsStorageManager:
    """Manages loading, saving, and accessing data from Home Assistant's storage.

    Data is bucketed per user; nothing here reads across buckets.
    """

    def __init__(
        self, hass: HomeAssistant, storage_key: str = const.STORAGE_KEY
    ) -> None:
        """Initialize the storage manager.

        Args:
            hass: Home Assistant core object.
            storage_key: Key to identify storage location (default: const.STORAGE_KEY).

        """
        self.hass = hass
        self._storage_key = storage_key
        self._store: Store = Store(hass, const.STORAGE_VERSION, storage_key)
        self._data: dict[str, Any] = {}  # In-memory data cache for quick access.
        self._lock = asyncio.Lock()

    @staticmethod
    def get_default_structure() -> dict[str, Any]:
        """Return canonical empty data structure for fresh installations."""
        return {
            const.DATA_META: {
                const.DATA_META_SCHEMA_VERSION: const.SCHEMA_VERSION,
            },
            const.DATA_USERS: {},
        }

    async def async_initialize(self) -> None:
        """Load data from storage during startup.

        If no data exists, initializes with an empty structure.
        """
        const.LOGGER.debug("HabitTargetsStorageManager: Loading data from storage")
        existing_data = await self._store.async_load()

        if existing_data is None:
            const.LOGGER.info("No existing storage found. Initializing new data")
            self._data = self.get_default_structure()
        else:
            self._data = existing_data
            self._data.setdefault(const.DATA_USERS, {})
            self._data.setdefault(
                const.DATA_META,
                {const.DATA_META_SCHEMA_VERSION: const.SCHEMA_VERSION},
            )
            const.LOGGER.debug(
                "Loaded existing data from storage: %s users",
                len(self._data[const.DATA_USERS]),
            )

    @property
    def data(self) -> dict[str, Any]:
        """Retrieve the in-memory data cache."""
        return self._data

    # -------------------------------------------------------------------------
    # Getters (return copies; callers never mutate the cache)
    # -------------------------------------------------------------------------

    def _get_user_bucket(self, user_id: str) -> UserBucket | None:
        return self._data.get(const.DATA_USERS, {}).get(user_id)

    def _ensure_user_bucket(self, user_id: str) -> UserBucket:
        users = self._data.setdefault(const.DATA_USERS, {})
        return users.setdefault(
            user_id, {const.DATA_TARGETS: {}, const.DATA_INSTANCES: {}}
        )

    def get_targets(self, user_id: str) -> dict[str, TargetData]:
        """Return a copy of the user's targets keyed by id."""
        bucket = self._get_user_bucket(user_id)
        return copy.deepcopy(bucket[const.DATA_TARGETS]) if bucket else {}

    def get_instances(self, user_id: str) -> dict[str, TargetInstanceData]:
        """Return a copy of the user's instances keyed by id."""
        bucket = self._get_user_bucket(user_id)
        return copy.deepcopy(bucket[const.DATA_INSTANCES]) if bucket else {}

    def get_target(self, user_id: str, target_id: str) -> TargetData | None:
        """Return a copy of one target, or None if the user has no such target."""
        bucket = self._get_user_bucket(user_id)
        if not bucket or target_id not in bucket[const.DATA_TARGETS]:
            return None
        return copy.deepcopy(bucket[const.DATA_TARGETS][target_id])

    def get_instance(
        self, user_id: str, instance_id: str
    ) -> TargetInstanceData | None:
        """Return a copy of one instance, or None if the user has no such instance."""
        bucket = self._get_user_bucket(user_id)
        if not bucket or instance_id not in bucket[const.DATA_INSTANCES]:
            return None
        return copy.deepcopy(bucket[const.DATA_INSTANCES][instance_id])

    # -------------------------------------------------------------------------
    # Atomic writes
    # -------------------------------------------------------------------------

    async def async_save(self) -> None:
        """Save the current data structure to storage.

        Raises:
            StorageWriteError: When the file system or serialization fails.
                The error is logged before being raised so callers can retry.
        """
        try:
            await self._store.async_save(self._data)
        except OSError as err:
            const.LOGGER.error(
                "Failed to save storage due to file system error: %s. "
                "Check disk space and file permissions for %s",
                err,
                self._store.path,
            )
            raise StorageWriteError(str(err)) from err
        except (TypeError, ValueError) as err:
            const.LOGGER.error(
                "Failed to save storage due to invalid or non-serializable data: %s",
                err,
            )
            raise StorageWriteError(str(err)) from err
        const.LOGGER.debug("Data saved successfully to storage")

    async def async_create_instance_if_absent(
        self,
        user_id: str,
        instance: TargetInstanceData,
        one_time: bool = False,
    ) -> tuple[TargetInstanceData | None, bool]:
        """Insert an instance unless one with the same id already exists.

        With one_time=True the insert is also refused once the target has a
        COMPLETED instance in storage.

        Returns:
            (stored record, created). When another caller won the race the
            existing record is returned with created=False. A refused one-time
            insert returns (None, False).

        Raises:
            StorageWriteError: If the save fails; the insert is rolled back.
        """
        async with self._lock:
            instances = self._ensure_user_bucket(user_id)[const.DATA_INSTANCES]
            instance_id = instance[const.DATA_INSTANCE_ID]
            if instance_id in instances:
                return copy.deepcopy(instances[instance_id]), False

            target_id = instance[const.DATA_INSTANCE_TARGET_ID]
            if one_time and any(
                stored.get(const.DATA_INSTANCE_TARGET_ID) == target_id
                and stored.get(const.DATA_INSTANCE_STATUS)
                == const.INSTANCE_STATUS_COMPLETED
                for stored in instances.values()
            ):
                return None, False

            instances[instance_id] = copy.deepcopy(instance)
            try:
                await self.async_save()
            except StorageWriteError:
                instances.pop(instance_id, None)
                raise
            return copy.deepcopy(instance), True

    async def async_compare_and_set_instance(
        self,
        user_id: str,
        instance: TargetInstanceData,
        expected_status: str,
    ) -> bool:
        """Replace a stored instance only if its status is still `expected_status`.

        Returns:
            True if written, False if the instance is missing or its status
            changed underneath the caller.

        Raises:
            StorageWriteError: If the save fails; the old record is restored.
        """
        async with self._lock:
            bucket = self._get_user_bucket(user_id)
            instance_id = instance[const.DATA_INSTANCE_ID]
            if not bucket or instance_id not in bucket[const.DATA_INSTANCES]:
                return False

            instances = bucket[const.DATA_INSTANCES]
            previous = instances[instance_id]
            if previous.get(const.DATA_INSTANCE_STATUS) != expected_status:
                return False

            instances[instance_id] = copy.deepcopy(instance)
            try:
                await self.async_save()
            except StorageWriteError:
                instances[instance_id] = previous
                raise
            return True

    async def async_put_target(self, user_id: str, target: TargetData) -> None:
        """Insert or replace a target definition.

        Raises:
            StorageWriteError: If the save fails; the old value is restored.
        """
        async with self._lock:
            targets = self._ensure_user_bucket(user_id)[const.DATA_TARGETS]
            target_id = target[const.DATA_TARGET_ID]
            previous = targets.get(target_id)
            targets[target_id] = copy.deepcopy(target)
            try:
                await self.async_save()
            except StorageWriteError:
                if previous is None:
                    targets.pop(target_id, None)
                else:
                    targets[target_id] = previous
                raise

    async def async_delete_storage(self) -> None:
        """Delete the storage file completely from disk.

        This clears all in-memory data and removes the storage file using
        Home Assistant's Store API for proper file handling.
        """
        const.LOGGER.warning("Clearing all Habit Targets data and removing storage")
        self._data = self.get_default_structure()

        try:
            await self._store.async_remove()
            const.LOGGER.info(
                "Storage file removed successfully: %s",
                self._store.path,
            )
        except OSError as err:
            const.LOGGER.error(
                "Failed to remove storage file %s: %s. Check file permissions",
                self._store.path,
                err,
            )
