"""Target Manager - Target definitions and target instance lifecycle.

This manager handles all stateful target operations:
- Reconciliation (create / expire instances, return the active set)
- Completion of a single instance
- Target create / update / archive
- Event emission for lifecycle changes

ARCHITECTURE:
- TargetManager = STATEFUL operations: storage writes, retries, events
- InstanceEngine / WindowEngine = pure decisions (STATELESS)
- HabitTargetsStorageManager = atomic create-if-absent and compare-and-set

Writes are retried with exponential backoff. A creation that still fails is
left out of the returned active set; the next reconciliation retries it.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, TypeVar, cast
import uuid

from homeassistant.exceptions import HomeAssistantError, ServiceValidationError

from .. import const
from ..engines.instance_engine import InstanceEngine, InvalidTransitionError
from ..storage_manager import StorageWriteError
from ..utils.dt_utils import dt_now_utc, dt_to_iso, resolve_timezone
from .base_manager import BaseManager

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping
    from datetime import datetime, tzinfo

    from homeassistant.core import HomeAssistant

    from ..storage_manager import HabitTargetsStorageManager
    from ..type_defs import TargetData, TargetInstanceData

_T = TypeVar("_T")

# Optional fields copied verbatim from create_target input
_OPTIONAL_TARGET_FIELDS = (
    const.DATA_TARGET_DESCRIPTION,
    const.DATA_TARGET_SUCCESS_CRITERIA_TEXT,
    const.DATA_TARGET_ICON,
    const.DATA_TARGET_COLOR,
    const.DATA_TARGET_CUSTOM_DURATION_DAYS,
)


class TargetManager(BaseManager):
    """Manager for targets and their time-window instances.

    Responsibilities:
    - Persist reconciliation decisions made by InstanceEngine
    - Enforce the ACTIVE precondition on completion
    - Validate and persist target definitions
    - Emit SIGNAL_SUFFIX_* lifecycle events

    NOT responsible for:
    - Window math or transition rules (engines)
    - Deciding which timezone to use (always passed in by the caller)
    """

    def __init__(
        self,
        hass: HomeAssistant,
        entry_id: str,
        storage_manager: HabitTargetsStorageManager,
        retry_attempts: int = const.DEFAULT_RETRY_ATTEMPTS,
        retry_base_delay: float = const.DEFAULT_RETRY_BASE_DELAY,
    ) -> None:
        """Initialize the TargetManager.

        Args:
            hass: Home Assistant instance
            entry_id: Config entry id for event scoping
            storage_manager: Loaded storage manager
            retry_attempts: Total attempts per storage write (>= 1)
            retry_base_delay: Delay before the first retry, doubled each time
        """
        super().__init__(hass, entry_id)
        self.storage_manager = storage_manager
        self._retry_attempts = max(const.MIN_RETRY_ATTEMPTS, retry_attempts)
        self._retry_base_delay = max(0.0, retry_base_delay)

    # =========================================================================
    # READ HELPERS
    # =========================================================================

    def get_targets(self, user_id: str) -> list[TargetData]:
        """Return all of a user's targets, archived included."""
        return list(self.storage_manager.get_targets(user_id).values())

    def get_instances(
        self, user_id: str, target_id: str | None = None
    ) -> list[TargetInstanceData]:
        """Return a user's instances, optionally only those of one target."""
        instances = self.storage_manager.get_instances(user_id).values()
        if target_id is None:
            return list(instances)
        return [
            inst
            for inst in instances
            if inst.get(const.DATA_INSTANCE_TARGET_ID) == target_id
        ]

    # =========================================================================
    # RECONCILIATION
    # =========================================================================

    async def async_reconcile(
        self,
        user_id: str,
        targets: list[TargetData],
        instances: list[TargetInstanceData],
        timezone: str | tzinfo,
        now: datetime | None = None,
    ) -> list[TargetInstanceData]:
        """Reconcile a user's targets against their instances.

        Creates missing instances, expires stale ones and returns the active
        instance of every non-archived target that has one.

        Args:
            user_id: Owner of the targets and instances
            targets: The user's target definitions
            instances: The user's full instance history
            timezone: IANA zone name or tzinfo, required
            now: Reference instant (defaults to the current time)

        Raises:
            ServiceValidationError: If the timezone is unknown
        """
        now = now or dt_now_utc()
        try:
            plan = InstanceEngine.plan_reconciliation(targets, instances, timezone, now)
        except ValueError as err:
            raise ServiceValidationError(
                translation_domain=const.DOMAIN,
                translation_key=const.TRANS_KEY_ERROR_INVALID_TIMEZONE,
                translation_placeholders={"timezone": str(timezone)},
            ) from err

        if not plan.has_writes:
            const.LOGGER.debug(
                "Reconcile for user %s: no changes, %s active",
                user_id,
                len(plan.active),
            )
            return plan.active

        one_time_ids = {
            target[const.DATA_TARGET_ID]
            for target in targets
            if not target.get(const.DATA_TARGET_IS_RECURRING, False)
        }
        created = await asyncio.gather(
            *(
                self._async_persist_creation(
                    user_id,
                    inst,
                    inst[const.DATA_INSTANCE_TARGET_ID] in one_time_ids,
                )
                for inst in plan.creations
            )
        )
        await asyncio.gather(
            *(
                self._async_persist_expiration(user_id, inst)
                for inst in plan.expirations
            )
        )

        stored_by_id: dict[str, TargetInstanceData | None] = {
            inst[const.DATA_INSTANCE_ID]: stored
            for inst, stored in zip(plan.creations, created, strict=True)
        }
        active: list[TargetInstanceData] = []
        for inst in plan.active:
            instance_id = inst[const.DATA_INSTANCE_ID]
            if instance_id not in stored_by_id:
                active.append(inst)
                continue
            stored = stored_by_id[instance_id]
            if (
                stored is not None
                and stored.get(const.DATA_INSTANCE_STATUS)
                == const.INSTANCE_STATUS_ACTIVE
            ):
                active.append(stored)

        const.LOGGER.info(
            "Reconcile for user %s: %s created, %s expired, %s active",
            user_id,
            sum(1 for stored in created if stored is not None),
            len(plan.expirations),
            len(active),
        )
        return active

    async def async_reconcile_user(
        self,
        user_id: str,
        timezone: str | tzinfo,
        now: datetime | None = None,
    ) -> list[TargetInstanceData]:
        """Reconcile using the user's stored targets and instances."""
        return await self.async_reconcile(
            user_id,
            self.get_targets(user_id),
            self.get_instances(user_id),
            timezone,
            now,
        )

    async def _async_persist_creation(
        self, user_id: str, instance: TargetInstanceData, one_time: bool
    ) -> TargetInstanceData | None:
        """Create-if-absent one instance.

        Returns None if the write kept failing or a one-time target turned
        out to be completed already in storage.
        """
        try:
            stored, created = await self._async_with_retry(
                f"create instance {instance[const.DATA_INSTANCE_ID]}",
                lambda: self.storage_manager.async_create_instance_if_absent(
                    user_id, instance, one_time
                ),
            )
        except StorageWriteError as err:
            const.LOGGER.warning(
                "Could not create instance for target %s window %s, "
                "it will be retried on the next reconcile: %s",
                instance[const.DATA_INSTANCE_TARGET_ID],
                instance[const.DATA_INSTANCE_WINDOW_KEY],
                err,
            )
            return None

        if stored is None:
            const.LOGGER.debug(
                "One-time target %s is already completed, not creating window %s",
                instance[const.DATA_INSTANCE_TARGET_ID],
                instance[const.DATA_INSTANCE_WINDOW_KEY],
            )
            return None

        if created:
            const.LOGGER.debug(
                "Created instance %s for target %s window %s",
                stored[const.DATA_INSTANCE_ID],
                stored[const.DATA_INSTANCE_TARGET_ID],
                stored[const.DATA_INSTANCE_WINDOW_KEY],
            )
            self.emit(
                const.SIGNAL_SUFFIX_INSTANCE_CREATED,
                user_id=user_id,
                instance_id=stored[const.DATA_INSTANCE_ID],
                target_id=stored[const.DATA_INSTANCE_TARGET_ID],
                window_key=stored[const.DATA_INSTANCE_WINDOW_KEY],
            )
        else:
            const.LOGGER.debug(
                "Instance %s already existed, adopting stored record",
                stored[const.DATA_INSTANCE_ID],
            )
        return stored

    async def _async_persist_expiration(
        self, user_id: str, instance: TargetInstanceData
    ) -> None:
        """Persist an ACTIVE -> EXPIRED transition; a no-op if already moved on."""
        instance_id = instance[const.DATA_INSTANCE_ID]
        try:
            written = await self._async_with_retry(
                f"expire instance {instance_id}",
                lambda: self.storage_manager.async_compare_and_set_instance(
                    user_id, instance, const.INSTANCE_STATUS_ACTIVE
                ),
            )
        except StorageWriteError as err:
            const.LOGGER.warning(
                "Could not expire instance %s, it will be retried on the next "
                "reconcile: %s",
                instance_id,
                err,
            )
            return

        if not written:
            const.LOGGER.debug(
                "Instance %s was no longer ACTIVE in storage, skipping expiry",
                instance_id,
            )
            return

        const.LOGGER.info(
            "Expired instance %s (target %s, window %s)",
            instance_id,
            instance[const.DATA_INSTANCE_TARGET_ID],
            instance[const.DATA_INSTANCE_WINDOW_KEY],
        )
        self.emit(
            const.SIGNAL_SUFFIX_INSTANCE_EXPIRED,
            user_id=user_id,
            instance_id=instance_id,
            target_id=instance[const.DATA_INSTANCE_TARGET_ID],
            window_key=instance[const.DATA_INSTANCE_WINDOW_KEY],
        )

    # =========================================================================
    # COMPLETION
    # =========================================================================

    async def async_complete(
        self, user_id: str, instance_id: str, now: datetime | None = None
    ) -> TargetInstanceData:
        """Mark one of the user's ACTIVE instances as COMPLETED.

        Raises:
            ServiceValidationError: If the instance does not exist for this
                user or is already COMPLETED / EXPIRED
            HomeAssistantError: If the write keeps failing
        """
        now = now or dt_now_utc()
        instance = self.storage_manager.get_instance(user_id, instance_id)
        if instance is None:
            const.LOGGER.warning(
                "Complete requested for unknown instance %s (user %s)",
                instance_id,
                user_id,
            )
            raise ServiceValidationError(
                translation_domain=const.DOMAIN,
                translation_key=const.TRANS_KEY_ERROR_NOT_FOUND,
                translation_placeholders={
                    "entity_type": const.LABEL_INSTANCE,
                    "name": instance_id,
                },
            )

        try:
            result = InstanceEngine.apply_event(
                instance, const.INSTANCE_EVENT_COMPLETE, now
            )
        except InvalidTransitionError as err:
            raise self._invalid_transition(
                instance_id, err.current_status, err.event
            ) from err

        try:
            written = await self._async_with_retry(
                f"complete instance {instance_id}",
                lambda: self.storage_manager.async_compare_and_set_instance(
                    user_id, result.instance, const.INSTANCE_STATUS_ACTIVE
                ),
            )
        except StorageWriteError as err:
            raise self._storage_failed() from err

        if not written:
            # Another writer moved the instance out of ACTIVE meanwhile
            latest = self.storage_manager.get_instance(user_id, instance_id) or instance
            raise self._invalid_transition(
                instance_id,
                latest.get(const.DATA_INSTANCE_STATUS, ""),
                const.INSTANCE_EVENT_COMPLETE,
            )

        const.LOGGER.info(
            "Completed instance %s (target %s, window %s)",
            instance_id,
            result.instance[const.DATA_INSTANCE_TARGET_ID],
            result.instance[const.DATA_INSTANCE_WINDOW_KEY],
        )
        self.emit(
            const.SIGNAL_SUFFIX_INSTANCE_COMPLETED,
            user_id=user_id,
            instance_id=instance_id,
            target_id=result.instance[const.DATA_INSTANCE_TARGET_ID],
            window_key=result.instance[const.DATA_INSTANCE_WINDOW_KEY],
        )
        return result.instance

    # =========================================================================
    # TARGET CRUD
    # =========================================================================

    async def async_create_target(
        self,
        user_id: str,
        data: Mapping[str, Any],
        timezone: str | tzinfo,
        now: datetime | None = None,
    ) -> TargetData:
        """Create a target and materialize its first instance.

        Args:
            user_id: Owner of the new target
            data: title, window_type and optional fields
            timezone: IANA zone name or tzinfo for the first window
            now: Reference instant (defaults to the current time)

        Raises:
            ServiceValidationError: Invalid definition or timezone
            HomeAssistantError: If the write keeps failing
        """
        now = now or dt_now_utc()
        self._validate_timezone(timezone)

        target: dict[str, Any] = {
            const.DATA_TARGET_ID: str(uuid.uuid4()),
            const.DATA_TARGET_TITLE: data.get(const.DATA_TARGET_TITLE),
            const.DATA_TARGET_WINDOW_TYPE: data.get(const.DATA_TARGET_WINDOW_TYPE),
            const.DATA_TARGET_REQUIRED_COUNT: data.get(
                const.DATA_TARGET_REQUIRED_COUNT, const.DEFAULT_REQUIRED_COUNT
            ),
            const.DATA_TARGET_IS_RECURRING: bool(
                data.get(const.DATA_TARGET_IS_RECURRING, False)
            ),
            const.DATA_TARGET_IS_ARCHIVED: False,
            const.DATA_TARGET_CREATED_AT: dt_to_iso(now),
            const.DATA_TARGET_UPDATED_AT: dt_to_iso(now),
        }
        for key in _OPTIONAL_TARGET_FIELDS:
            if data.get(key) is not None:
                target[key] = data[key]

        self._raise_if_invalid(target)
        new_target = cast("TargetData", target)
        await self._async_put_target(user_id, new_target)

        const.LOGGER.info(
            "Created target '%s' (ID: %s) for user %s",
            new_target[const.DATA_TARGET_TITLE],
            new_target[const.DATA_TARGET_ID],
            user_id,
        )
        self.emit(
            const.SIGNAL_SUFFIX_TARGET_CREATED,
            user_id=user_id,
            target_id=new_target[const.DATA_TARGET_ID],
        )

        await self.async_reconcile(user_id, [new_target], [], timezone, now)
        return new_target

    async def async_update_target(
        self,
        user_id: str,
        target_id: str,
        updates: Mapping[str, Any],
        now: datetime | None = None,
    ) -> TargetData:
        """Merge editable fields into an existing target.

        Switching away from CUSTOM drops custom_duration_days unless the
        caller sends it explicitly (which then fails validation).

        Raises:
            ServiceValidationError: Unknown target or invalid result
            HomeAssistantError: If the write keeps failing
        """
        now = now or dt_now_utc()
        target = self._get_target_or_raise(user_id, target_id)

        merged: dict[str, Any] = dict(target)
        for key in const.TARGET_EDITABLE_FIELDS:
            if key in updates:
                merged[key] = updates[key]
        if (
            merged.get(const.DATA_TARGET_WINDOW_TYPE) != const.WINDOW_TYPE_CUSTOM
            and const.DATA_TARGET_CUSTOM_DURATION_DAYS not in updates
        ):
            merged.pop(const.DATA_TARGET_CUSTOM_DURATION_DAYS, None)
        merged[const.DATA_TARGET_UPDATED_AT] = dt_to_iso(now)

        self._raise_if_invalid(merged)
        updated = cast("TargetData", merged)
        await self._async_put_target(user_id, updated)

        const.LOGGER.info("Updated target '%s' (ID: %s)", updated["title"], target_id)
        self.emit(
            const.SIGNAL_SUFFIX_TARGET_UPDATED, user_id=user_id, target_id=target_id
        )
        return updated

    async def async_archive_target(
        self, user_id: str, target_id: str, now: datetime | None = None
    ) -> TargetData:
        """Soft-delete a target; its instances are left as they are.

        Raises:
            ServiceValidationError: Unknown target
            HomeAssistantError: If the write keeps failing
        """
        now = now or dt_now_utc()
        target = self._get_target_or_raise(user_id, target_id)
        if target.get(const.DATA_TARGET_IS_ARCHIVED, False):
            const.LOGGER.debug("Target %s already archived", target_id)
            return target

        target[const.DATA_TARGET_IS_ARCHIVED] = True
        target[const.DATA_TARGET_UPDATED_AT] = dt_to_iso(now)
        await self._async_put_target(user_id, target)

        const.LOGGER.info("Archived target '%s' (ID: %s)", target["title"], target_id)
        self.emit(
            const.SIGNAL_SUFFIX_TARGET_ARCHIVED, user_id=user_id, target_id=target_id
        )
        return target

    # =========================================================================
    # INTERNAL HELPERS
    # =========================================================================

    async def _async_with_retry(
        self, description: str, operation: Callable[[], Awaitable[_T]]
    ) -> _T:
        """Run a storage operation with bounded exponential backoff.

        Only StorageWriteError is retried; the last one is re-raised.
        """
        delay = self._retry_base_delay
        for attempt in range(1, self._retry_attempts):
            try:
                return await operation()
            except StorageWriteError as err:
                const.LOGGER.warning(
                    "Attempt %s/%s to %s failed, retrying in %.2fs: %s",
                    attempt,
                    self._retry_attempts,
                    description,
                    delay,
                    err,
                )
                await asyncio.sleep(delay)
                delay *= 2

        try:
            return await operation()
        except StorageWriteError as err:
            const.LOGGER.error(
                "Giving up on %s after %s attempts: %s",
                description,
                self._retry_attempts,
                err,
            )
            raise

    async def _async_put_target(self, user_id: str, target: TargetData) -> None:
        try:
            await self._async_with_retry(
                f"save target {target[const.DATA_TARGET_ID]}",
                lambda: self.storage_manager.async_put_target(user_id, target),
            )
        except StorageWriteError as err:
            raise self._storage_failed() from err

    def _get_target_or_raise(self, user_id: str, target_id: str) -> TargetData:
        target = self.storage_manager.get_target(user_id, target_id)
        if target is None:
            raise ServiceValidationError(
                translation_domain=const.DOMAIN,
                translation_key=const.TRANS_KEY_ERROR_NOT_FOUND,
                translation_placeholders={
                    "entity_type": const.LABEL_TARGET,
                    "name": target_id,
                },
            )
        return target

    @staticmethod
    def _validate_timezone(timezone: str | tzinfo) -> None:
        try:
            resolve_timezone(timezone)
        except ValueError as err:
            raise ServiceValidationError(
                translation_domain=const.DOMAIN,
                translation_key=const.TRANS_KEY_ERROR_INVALID_TIMEZONE,
                translation_placeholders={"timezone": str(timezone)},
            ) from err

    @staticmethod
    def _raise_if_invalid(target: Mapping[str, Any]) -> None:
        errors = InstanceEngine.validate_target(target)
        if errors:
            const.LOGGER.warning("Rejected target definition: %s", errors)
            raise ServiceValidationError(
                translation_domain=const.DOMAIN,
                translation_key=const.TRANS_KEY_ERROR_INVALID_TARGET,
                translation_placeholders={
                    "errors": ", ".join(
                        f"{field}: {key}" for field, key in sorted(errors.items())
                    )
                },
            )

    @staticmethod
    def _invalid_transition(
        instance_id: str, status: str, event: str
    ) -> ServiceValidationError:
        const.LOGGER.warning(
            "Rejected '%s' for instance %s in status %s", event, instance_id, status
        )
        return ServiceValidationError(
            translation_domain=const.DOMAIN,
            translation_key=const.TRANS_KEY_ERROR_INVALID_TRANSITION,
            translation_placeholders={
                "instance_id": instance_id,
                "status": status,
                "event": event,
            },
        )

    @staticmethod
    def _storage_failed() -> HomeAssistantError:
        return HomeAssistantError(
            translation_domain=const.DOMAIN,
            translation_key=const.TRANS_KEY_ERROR_STORAGE_FAILED,
        )
