"""Instance Engine - Pure logic for target instance lifecycle.

This engine provides stateless, pure Python functions for:
- Instance status transitions (ACTIVE -> COMPLETED / EXPIRED)
- Deterministic instance identity per (target_id, window_key)
- Target definition validation
- Reconciliation planning: which instances to create, expire and return

ARCHITECTURE: This is a pure logic engine with NO Home Assistant dependencies.
All functions are static methods that operate on passed-in data.
Persistence, retries and events belong in TargetManager.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, tzinfo
import logging
from typing import TYPE_CHECKING, Any, ClassVar, cast
import uuid

from .. import const
from ..utils.dt_utils import as_utc, dt_parse_utc, dt_to_iso, resolve_timezone
from .window_engine import Window, WindowEngine, WindowType, validate_custom_duration

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from ..type_defs import TargetData, TargetInstanceData

_LOGGER = logging.getLogger(__name__)

# Namespace for uuid5 instance ids; changing it would orphan every stored id.
INSTANCE_ID_NAMESPACE = uuid.UUID("6f1c2a4e-9b57-4d0a-8e1f-3c2b7d9a5e10")


class InvalidTransitionError(Exception):
    """Raised when an event is not allowed from an instance's current status.

    Attributes:
        instance_id: The instance the event was applied to
        current_status: Status the instance was in
        event: The rejected event
    """

    def __init__(self, instance_id: str, current_status: str, event: str) -> None:
        """Initialize InvalidTransitionError."""
        self.instance_id = instance_id
        self.current_status = current_status
        self.event = event
        super().__init__(
            f"Cannot apply '{event}' to instance {instance_id} in status {current_status}"
        )


@dataclass
class TransitionResult:
    """Outcome of InstanceEngine.apply_event().

    Attributes:
        instance: The resulting record (a new dict when changed)
        changed: False when the event was accepted but had nothing to do
    """

    instance: TargetInstanceData
    changed: bool


@dataclass
class ReconcilePlan:
    """Decisions for one reconciliation pass.

    Attributes:
        active: Instances to return as currently active, one per target at most
        creations: New ACTIVE instances to persist (create-if-absent)
        expirations: Records already transitioned to EXPIRED, to persist
        duplicates: Extra records sharing a (target_id, window_key) with the
            canonical one; never deleted, only ignored
    """

    active: list[TargetInstanceData] = field(default_factory=list)
    creations: list[TargetInstanceData] = field(default_factory=list)
    expirations: list[TargetInstanceData] = field(default_factory=list)
    duplicates: list[TargetInstanceData] = field(default_factory=list)

    @property
    def has_writes(self) -> bool:
        """Return True if the pass needs to persist anything."""
        return bool(self.creations or self.expirations)


class InstanceEngine:
    """Pure logic engine for target instance state and reconciliation.

    All methods are static - no instance state. This enables easy unit testing
    without any Home Assistant mocking.
    """

    # status -> {event: next status}; terminal statuses accept no events
    VALID_TRANSITIONS: ClassVar[dict[str, dict[str, str]]] = {
        const.INSTANCE_STATUS_ACTIVE: {
            const.INSTANCE_EVENT_COMPLETE: const.INSTANCE_STATUS_COMPLETED,
            const.INSTANCE_EVENT_EXPIRE_IF_PAST_DEADLINE: const.INSTANCE_STATUS_EXPIRED,
        },
        const.INSTANCE_STATUS_COMPLETED: {},
        const.INSTANCE_STATUS_EXPIRED: {},
    }

    # =========================================================================
    # STATE TRANSITION LOGIC
    # =========================================================================

    @staticmethod
    def can_transition(current_status: str, event: str) -> bool:
        """Return True if the event is allowed from the current status."""
        return event in InstanceEngine.VALID_TRANSITIONS.get(current_status, {})

    @staticmethod
    def is_past_deadline(instance: Mapping[str, Any], now: datetime) -> bool:
        """Return True once `now` is strictly after the instance's window end."""
        window_end = dt_parse_utc(instance.get(const.DATA_INSTANCE_WINDOW_END))
        if window_end is None:
            _LOGGER.warning(
                "Instance %s has no readable window_end",
                instance.get(const.DATA_INSTANCE_ID),
            )
            return False
        return as_utc(now) > window_end

    @staticmethod
    def apply_event(
        instance: TargetInstanceData, event: str, now: datetime
    ) -> TransitionResult:
        """Apply a lifecycle event and return the resulting record.

        Args:
            instance: Current instance record (not mutated)
            event: INSTANCE_EVENT_COMPLETE or INSTANCE_EVENT_EXPIRE_IF_PAST_DEADLINE
            now: Reference instant for completed_at / deadline checks

        Returns:
            TransitionResult with the new record. Expiring an instance whose
            window has not ended yet is accepted with changed=False.

        Raises:
            InvalidTransitionError: If the instance is already terminal or the
                event is unknown.
        """
        current_status = instance.get(const.DATA_INSTANCE_STATUS, "")
        if not InstanceEngine.can_transition(current_status, event):
            raise InvalidTransitionError(
                instance.get(const.DATA_INSTANCE_ID, ""), current_status, event
            )

        if (
            event == const.INSTANCE_EVENT_EXPIRE_IF_PAST_DEADLINE
            and not InstanceEngine.is_past_deadline(instance, now)
        ):
            return TransitionResult(instance=instance, changed=False)

        updated = cast("TargetInstanceData", dict(instance))
        updated[const.DATA_INSTANCE_STATUS] = cast(
            "Any", InstanceEngine.VALID_TRANSITIONS[current_status][event]
        )
        if event == const.INSTANCE_EVENT_COMPLETE:
            updated[const.DATA_INSTANCE_COMPLETED_AT] = dt_to_iso(now)
        return TransitionResult(instance=updated, changed=True)

    # =========================================================================
    # INSTANCE CONSTRUCTION
    # =========================================================================

    @staticmethod
    def build_instance_id(target_id: str, window_key: str) -> str:
        """Return the deterministic id for a target's instance in one window.

        Concurrent creators for the same window compute the same id, so a
        create-if-absent write converges on a single record.
        """
        return str(uuid.uuid5(INSTANCE_ID_NAMESPACE, f"{target_id}:{window_key}"))

    @staticmethod
    def build_instance(
        target: Mapping[str, Any], window: Window, now: datetime
    ) -> TargetInstanceData:
        """Build a new ACTIVE instance record for a target's window."""
        target_id = target[const.DATA_TARGET_ID]
        return {
            "id": InstanceEngine.build_instance_id(target_id, window.key),
            "target_id": target_id,
            "window_key": window.key,
            "window_start": dt_to_iso(window.bounds.start),
            "window_end": dt_to_iso(window.bounds.end),
            "status": "ACTIVE",
            "created_at": dt_to_iso(now),
        }

    # =========================================================================
    # TARGET VALIDATION
    # =========================================================================

    @staticmethod
    def validate_target(target: Mapping[str, Any]) -> dict[str, str]:
        """Validate a target definition.

        Returns:
            Dict of field name -> error key; empty when the target is valid.
        """
        errors: dict[str, str] = {}

        title = target.get(const.DATA_TARGET_TITLE)
        if not isinstance(title, str) or not title.strip():
            errors[const.DATA_TARGET_TITLE] = const.CFOF_ERROR_TITLE_REQUIRED

        window_type = WindowEngine.parse_window_type(
            target.get(const.DATA_TARGET_WINDOW_TYPE, "")
        )
        custom_days = target.get(const.DATA_TARGET_CUSTOM_DURATION_DAYS)
        if window_type is None:
            errors[const.DATA_TARGET_WINDOW_TYPE] = const.CFOF_ERROR_INVALID_WINDOW_TYPE
        elif window_type == WindowType.CUSTOM:
            try:
                validate_custom_duration(custom_days)
            except ValueError:
                errors[const.DATA_TARGET_CUSTOM_DURATION_DAYS] = (
                    const.CFOF_ERROR_CUSTOM_DURATION_REQUIRED
                )
        elif custom_days is not None:
            errors[const.DATA_TARGET_CUSTOM_DURATION_DAYS] = (
                const.CFOF_ERROR_CUSTOM_DURATION_NOT_ALLOWED
            )

        required_count = target.get(
            const.DATA_TARGET_REQUIRED_COUNT, const.DEFAULT_REQUIRED_COUNT
        )
        if (
            isinstance(required_count, bool)
            or not isinstance(required_count, int)
            or required_count < 1
        ):
            errors[const.DATA_TARGET_REQUIRED_COUNT] = (
                const.CFOF_ERROR_REQUIRED_COUNT_INVALID
            )

        return errors

    # =========================================================================
    # RECONCILIATION
    # =========================================================================

    @staticmethod
    def select_canonical(
        window_instances: list[TargetInstanceData], deterministic_id: str
    ) -> tuple[TargetInstanceData | None, list[TargetInstanceData]]:
        """Pick the canonical record among instances sharing one window.

        The record carrying the deterministic id wins; otherwise the oldest by
        created_at (records from before deterministic ids existed).

        Returns:
            (canonical or None, remaining duplicates)
        """
        if not window_instances:
            return None, []

        def _sort_key(inst: TargetInstanceData) -> tuple[bool, datetime]:
            return (
                inst.get(const.DATA_INSTANCE_ID) != deterministic_id,
                dt_parse_utc(inst.get(const.DATA_INSTANCE_CREATED_AT))
                or datetime.max.replace(tzinfo=UTC),
            )

        ordered = sorted(window_instances, key=_sort_key)
        return ordered[0], ordered[1:]

    @staticmethod
    def plan_reconciliation(
        targets: Iterable[TargetData],
        instances: Iterable[TargetInstanceData],
        timezone: str | tzinfo,
        now: datetime,
    ) -> ReconcilePlan:
        """Decide which instances to create, expire and return.

        For each non-archived target:
        1. Resolve the current window.
        2. Look up the instance for (target_id, window_key).
        3. If none: recurring targets get a new ACTIVE instance; one-time
           targets get one only if no instance was ever COMPLETED.
        4. If the current instance is ACTIVE: expire it once its window has
           passed, otherwise return it.
        5. COMPLETED and EXPIRED instances are never touched.
        6. ACTIVE instances from earlier windows whose end has passed expire.

        Args:
            targets: The user's target definitions
            instances: The user's full instance history
            timezone: IANA zone name or tzinfo, required
            now: Reference instant

        Returns:
            ReconcilePlan describing the pass.

        Raises:
            ValueError: If the timezone is unknown.
        """
        tz = resolve_timezone(timezone)
        now_utc = as_utc(now)
        plan = ReconcilePlan()

        instances_by_target: dict[str, list[TargetInstanceData]] = {}
        for instance in instances:
            instances_by_target.setdefault(
                instance.get(const.DATA_INSTANCE_TARGET_ID, ""), []
            ).append(instance)

        for target in targets:
            if target.get(const.DATA_TARGET_IS_ARCHIVED, False):
                continue

            target_id = target[const.DATA_TARGET_ID]
            try:
                window = WindowEngine.compute_window(
                    target.get(const.DATA_TARGET_WINDOW_TYPE, ""),
                    tz,
                    now_utc,
                    target.get(const.DATA_TARGET_CUSTOM_DURATION_DAYS),
                )
            except ValueError as err:
                _LOGGER.warning("Skipping target %s: %s", target_id, err)
                continue

            target_instances = instances_by_target.get(target_id, [])
            current, duplicates = InstanceEngine.select_canonical(
                [
                    inst
                    for inst in target_instances
                    if inst.get(const.DATA_INSTANCE_WINDOW_KEY) == window.key
                ],
                InstanceEngine.build_instance_id(target_id, window.key),
            )
            if duplicates:
                _LOGGER.warning(
                    "Target %s has %s duplicate instance(s) for window %s",
                    target_id,
                    len(duplicates),
                    window.key,
                )
                plan.duplicates.extend(duplicates)

            if current is None and InstanceEngine._may_create(
                target, target_instances
            ):
                current = InstanceEngine.build_instance(target, window, now_utc)
                plan.creations.append(current)

            if current is not None and (
                current.get(const.DATA_INSTANCE_STATUS) == const.INSTANCE_STATUS_ACTIVE
            ):
                result = InstanceEngine.apply_event(
                    current, const.INSTANCE_EVENT_EXPIRE_IF_PAST_DEADLINE, now_utc
                )
                if result.changed:
                    plan.expirations.append(result.instance)
                else:
                    plan.active.append(current)

            current_id = current.get(const.DATA_INSTANCE_ID) if current else None
            for stale in target_instances:
                if (
                    stale.get(const.DATA_INSTANCE_ID) == current_id
                    or stale.get(const.DATA_INSTANCE_STATUS)
                    != const.INSTANCE_STATUS_ACTIVE
                ):
                    continue
                result = InstanceEngine.apply_event(
                    stale, const.INSTANCE_EVENT_EXPIRE_IF_PAST_DEADLINE, now_utc
                )
                if result.changed:
                    plan.expirations.append(result.instance)

        return plan

    @staticmethod
    def _may_create(
        target: Mapping[str, Any], target_instances: list[TargetInstanceData]
    ) -> bool:
        """Return True if a new instance may be created for the target.

        One-time targets are exhausted by their first COMPLETED instance.
        """
        if target.get(const.DATA_TARGET_IS_RECURRING, False):
            return True
        return not any(
            inst.get(const.DATA_INSTANCE_STATUS) == const.INSTANCE_STATUS_COMPLETED
            for inst in target_instances
        )
