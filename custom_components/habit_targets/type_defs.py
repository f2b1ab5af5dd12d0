"""Type definitions for Habit Targets data structures.

TypedDict is used for the two persisted entities because their keys are fixed
at design time. Storage buckets keyed by internal id stay `dict[str, Any]`.

IMPORTANT: This file must NOT import from managers or storage_manager to avoid
circular dependencies. Only import from typing.

NOTE: TypedDict is STATIC ANALYSIS ONLY. Runtime validation of stored records
happens in InstanceEngine and TargetManager.
"""

from typing import Literal, NotRequired, TypedDict

# =============================================================================
# Type Aliases (for readability)
# =============================================================================

UserId = str
TargetId = str  # UUID string
InstanceId = str  # UUID5 string derived from (target_id, window_key)
WindowKey = str  # "2025-W05", "2025-03", "custom-7", ...
ISODatetime = str  # ISO 8601 UTC datetime string "2026-01-18T12:30:00+00:00"

WindowTypeLiteral = Literal[
    "WEEK", "2_WEEKS", "MONTH", "2_MONTHS", "6_MONTHS", "YEAR", "CUSTOM"
]
InstanceStatusLiteral = Literal["ACTIVE", "COMPLETED", "EXPIRED"]


# =============================================================================
# Entity Types
# =============================================================================


class TargetData(TypedDict):
    """A recurring or one-time goal definition owned by one user.

    Cosmetic fields are carried through untouched; the engine never reads them.
    """

    id: TargetId
    title: str
    window_type: WindowTypeLiteral
    custom_duration_days: NotRequired[int]  # Present iff window_type == CUSTOM
    required_count: int
    is_recurring: bool
    is_archived: bool
    created_at: ISODatetime
    updated_at: ISODatetime
    description: NotRequired[str]
    success_criteria_text: NotRequired[str]
    icon: NotRequired[str]
    color: NotRequired[str]


class TargetInstanceData(TypedDict):
    """One materialized occurrence of a target within one time window."""

    id: InstanceId
    target_id: TargetId
    window_key: WindowKey
    window_start: ISODatetime
    window_end: ISODatetime  # Always later than window_start
    status: InstanceStatusLiteral
    created_at: ISODatetime
    completed_at: NotRequired[ISODatetime]  # Present iff status == COMPLETED


class UserBucket(TypedDict):
    """Per-user storage bucket holding both entity collections."""

    targets: dict[TargetId, TargetData]
    instances: dict[InstanceId, TargetInstanceData]
