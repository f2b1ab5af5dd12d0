"""Test helpers for Habit Targets tests.

    from tests.helpers import (
        TEST_USER_ID, TEST_TIMEZONE,
        make_target, make_instance,
    )
"""

from tests.helpers.factories import (
    OTHER_USER_ID,
    TEST_TIMEZONE,
    TEST_USER_ID,
    make_instance,
    make_target,
)

__all__ = [
    "OTHER_USER_ID",
    "TEST_TIMEZONE",
    "TEST_USER_ID",
    "make_instance",
    "make_target",
]
