# File: const.py
"""Constants for the Habit Targets integration.

This file centralizes configuration keys, defaults, storage keys, window types,
instance statuses, service names and translation keys for consistency across
the integration.
"""

import logging

# ------------------------------------------------------------------------------------------------
# General / Integration Information
# ------------------------------------------------------------------------------------------------
HABIT_TARGETS_TITLE = "Habit Targets"

# Integration Domain
DOMAIN = "habit_targets"

# Logger
LOGGER = logging.getLogger(__package__)

# hass.data keys
TARGET_MANAGER = "target_manager"
STORAGE_MANAGER = "storage_manager"

# Storage and Versioning
STORAGE_KEY = "habit_targets_data"
STORAGE_VERSION = 1
SCHEMA_VERSION = 1

# ------------------------------------------------------------------------------------------------
# Configuration Keys / Defaults
# ------------------------------------------------------------------------------------------------
CONF_RETRY_ATTEMPTS = "retry_attempts"
CONF_RETRY_BASE_DELAY = "retry_base_delay"

DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_RETRY_BASE_DELAY = 0.1  # seconds, doubled after each failed attempt
MIN_RETRY_ATTEMPTS = 1
MAX_RETRY_ATTEMPTS = 10
MAX_RETRY_BASE_DELAY = 5.0

# Flow step ids
CONFIG_FLOW_STEP_USER = "user"
OPTIONS_FLOW_STEP_INIT = "init"

DEFAULT_REQUIRED_COUNT = 1

# ------------------------------------------------------------------------------------------------
# Storage Data Keys
# ------------------------------------------------------------------------------------------------
DATA_META = "meta"
DATA_META_SCHEMA_VERSION = "schema_version"
DATA_USERS = "users"
DATA_TARGETS = "targets"
DATA_INSTANCES = "instances"

# Target fields
DATA_TARGET_ID = "id"
DATA_TARGET_TITLE = "title"
DATA_TARGET_DESCRIPTION = "description"
DATA_TARGET_SUCCESS_CRITERIA_TEXT = "success_criteria_text"
DATA_TARGET_ICON = "icon"
DATA_TARGET_COLOR = "color"
DATA_TARGET_WINDOW_TYPE = "window_type"
DATA_TARGET_CUSTOM_DURATION_DAYS = "custom_duration_days"
DATA_TARGET_REQUIRED_COUNT = "required_count"
DATA_TARGET_IS_RECURRING = "is_recurring"
DATA_TARGET_IS_ARCHIVED = "is_archived"
DATA_TARGET_CREATED_AT = "created_at"
DATA_TARGET_UPDATED_AT = "updated_at"

# Fields a caller may change through update_target
TARGET_EDITABLE_FIELDS = (
    DATA_TARGET_TITLE,
    DATA_TARGET_DESCRIPTION,
    DATA_TARGET_SUCCESS_CRITERIA_TEXT,
    DATA_TARGET_ICON,
    DATA_TARGET_COLOR,
    DATA_TARGET_WINDOW_TYPE,
    DATA_TARGET_CUSTOM_DURATION_DAYS,
    DATA_TARGET_REQUIRED_COUNT,
    DATA_TARGET_IS_RECURRING,
)

# Target instance fields
DATA_INSTANCE_ID = "id"
DATA_INSTANCE_TARGET_ID = "target_id"
DATA_INSTANCE_WINDOW_KEY = "window_key"
DATA_INSTANCE_WINDOW_START = "window_start"
DATA_INSTANCE_WINDOW_END = "window_end"
DATA_INSTANCE_STATUS = "status"
DATA_INSTANCE_CREATED_AT = "created_at"
DATA_INSTANCE_COMPLETED_AT = "completed_at"

# ------------------------------------------------------------------------------------------------
# Window Types
# ------------------------------------------------------------------------------------------------
WINDOW_TYPE_WEEK = "WEEK"
WINDOW_TYPE_2_WEEKS = "2_WEEKS"
WINDOW_TYPE_MONTH = "MONTH"
WINDOW_TYPE_2_MONTHS = "2_MONTHS"
WINDOW_TYPE_6_MONTHS = "6_MONTHS"
WINDOW_TYPE_YEAR = "YEAR"
WINDOW_TYPE_CUSTOM = "CUSTOM"

WINDOW_TYPE_OPTIONS = [
    WINDOW_TYPE_WEEK,
    WINDOW_TYPE_2_WEEKS,
    WINDOW_TYPE_MONTH,
    WINDOW_TYPE_2_MONTHS,
    WINDOW_TYPE_6_MONTHS,
    WINDOW_TYPE_YEAR,
    WINDOW_TYPE_CUSTOM,
]

# Window key prefixes
WINDOW_KEY_PREFIX_BIWEEK = "biweek"
WINDOW_KEY_PREFIX_CUSTOM = "custom"
WINDOW_KEY_PREFIX_FALLBACK = "fallback"

# Unrecognized window types fall back to fixed epoch-anchored buckets
FALLBACK_WINDOW_DAYS = 30

# ------------------------------------------------------------------------------------------------
# Instance Statuses and Events
# ------------------------------------------------------------------------------------------------
INSTANCE_STATUS_ACTIVE = "ACTIVE"
INSTANCE_STATUS_COMPLETED = "COMPLETED"
INSTANCE_STATUS_EXPIRED = "EXPIRED"

INSTANCE_EVENT_COMPLETE = "complete"
INSTANCE_EVENT_EXPIRE_IF_PAST_DEADLINE = "expire_if_past_deadline"

# ------------------------------------------------------------------------------------------------
# Dispatcher Signal Suffixes
# ------------------------------------------------------------------------------------------------
SIGNAL_SUFFIX_INSTANCE_CREATED = "instance_created"
SIGNAL_SUFFIX_INSTANCE_EXPIRED = "instance_expired"
SIGNAL_SUFFIX_INSTANCE_COMPLETED = "instance_completed"
SIGNAL_SUFFIX_TARGET_CREATED = "target_created"
SIGNAL_SUFFIX_TARGET_UPDATED = "target_updated"
SIGNAL_SUFFIX_TARGET_ARCHIVED = "target_archived"

# ------------------------------------------------------------------------------------------------
# Services
# ------------------------------------------------------------------------------------------------
SERVICE_RECONCILE_TARGETS = "reconcile_targets"
SERVICE_COMPLETE_TARGET_INSTANCE = "complete_target_instance"
SERVICE_CREATE_TARGET = "create_target"
SERVICE_UPDATE_TARGET = "update_target"
SERVICE_ARCHIVE_TARGET = "archive_target"

SERVICES = [
    SERVICE_RECONCILE_TARGETS,
    SERVICE_COMPLETE_TARGET_INSTANCE,
    SERVICE_CREATE_TARGET,
    SERVICE_UPDATE_TARGET,
    SERVICE_ARCHIVE_TARGET,
]

# Service fields
FIELD_USER_ID = "user_id"
FIELD_TARGET_ID = "target_id"
FIELD_INSTANCE_ID = "instance_id"
FIELD_TIMEZONE = "timezone"

# Service response keys
RESPONSE_ACTIVE_INSTANCES = "active_instances"
RESPONSE_INSTANCE = "instance"
RESPONSE_ID = "id"

# ------------------------------------------------------------------------------------------------
# Translation Keys
# ------------------------------------------------------------------------------------------------
TRANS_KEY_ERROR_NOT_FOUND = "not_found"
TRANS_KEY_ERROR_INVALID_TRANSITION = "invalid_transition"
TRANS_KEY_ERROR_INVALID_TARGET = "invalid_target"
TRANS_KEY_ERROR_INVALID_TIMEZONE = "invalid_timezone"
TRANS_KEY_ERROR_STORAGE_FAILED = "storage_failed"
TRANS_KEY_ERROR_NOT_LOADED = "not_loaded"
TRANS_KEY_ERROR_SINGLE_INSTANCE = "single_instance_allowed"

# Target validation error keys (returned by InstanceEngine.validate_target)
CFOF_ERROR_TITLE_REQUIRED = "title_required"
CFOF_ERROR_INVALID_WINDOW_TYPE = "invalid_window_type"
CFOF_ERROR_CUSTOM_DURATION_REQUIRED = "custom_duration_required"
CFOF_ERROR_CUSTOM_DURATION_NOT_ALLOWED = "custom_duration_not_allowed"
CFOF_ERROR_REQUIRED_COUNT_INVALID = "required_count_invalid"

LABEL_TARGET = "Target"
LABEL_INSTANCE = "Target instance"
