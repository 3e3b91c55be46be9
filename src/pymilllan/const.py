"""Constants for pymilllan library."""

from __future__ import annotations


# HTTP Configuration
AUTHENTICATION_HEADER = "Authentication"
CONTENT_TYPE_JSON = "application/json"

# Request Timeouts
DEFAULT_TIMEOUT = 5.0  # seconds
STATUS_TIMEOUT = 8.0  # /status and /control-status
SET_API_KEY_TIMEOUT = 30.0  # device reboots before it would answer
REBOOT_TIMEOUT = 5.0  # device never answers a reboot

# Polling Configuration
DEFAULT_REFRESH_INTERVAL = 30  # seconds
DEFAULT_INFREQUENT_REFRESH_INTERVAL = 600  # seconds
INFREQUENT_INITIAL_DELAY = 0.7  # seconds, keeps the first ticks apart

# Parameter Validation
API_KEY_MAX_BYTES = 63
CUSTOM_NAME_MAX_LENGTH = 32
LIMITED_HEATING_POWER_MIN = 10
LIMITED_HEATING_POWER_MAX = 100
OIL_HEATER_POWER_LEVELS = (40, 60, 100)
PARAMETER_MAX_MAGNITUDE = 1_000_000_000

# Status Descriptions
DEVICE_REBOOTING = "Device is rebooting"
