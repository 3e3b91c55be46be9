"""Data models for Mill LAN API requests and responses.

Every response dataclass declares, per field, the JSON key it is read from and
the kind of value expected there (``float``, ``int``, ``bool``, ``str`` or a
wire enumeration). The codec in :mod:`pymilllan.serializers` uses that
metadata to decode bodies, so the models themselves hold no parsing logic.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


__all__ = [
    "Attribute",
    "ChildLockResponse",
    "CloudCommunicationResponse",
    "CommercialLockCustomization",
    "CommercialLockCustomizationResponse",
    "CommercialLockResponse",
    "ControlStatusResponse",
    "ControllerType",
    "ControllerTypeResponse",
    "DisplayUnit",
    "DisplayUnitResponse",
    "HysteresisParameters",
    "HysteresisParametersResponse",
    "LimitedHeatingPowerResponse",
    "LockStatus",
    "OilHeaterPowerResponse",
    "OpenWindowParameters",
    "OpenWindowParametersResponse",
    "OpenWindowStatus",
    "OperationMode",
    "OperationModeResponse",
    "PIDParameters",
    "PIDParametersResponse",
    "PredictiveHeatingType",
    "PredictiveHeatingTypeResponse",
    "Response",
    "ResponseStatus",
    "SetTemperatureResponse",
    "StatusResponse",
    "TemperatureCalibrationOffsetResponse",
    "TemperatureType",
    "TimeZoneOffsetResponse",
]

WIRE_NAME = "wire"
WIRE_KIND = "kind"


def wire_field(name: str, kind: Any = None) -> Any:
    """Declare an optional dataclass field mapped to a JSON key.

    Args:
        name: JSON key on the wire.
        kind: Expected value kind, used when decoding responses.

    Returns:
        A dataclass field defaulting to None.
    """
    return field(default=None, metadata={WIRE_NAME: name, WIRE_KIND: kind})


# -------------------------------------------------------------------------
# Wire Enumerations
# -------------------------------------------------------------------------


class WireEnum(StrEnum):
    """String enumeration decoded from a device value.

    Values the device sends that match no member resolve to ``UNRECOGNIZED``
    instead of failing, so newer firmware values degrade gracefully.
    """

    @classmethod
    def _missing_(cls, value: object) -> Any:
        return cls.__members__.get("UNRECOGNIZED")


class ResponseStatus(WireEnum):
    """Envelope status present in every device response."""

    OK = "ok"
    PARSE_FAILED = "Failed to parse message body"
    REQUEST_FAILED = "Failed to execute the request"
    TOO_LONG = "Length of request body too long"
    RESPONSE_FAILED = "Failed to create response body"
    UNRECOGNIZED = "unrecognized"

    @property
    def description(self) -> str:
        """Get a human-readable description of the status."""
        return _RESPONSE_STATUS_DESCRIPTIONS[self]


_RESPONSE_STATUS_DESCRIPTIONS = {
    ResponseStatus.OK: "The request was successful",
    ResponseStatus.PARSE_FAILED: "The request body is incorrect or the parameters are invalid",
    ResponseStatus.REQUEST_FAILED: "There was a problem with the processing request",
    ResponseStatus.TOO_LONG: "The length of the request body is too long",
    ResponseStatus.RESPONSE_FAILED: "There was a problem when creating the response",
    ResponseStatus.UNRECOGNIZED: "The device returned an unrecognized response status",
}


class LockStatus(WireEnum):
    """Lock state reported by control-status."""

    NO_LOCK = "No lock"
    CHILD_LOCK = "Child lock"
    COMMERCIAL_LOCK = "Commercial lock"
    UNRECOGNIZED = "unrecognized"


class OpenWindowStatus(WireEnum):
    """Open window function state reported by control-status."""

    DISABLED = "Disabled not active now"
    ENABLED_ACTIVE = "Enabled active now"
    ENABLED_INACTIVE = "Enabled not active now"
    UNRECOGNIZED = "unrecognized"

    @property
    def enabled(self) -> bool | None:
        """Check if the open window function is enabled."""
        if self is OpenWindowStatus.UNRECOGNIZED:
            return None
        return self is not OpenWindowStatus.DISABLED

    @property
    def active(self) -> bool | None:
        """Check if the open window function is currently active."""
        if self is OpenWindowStatus.UNRECOGNIZED:
            return None
        return self is OpenWindowStatus.ENABLED_ACTIVE


class OperationMode(WireEnum):
    """Device operation mode."""

    OFF = "Off"
    WEEKLY_PROGRAM = "Weekly program"
    INDEPENDENT_DEVICE = "Independent device"
    CONTROL_INDIVIDUALLY = "Control individually"
    INVALID = "Invalid"
    UNRECOGNIZED = "unrecognized"

    @property
    def description(self) -> str:
        """Get a human-readable description of the mode."""
        return _OPERATION_MODE_DESCRIPTIONS[self]


_OPERATION_MODE_DESCRIPTIONS = {
    OperationMode.OFF: "The device is off",
    OperationMode.WEEKLY_PROGRAM: "The device follows the weekly program",
    OperationMode.INDEPENDENT_DEVICE: "The device uses a single set-temperature",
    OperationMode.CONTROL_INDIVIDUALLY: "The device is controlled by the cloud",
    OperationMode.INVALID: "The device reports an invalid mode",
    OperationMode.UNRECOGNIZED: "The device reports an unrecognized mode",
}


class TemperatureType(WireEnum):
    """Set-temperature slot."""

    OFF = "Off"
    NORMAL = "Normal"
    COMFORT = "Comfort"
    SLEEP = "Sleep"
    AWAY = "Away"
    ALWAYS_HEATING = "AlwaysHeating"
    UNRECOGNIZED = "unrecognized"


class ControllerType(WireEnum):
    """Temperature regulator type."""

    PID = "pid"
    SLOW_PID = "hysteresis_or_slow_pid"
    UNKNOWN = "unknown"
    UNRECOGNIZED = "unrecognized"


class PredictiveHeatingType(WireEnum):
    """Predictive heating type."""

    OFF = "Off"
    SIMPLE = "Simple"
    ADVANCED = "Advanced"
    UNRECOGNIZED = "unrecognized"


class DisplayUnit(WireEnum):
    """Display unit. The device spells Fahrenheit as "Farenheit"."""

    CELSIUS = "Celsius"
    FAHRENHEIT = "Farenheit"
    UNRECOGNIZED = "unrecognized"


# -------------------------------------------------------------------------
# Mirror Attributes
# -------------------------------------------------------------------------


class Attribute(StrEnum):
    """Logical device attributes kept in the device mirror."""

    # control-status
    AMBIENT_TEMPERATURE = "ambient_temperature"
    RAW_AMBIENT_TEMPERATURE = "raw_ambient_temperature"
    CURRENT_POWER = "current_power"
    CONTROL_SIGNAL = "control_signal"
    LOCK_STATUS = "lock_status"
    OPEN_WINDOW_STATUS = "open_window_status"
    SET_TEMPERATURE = "set_temperature"
    SWITCHED_ON = "switched_on"
    CONNECTED_TO_CLOUD = "connected_to_cloud"
    OPERATION_MODE = "operation_mode"

    # set-temperature per mode
    NORMAL_SET_TEMPERATURE = "normal_set_temperature"
    COMFORT_SET_TEMPERATURE = "comfort_set_temperature"
    SLEEP_SET_TEMPERATURE = "sleep_set_temperature"
    AWAY_SET_TEMPERATURE = "away_set_temperature"
    INDEPENDENT_SET_TEMPERATURE = "independent_set_temperature"

    # status
    NAME = "name"
    CUSTOM_NAME = "custom_name"
    FIRMWARE_VERSION = "firmware_version"
    OPERATION_KEY = "operation_key"
    MAC_ADDRESS = "mac_address"

    # configuration
    TEMPERATURE_CALIBRATION_OFFSET = "temperature_calibration_offset"
    DISPLAY_UNIT = "display_unit"
    PREDICTIVE_HEATING_TYPE = "predictive_heating_type"
    CONTROLLER_TYPE = "controller_type"
    LIMITED_HEATING_POWER = "limited_heating_power"
    OIL_HEATER_POWER = "oil_heater_power"
    TIMEZONE_OFFSET = "timezone_offset"
    CLOUD_COMMUNICATION = "cloud_communication"
    COMMERCIAL_LOCK = "commercial_lock"
    CHILD_LOCK = "child_lock"

    # PID parameters
    PID_KP = "pid_kp"
    PID_KI = "pid_ki"
    PID_KD = "pid_kd"
    PID_KD_FILTER_N = "pid_kd_filter_n"
    PID_WINDUP_LIMIT_PCT = "pid_windup_limit_pct"

    # hysteresis parameters
    HYSTERESIS_UPPER = "hysteresis_upper"
    HYSTERESIS_LOWER = "hysteresis_lower"

    # commercial lock customization
    COMMERCIAL_LOCK_MIN_TEMP = "commercial_lock_min_temp"
    COMMERCIAL_LOCK_MAX_TEMP = "commercial_lock_max_temp"

    # open window parameters
    OPEN_WINDOW_DROP_TEMP_THRESHOLD = "open_window_drop_temp_threshold"
    OPEN_WINDOW_DROP_TIME_RANGE = "open_window_drop_time_range"
    OPEN_WINDOW_ENABLED = "open_window_enabled"
    OPEN_WINDOW_INCREASE_TEMP_THRESHOLD = "open_window_increase_temp_threshold"
    OPEN_WINDOW_INCREASE_TIME_RANGE = "open_window_increase_time_range"
    OPEN_WINDOW_MAX_TIME = "open_window_max_time"
    OPEN_WINDOW_ACTIVE = "open_window_active"


# -------------------------------------------------------------------------
# Responses
# -------------------------------------------------------------------------


@dataclass
class Response:
    """Generic device response carrying only the envelope status.

    Attributes:
        status: Envelope status, None when the device omitted it.
    """

    status: ResponseStatus | None = wire_field("status", ResponseStatus)


@dataclass
class StatusResponse(Response):
    """Response from ``GET /status``.

    Attributes:
        name: Device model name.
        custom_name: User assigned name.
        version: Firmware version.
        operation_key: Operation key.
        mac_address: MAC address of the device.
    """

    name: str | None = wire_field("name", str)
    custom_name: str | None = wire_field("custom_name", str)
    version: str | None = wire_field("version", str)
    operation_key: str | None = wire_field("operation_key", str)
    mac_address: str | None = wire_field("mac_address", str)


@dataclass
class ControlStatusResponse(Response):
    """Response from ``GET /control-status``.

    Attributes:
        ambient_temperature: Ambient temperature in °C.
        current_power: Current power draw in W.
        control_signal: Control signal in percent.
        lock_status: Lock state.
        open_window_status: Open window function state.
        raw_ambient_temperature: Uncalibrated ambient temperature in °C.
        set_temperature: Active set-temperature in °C.
        switched_on: Whether the heating element is on.
        connected_to_cloud: Whether the device is connected to the cloud.
        operation_mode: Current operation mode.
    """

    ambient_temperature: float | None = wire_field("ambient_temperature", float)
    current_power: float | None = wire_field("current_power", float)
    control_signal: float | None = wire_field("control_signal", float)
    lock_status: LockStatus | None = wire_field("lock_active", LockStatus)
    open_window_status: OpenWindowStatus | None = wire_field("open_window_active_now", OpenWindowStatus)
    raw_ambient_temperature: float | None = wire_field("raw_ambient_temperature", float)
    set_temperature: float | None = wire_field("set_temperature", float)
    switched_on: bool | None = wire_field("switched_on", bool)
    connected_to_cloud: bool | None = wire_field("connected_to_cloud", bool)
    operation_mode: OperationMode | None = wire_field("operation_mode", OperationMode)


@dataclass
class OperationModeResponse(Response):
    """Response from ``GET /operation-mode``."""

    mode: OperationMode | None = wire_field("mode", OperationMode)


@dataclass
class TemperatureCalibrationOffsetResponse(Response):
    """Response from ``GET /temperature-calibration-offset``."""

    value: float | None = wire_field("value", float)


@dataclass
class CommercialLockResponse(Response):
    """Response from ``GET /commercial-lock``."""

    value: bool | None = wire_field("value", bool)


@dataclass
class ChildLockResponse(Response):
    """Response from ``GET /child-lock``."""

    value: bool | None = wire_field("value", bool)


@dataclass
class DisplayUnitResponse(Response):
    """Response from ``GET /display-unit``."""

    value: DisplayUnit | None = wire_field("value", DisplayUnit)


@dataclass
class SetTemperatureResponse(Response):
    """Response from ``GET /set-temperature``."""

    value: float | None = wire_field("value", float)


@dataclass
class LimitedHeatingPowerResponse(Response):
    """Response from ``GET /limited-heating-power``."""

    value: int | None = wire_field("limited_heating_power", int)


@dataclass
class ControllerTypeResponse(Response):
    """Response from ``GET /controller-type``."""

    value: ControllerType | None = wire_field("regulator_type", ControllerType)


@dataclass
class PredictiveHeatingTypeResponse(Response):
    """Response from ``GET /predictive-heating-type``."""

    value: PredictiveHeatingType | None = wire_field("predictive_heating_type", PredictiveHeatingType)


@dataclass
class OilHeaterPowerResponse(Response):
    """Response from ``GET /oil-heater-power``."""

    value: int | None = wire_field("heating_level_percentage", int)


@dataclass
class TimeZoneOffsetResponse(Response):
    """Response from ``GET /timezone-offset``. The offset is in minutes."""

    offset: int | None = wire_field("timezone_offset", int)


@dataclass
class CloudCommunicationResponse(Response):
    """Response from ``GET /cloud-communication``."""

    value: bool | None = wire_field("value", bool)


@dataclass
class PIDParametersResponse(Response):
    """Response from ``GET /pid-parameters``.

    Attributes:
        kp: Proportional gain factor.
        ki: Integral gain factor.
        kd: Derivative gain factor.
        kd_filter_n: Derivative filter time coefficient.
        windup_limit_pct: Wind-up limit for the integral part (0-100).
    """

    kp: float | None = wire_field("kp", float)
    ki: float | None = wire_field("ki", float)
    kd: float | None = wire_field("kd", float)
    kd_filter_n: float | None = wire_field("kd_filter_N", float)
    windup_limit_pct: float | None = wire_field("windup_limit_percentage", float)

    @property
    def is_complete(self) -> bool:
        """Check if every parameter is present."""
        return None not in (self.kp, self.ki, self.kd, self.kd_filter_n, self.windup_limit_pct)


@dataclass
class HysteresisParametersResponse(Response):
    """Response from ``GET /hysteresis-parameters``.

    Attributes:
        upper: Upper hysteresis limit in °C.
        lower: Lower hysteresis limit in °C.
        regulator_type: Regulator type as reported by the device.
    """

    upper: float | None = wire_field("temp_hysteresis_upper", float)
    lower: float | None = wire_field("temp_hysteresis_lower", float)
    regulator_type: str | None = wire_field("regulator_type", str)

    @property
    def is_complete(self) -> bool:
        """Check if both limits are present."""
        return self.upper is not None and self.lower is not None


@dataclass
class CommercialLockCustomizationResponse(Response):
    """Response from ``GET /commercial-lock-customization``.

    Attributes:
        enabled: Whether the commercial lock is enabled.
        min_temperature: Lowest allowed set-temperature while locked.
        max_temperature: Highest allowed set-temperature while locked.
    """

    enabled: bool | None = wire_field("enabled", bool)
    min_temperature: float | None = wire_field("min_allowed_temp_in_commercial_lock", float)
    max_temperature: float | None = wire_field("max_allowed_temp_in_commercial_lock", float)

    @property
    def is_complete(self) -> bool:
        """Check if every field is present."""
        return None not in (self.enabled, self.min_temperature, self.max_temperature)


@dataclass
class OpenWindowParametersResponse(Response):
    """Response from ``GET /open-window``.

    Attributes:
        drop_temperature_threshold: Temperature drop in °C that activates the function.
        drop_time_range: Seconds over which a drop is evaluated.
        enabled: Whether the open window function is enabled.
        increase_temperature_threshold: Temperature increase in °C that deactivates it.
        increase_time_range: Seconds over which an increase is evaluated.
        max_time: Maximum time the function stays active.
        active_now: Whether the function is currently active.
    """

    drop_temperature_threshold: float | None = wire_field("drop_temperature_threshold", float)
    drop_time_range: int | None = wire_field("drop_time_range", int)
    enabled: bool | None = wire_field("enabled", bool)
    increase_temperature_threshold: float | None = wire_field("increase_temperature_threshold", float)
    increase_time_range: int | None = wire_field("increase_time_range", int)
    max_time: int | None = wire_field("max_time", int)
    active_now: bool | None = wire_field("active_now", bool)

    @property
    def is_complete(self) -> bool:
        """Check if every parameter is present."""
        return None not in (
            self.drop_temperature_threshold,
            self.drop_time_range,
            self.enabled,
            self.increase_temperature_threshold,
            self.increase_time_range,
            self.max_time,
        )


# -------------------------------------------------------------------------
# Requests
# -------------------------------------------------------------------------


@dataclass
class PIDParameters:
    """Request body for ``POST /pid-parameters``."""

    kp: float = wire_field("kp")
    ki: float = wire_field("ki")
    kd: float = wire_field("kd")
    kd_filter_n: float = wire_field("kd_filter_N")
    windup_limit_pct: float = wire_field("windup_limit_percentage")


@dataclass
class HysteresisParameters:
    """Request body for ``POST /hysteresis-parameters``."""

    upper: float = wire_field("temp_hysteresis_upper")
    lower: float = wire_field("temp_hysteresis_lower")


@dataclass
class CommercialLockCustomization:
    """Request body for ``POST /commercial-lock-customization``."""

    enabled: bool = wire_field("enabled")
    min_temperature: float = wire_field("min_allowed_temp_in_commercial_lock")
    max_temperature: float = wire_field("max_allowed_temp_in_commercial_lock")


@dataclass
class OpenWindowParameters:
    """Request body for ``POST /open-window``."""

    drop_temperature_threshold: float = wire_field("drop_temperature_threshold")
    drop_time_range: int = wire_field("drop_time_range")
    enabled: bool = wire_field("enabled")
    increase_temperature_threshold: float = wire_field("increase_temperature_threshold")
    increase_time_range: int = wire_field("increase_time_range")
    max_time: int = wire_field("max_time")
