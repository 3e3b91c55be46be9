"""Capability tables for the supported Mill device variants.

All variants share one engine. A variant only decides which endpoints each
poll cadence visits, in which order, and which commands are accepted.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import StrEnum


__all__ = [
    "OPTIONAL_STEPS",
    "Command",
    "DeviceVariant",
    "PollStep",
    "VariantCapabilities",
    "capabilities_for",
]


class DeviceVariant(StrEnum):
    """Supported device variants."""

    PANEL_HEATER = "panel_heater"
    CONVECTION_HEATER = "convection_heater"
    OIL_HEATER = "oil_heater"
    SOCKET = "socket"
    ALL_FUNCTIONS = "all_functions"


class PollStep(StrEnum):
    """One endpoint read within a poll tick."""

    CONTROL_STATUS = "control_status"
    NORMAL_SET_TEMPERATURE = "normal_set_temperature"
    COMFORT_SET_TEMPERATURE = "comfort_set_temperature"
    SLEEP_SET_TEMPERATURE = "sleep_set_temperature"
    AWAY_SET_TEMPERATURE = "away_set_temperature"
    STATUS = "status"
    OPERATION_MODE = "operation_mode"
    TEMPERATURE_CALIBRATION_OFFSET = "temperature_calibration_offset"
    DISPLAY_UNIT = "display_unit"
    PREDICTIVE_HEATING_TYPE = "predictive_heating_type"
    CONTROLLER_TYPE = "controller_type"
    LIMITED_HEATING_POWER = "limited_heating_power"
    OIL_HEATER_POWER = "oil_heater_power"
    TIMEZONE_OFFSET = "timezone_offset"
    CLOUD_COMMUNICATION = "cloud_communication"
    PID_PARAMETERS = "pid_parameters"
    HYSTERESIS_PARAMETERS = "hysteresis_parameters"
    CHILD_LOCK = "child_lock"
    COMMERCIAL_LOCK = "commercial_lock"
    COMMERCIAL_LOCK_CUSTOMIZATION = "commercial_lock_customization"
    OPEN_WINDOW_PARAMETERS = "open_window_parameters"


# Steps whose endpoint some firmware lacks; a 4xx answer skips them
OPTIONAL_STEPS = frozenset(
    {
        PollStep.OPERATION_MODE,
        PollStep.TIMEZONE_OFFSET,
        PollStep.PID_PARAMETERS,
        PollStep.CLOUD_COMMUNICATION,
        PollStep.HYSTERESIS_PARAMETERS,
        PollStep.COMMERCIAL_LOCK_CUSTOMIZATION,
        PollStep.OPEN_WINDOW_PARAMETERS,
    }
)


class Command(StrEnum):
    """Commands a variant may accept."""

    REBOOT = "reboot"
    SET_TIMEZONE_OFFSET = "set_timezone_offset"
    SET_CLOUD_COMMUNICATION = "set_cloud_communication"
    SET_HYSTERESIS_PARAMETERS = "set_hysteresis_parameters"
    SET_INDEPENDENT_TEMPERATURE = "set_independent_temperature"
    SET_CUSTOM_NAME = "set_custom_name"
    SET_OPEN_WINDOW_PARAMETERS = "set_open_window_parameters"
    SET_OPEN_WINDOW_ENABLED = "set_open_window_enabled"
    SET_PID_PARAMETERS = "set_pid_parameters"
    SET_API_KEY = "set_api_key"
    SET_OPERATION_MODE = "set_operation_mode"
    SET_TEMPERATURE_CALIBRATION_OFFSET = "set_temperature_calibration_offset"
    SET_SET_TEMPERATURE = "set_set_temperature"
    SET_CHILD_LOCK = "set_child_lock"
    SET_COMMERCIAL_LOCK = "set_commercial_lock"
    SET_COMMERCIAL_LOCK_CUSTOMIZATION = "set_commercial_lock_customization"
    SET_DISPLAY_UNIT = "set_display_unit"
    SET_LIMITED_HEATING_POWER = "set_limited_heating_power"
    SET_CONTROLLER_TYPE = "set_controller_type"
    SET_PREDICTIVE_HEATING_TYPE = "set_predictive_heating_type"
    SET_OIL_HEATER_POWER = "set_oil_heater_power"


@dataclass(frozen=True)
class VariantCapabilities:
    """Poll sequences and accepted commands of a variant.

    Attributes:
        variant: The device variant.
        frequent: Ordered steps of the frequent cadence.
        infrequent: Ordered steps of the infrequent cadence.
        commands: Accepted commands.
    """

    variant: DeviceVariant
    frequent: tuple[PollStep, ...]
    infrequent: tuple[PollStep, ...]
    commands: frozenset[Command]

    def supports(self, command: Command) -> bool:
        """Check if the variant accepts a command."""
        return command in self.commands


_FREQUENT = (
    PollStep.CONTROL_STATUS,
    PollStep.NORMAL_SET_TEMPERATURE,
    PollStep.COMFORT_SET_TEMPERATURE,
    PollStep.SLEEP_SET_TEMPERATURE,
    PollStep.AWAY_SET_TEMPERATURE,
)

_COMMON_COMMANDS = frozenset(
    {
        Command.REBOOT,
        Command.SET_TIMEZONE_OFFSET,
        Command.SET_CLOUD_COMMUNICATION,
        Command.SET_INDEPENDENT_TEMPERATURE,
        Command.SET_CUSTOM_NAME,
        Command.SET_API_KEY,
        Command.SET_OPERATION_MODE,
        Command.SET_SET_TEMPERATURE,
        Command.SET_CHILD_LOCK,
        Command.SET_COMMERCIAL_LOCK,
        Command.SET_COMMERCIAL_LOCK_CUSTOMIZATION,
        Command.SET_DISPLAY_UNIT,
    }
)

_HEATER_COMMANDS = _COMMON_COMMANDS | {
    Command.SET_TEMPERATURE_CALIBRATION_OFFSET,
    Command.SET_PREDICTIVE_HEATING_TYPE,
    Command.SET_OPEN_WINDOW_PARAMETERS,
    Command.SET_OPEN_WINDOW_ENABLED,
}

_CONVECTION = VariantCapabilities(
    variant=DeviceVariant.CONVECTION_HEATER,
    frequent=_FREQUENT,
    infrequent=(
        PollStep.STATUS,
        PollStep.TEMPERATURE_CALIBRATION_OFFSET,
        PollStep.DISPLAY_UNIT,
        PollStep.PREDICTIVE_HEATING_TYPE,
        PollStep.TIMEZONE_OFFSET,
        PollStep.CLOUD_COMMUNICATION,
        PollStep.HYSTERESIS_PARAMETERS,
        PollStep.COMMERCIAL_LOCK,
        PollStep.OPEN_WINDOW_PARAMETERS,
    ),
    commands=_HEATER_COMMANDS | {Command.SET_HYSTERESIS_PARAMETERS},
)

VARIANTS: dict[DeviceVariant, VariantCapabilities] = {
    DeviceVariant.PANEL_HEATER: VariantCapabilities(
        variant=DeviceVariant.PANEL_HEATER,
        frequent=_FREQUENT,
        infrequent=(
            PollStep.STATUS,
            PollStep.TEMPERATURE_CALIBRATION_OFFSET,
            PollStep.DISPLAY_UNIT,
            PollStep.PREDICTIVE_HEATING_TYPE,
            PollStep.TIMEZONE_OFFSET,
            PollStep.CLOUD_COMMUNICATION,
            PollStep.PID_PARAMETERS,
            PollStep.COMMERCIAL_LOCK,
            PollStep.OPEN_WINDOW_PARAMETERS,
        ),
        commands=_HEATER_COMMANDS | {Command.SET_PID_PARAMETERS, Command.SET_LIMITED_HEATING_POWER},
    ),
    DeviceVariant.CONVECTION_HEATER: _CONVECTION,
    DeviceVariant.OIL_HEATER: replace(
        _CONVECTION,
        variant=DeviceVariant.OIL_HEATER,
        commands=_CONVECTION.commands | {Command.SET_OIL_HEATER_POWER},
    ),
    DeviceVariant.SOCKET: VariantCapabilities(
        variant=DeviceVariant.SOCKET,
        frequent=_FREQUENT,
        infrequent=(
            PollStep.STATUS,
            PollStep.DISPLAY_UNIT,
            PollStep.TIMEZONE_OFFSET,
            PollStep.CLOUD_COMMUNICATION,
            PollStep.COMMERCIAL_LOCK,
        ),
        commands=_COMMON_COMMANDS,
    ),
    DeviceVariant.ALL_FUNCTIONS: VariantCapabilities(
        variant=DeviceVariant.ALL_FUNCTIONS,
        frequent=_FREQUENT,
        infrequent=(
            PollStep.STATUS,
            PollStep.TEMPERATURE_CALIBRATION_OFFSET,
            PollStep.DISPLAY_UNIT,
            PollStep.LIMITED_HEATING_POWER,
            PollStep.CONTROLLER_TYPE,
            PollStep.PREDICTIVE_HEATING_TYPE,
            PollStep.OIL_HEATER_POWER,
            PollStep.TIMEZONE_OFFSET,
            PollStep.PID_PARAMETERS,
            PollStep.COMMERCIAL_LOCK,
        ),
        commands=frozenset(Command),
    ),
}


def capabilities_for(
    variant: DeviceVariant | str,
    *,
    commercial_lock_customization: bool = False,
) -> VariantCapabilities:
    """Get the capabilities of a variant.

    Args:
        variant: Device variant or its name.
        commercial_lock_customization: Poll the commercial lock customization
            endpoint as well. It is broken in firmware 0x230630 and off by
            default.

    Returns:
        The variant's capabilities.

    Raises:
        ValueError: If the variant is unknown.
    """
    capabilities = VARIANTS[DeviceVariant(variant)]

    # Extension point: the commercial lock customization read is excluded from
    # every default sequence because firmware 0x230630 answers it incorrectly.
    # Opt in here (per device) once a firmware with a working endpoint exists.
    if commercial_lock_customization and PollStep.COMMERCIAL_LOCK in capabilities.infrequent:
        steps = list(capabilities.infrequent)
        steps.insert(steps.index(PollStep.COMMERCIAL_LOCK) + 1, PollStep.COMMERCIAL_LOCK_CUSTOMIZATION)
        capabilities = replace(capabilities, infrequent=tuple(steps))
    return capabilities
