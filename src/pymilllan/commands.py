"""Command gateway for Mill devices.

Every command validates its parameters before touching the network, runs the
write under the device lock, re-reads the affected endpoints and reports the
outcome as a :class:`CommandResult`. Commands never raise.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

from pymilllan.const import (
    API_KEY_MAX_BYTES,
    CUSTOM_NAME_MAX_LENGTH,
    LIMITED_HEATING_POWER_MAX,
    LIMITED_HEATING_POWER_MIN,
    OIL_HEATER_POWER_LEVELS,
    PARAMETER_MAX_MAGNITUDE,
)
from pymilllan.exceptions import CommunicationError, MillError
from pymilllan.models import (
    Attribute,
    ControllerType,
    DisplayUnit,
    HysteresisParameters,
    OpenWindowParameters,
    OperationMode,
    PIDParameters,
    PredictiveHeatingType,
    TemperatureType,
    WireEnum,
)
from pymilllan.precision import round_value
from pymilllan.variants import Command, PollStep


if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from pymilllan.api import MillAPI
    from pymilllan.devices import MillDevice


__all__ = ["CommandGateway", "CommandResult"]

_LOGGER = logging.getLogger(__name__)

_EnumT = TypeVar("_EnumT", bound=WireEnum)

_SET_TEMPERATURE_TARGETS: dict[TemperatureType, tuple[Attribute, PollStep]] = {
    TemperatureType.NORMAL: (Attribute.NORMAL_SET_TEMPERATURE, PollStep.NORMAL_SET_TEMPERATURE),
    TemperatureType.COMFORT: (Attribute.COMFORT_SET_TEMPERATURE, PollStep.COMFORT_SET_TEMPERATURE),
    TemperatureType.SLEEP: (Attribute.SLEEP_SET_TEMPERATURE, PollStep.SLEEP_SET_TEMPERATURE),
    TemperatureType.AWAY: (Attribute.AWAY_SET_TEMPERATURE, PollStep.AWAY_SET_TEMPERATURE),
}

_SERVICE_UNAVAILABLE = 503


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a command.

    Attributes:
        success: Whether the device accepted the command.
        message: Human-readable outcome.
    """

    success: bool
    message: str

    def __bool__(self) -> bool:
        """Return True if the command succeeded."""
        return self.success

    def __str__(self) -> str:
        """Return the message."""
        return self.message


def _is_valid_number(value: Any) -> bool:
    """Check if a value is a finite number small enough to send to the device."""
    if isinstance(value, bool) or not isinstance(value, int | float):
        return False
    try:
        return math.isfinite(value) and abs(value) <= PARAMETER_MAX_MAGNITUDE
    except OverflowError:
        return False


def _parse_enum(enum_type: type[_EnumT], value: _EnumT | str | None) -> _EnumT | None:
    """Convert a value to a settable enum member, or None if it isn't one."""
    if value is None:
        return None
    member = value if isinstance(value, enum_type) else enum_type(value)
    if member.name == "UNRECOGNIZED":
        return None
    return member


class CommandGateway:
    """Validated, serialized commands for one device.

    Example:
        ```python
        result = await device.commands.set_pid_parameters(20, 0.02, 0, 10, 95)
        if not result:
            print(result.message)
        ```
    """

    def __init__(self, device: MillDevice) -> None:
        """Initialize the gateway.

        Args:
            device: The device the commands run against.
        """
        self._device = device

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _reject(self, command: Command, message: str) -> CommandResult:
        """Refuse a command before any network call."""
        _LOGGER.warning("Rejected %s for %s: %s", command, self._device, message)
        return CommandResult(False, message)

    def _check_numbers(self, command: Command, **values: Any) -> CommandResult | None:
        for name, value in values.items():
            if not _is_valid_number(value):
                return self._reject(command, f"Invalid value for {name}: {value}")
        return None

    def _unsupported(self, command: Command) -> CommandResult | None:
        if self._device.capabilities.supports(command):
            return None
        variant = self._device.capabilities.variant
        return self._reject(command, f"The command {command} isn't supported by {variant} devices")

    async def _run(
        self,
        command: Command,
        write: Callable[[MillAPI], Awaitable[Any]],
        success: str,
        *,
        repoll: Sequence[PollStep] = (),
        rebooting: bool = False,
    ) -> CommandResult:
        """Execute a write on the device and turn the outcome into a result."""
        try:
            await self._device.execute(write, repoll=repoll, rebooting=rebooting)
        except MillError as err:
            _LOGGER.warning("Failed to execute %s on %s: %s", command, self._device, err)
            return CommandResult(False, f"Failed to execute {command}: {err}")
        except Exception as err:
            _LOGGER.exception("Unexpected error executing %s on %s", command, self._device)
            return CommandResult(False, f"Failed to execute {command}: {err}")
        _LOGGER.debug("Executed %s on %s", command, self._device)
        return CommandResult(True, success)

    async def _reboot_after(self, result: CommandResult, success: str) -> CommandResult:
        """Reboot the device after a successful write so the change takes effect."""
        if not result.success:
            return result
        return await self._run(Command.REBOOT, lambda api: api.reboot(), success, rebooting=True)

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------

    async def reboot(self) -> CommandResult:
        """Reboot the device."""
        if rejected := self._unsupported(Command.REBOOT):
            return rejected
        return await self._run(Command.REBOOT, lambda api: api.reboot(), "The device is rebooting.", rebooting=True)

    async def set_api_key(self, api_key: str | None, confirmation: str | None) -> CommandResult:
        """Set a new API key. The device reboots and switches to HTTPS.

        WARNING: The key can't be removed again without a factory reset.

        Args:
            api_key: The new key, at most 63 bytes in UTF-8.
            confirmation: Must match :attr:`MillDevice.device_id`, ignoring case.

        Returns:
            The command result.
        """
        command = Command.SET_API_KEY
        if rejected := self._unsupported(command):
            return rejected
        if api_key is None or not api_key.strip():
            return self._reject(command, "The API key can't be blank!")
        device_id = self._device.device_id
        if not confirmation or not device_id or confirmation.strip().lower() != device_id.lower():
            return self._reject(command, "The confirmation code doesn't match the device identifier!")
        if len(api_key.encode("utf-8")) > API_KEY_MAX_BYTES:
            return self._reject(command, f"The API key can't be longer than {API_KEY_MAX_BYTES} bytes!")

        result = await self._run(
            command,
            lambda api: api.set_api_key(api_key),
            "The API key was set. The device is rebooting.",
            rebooting=True,
        )
        if result.success:
            self._device.update_api_key(api_key)
        return result

    async def set_custom_name(self, name: str | None) -> CommandResult:
        """Set the custom device name. A blank name removes it."""
        command = Command.SET_CUSTOM_NAME
        if rejected := self._unsupported(command):
            return rejected
        name = (name or "").strip()
        if len(name) > CUSTOM_NAME_MAX_LENGTH:
            return self._reject(command, f"The custom name can't be longer than {CUSTOM_NAME_MAX_LENGTH} characters!")
        message = f"The custom device name was set to {name}" if name else "The custom device name was removed"
        return await self._run(command, lambda api: api.set_custom_name(name), message, repoll=(PollStep.STATUS,))

    async def set_timezone_offset(self, offset: int | None) -> CommandResult:
        """Set the time zone offset from UTC in minutes."""
        command = Command.SET_TIMEZONE_OFFSET
        if rejected := self._unsupported(command):
            return rejected
        if offset is None:
            return self._reject(command, "The time zone offset must be specified!")
        if rejected := self._check_numbers(command, offset=offset):
            return rejected
        offset = int(offset)
        return await self._run(
            command,
            lambda api: api.set_timezone_offset(offset),
            f"The time zone offset was set to {offset}.",
            repoll=(PollStep.TIMEZONE_OFFSET,),
        )

    async def set_cloud_communication(self, enabled: bool | None) -> CommandResult:
        """Enable or disable cloud communication, then reboot the device."""
        command = Command.SET_CLOUD_COMMUNICATION
        if rejected := self._unsupported(command):
            return rejected
        enabled = bool(enabled)
        success = f"The cloud communication was {'enabled' if enabled else 'disabled'}. The device is rebooting."
        result = await self._run(
            command,
            lambda api: api.set_cloud_communication(enabled),
            success,
            repoll=(PollStep.CLOUD_COMMUNICATION,),
        )
        return await self._reboot_after(result, success)

    # -------------------------------------------------------------------------
    # Regulator
    # -------------------------------------------------------------------------

    async def set_pid_parameters(
        self,
        kp: float | None,
        ki: float | None,
        kd: float | None,
        kd_filter_n: float | None,
        windup_limit_pct: float | None,
    ) -> CommandResult:
        """Set the PID regulator parameters. All five are required."""
        command = Command.SET_PID_PARAMETERS
        if rejected := self._unsupported(command):
            return rejected
        if None in (kp, ki, kd, kd_filter_n, windup_limit_pct):
            return self._reject(command, "All PID parameters must be specified!")
        if rejected := self._check_numbers(
            command, kp=kp, ki=ki, kd=kd, kd_filter_n=kd_filter_n, windup_limit_pct=windup_limit_pct
        ):
            return rejected
        parameters = PIDParameters(
            kp=round_value(Attribute.PID_KP, kp),
            ki=round_value(Attribute.PID_KI, ki),
            kd=round_value(Attribute.PID_KD, kd),
            kd_filter_n=round_value(Attribute.PID_KD_FILTER_N, kd_filter_n),
            windup_limit_pct=round_value(Attribute.PID_WINDUP_LIMIT_PCT, windup_limit_pct),
        )
        return await self._run(
            command,
            lambda api: api.set_pid_parameters(parameters),
            "The PID parameters were set.",
            repoll=(PollStep.PID_PARAMETERS,),
        )

    async def set_hysteresis_parameters(self, upper: float | None, lower: float | None) -> CommandResult:
        """Set the hysteresis limits, then reboot the device."""
        command = Command.SET_HYSTERESIS_PARAMETERS
        if rejected := self._unsupported(command):
            return rejected
        if upper is None or lower is None:
            return self._reject(command, "All hysteresis parameters must be specified!")
        if rejected := self._check_numbers(command, upper=upper, lower=lower):
            return rejected
        parameters = HysteresisParameters(
            upper=round_value(Attribute.HYSTERESIS_UPPER, upper),
            lower=round_value(Attribute.HYSTERESIS_LOWER, lower),
        )
        success = "The hysteresis parameters were set. The device is rebooting."
        result = await self._run(
            command,
            lambda api: api.set_hysteresis_parameters(parameters),
            success,
            repoll=(PollStep.HYSTERESIS_PARAMETERS,),
        )
        return await self._reboot_after(result, success)

    async def set_controller_type(self, controller_type: ControllerType | str | None) -> CommandResult:
        """Set the regulator type."""
        command = Command.SET_CONTROLLER_TYPE
        if rejected := self._unsupported(command):
            return rejected
        value = _parse_enum(ControllerType, controller_type)
        if value is None:
            return self._reject(command, f"Invalid controller type: {controller_type}")
        return await self._run(
            command,
            lambda api: api.set_controller_type(value),
            f"The controller type was set to {value}.",
            repoll=(PollStep.CONTROLLER_TYPE,),
        )

    async def set_predictive_heating_type(self, heating_type: PredictiveHeatingType | str | None) -> CommandResult:
        """Set the predictive heating type."""
        command = Command.SET_PREDICTIVE_HEATING_TYPE
        if rejected := self._unsupported(command):
            return rejected
        value = _parse_enum(PredictiveHeatingType, heating_type)
        if value is None:
            return self._reject(command, f"Invalid predictive heating type: {heating_type}")
        return await self._run(
            command,
            lambda api: api.set_predictive_heating_type(value),
            f"The predictive heating type was set to {value}.",
            repoll=(PollStep.PREDICTIVE_HEATING_TYPE,),
        )

    async def set_limited_heating_power(self, power: int | None) -> CommandResult:
        """Set the heating power limit in percent (10-100)."""
        command = Command.SET_LIMITED_HEATING_POWER
        if rejected := self._unsupported(command):
            return rejected
        if power is None or not LIMITED_HEATING_POWER_MIN <= power <= LIMITED_HEATING_POWER_MAX:
            return self._reject(
                command,
                f"The limited heating power must be between {LIMITED_HEATING_POWER_MIN} and "
                f"{LIMITED_HEATING_POWER_MAX} percent!",
            )
        power = int(power)
        return await self._run(
            command,
            lambda api: api.set_limited_heating_power(power),
            f"The limited heating power was set to {power}%.",
            repoll=(PollStep.LIMITED_HEATING_POWER,),
        )

    async def set_oil_heater_power(self, power: int | None) -> CommandResult:
        """Set the oil heater power level in percent (40, 60 or 100)."""
        command = Command.SET_OIL_HEATER_POWER
        if rejected := self._unsupported(command):
            return rejected
        if power not in OIL_HEATER_POWER_LEVELS:
            levels = ", ".join(str(level) for level in OIL_HEATER_POWER_LEVELS)
            return self._reject(command, f"The oil heater power must be one of {levels} percent!")
        power = int(power)
        return await self._run(
            command,
            lambda api: api.set_oil_heater_power(power),
            f"The oil heater power was set to {power}%.",
            repoll=(PollStep.OIL_HEATER_POWER,),
        )

    # -------------------------------------------------------------------------
    # Temperatures and Modes
    # -------------------------------------------------------------------------

    async def set_independent_temperature(self, temperature: float | None) -> CommandResult:
        """Set the temperature used in "independent device" mode."""
        command = Command.SET_INDEPENDENT_TEMPERATURE
        if rejected := self._unsupported(command):
            return rejected
        if temperature is None:
            return self._reject(command, "The temperature must be specified!")
        if rejected := self._check_numbers(command, temperature=temperature):
            return rejected
        value = round_value(Attribute.INDEPENDENT_SET_TEMPERATURE, temperature)

        try:
            await self._device.execute(
                lambda api: api.set_independent_temperature(value),
                repoll=(PollStep.CONTROL_STATUS,),
            )
        except CommunicationError as err:
            if err.http_status == _SERVICE_UNAVAILABLE:
                _LOGGER.warning("%s is not in independent device mode", self._device)
                return CommandResult(False, 'Failed: Verify that the device is in "independent device" mode.')
            _LOGGER.warning("Failed to execute %s on %s: %s", command, self._device, err)
            return CommandResult(False, f"Failed to execute {command}: {err}")
        except MillError as err:
            _LOGGER.warning("Failed to execute %s on %s: %s", command, self._device, err)
            return CommandResult(False, f"Failed to execute {command}: {err}")
        except Exception as err:
            _LOGGER.exception("Unexpected error executing %s on %s", command, self._device)
            return CommandResult(False, f"Failed to execute {command}: {err}")
        return CommandResult(True, f'The "independent device" mode temperature was set to {value}')

    async def set_set_temperature(
        self,
        temperature_type: TemperatureType | str | None,
        temperature: float | None,
    ) -> CommandResult:
        """Set the set-temperature of a temperature slot (normal, comfort, sleep or away)."""
        command = Command.SET_SET_TEMPERATURE
        if rejected := self._unsupported(command):
            return rejected
        slot = _parse_enum(TemperatureType, temperature_type)
        if slot not in _SET_TEMPERATURE_TARGETS:
            return self._reject(command, f"Invalid temperature type: {temperature_type}")
        if temperature is None:
            return self._reject(command, "The temperature must be specified!")
        if rejected := self._check_numbers(command, temperature=temperature):
            return rejected
        attribute, step = _SET_TEMPERATURE_TARGETS[slot]
        value = round_value(attribute, temperature)
        return await self._run(
            command,
            lambda api: api.set_set_temperature(slot, value),
            f"The {slot.lower()} temperature was set to {value}.",
            repoll=(PollStep.CONTROL_STATUS, step),
        )

    async def set_temperature_calibration_offset(self, offset: float | None) -> CommandResult:
        """Set the temperature calibration offset in °C."""
        command = Command.SET_TEMPERATURE_CALIBRATION_OFFSET
        if rejected := self._unsupported(command):
            return rejected
        if offset is None:
            return self._reject(command, "The calibration offset must be specified!")
        if rejected := self._check_numbers(command, offset=offset):
            return rejected
        value = round_value(Attribute.TEMPERATURE_CALIBRATION_OFFSET, offset)
        return await self._run(
            command,
            lambda api: api.set_temperature_calibration_offset(value),
            f"The temperature calibration offset was set to {value}.",
            repoll=(PollStep.TEMPERATURE_CALIBRATION_OFFSET, PollStep.CONTROL_STATUS),
        )

    async def set_operation_mode(self, mode: OperationMode | str | None) -> CommandResult:
        """Set the operation mode."""
        command = Command.SET_OPERATION_MODE
        if rejected := self._unsupported(command):
            return rejected
        value = _parse_enum(OperationMode, mode)
        if value is None or value is OperationMode.INVALID:
            return self._reject(command, f"Invalid operation mode: {mode}")
        return await self._run(
            command,
            lambda api: api.set_operation_mode(value),
            f"The operation mode was set to {value}.",
            repoll=(PollStep.CONTROL_STATUS,),
        )

    async def set_display_unit(self, unit: DisplayUnit | str | None) -> CommandResult:
        """Set the display unit."""
        command = Command.SET_DISPLAY_UNIT
        if rejected := self._unsupported(command):
            return rejected
        value = _parse_enum(DisplayUnit, unit)
        if value is None:
            return self._reject(command, f"Invalid display unit: {unit}")
        return await self._run(
            command,
            lambda api: api.set_display_unit(value),
            f"The display unit was set to {value}.",
            repoll=(PollStep.DISPLAY_UNIT,),
        )

    # -------------------------------------------------------------------------
    # Locks
    # -------------------------------------------------------------------------

    async def set_child_lock(self, enabled: bool | None) -> CommandResult:
        """Enable or disable the child lock."""
        command = Command.SET_CHILD_LOCK
        if rejected := self._unsupported(command):
            return rejected
        enabled = bool(enabled)
        return await self._run(
            command,
            lambda api: api.set_child_lock(enabled),
            f"The child lock was {'enabled' if enabled else 'disabled'}.",
            repoll=(PollStep.CONTROL_STATUS,),
        )

    async def set_commercial_lock(self, enabled: bool | None) -> CommandResult:
        """Enable or disable the commercial lock."""
        command = Command.SET_COMMERCIAL_LOCK
        if rejected := self._unsupported(command):
            return rejected
        enabled = bool(enabled)
        return await self._run(
            command,
            lambda api: api.set_commercial_lock(enabled),
            f"The commercial lock was {'enabled' if enabled else 'disabled'}.",
            repoll=(PollStep.COMMERCIAL_LOCK, PollStep.CONTROL_STATUS),
        )

    async def set_commercial_lock_customization(
        self,
        min_temperature: float | None,
        max_temperature: float | None,
    ) -> CommandResult:
        """Set the commercial lock temperature bounds. Both are required."""
        command = Command.SET_COMMERCIAL_LOCK_CUSTOMIZATION
        if rejected := self._unsupported(command):
            return rejected
        if min_temperature is None or max_temperature is None:
            return self._reject(command, "Both commercial lock temperatures must be specified!")
        if rejected := self._check_numbers(
            command, min_temperature=min_temperature, max_temperature=max_temperature
        ):
            return rejected
        low = round_value(Attribute.COMMERCIAL_LOCK_MIN_TEMP, min_temperature)
        high = round_value(Attribute.COMMERCIAL_LOCK_MAX_TEMP, max_temperature)
        if low > high:
            return self._reject(command, "The minimum temperature can't be above the maximum temperature!")
        return await self._run(
            command,
            lambda api: api.set_commercial_lock_customization(low, high),
            f"The commercial lock temperatures were set to {low}-{high}.",
            repoll=(PollStep.COMMERCIAL_LOCK_CUSTOMIZATION,),
        )

    # -------------------------------------------------------------------------
    # Open Window Function
    # -------------------------------------------------------------------------

    async def set_open_window_parameters(
        self,
        drop_temperature_threshold: float | None,
        drop_time_range: int | None,
        increase_temperature_threshold: float | None,
        increase_time_range: int | None,
        max_time: int | None,
    ) -> CommandResult:
        """Set the open window detection parameters.

        All five are required. The device's current ``enabled`` flag is read
        first and sent back unchanged.
        """
        command = Command.SET_OPEN_WINDOW_PARAMETERS
        if rejected := self._unsupported(command):
            return rejected
        values = (drop_temperature_threshold, drop_time_range, increase_temperature_threshold, increase_time_range)
        if None in values or max_time is None:
            return self._reject(command, "All open window parameters must be specified!")
        if rejected := self._check_numbers(
            command,
            drop_temperature_threshold=drop_temperature_threshold,
            drop_time_range=drop_time_range,
            increase_temperature_threshold=increase_temperature_threshold,
            increase_time_range=increase_time_range,
            max_time=max_time,
        ):
            return rejected

        async def write(api: MillAPI) -> None:
            current = await api.get_open_window_parameters()
            parameters = OpenWindowParameters(
                drop_temperature_threshold=round_value(
                    Attribute.OPEN_WINDOW_DROP_TEMP_THRESHOLD, drop_temperature_threshold
                ),
                drop_time_range=int(drop_time_range),
                enabled=True if current.enabled is None else current.enabled,
                increase_temperature_threshold=round_value(
                    Attribute.OPEN_WINDOW_INCREASE_TEMP_THRESHOLD, increase_temperature_threshold
                ),
                increase_time_range=int(increase_time_range),
                max_time=int(max_time),
            )
            await api.set_open_window_parameters(parameters)

        return await self._run(
            command,
            write,
            "The open window parameters were set.",
            repoll=(PollStep.OPEN_WINDOW_PARAMETERS, PollStep.CONTROL_STATUS),
        )

    async def set_open_window_enabled(self, enabled: bool | None) -> CommandResult:
        """Enable or disable the open window function, keeping its parameters."""
        command = Command.SET_OPEN_WINDOW_ENABLED
        if rejected := self._unsupported(command):
            return rejected
        enabled = bool(enabled)

        async def write(api: MillAPI) -> None:
            current = await api.get_open_window_parameters()
            if not current.is_complete:
                msg = "The device returned incomplete open window parameters"
                raise CommunicationError(msg)
            parameters = OpenWindowParameters(
                drop_temperature_threshold=current.drop_temperature_threshold,
                drop_time_range=current.drop_time_range,
                enabled=enabled,
                increase_temperature_threshold=current.increase_temperature_threshold,
                increase_time_range=current.increase_time_range,
                max_time=current.max_time,
            )
            await api.set_open_window_parameters(parameters)

        return await self._run(
            command,
            write,
            f"The open window function was {'enabled' if enabled else 'disabled'}.",
            repoll=(PollStep.OPEN_WINDOW_PARAMETERS, PollStep.CONTROL_STATUS),
        )
