"""Stateful device objects for Mill heaters and sockets.

A :class:`MillDevice` keeps a mirror of the device state fresh with two
independent poll cadences, maps their outcomes onto a connectivity status and
runs commands against the device, all serialized by one lock per device.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable  # noqa: TC003 - Used at runtime for type hints
from dataclasses import replace
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from pymilllan.api import MillAPI
from pymilllan.commands import CommandGateway
from pymilllan.connectivity import ConnectivityState, ConnectivityStateMachine, DetailCode
from pymilllan.const import DEVICE_REBOOTING, INFREQUENT_INITIAL_DELAY
from pymilllan.exceptions import CommunicationError, ConfigurationError, MillError
from pymilllan.mirror import DeviceMirror
from pymilllan.models import Attribute, LockStatus, OpenWindowStatus, TemperatureType
from pymilllan.variants import OPTIONAL_STEPS, PollStep, VariantCapabilities, capabilities_for


if TYPE_CHECKING:
    from collections.abc import Awaitable, Mapping, Sequence

    from pymilllan.config import DeviceConfig
    from pymilllan.models import OperationMode
    from pymilllan.transport import Transport

_LOGGER = logging.getLogger(__name__)

Updates = dict[Attribute, Any]
AttributeListener = Callable[["MillDevice", frozenset[Attribute]], None]
StatusListener = Callable[["MillDevice", ConnectivityState], None]

SET_TEMPERATURE_STEPS: dict[PollStep, tuple[TemperatureType, Attribute]] = {
    PollStep.NORMAL_SET_TEMPERATURE: (TemperatureType.NORMAL, Attribute.NORMAL_SET_TEMPERATURE),
    PollStep.COMFORT_SET_TEMPERATURE: (TemperatureType.COMFORT, Attribute.COMFORT_SET_TEMPERATURE),
    PollStep.SLEEP_SET_TEMPERATURE: (TemperatureType.SLEEP, Attribute.SLEEP_SET_TEMPERATURE),
    PollStep.AWAY_SET_TEMPERATURE: (TemperatureType.AWAY, Attribute.AWAY_SET_TEMPERATURE),
}

_STEP_LABELS = {
    PollStep.OPERATION_MODE: "operation mode",
    PollStep.TIMEZONE_OFFSET: "timezone offset",
    PollStep.PID_PARAMETERS: "PID parameters",
    PollStep.CLOUD_COMMUNICATION: "cloud communication",
    PollStep.HYSTERESIS_PARAMETERS: "hysteresis parameters",
    PollStep.COMMERCIAL_LOCK_CUSTOMIZATION: "commercial lock customization",
    PollStep.OPEN_WINDOW_PARAMETERS: "open window parameters",
}


class LifecycleState(StrEnum):
    """Engine lifecycle of a device."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    STEADY_STATE = "steady_state"
    SHUT_DOWN = "shut_down"


def _put(updates: Updates, attribute: Attribute, value: Any) -> None:
    if value is not None:
        updates[attribute] = value


def _text(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    return value


class MillDevice:
    """Stateful representation of one Mill device.

    **Key Features:**
    - **Dual cadence polling**: fast-changing control values on the frequent
      cadence, configuration and identity on the infrequent one
    - **Connectivity status**: UNKNOWN / ONLINE / OFFLINE with a detail code
    - **Serialized access**: poll ticks and commands never interleave
    - **Change listeners**: callbacks for changed attributes and status

    Example:
        ```python
        from pymilllan import AiohttpTransport, DeviceConfig, MillDevice

        async with AiohttpTransport() as transport:
            device = MillDevice(transport, DeviceConfig(hostname="192.168.1.20"))
            device.add_listener(lambda dev, changed: print(changed))
            await device.start()

            result = await device.commands.set_timezone_offset(60)
            print(result.message)

            await device.shutdown()
        ```

    Attributes:
        config: Device configuration.
        capabilities: Poll sequences and commands of the configured variant.
        connectivity: Current connectivity state.
        lifecycle_state: Current engine lifecycle state.
    """

    def __init__(self, transport: Transport, config: DeviceConfig) -> None:
        """Initialize the device.

        Args:
            transport: Shared transport, owned by the caller.
            config: Device configuration. It is validated when the device starts.
        """
        self._config = config
        self._api = MillAPI(transport, config.hostname, config.api_key)
        self._capabilities = capabilities_for(
            config.variant,
            commercial_lock_customization=config.poll_commercial_lock_customization,
        )
        self._mirror = DeviceMirror()
        self._connectivity = ConnectivityStateMachine(str(config.hostname))
        self._commands = CommandGateway(self)

        # Serializes poll ticks, commands, mirror and status updates
        self._lock = asyncio.Lock()
        self._lifecycle = LifecycleState.UNINITIALIZED
        self._shut_down = False

        self._listeners: list[AttributeListener] = []
        self._status_listeners: list[StatusListener] = []

        self._init_task: asyncio.Task[None] | None = None
        self._frequent_task: asyncio.Task[None] | None = None
        self._infrequent_task: asyncio.Task[None] | None = None

        self._step_handlers: dict[PollStep, Callable[[Updates], Awaitable[None]]] = {
            PollStep.CONTROL_STATUS: self._poll_control_status,
            PollStep.STATUS: self._poll_status,
            PollStep.OPERATION_MODE: self._poll_operation_mode,
            PollStep.TEMPERATURE_CALIBRATION_OFFSET: self._poll_temperature_calibration_offset,
            PollStep.DISPLAY_UNIT: self._poll_display_unit,
            PollStep.PREDICTIVE_HEATING_TYPE: self._poll_predictive_heating_type,
            PollStep.CONTROLLER_TYPE: self._poll_controller_type,
            PollStep.LIMITED_HEATING_POWER: self._poll_limited_heating_power,
            PollStep.OIL_HEATER_POWER: self._poll_oil_heater_power,
            PollStep.TIMEZONE_OFFSET: self._poll_timezone_offset,
            PollStep.CLOUD_COMMUNICATION: self._poll_cloud_communication,
            PollStep.PID_PARAMETERS: self._poll_pid_parameters,
            PollStep.HYSTERESIS_PARAMETERS: self._poll_hysteresis_parameters,
            PollStep.CHILD_LOCK: self._poll_child_lock,
            PollStep.COMMERCIAL_LOCK: self._poll_commercial_lock,
            PollStep.COMMERCIAL_LOCK_CUSTOMIZATION: self._poll_commercial_lock_customization,
            PollStep.OPEN_WINDOW_PARAMETERS: self._poll_open_window_parameters,
        }

    # -------------------------------------------------------------------------
    # Configuration Properties
    # -------------------------------------------------------------------------

    @property
    def config(self) -> DeviceConfig:
        """Get the device configuration."""
        return self._config

    @property
    def api(self) -> MillAPI:
        """Get the low-level API client of this device."""
        return self._api

    @property
    def capabilities(self) -> VariantCapabilities:
        """Get the variant capabilities."""
        return self._capabilities

    @property
    def hostname(self) -> str:
        """Get the configured hostname."""
        return self._config.hostname

    @property
    def device_id(self) -> str | None:
        """Get the identifier that confirms API key changes.

        This is the configured ``device_id``, or the MAC address reported by
        the device without separators and in lower case.
        """
        if self._config.device_id:
            return self._config.device_id
        mac = self._mirror.get(Attribute.MAC_ADDRESS)
        if not mac:
            return None
        return mac.replace(":", "").replace("-", "").lower()

    @property
    def commands(self) -> CommandGateway:
        """Get the command gateway of this device."""
        return self._commands

    # -------------------------------------------------------------------------
    # State Properties
    # -------------------------------------------------------------------------

    @property
    def connectivity(self) -> ConnectivityState:
        """Get the current connectivity state."""
        return self._connectivity.state

    @property
    def is_online(self) -> bool:
        """Check if the device is online."""
        return self._connectivity.state.is_online

    @property
    def lifecycle_state(self) -> LifecycleState:
        """Get the engine lifecycle state."""
        return self._lifecycle

    def get(self, attribute: Attribute) -> Any:
        """Get the latest known value of an attribute, or None."""
        return self._mirror.get(attribute)

    def snapshot(self) -> Mapping[Attribute, Any]:
        """Get a consistent read-only copy of all known attribute values.

        Mutations are applied in whole batches between awaits, so a snapshot
        never contains part of a poll tick or command.
        """
        return self._mirror.snapshot()

    @property
    def name(self) -> str | None:
        """Get the custom name, or the model name when no custom name is set."""
        return self._mirror.get(Attribute.CUSTOM_NAME) or self._mirror.get(Attribute.NAME)

    @property
    def firmware_version(self) -> str | None:
        """Get the firmware version."""
        return self._mirror.get(Attribute.FIRMWARE_VERSION)

    @property
    def mac_address(self) -> str | None:
        """Get the MAC address."""
        return self._mirror.get(Attribute.MAC_ADDRESS)

    @property
    def ambient_temperature(self) -> float | None:
        """Get the ambient temperature in °C."""
        return self._mirror.get(Attribute.AMBIENT_TEMPERATURE)

    @property
    def set_temperature(self) -> float | None:
        """Get the active set-temperature in °C."""
        return self._mirror.get(Attribute.SET_TEMPERATURE)

    @property
    def current_power(self) -> float | None:
        """Get the current power draw in W."""
        return self._mirror.get(Attribute.CURRENT_POWER)

    @property
    def operation_mode(self) -> OperationMode | None:
        """Get the operation mode."""
        return self._mirror.get(Attribute.OPERATION_MODE)

    @property
    def lock_status(self) -> LockStatus | None:
        """Get the lock state."""
        return self._mirror.get(Attribute.LOCK_STATUS)

    @property
    def open_window_status(self) -> OpenWindowStatus | None:
        """Get the open window function state."""
        return self._mirror.get(Attribute.OPEN_WINDOW_STATUS)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self) -> None:
        """Start the engine.

        Sets the status to UNKNOWN and reads the device status in the
        background. Both poll cadences are scheduled afterwards whether or not
        that read succeeded, so an unreachable device recovers on its own.
        Calling it on a running device does nothing.
        """
        if self._lifecycle in (LifecycleState.INITIALIZING, LifecycleState.STEADY_STATE):
            return

        self._shut_down = False
        self._lifecycle = LifecycleState.INITIALIZING
        async with self._lock:
            if self._connectivity.reset():
                self._notify_status_listeners()
        self._init_task = asyncio.create_task(self._initialize())
        _LOGGER.debug("Starting Mill device %s", self.hostname)

    async def wait_initialized(self) -> None:
        """Wait until the initial status read has finished."""
        if self._init_task is not None:
            await asyncio.shield(self._init_task)

    async def shutdown(self) -> None:
        """Stop polling and discard any in-flight results.

        The status returns to UNKNOWN. The shared transport is left open.
        """
        self._shut_down = True
        tasks = [task for task in (self._init_task, self._frequent_task, self._infrequent_task) if task is not None]
        self._init_task = self._frequent_task = self._infrequent_task = None
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task

        if self._lifecycle is not LifecycleState.UNINITIALIZED:
            _LOGGER.info("Stopped polling Mill device %s", self.hostname)
        self._lifecycle = LifecycleState.SHUT_DOWN
        if self._connectivity.reset():
            self._notify_status_listeners()

    async def _initialize(self) -> None:
        """Background task that performs the initial status read."""
        try:
            self._config.validate()
        except ConfigurationError as err:
            _LOGGER.error("Invalid configuration for Mill device %s: %s", self.hostname, err)
            async with self._lock:
                self._record_failure(err)
            self._lifecycle = LifecycleState.STEADY_STATE
            return

        await self._tick("initial", (PollStep.STATUS,))
        if self._shut_down:
            return

        self._lifecycle = LifecycleState.STEADY_STATE
        self._frequent_task = asyncio.create_task(
            self._cadence_loop("frequent", self._capabilities.frequent, self._config.refresh_interval, 0)
        )
        self._infrequent_task = asyncio.create_task(
            self._cadence_loop(
                "infrequent",
                self._capabilities.infrequent,
                self._config.infrequent_refresh_interval,
                INFREQUENT_INITIAL_DELAY,
            )
        )
        _LOGGER.info(
            "Started polling Mill device %s (intervals: %ss/%ss)",
            self.hostname,
            self._config.refresh_interval,
            self._config.infrequent_refresh_interval,
        )

    async def _cadence_loop(
        self,
        cadence: str,
        steps: Sequence[PollStep],
        interval: float,
        initial_delay: float,
    ) -> None:
        """Background task that runs one cadence with a fixed delay between ticks.

        The delay starts after a tick completes, so a cadence never overlaps
        itself. This runs until cancelled by shutdown().
        """
        try:
            await asyncio.sleep(initial_delay)
            while True:
                try:
                    await self._tick(cadence, steps)
                except Exception:
                    _LOGGER.exception("Error in %s poll loop for Mill device %s", cadence, self.hostname)
                await asyncio.sleep(interval)
        except asyncio.CancelledError:
            _LOGGER.debug("%s poll loop cancelled for Mill device %s", cadence.capitalize(), self.hostname)
            raise

    # -------------------------------------------------------------------------
    # Polling
    # -------------------------------------------------------------------------

    async def refresh_frequent(self) -> bool:
        """Run one frequent tick now.

        Returns:
            True if every step succeeded.
        """
        return await self._tick("frequent", self._capabilities.frequent)

    async def refresh_infrequent(self) -> bool:
        """Run one infrequent tick now.

        Returns:
            True if every step succeeded.
        """
        return await self._tick("infrequent", self._capabilities.infrequent)

    async def _tick(self, cadence: str, steps: Sequence[PollStep]) -> bool:
        """Run a fixed sequence of poll steps under the device lock.

        The first failing step aborts the tick. Values read before the failure
        are still stored, and the status is updated once for the whole tick.

        Args:
            cadence: Cadence name used in log messages.
            steps: Ordered poll steps.

        Returns:
            True if every step succeeded.
        """
        async with self._lock:
            if self._shut_down:
                return False
            updates: Updates = {}
            failure: Exception | None = None
            try:
                for step in steps:
                    await self._run_step(step, updates)
            except MillError as err:
                _LOGGER.debug("%s poll of Mill device %s failed: %s", cadence.capitalize(), self.hostname, err)
                failure = err
            except Exception as err:
                _LOGGER.exception("Unexpected error polling Mill device %s", self.hostname)
                failure = err

            store_error = self._commit(updates)
            failure = failure or store_error
            if failure is not None:
                self._record_failure(failure)
                return False
            self._record_success()
            return True

    async def _run_step(self, step: PollStep, updates: Updates) -> None:
        """Run one poll step, skipping optional endpoints the device lacks."""
        try:
            if step in SET_TEMPERATURE_STEPS:
                await self._poll_set_temperature(step, updates)
            else:
                await self._step_handlers[step](updates)
        except CommunicationError as err:
            if step in OPTIONAL_STEPS and err.is_client_error:
                _LOGGER.warning("Mill device %s doesn't seem to support %s", self.hostname, _STEP_LABELS[step])
                return
            raise

    async def _poll_control_status(self, updates: Updates) -> None:
        response = await self._api.get_control_status()
        _put(updates, Attribute.AMBIENT_TEMPERATURE, response.ambient_temperature)
        _put(updates, Attribute.RAW_AMBIENT_TEMPERATURE, response.raw_ambient_temperature)
        _put(updates, Attribute.CURRENT_POWER, response.current_power)
        _put(updates, Attribute.CONTROL_SIGNAL, response.control_signal)
        _put(updates, Attribute.SET_TEMPERATURE, response.set_temperature)
        _put(updates, Attribute.SWITCHED_ON, response.switched_on)
        _put(updates, Attribute.CONNECTED_TO_CLOUD, response.connected_to_cloud)
        _put(updates, Attribute.OPERATION_MODE, response.operation_mode)
        if response.lock_status is not None:
            updates[Attribute.LOCK_STATUS] = response.lock_status
            if response.lock_status is not LockStatus.UNRECOGNIZED:
                updates[Attribute.CHILD_LOCK] = response.lock_status is LockStatus.CHILD_LOCK
        if response.open_window_status is not None:
            updates[Attribute.OPEN_WINDOW_STATUS] = response.open_window_status
            _put(updates, Attribute.OPEN_WINDOW_ENABLED, response.open_window_status.enabled)
            _put(updates, Attribute.OPEN_WINDOW_ACTIVE, response.open_window_status.active)

    async def _poll_set_temperature(self, step: PollStep, updates: Updates) -> None:
        temperature_type, attribute = SET_TEMPERATURE_STEPS[step]
        response = await self._api.get_set_temperature(temperature_type)
        _put(updates, attribute, response.value)

    async def _poll_status(self, updates: Updates) -> None:
        response = await self._api.get_status()
        # Blank identity values remove the stored value
        updates[Attribute.NAME] = _text(response.name)
        updates[Attribute.CUSTOM_NAME] = _text(response.custom_name)
        updates[Attribute.FIRMWARE_VERSION] = _text(response.version)
        updates[Attribute.OPERATION_KEY] = _text(response.operation_key)
        updates[Attribute.MAC_ADDRESS] = _text(response.mac_address)

    async def _poll_operation_mode(self, updates: Updates) -> None:
        response = await self._api.get_operation_mode()
        _put(updates, Attribute.OPERATION_MODE, response.mode)

    async def _poll_temperature_calibration_offset(self, updates: Updates) -> None:
        response = await self._api.get_temperature_calibration_offset()
        _put(updates, Attribute.TEMPERATURE_CALIBRATION_OFFSET, response.value)

    async def _poll_display_unit(self, updates: Updates) -> None:
        response = await self._api.get_display_unit()
        _put(updates, Attribute.DISPLAY_UNIT, response.value)

    async def _poll_predictive_heating_type(self, updates: Updates) -> None:
        response = await self._api.get_predictive_heating_type()
        _put(updates, Attribute.PREDICTIVE_HEATING_TYPE, response.value)

    async def _poll_controller_type(self, updates: Updates) -> None:
        response = await self._api.get_controller_type()
        _put(updates, Attribute.CONTROLLER_TYPE, response.value)

    async def _poll_limited_heating_power(self, updates: Updates) -> None:
        response = await self._api.get_limited_heating_power()
        _put(updates, Attribute.LIMITED_HEATING_POWER, response.value)

    async def _poll_oil_heater_power(self, updates: Updates) -> None:
        response = await self._api.get_oil_heater_power()
        _put(updates, Attribute.OIL_HEATER_POWER, response.value)

    async def _poll_timezone_offset(self, updates: Updates) -> None:
        response = await self._api.get_timezone_offset()
        _put(updates, Attribute.TIMEZONE_OFFSET, response.offset)

    async def _poll_cloud_communication(self, updates: Updates) -> None:
        response = await self._api.get_cloud_communication()
        _put(updates, Attribute.CLOUD_COMMUNICATION, response.value)

    async def _poll_pid_parameters(self, updates: Updates) -> None:
        response = await self._api.get_pid_parameters()
        _put(updates, Attribute.PID_KP, response.kp)
        _put(updates, Attribute.PID_KI, response.ki)
        _put(updates, Attribute.PID_KD, response.kd)
        _put(updates, Attribute.PID_KD_FILTER_N, response.kd_filter_n)
        _put(updates, Attribute.PID_WINDUP_LIMIT_PCT, response.windup_limit_pct)

    async def _poll_hysteresis_parameters(self, updates: Updates) -> None:
        response = await self._api.get_hysteresis_parameters()
        _put(updates, Attribute.HYSTERESIS_UPPER, response.upper)
        _put(updates, Attribute.HYSTERESIS_LOWER, response.lower)

    async def _poll_child_lock(self, updates: Updates) -> None:
        response = await self._api.get_child_lock()
        _put(updates, Attribute.CHILD_LOCK, response.value)

    async def _poll_commercial_lock(self, updates: Updates) -> None:
        response = await self._api.get_commercial_lock()
        _put(updates, Attribute.COMMERCIAL_LOCK, response.value)

    async def _poll_commercial_lock_customization(self, updates: Updates) -> None:
        response = await self._api.get_commercial_lock_customization()
        _put(updates, Attribute.COMMERCIAL_LOCK, response.enabled)
        _put(updates, Attribute.COMMERCIAL_LOCK_MIN_TEMP, response.min_temperature)
        _put(updates, Attribute.COMMERCIAL_LOCK_MAX_TEMP, response.max_temperature)

    async def _poll_open_window_parameters(self, updates: Updates) -> None:
        response = await self._api.get_open_window_parameters()
        _put(updates, Attribute.OPEN_WINDOW_DROP_TEMP_THRESHOLD, response.drop_temperature_threshold)
        _put(updates, Attribute.OPEN_WINDOW_DROP_TIME_RANGE, response.drop_time_range)
        _put(updates, Attribute.OPEN_WINDOW_ENABLED, response.enabled)
        _put(updates, Attribute.OPEN_WINDOW_INCREASE_TEMP_THRESHOLD, response.increase_temperature_threshold)
        _put(updates, Attribute.OPEN_WINDOW_INCREASE_TIME_RANGE, response.increase_time_range)
        _put(updates, Attribute.OPEN_WINDOW_MAX_TIME, response.max_time)
        _put(updates, Attribute.OPEN_WINDOW_ACTIVE, response.active_now)

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    async def execute(
        self,
        write: Callable[[MillAPI], Awaitable[Any]],
        *,
        repoll: Sequence[PollStep] = (),
        rebooting: bool = False,
    ) -> Any:
        """Run a write against the device under the device lock.

        The mirror isn't changed by the write itself; the steps in ``repoll``
        are read afterwards so that only values confirmed by the device are
        stored.

        Args:
            write: Coroutine function receiving the API client.
            repoll: Poll steps to run after a successful write.
            rebooting: The write makes the device reboot. On success the status
                becomes OFFLINE with the description "Device is rebooting".

        Returns:
            Whatever ``write`` returned.

        Raises:
            ConfigurationError: If the configuration or a parameter is invalid.
            CommunicationError: If the device can't be reached, answers with an
                error or the device was shut down.
            Exception: Unexpected errors are re-raised after the device is
                marked offline.
        """
        async with self._lock:
            if self._shut_down:
                msg = "The device has been shut down"
                raise CommunicationError(msg)
            updates: Updates = {}
            try:
                result = await write(self._api)
                for step in repoll:
                    await self._run_step(step, updates)
            except Exception as err:
                if not isinstance(err, MillError):
                    _LOGGER.exception("Unexpected error writing to Mill device %s", self.hostname)
                self._commit(updates)
                self._record_failure(err)
                raise
            store_error = self._commit(updates)
            if store_error is not None:
                self._record_failure(store_error)
                raise store_error
            if rebooting:
                self._record_rebooting()
            else:
                self._record_success()
            return result

    def update_api_key(self, api_key: str | None) -> None:
        """Use a new API key for all following requests.

        Args:
            api_key: The new API key, or None to use plain HTTP.
        """
        self._config = replace(self._config, api_key=api_key)
        self._api.api_key = api_key

    # -------------------------------------------------------------------------
    # State Management
    # -------------------------------------------------------------------------

    def _commit(self, updates: Updates) -> Exception | None:
        """Apply a batch of updates and notify listeners of changed attributes.

        Returns:
            The error raised while storing the values, or None.
        """
        if self._shut_down or not updates:
            return None
        try:
            changed = self._mirror.apply(updates)
        except Exception as err:
            _LOGGER.exception("Failed to store values of Mill device %s", self.hostname)
            return err
        if changed:
            self._notify_listeners(changed)
        return None

    def _record_success(self) -> None:
        if not self._shut_down and self._connectivity.on_success():
            self._notify_status_listeners()

    def _record_failure(self, error: BaseException) -> None:
        if not self._shut_down and self._connectivity.on_failure(error):
            self._notify_status_listeners()

    def _record_rebooting(self) -> None:
        _LOGGER.info("Mill device %s is rebooting", self.hostname)
        if not self._shut_down and self._connectivity.set_offline(DetailCode.NONE, DEVICE_REBOOTING):
            self._notify_status_listeners()

    def _notify_listeners(self, changed: frozenset[Attribute]) -> None:
        """Notify all registered listeners of changed attributes.

        Listeners are called synchronously in the order they were registered.
        If a listener raises an exception, it is logged but doesn't affect
        other listeners.
        """
        for listener in list(self._listeners):
            try:
                listener(self, changed)
            except Exception:
                _LOGGER.exception("Error in state change listener for Mill device %s", self.hostname)

    def _notify_status_listeners(self) -> None:
        state = self._connectivity.state
        for listener in list(self._status_listeners):
            try:
                listener(self, state)
            except Exception:
                _LOGGER.exception("Error in status listener for Mill device %s", self.hostname)

    def add_listener(self, callback: AttributeListener) -> None:
        """Register a callback for attribute changes.

        The callback receives the device and the set of attributes whose value
        changed by more than their precision delta.

        Args:
            callback: Callable taking a MillDevice and a frozenset of Attributes.
        """
        if callback not in self._listeners:
            self._listeners.append(callback)

    def remove_listener(self, callback: AttributeListener) -> None:
        """Unregister an attribute change callback."""
        if callback in self._listeners:
            self._listeners.remove(callback)

    def add_status_listener(self, callback: StatusListener) -> None:
        """Register a callback for connectivity transitions.

        Args:
            callback: Callable taking a MillDevice and the new ConnectivityState.
        """
        if callback not in self._status_listeners:
            self._status_listeners.append(callback)

    def remove_status_listener(self, callback: StatusListener) -> None:
        """Unregister a connectivity callback."""
        if callback in self._status_listeners:
            self._status_listeners.remove(callback)

    # -------------------------------------------------------------------------
    # String Representation
    # -------------------------------------------------------------------------

    def __str__(self) -> str:
        """Return string representation of device."""
        return f"{self.name or 'Mill device'} ({self.hostname})"

    def __repr__(self) -> str:
        """Return detailed string representation of device."""
        return f"MillDevice(hostname='{self.hostname}', variant='{self._config.variant}')"
