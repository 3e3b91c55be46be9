"""Tests for MillDevice class."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING
from unittest.mock import AsyncMock, MagicMock

import pytest
from conftest import CONTROL_STATUS_PAYLOAD, STATUS_PAYLOAD, FakeTransport, json_response

from pymilllan.connectivity import ConnectivityState, ConnectivityStatus, DetailCode
from pymilllan.devices import LifecycleState, MillDevice
from pymilllan.exceptions import CommunicationError
from pymilllan.models import Attribute, LockStatus, OpenWindowStatus, OperationMode
from pymilllan.variants import DeviceVariant, PollStep


if TYPE_CHECKING:
    from collections.abc import Callable

    from pymilllan.api import MillAPI


FREQUENT_PATHS = ["/control-status"] + ["/set-temperature"] * 4

# Long intervals keep the cadences quiet after their first tick
QUIET = {"refresh_interval": 1000, "infrequent_refresh_interval": 2000}


async def wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Wait until a condition holds."""
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.001)


class TestFrequentTick:
    """Test the frequent poll cadence."""

    async def test_reads_control_values(self, device: MillDevice, transport: FakeTransport) -> None:
        """Test that a frequent tick fills the control attributes."""
        assert await device.refresh_frequent() is True

        assert transport.paths() == FREQUENT_PATHS
        assert [call.json for call in transport.calls[1:]] == [
            {"type": "Normal"},
            {"type": "Comfort"},
            {"type": "Sleep"},
            {"type": "Away"},
        ]
        assert device.ambient_temperature == 21.53
        assert device.set_temperature == 22.0
        assert device.current_power == 350.0
        assert device.operation_mode is OperationMode.CONTROL_INDIVIDUALLY
        assert device.lock_status is LockStatus.NO_LOCK
        assert device.open_window_status is OpenWindowStatus.ENABLED_INACTIVE
        assert device.get(Attribute.COMFORT_SET_TEMPERATURE) == 21.0
        assert device.get(Attribute.CHILD_LOCK) is False
        assert device.get(Attribute.OPEN_WINDOW_ENABLED) is True
        assert device.get(Attribute.OPEN_WINDOW_ACTIVE) is False
        assert device.connectivity == ConnectivityState(ConnectivityStatus.ONLINE)

    async def test_first_failure_aborts_tick(self, device: MillDevice, transport: FakeTransport) -> None:
        """Test that a failing first step makes exactly one transport call."""
        transport.script("GET", "/control-status", CommunicationError("Timed out", timeout=True))

        assert await device.refresh_frequent() is False

        assert transport.paths() == ["/control-status"]
        assert device.connectivity.status is ConnectivityStatus.OFFLINE
        assert device.connectivity.detail is DetailCode.COMMUNICATION_ERROR
        assert device.snapshot() == {}

    async def test_values_before_failure_are_kept(self, device: MillDevice, transport: FakeTransport) -> None:
        """Test that values read before a failing step are stored."""
        transport.script(
            "GET",
            "/set-temperature",
            {"status": "ok", "value": 20.0},
            json_response({"status": "Failed to execute the request"}, status=500, reason="Internal Server Error"),
        )

        assert await device.refresh_frequent() is False

        assert transport.paths() == ["/control-status", "/set-temperature", "/set-temperature"]
        assert device.ambient_temperature == 21.53
        assert device.get(Attribute.NORMAL_SET_TEMPERATURE) == 20.0
        assert device.get(Attribute.COMFORT_SET_TEMPERATURE) is None
        assert device.connectivity.description == "500 - Internal Server Error"

    async def test_recovery(self, device: MillDevice, transport: FakeTransport) -> None:
        """Test that the next complete tick goes back online."""
        transport.script("GET", "/control-status", CommunicationError("down"), CONTROL_STATUS_PAYLOAD)

        assert await device.refresh_frequent() is False
        assert await device.refresh_frequent() is True

        assert device.is_online

    async def test_missing_fields_keep_previous_values(self, device: MillDevice, transport: FakeTransport) -> None:
        """Test that fields the device omits don't erase known values."""
        transport.script("GET", "/control-status", CONTROL_STATUS_PAYLOAD, {"status": "ok", "current_power": 0.0})

        await device.refresh_frequent()
        await device.refresh_frequent()

        assert device.current_power == 0.0
        assert device.ambient_temperature == 21.53

    async def test_child_lock_derived_from_lock_status(self, device: MillDevice, transport: FakeTransport) -> None:
        """Test that the child lock flag follows the lock status."""
        transport.script("GET", "/control-status", {**CONTROL_STATUS_PAYLOAD, "lock_active": "Child lock"})

        await device.refresh_frequent()

        assert device.get(Attribute.CHILD_LOCK) is True


class TestInfrequentTick:
    """Test the infrequent poll cadence."""

    async def test_panel_heater_sequence(self, device: MillDevice, transport: FakeTransport) -> None:
        """Test the endpoints read by a panel heater."""
        assert await device.refresh_infrequent() is True

        assert transport.paths() == [
            "/status",
            "/temperature-calibration-offset",
            "/display-unit",
            "/predictive-heating-type",
            "/timezone-offset",
            "/cloud-communication",
            "/pid-parameters",
            "/commercial-lock",
            "/open-window",
        ]
        assert device.get(Attribute.TIMEZONE_OFFSET) == 60
        assert device.get(Attribute.PID_KD_FILTER_N) == 24.0
        assert device.get(Attribute.OPEN_WINDOW_MAX_TIME) == 3600
        assert device.get(Attribute.COMMERCIAL_LOCK) is False

    async def test_identity(self, device: MillDevice) -> None:
        """Test identity values and the derived device identifier."""
        await device.refresh_infrequent()

        assert device.name == "Living room"
        assert device.firmware_version == "0x230630"
        assert device.mac_address == "AA:BB:CC:DD:EE:FF"
        assert device.device_id == "aabbccddeeff"
        assert device.get(Attribute.OPERATION_KEY) is None
        assert str(device) == "Living room (192.168.1.20)"

    async def test_blank_custom_name_removed(self, device: MillDevice, transport: FakeTransport) -> None:
        """Test that a blank custom name removes the stored one."""
        transport.script("GET", "/status", STATUS_PAYLOAD, {**STATUS_PAYLOAD, "custom_name": " "})
        await device.refresh_infrequent()

        await device.refresh_infrequent()

        assert device.get(Attribute.CUSTOM_NAME) is None
        assert device.name == "Mill Panel Heater"

    async def test_configured_device_id(self, device_factory: Callable[..., MillDevice]) -> None:
        """Test that a configured identifier wins over the MAC address."""
        device = device_factory(device_id="heater-1")

        await device.refresh_infrequent()

        assert device.device_id == "heater-1"

    async def test_unsupported_optional_step_is_skipped(
        self,
        device: MillDevice,
        transport: FakeTransport,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Test that a 4xx on an optional endpoint skips the step."""
        transport.script("GET", "/pid-parameters", json_response({"status": "ok"}, status=404, reason="Not Found"))

        with caplog.at_level(logging.WARNING):
            assert await device.refresh_infrequent() is True

        assert "doesn't seem to support PID parameters" in caplog.text
        assert "/open-window" in transport.paths()
        assert device.is_online

    async def test_optional_step_server_error_fails(self, device: MillDevice, transport: FakeTransport) -> None:
        """Test that other failures of optional endpoints still abort the tick."""
        transport.script("GET", "/pid-parameters", json_response({}, status=500, reason="Internal Server Error"))

        assert await device.refresh_infrequent() is False

        assert transport.paths()[-1] == "/pid-parameters"
        assert device.connectivity.detail is DetailCode.COMMUNICATION_ERROR

    async def test_required_step_client_error_fails(self, device: MillDevice, transport: FakeTransport) -> None:
        """Test that a 4xx on a required endpoint aborts the tick."""
        transport.script("GET", "/commercial-lock", json_response({}, status=404, reason="Not Found"))

        assert await device.refresh_infrequent() is False

        assert device.connectivity.description == "404 - Not Found: /commercial-lock"

    async def test_convection_heater_reads_hysteresis(
        self, device_factory: Callable[..., MillDevice], transport: FakeTransport
    ) -> None:
        """Test that convection heaters read hysteresis instead of PID."""
        device = device_factory(variant=DeviceVariant.CONVECTION_HEATER)

        await device.refresh_infrequent()

        assert "/hysteresis-parameters" in transport.paths()
        assert "/pid-parameters" not in transport.paths()
        assert device.get(Attribute.HYSTERESIS_UPPER) == 0.5

    async def test_commercial_lock_customization_opt_in(
        self, device_factory: Callable[..., MillDevice], transport: FakeTransport
    ) -> None:
        """Test that opting in reads the commercial lock customization."""
        device = device_factory(poll_commercial_lock_customization=True)

        await device.refresh_infrequent()

        paths = transport.paths()
        assert paths[paths.index("/commercial-lock") + 1] == "/commercial-lock-customization"
        assert device.get(Attribute.COMMERCIAL_LOCK_MAX_TEMP) == 24.0


class TestConfigurationFailures:
    """Test invalid configurations."""

    async def test_blank_hostname(self, device_factory: Callable[..., MillDevice], transport: FakeTransport) -> None:
        """Test that a blank hostname fails without any transport call."""
        device = device_factory(hostname=" ")

        assert await device.refresh_frequent() is False

        assert transport.calls == []
        assert device.connectivity.detail is DetailCode.CONFIGURATION_ERROR

    async def test_invalid_interval_on_start(
        self, device_factory: Callable[..., MillDevice], transport: FakeTransport
    ) -> None:
        """Test that an invalid interval goes offline without polling."""
        device = device_factory(refresh_interval=0)

        await device.start()
        await device.wait_initialized()

        assert device.connectivity.detail is DetailCode.CONFIGURATION_ERROR
        assert device.lifecycle_state is LifecycleState.STEADY_STATE
        assert device._frequent_task is None
        assert transport.calls == []


class TestLifecycle:
    """Test start and shutdown."""

    async def test_start_goes_online(self, device_factory: Callable[..., MillDevice], transport: FakeTransport) -> None:
        """Test that a successful initial read goes online."""
        device = device_factory(**QUIET)

        await device.start()
        assert device.lifecycle_state is LifecycleState.INITIALIZING
        await device.wait_initialized()

        assert transport.paths()[0] == "/status"
        assert device.lifecycle_state is LifecycleState.STEADY_STATE
        assert device.is_online
        assert device.name == "Living room"

    async def test_unreachable_device_still_polls(
        self, device_factory: Callable[..., MillDevice], transport: FakeTransport
    ) -> None:
        """Test that cadences are scheduled even when the initial read fails."""
        transport.script("GET", "/status", CommunicationError("Failed to send request: refused"))
        device = device_factory(**QUIET)
        listener = MagicMock()
        device.add_status_listener(listener)

        await device.start()
        await device.wait_initialized()
        await wait_for(lambda: device.is_online)

        states = [call.args[1] for call in listener.call_args_list]
        assert states[0] == ConnectivityState(
            ConnectivityStatus.OFFLINE, DetailCode.COMMUNICATION_ERROR, "Failed to send request: refused"
        )
        assert device.lifecycle_state is LifecycleState.STEADY_STATE

    async def test_cadences_repeat(self, device_factory: Callable[..., MillDevice], transport: FakeTransport) -> None:
        """Test that the frequent cadence repeats with its interval."""
        device = device_factory(refresh_interval=0.01, infrequent_refresh_interval=1000)

        await device.start()
        await wait_for(lambda: transport.paths().count("/control-status") >= 3)

        assert device.is_online

    async def test_start_twice(self, device_factory: Callable[..., MillDevice], transport: FakeTransport) -> None:
        """Test that starting a running device does nothing."""
        device = device_factory(**QUIET)
        await device.start()
        await device.wait_initialized()

        await device.start()

        assert transport.paths().count("/status") == 1

    async def test_shutdown(self, device_factory: Callable[..., MillDevice], transport: FakeTransport) -> None:
        """Test that shutdown stops polling and resets the status."""
        device = device_factory(refresh_interval=0.01, infrequent_refresh_interval=1000)
        await device.start()
        await wait_for(lambda: "/control-status" in transport.paths())

        await device.shutdown()
        calls = len(transport.calls)
        await asyncio.sleep(0.05)

        assert len(transport.calls) == calls
        assert device.lifecycle_state is LifecycleState.SHUT_DOWN
        assert device.connectivity.status is ConnectivityStatus.UNKNOWN

    async def test_shutdown_discards_in_flight_result(self, device: MillDevice, transport: FakeTransport) -> None:
        """Test that a tick finishing after shutdown leaves no trace."""
        release = asyncio.Event()

        async def blocked() -> dict[str, object]:
            await release.wait()
            return CONTROL_STATUS_PAYLOAD

        transport.script("GET", "/control-status", blocked)
        listener = MagicMock()
        device.add_listener(listener)

        tick = asyncio.create_task(device.refresh_frequent())
        await wait_for(lambda: transport.in_flight == 1)
        await device.shutdown()
        release.set()
        await tick

        assert device.snapshot() == {}
        assert device.connectivity.status is ConnectivityStatus.UNKNOWN
        listener.assert_not_called()

    async def test_no_polling_after_shutdown(self, device: MillDevice, transport: FakeTransport) -> None:
        """Test that manual ticks after shutdown do nothing."""
        await device.shutdown()

        assert await device.refresh_frequent() is False
        assert transport.calls == []


class TestSerialization:
    """Test mutual exclusion of ticks and commands."""

    async def test_ticks_and_commands_never_overlap(self, device: MillDevice, transport: FakeTransport) -> None:
        """Test that requests of one device are never in flight together."""
        transport.delay = 0.005

        results = await asyncio.gather(
            device.refresh_frequent(),
            device.refresh_infrequent(),
            device.commands.set_timezone_offset(120),
            device.refresh_frequent(),
        )

        assert transport.max_in_flight == 1
        assert results[0] is True
        assert results[2].success

    async def test_concurrent_snapshot_is_consistent(self, device: MillDevice, transport: FakeTransport) -> None:
        """Test that snapshots never observe part of a tick."""
        transport.delay = 0.005
        seen: list[int] = []

        async def observe() -> None:
            for _ in range(20):
                seen.append(len(device.snapshot()))
                await asyncio.sleep(0.002)

        await asyncio.gather(device.refresh_frequent(), observe())

        assert set(seen) <= {0, len(device.snapshot())}


class TestListeners:
    """Test change listeners."""

    async def test_listener_receives_changed_attributes(self, device: MillDevice) -> None:
        """Test that listeners get the changed attributes once per batch."""
        listener = MagicMock()
        device.add_listener(listener)

        await device.refresh_frequent()

        listener.assert_called_once()
        changed_device, changed = listener.call_args.args
        assert changed_device is device
        assert Attribute.AMBIENT_TEMPERATURE in changed
        assert Attribute.NORMAL_SET_TEMPERATURE in changed

    async def test_identical_ticks_notify_once(self, device: MillDevice) -> None:
        """Test that a tick without changes doesn't notify."""
        listener = MagicMock()
        device.add_listener(listener)

        await device.refresh_frequent()
        await device.refresh_frequent()

        assert listener.call_count == 1

    async def test_change_within_delta_not_notified(self, device: MillDevice, transport: FakeTransport) -> None:
        """Test that sub-delta changes aren't reported."""
        transport.script(
            "GET",
            "/control-status",
            CONTROL_STATUS_PAYLOAD,
            {**CONTROL_STATUS_PAYLOAD, "ambient_temperature": 21.53004},
            {**CONTROL_STATUS_PAYLOAD, "ambient_temperature": 21.6},
        )
        listener = MagicMock()
        await device.refresh_frequent()
        device.add_listener(listener)

        await device.refresh_frequent()
        listener.assert_not_called()
        await device.refresh_frequent()

        listener.assert_called_once_with(device, frozenset({Attribute.AMBIENT_TEMPERATURE}))

    async def test_listener_error_is_logged(self, device: MillDevice, caplog: pytest.LogCaptureFixture) -> None:
        """Test that a failing listener doesn't affect the others."""
        failing = MagicMock(side_effect=RuntimeError("listener bug"))
        working = MagicMock()
        device.add_listener(failing)
        device.add_listener(working)

        await device.refresh_frequent()

        working.assert_called_once()
        assert "Error in state change listener" in caplog.text

    async def test_remove_listener(self, device: MillDevice) -> None:
        """Test that removed listeners aren't called."""
        listener = MagicMock()
        device.add_listener(listener)
        device.remove_listener(listener)

        await device.refresh_frequent()

        listener.assert_not_called()

    async def test_status_listener(self, device: MillDevice, transport: FakeTransport) -> None:
        """Test that status listeners see every transition."""
        transport.script("GET", "/control-status", CONTROL_STATUS_PAYLOAD, CommunicationError("down"))
        listener = MagicMock()
        device.add_status_listener(listener)

        await device.refresh_frequent()
        await device.refresh_frequent()
        await device.refresh_frequent()

        states = [call.args[1] for call in listener.call_args_list]
        assert [state.status for state in states] == [ConnectivityStatus.ONLINE, ConnectivityStatus.OFFLINE]


class TestExecute:
    """Test command execution on the device."""

    async def test_repoll_after_write(self, device: MillDevice, transport: FakeTransport) -> None:
        """Test that the mirror only changes through the confirming read."""

        async def write(api: MillAPI) -> None:
            await api.set_timezone_offset(120)
            assert device.get(Attribute.TIMEZONE_OFFSET) is None

        await device.execute(write, repoll=(PollStep.TIMEZONE_OFFSET,))

        assert transport.paths() == ["/timezone-offset", "/timezone-offset"]
        assert device.get(Attribute.TIMEZONE_OFFSET) == 60
        assert device.is_online

    async def test_failure_goes_offline_and_raises(self, device: MillDevice, transport: FakeTransport) -> None:
        """Test that a failing write updates the status and raises."""
        transport.script("POST", "/timezone-offset", json_response({}, status=500, reason="Internal Server Error"))

        with pytest.raises(CommunicationError):
            await device.execute(lambda api: api.set_timezone_offset(1))

        assert device.connectivity.detail is DetailCode.COMMUNICATION_ERROR

    async def test_rebooting(self, device: MillDevice) -> None:
        """Test that a reboot reports the device as rebooting until the next tick."""
        await device.execute(lambda api: api.reboot(), rebooting=True)

        assert device.connectivity == ConnectivityState(
            ConnectivityStatus.OFFLINE, DetailCode.NONE, "Device is rebooting"
        )
        await device.refresh_frequent()
        assert device.is_online

    async def test_after_shutdown(self, device: MillDevice, transport: FakeTransport) -> None:
        """Test that commands after shutdown fail without a request."""
        await device.shutdown()

        with pytest.raises(CommunicationError, match="shut down"):
            await device.execute(lambda api: api.reboot())

        assert transport.calls == []

    async def test_update_api_key(self, device: MillDevice, transport: FakeTransport) -> None:
        """Test that a new API key is used for following requests."""
        device.update_api_key("new-key")

        await device.refresh_frequent()

        assert device.config.api_key == "new-key"
        assert transport.calls[0].url.startswith("https://")
        assert transport.calls[0].headers["Authentication"] == "new-key"


class TestUnexpectedErrors:
    """Test errors outside the classified taxonomy."""

    async def test_unexpected_error_goes_offline_without_detail(
        self, device: MillDevice, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test that a bug in a step is logged and reported with detail NONE."""
        device._step_handlers[PollStep.CONTROL_STATUS] = AsyncMock(side_effect=RuntimeError("boom"))

        assert await device.refresh_frequent() is False

        assert device.connectivity.status is ConnectivityStatus.OFFLINE
        assert device.connectivity.detail is DetailCode.NONE
        assert device.connectivity.description == "boom"
        assert "Unexpected error polling" in caplog.text

    async def test_non_finite_value_is_a_communication_error(
        self, device: MillDevice, transport: FakeTransport
    ) -> None:
        """Test that NaN from the device fails the tick on every poll without raising."""
        transport.script(
            "GET", "/control-status", json_response({**CONTROL_STATUS_PAYLOAD, "ambient_temperature": float("nan")})
        )

        assert await device.refresh_frequent() is False
        assert await device.refresh_frequent() is False

        assert device.ambient_temperature is None
        assert device.connectivity.detail is DetailCode.COMMUNICATION_ERROR
        assert "finite" in (device.connectivity.description or "")

    async def test_cadence_keeps_running_on_non_finite_values(
        self, device_factory: Callable[..., MillDevice], transport: FakeTransport
    ) -> None:
        """Test that NaN from the device doesn't stop the frequent cadence."""
        device = device_factory(refresh_interval=0.01, infrequent_refresh_interval=1000)
        transport.script(
            "GET", "/control-status", json_response({**CONTROL_STATUS_PAYLOAD, "ambient_temperature": float("nan")})
        )

        await device.start()
        await wait_for(lambda: transport.paths().count("/control-status") >= 3)

        assert device._frequent_task is not None
        assert not device._frequent_task.done()
        assert device.connectivity.status is ConnectivityStatus.OFFLINE

    async def test_store_error_fails_tick(self, device: MillDevice, caplog: pytest.LogCaptureFixture) -> None:
        """Test that an error while storing values is reported, not raised."""
        apply = device._mirror.apply
        device._mirror.apply = MagicMock(side_effect=RuntimeError("store failed"))  # type: ignore[method-assign]

        assert await device.refresh_frequent() is False

        assert device.connectivity == ConnectivityState(ConnectivityStatus.OFFLINE, DetailCode.NONE, "store failed")
        assert "Failed to store values" in caplog.text

        device._mirror.apply = apply  # type: ignore[method-assign]
        assert await device.refresh_frequent() is True
        assert device.is_online

    async def test_cadence_survives_store_error(
        self, device_factory: Callable[..., MillDevice], transport: FakeTransport
    ) -> None:
        """Test that the cadences keep running after a failed store."""
        device = device_factory(refresh_interval=0.01, infrequent_refresh_interval=1000)
        apply = device._mirror.apply
        failures = [RuntimeError("store failed")]

        def flaky_apply(updates: dict[Attribute, object]) -> frozenset[Attribute]:
            if failures:
                raise failures.pop()
            return apply(updates)

        device._mirror.apply = flaky_apply  # type: ignore[method-assign]
        states: list[ConnectivityState] = []
        device.add_status_listener(lambda _device, state: states.append(state))

        await device.start()
        await wait_for(lambda: device.is_online and transport.paths().count("/control-status") >= 2)

        assert states[0] == ConnectivityState(ConnectivityStatus.OFFLINE, DetailCode.NONE, "store failed")

    async def test_cadence_survives_tick_error(
        self,
        device_factory: Callable[..., MillDevice],
        transport: FakeTransport,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Test that an error escaping a tick is logged and the cadence continues."""
        device = device_factory(refresh_interval=0.01, infrequent_refresh_interval=1000)
        tick = device._tick
        raised: list[str] = []

        async def flaky_tick(cadence: str, steps: tuple[PollStep, ...]) -> bool:
            if cadence == "frequent" and not raised:
                raised.append(cadence)
                msg = "tick failed"
                raise RuntimeError(msg)
            return await tick(cadence, steps)

        device._tick = flaky_tick  # type: ignore[method-assign]

        await device.start()
        await wait_for(lambda: transport.paths().count("/control-status") >= 2)

        assert raised == ["frequent"]
        assert device._frequent_task is not None
        assert not device._frequent_task.done()
        assert "Error in frequent poll loop" in caplog.text
