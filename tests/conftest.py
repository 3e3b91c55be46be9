"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from urllib.parse import urlsplit

import pytest
from aiohttp import web

from pymilllan.config import DeviceConfig
from pymilllan.devices import MillDevice
from pymilllan.transport import TransportResponse


if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Callable, Mapping


HOSTNAME = "192.168.1.20"
MAC_ADDRESS = "AA:BB:CC:DD:EE:FF"

STATUS_PAYLOAD: dict[str, Any] = {
    "status": "ok",
    "name": "Mill Panel Heater",
    "custom_name": "Living room",
    "version": "0x230630",
    "operation_key": "",
    "mac_address": MAC_ADDRESS,
}

CONTROL_STATUS_PAYLOAD: dict[str, Any] = {
    "status": "ok",
    "ambient_temperature": 21.53,
    "current_power": 350.0,
    "control_signal": 42.0,
    "lock_active": "No lock",
    "open_window_active_now": "Enabled not active now",
    "raw_ambient_temperature": 22.01,
    "set_temperature": 22.0,
    "switched_on": True,
    "connected_to_cloud": False,
    "operation_mode": "Control individually",
}

OPEN_WINDOW_PAYLOAD: dict[str, Any] = {
    "status": "ok",
    "drop_temperature_threshold": 5.0,
    "drop_time_range": 900,
    "enabled": True,
    "increase_temperature_threshold": 3.0,
    "increase_time_range": 900,
    "max_time": 3600,
    "active_now": False,
}

# Payloads for every GET endpoint of a healthy device
DEVICE_PAYLOADS: dict[str, dict[str, Any]] = {
    "/status": STATUS_PAYLOAD,
    "/control-status": CONTROL_STATUS_PAYLOAD,
    "/set-temperature": {"status": "ok", "value": 21.0},
    "/operation-mode": {"status": "ok", "mode": "Control individually"},
    "/temperature-calibration-offset": {"status": "ok", "value": -0.5},
    "/display-unit": {"status": "ok", "value": "Celsius"},
    "/predictive-heating-type": {"status": "ok", "predictive_heating_type": "Off"},
    "/controller-type": {"status": "ok", "regulator_type": "pid"},
    "/limited-heating-power": {"status": "ok", "limited_heating_power": 100},
    "/oil-heater-power": {"status": "ok", "heating_level_percentage": 60},
    "/timezone-offset": {"status": "ok", "timezone_offset": 60},
    "/cloud-communication": {"status": "ok", "value": False},
    "/pid-parameters": {
        "status": "ok",
        "kp": 70.0,
        "ki": 0.02,
        "kd": 4500.0,
        "kd_filter_N": 24.0,
        "windup_limit_percentage": 95.0,
    },
    "/hysteresis-parameters": {
        "status": "ok",
        "temp_hysteresis_upper": 0.5,
        "temp_hysteresis_lower": 0.5,
        "regulator_type": "hysteresis_or_slow_pid",
    },
    "/child-lock": {"status": "ok", "value": False},
    "/commercial-lock": {"status": "ok", "value": False},
    "/commercial-lock-customization": {
        "status": "ok",
        "enabled": False,
        "min_allowed_temp_in_commercial_lock": 18.0,
        "max_allowed_temp_in_commercial_lock": 24.0,
    },
    "/open-window": OPEN_WINDOW_PAYLOAD,
}


def json_response(payload: Mapping[str, Any], status: int = 200, reason: str = "OK") -> TransportResponse:
    """Build a transport response carrying a JSON body."""
    return TransportResponse(status=status, reason=reason, body=json.dumps(payload).encode())


@dataclass
class RecordedCall:
    """One request seen by the fake transport."""

    method: str
    url: str
    headers: dict[str, str]
    body: bytes | None
    timeout: float

    @property
    def path(self) -> str:
        return urlsplit(self.url).path

    @property
    def json(self) -> Any:
        return json.loads(self.body) if self.body else None


class FakeTransport:
    """Scripted transport recording every request.

    Each route holds a queue of outcomes. The last outcome of a queue repeats.
    An outcome is a payload mapping (sent as a 200 JSON response), a
    TransportResponse, an exception instance to raise, or an async callable
    producing one of those. Routes without a script answer 404.
    """

    def __init__(self, payloads: Mapping[str, Mapping[str, Any]] | None = None) -> None:
        self.calls: list[RecordedCall] = []
        self.delay = 0.0
        self.in_flight = 0
        self.max_in_flight = 0
        self._routes: dict[tuple[str, str], list[Any]] = {}
        for path, payload in (payloads or {}).items():
            self.script("GET", path, payload)

    def script(self, method: str, path: str, *outcomes: Any) -> None:
        """Replace the outcomes of a route."""
        self._routes[(method, path)] = list(outcomes)

    def paths(self, method: str | None = None) -> list[str]:
        """Get the paths of all recorded requests, in order."""
        return [call.path for call in self.calls if method is None or call.method == method]

    async def send(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str],
        body: bytes | None,
        timeout: float,
    ) -> TransportResponse:
        call = RecordedCall(method, url, dict(headers), body, timeout)
        self.calls.append(call)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            return await self._respond(method, call)
        finally:
            self.in_flight -= 1

    async def _respond(self, method: str, call: RecordedCall) -> TransportResponse:
        queue = self._routes.get((method, call.path))
        if not queue:
            return json_response({"status": "Failed to execute the request"}, status=404, reason="Not Found")
        outcome = queue.pop(0) if len(queue) > 1 else queue[0]
        if callable(outcome):
            outcome = await outcome()
        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, TransportResponse):
            return outcome
        return json_response(outcome)


@pytest.fixture
def transport() -> FakeTransport:
    """Create a fake transport answering every GET endpoint like a healthy device."""
    fake = FakeTransport(DEVICE_PAYLOADS)
    for path in (
        "/set-temperature",
        "/temperature-calibration-offset",
        "/set-temperature-in-independent-mode-now",
        "/operation-mode",
        "/display-unit",
        "/controller-type",
        "/predictive-heating-type",
        "/limited-heating-power",
        "/oil-heater-power",
        "/child-lock",
        "/commercial-lock",
        "/commercial-lock-customization",
        "/timezone-offset",
        "/pid-parameters",
        "/cloud-communication",
        "/hysteresis-parameters",
        "/open-window",
        "/set-custom-name",
        "/set-api-key",
        "/reboot",
    ):
        fake.script("POST", path, {"status": "ok"})
    return fake


@pytest.fixture
def empty_transport() -> FakeTransport:
    """Create a fake transport without any scripted route."""
    return FakeTransport()


@pytest.fixture
async def device_factory(transport: FakeTransport) -> AsyncGenerator[Callable[..., MillDevice]]:
    """Create devices on the fake transport and shut them down afterwards.

    Yields:
        Factory taking DeviceConfig keyword arguments.
    """
    created: list[MillDevice] = []

    def factory(**kwargs: Any) -> MillDevice:
        kwargs.setdefault("hostname", HOSTNAME)
        device = MillDevice(transport, DeviceConfig(**kwargs))
        created.append(device)
        return device

    yield factory

    for device in created:
        await device.shutdown()


@pytest.fixture
def device(device_factory: Callable[..., MillDevice]) -> MillDevice:
    """Create a panel heater device that isn't started."""
    return device_factory()


@pytest.fixture
def mill_app() -> web.Application:
    """Create an aiohttp application emulating the device's HTTP API.

    Writes are stored in ``app["state"]`` and served back by the matching GET.
    """
    app = web.Application()
    state: dict[str, dict[str, Any]] = {path: dict(payload) for path, payload in DEVICE_PAYLOADS.items()}
    app["state"] = state
    app["requests"] = []

    async def handle_get(request: web.Request) -> web.Response:
        app["requests"].append((request.method, request.path, dict(request.headers)))
        payload = state.get(request.path)
        if payload is None:
            return web.json_response({"status": "Failed to execute the request"}, status=404)
        return web.json_response(payload)

    async def handle_post(request: web.Request) -> web.Response:
        app["requests"].append((request.method, request.path, dict(request.headers)))
        if request.can_read_body:
            body = await request.json()
            if request.path in state:
                state[request.path].update(body)
        return web.json_response({"status": "ok"})

    for path in DEVICE_PAYLOADS:
        app.router.add_get(path, handle_get)
        app.router.add_post(path, handle_post)
    for path in ("/set-custom-name", "/set-temperature-in-independent-mode-now", "/reboot"):
        app.router.add_post(path, handle_post)
    return app
