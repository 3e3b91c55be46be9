"""Device configuration."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import TYPE_CHECKING, Any

from pymilllan.api import validate_hostname
from pymilllan.const import DEFAULT_INFREQUENT_REFRESH_INTERVAL, DEFAULT_REFRESH_INTERVAL
from pymilllan.exceptions import ConfigurationError
from pymilllan.variants import DeviceVariant


if TYPE_CHECKING:
    from collections.abc import Mapping


__all__ = ["DeviceConfig"]


def _validate_interval(value: Any, label: str) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        msg = f"Invalid configuration: {label} must be a number"
        raise ConfigurationError(msg)
    if value <= 0:
        msg = f"Invalid configuration: {label} must be positive"
        raise ConfigurationError(msg)
    return float(value)


@dataclass(frozen=True)
class DeviceConfig:
    """Configuration of one Mill device.

    Attributes:
        hostname: Hostname or IP address of the device.
        api_key: Optional API key. When set, HTTPS is used.
        refresh_interval: Seconds between frequent polls.
        infrequent_refresh_interval: Seconds between infrequent polls.
        variant: Device variant, selects poll sequences and commands.
        device_id: Optional identifier that confirms API key changes. The MAC
            address reported by the device is used when not set.
        poll_commercial_lock_customization: Poll the commercial lock
            customization endpoint (broken in firmware 0x230630).
    """

    hostname: str
    api_key: str | None = None
    refresh_interval: float = DEFAULT_REFRESH_INTERVAL
    infrequent_refresh_interval: float = DEFAULT_INFREQUENT_REFRESH_INTERVAL
    variant: DeviceVariant = DeviceVariant.PANEL_HEATER
    device_id: str | None = None
    poll_commercial_lock_customization: bool = False

    def validate(self) -> None:
        """Validate the configuration.

        Raises:
            ConfigurationError: If the hostname or an interval is invalid.
        """
        validate_hostname(self.hostname)
        frequent = _validate_interval(self.refresh_interval, "refresh interval")
        infrequent = _validate_interval(self.infrequent_refresh_interval, "infrequent refresh interval")
        if frequent >= infrequent:
            msg = "Invalid configuration: refresh interval must be shorter than the infrequent refresh interval"
            raise ConfigurationError(msg)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> DeviceConfig:
        """Build a configuration from a plain mapping.

        Unknown keys are ignored, blank strings count as missing and the
        variant may be given by name.

        Args:
            data: Mapping with configuration values.

        Returns:
            A validated configuration.

        Raises:
            ConfigurationError: If a value is invalid.

        Example:
            >>> config = DeviceConfig.from_dict({"hostname": "192.168.1.20", "variant": "socket"})
            >>> config.variant
            <DeviceVariant.SOCKET: 'socket'>
        """
        known = {f.name for f in fields(cls)}
        values = {
            key: value
            for key, value in data.items()
            if key in known and not (isinstance(value, str) and not value.strip())
        }
        if "variant" in values:
            try:
                values["variant"] = DeviceVariant(values["variant"])
            except ValueError as err:
                msg = f"Invalid configuration: unknown device variant {values['variant']!r}"
                raise ConfigurationError(msg) from err
        for key in ("refresh_interval", "infrequent_refresh_interval"):
            if isinstance(values.get(key), str):
                try:
                    values[key] = float(values[key])
                except ValueError:
                    label = key.replace("_", " ")
                    msg = f"Invalid configuration: {label} must be a number"
                    raise ConfigurationError(msg) from None
        if isinstance(values.get("poll_commercial_lock_customization"), str):
            flag = values["poll_commercial_lock_customization"].strip().lower()
            values["poll_commercial_lock_customization"] = flag in ("1", "true", "yes", "on")
        values.setdefault("hostname", None)

        config = cls(**values)
        config.validate()
        return config
