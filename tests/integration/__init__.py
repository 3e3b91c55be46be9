"""Integration tests for pymilllan library.

These tests talk to a real Mill device on the local network.
They are marked with @pytest.mark.integration and skipped by default.

To run integration tests:
    pytest tests/integration -v -m integration

Environment variables read from .env:
    MILL_HOSTNAME: Hostname or IP address of the device
    MILL_API_KEY: API key (optional, only if one was set on the device)
    MILL_VARIANT: Device variant (optional, defaults to panel_heater)
"""
