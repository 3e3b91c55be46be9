"""Pytest configuration and fixtures for integration tests."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from dotenv import load_dotenv

from pymilllan import DeviceConfig, MillClient


if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from pymilllan import MillDevice


# Load .env file from project root
env_path = Path(__file__).parents[2] / ".env"
load_dotenv(env_path)


@pytest.fixture(scope="session")
def integration_config() -> dict[str, str | None]:
    """Load integration test configuration from environment.

    Returns:
        Dictionary with the device address, API key and variant.
    """
    hostname = os.getenv("MILL_HOSTNAME")
    if not hostname:
        pytest.skip("MILL_HOSTNAME is not set. Create a .env file to run integration tests")

    return {
        "hostname": hostname,
        "api_key": os.getenv("MILL_API_KEY"),
        "variant": os.getenv("MILL_VARIANT", "panel_heater"),
    }


@pytest.fixture
async def integration_device(integration_config: dict[str, str | None]) -> AsyncGenerator[MillDevice]:
    """Create a device for the configured host without starting its cadences.

    Each test polls explicitly, so no background traffic competes with it.
    """
    async with MillClient() as client:
        device = await client.add_device(DeviceConfig.from_dict(integration_config), start=False)
        yield device


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for integration tests."""
    config.addinivalue_line("markers", "integration: Integration tests requiring a real device")
    config.addinivalue_line("markers", "slow: Slow tests that may take several seconds")


@pytest.fixture(autouse=True)
async def rate_limit_delay(request: pytest.FixtureRequest) -> AsyncGenerator[None]:
    """Give the device firmware a short break between integration tests."""
    yield
    if "integration" in request.keywords:
        await asyncio.sleep(1.0)
