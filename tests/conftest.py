"""Shared test fixtures for pulse_osc tests."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from tests.helpers import FakeBackend, make_hr_packet


@pytest.fixture
def hr_packet_simple() -> bytes:
    """Simple 8-bit BPM packet (72 bpm)."""
    return make_hr_packet(72)


@pytest.fixture
def hr_packet_16bit() -> bytes:
    """16-bit BPM packet (180 bpm)."""
    return make_hr_packet(180, is_16bit=True)


@pytest.fixture
def hr_packet_full() -> bytes:
    """Packet with all optional fields populated."""
    return make_hr_packet(
        150,
        is_16bit=True,
        sensor_contact=True,
        energy=1500,
        rr_intervals=[800, 850],
    )


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def mock_sink():
    """Sink that records the BPM values it is asked to send."""
    sink = MagicMock()
    sink.send = MagicMock()
    return sink


@pytest.fixture
def mock_udp_client():
    """Patch python-osc's SimpleUDPClient inside the sink module."""
    with patch("pulse_osc.sink.SimpleUDPClient") as MockClient:
        yield MockClient


# Mock fixtures for bleak
@pytest.fixture
def mock_bleak_client():
    """Create a mock BleakClient."""
    client = MagicMock()
    client.is_connected = True
    client.connect = AsyncMock(return_value=True)
    client.disconnect = AsyncMock()
    client.start_notify = AsyncMock()
    client.stop_notify = AsyncMock()
    return client


@pytest.fixture
def mock_ble_device():
    """Create a mock BLEDevice."""
    device = MagicMock()
    device.address = "AA:BB:CC:DD:EE:FF"
    device.name = "HR Monitor"
    return device


@pytest.fixture
def mock_advertisement_data():
    """Create mock AdvertisementData with a local name."""
    adv = MagicMock()
    adv.local_name = "Polar H10"
    return adv


# Config fixtures
@pytest.fixture
def sample_config_dict() -> dict:
    """Sample config dict as would be parsed from TOML."""
    return {
        "log_level": "DEBUG",
        "osc": {
            "host": "192.168.1.20",
            "port": 9001,
        },
        "ble": {
            "scan_window": 3.0,
            "poll_interval": 0.5,
            "scanning_mode": "passive",
        },
    }


@pytest.fixture
def partial_config_dict() -> dict:
    """Partial config dict with some values missing."""
    return {
        "osc": {"port": 9100},
        "ble": {"scan_window": 2.0},
    }
