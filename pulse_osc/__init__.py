"""BLE Heart Rate to OSC bridge."""

from .ble import BleakBackend, address_to_int, format_address
from .config import Config, load_config
from .log import setup_logging
from .parser import EmptyPayloadError, HeartRateMeasurement, MalformedPayloadError, parse_heart_rate
from .policy import ForwardingPolicy, ForwardingState
from .registry import DeviceIdentity, DeviceRegistry
from .session import BleSession, ConnectOutcome, SessionState
from .sink import OscSink, SinkError

__all__ = [
    "parse_heart_rate",
    "HeartRateMeasurement",
    "EmptyPayloadError",
    "MalformedPayloadError",
    "ForwardingPolicy",
    "ForwardingState",
    "DeviceIdentity",
    "DeviceRegistry",
    "BleakBackend",
    "address_to_int",
    "format_address",
    "BleSession",
    "ConnectOutcome",
    "SessionState",
    "OscSink",
    "SinkError",
    "Config",
    "load_config",
    "setup_logging",
]
