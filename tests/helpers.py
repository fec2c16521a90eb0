"""Shared test helpers for pulse_osc tests."""

from __future__ import annotations

import asyncio

from pulse_osc.ble import Advertisement, Notification

ADDR_A = 0xAABBCCDDEEFF
ADDR_B = 0x112233445566
ADDR_C = 0xC0FFEE000001


def make_hr_packet(
    bpm: int,
    *,
    is_16bit: bool = False,
    sensor_contact: bool | None = None,
    energy: int | None = None,
    rr_intervals: list[int] | None = None,
) -> bytes:
    """Build a BLE HR measurement packet.

    Args:
        bpm: Heart rate in BPM
        is_16bit: If True, use 16-bit BPM format
        sensor_contact: None=not supported, True=detected, False=not detected
        energy: Energy expended in joules (if supported)
        rr_intervals: RR intervals in 1/1024 second units

    Returns:
        Raw bytes for HR measurement characteristic
    """
    flags = 0

    if is_16bit:
        flags |= 0b1

    if sensor_contact is not None:
        flags |= 0b100  # Sensor contact supported
        if sensor_contact:
            flags |= 0b10  # Sensor contact detected

    if energy is not None:
        flags |= 0b1000

    if rr_intervals:
        flags |= 0b10000

    data = bytearray([flags])

    if is_16bit:
        data.extend(bpm.to_bytes(2, "little"))
    else:
        data.append(bpm)

    if energy is not None:
        data.extend(energy.to_bytes(2, "little"))

    if rr_intervals:
        for rr in rr_intervals:
            data.extend(rr.to_bytes(2, "little"))

    return bytes(data)


class FakeBackend:
    """In-memory stand-in for BleakBackend.

    Advertisements and notifications are pushed by the test through
    advertise() and notify(), exactly as the bleak callbacks would.
    """

    def __init__(
        self,
        *,
        adverts: list[tuple[int, str | None]] | None = None,
        connect_error: Exception | None = None,
        service: object | None = "hr-service",
        characteristic: object | None = "hr-measurement",
        notify_error: Exception | None = None,
        link_lost: bool = False,
    ):
        self._adverts = adverts or []
        self._connect_error = connect_error
        self._service = service
        self._characteristic = characteristic
        self._notify_error = notify_error
        self._link_lost = link_lost
        self._scan_emit = None
        self._notify_emit = None
        self.scanning = False
        self.start_scan_calls = 0
        self.connect_calls: list[int] = []
        self.service_lookups: list[str] = []
        self.characteristic_lookups: list[tuple[object, str]] = []
        self.disconnect_calls = 0
        self.closed = False
        self.subscribed = asyncio.Event()
        self._connected = False

    async def start_scan(self, emit) -> None:
        self.start_scan_calls += 1
        self._scan_emit = emit
        self.scanning = True
        for address, name in self._adverts:
            self.advertise(address, name)

    async def stop_scan(self) -> None:
        self.scanning = False

    def advertise(self, address: int, name: str | None = None) -> None:
        self._scan_emit(Advertisement(address=address, name=name))

    async def connect(self, address: int) -> None:
        self.connect_calls.append(address)
        if self._connect_error is not None:
            raise self._connect_error
        self._connected = True

    @property
    def is_connected(self) -> bool:
        return self._connected

    def find_service(self, uuid: str):
        self.service_lookups.append(uuid)
        return self._service

    def find_characteristic(self, service, uuid: str):
        self.characteristic_lookups.append((service, uuid))
        return self._characteristic

    async def start_notify(self, characteristic, emit) -> None:
        if self._notify_error is not None:
            raise self._notify_error
        self._notify_emit = emit
        self.subscribed.set()
        if self._link_lost:
            self._connected = False

    def notify(self, data: bytes) -> None:
        self._notify_emit(Notification(data))

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        self._connected = False

    async def close(self) -> None:
        self.closed = True
        self.scanning = False
        self._connected = False


class FakeConsole:
    """ConsoleReader stand-in serving canned lines; never interrupts scanning."""

    def __init__(self, lines: list[str]):
        self._lines = list(lines)
        self.started = False

    def start(self) -> None:
        self.started = True

    async def readline(self) -> str | None:
        if not self._lines:
            return None
        return self._lines.pop(0)

    async def set_on_line(self, event: asyncio.Event) -> None:
        await asyncio.Event().wait()
