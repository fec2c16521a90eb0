"""BLE scanning and GATT access backed by bleak."""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from bleak import BleakClient, BleakScanner
from bleak.backends.characteristic import BleakGATTCharacteristic
from bleak.backends.device import BLEDevice
from bleak.backends.scanner import AdvertisementData
from bleak.backends.service import BleakGATTService
from bleak.uuids import normalize_uuid_str

logger = logging.getLogger(__name__)

HR_SERVICE_UUID = normalize_uuid_str("180D")
HR_CHAR_UUID = normalize_uuid_str("2A37")

ADDRESS_MASK = 0xFFFF_FFFF_FFFF_FFFF


@dataclass(frozen=True)
class Advertisement:
    """An advertisement observed while scanning."""

    address: int
    name: str | None = None


@dataclass(frozen=True)
class Notification:
    """A value-changed notification from the subscribed characteristic."""

    data: bytes


BleEvent = Advertisement | Notification
EventSink = Callable[[BleEvent], None]


def address_to_int(address: str) -> int:
    """Convert a platform address string to a 64-bit integer.

    MAC addresses ("AA:BB:CC:DD:EE:FF") map to their 48-bit value. CoreBluetooth
    identifiers (UUID strings) keep their low 64 bits.
    """
    digits = address.replace(":", "").replace("-", "")
    return int(digits, 16) & ADDRESS_MASK


def format_address(address: int) -> str:
    """Render an integer address as a MAC string when it fits in 48 bits."""
    if address > 0xFFFF_FFFF_FFFF:
        return f"{address:016X}"
    raw = f"{address:012X}"
    return ":".join(raw[i : i + 2] for i in range(0, 12, 2))


class BleakBackend:
    """Advertisement and GATT capability used by BleSession."""

    def __init__(self, scanning_mode: str = "active"):
        self._scanning_mode = scanning_mode
        self._scanner: BleakScanner | None = None
        self._client: BleakClient | None = None
        self._notify_char: BleakGATTCharacteristic | None = None
        self._devices: dict[int, BLEDevice] = {}

    async def start_scan(self, emit: EventSink) -> None:
        """Start scanning, pushing every advertisement into emit."""

        def detection_callback(device: BLEDevice, adv: AdvertisementData) -> None:
            try:
                address = address_to_int(device.address)
            except ValueError:
                logger.debug("Ignoring device with unparseable address %s", device.address)
                return
            self._devices.setdefault(address, device)
            emit(Advertisement(address=address, name=adv.local_name or device.name))

        self._scanner = BleakScanner(
            detection_callback=detection_callback,
            scanning_mode=self._scanning_mode,
        )
        await self._scanner.start()
        logger.debug("Scanner started (%s)", self._scanning_mode)

    async def stop_scan(self) -> None:
        if self._scanner is None:
            return
        await self._scanner.stop()
        self._scanner = None
        logger.debug("Scanner stopped")

    async def connect(self, address: int) -> None:
        """Connect to a device seen during scanning.

        Raises:
            BleakError or OSError subclasses from the platform on failure
        """
        target = self._devices.get(address) or format_address(address)
        self._client = BleakClient(target)
        await self._client.connect()

    @property
    def is_connected(self) -> bool:
        return self._client is not None and self._client.is_connected

    def find_service(self, uuid: str) -> BleakGATTService | None:
        if self._client is None:
            return None
        return self._client.services.get_service(uuid)

    def find_characteristic(self, service: BleakGATTService, uuid: str) -> BleakGATTCharacteristic | None:
        return service.get_characteristic(uuid)

    async def start_notify(self, characteristic: BleakGATTCharacteristic, emit: EventSink) -> None:
        """Enable notifications, pushing each value into emit."""
        if self._client is None:
            raise RuntimeError("Not connected")

        def notify_handler(_: BleakGATTCharacteristic, data: bytearray) -> None:
            emit(Notification(bytes(data)))

        await self._client.start_notify(characteristic, notify_handler)
        self._notify_char = characteristic

    async def disconnect(self) -> None:
        """Release the link, ignoring errors from an already dropped connection."""
        if self._client is None:
            return
        try:
            if self._client.is_connected:
                if self._notify_char is not None:
                    await self._client.stop_notify(self._notify_char)
                await self._client.disconnect()
                logger.debug("Disconnected from device")
        except Exception as e:
            logger.debug("Error while disconnecting: %s", e)
        self._client = None
        self._notify_char = None

    async def close(self) -> None:
        await self.stop_scan()
        await self.disconnect()
