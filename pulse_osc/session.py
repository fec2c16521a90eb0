"""BLE session: discovery, connection, subscription and forwarding."""

import asyncio
import logging
from collections.abc import Callable
from enum import Enum

from .ble import HR_CHAR_UUID, HR_SERVICE_UUID, Advertisement, BleakBackend, BleEvent, format_address
from .parser import EmptyPayloadError, MalformedPayloadError, parse_heart_rate
from .policy import ForwardingPolicy
from .registry import UNKNOWN_NAME, DeviceIdentity, DeviceRegistry
from .sink import OscSink

logger = logging.getLogger(__name__)

DeviceCallback = Callable[[int, DeviceIdentity], None]


class SessionState(Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    STOPPED = "stopped"
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"
    TERMINATED = "terminated"


class ConnectOutcome(Enum):
    """Result of connect_to_device."""

    INVALID_SELECTION = "invalid selection"
    CONNECT_FAILED = "connect failed"
    SERVICE_NOT_FOUND = "service not found"
    CHARACTERISTIC_NOT_FOUND = "characteristic not found"
    SUBSCRIBE_FAILED = "subscribe failed"
    DISCONNECTED = "disconnected"
    STOPPED = "stopped"


class BleSession:
    """Single-device heart rate session.

    Backend callbacks push Advertisement and Notification events into a queue;
    a consumer task owned by the session applies them to the registry and the
    forwarding path.
    """

    def __init__(
        self,
        backend: BleakBackend,
        sink: OscSink,
        *,
        scan_window: float = 1.0,
        poll_interval: float = 1.0,
        on_device: DeviceCallback | None = None,
        policy: ForwardingPolicy | None = None,
    ):
        self.backend = backend
        self.sink = sink
        self.registry = DeviceRegistry()
        self.policy = policy if policy is not None else ForwardingPolicy()
        self.state = SessionState.IDLE
        self._scan_window = scan_window
        self._poll_interval = poll_interval
        self._on_device = on_device
        self._events: asyncio.Queue[BleEvent] = asyncio.Queue()
        self._consumer: asyncio.Task | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._stop_requested = False

    async def start_scanning(self) -> None:
        """Begin discovery. Only the first call has an effect."""
        if self.state is not SessionState.IDLE:
            logger.warning("Scanning already started (state: %s)", self.state.value)
            return

        self._loop = asyncio.get_running_loop()
        self._consumer = asyncio.create_task(self._consume())
        self.state = SessionState.SCANNING
        try:
            await self.backend.start_scan(self._emit)
        except Exception as e:
            logger.error("Failed to start scanning: %s", e)
            self.state = SessionState.TERMINATED
            return
        logger.debug("Scanning started")

    async def stop_scanning(self, interrupt: asyncio.Event | None = None) -> None:
        """End discovery after the scan window or as soon as interrupt is set."""
        if self.state is not SessionState.SCANNING:
            logger.debug("Not scanning (state: %s)", self.state.value)
            return

        if interrupt is None:
            await asyncio.sleep(self._scan_window)
        else:
            try:
                await asyncio.wait_for(interrupt.wait(), timeout=self._scan_window)
            except TimeoutError:
                pass

        try:
            await self.backend.stop_scan()
        except Exception as e:
            logger.warning("Failed to stop scanner: %s", e)

        # Let callbacks handed over from other threads reach the queue
        await asyncio.sleep(0)
        # Register advertisements that were queued before the scanner stopped
        await self._events.join()
        self.state = SessionState.STOPPED
        logger.info("Scanning stopped, %d device(s) found", len(self.registry))

    async def connect_to_device(self, index: int) -> ConnectOutcome:
        """Connect, subscribe and forward readings until stopped.

        Blocks until stop_subscription() is called or the link drops. Failures
        are logged and returned as an outcome; they never raise.
        """
        if self.state is not SessionState.STOPPED:
            raise RuntimeError(f"Cannot connect while {self.state.value}")

        identity = self.registry.resolve(index)
        if identity is None:
            logger.warning("Invalid index selected: %s", index)
            return ConnectOutcome.INVALID_SELECTION

        self.state = SessionState.CONNECTING
        outcome = await self._subscribe(identity)
        if outcome is None:
            outcome = await self._wait_for_stop()

        await self.backend.disconnect()
        self.state = SessionState.TERMINATED
        return outcome

    def stop_subscription(self) -> None:
        """Ask the subscription loop to exit at its next poll."""
        logger.info("Stopping subscription...")
        self._stop_requested = True

    async def close(self) -> None:
        """Stop the event consumer and release the backend."""
        if self._consumer is not None:
            self._consumer.cancel()
            try:
                await self._consumer
            except asyncio.CancelledError:
                pass
            self._consumer = None
        try:
            await self.backend.close()
        except Exception as e:
            logger.debug("Error releasing BLE backend: %s", e)

    async def drain(self) -> None:
        """Wait until every queued event has been handled."""
        await self._events.join()

    def handle_event(self, event: BleEvent) -> None:
        if isinstance(event, Advertisement):
            self._handle_advertisement(event)
        else:
            self._handle_notification(event.data)

    def _emit(self, event: BleEvent) -> None:
        """Queue an event from a backend callback, whatever thread it runs on."""
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            self._events.put_nowait(event)
        else:
            self._loop.call_soon_threadsafe(self._events.put_nowait, event)

    async def _consume(self) -> None:
        while True:
            event = await self._events.get()
            try:
                self.handle_event(event)
            except Exception:
                logger.exception("Error handling %s", type(event).__name__)
            finally:
                self._events.task_done()

    def _handle_advertisement(self, adv: Advertisement) -> None:
        if self.state is not SessionState.SCANNING:
            return
        identity = DeviceIdentity(address=adv.address, name=adv.name or UNKNOWN_NAME)
        index = self.registry.observe(identity)
        if index is None:
            return  # Already seen this device
        if self._on_device is not None:
            self._on_device(index, identity)

    def _handle_notification(self, data: bytes) -> None:
        if self.state is not SessionState.SUBSCRIBED:
            logger.debug("Dropping notification received while %s", self.state.value)
            return
        try:
            measurement = parse_heart_rate(data)
        except EmptyPayloadError:
            logger.debug("Empty HR notification")
            return
        except MalformedPayloadError as e:
            logger.warning("Malformed HR packet: %s", e)
            return

        if not self.policy.should_forward(measurement.bpm):
            return
        logger.info("Heart Rate Measurement: %d bpm", measurement.bpm)
        self.sink.send(measurement.bpm)

    async def _subscribe(self, identity: DeviceIdentity) -> ConnectOutcome | None:
        """Run the connect/discover/enable steps. Returns None on success."""
        address = format_address(identity.address)
        logger.info("Connecting to %s (%s)...", identity.name, address)
        try:
            await self.backend.connect(identity.address)
        except Exception as e:
            logger.warning("Failed to connect to the device: %s", e)
            return ConnectOutcome.CONNECT_FAILED
        logger.info("Connected to device: %s", address)

        try:
            service = self.backend.find_service(HR_SERVICE_UUID)
        except Exception as e:
            logger.debug("Service lookup failed: %s", e)
            service = None
        if service is None:
            logger.warning("Failed to find Heart Rate service.")
            return ConnectOutcome.SERVICE_NOT_FOUND

        try:
            characteristic = self.backend.find_characteristic(service, HR_CHAR_UUID)
        except Exception as e:
            logger.debug("Characteristic lookup failed: %s", e)
            characteristic = None
        if characteristic is None:
            logger.warning("Failed to find Heart Rate Measurement characteristic.")
            return ConnectOutcome.CHARACTERISTIC_NOT_FOUND

        try:
            await self.backend.start_notify(characteristic, self._emit)
        except Exception as e:
            logger.warning("Failed to subscribe to Heart Rate Measurement notifications: %s", e)
            return ConnectOutcome.SUBSCRIBE_FAILED

        self.state = SessionState.SUBSCRIBED
        logger.info("Subscribed to Heart Rate Measurement notifications.")
        return None

    async def _wait_for_stop(self) -> ConnectOutcome:
        while not self._stop_requested:
            if not self.backend.is_connected:
                logger.warning("Device disconnected")
                return ConnectOutcome.DISCONNECTED
            await asyncio.sleep(self._poll_interval)
        return ConnectOutcome.STOPPED
