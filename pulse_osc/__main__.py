"""Entry point for pulse-osc."""

import argparse
import asyncio
import logging
import signal
import sys

from .ble import BleakBackend, format_address
from .config import Config, load_config
from .console import ConsoleReader
from .log import setup_logging
from .registry import DeviceIdentity
from .session import BleSession, ConnectOutcome, SessionState
from .sink import OscSink, SinkError

logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def _signal_handler(session: BleSession, shutdown: asyncio.Event) -> None:
    """Handle shutdown signals."""
    logger.info("Shutdown requested...")
    shutdown.set()
    session.stop_subscription()


def _install_signal_handlers(
    loop: asyncio.AbstractEventLoop, session: BleSession, shutdown: asyncio.Event
) -> dict | None:
    """Route shutdown signals to the session.

    Returns the replaced handlers when the loop cannot install signal handlers
    itself (Windows event loops) and signal.signal was used instead.
    """
    try:
        for sig in SHUTDOWN_SIGNALS:
            loop.add_signal_handler(sig, _signal_handler, session, shutdown)
        return None
    except NotImplementedError:
        pass

    def handler(signum, frame):
        loop.call_soon_threadsafe(_signal_handler, session, shutdown)

    return {sig: signal.signal(sig, handler) for sig in SHUTDOWN_SIGNALS}


def _remove_signal_handlers(loop: asyncio.AbstractEventLoop, previous: dict | None) -> None:
    if previous is None:
        for sig in SHUTDOWN_SIGNALS:
            loop.remove_signal_handler(sig)
        return
    for sig, handler in previous.items():
        signal.signal(sig, handler)


def _print_device(index: int, identity: DeviceIdentity) -> None:
    print(f"[{index}] Device found: {identity.name} ({format_address(identity.address)})")


async def _read_selection(console: ConsoleReader, shutdown: asyncio.Event) -> str | None:
    """Read the index line, giving up if shutdown is requested first."""
    print("Select a device to connect (enter index): ", end="", flush=True)
    read_task = asyncio.create_task(console.readline())
    shutdown_task = asyncio.create_task(shutdown.wait())

    done, pending = await asyncio.wait(
        [read_task, shutdown_task],
        return_when=asyncio.FIRST_COMPLETED,
    )
    for task in pending:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    if shutdown.is_set() or read_task not in done:
        return None
    return read_task.result()


async def _scan(session: BleSession, console: ConsoleReader) -> None:
    """Scan until the window closes or the operator presses Enter."""
    print("Scanning for devices. Press Enter to stop scanning.")
    await session.start_scanning()

    interrupt = asyncio.Event()
    watcher = asyncio.create_task(console.set_on_line(interrupt))
    try:
        await session.stop_scanning(interrupt)
    finally:
        watcher.cancel()
        try:
            await watcher
        except asyncio.CancelledError:
            pass


async def run(config: Config, sink: OscSink, console: ConsoleReader | None = None) -> ConnectOutcome | None:
    """Run one scan, select, subscribe session."""
    shutdown = asyncio.Event()
    console = console if console is not None else ConsoleReader()
    session = BleSession(
        BleakBackend(scanning_mode=config.ble.scanning_mode),
        sink,
        scan_window=config.ble.scan_window,
        poll_interval=config.ble.poll_interval,
        on_device=_print_device,
    )

    loop = asyncio.get_running_loop()
    previous = _install_signal_handlers(loop, session, shutdown)

    try:
        console.start()
        await _scan(session, console)
        if session.state is not SessionState.STOPPED:
            return None

        line = await _read_selection(console, shutdown)
        if line is None:
            return None
        try:
            index = int(line.strip())
        except ValueError:
            print("Invalid index selected.")
            return ConnectOutcome.INVALID_SELECTION

        return await session.connect_to_device(index)
    finally:
        _remove_signal_handlers(loop, previous)
        await session.close()
        logger.info("Shutdown complete")


def main() -> None:
    """CLI entry point."""
    config = load_config()

    parser = argparse.ArgumentParser(description="BLE Heart Rate to OSC bridge")
    parser.add_argument("-H", "--host", default=config.osc.host, help="OSC destination host")
    parser.add_argument("-p", "--port", type=int, default=config.osc.port, help="OSC destination port")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    # Setup logging before anything else
    log_level = "DEBUG" if args.verbose else config.log_level
    setup_logging(log_level)

    try:
        sink = OscSink(args.host, args.port)
    except SinkError as e:
        logger.error("Error creating OSC address: %s", e)
        sys.exit(1)

    try:
        asyncio.run(run(config, sink))
    finally:
        sink.close()


if __name__ == "__main__":
    main()
