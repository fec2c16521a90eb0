"""OSC sink for forwarding heart rate readings."""

import logging

from pythonosc.udp_client import SimpleUDPClient

logger = logging.getLogger(__name__)

OSC_PATH = "/chatbox/input"


class SinkError(Exception):
    """OSC destination could not be set up."""


def format_reading(bpm: int) -> str:
    return f"Heart Rate {bpm}"


class OscSink:
    """Sends heart rate readings to a fixed OSC destination over UDP."""

    def __init__(self, host: str = "127.0.0.1", port: int = 9000):
        self.host = host
        self.port = port
        if not 0 < port <= 0xFFFF:
            raise SinkError(f"Invalid OSC port: {port}")
        try:
            self._client: SimpleUDPClient | None = SimpleUDPClient(host, port)
        except (OSError, ValueError, OverflowError) as e:
            raise SinkError(f"Cannot create OSC destination {host}:{port}: {e}") from e
        logger.debug("OSC destination %s:%d%s", host, port, OSC_PATH)

    def send(self, bpm: int) -> None:
        """Send one reading. Delivery is not confirmed."""
        if self._client is None:
            logger.debug("Sink closed, dropping %d bpm", bpm)
            return
        try:
            self._client.send_message(OSC_PATH, format_reading(bpm))
        except OSError as e:
            logger.debug("OSC send failed: %s", e)

    def close(self) -> None:
        """Release the UDP socket."""
        if self._client is None:
            return
        # UDPClient exposes no close(); its socket is the _sock attribute
        sock = getattr(self._client, "_sock", None)
        if sock is not None:
            sock.close()
        self._client = None
