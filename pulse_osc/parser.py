"""Heart rate measurement decoder for the BLE Heart Rate Measurement characteristic.

Only the primary BPM field is decoded. Sensor contact, energy expended and
RR interval flags are accepted and left alone.
"""

from dataclasses import dataclass

HR_FORMAT_UINT16 = 0b1


class PayloadError(ValueError):
    """Base class for notification payloads that cannot be decoded."""


class EmptyPayloadError(PayloadError):
    """Notification carried no data."""


class MalformedPayloadError(PayloadError):
    """Notification is shorter than its flags require."""


@dataclass
class HeartRateMeasurement:
    """Decoded heart rate measurement."""

    bpm: int
    consumed: int  # Bytes read from the payload (flags + value)


def parse_heart_rate(data: bytes) -> HeartRateMeasurement:
    """Decode BLE heart rate measurement characteristic data.

    Args:
        data: Raw bytes from HR measurement characteristic (0x2A37)

    Returns:
        HeartRateMeasurement with the BPM value

    Raises:
        EmptyPayloadError: If data is empty
        MalformedPayloadError: If data is too short for the value format
    """
    if not data:
        raise EmptyPayloadError("Empty HR data received")

    flags = data[0]

    # Bit 0: HR format (0 = uint8, 1 = uint16)
    is_16_bit = flags & HR_FORMAT_UINT16 == HR_FORMAT_UINT16

    min_len = 1 + (2 if is_16_bit else 1)
    if len(data) < min_len:
        raise MalformedPayloadError(f"HR data too short: {len(data)} bytes, need {min_len}")

    if is_16_bit:
        bpm = int.from_bytes(data[1:3], "little")
    else:
        bpm = data[1]

    return HeartRateMeasurement(bpm=bpm, consumed=min_len)
