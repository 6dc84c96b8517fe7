"""Harp message envelope types.

The transport owns framing (length byte, checksum) and the wire encoding of the
timestamp. This module only models the envelope fields the register codec
consumes and produces:

- address: register address (0-255)
- message type: Read (1), Write (2) or Event (3), plus the error flag on replies
- payload type: element type code, e.g. U8 = 0x01, S16 = 0x82
- payload: raw little-endian element bytes
- timestamp: optional device time in seconds
"""

import enum
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


class MessageType(enum.IntEnum):
    """Harp message kinds."""

    READ = 1
    WRITE = 2
    EVENT = 3


class PayloadType(enum.IntEnum):
    """Harp payload element types.

    The low nibble of the code is the element size in bytes, bit 0x80 marks a
    signed integer type and bit 0x40 a floating point type.
    """

    U8 = 0x01
    S8 = 0x81
    U16 = 0x02
    S16 = 0x82
    U32 = 0x04
    S32 = 0x84
    U64 = 0x08
    S64 = 0x88
    FLOAT = 0x44

    @property
    def element_size(self) -> int:
        """Size of one payload element in bytes."""
        return self.value & 0x0F

    @property
    def is_signed(self) -> bool:
        return bool(self.value & 0x80)

    @property
    def is_float(self) -> bool:
        return bool(self.value & 0x40)

    @property
    def struct_format(self) -> str:
        """struct format character for one element."""
        return _STRUCT_FORMATS[self]

    @property
    def min_value(self) -> int:
        if self.is_signed:
            return -(1 << (8 * self.element_size - 1))
        return 0

    @property
    def max_value(self) -> int:
        if self.is_signed:
            return (1 << (8 * self.element_size - 1)) - 1
        return (1 << (8 * self.element_size)) - 1


_STRUCT_FORMATS: dict[PayloadType, str] = {
    PayloadType.U8: "B",
    PayloadType.S8: "b",
    PayloadType.U16: "H",
    PayloadType.S16: "h",
    PayloadType.U32: "I",
    PayloadType.S32: "i",
    PayloadType.U64: "Q",
    PayloadType.S64: "q",
    PayloadType.FLOAT: "f",
}


@dataclass(frozen=True)
class HarpMessage:
    """A Harp message envelope without framing.

    Attributes:
        address: Register address (0-255)
        message_type: Read, Write or Event
        payload_type: Element type of the payload
        payload: Raw payload bytes (empty for read requests)
        timestamp: Device timestamp in seconds, if the message carries one
        is_error: True for error replies from the device
    """

    address: int
    message_type: MessageType
    payload_type: PayloadType
    payload: bytes = b""
    timestamp: float | None = None
    is_error: bool = False

    def __post_init__(self):
        """Validate address is in valid range."""
        if not 0 <= self.address <= 0xFF:
            raise ValueError(
                f"Message address {self.address} out of range [0-255]"
            )


@dataclass(frozen=True)
class Timestamped(Generic[T]):
    """A decoded register value paired with the device capture time.

    Attributes:
        value: Decoded register value
        seconds: Device timestamp in seconds
    """

    value: T
    seconds: float
