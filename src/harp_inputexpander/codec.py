"""Register payload codec.

Converts between register values and the payload bytes of a Harp message:

    payload bytes <-> payload elements <-> register value

The first step is the wire layer (little-endian elements of the register's
payload type), the second is the descriptor's own decode/encode pair. Both
directions validate the wire shape and raise a CodecError rather than
truncating, padding or clamping.

All functions here are pure: they hold no state and perform no I/O.
"""

import struct
from dataclasses import dataclass
from typing import Any

from .errors import MalformedPayloadError, UnrepresentableValueError
from .messages import HarpMessage, MessageType, PayloadType, Timestamped
from .registers import RegisterDescriptor, RegisterMap


@dataclass(frozen=True)
class DecodedMessage:
    """A Harp message resolved to its register and decoded value.

    Attributes:
        register: Descriptor of the register the message refers to
        message_type: Read, Write or Event
        value: Decoded value, wrapped in Timestamped if the message had a
            timestamp
    """

    register: RegisterDescriptor
    message_type: MessageType
    value: Any

    @property
    def address(self) -> int:
        return self.register.address

    @property
    def payload_value(self) -> Any:
        """Decoded value without the timestamp."""
        if isinstance(self.value, Timestamped):
            return self.value.value
        return self.value

    @property
    def timestamp(self) -> float | None:
        if isinstance(self.value, Timestamped):
            return self.value.seconds
        return None


def unpack_elements(
    payload_type: PayloadType, length: int, payload: bytes
) -> tuple[int, ...]:
    """Split payload bytes into elements.

    Args:
        payload_type: Element type
        length: Expected number of elements
        payload: Raw payload bytes

    Returns:
        Tuple of decoded elements

    Raises:
        MalformedPayloadError: If byte count doesn't match length
    """
    expected = payload_type.element_size * length
    if len(payload) != expected:
        raise MalformedPayloadError(
            f"Expected {expected} payload bytes ({length} x {payload_type.name}), "
            f"got {len(payload)}"
        )
    return struct.unpack(f"<{length}{payload_type.struct_format}", payload)


def pack_elements(payload_type: PayloadType, elements: tuple[int, ...]) -> bytes:
    """Pack elements into payload bytes.

    Raises:
        UnrepresentableValueError: If an element is outside the type's range
    """
    if not payload_type.is_float:
        for element in elements:
            if not payload_type.min_value <= element <= payload_type.max_value:
                raise UnrepresentableValueError(
                    f"Value {element} out of range for {payload_type.name} "
                    f"[{payload_type.min_value}-{payload_type.max_value}]"
                )
    return struct.pack(f"<{len(elements)}{payload_type.struct_format}", *elements)


def decode_payload(descriptor: RegisterDescriptor, payload: bytes) -> Any:
    """Decode a register payload into its value.

    Args:
        descriptor: Register the payload belongs to
        payload: Raw payload bytes, exactly descriptor.size long

    Returns:
        Decoded register value

    Raises:
        MalformedPayloadError: If payload length doesn't match the register
    """
    elements = unpack_elements(descriptor.payload_type, descriptor.length, payload)
    return descriptor.decode(elements)


def encode_payload(descriptor: RegisterDescriptor, value: Any) -> bytes:
    """Encode a register value into payload bytes.

    Args:
        descriptor: Register the value belongs to
        value: Register value

    Returns:
        Payload bytes, exactly descriptor.size long

    Raises:
        UnrepresentableValueError: If value doesn't fit the register
    """
    elements = descriptor.encode(value)
    if len(elements) != descriptor.length:
        raise UnrepresentableValueError(
            f"Register {descriptor.name} expects {descriptor.length} elements, "
            f"got {len(elements)}"
        )
    return pack_elements(descriptor.payload_type, elements)


def decode_message(registers: RegisterMap, message: HarpMessage) -> DecodedMessage:
    """Resolve and decode the payload of a Harp message.

    Args:
        registers: Register map of the active schema revision
        message: Message received from the device

    Returns:
        Decoded message; its value is Timestamped when the message carries a
        timestamp

    Raises:
        UnknownRegisterError: If the address is not in the register map
        MalformedPayloadError: If payload type or length doesn't match
    """
    descriptor = registers.resolve(message.address)
    if message.payload_type != descriptor.payload_type:
        raise MalformedPayloadError(
            f"Register {descriptor.name} has payload type "
            f"{descriptor.payload_type.name}, message has "
            f"{message.payload_type!r}"
        )

    try:
        message_type = MessageType(message.message_type)
    except ValueError:
        raise MalformedPayloadError(
            f"Unknown message type {message.message_type!r} at {descriptor.name}"
        ) from None

    value = decode_payload(descriptor, message.payload)
    if message.timestamp is not None:
        value = Timestamped(value, message.timestamp)
    return DecodedMessage(descriptor, message_type, value)


def create_message(
    descriptor: RegisterDescriptor,
    message_type: MessageType,
    value: Any,
    timestamp: float | None = None,
) -> HarpMessage:
    """Build the message envelope for a register value.

    Args:
        descriptor: Target register
        message_type: Write for commands, Read/Event for device replies
        value: Register value to encode
        timestamp: Optional timestamp in seconds

    Returns:
        Message with address, payload type and payload filled in
    """
    return HarpMessage(
        address=descriptor.address,
        message_type=message_type,
        payload_type=descriptor.payload_type,
        payload=encode_payload(descriptor, value),
        timestamp=timestamp,
    )


def read_request(descriptor: RegisterDescriptor) -> HarpMessage:
    """Build the Read command for a register (no payload)."""
    return HarpMessage(
        address=descriptor.address,
        message_type=MessageType.READ,
        payload_type=descriptor.payload_type,
    )
