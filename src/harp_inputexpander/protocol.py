"""InputExpander command protocol.

This module implements the register read/write command contract on top of a
MessageTransport. Commands and replies are Harp message envelopes; payloads
are produced and consumed by the register codec.

Command/reply pairs:
- Read:  READ <addr> (no payload)      -> READ <addr> <payload> @ timestamp
- Write: WRITE <addr> <payload>        -> WRITE <addr> <payload> @ timestamp
- Error: any command                   -> <type> <addr> with the error flag set

A reply must echo the command's address, message type and payload type.
"""

import logging
from typing import Any

from .codec import create_message, decode_message, read_request
from .messages import HarpMessage, MessageType, Timestamped
from .registers import RegisterDescriptor, RegisterMap
from .transport import MessageTransport

logger = logging.getLogger(__name__)


class ProtocolError(Exception):
    """Base exception for protocol-level errors."""

    pass


class MalformedResponseError(ProtocolError):
    """Raised when a reply doesn't match the command it answers."""

    pass


class RegisterError(ProtocolError):
    """Raised when the device answers a command with an error reply."""

    pass


class InputExpanderProtocol:
    """InputExpander command protocol handler.

    Provides register read/write operations returning decoded register
    values. Handles reply validation and optional write verification.
    """

    def __init__(self, transport: MessageTransport, registers: RegisterMap):
        """Initialize protocol handler.

        Args:
            transport: Connected MessageTransport instance
            registers: Register map of the firmware's schema revision
        """
        self.transport = transport
        self.registers = registers

    async def read_register(self, address: int) -> Any:
        """Read and decode a register.

        Args:
            address: Register address

        Returns:
            Decoded register value

        Raises:
            UnknownRegisterError: If address is not in the register map
            ProtocolError: If read fails or reply invalid
        """
        value = await self.read_register_timestamped(address, require_timestamp=False)
        if isinstance(value, Timestamped):
            return value.value
        return value

    async def read_register_timestamped(
        self, address: int, require_timestamp: bool = True
    ) -> Any:
        """Read a register together with the device timestamp of the reply.

        Args:
            address: Register address
            require_timestamp: If True, a reply without timestamp is an error

        Returns:
            Timestamped register value

        Raises:
            ProtocolError: If read fails or reply invalid
        """
        descriptor = self.registers.resolve(address)
        if not descriptor.readable:
            raise ValueError(f"Register {descriptor.name} is not readable")

        logger.debug(f"Reading register {descriptor.name} ({address})")
        reply = await self.transport.send(read_request(descriptor))
        value = self._parse_reply(descriptor, MessageType.READ, reply)

        if require_timestamp and not isinstance(value, Timestamped):
            raise MalformedResponseError(
                f"Read reply for {descriptor.name} carries no timestamp"
            )
        return value

    async def write_register(self, address: int, value: Any, verify: bool = False) -> Any:
        """Encode and write a register value.

        Args:
            address: Register address
            value: Register value to write
            verify: If True, read back value to verify write

        Returns:
            Verified value if verify=True, else written value

        Raises:
            ValueError: If the register is not writable
            UnrepresentableValueError: If value doesn't fit the register
            ProtocolError: If write fails or reply invalid
        """
        descriptor = self.registers.resolve(address)
        if not descriptor.writable:
            raise ValueError(f"Register {descriptor.name} is read-only")

        command = create_message(descriptor, MessageType.WRITE, value)
        logger.debug(
            f"Writing {value!r} to register {descriptor.name} ({address}): "
            f"{command.payload.hex()}"
        )

        reply = await self.transport.send(command)
        self._parse_reply(descriptor, MessageType.WRITE, reply)

        if verify:
            readback = await self.read_register(address)
            if readback != value:
                logger.warning(
                    f"Write verification mismatch at {descriptor.name}: "
                    f"wrote {value!r}, read {readback!r}"
                )
            return readback

        return value

    def _parse_reply(
        self,
        descriptor: RegisterDescriptor,
        message_type: MessageType,
        reply: HarpMessage,
    ) -> Any:
        """Validate a command reply and decode its payload.

        Args:
            descriptor: Register the command was sent to
            message_type: Message type of the command
            reply: Reply received from the device

        Returns:
            Decoded value, Timestamped if the reply has a timestamp

        Raises:
            ProtocolError: If reply indicates an error or doesn't match
        """
        # Check for error reply first
        if reply.is_error:
            operation = "read" if message_type == MessageType.READ else "write"
            raise RegisterError(
                f"Register {operation} error at {descriptor.name} ({descriptor.address})"
            )

        if reply.address != descriptor.address:
            raise MalformedResponseError(
                f"Address mismatch: expected {descriptor.address}, got {reply.address}"
            )
        if reply.message_type != message_type:
            raise MalformedResponseError(
                f"Message type mismatch: expected {message_type.name}, "
                f"got {reply.message_type!r}"
            )
        if reply.payload_type != descriptor.payload_type:
            raise MalformedResponseError(
                f"Payload type mismatch at {descriptor.name}: expected "
                f"{descriptor.payload_type.name}, got {reply.payload_type!r}"
            )

        decoded = decode_message(self.registers, reply)
        logger.debug(f"Reply from {descriptor.name}: {decoded.value!r}")
        return decoded.value
