"""InputExpander hardware simulator for testing without real hardware.

Simulates the register side of the device firmware: answers Read and Write
commands from an in-memory register bank, rejects commands the firmware would
reject with an error reply, and can push Event messages to the host.
"""

import logging
import time
from collections.abc import Callable
from typing import Any

from .codec import create_message, decode_payload, encode_payload
from .errors import CodecError
from .messages import HarpMessage, MessageType
from .registers import (
    AuxiliaryEdge,
    AuxiliaryInput,
    DigitalInEdgePayload,
    DigitalInput,
    RegisterMap,
)

logger = logging.getLogger(__name__)

_ALL_AUX = AuxiliaryInput.AUX0 | AuxiliaryInput.AUX1
_ALL_DIGITAL = DigitalInput(0x3FF)

# Firmware reset values, by register name. Registers not listed reset to zero.
RESET_VALUES: dict[str, Any] = {
    "AUX_IN_ENABLE_RISING_EDGE": _ALL_AUX,
    "AUX_IN_ENABLE_FALLING_EDGE": _ALL_AUX,
    "AUX_IN_RISING_EDGE": _ALL_AUX,
    "AUX_IN_FALLING_EDGE": _ALL_AUX,
    "DIGITAL_IN_PORT_ENABLE_RISING_EDGE": _ALL_DIGITAL,
    "DIGITAL_IN_PORT_ENABLE_FALLING_EDGE": _ALL_DIGITAL,
    "DIGITAL_IN_RISING_EDGE": _ALL_DIGITAL,
    "DIGITAL_IN_FALLING_EDGE": _ALL_DIGITAL,
    "AUX_IN_EDGE_ENABLE": AuxiliaryEdge.AUX0_RISING
    | AuxiliaryEdge.AUX1_RISING
    | AuxiliaryEdge.AUX0_FALLING
    | AuxiliaryEdge.AUX1_FALLING,
    "DIGITAL_IN_EDGE_ENABLE": DigitalInEdgePayload(_ALL_DIGITAL, _ALL_DIGITAL),
}


class InputExpanderSimulator:
    """Software simulator for InputExpander hardware.

    Maintains simulated register payloads for one schema revision and
    timestamps every reply with the seconds elapsed since construction.
    """

    def __init__(self, registers: RegisterMap):
        """Initialize simulator with firmware reset values.

        Args:
            registers: Register map of the simulated firmware
        """
        self.registers = registers
        self.memory: dict[int, bytes] = {}
        self._start = time.monotonic()
        self._send_callback: Callable[[HarpMessage], None] | None = None
        self.reset()

    @property
    def timestamp(self) -> float:
        """Device time in seconds."""
        return time.monotonic() - self._start

    def set_send_callback(
        self, callback: Callable[[HarpMessage], None] | None
    ) -> None:
        """Set callback function for sending event messages to host.

        Args:
            callback: Function to call with event messages, or None to detach
        """
        self._send_callback = callback

    def reset(self) -> None:
        """Reset all registers to their firmware defaults."""
        self.memory = {
            address: bytes(descriptor.size)
            for address, descriptor in self.registers.items()
        }
        for name, value in RESET_VALUES.items():
            if name in self.registers.names:
                self.set_value(self.registers.resolve_name(name).address, value)

    def get_value(self, address: int) -> Any:
        """Decode the current value of a simulated register."""
        return decode_payload(self.registers.resolve(address), self.memory[address])

    def set_value(self, address: int, value: Any) -> None:
        """Set a simulated register without sending an event."""
        descriptor = self.registers.resolve(address)
        self.memory[address] = encode_payload(descriptor, value)

    def emit_event(self, address: int, value: Any) -> HarpMessage:
        """Set a register and report the change to the host as an Event.

        Args:
            address: Register address
            value: New register value

        Returns:
            The event message sent
        """
        descriptor = self.registers.resolve(address)
        message = create_message(
            descriptor, MessageType.EVENT, value, timestamp=self.timestamp
        )
        self.memory[address] = message.payload
        logger.debug(f"Simulator: Event {descriptor.name} = {value!r}")

        if self._send_callback:
            self._send_callback(message)
        return message

    async def process_command(self, command: HarpMessage) -> HarpMessage:
        """Process a command and return the reply.

        Args:
            command: Read or Write message from the host

        Returns:
            Reply message, with the error flag set if the command is rejected
        """
        descriptor = self.registers.get(command.address)
        if descriptor is None:
            logger.warning(f"Simulator: Invalid address {command.address}")
            return self._error_reply(command)

        if command.payload_type != descriptor.payload_type:
            logger.warning(
                f"Simulator: Payload type {command.payload_type!r} "
                f"doesn't match {descriptor.name}"
            )
            return self._error_reply(command)

        if command.message_type == MessageType.READ:
            logger.debug(f"Simulator: Read {descriptor.name}")
            return self._reply(command, self.memory[command.address])

        if command.message_type == MessageType.WRITE:
            if not descriptor.writable:
                logger.warning(f"Simulator: Write to read-only {descriptor.name}")
                return self._error_reply(command)
            try:
                value = decode_payload(descriptor, command.payload)
            except CodecError as e:
                logger.warning(f"Simulator: Invalid write to {descriptor.name}: {e}")
                return self._error_reply(command)

            self.memory[command.address] = command.payload
            logger.debug(f"Simulator: Write {descriptor.name} = {value!r}")
            return self._reply(command, command.payload)

        # Events only travel from device to host
        logger.warning(f"Simulator: Unexpected {command.message_type!r} command")
        return self._error_reply(command)

    def _reply(self, command: HarpMessage, payload: bytes) -> HarpMessage:
        return HarpMessage(
            address=command.address,
            message_type=command.message_type,
            payload_type=command.payload_type,
            payload=payload,
            timestamp=self.timestamp,
        )

    def _error_reply(self, command: HarpMessage) -> HarpMessage:
        return HarpMessage(
            address=command.address,
            message_type=command.message_type,
            payload_type=command.payload_type,
            timestamp=self.timestamp,
            is_error=True,
        )
