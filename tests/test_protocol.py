"""Unit tests for the InputExpander command protocol.

Most tests run against the simulator; reply validation tests use a scripted
transport returning hand-made replies.
"""

import pytest

from harp_inputexpander.errors import UnknownRegisterError, UnrepresentableValueError
from harp_inputexpander.messages import (
    HarpMessage,
    MessageType,
    PayloadType,
    Timestamped,
)
from harp_inputexpander.protocol import (
    InputExpanderProtocol,
    MalformedResponseError,
    RegisterError,
)
from harp_inputexpander.registers import (
    AuxiliaryInput,
    DigitalInPortPayload,
    DigitalInput,
    EncoderModeConfig,
    EncoderModePayload,
    EncoderSampleRate,
    InputSamplingMode,
    RegAddr,
)


class ScriptedTransport:
    """Transport returning a fixed reply and recording commands."""

    def __init__(self, reply: HarpMessage):
        self.reply = reply
        self.sent: list[HarpMessage] = []
        self.connected = True

    async def connect(self) -> None:
        pass

    async def disconnect(self) -> None:
        pass

    async def send(self, message: HarpMessage) -> HarpMessage:
        self.sent.append(message)
        return self.reply

    async def read_event(self, timeout: float | None = None) -> HarpMessage:
        raise TimeoutError


# =============================================================================
# Read Tests
# =============================================================================


class TestRead:
    """Tests for register reads against the simulator."""

    async def test_read_reset_values(self, protocol):
        assert await protocol.read_register(RegAddr.AUX_IN_RISING_EDGE) == (
            AuxiliaryInput.AUX0 | AuxiliaryInput.AUX1
        )
        assert await protocol.read_register(RegAddr.DIGITAL_IN_FALLING_EDGE) == 0x3FF
        assert await protocol.read_register(RegAddr.ENCODER_DATA) == 0

    async def test_read_record(self, protocol, simulator):
        value = DigitalInPortPayload(DigitalInput.DI2, DigitalInput.DI2)
        simulator.set_value(RegAddr.DIGITAL_IN_PORT, value)
        assert await protocol.read_register(RegAddr.DIGITAL_IN_PORT) == value

    async def test_read_timestamped(self, protocol, simulator):
        simulator.set_value(RegAddr.ENCODER_DATA, -42)
        value = await protocol.read_register_timestamped(RegAddr.ENCODER_DATA)
        assert isinstance(value, Timestamped)
        assert value.value == -42
        assert value.seconds >= 0.0

    async def test_read_unknown_address(self, protocol):
        with pytest.raises(UnknownRegisterError):
            await protocol.read_register(99)


# =============================================================================
# Write Tests
# =============================================================================


class TestWrite:
    """Tests for register writes against the simulator."""

    async def test_write_enum(self, protocol, simulator):
        result = await protocol.write_register(
            RegAddr.INPUT_SAMPLING, InputSamplingMode.ON_POLLING_1KHZ
        )
        assert result == InputSamplingMode.ON_POLLING_1KHZ
        assert simulator.memory[RegAddr.INPUT_SAMPLING] == b"\x01"

    async def test_write_packed_with_verify(self, protocol, simulator):
        value = EncoderModePayload(
            EncoderSampleRate.SAMPLE_RATE_1000HZ, EncoderModeConfig.DISPLACEMENT
        )
        result = await protocol.write_register(RegAddr.ENCODER_MODE, value, verify=True)
        assert result == value
        assert simulator.memory[RegAddr.ENCODER_MODE] == b"\x0b"

    async def test_write_read_only_register(self, registers):
        transport = ScriptedTransport(
            HarpMessage(40, MessageType.WRITE, PayloadType.S16, b"\x00\x00")
        )
        protocol = InputExpanderProtocol(transport, registers)
        with pytest.raises(ValueError, match="read-only"):
            await protocol.write_register(RegAddr.ENCODER_DATA, 1)
        assert transport.sent == []

    async def test_write_unrepresentable_not_sent(self, registers):
        transport = ScriptedTransport(
            HarpMessage(39, MessageType.WRITE, PayloadType.U8, b"\x00")
        )
        protocol = InputExpanderProtocol(transport, registers)
        value = EncoderModePayload(EncoderSampleRate(9), EncoderModeConfig.POSITION)
        with pytest.raises(UnrepresentableValueError):
            await protocol.write_register(RegAddr.ENCODER_MODE, value)
        assert transport.sent == []

    async def test_write_command_envelope(self, registers):
        transport = ScriptedTransport(
            HarpMessage(36, MessageType.WRITE, PayloadType.U16, b"\x05\x00", 1.0)
        )
        protocol = InputExpanderProtocol(transport, registers)
        await protocol.write_register(
            RegAddr.DIGITAL_IN_RISING_EDGE, DigitalInput.DI0 | DigitalInput.DI2
        )
        assert transport.sent == [
            HarpMessage(36, MessageType.WRITE, PayloadType.U16, b"\x05\x00")
        ]


# =============================================================================
# Reply Validation Tests
# =============================================================================


class TestReplyValidation:
    """Tests for reply checking with scripted replies."""

    async def test_error_reply(self, registers):
        reply = HarpMessage(38, MessageType.READ, PayloadType.U8, is_error=True)
        protocol = InputExpanderProtocol(ScriptedTransport(reply), registers)
        with pytest.raises(RegisterError, match="read error at INPUT_SAMPLING"):
            await protocol.read_register(RegAddr.INPUT_SAMPLING)

    async def test_write_error_reply(self, registers):
        reply = HarpMessage(38, MessageType.WRITE, PayloadType.U8, is_error=True)
        protocol = InputExpanderProtocol(ScriptedTransport(reply), registers)
        with pytest.raises(RegisterError, match="write error"):
            await protocol.write_register(RegAddr.INPUT_SAMPLING, 0)

    async def test_address_mismatch(self, registers):
        reply = HarpMessage(41, MessageType.READ, PayloadType.U8, b"\x00", 1.0)
        protocol = InputExpanderProtocol(ScriptedTransport(reply), registers)
        with pytest.raises(MalformedResponseError, match="Address mismatch"):
            await protocol.read_register(RegAddr.INPUT_SAMPLING)

    async def test_message_type_mismatch(self, registers):
        reply = HarpMessage(38, MessageType.EVENT, PayloadType.U8, b"\x00", 1.0)
        protocol = InputExpanderProtocol(ScriptedTransport(reply), registers)
        with pytest.raises(MalformedResponseError, match="Message type mismatch"):
            await protocol.read_register(RegAddr.INPUT_SAMPLING)

    async def test_payload_type_mismatch(self, registers):
        reply = HarpMessage(38, MessageType.READ, PayloadType.U16, b"\x00\x00", 1.0)
        protocol = InputExpanderProtocol(ScriptedTransport(reply), registers)
        with pytest.raises(MalformedResponseError, match="Payload type mismatch"):
            await protocol.read_register(RegAddr.INPUT_SAMPLING)

    async def test_missing_timestamp(self, registers):
        reply = HarpMessage(38, MessageType.READ, PayloadType.U8, b"\x02")
        protocol = InputExpanderProtocol(ScriptedTransport(reply), registers)
        assert await protocol.read_register(RegAddr.INPUT_SAMPLING) == 2
        with pytest.raises(MalformedResponseError, match="no timestamp"):
            await protocol.read_register_timestamped(RegAddr.INPUT_SAMPLING)

    async def test_undefined_message_type(self, registers):
        reply = HarpMessage(38, 9, PayloadType.U8, b"\x00", 1.0)
        protocol = InputExpanderProtocol(ScriptedTransport(reply), registers)
        with pytest.raises(MalformedResponseError, match="Message type mismatch"):
            await protocol.read_register(RegAddr.INPUT_SAMPLING)

    async def test_undefined_payload_type(self, registers):
        reply = HarpMessage(38, MessageType.READ, 0x03, b"\x00", 1.0)
        protocol = InputExpanderProtocol(ScriptedTransport(reply), registers)
        with pytest.raises(MalformedResponseError, match="Payload type mismatch"):
            await protocol.read_register(RegAddr.INPUT_SAMPLING)
