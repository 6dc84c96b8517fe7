"""Unit tests for the InputExpander simulator and simulator transport."""

import pytest

from harp_inputexpander.codec import decode_message
from harp_inputexpander.messages import HarpMessage, MessageType, PayloadType
from harp_inputexpander.registers import (
    AuxiliaryEdge,
    AuxiliaryInput,
    DigitalInEdgePayload,
    DigitalInput,
    EncoderModeConfig,
    EncoderModePayload,
    EncoderSampleRate,
    RegAddr,
    SchemaRevision,
    build_register_map,
)
from harp_inputexpander.simulator import InputExpanderSimulator
from harp_inputexpander.transport import SimulatorTransport

# =============================================================================
# Simulator Tests
# =============================================================================


class TestSimulatorState:
    """Tests for the simulated register bank."""

    def test_reset_values(self, simulator):
        assert simulator.get_value(RegAddr.AUX_IN_FALLING_EDGE) == (
            AuxiliaryInput.AUX0 | AuxiliaryInput.AUX1
        )
        assert simulator.get_value(RegAddr.DIGITAL_IN_RISING_EDGE) == DigitalInput(0x3FF)
        assert simulator.get_value(RegAddr.ENCODER_MODE) == EncoderModePayload(
            EncoderSampleRate.DISABLED, EncoderModeConfig.POSITION
        )
        assert simulator.memory[RegAddr.DIGITAL_IN_PORT] == bytes(4)

    def test_reset_values_combined_revision(self):
        sim = InputExpanderSimulator(
            build_register_map(SchemaRevision.COMBINED_EDGE_ENABLES)
        )
        assert sim.get_value(33) == AuxiliaryEdge(0x33)
        assert sim.get_value(36) == DigitalInEdgePayload(
            DigitalInput(0x3FF), DigitalInput(0x3FF)
        )

    def test_reset_restores_defaults(self, simulator):
        simulator.set_value(RegAddr.ENCODER_DATA, 1234)
        simulator.reset()
        assert simulator.get_value(RegAddr.ENCODER_DATA) == 0

    def test_timestamp_advances(self, simulator):
        first = simulator.timestamp
        assert first >= 0.0
        assert simulator.timestamp >= first


class TestSimulatorCommands:
    """Tests for command processing and error replies."""

    async def test_read(self, simulator):
        simulator.set_value(RegAddr.ENCODER_DATA, -2)
        reply = await simulator.process_command(
            HarpMessage(40, MessageType.READ, PayloadType.S16)
        )
        assert not reply.is_error
        assert reply.payload == b"\xfe\xff"
        assert reply.timestamp is not None

    async def test_write(self, simulator):
        command = HarpMessage(38, MessageType.WRITE, PayloadType.U8, b"\x01")
        reply = await simulator.process_command(command)
        assert not reply.is_error
        assert reply.payload == b"\x01"
        assert simulator.memory[38] == b"\x01"

    @pytest.mark.parametrize(
        "command",
        [
            HarpMessage(99, MessageType.READ, PayloadType.U8),
            HarpMessage(38, MessageType.READ, PayloadType.U16),
            HarpMessage(40, MessageType.WRITE, PayloadType.S16, b"\x01\x00"),
            HarpMessage(38, MessageType.WRITE, PayloadType.U8, b"\x01\x00"),
            HarpMessage(38, MessageType.EVENT, PayloadType.U8, b"\x01"),
        ],
        ids=[
            "unknown-address",
            "payload-type-mismatch",
            "read-only",
            "bad-payload-length",
            "event-command",
        ],
    )
    async def test_error_reply(self, simulator, command):
        before = dict(simulator.memory)
        reply = await simulator.process_command(command)
        assert reply.is_error
        assert reply.address == command.address
        assert reply.message_type == command.message_type
        assert simulator.memory == before

    def test_emit_event(self, simulator):
        sent = []
        simulator.set_send_callback(sent.append)
        message = simulator.emit_event(RegAddr.ENCODER_DATA, 300)

        assert sent == [message]
        assert message.message_type == MessageType.EVENT
        assert message.timestamp is not None
        assert simulator.get_value(RegAddr.ENCODER_DATA) == 300

        decoded = decode_message(simulator.registers, message)
        assert decoded.payload_value == 300

    def test_emit_event_without_callback(self, simulator):
        message = simulator.emit_event(RegAddr.AUX_IN_PORT, AuxiliaryInput.AUX1)
        assert message.payload == b"\x02"


# =============================================================================
# Transport Tests
# =============================================================================


class TestSimulatorTransport:
    """Tests for the asyncio simulator transport."""

    async def test_context_manager(self, simulator):
        transport = SimulatorTransport(simulator)
        assert not transport.connected
        async with transport:
            assert transport.connected
        assert not transport.connected

    async def test_send_requires_connection(self, simulator):
        transport = SimulatorTransport(simulator)
        with pytest.raises(RuntimeError, match="Not connected"):
            await transport.send(HarpMessage(38, MessageType.READ, PayloadType.U8))

    async def test_read_event(self, transport, simulator):
        message = simulator.emit_event(RegAddr.ENCODER_DATA, 5)
        assert await transport.read_event(timeout=0.1) == message

    async def test_read_event_timeout(self, transport):
        with pytest.raises(TimeoutError):
            await transport.read_event(timeout=0.01)

    async def test_disconnect_detaches_events(self, simulator):
        async with SimulatorTransport(simulator) as transport:
            pass
        simulator.emit_event(RegAddr.ENCODER_DATA, 5)
        with pytest.raises(RuntimeError):
            await transport.read_event(timeout=0.01)
