"""Pytest configuration for harp-inputexpander tests."""

import pytest

from harp_inputexpander.protocol import InputExpanderProtocol
from harp_inputexpander.registers import SchemaRevision, build_register_map
from harp_inputexpander.simulator import InputExpanderSimulator
from harp_inputexpander.transport import SimulatorTransport


@pytest.fixture
def registers():
    """Register map of the default (packed encoder mode) revision."""
    return build_register_map(SchemaRevision.PACKED_ENCODER_MODE)


@pytest.fixture
def simulator(registers):
    return InputExpanderSimulator(registers)


@pytest.fixture
async def transport(simulator):
    """Connected transport to the simulator."""
    async with SimulatorTransport(simulator, name="sim://test") as transport:
        yield transport


@pytest.fixture
async def protocol(transport, registers):
    return InputExpanderProtocol(transport, registers)
