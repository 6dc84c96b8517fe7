"""InputExpander register I/O classes for FastCS attributes.

This module contains the AttributeIO classes that handle reading and writing
InputExpander registers. Attributes hold the integer value of a register, or
of one field for record registers (DIGITAL_IN_PORT, ENCODER_MODE, ...).
"""

import dataclasses
import logging
from dataclasses import dataclass
from typing import Any

from fastcs.attributes import AttributeIO, AttributeIORef, AttrRW
from fastcs.util import ONCE

from .protocol import InputExpanderProtocol

logger = logging.getLogger(__name__)


@dataclass
class InputExpanderRegisterIORef(AttributeIORef):
    """Reference for InputExpander register IO operations.

    Attributes:
        address: Register address
        field: Record field name, None for scalar registers
        update_period: Poll period in seconds (default: read once)
    """

    address: int = 0
    field: str | None = None
    update_period: float | None = ONCE


def attribute_value(value: Any, field: str | None) -> int:
    """Integer value of a decoded register, or of one of its fields."""
    if field is not None:
        value = getattr(value, field)
    return int(value)


class InputExpanderRegisterIO(AttributeIO[int, InputExpanderRegisterIORef]):
    """Handles reading from and writing to InputExpander registers.

    This class bridges FastCS attributes with the InputExpander command
    protocol. Values pass through the register codec in both directions.
    """

    def __init__(self, protocol: InputExpanderProtocol | None = None):
        """Initialize register IO handler.

        Args:
            protocol: InputExpanderProtocol instance (can be None initially)
        """
        super().__init__()
        self._protocol = protocol

    def set_protocol(self, protocol: InputExpanderProtocol | None) -> None:
        """Set the protocol instance for register I/O operations."""
        self._protocol = protocol

    async def update(self, attr):
        """Read value from the register and update attribute.

        Args:
            attr: The attribute to update
        """
        if not self._protocol:
            return

        address = attr.io_ref.address
        try:
            value = await self._protocol.read_register(address)
            await attr.update(attr.dtype(attribute_value(value, attr.io_ref.field)))
        except Exception as e:
            logger.error(f"Error reading register {address}: {e}")

    async def send(self, attr, value):
        """Write attribute value to the register.

        Record fields are written with a read-modify-write of the whole
        register, leaving the other fields unchanged.

        Args:
            attr: The attribute being written
            value: The value to write
        """
        if not self._protocol:
            return

        address = attr.io_ref.address
        field = attr.io_ref.field
        try:
            if field is None:
                new_value = int(value)
            else:
                current = await self._protocol.read_register(address)
                field_type = type(getattr(current, field))
                new_value = dataclasses.replace(
                    current, **{field: field_type(int(value))}
                )

            await self._protocol.write_register(address, new_value)

            # Read back to reflect the stored hardware state
            if isinstance(attr, AttrRW):
                await self.update(attr)

        except Exception as e:
            logger.error(f"Error writing register {address}: {e}")
