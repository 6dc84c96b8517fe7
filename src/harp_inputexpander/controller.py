"""FastCS controller for InputExpander hardware.

Exposes every register of the selected schema revision as an attribute:

- Scalar registers: one integer attribute named after the register
  (e.g. ``input_sampling``, ``encoder_data``)
- Record registers: one attribute per field
  (e.g. ``digital_in_port_state``, ``encoder_mode_sample_rate``)

Writable registers become AttrRW, the others AttrR. Event-capable registers
(auxiliary inputs, digital inputs, encoder) are kept current from device
events.
"""

import asyncio
import logging

from fastcs.attributes import AttrR, AttrRW
from fastcs.controllers import Controller
from fastcs.datatypes import Bool, Int, String
from fastcs.methods import command

from .codec import DecodedMessage
from .events import EventHandler
from .protocol import InputExpanderProtocol
from .register_io import (
    InputExpanderRegisterIO,
    InputExpanderRegisterIORef,
    attribute_value,
)
from .registers import (
    DEFAULT_REVISION,
    RegisterDescriptor,
    RegisterMap,
    SchemaRevision,
    build_register_map,
)
from .simulator import InputExpanderSimulator
from .transport import MessageTransport, SimulatorTransport

logger = logging.getLogger(__name__)

SIM_PREFIX = "sim://"
EVENT_POLL_TIMEOUT = 0.1


class InputExpanderController(Controller):
    """Top-level controller for InputExpander hardware.

    Attributes:
        connected: Connection status
        status_msg: Human-readable status message
        <register>[_<field>]: One attribute per register or record field
    """

    def __init__(
        self,
        port: str,
        revision: SchemaRevision = DEFAULT_REVISION,
        transport: MessageTransport | None = None,
    ):
        """Initialize InputExpander controller.

        Args:
            port: Device name; 'sim://<name>' starts the built-in simulator
            revision: Register layout of the device firmware
            transport: Transport to use instead of one created from port
        """
        self._port = port
        self._registers = build_register_map(revision)
        self._transport = transport
        self._protocol: InputExpanderProtocol | None = None
        self._event_handler = EventHandler(self._registers)
        self._event_task: asyncio.Task | None = None
        self._callbacks_registered = False
        self._register_attrs: dict[int, list[tuple[str | None, AttrR]]] = {}

        # Create IO handler (will be set to actual protocol after connect)
        self._register_io = InputExpanderRegisterIO(None)

        super().__init__(ios=[self._register_io])

        # Connection status (no IO, updated manually)
        self.connected = AttrR(Bool())

        # Status message (no IO)
        self.status_msg = AttrR(String())

        for descriptor in self._registers.values():
            self._add_register_attributes(descriptor)

    @property
    def registers(self) -> RegisterMap:
        return self._registers

    @property
    def transport(self) -> MessageTransport | None:
        return self._transport

    def _add_register_attributes(self, descriptor: RegisterDescriptor) -> None:
        """Create the attribute(s) for one register."""
        attr_cls = AttrRW if descriptor.writable else AttrR
        prefix = descriptor.name.lower()

        for field in descriptor.field_names or (None,):
            io_ref = InputExpanderRegisterIORef(address=descriptor.address, field=field)
            attr = attr_cls(Int(), io_ref=io_ref, description=descriptor.description)
            name = prefix if field is None else f"{prefix}_{field}"
            setattr(self, name, attr)
            self._register_attrs.setdefault(descriptor.address, []).append(
                (field, attr)
            )

    def _create_transport(self) -> MessageTransport:
        if self._port.startswith(SIM_PREFIX):
            return SimulatorTransport(
                InputExpanderSimulator(self._registers), name=self._port
            )
        raise ValueError(
            f"No transport available for {self._port!r}: "
            f"use a {SIM_PREFIX}<name> port or pass a transport"
        )

    async def connect(self) -> None:
        """Connect to the InputExpander and start monitoring events."""
        try:
            if self._transport is None:
                self._transport = self._create_transport()
            await self._transport.connect()
            self._protocol = InputExpanderProtocol(self._transport, self._registers)

            # Update the IO handler with the actual protocol
            self._register_io.set_protocol(self._protocol)

            await self.connected.update(True)

            # Setup event callbacks (only once)
            if not self._callbacks_registered:
                self._setup_event_callbacks()
                self._callbacks_registered = True

            self._event_task = asyncio.create_task(self._monitor_events())

            logger.info(
                f"Connected to InputExpander on {self._port} "
                f"({self._registers.revision.value})"
            )
            await self.status_msg.update(f"Connected to {self._port}")

        except Exception as e:
            logger.error(f"Failed to connect: {e}")
            await self.status_msg.update(f"Connection failed: {e}")
            raise

    async def disconnect(self) -> None:
        """Disconnect from the InputExpander."""
        if self._event_task:
            self._event_task.cancel()
            try:
                await self._event_task
            except asyncio.CancelledError:
                pass
            self._event_task = None

        if self._transport:
            await self._transport.disconnect()
        self._protocol = None
        self._register_io.set_protocol(None)

        await self.connected.update(False)
        logger.info("Disconnected from InputExpander")
        await self.status_msg.update("Disconnected")

    def _setup_event_callbacks(self) -> None:
        """Route events of every event-capable register to its attributes."""
        for address, descriptor in self._registers.items():
            if descriptor.emits_events:
                self._event_handler.on_register(address)(self._update_from_event)

    async def _update_from_event(self, event: DecodedMessage) -> None:
        for field, attr in self._register_attrs.get(event.address, []):
            await attr.update(attr.dtype(attribute_value(event.payload_value, field)))

    async def _monitor_events(self) -> None:
        """Background task to monitor for event messages."""
        try:
            while self._transport and self._transport.connected:
                try:
                    message = await self._transport.read_event(
                        timeout=EVENT_POLL_TIMEOUT
                    )
                    if not await self._event_handler.handle_message(message):
                        logger.warning(f"Unexpected message: {message!r}")

                except TimeoutError:
                    # No event available, continue
                    await asyncio.sleep(0.01)
                except Exception as e:
                    logger.error(f"Error handling event: {e}")
                    await asyncio.sleep(0.1)
        except asyncio.CancelledError:
            logger.debug("Event monitoring task cancelled")
            raise

    @command()
    async def refresh(self) -> None:
        """Read every readable register and update its attributes."""
        if not self._protocol:
            raise RuntimeError("Not connected to InputExpander hardware")

        for address, attrs in self._register_attrs.items():
            if self._registers[address].readable:
                for _, attr in attrs:
                    await self._register_io.update(attr)
        await self.status_msg.update("Registers refreshed")
