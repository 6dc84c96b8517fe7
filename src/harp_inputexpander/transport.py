"""Message transports for InputExpander communication.

The register codec and command protocol work with any object satisfying the
MessageTransport protocol: it sends one command and returns the matching
reply, and hands out device events as they arrive. Framing, checksums and the
serial link belong to the transport implementation.

SimulatorTransport connects to an in-process InputExpanderSimulator, for
testing and development without hardware.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Protocol

from .messages import HarpMessage

if TYPE_CHECKING:
    from .simulator import InputExpanderSimulator

logger = logging.getLogger(__name__)


class MessageTransport(Protocol):
    """Structural type of the transport the protocol layer plugs into."""

    @property
    def connected(self) -> bool: ...

    async def connect(self) -> None: ...

    async def disconnect(self) -> None: ...

    async def send(self, message: HarpMessage) -> HarpMessage:
        """Send a command and return the device reply."""
        ...

    async def read_event(self, timeout: float | None = None) -> HarpMessage:
        """Wait for the next device event.

        Raises:
            TimeoutError: If no event arrives within timeout
        """
        ...


class SimulatorTransport:
    """Asyncio transport to an in-process InputExpanderSimulator.

    Commands are answered synchronously by the simulator; events pushed by the
    simulator are queued until read with read_event().
    """

    TIMEOUT = 1.0

    def __init__(self, simulator: "InputExpanderSimulator", name: str = "sim"):
        """Initialize transport for given simulator.

        Args:
            simulator: Simulated device
            name: Name used in log messages
        """
        self.name = name
        self._simulator = simulator
        self._event_queue: asyncio.Queue[HarpMessage] | None = None
        self._connected = False

    @property
    def simulator(self) -> "InputExpanderSimulator":
        return self._simulator

    async def connect(self) -> None:
        """Attach to the simulator and start receiving its events."""
        if self._connected:
            logger.warning(f"Already connected to {self.name}")
            return

        logger.info(f"Starting InputExpander simulator for {self.name}")
        self._event_queue = asyncio.Queue()

        def send_event(message: HarpMessage):
            if self._event_queue is not None:
                self._event_queue.put_nowait(message)

        self._simulator.set_send_callback(send_event)
        self._connected = True
        logger.info(f"Simulator ready for {self.name}")

    async def disconnect(self) -> None:
        """Detach from the simulator."""
        if not self._connected:
            return

        logger.info(f"Disconnecting from {self.name}")
        self._simulator.set_send_callback(None)
        self._event_queue = None
        self._connected = False

    @property
    def connected(self) -> bool:
        """Check if transport is connected."""
        return self._connected

    async def send(self, message: HarpMessage) -> HarpMessage:
        """Send a command to the simulator and return its reply.

        Raises:
            RuntimeError: If not connected
        """
        if not self.connected:
            raise RuntimeError(f"Not connected to {self.name}")

        logger.debug(f"TX: {message}")
        reply = await self._simulator.process_command(message)
        logger.debug(f"RX: {reply}")
        return reply

    async def read_event(self, timeout: float | None = None) -> HarpMessage:
        """Read the next event pushed by the simulator.

        Args:
            timeout: Read timeout in seconds (uses default if None)

        Raises:
            RuntimeError: If not connected
            TimeoutError: If no event arrives in time
        """
        if not self.connected or self._event_queue is None:
            raise RuntimeError(f"Not connected to {self.name}")

        if timeout is None:
            timeout = self.TIMEOUT

        message = await asyncio.wait_for(self._event_queue.get(), timeout=timeout)
        logger.debug(f"EVT: {message}")
        return message

    async def __aenter__(self):
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.disconnect()
        return False
