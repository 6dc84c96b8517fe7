"""Event message handling for InputExpander registers.

The device sends Event messages when an event-capable register changes:

- AUX_IN_PORT (32): auxiliary input state and changed bits
- DIGITAL_IN_PORT (35): digital input state and changed mask
- ENCODER_DATA (40): rotary encoder reading at the configured sample rate

Events are decoded with the register codec and dispatched to the callbacks
registered for the event's address. Every event carries a timestamp, so the
callbacks receive a Timestamped value.
"""

import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable

from .codec import DecodedMessage, decode_message
from .messages import HarpMessage, MessageType
from .registers import RegisterMap

logger = logging.getLogger(__name__)

EventCallback = Callable[[DecodedMessage], Awaitable[None]]


class EventHandler:
    """Handles asynchronous event messages from the InputExpander.

    Decodes Event messages and dispatches them to callbacks registered per
    register address.
    """

    def __init__(self, registers: RegisterMap):
        """Initialize event handler.

        Args:
            registers: Register map used to decode events
        """
        self.registers = registers
        self._callbacks: defaultdict[int, list[EventCallback]] = defaultdict(list)

    def clear_callbacks(self) -> None:
        """Remove all registered callbacks."""
        self._callbacks.clear()

    def on_register(self, address: int) -> Callable[[EventCallback], EventCallback]:
        """Register a callback for events from one register.

        Usage::

            @handler.on_register(RegAddr.ENCODER_DATA)
            async def on_encoder(event: DecodedMessage):
                print(event.value.value, event.value.seconds)

        Args:
            address: Register address

        Returns:
            Decorator registering the callback

        Raises:
            UnknownRegisterError: If address is not in the register map
        """
        descriptor = self.registers.resolve(address)
        if not descriptor.emits_events:
            logger.warning(f"Register {descriptor.name} does not emit events")

        def decorator(callback: EventCallback) -> EventCallback:
            self._callbacks[address].append(callback)
            return callback

        return decorator

    async def handle_message(self, message: HarpMessage) -> bool:
        """Decode and dispatch an event message.

        Args:
            message: Message received from the device

        Returns:
            True if message was an event, False otherwise

        Raises:
            UnknownRegisterError: If event address is not in the register map
            MalformedPayloadError: If event payload doesn't match the register
        """
        if message.message_type != MessageType.EVENT or message.is_error:
            return False

        event = decode_message(self.registers, message)
        logger.debug(f"Event {event.register.name}: {event.value!r}")

        await self._dispatch(event)
        return True

    async def _dispatch(self, event: DecodedMessage) -> None:
        """Call all callbacks for the event's register."""
        for callback in self._callbacks.get(event.address, []):
            try:
                await callback(event)
            except Exception as e:
                logger.error(
                    f"Error in event callback for {event.register.name}: {e}",
                    exc_info=True,
                )

