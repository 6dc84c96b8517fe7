"""Top level API.

This package provides the register codec and command protocol of the Harp
InputExpander (WhoAmI 1106), an input/encoder expander board.

- Register definitions for the three published schema revisions
- Bit-exact payload codec (flags, enums, packed bytes, records, s16)
- Read/write command protocol over a pluggable message transport
- Event dispatch by register address
- Hardware simulator and FastCS controller

Example usage::

    from harp_inputexpander import (
        RegAddr,
        build_register_map,
        decode_message,
        HarpMessage,
        MessageType,
        PayloadType,
    )

    registers = build_register_map()
    message = HarpMessage(
        RegAddr.DIGITAL_IN_PORT,
        MessageType.EVENT,
        PayloadType.U16,
        bytes([0x03, 0x00, 0x01, 0x00]),
        timestamp=12.5,
    )
    decoded = decode_message(registers, message)
    print(decoded.register.name, decoded.value)

.. data:: __version__
    :type: str

    Version number as calculated by https://github.com/pypa/setuptools_scm
"""

from ._version import __version__
from .codec import (
    DecodedMessage,
    create_message,
    decode_message,
    decode_payload,
    encode_payload,
    read_request,
)
from .controller import InputExpanderController
from .errors import (
    CodecError,
    MalformedPayloadError,
    UnknownRegisterError,
    UnrepresentableValueError,
)
from .events import EventHandler
from .messages import HarpMessage, MessageType, PayloadType, Timestamped
from .protocol import (
    InputExpanderProtocol,
    MalformedResponseError,
    ProtocolError,
    RegisterError,
)
from .register_io import InputExpanderRegisterIO, InputExpanderRegisterIORef
from .registers import (
    DEFAULT_REVISION,
    AuxiliaryEdge,
    AuxiliaryInput,
    DigitalInEdgePayload,
    DigitalInPortPayload,
    DigitalInput,
    EncoderModeConfig,
    EncoderModePayload,
    EncoderSampleRate,
    EncoderSamplingMode,
    ExpansionBoardType,
    InputSamplingMode,
    RegAddr,
    RegisterAccess,
    RegisterDescriptor,
    RegisterMap,
    SchemaRevision,
    build_register_map,
)
from .simulator import InputExpanderSimulator
from .transport import MessageTransport, SimulatorTransport

__all__ = [
    "__version__",
    # Messages
    "HarpMessage",
    "MessageType",
    "PayloadType",
    "Timestamped",
    # Register definitions
    "RegisterDescriptor",
    "RegisterAccess",
    "RegisterMap",
    "SchemaRevision",
    "DEFAULT_REVISION",
    "RegAddr",
    "build_register_map",
    # Register values
    "AuxiliaryInput",
    "AuxiliaryEdge",
    "DigitalInput",
    "InputSamplingMode",
    "EncoderSamplingMode",
    "EncoderSampleRate",
    "EncoderModeConfig",
    "ExpansionBoardType",
    "DigitalInPortPayload",
    "DigitalInEdgePayload",
    "EncoderModePayload",
    # Codec
    "DecodedMessage",
    "decode_payload",
    "encode_payload",
    "decode_message",
    "create_message",
    "read_request",
    "CodecError",
    "MalformedPayloadError",
    "UnknownRegisterError",
    "UnrepresentableValueError",
    # Transport and Protocol
    "MessageTransport",
    "SimulatorTransport",
    "InputExpanderProtocol",
    "ProtocolError",
    "MalformedResponseError",
    "RegisterError",
    # Events
    "EventHandler",
    # Simulator
    "InputExpanderSimulator",
    # Controller
    "InputExpanderController",
    # Register IO
    "InputExpanderRegisterIO",
    "InputExpanderRegisterIORef",
]
