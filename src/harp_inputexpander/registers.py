"""InputExpander register definitions and schema revisions.

This module provides the register abstraction layer for the Harp InputExpander
(WhoAmI 1106), including:
- Register value types (bit flags, enumerated modes, records)
- Register descriptors (address, payload type, length, access, codec pair)
- One immutable descriptor table per schema revision
- RegisterMap, the explicitly constructed address -> descriptor lookup

Three incompatible layouts of addresses 33-39 have been published. The
revision in use is chosen by the caller when building a RegisterMap; nothing
in this module holds mutable or process-wide state.
"""

import enum
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field, fields, is_dataclass
from types import MappingProxyType
from typing import Any, ClassVar

from .errors import UnknownRegisterError, UnrepresentableValueError
from .messages import PayloadType

# =============================================================================
# Register Value Types
# =============================================================================


class RegisterEnum(enum.IntEnum):
    """Integer-backed enumeration that accepts undocumented values.

    Looking up a value with no named member returns an unnamed member carrying
    the raw integer, so device values outside the documented set decode and
    re-encode unchanged.
    """

    @classmethod
    def _missing_(cls, value):
        if not isinstance(value, int):
            return None
        member = int.__new__(cls, value)
        member._name_ = f"UNDEFINED_{value}"
        member._value_ = value
        return member


class AuxiliaryInput(enum.IntFlag):
    """State of the auxiliary input lines."""

    AUX0 = 0x01
    AUX1 = 0x02
    AUX0_CHANGED = 0x20
    AUX1_CHANGED = 0x40


class AuxiliaryEdge(enum.IntFlag):
    """Rising and falling edge enables of both auxiliary inputs in one byte."""

    AUX0_RISING = 0x01
    AUX1_RISING = 0x02
    AUX0_FALLING = 0x10
    AUX1_FALLING = 0x20


class DigitalInput(enum.IntFlag):
    """State of the digital input lines."""

    DI0 = 0x001
    DI1 = 0x002
    DI2 = 0x004
    DI3 = 0x008
    DI4 = 0x010
    DI5 = 0x020
    DI6 = 0x040
    DI7 = 0x080
    DI8 = 0x100
    DI9 = 0x200


class InputSamplingMode(RegisterEnum):
    """Input sampling configuration."""

    ON_INTERRUPT = 0
    ON_POLLING_1KHZ = 1
    ON_POLLING_2HZ = 2


class EncoderSamplingMode(RegisterEnum):
    """Rotary encoder sampling modes (single-byte encoder register)."""

    DISABLED = 0
    POLLING_250HZ = 1
    POLLING_500HZ = 2
    POLLING_1KHZ = 3
    ON_MOVEMENT = 4


class EncoderSampleRate(RegisterEnum):
    """Rotary encoder sample rate (bits 0-2 of the packed encoder mode)."""

    DISABLED = 0
    SAMPLE_RATE_250HZ = 1
    SAMPLE_RATE_500HZ = 2
    SAMPLE_RATE_1000HZ = 3
    SAMPLE_RATE_2000HZ = 4


class EncoderModeConfig(RegisterEnum):
    """Rotary encoder reporting mode (bit 3 of the packed encoder mode)."""

    POSITION = 0
    DISPLACEMENT = 1


class ExpansionBoardType(RegisterEnum):
    """Boards that can be attached to the expansion port."""

    BREAKOUT = 0


def _int_field(record: Any, name: str) -> int:
    """Integer value of a record field, rejecting non-integer values."""
    value = getattr(record, name)
    if not isinstance(value, int):
        raise UnrepresentableValueError(
            f"{type(record).__name__}.{name} expects an integer value, got {value!r}"
        )
    return int(value)


@dataclass(frozen=True)
class DigitalInPortPayload:
    """Digital input port state and the lines that changed since last report.

    Attributes:
        state: Current state of all digital inputs (element 0)
        changed: Inputs that changed state (element 1)
    """

    state: DigitalInput
    changed: DigitalInput

    @classmethod
    def from_elements(cls, elements: tuple[int, ...]) -> "DigitalInPortPayload":
        return cls(DigitalInput(elements[0]), DigitalInput(elements[1]))

    def to_elements(self) -> tuple[int, ...]:
        return (_int_field(self, "state"), _int_field(self, "changed"))


@dataclass(frozen=True)
class DigitalInEdgePayload:
    """Rising and falling edge enables of the digital inputs.

    Attributes:
        rising: Inputs reporting rising edges (element 0)
        falling: Inputs reporting falling edges (element 1)
    """

    rising: DigitalInput
    falling: DigitalInput

    @classmethod
    def from_elements(cls, elements: tuple[int, ...]) -> "DigitalInEdgePayload":
        return cls(DigitalInput(elements[0]), DigitalInput(elements[1]))

    def to_elements(self) -> tuple[int, ...]:
        return (_int_field(self, "rising"), _int_field(self, "falling"))


@dataclass(frozen=True)
class EncoderModePayload:
    """Packed encoder configuration byte.

    Bits 0-2 hold the sample rate and bit 3 the reporting mode. Bits 4-7 are
    reserved: they are dropped on decode and always written as zero.

    Attributes:
        sample_rate: Encoder sample rate
        mode: Position or displacement reporting
    """

    SAMPLE_RATE_MASK: ClassVar[int] = 0x07
    MODE_MASK: ClassVar[int] = 0x08
    MODE_SHIFT: ClassVar[int] = 3

    sample_rate: EncoderSampleRate
    mode: EncoderModeConfig

    @classmethod
    def from_elements(cls, elements: tuple[int, ...]) -> "EncoderModePayload":
        raw = elements[0]
        return cls(
            sample_rate=EncoderSampleRate(raw & cls.SAMPLE_RATE_MASK),
            mode=EncoderModeConfig((raw & cls.MODE_MASK) >> cls.MODE_SHIFT),
        )

    def to_elements(self) -> tuple[int, ...]:
        sample_rate = _int_field(self, "sample_rate")
        mode = _int_field(self, "mode")
        if not 0 <= sample_rate <= self.SAMPLE_RATE_MASK:
            raise UnrepresentableValueError(
                f"Encoder sample rate {sample_rate} does not fit in bits 0-2"
            )
        if not 0 <= mode <= self.MODE_MASK >> self.MODE_SHIFT:
            raise UnrepresentableValueError(f"Encoder mode {mode} does not fit in bit 3")
        raw = (sample_rate & self.SAMPLE_RATE_MASK) | (
            (mode << self.MODE_SHIFT) & self.MODE_MASK
        )
        return (raw,)


# =============================================================================
# Register Descriptors
# =============================================================================


class RegisterAccess(enum.Flag):
    """Register access classification.

    - READ: value can be requested with a Read command
    - WRITE: value can be changed with a Write command
    - EVENT: device reports changes with Event messages
    """

    READ = enum.auto()
    WRITE = enum.auto()
    EVENT = enum.auto()


RW = RegisterAccess.READ | RegisterAccess.WRITE
RO_EVENT = RegisterAccess.READ | RegisterAccess.EVENT


@dataclass(frozen=True)
class RegisterDescriptor:
    """Definition of a single InputExpander register.

    Attributes:
        name: Register name (e.g., 'DIGITAL_IN_PORT')
        address: Register address (0-255)
        payload_type: Wire element type
        length: Number of payload elements
        access: Read / write / event classification
        value_type: Type of the decoded value
        decode: Converts the unpacked payload elements into a value
        encode: Converts a value into payload elements
        description: Optional description of register purpose
    """

    name: str
    address: int
    payload_type: PayloadType
    length: int
    access: RegisterAccess
    value_type: type
    decode: Callable[[tuple[int, ...]], Any] = field(repr=False, compare=False)
    encode: Callable[[Any], tuple[int, ...]] = field(repr=False, compare=False)
    description: str = ""

    def __post_init__(self):
        """Validate register address and length."""
        if not 0 <= self.address <= 0xFF:
            raise ValueError(f"Register address {self.address} out of range [0-255]")
        if self.length < 1:
            raise ValueError(f"Register length must be at least 1, got {self.length}")

    @property
    def size(self) -> int:
        """Payload size in bytes."""
        return self.payload_type.element_size * self.length

    @property
    def readable(self) -> bool:
        return bool(self.access & RegisterAccess.READ)

    @property
    def writable(self) -> bool:
        return bool(self.access & RegisterAccess.WRITE)

    @property
    def emits_events(self) -> bool:
        return bool(self.access & RegisterAccess.EVENT)

    @property
    def field_names(self) -> tuple[str, ...]:
        """Field names of record values, empty for scalar registers."""
        if is_dataclass(self.value_type):
            return tuple(f.name for f in fields(self.value_type))
        return ()


def _scalar(
    name: str,
    address: int,
    payload_type: PayloadType,
    value_type: type,
    access: RegisterAccess,
    description: str = "",
) -> RegisterDescriptor:
    """Describe a single-element register holding a flag, enum or integer."""

    def encode(value: Any) -> tuple[int, ...]:
        if not isinstance(value, int):
            raise UnrepresentableValueError(
                f"Register {name} expects an integer value, got {value!r}"
            )
        return (int(value),)

    return RegisterDescriptor(
        name=name,
        address=address,
        payload_type=payload_type,
        length=1,
        access=access,
        value_type=value_type,
        decode=lambda elements: value_type(elements[0]),
        encode=encode,
        description=description,
    )


def _record(
    name: str,
    address: int,
    payload_type: PayloadType,
    length: int,
    value_type: type,
    access: RegisterAccess,
    description: str = "",
) -> RegisterDescriptor:
    """Describe a register decoded into a record dataclass."""

    def encode(value: Any) -> tuple[int, ...]:
        if not isinstance(value, value_type):
            raise UnrepresentableValueError(
                f"Register {name} expects {value_type.__name__}, "
                f"got {type(value).__name__}"
            )
        return value.to_elements()

    return RegisterDescriptor(
        name=name,
        address=address,
        payload_type=payload_type,
        length=length,
        access=access,
        value_type=value_type,
        decode=value_type.from_elements,
        encode=encode,
        description=description,
    )


# =============================================================================
# Schema Revisions
# =============================================================================


class SchemaRevision(enum.Enum):
    """Published layouts of the InputExpander register map.

    - SEPARATE_EDGE_ENABLES: one enable register per edge, encoder sampling enum
    - COMBINED_EDGE_ENABLES: rising and falling enables share one register
    - PACKED_ENCODER_MODE: separate edge enables, packed encoder mode byte
    """

    SEPARATE_EDGE_ENABLES = "separate-edge-enables"
    COMBINED_EDGE_ENABLES = "combined-edge-enables"
    PACKED_ENCODER_MODE = "packed-encoder-mode"


DEFAULT_REVISION = SchemaRevision.PACKED_ENCODER_MODE

# Registers that keep their address and shape in every revision
_AUX_IN_PORT = _scalar(
    "AUX_IN_PORT",
    32,
    PayloadType.U8,
    AuxiliaryInput,
    RO_EVENT,
    "State of the auxiliary inputs",
)
_DIGITAL_IN_PORT = _record(
    "DIGITAL_IN_PORT",
    35,
    PayloadType.U16,
    2,
    DigitalInPortPayload,
    RO_EVENT,
    "State of the digital input port and the inputs that changed",
)
_INPUT_SAMPLING = _scalar(
    "INPUT_SAMPLING",
    38,
    PayloadType.U8,
    InputSamplingMode,
    RW,
    "Input sampling mode",
)
_ENCODER_SAMPLING = _scalar(
    "ENCODER_SAMPLING",
    39,
    PayloadType.U8,
    EncoderSamplingMode,
    RW,
    "Rotary encoder sampling mode",
)
_ENCODER_DATA = _scalar(
    "ENCODER_DATA",
    40,
    PayloadType.S16,
    int,
    RO_EVENT,
    "Rotary encoder reading",
)
_EXPANSION_BOARD = _scalar(
    "EXPANSION_BOARD",
    41,
    PayloadType.U8,
    ExpansionBoardType,
    RW,
    "Board attached to the expansion port",
)

_SEPARATE_EDGE_ENABLES: tuple[RegisterDescriptor, ...] = (
    _AUX_IN_PORT,
    _scalar(
        "AUX_IN_ENABLE_RISING_EDGE",
        33,
        PayloadType.U8,
        AuxiliaryInput,
        RW,
        "Auxiliary inputs reporting rising edges",
    ),
    _scalar(
        "AUX_IN_ENABLE_FALLING_EDGE",
        34,
        PayloadType.U8,
        AuxiliaryInput,
        RW,
        "Auxiliary inputs reporting falling edges",
    ),
    _DIGITAL_IN_PORT,
    _scalar(
        "DIGITAL_IN_PORT_ENABLE_RISING_EDGE",
        36,
        PayloadType.U16,
        DigitalInput,
        RW,
        "Digital inputs reporting rising edges",
    ),
    _scalar(
        "DIGITAL_IN_PORT_ENABLE_FALLING_EDGE",
        37,
        PayloadType.U16,
        DigitalInput,
        RW,
        "Digital inputs reporting falling edges",
    ),
    _INPUT_SAMPLING,
    _ENCODER_SAMPLING,
    _ENCODER_DATA,
    _EXPANSION_BOARD,
)

_COMBINED_EDGE_ENABLES: tuple[RegisterDescriptor, ...] = (
    _AUX_IN_PORT,
    _scalar(
        "AUX_IN_EDGE_ENABLE",
        33,
        PayloadType.U8,
        AuxiliaryEdge,
        RW,
        "Auxiliary input rising and falling edge enables",
    ),
    _DIGITAL_IN_PORT,
    _record(
        "DIGITAL_IN_EDGE_ENABLE",
        36,
        PayloadType.U16,
        2,
        DigitalInEdgePayload,
        RW,
        "Digital input rising and falling edge enables",
    ),
    _INPUT_SAMPLING,
    _ENCODER_SAMPLING,
    _ENCODER_DATA,
    _EXPANSION_BOARD,
)

_PACKED_ENCODER_MODE: tuple[RegisterDescriptor, ...] = (
    _AUX_IN_PORT,
    _scalar(
        "AUX_IN_RISING_EDGE",
        33,
        PayloadType.U8,
        AuxiliaryInput,
        RW,
        "Auxiliary inputs reporting rising edges",
    ),
    _scalar(
        "AUX_IN_FALLING_EDGE",
        34,
        PayloadType.U8,
        AuxiliaryInput,
        RW,
        "Auxiliary inputs reporting falling edges",
    ),
    _DIGITAL_IN_PORT,
    _scalar(
        "DIGITAL_IN_RISING_EDGE",
        36,
        PayloadType.U16,
        DigitalInput,
        RW,
        "Digital inputs reporting rising edges",
    ),
    _scalar(
        "DIGITAL_IN_FALLING_EDGE",
        37,
        PayloadType.U16,
        DigitalInput,
        RW,
        "Digital inputs reporting falling edges",
    ),
    _INPUT_SAMPLING,
    _record(
        "ENCODER_MODE",
        39,
        PayloadType.U8,
        1,
        EncoderModePayload,
        RW,
        "Rotary encoder sample rate (bits 0-2) and mode (bit 3)",
    ),
    _ENCODER_DATA,
    _EXPANSION_BOARD,
)

_REVISION_TABLES: Mapping[SchemaRevision, tuple[RegisterDescriptor, ...]] = (
    MappingProxyType(
        {
            SchemaRevision.SEPARATE_EDGE_ENABLES: _SEPARATE_EDGE_ENABLES,
            SchemaRevision.COMBINED_EDGE_ENABLES: _COMBINED_EDGE_ENABLES,
            SchemaRevision.PACKED_ENCODER_MODE: _PACKED_ENCODER_MODE,
        }
    )
)


class RegisterMap(Mapping[int, RegisterDescriptor]):
    """Read-only address -> descriptor table for one schema revision.

    Build one with build_register_map() and pass it to the code that needs
    it. Lookups are plain dictionary accesses.
    """

    def __init__(
        self, revision: SchemaRevision, descriptors: Iterable[RegisterDescriptor]
    ):
        by_address: dict[int, RegisterDescriptor] = {}
        by_name: dict[str, RegisterDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.address in by_address:
                raise ValueError(
                    f"Duplicate register address {descriptor.address} "
                    f"({by_address[descriptor.address].name}, {descriptor.name})"
                )
            if descriptor.name in by_name:
                raise ValueError(f"Duplicate register name {descriptor.name!r}")
            by_address[descriptor.address] = descriptor
            by_name[descriptor.name] = descriptor

        self.revision = revision
        self._by_address = MappingProxyType(by_address)
        self._by_name = MappingProxyType(by_name)

    def __getitem__(self, address: int) -> RegisterDescriptor:
        return self._by_address[address]

    def __iter__(self) -> Iterator[int]:
        return iter(self._by_address)

    def __len__(self) -> int:
        return len(self._by_address)

    def __repr__(self) -> str:
        return f"RegisterMap({self.revision.value!r}, {len(self)} registers)"

    def resolve(self, address: int) -> RegisterDescriptor:
        """Get the descriptor for a register address.

        Args:
            address: Register address

        Returns:
            Register descriptor

        Raises:
            UnknownRegisterError: If address is not in this revision
        """
        try:
            return self._by_address[address]
        except KeyError:
            raise UnknownRegisterError(address, self.revision.value) from None

    def resolve_name(self, name: str) -> RegisterDescriptor:
        """Get the descriptor for a register name (case-sensitive).

        Raises:
            ValueError: If name is not in this revision
        """
        if name not in self._by_name:
            raise ValueError(
                f"Unknown register name {name!r} in schema revision "
                f"{self.revision.value!r}"
            )
        return self._by_name[name]

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self._by_name)


def build_register_map(revision: SchemaRevision = DEFAULT_REVISION) -> RegisterMap:
    """Build the register map for a schema revision.

    Args:
        revision: Register layout published by the firmware in use

    Returns:
        Immutable register map
    """
    return RegisterMap(revision, _REVISION_TABLES[revision])


# =============================================================================
# Constants for register addresses
# =============================================================================


class RegAddr:
    """Constants for InputExpander register addresses.

    Addresses 33, 34, 36, 37 and 39 change meaning between schema revisions;
    the names below follow the PACKED_ENCODER_MODE layout.
    """

    AUX_IN_PORT = 32
    AUX_IN_RISING_EDGE = 33
    AUX_IN_FALLING_EDGE = 34
    DIGITAL_IN_PORT = 35
    DIGITAL_IN_RISING_EDGE = 36
    DIGITAL_IN_FALLING_EDGE = 37
    INPUT_SAMPLING = 38
    ENCODER_MODE = 39
    ENCODER_DATA = 40
    EXPANSION_BOARD = 41
