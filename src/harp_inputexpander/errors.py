"""Register codec error taxonomy.

All codec failures are local to the single message being decoded or encoded.
They are raised to the immediate caller and never replaced by a default value.

- MalformedPayloadError: payload byte count or payload type does not match the
  register declaration
- UnknownRegisterError: address is not part of the active schema revision
- UnrepresentableValueError: a value does not fit the register's wire type
"""


class CodecError(ValueError):
    """Base exception for register codec errors."""

    pass


class MalformedPayloadError(CodecError):
    """Raised when a payload does not match the register's declared wire shape."""

    pass


class UnknownRegisterError(CodecError):
    """Raised when an address is not present in the active register map."""

    def __init__(self, address: int, revision: str | None = None):
        self.address = address
        self.revision = revision
        message = f"Unknown register address {address}"
        if revision is not None:
            message += f" in schema revision {revision!r}"
        super().__init__(message)


class UnrepresentableValueError(CodecError):
    """Raised when a value cannot be encoded in the register's wire type."""

    pass
