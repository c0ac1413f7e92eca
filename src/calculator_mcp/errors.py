"""
Error taxonomy for capability registration and dispatch.

Protocol errors become JSON-RPC faults at the transport; validation and
business errors are reported inside a successful response with the error
flag set; cancellation is reported separately from both.
"""

from enum import IntEnum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from calculator_mcp.validation import ValidationFailure


class ErrorCodes(IntEnum):
    """JSON-RPC error codes used in MCP."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603
    REQUEST_TIMEOUT = -32001
    RESOURCE_NOT_FOUND = -32002
    REQUEST_CANCELLED = -32800


class CapabilityError(Exception):
    """Base class for everything raised by the registry and dispatcher"""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ProtocolError(CapabilityError):
    """Fault the caller sees as a transport-level error"""

    def __init__(self, message: str, code: int = ErrorCodes.INTERNAL_ERROR):
        self.code = int(code)
        super().__init__(message)


class CapabilityNotFoundError(ProtocolError):
    def __init__(self, kind: str, name: str):
        self.kind = kind
        self.name = name
        super().__init__(
            f"Unknown {kind}: {name}", code=ErrorCodes.METHOD_NOT_FOUND
        )


class ResourceNotFoundError(ProtocolError):
    def __init__(self, uri: str):
        self.uri = uri
        super().__init__(
            f"Resource not found: {uri}", code=ErrorCodes.RESOURCE_NOT_FOUND
        )


class ArgumentValidationError(CapabilityError):
    """Payload does not satisfy the declared parameters"""

    def __init__(self, failure: "ValidationFailure"):
        self.failure = failure
        super().__init__(failure.message)


class BusinessError(CapabilityError):
    """Structurally valid input that the handler cannot act on"""


class InvocationCancelledError(CapabilityError):
    def __init__(self, message: str = "Invocation cancelled", timed_out: bool = False):
        self.timed_out = timed_out
        super().__init__(message)

    @property
    def code(self) -> int:
        if self.timed_out:
            return int(ErrorCodes.REQUEST_TIMEOUT)
        return int(ErrorCodes.REQUEST_CANCELLED)


class DuplicateCapabilityError(CapabilityError):
    """Raised at startup when a name (or resource URI) is registered twice"""

    def __init__(self, kind: str, name: str, field: Optional[str] = None):
        self.kind = kind
        self.name = name
        label = field or "name"
        super().__init__(f"Duplicate {kind} {label}: {name}")


class RegistryClosedError(CapabilityError):
    """Raised when registering after the registry has been sealed"""
