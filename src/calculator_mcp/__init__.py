import sys

from loguru import logger

from calculator_mcp.capabilities import build_registry, register_calculator
from calculator_mcp.dispatcher import (
    Dispatcher,
    InvocationContext,
    InvocationRequest,
    InvocationResult,
    InvocationStatus,
    Output,
)
from calculator_mcp.registry import CapabilityEntry, CapabilityKind, Registry
from calculator_mcp.schemagenerators import CapabilitySchema, ParameterSchema
from calculator_mcp.settings import ClientConfig, ServerConfig, TransportType
from calculator_mcp.validation import ValidationFailure, Validator, Violation

logger.remove()
logger.add(sys.stderr, level="WARNING")


__all__ = [
    "CapabilityEntry",
    "CapabilityKind",
    "CapabilitySchema",
    "ClientConfig",
    "Dispatcher",
    "InvocationContext",
    "InvocationRequest",
    "InvocationResult",
    "InvocationStatus",
    "Output",
    "ParameterSchema",
    "Registry",
    "ServerConfig",
    "TransportType",
    "ValidationFailure",
    "Validator",
    "Violation",
    "build_registry",
    "register_calculator",
]
