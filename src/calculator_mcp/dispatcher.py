"""
Dispatcher: one invocation end to end.

Received -> Validated | Rejected -> Executed | Failed -> Responded

Every branch ends with an InvocationResult; nothing raised by a handler
crosses into the transport, except cancellation of the dispatcher's own
task by its host, which is always re-raised.
"""

import asyncio
import json
import random
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from loguru import logger
from pydantic import BaseModel

from calculator_mcp.errors import (
    ArgumentValidationError,
    BusinessError,
    ErrorCodes,
    InvocationCancelledError,
    ProtocolError,
)
from calculator_mcp.registry import CapabilityEntry, CapabilityKind, Registry
from calculator_mcp.schemagenerators import CapabilitySchema
from calculator_mcp.validation import Validator, Violation


class InvocationStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    PROTOCOL_ERROR = "protocol_error"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Output:
    """What a handler returns when it wants to control the text rendering"""

    payload: Any
    text: Optional[str] = None


@dataclass(frozen=True)
class InvocationRequest:
    kind: CapabilityKind
    name: str
    payload: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class InvocationResult:
    """
    Uniform result envelope.

    ERROR is a successful response carrying an error flag (bad input or a
    business rule); PROTOCOL_ERROR and CANCELLED are faults the transport
    reports as JSON-RPC errors.
    """

    status: InvocationStatus
    payload: Any = None
    text: Optional[str] = None
    message: Optional[str] = None
    error_code: Optional[int] = None
    violations: tuple[Violation, ...] = ()
    schema: Optional[CapabilitySchema] = None

    @classmethod
    def success(
        cls, payload: Any, text: Optional[str], schema: Optional[CapabilitySchema] = None
    ) -> "InvocationResult":
        return cls(InvocationStatus.SUCCESS, payload=payload, text=text, schema=schema)

    @classmethod
    def error(
        cls, message: str, violations: tuple[Violation, ...] = ()
    ) -> "InvocationResult":
        return cls(InvocationStatus.ERROR, message=message, violations=violations)

    @classmethod
    def protocol_error(cls, message: str, code: int) -> "InvocationResult":
        return cls(InvocationStatus.PROTOCOL_ERROR, message=message, error_code=int(code))

    @classmethod
    def cancelled(cls, message: str, code: int) -> "InvocationResult":
        return cls(InvocationStatus.CANCELLED, message=message, error_code=int(code))

    @property
    def is_error(self) -> bool:
        return self.status != InvocationStatus.SUCCESS

    @property
    def is_protocol_error(self) -> bool:
        return self.status in (InvocationStatus.PROTOCOL_ERROR, InvocationStatus.CANCELLED)


class InvocationContext:
    """
    Per-invocation execution context handed to every handler.

    Carries the request id used in log lines, an optional deadline, a
    private random generator and the cancellation signal.
    """

    def __init__(
        self,
        request_id: Optional[str] = None,
        timeout: Optional[float] = None,
        rng: Optional[random.Random] = None,
        seed: Optional[int] = None,
    ):
        self.request_id = request_id or uuid.uuid4().hex[:8]
        self.timeout = timeout
        self.rng = rng or random.Random(seed)
        self.cancel_reason: Optional[str] = None
        self._cancelled = asyncio.Event()

    def cancel(self, reason: str = "Invocation cancelled") -> None:
        if not self._cancelled.is_set():
            self.cancel_reason = reason
            self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    async def wait_cancelled(self) -> None:
        await self._cancelled.wait()

    def raise_if_cancelled(self) -> None:
        """Cooperative check for long-running handlers"""
        if self.cancelled:
            raise InvocationCancelledError(self.cancel_reason or "Invocation cancelled")

    def __repr__(self) -> str:
        return f"InvocationContext(request_id='{self.request_id}', timeout={self.timeout})"


def render(value: Any) -> str:
    """Human-readable rendering of a handler's payload"""
    if isinstance(value, BaseModel):
        value = value.model_dump()
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, indent=2)
    return str(value)


class Dispatcher:
    """Looks up, validates, executes and wraps one invocation at a time"""

    def __init__(
        self,
        registry: Registry,
        validator: Optional[Validator] = None,
        random_seed: Optional[int] = None,
        default_timeout: Optional[float] = None,
    ):
        self.registry = registry
        self.validator = validator or Validator()
        self.random_seed = random_seed
        self.default_timeout = default_timeout
        # seeds the per-invocation generators, so a seeded server replays the same sequence
        self._seeds = random.Random(random_seed) if random_seed is not None else None

    def new_context(self, request_id: Optional[str] = None) -> InvocationContext:
        seed = self._seeds.getrandbits(64) if self._seeds is not None else None
        return InvocationContext(
            request_id=request_id, timeout=self.default_timeout, seed=seed
        )

    async def invoke(
        self,
        kind: CapabilityKind,
        name: str,
        payload: Optional[Dict[str, Any]] = None,
        ctx: Optional[InvocationContext] = None,
    ) -> InvocationResult:
        ctx = ctx or self.new_context()
        kind = CapabilityKind(kind)
        logger.debug(f"[{ctx.request_id}] Received {kind.value} '{name}' with args: {payload}")
        try:
            entry = self.registry.lookup(kind, name)
        except ProtocolError as e:
            logger.warning(f"[{ctx.request_id}] {e.message}")
            return InvocationResult.protocol_error(e.message, e.code)
        return await self._execute(entry, payload, ctx)

    async def handle(
        self, request: InvocationRequest, ctx: Optional[InvocationContext] = None
    ) -> InvocationResult:
        return await self.invoke(request.kind, request.name, request.payload, ctx)

    async def read_resource(
        self, uri: str, ctx: Optional[InvocationContext] = None
    ) -> InvocationResult:
        """Resolve uri to a resource (fixed or templated) and read it"""
        ctx = ctx or self.new_context()
        logger.debug(f"[{ctx.request_id}] Received resource read: {uri}")
        try:
            entry, variables = self.registry.resolve_resource(uri)
        except ProtocolError as e:
            logger.warning(f"[{ctx.request_id}] {e.message}")
            return InvocationResult.protocol_error(e.message, e.code)
        return await self._execute(entry, variables, ctx)

    async def _execute(
        self, entry: CapabilityEntry, payload: Any, ctx: InvocationContext
    ) -> InvocationResult:
        tag = f"[{ctx.request_id}] {entry.kind.value} '{entry.name}'"

        outcome = self.validator.validate(entry.args_model, payload, entry.rules)
        if not outcome.ok:
            logger.warning(f"{tag} Rejected: {outcome.failure.message}")
            return InvocationResult.error(
                outcome.failure.message, outcome.failure.violations
            )
        logger.debug(f"{tag} Validated")

        try:
            value = await self._run(entry, outcome.args, ctx)
        except InvocationCancelledError as e:
            logger.warning(f"{tag} Cancelled: {e.message}")
            return InvocationResult.cancelled(e.message, e.code)
        except ArgumentValidationError as e:
            logger.warning(f"{tag} Failed: {e.message}")
            return InvocationResult.error(e.message, e.failure.violations)
        except (BusinessError, ValueError) as e:
            message = e.message if isinstance(e, BusinessError) else str(e)
            logger.warning(f"{tag} Failed: {message}")
            return InvocationResult.error(message)
        except ProtocolError as e:
            logger.warning(f"{tag} Failed: {e.message}")
            return InvocationResult.protocol_error(e.message, e.code)
        except Exception as e:
            logger.exception(f"{tag} raised unexpectedly")
            return InvocationResult.protocol_error(
                f"Internal error: {e}", ErrorCodes.INTERNAL_ERROR
            )

        logger.debug(f"{tag} Executed")
        if isinstance(value, Output):
            text = value.text if value.text is not None else render(value.payload)
            result = InvocationResult.success(value.payload, text, entry.schema)
        else:
            result = InvocationResult.success(value, render(value), entry.schema)
        logger.debug(f"{tag} Responded")
        return result

    async def _run(
        self, entry: CapabilityEntry, args: BaseModel, ctx: InvocationContext
    ) -> Any:
        """Run the handler, racing it against cancellation and the deadline"""
        ctx.raise_if_cancelled()
        if not entry.is_async:
            return entry.handler(ctx, args)

        task = asyncio.ensure_future(entry.handler(ctx, args))
        waiter = asyncio.ensure_future(ctx.wait_cancelled())
        try:
            done, _ = await asyncio.wait(
                {task, waiter},
                timeout=ctx.timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            task.cancel()
            waiter.cancel()
            raise
        waiter.cancel()
        if task in done:
            if task.cancelled():
                # the handler cancelled itself, not the host
                raise InvocationCancelledError("Invocation cancelled by handler")
            return task.result()

        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        if ctx.cancelled:
            raise InvocationCancelledError(ctx.cancel_reason or "Invocation cancelled")
        raise InvocationCancelledError(
            f"Invocation timed out after {ctx.timeout}s", timed_out=True
        )
