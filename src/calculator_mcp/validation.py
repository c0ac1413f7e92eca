"""
Argument validation for capability payloads.

Field-level checks (presence, type, allowed values, bounds) come from the
capability's pydantic argument model, which reports every failing field at
once. Cross-field rules run afterwards on the fully typed arguments, and
every rule is evaluated so the caller gets all violations in one response.
Rules are skipped while any field is invalid, since they need typed
siblings to compare.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional, Type

import pydantic
from loguru import logger
from pydantic import BaseModel


class NoArguments(BaseModel):
    """Argument model for capabilities that take no parameters"""


@dataclass(frozen=True)
class Violation:
    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


@dataclass(frozen=True)
class ValidationFailure:
    violations: tuple[Violation, ...]

    @property
    def fields(self) -> List[str]:
        return [v.field for v in self.violations]

    @property
    def message(self) -> str:
        details = "; ".join(str(v) for v in self.violations)
        return f"Invalid parameters: {details}"


Rule = Callable[[Any], Optional[Violation]]


@dataclass(frozen=True)
class ValidationOutcome:
    args: Optional[BaseModel] = None
    failure: Optional[ValidationFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None


class Validator:
    """Turns a raw payload into a typed argument model, or a list of violations"""

    def validate(
        self,
        args_model: Type[BaseModel],
        payload: Any,
        rules: Iterable[Rule] = (),
    ) -> ValidationOutcome:
        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            violation = Violation(
                "payload", f"expected an object, got {type(payload).__name__}"
            )
            return self._fail([violation])

        try:
            args = args_model.model_validate(dict(payload))
        except pydantic.ValidationError as e:
            return self._fail([self._convert(err) for err in e.errors()])

        violations = [v for v in (rule(args) for rule in rules) if v is not None]
        if violations:
            return self._fail(violations)
        return ValidationOutcome(args=args)

    def _fail(self, violations: List[Violation]) -> ValidationOutcome:
        failure = ValidationFailure(tuple(violations))
        logger.debug(f"validation failed: {failure.message}")
        return ValidationOutcome(failure=failure)

    @staticmethod
    def _convert(error: Any) -> Violation:
        loc = ".".join(str(part) for part in error.get("loc", ())) or "payload"
        if error.get("type") == "missing":
            return Violation(loc, "is required")
        if error.get("type") == "string_too_short":
            return Violation(loc, "must not be empty")
        message = error.get("msg", "is invalid")
        # model_validator failures are prefixed by pydantic
        message = message.removeprefix("Value error, ")
        return Violation(loc, message)
