"""
The calculator server's tools, resources and prompts.

Each capability is an argument model (field-level rules), an optional list
of cross-field rules, and a handler taking (ctx, args).
"""

import json
from typing import Any, Optional

from loguru import logger
from pydantic import BaseModel, Field, field_validator

from calculator_mcp.calculator import (
    DEFAULT_MAX,
    DEFAULT_MIN,
    MATH_CONSTANTS,
    Distribution,
    Operation,
    calculate,
    explain_calculation,
    explain_distribution,
    generate_random_number,
)
from calculator_mcp.dispatcher import InvocationContext, Output
from calculator_mcp.errors import ResourceNotFoundError
from calculator_mcp.registry import CapabilityKind, Registry
from calculator_mcp.validation import NoArguments, Violation

SERVER_NAME = "calculator-mcp-server"
SERVER_VERSION = "1.0.0"

CONSTANTS_URI = "math://constants"

# signed 64-bit range, the widest the normal and exponential draws handle
INT_MIN = -(2**63)
INT_MAX = 2**63 - 1


def _blank_is_missing(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class CalculateArgs(BaseModel):
    operation: Operation = Field(description="operation to be performed on the numbers")
    num1: float = Field(description="first number")
    num2: float = Field(description="second number")

    @field_validator("operation", "num1", "num2", mode="before")
    @classmethod
    def _required(cls, value: Any) -> Any:
        if _blank_is_missing(value) is None:
            raise ValueError("must not be empty")
        return value


class ExplanationArgs(CalculateArgs):
    operation: Operation = Field(
        description="The mathematical operation: add, subtract, multiply, or divide"
    )
    num1: float = Field(description="The first number")
    num2: float = Field(description="The second number")


class RandomNumberArgs(BaseModel):
    min: Optional[int] = Field(
        None, ge=INT_MIN, le=INT_MAX, description="minimum value (default: 1)"
    )
    max: Optional[int] = Field(
        None, ge=INT_MIN, le=INT_MAX, description="maximum value (default: 100)"
    )
    distribution: Distribution = Field(
        Distribution.UNIFORM,
        description=(
            "probability distribution: 'uniform' (default), 'normal' "
            "(Gaussian/bell curve), or 'exponential' (exponential decay)"
        ),
    )

    @field_validator("min", "max", mode="before")
    @classmethod
    def _unset_bound(cls, value: Any) -> Any:
        return _blank_is_missing(value)

    @field_validator("distribution", mode="before")
    @classmethod
    def _unset_distribution(cls, value: Any) -> Any:
        if _blank_is_missing(value) is None:
            return Distribution.UNIFORM
        return value

    @property
    def low(self) -> int:
        return DEFAULT_MIN if self.min is None else self.min

    @property
    def high(self) -> int:
        return DEFAULT_MAX if self.max is None else self.max


class ConstantArgs(BaseModel):
    name: str = Field(description="name of the constant, e.g. pi")


def no_division_by_zero(args: CalculateArgs) -> Optional[Violation]:
    if args.operation == Operation.DIVIDE and args.num2 == 0:
        return Violation("num2", "cannot divide by zero")
    return None


def min_below_max(args: RandomNumberArgs) -> Optional[Violation]:
    if args.min is not None and args.max is not None:
        if args.min >= args.max:
            return Violation("min", "min must be less than max")
        return None
    if args.low >= args.high:
        # only one bound given, the default for the other one leaves no room
        field = "min" if args.min is not None else "max"
        return Violation(
            field, f"range [{args.low}, {args.high}] is empty, min must be less than max"
        )
    return None


async def calculate_tool(ctx: InvocationContext, args: CalculateArgs) -> Output:
    result = calculate(args.operation.value, args.num1, args.num2)
    return Output({"result": result}, f"Result: {result:f}")


async def random_number_tool(ctx: InvocationContext, args: RandomNumberArgs) -> Output:
    distribution = args.distribution.value
    number = generate_random_number(ctx.rng, args.low, args.high, distribution)
    return Output(
        {"number": number},
        f"Generated random number: {number} "
        f"(distribution: {distribution}, range: [{args.low}, {args.high}])",
    )


def math_constants(ctx: InvocationContext, args: NoArguments) -> Output:
    return Output(dict(MATH_CONSTANTS), json.dumps(MATH_CONSTANTS, indent=2))


def math_constant(ctx: InvocationContext, args: ConstantArgs) -> Output:
    if args.name not in MATH_CONSTANTS:
        raise ResourceNotFoundError(f"{CONSTANTS_URI}/{args.name}")
    value = MATH_CONSTANTS[args.name]
    return Output(value, f"{value:f}")


def calculation_explanation(ctx: InvocationContext, args: ExplanationArgs) -> Output:
    explanation, result = explain_calculation(args.operation.value, args.num1, args.num2)
    message = f"{explanation}\n\nResult: {result:g}"
    return Output(_prompt("Calculation explanation", message), message)


def random_number_prompt(ctx: InvocationContext, args: RandomNumberArgs) -> Output:
    distribution = args.distribution.value
    number = generate_random_number(ctx.rng, args.low, args.high, distribution)
    message = (
        f"{explain_distribution(distribution, args.low, args.high)}\n\n"
        f"Generated random number: {number}\n"
        f"Range: [{args.low}, {args.high}]\n"
        f"Distribution: {distribution}"
    )
    return Output(_prompt("Random number generation", message), message)


def _prompt(description: str, message: str) -> dict:
    return {
        "description": description,
        "messages": [{"role": "user", "content": message}],
    }


def register_calculator(registry: Registry) -> Registry:
    """Register every calculator capability on registry"""
    registry.add(
        CapabilityKind.TOOL,
        calculate_tool,
        name="calculate",
        description="Perform basic mathematical operations like add, subtract, multiply, and divide",
        args_model=CalculateArgs,
        rules=[no_division_by_zero],
    )
    registry.add(
        CapabilityKind.TOOL,
        random_number_tool,
        name="generate-random-number",
        description=(
            "Generate a random number between min and max (default 1 and 100) "
            "using a uniform, normal or exponential distribution"
        ),
        args_model=RandomNumberArgs,
        rules=[min_below_max],
    )
    logger.info(f"Loaded tools: {sorted(registry.available(CapabilityKind.TOOL))}")

    registry.add(
        CapabilityKind.RESOURCE,
        math_constants,
        name="math-constants",
        description="Mathematical constants",
        uri=CONSTANTS_URI,
        mime_type="application/json",
    )
    registry.add(
        CapabilityKind.RESOURCE,
        math_constant,
        name="math-constant",
        description="A single mathematical constant by name",
        args_model=ConstantArgs,
        uri_template=CONSTANTS_URI + "/{name}",
        mime_type="text/plain",
    )
    logger.info(f"Loaded resources: {sorted(registry.available(CapabilityKind.RESOURCE))}")

    registry.add(
        CapabilityKind.PROMPT,
        calculation_explanation,
        name="calculation-explanation",
        description="Explain how a mathematical calculation works",
        args_model=ExplanationArgs,
        rules=[no_division_by_zero],
    )
    registry.add(
        CapabilityKind.PROMPT,
        random_number_prompt,
        name="generate-random-number-prompt",
        description="Generate and explain a random number",
        args_model=RandomNumberArgs,
        rules=[min_below_max],
    )
    logger.info(f"Loaded prompts: {sorted(registry.available(CapabilityKind.PROMPT))}")
    return registry


def build_registry() -> Registry:
    """Fresh, sealed registry holding the calculator capabilities"""
    registry = register_calculator(Registry())
    registry.seal()
    return registry
