import math
import random
from enum import Enum
from typing import Dict, Tuple


class Operation(str, Enum):
    ADD = "add"
    SUBTRACT = "subtract"
    MULTIPLY = "multiply"
    DIVIDE = "divide"


class Distribution(str, Enum):
    UNIFORM = "uniform"
    NORMAL = "normal"
    EXPONENTIAL = "exponential"


DEFAULT_MIN = 1
DEFAULT_MAX = 100

MATH_CONSTANTS: Dict[str, float] = {
    "pi": math.pi,
    "e": math.e,
    "golden_ratio": (1 + math.sqrt(5)) / 2,
    "sqrt2": math.sqrt(2),
    "sqrt3": math.sqrt(3),
    "ln2": math.log(2),
    "ln10": math.log(10),
    "euler": 0.5772156649015329,
}


def calculate(operation: str, num1: float, num2: float) -> float:
    if operation == "add":
        return num1 + num2
    elif operation == "subtract":
        return num1 - num2
    elif operation == "multiply":
        return num1 * num2
    elif operation == "divide":
        if num2 == 0:
            raise ValueError("Cannot divide by zero.")
        return num1 / num2
    else:
        raise ValueError(f"Unsupported operation: {operation}")


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def generate_random_number(
    rng: random.Random, low: int, high: int, distribution: str = "uniform"
) -> int:
    """
    Draw an integer in [low, high].

    normal: centred on the midpoint with ~99.7% of the mass inside the range.
    exponential: rate 1/(high-low) offset by low, so low values are most likely.
    Both are clamped to the range.
    """
    if low >= high:
        raise ValueError(f"min ({low}) must be less than max ({high})")
    if distribution == "uniform":
        return rng.randint(low, high)
    elif distribution == "normal":
        mean = (low + high) / 2
        std_dev = (high - low) / 6
        return clamp(int(rng.gauss(mean, std_dev)), low, high)
    elif distribution == "exponential":
        rate = 1.0 / (high - low)
        return clamp(int(rng.expovariate(rate)) + low, low, high)
    else:
        raise ValueError(f"Invalid distribution: {distribution}")


def explain_calculation(operation: str, num1: float, num2: float) -> Tuple[str, float]:
    """Sentence describing how the operation is carried out, plus its result"""
    result = calculate(operation, num1, num2)
    if operation == "add":
        text = (
            f"To add {num1:g} and {num2:g}, you simply combine the two numbers: "
            f"{num1:g} + {num2:g} = {result:g}"
        )
    elif operation == "subtract":
        text = (
            f"To subtract {num2:g} from {num1:g}, you take away the second number "
            f"from the first: {num1:g} - {num2:g} = {result:g}"
        )
    elif operation == "multiply":
        text = (
            f"To multiply {num1:g} by {num2:g}, you calculate the product: "
            f"{num1:g} × {num2:g} = {result:g}"
        )
    else:
        text = (
            f"To divide {num1:g} by {num2:g}, you calculate the quotient: "
            f"{num1:g} ÷ {num2:g} = {result:g}"
        )
    return text, result


def explain_distribution(distribution: str, low: int, high: int) -> str:
    if distribution == "normal":
        mean = (low + high) / 2
        std_dev = (high - low) / 6
        centre = int((low + high) / 2)
        return (
            f"Using normal (Gaussian) distribution with mean {mean:.2f} and standard "
            f"deviation {std_dev:.2f}. Values near the center ({centre - 5}-{centre + 5}) "
            "are more likely."
        )
    if distribution == "exponential":
        return (
            "Using exponential distribution. Lower values in the range "
            f"({low}-{int((low + high) / 2)}) are more likely than higher values."
        )
    return (
        f"Using uniform distribution, each number between {low} and {high} "
        "has an equal probability of being selected."
    )
