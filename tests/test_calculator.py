import math
import random

import pytest

from calculator_mcp.calculator import (
    MATH_CONSTANTS,
    calculate,
    clamp,
    explain_calculation,
    explain_distribution,
    generate_random_number,
)


@pytest.mark.parametrize(
    "operation, expected",
    [("add", 15), ("subtract", 5), ("multiply", 50), ("divide", 2)],
)
def test_calculate(operation, expected):
    assert calculate(operation, 10, 5) == expected


def test_divide_by_zero():
    with pytest.raises(ValueError, match="Cannot divide by zero"):
        calculate("divide", 1, 0)


def test_unsupported_operation():
    with pytest.raises(ValueError, match="Unsupported operation: power"):
        calculate("power", 2, 3)


def test_clamp():
    assert clamp(-3, 1, 10) == 1
    assert clamp(30, 1, 10) == 10
    assert clamp(5, 1, 10) == 5


@pytest.mark.parametrize("distribution", ["uniform", "normal", "exponential"])
def test_random_number_in_range(distribution):
    rng = random.Random(0)
    numbers = [generate_random_number(rng, 1, 100, distribution) for _ in range(500)]

    assert all(1 <= n <= 100 for n in numbers)
    assert all(isinstance(n, int) for n in numbers)


def test_uniform_reaches_both_bounds():
    rng = random.Random(0)
    numbers = {generate_random_number(rng, 1, 2) for _ in range(100)}

    assert numbers == {1, 2}


def test_exponential_favours_low_values():
    rng = random.Random(1)
    numbers = [generate_random_number(rng, 1, 100, "exponential") for _ in range(5000)]

    lowest = sum(1 for n in numbers if n <= 10)
    middle = sum(1 for n in numbers if 41 <= n <= 50)
    assert lowest > middle


def test_same_seed_same_number():
    assert generate_random_number(random.Random(3), 1, 100) == generate_random_number(
        random.Random(3), 1, 100
    )


def test_empty_range():
    with pytest.raises(ValueError, match="must be less than max"):
        generate_random_number(random.Random(), 5, 5)


def test_invalid_distribution():
    with pytest.raises(ValueError, match="Invalid distribution: binomial"):
        generate_random_number(random.Random(), 1, 10, "binomial")


def test_explain_calculation():
    text, result = explain_calculation("multiply", 7, 8)

    assert result == 56
    assert text == "To multiply 7 by 8, you calculate the product: 7 × 8 = 56"


def test_explain_division():
    text, result = explain_calculation("divide", 1, 4)

    assert result == 0.25
    assert text.endswith("1 ÷ 4 = 0.25")


def test_explain_distribution():
    assert "equal probability" in explain_distribution("uniform", 1, 10)
    assert "mean 25.50" in explain_distribution("normal", 1, 50)
    assert "(1-25)" in explain_distribution("exponential", 1, 50)


def test_math_constants():
    assert MATH_CONSTANTS["pi"] == math.pi
    assert MATH_CONSTANTS["golden_ratio"] == pytest.approx(1.6180339887)
