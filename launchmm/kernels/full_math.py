"""
Multiply/divide helpers with explicit rounding.

Python ints never overflow, so these only pin down the rounding direction;
callers that care about fixed-width results check bounds themselves.
"""

from __future__ import annotations


def mul_div(a: int, b: int, denominator: int) -> int:
    """floor(a * b / denominator)"""
    if denominator <= 0:
        raise ZeroDivisionError("mul_div denominator must be positive")
    return (a * b) // denominator


def mul_div_rounding_up(a: int, b: int, denominator: int) -> int:
    """ceil(a * b / denominator)"""
    if denominator <= 0:
        raise ZeroDivisionError("mul_div denominator must be positive")
    return -((-(a * b)) // denominator)


def div_rounding_up(a: int, b: int) -> int:
    if b <= 0:
        raise ZeroDivisionError("div_rounding_up divisor must be positive")
    return -((-a) // b)
