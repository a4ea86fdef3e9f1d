"""
Calculator operations

The four basic arithmetic operations used by the calculator tools.
"""

import math
from typing import Any, Dict, Literal, Union

from error_handling import DomainError, trace_span

Operation = Literal["add", "subtract", "multiply", "divide"]
Number = Union[int, float]

OPERATIONS = ("add", "subtract", "multiply", "divide")

OPERATION_NAMES = {
    "add": "Addition",
    "subtract": "Subtraction",
    "multiply": "Multiplication",
    "divide": "Division",
}

OPERATION_SYMBOLS = {
    "add": "+",
    "subtract": "-",
    "multiply": "×",
    "divide": "÷",
}

OPERATION_EMOJIS = {
    "add": "➕",
    "subtract": "➖",
    "multiply": "✖️",
    "divide": "➗",
}


def add(a: Number, b: Number) -> Number:
    return a + b


def subtract(a: Number, b: Number) -> Number:
    return a - b


def multiply(a: Number, b: Number) -> Number:
    return a * b


def divide(a: Number, b: Number) -> Number:
    """Divide two numbers. Raises DomainError when dividing by zero."""
    if b == 0:
        raise DomainError("Cannot divide by zero", details={"dividend": a, "divisor": b})
    return a / b


_FUNCTIONS = {
    "add": add,
    "subtract": subtract,
    "multiply": multiply,
    "divide": divide,
}


def normalize_number(value: Number) -> Number:
    """Collapse integral floats to ints so 10 / 2 reads as 5, not 5.0."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def format_number(value: Number) -> str:
    return str(normalize_number(value))


@trace_span("calculator.calculate")
def calculate(operation: Operation, num1: Number, num2: Number) -> Dict[str, Any]:
    """
    Execute a calculation.

    Returns:
        ``{"result", "expression", "operation"}``, e.g.
        ``{"result": 5, "expression": "10 ÷ 2", "operation": "divide"}``
    """
    func = _FUNCTIONS.get(operation)
    if func is None:
        raise DomainError(f"Unknown operation: {operation}", details={"operation": operation})

    result = func(num1, num2)
    if isinstance(result, float) and not math.isfinite(result):
        raise DomainError("Result is not a finite number", details={"operation": operation})
    result = normalize_number(result)
    return {
        "result": result,
        "expression": f"{format_number(num1)} {OPERATION_SYMBOLS[operation]} {format_number(num2)}",
        "operation": operation,
    }


def get_operation_name(operation: str) -> str:
    return OPERATION_NAMES[operation]


def get_operation_symbol(operation: str) -> str:
    return OPERATION_SYMBOLS[operation]


def get_operation_emoji(operation: str) -> str:
    return OPERATION_EMOJIS[operation]
