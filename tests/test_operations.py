"""
Tests for the calculator arithmetic.
"""
import pytest

from error_handling import DomainError
from mcp_servers.operations import (
    OPERATIONS,
    calculate,
    divide,
    format_number,
    get_operation_emoji,
    get_operation_name,
    get_operation_symbol,
    normalize_number,
)


class TestCalculate:

    @pytest.mark.parametrize("operation,num1,num2,expected,expression", [
        ("add", 2, 3, 5, "2 + 3"),
        ("subtract", 2, 3, -1, "2 - 3"),
        ("multiply", 4, 2.5, 10, "4 × 2.5"),
        ("divide", 10, 2, 5, "10 ÷ 2"),
        ("divide", 7, 2, 3.5, "7 ÷ 2"),
    ])
    def test_operations(self, operation, num1, num2, expected, expression):
        result = calculate(operation, num1, num2)

        assert result == {"result": expected, "expression": expression, "operation": operation}

    def test_integral_float_result_is_reported_as_int(self):
        result = calculate("divide", 10, 2)
        assert result["result"] == 5
        assert isinstance(result["result"], int)

    def test_divide_by_zero(self):
        with pytest.raises(DomainError) as exc_info:
            calculate("divide", 1, 0)

        assert exc_info.value.message == "Cannot divide by zero"
        assert exc_info.value.details == {"dividend": 1, "divisor": 0}

    def test_divide_by_float_zero(self):
        with pytest.raises(DomainError):
            divide(1.5, 0.0)

    def test_unknown_operation(self):
        with pytest.raises(DomainError) as exc_info:
            calculate("modulo", 1, 2)
        assert "modulo" in exc_info.value.message

    def test_overflow_is_rejected(self):
        with pytest.raises(DomainError) as exc_info:
            calculate("multiply", 1e308, 10)
        assert exc_info.value.message == "Result is not a finite number"

    def test_large_integers_are_exact(self):
        result = calculate("multiply", 10**20, 10**20)
        assert result["result"] == 10**40


class TestFormatting:

    def test_normalize_number(self):
        assert normalize_number(5.0) == 5
        assert isinstance(normalize_number(5.0), int)
        assert normalize_number(2.5) == 2.5
        assert normalize_number(3) == 3

    def test_format_number(self):
        assert format_number(10.0) == "10"
        assert format_number(0.1) == "0.1"

    def test_every_operation_has_display_metadata(self):
        for operation in OPERATIONS:
            assert get_operation_name(operation)
            assert get_operation_symbol(operation)
            assert get_operation_emoji(operation)

    def test_names_and_symbols(self):
        assert get_operation_name("divide") == "Division"
        assert get_operation_symbol("multiply") == "×"
