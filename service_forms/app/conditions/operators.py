"""
Operator registry for the form constraint engine.

Every operator is a total function of ``(actual, expected)``: type
mismatches resolve to False instead of raising, so a misconfigured
comparison reads as "condition not met".
"""

import math
import re
from decimal import Decimal
from typing import Callable, Dict, Optional, Union

from .models import ConditionOperator, Value


Number = Union[int, float, Decimal]

# Plain decimal notation only: no nan/inf, no digit separators
NUMERIC_STRING = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$", re.ASCII)


def is_list(value: Value) -> bool:
    return isinstance(value, (list, tuple))


def to_number(value: Value) -> Optional[Number]:
    """Numeric view of a value, or None when it is not a number.

    Booleans are not numbers here; numeric strings are. Ints stay ints and
    strings become Decimals, so comparisons are exact and never overflow.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, str) and NUMERIC_STRING.match(value):
        return Decimal(value.strip())
    return None


def values_equal(actual: Value, expected: Value) -> bool:
    """Structural equality on normalized values."""
    if is_list(actual) or is_list(expected):
        if not (is_list(actual) and is_list(expected)) or len(actual) != len(expected):
            return False
        return all(values_equal(a, e) for a, e in zip(actual, expected))

    if isinstance(actual, bool) or isinstance(expected, bool):
        return isinstance(actual, bool) and isinstance(expected, bool) and actual == expected

    actual_number = to_number(actual)
    expected_number = to_number(expected)
    if actual_number is not None and expected_number is not None:
        return actual_number == expected_number

    return type(actual) is type(expected) and actual == expected


def is_empty(value: Value) -> bool:
    return value is None or value == "" or (is_list(value) and len(value) == 0)


def _compare(check: Callable[[float, float], bool]) -> Callable[[Value, Value], bool]:
    def apply_comparison(actual: Value, expected: Value) -> bool:
        actual_number = to_number(actual)
        expected_number = to_number(expected)
        if actual_number is None or expected_number is None:
            return False
        return check(actual_number, expected_number)
    return apply_comparison


def _in(actual: Value, expected: Value) -> bool:
    if not is_list(expected):
        return False
    return any(values_equal(actual, item) for item in expected)


def _not_in(actual: Value, expected: Value) -> bool:
    if not is_list(expected):
        return False
    return not _in(actual, expected)


def _contains(actual: Value, expected: Value) -> bool:
    if not is_list(actual):
        return False
    return any(values_equal(item, expected) for item in actual)


def _not_contains(actual: Value, expected: Value) -> bool:
    if not is_list(actual):
        return False
    return not _contains(actual, expected)


OPERATORS: Dict[ConditionOperator, Callable[[Value, Value], bool]] = {
    ConditionOperator.EQUALS: values_equal,
    ConditionOperator.NOT_EQUALS: lambda actual, expected: not values_equal(actual, expected),
    ConditionOperator.GREATER_THAN: _compare(lambda a, e: a > e),
    ConditionOperator.GREATER_THAN_OR_EQUAL: _compare(lambda a, e: a >= e),
    ConditionOperator.LESS_THAN: _compare(lambda a, e: a < e),
    ConditionOperator.LESS_THAN_OR_EQUAL: _compare(lambda a, e: a <= e),
    ConditionOperator.IN: _in,
    ConditionOperator.NOT_IN: _not_in,
    ConditionOperator.CONTAINS: _contains,
    ConditionOperator.NOT_CONTAINS: _not_contains,
    ConditionOperator.EMPTY: lambda actual, expected: is_empty(actual),
    ConditionOperator.NOT_EMPTY: lambda actual, expected: not is_empty(actual),
}


def apply(operator: ConditionOperator, actual: Value, expected: Value) -> bool:
    """Apply an operator; unknown operators never match."""
    handler = OPERATORS.get(operator)
    if handler is None:
        return False
    return handler(actual, expected)
