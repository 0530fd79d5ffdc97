"""
Condition data models for the form constraint engine.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterator, Optional, Tuple, Union

from shared.errors import SchemaDefinitionError


# None, bool, int/float, str, or a list of those
Value = Any


class ConditionOperator(str, Enum):
    """Comparison operators."""
    EQUALS = "="
    NOT_EQUALS = "!="
    GREATER_THAN = ">"
    GREATER_THAN_OR_EQUAL = ">="
    LESS_THAN = "<"
    LESS_THAN_OR_EQUAL = "<="
    IN = "in"
    NOT_IN = "not_in"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    EMPTY = "empty"
    NOT_EMPTY = "not_empty"


LIST_OPERATORS = (ConditionOperator.IN, ConditionOperator.NOT_IN)


def freeze_value(value: Value) -> Value:
    """Turn list values into tuples so authored conditions stay immutable."""
    if isinstance(value, (list, tuple)):
        return tuple(freeze_value(item) for item in value)
    return value


def coerce_operator(operator: Union[str, ConditionOperator]) -> ConditionOperator:
    """Resolve an operator symbol, failing at schema-compile time on unknown ones."""
    if isinstance(operator, ConditionOperator):
        return operator
    try:
        return ConditionOperator(operator)
    except ValueError:
        raise SchemaDefinitionError(
            f"Unknown condition operator '{operator}'",
            {"operator": operator, "supported": [op.value for op in ConditionOperator]}
        ) from None


@dataclass(frozen=True)
class Comparison:
    """Atomic comparison of one context value against an expected value."""
    field: str
    operator: ConditionOperator
    value: Value = None

    def __post_init__(self):
        if not isinstance(self.field, str) or not self.field:
            raise SchemaDefinitionError("Comparison field must be a non-empty string", {"field": self.field})

        operator = coerce_operator(self.operator)
        value = freeze_value(self.value)
        if operator in LIST_OPERATORS and not isinstance(value, tuple):
            raise SchemaDefinitionError(
                f"Operator '{operator.value}' expects a list value",
                {"field": self.field, "value": self.value}
            )

        object.__setattr__(self, "operator", operator)
        object.__setattr__(self, "value", value)


@dataclass(frozen=True)
class And:
    """True iff every child is true; empty is true."""
    children: Tuple["Condition", ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "children", tuple(self.children))


@dataclass(frozen=True)
class Or:
    """True iff any child is true; empty is false."""
    children: Tuple["Condition", ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "children", tuple(self.children))


@dataclass(frozen=True)
class Not:
    """Negation of a single child."""
    child: "Condition"


@dataclass(frozen=True)
class Predicate:
    """Escape hatch for logic that cannot be expressed declaratively.

    The callback receives the evaluation scope (a read-only mapping of the
    submitted values) and must be side-effect free.
    """
    callback: Callable[..., bool]
    description: Optional[str] = field(default=None, compare=False)

    def __post_init__(self):
        if not callable(self.callback):
            raise SchemaDefinitionError("Predicate callback must be callable")


Condition = Union[Comparison, And, Or, Not, Predicate]


class DataContext(Mapping):
    """Immutable view over submitted or prefilled form values.

    Missing keys read as None through ``get``.
    """

    __slots__ = ("_values",)

    def __init__(self, values: Optional[Mapping] = None):
        self._values: Dict[str, Value] = dict(values or {})

    @classmethod
    def of(cls, values: Union["DataContext", Mapping, None]) -> "DataContext":
        if isinstance(values, DataContext):
            return values
        return cls(values)

    def __getitem__(self, key: str) -> Value:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._values!r})"
