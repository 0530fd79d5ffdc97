"""
Condition evaluation engine for the form constraint engine.
"""

from enum import Enum
from typing import Any, Callable, List, Mapping, NamedTuple, Optional

from shared.errors import CircularDependencyError
from . import operators
from .models import And, Comparison, Condition, DataContext, Not, Or, Predicate


class Concern(str, Enum):
    """What a field-level condition decides."""
    VISIBLE = "visible"
    REQUIRED = "required"
    DISABLED = "disabled"


class FieldRef(NamedTuple):
    """A field-level condition currently being resolved."""
    attribute: str
    concern: Concern


# Guard stack for one top-level evaluation. Allocated per call, never shared.
EvaluationStack = List[FieldRef]


class EvaluationScope(DataContext):
    """Data context handed to predicates.

    Reads like the submitted values, and lets a predicate ask about other
    fields of the same form through the guarded entry points, reusing the
    stack of the evaluation that invoked it.
    """

    __slots__ = ("_field_set", "_stack")

    def __init__(self, values: Mapping, field_set: Any, stack: EvaluationStack):
        super().__init__(values)
        self._field_set = field_set
        self._stack = stack

    def is_visible(self, attribute: str) -> bool:
        return self._field_set.is_visible(attribute, self, stack=self._stack)

    def is_required(self, attribute: str) -> bool:
        return self._field_set.is_required(attribute, self, stack=self._stack)

    def is_disabled(self, attribute: str) -> bool:
        return self._field_set.is_disabled(attribute, self, stack=self._stack)


def evaluate(condition: Condition, context: DataContext, stack: EvaluationStack) -> bool:
    """Evaluate a condition tree against a data context.

    And/Or short-circuit left to right, so earlier comparisons can guard
    later predicates against missing values. Predicates are invoked with
    ``context`` as is; cycle detection happens only in ``guarded_evaluate``.
    """
    if isinstance(condition, Comparison):
        actual = context.get(condition.field)
        return operators.apply(condition.operator, actual, condition.value)

    if isinstance(condition, And):
        for child in condition.children:
            if not evaluate(child, context, stack):
                return False
        return True

    if isinstance(condition, Or):
        for child in condition.children:
            if evaluate(child, context, stack):
                return True
        return False

    if isinstance(condition, Not):
        return not evaluate(condition.child, context, stack)

    if isinstance(condition, Predicate):
        return bool(condition.callback(context))

    raise TypeError(f"Unsupported condition node: {type(condition).__name__}")


def guarded_evaluate(
    ref: FieldRef,
    condition: Optional[Condition],
    default: bool,
    context: DataContext,
    stack: EvaluationStack,
    scope_factory: Callable[[DataContext, EvaluationStack], DataContext],
) -> bool:
    """Resolve one field-level condition, failing fast on re-entry.

    Re-entry is keyed on the attribute alone: any concern of a field that
    is already being resolved counts as a cycle.
    """
    if ref.attribute in {entry.attribute for entry in stack}:
        chain = [entry.attribute for entry in stack] + [ref.attribute]
        raise CircularDependencyError(ref.attribute, chain)

    stack.append(ref)
    try:
        if condition is None:
            return default
        return evaluate(condition, scope_factory(context, stack), stack)
    finally:
        stack.pop()
