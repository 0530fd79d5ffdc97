"""
Conditions package.

Defines the condition model and evaluator used by form field
constraints. Conditions compose atomic comparisons with AND/OR/NOT
nesting and predicate callbacks, and evaluate to a boolean against the
submitted form values.

Modules of interest:
- models: Condition nodes, operators, and the data context.
- operators: Total comparison functions, one per operator.
- engine: Tree evaluation and the cycle-guarded field entry point.
- parser: Authored condition documents to and from Condition trees.
"""

from .engine import Concern, EvaluationScope, FieldRef, evaluate
from .models import (
    And, Comparison, Condition, ConditionOperator, DataContext, Not, Or, Predicate
)
from .parser import dump_condition, parse_condition

__all__ = [
    "And", "Comparison", "Concern", "Condition", "ConditionOperator",
    "DataContext", "EvaluationScope", "FieldRef", "Not", "Or", "Predicate",
    "dump_condition", "evaluate", "parse_condition",
]
