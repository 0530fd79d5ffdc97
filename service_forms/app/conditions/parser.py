"""
Conversion between authored condition documents and Condition trees.

Accepted document shapes::

    {"type": "comparison", "field": "level", "operator": ">=", "value": 5}
    {"type": "and", "conditions": [...]}        # also "or"
    {"type": "not", "condition": {...}}
    {"op": "=", "field": "enabled", "value": True}
    {"and": [...]}  /  {"or": [...]}  /  {"not": {...}}
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from shared.config import get_config
from shared.errors import SchemaDefinitionError
from .models import And, Comparison, Condition, ConditionOperator, Not, Or, Predicate


class ComparisonDocument(BaseModel):
    """Leaf condition as authored."""
    field: str = Field(..., min_length=1, description="Context attribute to read")
    operator: ConditionOperator = Field(ConditionOperator.EQUALS, description="Comparison operator")
    value: Any = Field(None, description="Expected value")


def parse_condition(document: Any, max_depth: Optional[int] = None) -> Condition:
    """Build a Condition tree from an authored document."""
    if max_depth is None:
        max_depth = get_config().max_condition_depth
    return _parse(document, 1, max_depth)


def _parse(document: Any, depth: int, max_depth: int) -> Condition:
    if depth > max_depth:
        raise SchemaDefinitionError(
            "Condition nesting too deep",
            {"max_depth": max_depth}
        )

    if isinstance(document, (Comparison, And, Or, Not, Predicate)):
        return document

    if callable(document):
        return Predicate(document)

    if not isinstance(document, dict):
        raise SchemaDefinitionError(
            "Condition document must be a mapping",
            {"document": repr(document)}
        )

    kind = document.get("type")
    if kind is None:
        for key in ("and", "or", "not"):
            if key in document:
                kind = key
                break
        else:
            kind = "comparison"

    if kind == "comparison":
        return _parse_comparison(document)

    if kind in ("and", "or"):
        children = document.get("conditions", document.get(kind))
        if not isinstance(children, (list, tuple)):
            raise SchemaDefinitionError(
                f"'{kind}' condition requires a list of conditions",
                {"document": document}
            )
        parsed = [_parse(child, depth + 1, max_depth) for child in children]
        return And(parsed) if kind == "and" else Or(parsed)

    if kind == "not":
        child = document.get("condition", document.get("not"))
        if child is None:
            raise SchemaDefinitionError("'not' condition requires a condition", {"document": document})
        return Not(_parse(child, depth + 1, max_depth))

    raise SchemaDefinitionError(f"Unknown condition type '{kind}'", {"document": document})


def _parse_comparison(document: Dict[str, Any]) -> Comparison:
    payload = {
        "field": document.get("field", document.get("attribute")),
        "operator": document.get("operator", document.get("op", ConditionOperator.EQUALS)),
        "value": document.get("value"),
    }
    try:
        leaf = ComparisonDocument(**payload)
    except ValidationError as e:
        raise SchemaDefinitionError(
            "Invalid comparison condition",
            {"document": document, "errors": e.errors(include_url=False, include_context=False)}
        ) from e

    return Comparison(leaf.field, leaf.operator, leaf.value)


def dump_condition(condition: Condition) -> Dict[str, Any]:
    """Serialize a Condition tree for the UI layer."""
    if isinstance(condition, Comparison):
        return {
            "type": "comparison",
            "field": condition.field,
            "operator": condition.operator.value,
            "value": _thaw(condition.value),
        }

    if isinstance(condition, (And, Or)):
        return {
            "type": "and" if isinstance(condition, And) else "or",
            "conditions": [dump_condition(child) for child in condition.children],
        }

    if isinstance(condition, Not):
        return {"type": "not", "condition": dump_condition(condition.child)}

    if isinstance(condition, Predicate):
        # Callbacks only run server side
        return {"type": "callback", "frontend": False}

    raise TypeError(f"Unsupported condition node: {type(condition).__name__}")


def _thaw(value: Any) -> Any:
    if isinstance(value, tuple):
        return [_thaw(item) for item in value]
    return value


def dump_simple(condition: Comparison) -> Dict[str, Any]:
    """Single-condition shape: {attribute, operator, value}."""
    return {
        "attribute": condition.field,
        "operator": condition.operator.value,
        "value": _thaw(condition.value),
    }


def comparisons(condition: Optional[Condition]) -> List[Comparison]:
    """All comparison leaves of a tree, left to right."""
    if condition is None:
        return []
    if isinstance(condition, Comparison):
        return [condition]
    if isinstance(condition, (And, Or)):
        leaves: List[Comparison] = []
        for child in condition.children:
            leaves.extend(comparisons(child))
        return leaves
    if isinstance(condition, Not):
        return comparisons(condition.child)
    return []
