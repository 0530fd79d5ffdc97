"""
Authoring API for form schemas.

Fields are declared fluently and compiled into immutable descriptors::

    Field.make("Company Name").depends_on("account_type", "business")
    Field.make("VIP Discount").depends_on_all([("is_vip", True), ("total", 100, ">=")])
    Field.make("Admin Note").show_when(lambda data: data.get("role") == "admin")

Sections and groups only arrange fields for display.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from shared.errors import SchemaDefinitionError
from ..conditions.models import And, Comparison, Condition, Not, Or
from ..conditions.parser import dump_condition, dump_simple, parse_condition
from .models import FieldDescriptor


ConditionLike = Union[Condition, Dict[str, Any], Callable[..., bool]]


def snake_case(label: str) -> str:
    """'Company Name' -> 'company_name'"""
    words = re.sub(r"([a-z0-9])([A-Z])", r"\1 \2", label)
    words = re.sub(r"[^0-9A-Za-z]+", " ", words)
    return "_".join(word.lower() for word in words.split())


def _tuple_condition(item: Sequence[Any]) -> Comparison:
    if not 2 <= len(item) <= 3:
        raise SchemaDefinitionError(
            "Condition tuples take (attribute, value[, operator])",
            {"condition": list(item)}
        )
    attribute, value = item[0], item[1]
    operator = item[2] if len(item) == 3 else "="
    return Comparison(attribute, operator, value)


class Field:
    """Fluent field definition."""

    field_type = "text"

    def __init__(self, label: str, attribute: Optional[str] = None):
        self.label = label
        self.attribute = attribute if attribute is not None else snake_case(label)
        self.default_value: Any = None
        self.rules_value: Union[str, List[str], None] = None
        self.is_required = False
        self.meta_values: Dict[str, Any] = {}

        self._depends_on: Optional[Condition] = None
        self._show_when: Optional[Condition] = None
        self._hide_when: Optional[Condition] = None
        self._required_when: Optional[Condition] = None
        self._disabled_when: Optional[Condition] = None

    @classmethod
    def make(cls, label: str, attribute: Optional[str] = None) -> "Field":
        return cls(label, attribute)

    def rules(self, rules: Union[str, List[str]]) -> "Field":
        self.rules_value = rules
        if isinstance(rules, str) and "required" in rules.split("|"):
            self.is_required = True
        return self

    def required(self, required: bool = True) -> "Field":
        self.is_required = required
        return self

    def default(self, value: Any) -> "Field":
        self.default_value = value
        return self

    def meta(self, **meta: Any) -> "Field":
        self.meta_values.update(meta)
        return self

    def placeholder(self, placeholder: str) -> "Field":
        return self.meta(placeholder=placeholder)

    def help(self, help_text: str) -> "Field":
        return self.meta(helpText=help_text)

    def depends_on(self, attribute: str, value: Any, operator: str = "=") -> "Field":
        """Show the field when another field matches."""
        self._depends_on = Comparison(attribute, operator, value)
        return self.meta(dependsOn=dump_simple(self._depends_on))

    def depends_on_all(self, conditions: Sequence[Sequence[Any]]) -> "Field":
        """Show the field when every (attribute, value[, operator]) matches."""
        leaves = [_tuple_condition(item) for item in conditions]
        self._depends_on = And(leaves)
        return self.meta(dependsOn={"type": "all", "conditions": [dump_simple(leaf) for leaf in leaves]})

    def depends_on_any(self, conditions: Sequence[Sequence[Any]]) -> "Field":
        """Show the field when any (attribute, value[, operator]) matches."""
        leaves = [_tuple_condition(item) for item in conditions]
        self._depends_on = Or(leaves)
        return self.meta(dependsOn={"type": "any", "conditions": [dump_simple(leaf) for leaf in leaves]})

    def show_when(self, condition: ConditionLike) -> "Field":
        self._show_when = parse_condition(condition)
        return self.meta(showWhen=dump_condition(self._show_when))

    def hide_when(self, condition: ConditionLike) -> "Field":
        self._hide_when = parse_condition(condition)
        return self.meta(hideWhen=dump_condition(self._hide_when))

    def required_when(self, attribute: Union[str, ConditionLike], value: Any = None, operator: str = "=") -> "Field":
        self._required_when = self._condition_arg(attribute, value, operator)
        return self

    def disabled_when(self, attribute: Union[str, ConditionLike], value: Any = None, operator: str = "=") -> "Field":
        self._disabled_when = self._condition_arg(attribute, value, operator)
        return self

    @staticmethod
    def _condition_arg(attribute: Union[str, ConditionLike], value: Any, operator: str) -> Condition:
        if isinstance(attribute, str):
            return Comparison(attribute, operator, value)
        return parse_condition(attribute)

    def visibility(self) -> Optional[Condition]:
        """depends-on AND show-when AND NOT hide-when."""
        parts: List[Condition] = [c for c in (self._depends_on, self._show_when) if c is not None]
        if self._hide_when is not None:
            parts.append(Not(self._hide_when))
        if not parts:
            return None
        if len(parts) == 1:
            return parts[0]
        return And(parts)

    def descriptor(self) -> FieldDescriptor:
        """Compile into an immutable FieldDescriptor."""
        meta = dict(self.meta_values)
        if self.default_value is not None:
            meta.setdefault("default", self.default_value)
        return FieldDescriptor(
            attribute=self.attribute,
            label=self.label,
            visibility=self.visibility(),
            required_condition=self._required_when,
            disabled_condition=self._disabled_when,
            required=self.is_required,
            rules=self.rules_value,
            field_type=self.field_type,
            meta=meta,
        )


class Text(Field):
    field_type = "text"


class Number(Field):
    field_type = "number"


class Select(Field):
    field_type = "select"


class Boolean(Field):
    field_type = "boolean"


@dataclass
class Group:
    """Fields rendered side by side."""
    fields: List[Any] = field(default_factory=list)
    label: Optional[str] = None
    depends_on: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "group",
            "label": self.label,
            "dependsOn": self.depends_on,
            "fields": [_item_dict(item) for item in self.fields],
        }


@dataclass
class Section:
    """Titled block of fields and groups."""
    title: str
    fields: List[Any] = field(default_factory=list)
    description: Optional[str] = None
    collapsible: bool = False
    collapsed: bool = False
    depends_on: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "section",
            "title": self.title,
            "description": self.description,
            "collapsible": self.collapsible,
            "collapsed": self.collapsed,
            "dependsOn": self.depends_on,
            "fields": [_item_dict(item) for item in self.fields],
        }


def _item_dict(item: Any) -> Dict[str, Any]:
    if isinstance(item, Field):
        return item.descriptor().to_dict()
    return item.to_dict()


def flatten(items: Sequence[Any]) -> List[FieldDescriptor]:
    """Flatten sections and groups into descriptors, in declaration order."""
    flattened: List[FieldDescriptor] = []
    for item in items:
        if isinstance(item, (Section, Group)):
            flattened.extend(flatten(item.fields))
        elif isinstance(item, Field):
            flattened.append(item.descriptor())
        elif isinstance(item, FieldDescriptor):
            flattened.append(item)
        else:
            raise SchemaDefinitionError(
                "Form schema items must be fields, groups or sections",
                {"item": repr(item)}
            )
    return flattened
