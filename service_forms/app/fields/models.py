"""
Field data models for the form constraint engine.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from shared.errors import SchemaDefinitionError
from ..conditions.engine import Concern
from ..conditions.models import Comparison, Condition
from ..conditions.parser import comparisons, dump_condition, dump_simple


Rules = Union[str, Tuple[str, ...], None]


# Result of a concern when no condition is attached
CONCERN_DEFAULTS: Dict[Concern, bool] = {
    Concern.VISIBLE: True,
    Concern.REQUIRED: False,
    Concern.DISABLED: False,
}


@dataclass(frozen=True)
class FieldDescriptor:
    """A form field and the conditions attached to it."""
    attribute: str
    label: Optional[str] = None
    visibility: Optional[Condition] = None
    required_condition: Optional[Condition] = None
    disabled_condition: Optional[Condition] = None
    required: bool = False
    rules: Rules = None
    field_type: str = "text"
    meta: Mapping[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self):
        if not isinstance(self.attribute, str) or not self.attribute.strip():
            raise SchemaDefinitionError("Field attribute must be a non-empty string", {"attribute": self.attribute})
        if isinstance(self.rules, list):
            object.__setattr__(self, "rules", tuple(self.rules))
        object.__setattr__(self, "meta", MappingProxyType(dict(self.meta)))

    def condition_for(self, concern: Concern) -> Optional[Condition]:
        """Condition attached for a concern, if any."""
        if concern == Concern.VISIBLE:
            return self.visibility
        if concern == Concern.REQUIRED:
            return self.required_condition
        return self.disabled_condition

    def default_for(self, concern: Concern) -> bool:
        """Result of a concern when no condition is attached."""
        if concern == Concern.REQUIRED:
            return self.required
        return CONCERN_DEFAULTS[concern]

    def dependencies(self) -> List[str]:
        """Context attributes read by the declarative conditions, in order."""
        seen: List[str] = []
        for condition in (self.visibility, self.required_condition, self.disabled_condition):
            for leaf in comparisons(condition):
                if leaf.field not in seen:
                    seen.append(leaf.field)
        return seen

    def to_dict(self) -> Dict[str, Any]:
        """Field metadata for the UI layer."""
        meta = dict(self.meta)
        if self.visibility is not None and "dependsOn" not in meta and "showWhen" not in meta:
            if isinstance(self.visibility, Comparison):
                meta["dependsOn"] = dump_simple(self.visibility)
            else:
                meta["showWhen"] = dump_condition(self.visibility)
        if isinstance(self.required_condition, Comparison):
            meta["requiredWhen"] = dump_simple(self.required_condition)
        elif self.required_condition is not None:
            meta["requiredWhen"] = dump_condition(self.required_condition)
        if isinstance(self.disabled_condition, Comparison):
            meta["disabledWhen"] = dump_simple(self.disabled_condition)
        elif self.disabled_condition is not None:
            meta["disabledWhen"] = dump_condition(self.disabled_condition)

        return {
            "type": self.field_type,
            "attribute": self.attribute,
            "label": self.label,
            "required": self.required,
            "rules": list(self.rules) if isinstance(self.rules, tuple) else self.rules,
            "meta": meta,
        }


@dataclass
class FieldState:
    """Evaluated state of one field for one data context."""
    visible: bool
    required: bool
    disabled: bool

    def to_dict(self) -> Dict[str, bool]:
        return {"visible": self.visible, "required": self.required, "disabled": self.disabled}
