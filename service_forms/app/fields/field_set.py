"""
Resource field set: the ordered fields of one resource form.
"""

from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Union

from shared.config import FormsConfig, get_config
from shared.errors import SchemaDefinitionError, UnknownFieldError
from shared.logging import get_logger
from ..conditions.engine import (
    Concern, EvaluationScope, EvaluationStack, FieldRef, guarded_evaluate
)
from ..conditions.models import DataContext
from .builder import flatten
from .models import FieldDescriptor, FieldState


ContextLike = Union[DataContext, Mapping[str, Any], None]


class ResourceFieldSet:
    """Ordered, immutable collection of field descriptors.

    Descriptors are shared read-only across evaluations. Each guarded
    entry point call allocates its own stack unless it is re-entered from
    a predicate, in which case the caller's stack is threaded through.
    """

    def __init__(
        self,
        fields: Sequence[FieldDescriptor],
        resource: Optional[str] = None,
        config: Optional[FormsConfig] = None,
    ):
        self.logger = get_logger("forms.field_set").bind(resource=resource)
        self.resource = resource
        self.config = config or get_config()

        descriptors: Dict[str, FieldDescriptor] = {}
        for descriptor in fields:
            if descriptor.attribute in descriptors:
                raise SchemaDefinitionError(
                    f"Duplicate field attribute '{descriptor.attribute}'",
                    {"attribute": descriptor.attribute, "resource": resource}
                )
            descriptors[descriptor.attribute] = descriptor

        self._fields = tuple(descriptors.values())
        self._by_attribute = descriptors

        self.logger.debug(
            "Field set compiled",
            fields=len(self._fields)
        )

    @classmethod
    def from_schema(
        cls,
        items: Sequence[Any],
        resource: Optional[str] = None,
        config: Optional[FormsConfig] = None,
    ) -> "ResourceFieldSet":
        """Build from fields nested in sections and groups."""
        return cls(flatten(items), resource=resource, config=config)

    @property
    def fields(self) -> Sequence[FieldDescriptor]:
        return self._fields

    @property
    def attributes(self) -> List[str]:
        return [descriptor.attribute for descriptor in self._fields]

    def __iter__(self) -> Iterator[FieldDescriptor]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __contains__(self, attribute: object) -> bool:
        return attribute in self._by_attribute

    def get(self, attribute: str) -> FieldDescriptor:
        """Look up a descriptor by attribute."""
        try:
            return self._by_attribute[attribute]
        except KeyError:
            raise UnknownFieldError(attribute, self.resource) from None

    def is_visible(self, attribute: str, context: ContextLike, stack: Optional[EvaluationStack] = None) -> bool:
        return self._resolve(attribute, Concern.VISIBLE, context, stack)

    def is_required(self, attribute: str, context: ContextLike, stack: Optional[EvaluationStack] = None) -> bool:
        return self._resolve(attribute, Concern.REQUIRED, context, stack)

    def is_disabled(self, attribute: str, context: ContextLike, stack: Optional[EvaluationStack] = None) -> bool:
        return self._resolve(attribute, Concern.DISABLED, context, stack)

    def _resolve(
        self,
        attribute: str,
        concern: Concern,
        context: ContextLike,
        stack: Optional[EvaluationStack],
    ) -> bool:
        if stack is None:
            # Predicates pass their scope back in; reuse its stack
            stack = context._stack if isinstance(context, EvaluationScope) else []

        descriptor = self.get(attribute)
        return guarded_evaluate(
            FieldRef(attribute, concern),
            descriptor.condition_for(concern),
            descriptor.default_for(concern),
            DataContext.of(context),
            stack,
            self._scope,
        )

    def _scope(self, context: DataContext, stack: EvaluationStack) -> EvaluationScope:
        if isinstance(context, EvaluationScope) and context._field_set is self and context._stack is stack:
            return context
        return EvaluationScope(context, self, stack)

    def evaluate(self, attribute: str, context: ContextLike) -> FieldState:
        """Evaluate the three concerns of one field independently."""
        context = DataContext.of(context)
        return FieldState(
            visible=self.is_visible(attribute, context, stack=[]),
            required=self.is_required(attribute, context, stack=[]),
            disabled=self.is_disabled(attribute, context, stack=[]),
        )

    def evaluate_all(self, context: ContextLike) -> Dict[str, FieldState]:
        """Evaluate every field, in declaration order.

        Hidden fields are still evaluated for required and disabled.
        CircularDependencyError propagates to the caller.
        """
        context = DataContext.of(context)
        results = {
            descriptor.attribute: self.evaluate(descriptor.attribute, context)
            for descriptor in self._fields
        }

        if self.config.log_evaluations:
            self.logger.debug(
                "Field set evaluated",
                results={attribute: state.to_dict() for attribute, state in results.items()}
            )

        return results

    def visible_fields(self, context: ContextLike) -> List[FieldDescriptor]:
        """Descriptors visible for the context, in declaration order."""
        context = DataContext.of(context)
        return [
            descriptor for descriptor in self._fields
            if self.is_visible(descriptor.attribute, context, stack=[])
        ]

    def to_dict(self) -> Dict[str, Any]:
        """Schema metadata for the UI layer."""
        return {
            "resource": self.resource,
            "fields": [descriptor.to_dict() for descriptor in self._fields],
        }
