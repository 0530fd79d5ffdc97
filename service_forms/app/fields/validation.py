"""
Validation rule assembly driven by field constraints.
"""

from typing import Any, Dict, List, Mapping, Union

from ..conditions.models import DataContext
from .field_set import ResourceFieldSet
from .models import Rules


REQUIRED_RULE = "required"

AssembledRules = Union[str, List[str]]


def with_required(rules: Rules) -> AssembledRules:
    """Prepend the required rule unless it is already present."""
    if rules is None or rules == "":
        return [REQUIRED_RULE]
    if isinstance(rules, str):
        if REQUIRED_RULE in rules.split("|"):
            return rules
        return f"{REQUIRED_RULE}|{rules}"
    rules = list(rules)
    if REQUIRED_RULE not in rules:
        rules.insert(0, REQUIRED_RULE)
    return rules


def build_validation_rules(
    field_set: ResourceFieldSet,
    context: Union[DataContext, Mapping[str, Any], None],
) -> Dict[str, AssembledRules]:
    """Validation rules for the fields visible in the submitted data.

    Hidden fields are skipped. Fields required for the context get the
    required rule injected; fields left without rules are omitted.
    """
    context = DataContext.of(context)
    assembled: Dict[str, AssembledRules] = {}

    for descriptor in field_set.visible_fields(context):
        rules = descriptor.rules
        if field_set.is_required(descriptor.attribute, context, stack=[]):
            rules = with_required(rules)
        elif isinstance(rules, tuple):
            rules = list(rules)

        if rules:
            assembled[descriptor.attribute] = rules

    return assembled
