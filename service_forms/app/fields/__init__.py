"""
Fields package.

Field descriptors carry a form field's visibility, required and disabled
conditions. A ResourceFieldSet holds the flattened fields of one
resource form and is the entry point for evaluating them.
"""

from .builder import Boolean, Field, Group, Number, Section, Select, Text
from .field_set import ResourceFieldSet
from .models import FieldDescriptor, FieldState
from .validation import build_validation_rules

__all__ = [
    "Boolean", "Field", "FieldDescriptor", "FieldState", "Group", "Number",
    "ResourceFieldSet", "Section", "Select", "Text", "build_validation_rules",
]
