"""
Shared error handling for the form constraint engine.
"""

from typing import Dict, Any, List, Optional, Sequence
from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response format."""

    trace_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class FormEngineException(Exception):
    """Base exception for the constraint engine."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self, trace_id: Optional[str] = None) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            trace_id=trace_id,
            code=self.code,
            message=self.message,
            details=self.details
        )


class CircularDependencyError(FormEngineException):
    """A field's condition re-entered its own evaluation."""

    def __init__(self, field: str, chain: Sequence[str] = ()):
        self.field = field
        self.chain: List[str] = list(chain) or [field]
        super().__init__(
            "CIRCULAR_DEPENDENCY",
            "Circular dependency detected: " + " -> ".join(self.chain),
            {"field": field, "chain": self.chain}
        )


class SchemaDefinitionError(FormEngineException):
    """Form schema or condition definition errors."""

    def __init__(self, message: str = "Invalid form schema", details: Optional[Dict[str, Any]] = None):
        super().__init__("SCHEMA_ERROR", message, details)


class UnknownFieldError(FormEngineException):
    """Field attribute not declared in the field set."""

    def __init__(self, field: str, resource: Optional[str] = None):
        self.field = field
        details: Dict[str, Any] = {"field": field}
        if resource:
            details["resource"] = resource
        super().__init__("UNKNOWN_FIELD", f"Unknown field '{field}'", details)
