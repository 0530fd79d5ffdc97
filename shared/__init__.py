"""
Shared utilities for the form constraint engine.

This package aggregates common building blocks consumed by the service
package:

- config: Engine configuration via pydantic-settings
- logging: Structured JSON logging
- errors: Canonical error types and responses

Do not import from service_* packages into shared/.
"""
