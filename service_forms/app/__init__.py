"""
Form constraint engine package.

Decides, for every field of a declaratively defined resource form,
whether it is visible, required, or disabled for the values submitted
so far. It provides:

- app.conditions: Condition model, operator registry, and evaluator.
- app.fields: Field descriptors, authoring builder, field sets, and
  validation rule assembly.
- app.bootstrap: Configuration and logging initialisation.

Guidelines:
- Condition trees and field sets are immutable once declared; share them.
- Evaluation is synchronous and stateless between calls.
- Cycles are authoring bugs: they raise, never degrade silently.
"""
