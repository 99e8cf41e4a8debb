"""
Residence meal schedule resolution engine.

Resolves which meal slots and alternatives apply to each day of a
residence's affected period, folds in overrides, activities, absences
and per-user restrictions, and maintains each resident's weekly default
selection.

Structure:
- domain/: Schedule models and pure resolution logic
- application/: Loaders, services and the engine facade
- infrastructure/: Document stores, config, logging, clock, auth
- tests/: Test suite (unit)
"""

__version__ = "1.0.0"
