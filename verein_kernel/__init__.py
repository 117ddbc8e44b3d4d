"""
Verein Kernel

Shared primitives for the contribution billing core:
- Typed, coded exceptions
- Structured JSON logging
- Injectable clock
- Immutable value objects and membership records
- SQLAlchemy declarative base for persistence collaborators
"""

__version__ = "0.1.0"
