"""
Validation results for checks that report every violation at once.

SEPA transaction validation and billing configuration validation run all
of their rules and hand back a ``ValidationResult`` instead of raising on
the first failure, so batch preparation can list each rejected debit with
all of its problems.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Iterable


@dataclass(frozen=True)
class ValidationError:
    """One failed rule: machine code, message, offending field, extra data."""

    code: str
    message: str
    field: str | None = None
    details: dict[str, Any] | None = None


@dataclass(frozen=True)
class ValidationResult:
    """
    Outcome of a rule set.

    ``is_valid`` is True exactly when ``errors`` is empty; ``bool(result)``
    follows ``is_valid``.  Failed results carry the ``VALIDATION_FAILED``
    code.
    """

    is_valid: bool
    errors: tuple[ValidationError, ...] = field(default_factory=tuple)

    FAILURE_CODE: ClassVar[str] = "VALIDATION_FAILED"

    @classmethod
    def success(cls) -> ValidationResult:
        return cls(is_valid=True)

    @classmethod
    def failure(cls, *errors: ValidationError) -> ValidationResult:
        return cls(is_valid=False, errors=errors)

    @classmethod
    def from_errors(cls, errors: Iterable[ValidationError]) -> ValidationResult:
        collected = tuple(errors)
        return cls.failure(*collected) if collected else cls.success()

    @property
    def code(self) -> str | None:
        return None if self.is_valid else self.FAILURE_CODE

    @property
    def messages(self) -> tuple[str, ...]:
        """Messages in rule order."""
        return tuple(error.message for error in self.errors)

    @property
    def error_codes(self) -> tuple[str, ...]:
        return tuple(error.code for error in self.errors)

    def __bool__(self) -> bool:
        return self.is_valid
