"""
Error taxonomy for the pricing engine.

Validation and not-found errors are the only conditions callers are
expected to surface to users; ComputationError signals decimal overflow.
"""
from dataclasses import dataclass


@dataclass(frozen=True)
class FieldError:
    """A single violated field constraint."""
    field: str
    reason: str

    def to_dict(self) -> dict:
        return {"field": self.field, "reason": self.reason}


class PricingError(Exception):
    """Base class for engine errors."""


class ValidationError(PricingError):
    """Malformed rule definition or pricing request."""

    def __init__(self, errors: list[FieldError]):
        self.errors = list(errors)
        summary = "; ".join(f"{e.field}: {e.reason}" for e in self.errors)
        super().__init__(summary or "validation failed")

    @classmethod
    def single(cls, field: str, reason: str) -> 'ValidationError':
        return cls([FieldError(field=field, reason=reason)])

    @property
    def fields(self) -> list[str]:
        return [e.field for e in self.errors]


class NotFoundError(PricingError):
    """Rule id does not exist for this owner."""

    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} '{identifier}' not found")


class ComputationError(PricingError):
    """Decimal arithmetic could not represent a result."""
