"""Engine subpackage - rule validation, resolution, pricing and analytics."""
from .errors import ComputationError, FieldError, NotFoundError, PricingError, ValidationError
from .models import (
    MarkupRule,
    MarkupType,
    PricingDecisionRecord,
    PricingQuote,
    PricingRequest,
    SmsType,
)
from .pricing_calculator import price
from .rule_resolver import resolve_rule

__all__ = [
    'ComputationError', 'FieldError', 'NotFoundError', 'PricingError', 'ValidationError',
    'MarkupRule', 'MarkupType', 'PricingDecisionRecord', 'PricingQuote', 'PricingRequest',
    'SmsType', 'price', 'resolve_rule',
]
