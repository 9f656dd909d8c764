"""
Rule Validator - Structural checks for markup rules and pricing requests.

Collects every violated field before failing so callers can render
field-level errors in one round trip. Policy checks that should not block
a save (unusually high percentages, overlapping scopes) are reported as
warnings by review_rule().
"""
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from .errors import FieldError, ValidationError
from .models import (
    MarkupRule,
    MarkupType,
    PricingRequest,
    SmsType,
    ValidatedRule,
    make_markup,
)

NAME_MAX_LENGTH = 100
COUNTRY_CODE_PATTERN = re.compile(r"^[A-Z]{2}$")

RULE_FIELDS = (
    'name', 'markup_type', 'markup_value', 'min_volume', 'max_volume',
    'country_code', 'sms_type', 'priority', 'is_active',
)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == '')


def parse_decimal(value: Any, field: str, errors: list[FieldError]) -> Optional[Decimal]:
    """Parse a finite decimal. Floats go through str() to keep their printed value."""
    if isinstance(value, bool):
        errors.append(FieldError(field, "must be a number"))
        return None
    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        errors.append(FieldError(field, "must be a number"))
        return None
    if not number.is_finite():
        errors.append(FieldError(field, "must be a finite number"))
        return None
    return number


def parse_int(value: Any, field: str, errors: list[FieldError]) -> Optional[int]:
    """Parse an integer, accepting integral strings and floats."""
    if isinstance(value, bool):
        errors.append(FieldError(field, "must be an integer"))
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        errors.append(FieldError(field, "must be an integer"))
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        errors.append(FieldError(field, "must be an integer"))
        return None


def parse_bool(value: Any) -> bool:
    """Parse a boolean from API or CSV input."""
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('true', '1', 'yes', 'on')


def normalize_country_code(value: Any, field: str, errors: list[FieldError]) -> Optional[str]:
    if _is_blank(value):
        return None
    code = str(value).strip().upper()
    if not COUNTRY_CODE_PATTERN.match(code):
        errors.append(FieldError(field, "must be a 2-letter ISO country code"))
        return None
    return code


def normalize_sms_type(value: Any, field: str, errors: list[FieldError]) -> Optional[SmsType]:
    if _is_blank(value):
        return None
    if isinstance(value, SmsType):
        return value
    try:
        return SmsType(str(value).strip().upper())
    except ValueError:
        allowed = ", ".join(t.value for t in SmsType)
        errors.append(FieldError(field, f"must be one of {allowed}"))
        return None


def _normalize_markup_type(value: Any, errors: list[FieldError]) -> Optional[MarkupType]:
    if _is_blank(value):
        errors.append(FieldError('markup_type', "is required"))
        return None
    if isinstance(value, MarkupType):
        return value
    try:
        return MarkupType(str(value).strip().upper())
    except ValueError:
        allowed = ", ".join(t.value for t in MarkupType)
        errors.append(FieldError('markup_type', f"must be one of {allowed}"))
        return None


def validate_rule(data: dict) -> ValidatedRule:
    """
    Validate raw rule fields.

    Returns a ValidatedRule or raises ValidationError naming every
    violated field.
    """
    errors: list[FieldError] = []

    # Required fields
    name = data.get('name')
    if name is not None and not isinstance(name, str):
        errors.append(FieldError('name', "must be a string"))
        name = ''
    else:
        name = (name or '').strip()
        if not name:
            errors.append(FieldError('name', "is required"))
    if len(name) > NAME_MAX_LENGTH:
        errors.append(FieldError('name', f"must be at most {NAME_MAX_LENGTH} characters"))

    markup_type = _normalize_markup_type(data.get('markup_type'), errors)

    markup_value = None
    if _is_blank(data.get('markup_value')):
        errors.append(FieldError('markup_value', "is required"))
    else:
        markup_value = parse_decimal(data['markup_value'], 'markup_value', errors)

    # Only PERCENTAGE and FIXED_PRICE are bounded; FIXED_AMOUNT may be a discount
    if markup_type is not None and markup_value is not None:
        if markup_type in (MarkupType.PERCENTAGE, MarkupType.FIXED_PRICE) and markup_value < 0:
            errors.append(FieldError('markup_value', f"must be >= 0 for {markup_type.value}"))

    # Volume bounds
    min_volume = None
    max_volume = None
    if not _is_blank(data.get('min_volume')):
        min_volume = parse_int(data['min_volume'], 'min_volume', errors)
        if min_volume is not None and min_volume < 0:
            errors.append(FieldError('min_volume', "must be >= 0"))
            min_volume = None
    if not _is_blank(data.get('max_volume')):
        max_volume = parse_int(data['max_volume'], 'max_volume', errors)
        if max_volume is not None and max_volume < 0:
            errors.append(FieldError('max_volume', "must be >= 0"))
            max_volume = None
    if min_volume is not None and max_volume is not None and min_volume > max_volume:
        errors.append(FieldError('volume_bounds', "min_volume must be <= max_volume"))

    country_code = normalize_country_code(data.get('country_code'), 'country_code', errors)
    sms_type = normalize_sms_type(data.get('sms_type'), 'sms_type', errors)

    priority = 0
    if not _is_blank(data.get('priority')):
        priority = parse_int(data['priority'], 'priority', errors) or 0

    is_active = True
    if not _is_blank(data.get('is_active')):
        is_active = parse_bool(data['is_active'])

    if errors:
        raise ValidationError(errors)

    return ValidatedRule(
        name=name,
        markup=make_markup(markup_type, markup_value),
        min_volume=min_volume,
        max_volume=max_volume,
        country_code=country_code,
        sms_type=sms_type,
        priority=priority,
        is_active=is_active,
    )


def rule_to_input(rule: MarkupRule) -> dict:
    """Flatten a stored rule back into validator input."""
    return {
        'name': rule.name,
        'markup_type': rule.markup_type,
        'markup_value': rule.markup_value,
        'min_volume': rule.min_volume,
        'max_volume': rule.max_volume,
        'country_code': rule.country_code,
        'sms_type': rule.sms_type,
        'priority': rule.priority,
        'is_active': rule.is_active,
    }


def validate_rule_update(existing: MarkupRule, changes: dict) -> ValidatedRule:
    """Validate a partial update against the rule it modifies."""
    unknown = sorted(set(changes) - set(RULE_FIELDS))
    if unknown:
        raise ValidationError([FieldError(key, "is not an updatable field") for key in unknown])
    merged = rule_to_input(existing)
    merged.update(changes)
    return validate_rule(merged)


def _same_scope(a: ValidatedRule, b: MarkupRule) -> bool:
    return (
        a.min_volume == b.min_volume
        and a.max_volume == b.max_volume
        and a.country_code == b.country_code
        and a.sms_type == b.sms_type
    )


def review_rule(
    rule: ValidatedRule,
    existing_rules: list[MarkupRule],
    percentage_ceiling: Decimal = Decimal("1000"),
    rule_id: Optional[str] = None,
) -> list[str]:
    """
    Policy warnings for a validated rule. Never blocks persistence.

    `rule_id` excludes the rule being updated from the conflict scan.
    """
    warnings = []

    if rule.markup.markup_type == MarkupType.PERCENTAGE and rule.markup.value > percentage_ceiling:
        warnings.append(
            f"Percentage markup {rule.markup.value}% exceeds the usual ceiling of {percentage_ceiling}%"
        )

    for existing in existing_rules:
        if existing.id == rule_id or not existing.is_active or not rule.is_active:
            continue
        if _same_scope(rule, existing):
            warnings.append(
                f"Potential conflict with rule '{existing.name}' "
                f"(priority {existing.priority} vs {rule.priority})"
            )

    return warnings


def validate_request(
    owner_id: str,
    volume: Any,
    base_cost: Any,
    country_code: Any = None,
    sms_type: Any = None,
) -> PricingRequest:
    """Validate a pricing request before resolution."""
    errors: list[FieldError] = []

    if _is_blank(owner_id):
        errors.append(FieldError('owner_id', "is required"))

    parsed_volume = None
    if _is_blank(volume):
        errors.append(FieldError('volume', "is required"))
    else:
        parsed_volume = parse_int(volume, 'volume', errors)
        if parsed_volume is not None and parsed_volume < 1:
            errors.append(FieldError('volume', "must be >= 1"))

    parsed_cost = None
    if _is_blank(base_cost):
        errors.append(FieldError('base_cost', "is required"))
    else:
        parsed_cost = parse_decimal(base_cost, 'base_cost', errors)
        if parsed_cost is not None and parsed_cost < 0:
            errors.append(FieldError('base_cost', "must be >= 0"))

    country = normalize_country_code(country_code, 'country_code', errors)
    category = normalize_sms_type(sms_type, 'sms_type', errors)

    if errors:
        raise ValidationError(errors)

    return PricingRequest(
        owner_id=str(owner_id).strip(),
        volume=parsed_volume,
        base_cost=parsed_cost,
        country_code=country,
        sms_type=category,
    )
