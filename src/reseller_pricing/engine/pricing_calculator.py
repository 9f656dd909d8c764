"""
Pricing Calculator - Applies a resolved markup rule to a wholesale cost.

All arithmetic runs in Decimal. The unit sell price is reported at
UNIT_PRICE_PLACES and totals at CURRENCY_PLACES; totals are extended from
the unrounded unit price so rounding happens exactly once per figure.
"""
import logging
from decimal import (
    ROUND_HALF_UP,
    Context,
    Decimal,
    DecimalException,
    DivisionByZero,
    InvalidOperation,
    Overflow,
    localcontext,
)
from typing import Any, Optional

from .errors import ComputationError, FieldError, ValidationError
from .models import (
    FixedAmountMarkup,
    FixedPriceMarkup,
    MarkupRule,
    PercentageMarkup,
    PricingQuote,
)
from .rule_validator import parse_decimal, parse_int

logger = logging.getLogger(__name__)

UNIT_PRICE_PLACES = Decimal("0.0001")
CURRENCY_PLACES = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")

_CONTEXT = Context(prec=28, rounding=ROUND_HALF_UP, traps=[Overflow, InvalidOperation, DivisionByZero])


def _check_inputs(base_cost: Any, volume: Any) -> tuple[Decimal, int]:
    errors: list[FieldError] = []
    cost = parse_decimal(base_cost, 'base_cost', errors) if base_cost is not None else None
    if base_cost is None:
        errors.append(FieldError('base_cost', "is required"))
    elif cost is not None and cost < 0:
        errors.append(FieldError('base_cost', "must be >= 0"))
    units = parse_int(volume, 'volume', errors) if volume is not None else None
    if volume is None:
        errors.append(FieldError('volume', "is required"))
    elif units is not None and units < 1:
        errors.append(FieldError('volume', "must be >= 1"))
    if errors:
        raise ValidationError(errors)
    return cost, units


def unit_sell_price(base_cost: Decimal, rule: Optional[MarkupRule]) -> Decimal:
    """Unrounded per-message sell price before the negative clamp."""
    if rule is None:
        return base_cost

    markup = rule.markup
    if isinstance(markup, PercentageMarkup):
        return base_cost * (1 + markup.value / HUNDRED)
    if isinstance(markup, FixedAmountMarkup):
        return base_cost + markup.value
    if isinstance(markup, FixedPriceMarkup):
        return markup.value
    raise TypeError(f"Unsupported markup variant: {type(markup).__name__}")


def price(base_cost: Any, volume: Any, rule: Optional[MarkupRule] = None) -> PricingQuote:
    """
    Price `volume` messages at `base_cost` each under `rule`.

    Args:
        base_cost: Wholesale cost per message (>= 0)
        volume: Number of messages (>= 1)
        rule: The resolved rule, or None to charge the base cost verbatim

    Returns:
        PricingQuote with totals, profit, margin and a resolution trace
    """
    cost, units = _check_inputs(base_cost, volume)

    try:
        with localcontext(_CONTEXT):
            raw_unit = unit_sell_price(cost, rule)
            clamped = raw_unit < 0
            if clamped:
                raw_unit = ZERO

            total_sell = (raw_unit * units).quantize(CURRENCY_PLACES)
            total_cost = (cost * units).quantize(CURRENCY_PLACES)
            profit = total_sell - total_cost
            if total_sell == 0:
                margin = ZERO.quantize(CURRENCY_PLACES)
            else:
                margin = (profit / total_sell * HUNDRED).quantize(CURRENCY_PLACES)
            # With no rule the base cost is echoed at its own precision
            unit = raw_unit if rule is None else raw_unit.quantize(UNIT_PRICE_PLACES)
    except DecimalException as e:
        raise ComputationError(
            f"Cannot price {units} messages at {cost}: {type(e).__name__}"
        ) from e

    quote = PricingQuote(
        base_cost_per_unit=cost,
        volume=units,
        unit_sell_price=unit,
        total_sell_price=total_sell,
        total_cost=total_cost,
        profit=profit,
        profit_margin_pct=margin,
        applied_rule_id=rule.id if rule else None,
        markup_type=rule.markup_type if rule else None,
        clamped=clamped,
    )

    quote.add_trace("Base Cost", "Wholesale cost per message", str(cost))
    if rule is None:
        quote.add_trace("Markup", "No matching rule, charging base cost")
    else:
        quote.add_trace(
            "Rule Applied",
            f"{rule.name} ({rule.id}) {rule.markup_type.value}",
            str(rule.markup_value),
        )
    if clamped:
        quote.add_warning("Unit price below zero was clamped to 0")
        quote.add_trace("Clamp", "Negative unit price clamped", "0")
        logger.warning("Clamped negative unit price for rule %s", rule.id if rule else None)
    quote.add_trace("Unit Price", "Sell price per message", str(unit))
    quote.add_trace("Extension", f"Quantity {units} × {unit}", str(total_sell))

    return quote
