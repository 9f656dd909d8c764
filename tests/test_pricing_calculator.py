from decimal import Decimal

import pytest

from conftest import build_rule
from reseller_pricing.engine.errors import ComputationError, ValidationError
from reseller_pricing.engine.models import MarkupType
from reseller_pricing.engine.pricing_calculator import price


def test_percentage_markup_example():
    """
    0.01 base cost x 1000 messages at 20%.
    Unit 0.012, sell 12.00, cost 10.00, profit 2.00, margin 16.67%.
    """
    rule = build_rule("pct20", markup_value="20")

    quote = price(Decimal("0.01"), 1000, rule)

    assert quote.unit_sell_price == Decimal("0.012")
    assert quote.total_sell_price == Decimal("12.00")
    assert quote.total_cost == Decimal("10.00")
    assert quote.profit == Decimal("2.00")
    assert quote.profit_margin_pct == Decimal("16.67")
    assert quote.applied_rule_id == "pct20"
    assert quote.markup_type == MarkupType.PERCENTAGE
    assert quote.clamped is False
    assert quote.warnings == []


def test_totals_extend_unrounded_unit_price():
    """0.00125 x 1000 bills 1.25; extending the rounded unit price 0.0013 would bill 1.30."""
    quote = price(Decimal("0.00125"), 1000, build_rule("zero", markup_value="0"))

    assert quote.unit_sell_price == Decimal("0.0013")
    assert quote.total_sell_price == Decimal("1.25")
    assert quote.profit == Decimal("0.00")


def test_fixed_amount_markup():
    rule = build_rule("fa", markup_type="FIXED_AMOUNT", markup_value="0.0025")

    quote = price(Decimal("0.01"), 3, rule)

    assert quote.unit_sell_price == Decimal("0.0125")
    assert quote.total_sell_price == Decimal("0.04")
    assert quote.total_cost == Decimal("0.03")


def test_fixed_amount_discount_clamped_at_zero():
    rule = build_rule("discount", markup_type="FIXED_AMOUNT", markup_value="-0.05")

    quote = price(Decimal("0.01"), 1000, rule)

    assert quote.clamped is True
    assert quote.unit_sell_price == Decimal("0")
    assert quote.total_sell_price == Decimal("0.00")
    assert quote.profit == Decimal("-10.00")
    assert quote.profit_margin_pct == Decimal("0.00"), "Margin is zero when nothing is sold"
    assert quote.warnings == ["Unit price below zero was clamped to 0"]
    assert any(step.step == "Clamp" for step in quote.trace)


def test_fixed_price_ignores_base_cost():
    rule = build_rule("flat", markup_type="FIXED_PRICE", markup_value="0.025")

    quote = price(Decimal("0.01"), 200, rule)

    assert quote.unit_sell_price == Decimal("0.025")
    assert quote.total_sell_price == Decimal("5.00")
    assert quote.total_cost == Decimal("2.00")
    assert quote.profit == Decimal("3.00")
    assert quote.profit_margin_pct == Decimal("60.00")


def test_fixed_price_below_cost_reports_loss():
    rule = build_rule("loss", markup_type="FIXED_PRICE", markup_value="0.005")

    quote = price(Decimal("0.01"), 100, rule)

    assert quote.profit == Decimal("-0.50")
    assert quote.profit_margin_pct == Decimal("-100.00")


def test_no_rule_charges_base_cost():
    quote = price(Decimal("0.01"), 1000)

    assert quote.applied_rule_id is None
    assert quote.markup_type is None
    assert quote.total_sell_price == quote.total_cost == Decimal("10.00")
    assert quote.profit == Decimal("0.00")
    assert quote.profit_margin_pct == Decimal("0.00")
    assert "No matching rule" in quote.get_trace_text()


def test_zero_base_cost_without_rule_has_zero_margin():
    quote = price(Decimal("0"), 50)
    assert quote.total_sell_price == Decimal("0.00")
    assert quote.profit_margin_pct == Decimal("0.00")


def test_trace_records_each_step():
    quote = price(Decimal("0.01"), 1000, build_rule("pct20", name="Standard"))

    assert [step.step for step in quote.trace] == [
        "Base Cost", "Rule Applied", "Unit Price", "Extension",
    ]
    assert "Standard (pct20) PERCENTAGE = 20" in quote.get_trace_text()


def test_same_inputs_give_identical_quotes():
    rule = build_rule("pct", markup_value="17.5")
    first = price(Decimal("0.0083"), 4321, rule)
    second = price(Decimal("0.0083"), 4321, rule)
    assert first == second


@pytest.mark.parametrize("base_cost,volume,fields", [
    (Decimal("-0.01"), 10, ["base_cost"]),
    (Decimal("0.01"), 0, ["volume"]),
    (None, None, ["base_cost", "volume"]),
])
def test_invalid_inputs_raise_validation_error(base_cost, volume, fields):
    with pytest.raises(ValidationError) as exc:
        price(base_cost, volume)
    assert exc.value.fields == fields


def test_unrepresentable_total_raises_computation_error():
    with pytest.raises(ComputationError):
        price(Decimal("0.01"), 10 ** 30, build_rule("pct20"))


def test_no_rule_echoes_base_cost_at_full_precision():
    """Without a rule the unit price is the base cost itself, even past 4 decimal places."""
    quote = price(Decimal("0.00125"), 1000)

    assert quote.unit_sell_price == Decimal("0.00125"), \
        f"Unit price {quote.unit_sell_price} should echo the base cost 0.00125"
    assert quote.total_sell_price == Decimal("1.25")
    assert quote.profit == Decimal("0.00")
