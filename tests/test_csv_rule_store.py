"""
Tests for the CSV-backed rule store.
"""
import asyncio
import csv
from datetime import timedelta
from decimal import Decimal

import pytest

from conftest import NOW, OTHER_OWNER, OWNER
from reseller_pricing.engine.errors import NotFoundError, ValidationError
from reseller_pricing.engine.models import PricingDecisionRecord, SmsType
from reseller_pricing.engine.pricing_calculator import price
from reseller_pricing.engine.rule_validator import validate_rule
from reseller_pricing.services.csv_rule_store import CsvRuleStore
from reseller_pricing.services.pricing_service import PricingService

pytestmark = pytest.mark.asyncio


@pytest.fixture
def csv_store(tmp_path):
    return CsvRuleStore(
        tmp_path / 'data' / 'markup_rules.csv',
        tmp_path / 'data' / 'pricing_decisions.csv',
        clock=lambda: NOW,
    )


def _validated(**overrides):
    data = {"name": "Ghana OTP", "markup_type": "FIXED_AMOUNT", "markup_value": "0.0025",
            "country_code": "GH", "sms_type": "OTP", "min_volume": 100}
    data.update(overrides)
    return validate_rule(data)


async def test_missing_files_read_as_empty(csv_store):
    assert await csv_store.list_all_rules(OWNER) == []
    assert await csv_store.list_pricing_decisions(OWNER, NOW - timedelta(days=30), NOW) == []


async def test_rule_survives_round_trip_through_csv(csv_store):
    created = await csv_store.create_rule(OWNER, _validated())

    # A fresh store instance reads what the first one wrote
    reopened = CsvRuleStore(csv_store.rules_csv_path, csv_store.decisions_csv_path)
    loaded = await reopened.get_rule(OWNER, created.id)

    assert loaded == created
    assert loaded.markup_value == Decimal("0.0025")
    assert loaded.sms_type == SmsType.OTP
    assert loaded.max_volume is None

    with open(csv_store.rules_csv_path, newline='', encoding='utf-8') as f:
        rows = list(csv.DictReader(f))
    assert rows[0]['country_code'] == 'GH'
    assert rows[0]['max_volume'] == ''


async def test_owner_scoping(csv_store):
    created = await csv_store.create_rule(OWNER, _validated())
    await csv_store.create_rule(OTHER_OWNER, _validated())

    assert [r.id for r in await csv_store.list_all_rules(OWNER)] == [created.id]
    with pytest.raises(NotFoundError):
        await csv_store.get_rule(OTHER_OWNER, created.id)
    with pytest.raises(NotFoundError):
        await csv_store.delete_rule(OTHER_OWNER, created.id)


async def test_update_keeps_created_at(tmp_path):
    times = iter([NOW - timedelta(days=1), NOW])
    store = CsvRuleStore(tmp_path / 'rules.csv', tmp_path / 'decisions.csv', clock=lambda: next(times))

    created = await store.create_rule(OWNER, _validated())
    updated = await store.update_rule(OWNER, created.id, _validated(is_active=False, priority=4))

    assert updated.created_at == created.created_at
    assert updated.updated_at == NOW
    assert await store.list_active_rules(OWNER) == []
    assert (await store.list_all_rules(OWNER))[0].priority == 4


async def test_delete_removes_only_target(csv_store):
    keep = await csv_store.create_rule(OWNER, _validated(name="Keep"))
    drop = await csv_store.create_rule(OWNER, _validated(name="Drop"))

    await csv_store.delete_rule(OWNER, drop.id)

    assert [r.id for r in await csv_store.list_all_rules(OWNER)] == [keep.id]


async def test_decisions_are_appended_and_filtered(csv_store):
    quote = price(Decimal("0.01"), 1000)
    for days_ago, owner in [(1, OWNER), (40, OWNER), (1, OTHER_OWNER)]:
        await csv_store.add_pricing_decision(PricingDecisionRecord(
            owner_id=owner,
            occurred_at=NOW - timedelta(days=days_ago),
            volume=1000,
            quote=quote,
            country_code="GH",
            sms_type=SmsType.PROMOTIONAL,
            transaction_id=f"{owner}-{days_ago}",
        ))

    records = await csv_store.list_pricing_decisions(OWNER, NOW - timedelta(days=30), NOW)

    assert len(records) == 1
    record = records[0]
    assert record.transaction_id == f"{OWNER}-1"
    assert record.sms_type == SmsType.PROMOTIONAL
    assert record.quote.total_sell_price == Decimal("10.00")
    assert record.quote.to_dict() == quote.to_dict()


async def test_service_over_csv_store(csv_store):
    service = PricingService(csv_store, clock=lambda: NOW)
    await service.create_rule(OWNER, {"name": "Standard", "markup_type": "PERCENTAGE", "markup_value": "20"})

    quote = await service.quote(OWNER, 1000, "0.01")
    await service.record_decision(OWNER, quote, transaction_id="tx-1")
    summary = await service.profit_summary(OWNER, 30)

    assert quote.total_sell_price == Decimal("12.00")
    assert summary.total_profit == Decimal("2.00")
    assert summary.recent_decisions[0].transaction_id == "tx-1"


async def test_concurrent_creates_cannot_share_a_name(csv_store):
    """Two creates racing on the same name: exactly one is stored."""
    service = PricingService(csv_store, clock=lambda: NOW)
    data = {"name": "Same", "markup_type": "PERCENTAGE", "markup_value": "20"}

    results = await asyncio.gather(
        service.create_rule(OWNER, dict(data)),
        service.create_rule(OWNER, dict(data, markup_value="25")),
        return_exceptions=True,
    )

    failures = [r for r in results if isinstance(r, ValidationError)]
    assert len(failures) == 1, f"Expected one name clash, got {results}"
    assert failures[0].fields == ["name"]
    assert [r.name for r in await csv_store.list_all_rules(OWNER)] == ["Same"]


async def test_update_cannot_take_a_used_name(csv_store):
    await csv_store.create_rule(OWNER, _validated(name="One"))
    two = await csv_store.create_rule(OWNER, _validated(name="Two", country_code="NG"))

    with pytest.raises(ValidationError) as exc:
        await csv_store.update_rule(OWNER, two.id, _validated(name="One", country_code="NG"))
    assert exc.value.fields == ["name"]

    # Another owner may use the same name
    await csv_store.create_rule(OTHER_OWNER, _validated(name="One"))
