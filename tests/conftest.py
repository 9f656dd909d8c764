"""
Pytest configuration for the reseller pricing engine.

Provides fixtures for:
- Building MarkupRule instances with deterministic timestamps
- An in-memory store and a service wired to a fixed clock
"""
import os
import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from reseller_pricing.engine.models import MarkupRule, SmsType, make_markup
from reseller_pricing.services.pricing_service import PricingService
from reseller_pricing.services.rule_store import InMemoryRuleStore

OWNER = "reseller-1"
OTHER_OWNER = "reseller-2"
EPOCH = datetime(2026, 1, 1, tzinfo=timezone.utc)
NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


def build_rule(
    rule_id: str,
    markup_type: str = "PERCENTAGE",
    markup_value: str = "20",
    owner_id: str = OWNER,
    created_offset: int = 0,
    **scope,
) -> MarkupRule:
    """Rule factory. `created_offset` is minutes after EPOCH."""
    created = EPOCH + timedelta(minutes=created_offset)
    sms_type = scope.pop('sms_type', None)
    return MarkupRule(
        id=rule_id,
        owner_id=owner_id,
        name=scope.pop('name', f"Rule {rule_id}"),
        markup=make_markup(markup_type, Decimal(markup_value)),
        created_at=created,
        updated_at=created,
        sms_type=SmsType(sms_type) if sms_type else None,
        **scope,
    )


@pytest.fixture
def make_rule():
    return build_rule


@pytest.fixture
def store():
    return InMemoryRuleStore(clock=lambda: NOW)


@pytest.fixture
def service(store):
    return PricingService(store, clock=lambda: NOW)
