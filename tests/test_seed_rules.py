import os
import sys

import pytest

from conftest import NOW, OWNER
from reseller_pricing.services.pricing_service import PricingService
from reseller_pricing.services.rule_store import InMemoryRuleStore

# Add scripts to path for the seeding script
scripts_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'scripts')
if scripts_path not in sys.path:
    sys.path.insert(0, scripts_path)

from seed_rules import STARTER_RULES, seed


@pytest.mark.asyncio
async def test_seeding_twice_skips_existing_names(capsys):
    """A second run reports every rule and tier as taken instead of failing."""
    service = PricingService(InMemoryRuleStore(clock=lambda: NOW), clock=lambda: NOW)

    await seed(service, OWNER)
    await seed(service, OWNER)

    rules = await service.list_rules(OWNER)
    tiers = await service.list_volume_tiers(OWNER)
    assert len(rules) == len(STARTER_RULES) + 3
    assert [t.name for t in tiers] == ["Tier: 100+", "Tier: 1000+", "Tier: 50000+"]

    output = capsys.readouterr().out
    assert output.count("❌") == len(STARTER_RULES) + 3
    assert "Tier 100+: name: a markup rule with this name already exists" in output
