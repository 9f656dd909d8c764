"""Seed a reseller with a starter rule set in the configured CSV store."""
import asyncio
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from reseller_pricing.config.settings import get_settings
from reseller_pricing.engine.errors import ValidationError
from reseller_pricing.services.csv_rule_store import CsvRuleStore
from reseller_pricing.services.pricing_service import PricingService

STARTER_RULES = [
    {"name": "Default 20% markup", "markup_type": "PERCENTAGE", "markup_value": "20", "priority": 50},
    {"name": "Ghana transactional", "markup_type": "FIXED_AMOUNT", "markup_value": "0.004",
     "country_code": "GH", "sms_type": "TRANSACTIONAL", "priority": 10},
    {"name": "OTP flat price", "markup_type": "FIXED_PRICE", "markup_value": "0.018",
     "sms_type": "OTP", "priority": 10},
]


async def seed(service: PricingService, owner_id: str):
    """Create the starter rules and tiers. Names that already exist are reported and skipped."""
    for data in STARTER_RULES:
        try:
            result = await service.create_rule(owner_id, data)
        except ValidationError as e:
            print(f"❌ {data['name']}: {e}")
            continue
        print(f"✅ Created rule: {result.rule.name} ({result.rule.id})")
        for warning in result.warnings:
            print(f"   ⚠ {warning}")

    for volume in (100, 1000, 50000):
        try:
            tier = await service.create_volume_tier(
                owner_id, name=f"{volume}+", min_volume=volume, percentage=max(5, 25 - volume // 5000)
            )
        except ValidationError as e:
            print(f"❌ Tier {volume}+: {e}")
            continue
        print(f"✅ Created tier: {tier.rule.name}")


def main(owner_id: str):
    settings = get_settings()
    service = PricingService.from_settings(
        CsvRuleStore(settings.rules_csv, settings.decisions_csv), settings
    )
    asyncio.run(seed(service, owner_id))


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: seed_rules.py <owner_id>")
        sys.exit(1)
    main(sys.argv[1])
