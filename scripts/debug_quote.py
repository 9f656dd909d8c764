import asyncio
import sys
from pathlib import Path

# Add src to path
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from reseller_pricing.config.settings import get_settings
from reseller_pricing.services.csv_rule_store import CsvRuleStore
from reseller_pricing.services.pricing_service import PricingService

async def debug(owner_id: str, volume: int, country_code: str = None, sms_type: str = None):
    settings = get_settings()
    store = CsvRuleStore(settings.rules_csv, settings.decisions_csv)
    service = PricingService.from_settings(store, settings)

    rules = await service.list_rules(owner_id, include_inactive=True)
    print(f"Loaded {len(rules)} rules for {owner_id}:")
    for rule in rules:
        state = "active" if rule.is_active else "inactive"
        print(f"  {rule.id} {rule.name!r} {rule.markup_type.value} {rule.markup_value} priority={rule.priority} ({state})")

    print(f"\n--- Testing volume={volume} country={country_code} type={sms_type} ---")
    result = await service.test_quote(
        owner_id, volume, settings.default_base_cost, country_code, sms_type
    )
    print("Matched rules:")
    for matched in result["matchedRules"]:
        print(f"  {matched['ruleId']} specificity={matched['specificity']} ({matched['matchReason']})")
    print("\nTrace:")
    print(result["trace"])
    print("\nQuote:")
    print(result["result"])

if __name__ == "__main__":
    if len(sys.argv) < 3:
        print("Usage: debug_quote.py <owner_id> <volume> [country_code] [sms_type]")
        sys.exit(1)
    args = sys.argv[1:]
    asyncio.run(debug(args[0], int(args[1]), *args[2:4]))
