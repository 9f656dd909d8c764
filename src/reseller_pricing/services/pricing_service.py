"""
Pricing Service - The single entry point other subsystems call.

Orchestrates validation, rule resolution and pricing for quotes, rule CRUD
against the store, and profit analytics. Holds no rule state between calls:
every quote re-reads the owner's active rules.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Optional

from ..engine import profit_aggregator
from ..engine.errors import FieldError, ValidationError
from ..engine.models import (
    MarkupRule,
    MarkupType,
    PricingDecisionRecord,
    PricingQuote,
    PricingRequest,
    TraceStep,
)
from ..engine.pricing_calculator import price
from ..engine.profit_aggregator import ProfitSummary, RecommendationFlag
from ..engine.rule_resolver import find_matching_rules, rank_key
from ..engine.rule_validator import (
    review_rule,
    validate_request,
    validate_rule,
    validate_rule_update,
)
from ..utils.logging import get_logger
from .rule_store import RuleStore, ensure_name_available, utcnow

logger = get_logger(__name__)

TIER_PREFIX = "Tier: "


@dataclass
class RuleResult:
    """A stored rule plus non-blocking review warnings."""
    rule: MarkupRule
    warnings: list[str]


@dataclass(frozen=True)
class Recommendation:
    """A suggestion surfaced on the reseller dashboard."""
    type: str
    priority: str
    title: str
    description: str
    action: str

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "priority": self.priority,
            "title": self.title,
            "description": self.description,
            "action": self.action,
        }


RECOMMENDATIONS = {
    RecommendationFlag.NO_RULES: Recommendation(
        type="setup",
        priority="high",
        title="Create Your First Markup Rule",
        description="Set up markup rules to start earning profit on SMS services",
        action="Create a basic percentage markup rule (e.g., 20%)",
    ),
    RecommendationFlag.NO_PROFIT: Recommendation(
        type="revenue",
        priority="medium",
        title="No Profit Generated",
        description="You haven't generated any profit yet",
        action="Review your pricing strategy and ensure markup rules are active",
    ),
    RecommendationFlag.NO_VOLUME_TIERS: Recommendation(
        type="optimization",
        priority="medium",
        title="Add Volume-Based Pricing",
        description="Create tiered pricing for different volume levels",
        action="Set up volume-based markup rules for bulk discounts",
    ),
    RecommendationFlag.NO_COUNTRY_RULES: Recommendation(
        type="optimization",
        priority="low",
        title="Consider Country-Specific Pricing",
        description="Different countries may have different cost structures",
        action="Create country-specific markup rules for better optimization",
    ),
}

# Display order for recommendations
FLAG_ORDER = [
    RecommendationFlag.NO_RULES,
    RecommendationFlag.NO_PROFIT,
    RecommendationFlag.NO_VOLUME_TIERS,
    RecommendationFlag.NO_COUNTRY_RULES,
]


class PricingService:
    """Façade over the rule store and the pure pricing engine."""

    def __init__(
        self,
        store: RuleStore,
        clock: Callable[[], datetime] = utcnow,
        percentage_warning_ceiling: Decimal = Decimal("1000"),
        recent_decisions_limit: int = 10,
        high_volume_threshold: int = 100,
    ):
        self.store = store
        self.clock = clock
        self.percentage_warning_ceiling = percentage_warning_ceiling
        self.recent_decisions_limit = recent_decisions_limit
        self.high_volume_threshold = high_volume_threshold

    @classmethod
    def from_settings(cls, store: RuleStore, settings) -> 'PricingService':
        return cls(
            store=store,
            percentage_warning_ceiling=settings.percentage_warning_ceiling,
            recent_decisions_limit=settings.recent_decisions_limit,
            high_volume_threshold=settings.high_volume_threshold,
        )

    # Quotes

    async def quote(
        self,
        owner_id: str,
        volume: Any,
        base_cost: Any,
        country_code: Any = None,
        sms_type: Any = None,
    ) -> PricingQuote:
        """
        Price a send for an owner.

        Live billing and test simulation both call this; whether the quote
        is recorded or charged is the caller's decision.
        """
        request = validate_request(owner_id, volume, base_cost, country_code, sms_type)
        quote, _ = await self._price_request(request)
        return quote

    async def test_quote(
        self,
        owner_id: str,
        volume: Any,
        base_cost: Any,
        country_code: Any = None,
        sms_type: Any = None,
    ) -> dict:
        """Quote plus every candidate rule, for the "test my rules" action."""
        request = validate_request(owner_id, volume, base_cost, country_code, sms_type)
        quote, matched = await self._price_request(request)
        return {
            "testParameters": {
                "volume": request.volume,
                "countryCode": request.country_code,
                "smsType": request.sms_type.value if request.sms_type else None,
                "baseCost": str(request.base_cost),
            },
            "result": quote.to_dict(),
            "matchedRules": [m.to_dict() for m in matched],
            "trace": quote.get_trace_text(),
        }

    async def _price_request(self, request: PricingRequest):
        rules = await self.store.list_active_rules(request.owner_id)
        matched = find_matching_rules(rules, request)
        rule = matched[0].rule if matched else None

        quote = price(request.base_cost, request.volume, rule)
        quote.trace.insert(0, _candidates_step(len(rules), len(matched)))
        if matched:
            quote.add_trace("Match", "Rule scope matched", matched[0].match_reason)
        return quote, matched

    async def record_decision(
        self,
        owner_id: str,
        quote: PricingQuote,
        country_code: Optional[str] = None,
        sms_type: Any = None,
        transaction_id: Optional[str] = None,
        occurred_at: Optional[datetime] = None,
    ) -> PricingDecisionRecord:
        """Persist a billed quote. Only live-send callers should call this."""
        request = validate_request(owner_id, quote.volume, quote.base_cost_per_unit, country_code, sms_type)
        # Decision timestamps must carry a UTC offset
        if occurred_at is not None and occurred_at.utcoffset() is None:
            raise ValidationError.single('occurred_at', "must be timezone-aware")
        record = PricingDecisionRecord(
            owner_id=request.owner_id,
            occurred_at=occurred_at or self.clock(),
            volume=quote.volume,
            quote=quote,
            country_code=request.country_code,
            sms_type=request.sms_type,
            transaction_id=transaction_id,
        )
        await self.store.add_pricing_decision(record)
        return record

    # Rule CRUD

    async def preview_rule(self, owner_id: str, data: dict) -> list[str]:
        """Run every create-time check without storing. Returns review warnings."""
        validated = validate_rule(data)
        existing = await self.store.list_all_rules(owner_id)
        ensure_name_available(existing, owner_id, validated.name)
        return review_rule(validated, existing, self.percentage_warning_ceiling)

    async def create_rule(self, owner_id: str, data: dict) -> RuleResult:
        """Validate and store a new rule. The store rejects a name the owner already uses."""
        validated = validate_rule(data)
        existing = await self.store.list_all_rules(owner_id)
        warnings = review_rule(validated, existing, self.percentage_warning_ceiling)

        rule = await self.store.create_rule(owner_id, validated)
        logger.info("Created markup rule %s for owner %s", rule.id, owner_id)
        return RuleResult(rule=rule, warnings=warnings)

    async def list_rules(self, owner_id: str, include_inactive: bool = False) -> list[MarkupRule]:
        """List rules in resolution order."""
        rules = await self.store.list_all_rules(owner_id, include_inactive=include_inactive)
        return sorted(rules, key=rank_key)

    async def get_rule(self, owner_id: str, rule_id: str) -> MarkupRule:
        return await self.store.get_rule(owner_id, rule_id)

    async def update_rule(self, owner_id: str, rule_id: str, changes: dict) -> RuleResult:
        """Apply a partial update. Foreign or missing ids raise NotFoundError."""
        existing = await self.store.get_rule(owner_id, rule_id)
        validated = validate_rule_update(existing, changes)

        others = await self.store.list_all_rules(owner_id)
        warnings = review_rule(validated, others, self.percentage_warning_ceiling, rule_id=rule_id)

        rule = await self.store.update_rule(owner_id, rule_id, validated)
        logger.info("Updated markup rule %s for owner %s", rule_id, owner_id)
        return RuleResult(rule=rule, warnings=warnings)

    async def delete_rule(self, owner_id: str, rule_id: str) -> None:
        await self.store.delete_rule(owner_id, rule_id)
        logger.info("Deleted markup rule %s for owner %s", rule_id, owner_id)

    async def rule_stats(self, owner_id: str) -> dict:
        """Get statistics about an owner's rules."""
        rules = await self.store.list_all_rules(owner_id)
        active = [r for r in rules if r.is_active]

        by_scope = {'volume': 0, 'country': 0, 'sms_type': 0, 'global': 0}
        for r in rules:
            if r.has_volume_bounds:
                by_scope['volume'] += 1
            if r.country_code:
                by_scope['country'] += 1
            if r.sms_type:
                by_scope['sms_type'] += 1
            if not (r.has_volume_bounds or r.country_code or r.sms_type):
                by_scope['global'] += 1

        by_type = {t.value: 0 for t in MarkupType}
        for r in rules:
            by_type[r.markup_type.value] += 1

        return {
            'total': len(rules),
            'active': len(active),
            'inactive': len(rules) - len(active),
            'by_scope': by_scope,
            'by_markup_type': by_type,
        }

    # Volume tiers

    async def create_volume_tier(
        self,
        owner_id: str,
        name: str,
        min_volume: Any,
        percentage: Any,
        max_volume: Any = None,
        is_active: bool = True,
    ) -> RuleResult:
        """Volume tiers are PERCENTAGE rules bounded by volume and named "Tier: ..."."""
        if min_volume is None:
            raise ValidationError([FieldError('min_volume', "is required for a volume tier")])
        tier_name = name.strip() if isinstance(name, str) else ''
        return await self.create_rule(owner_id, {
            'name': f"{TIER_PREFIX}{tier_name}" if tier_name else '',
            'markup_type': MarkupType.PERCENTAGE,
            'markup_value': percentage,
            'min_volume': min_volume,
            'max_volume': max_volume,
            'priority': 1,
            'is_active': is_active,
        })

    async def list_volume_tiers(self, owner_id: str) -> list[MarkupRule]:
        rules = await self.store.list_active_rules(owner_id)
        tiers = [r for r in rules if r.name.startswith(TIER_PREFIX)]
        return sorted(tiers, key=lambda r: (r.min_volume or 0, r.created_at, r.id))

    # Analytics

    async def profit_summary(self, owner_id: str, days: int = 30) -> ProfitSummary:
        """Summarize the owner's recorded decisions over the last `days` days."""
        now = self.clock()
        start, end = profit_aggregator.window(days, now)
        records = await self.store.list_pricing_decisions(owner_id, start, end)
        return profit_aggregator.summarize(
            owner_id, records, days, now, recent_limit=self.recent_decisions_limit
        )

    async def recommendations(self, owner_id: str, days: int = 30) -> dict:
        """Setup and optimization suggestions derived from rules and profit."""
        rules = await self.store.list_all_rules(owner_id, include_inactive=False)
        summary = await self.profit_summary(owner_id, days)
        flags = profit_aggregator.derive_flags(rules, summary, self.high_volume_threshold)

        return {
            "recommendations": [RECOMMENDATIONS[f].to_dict() for f in FLAG_ORDER if f in flags],
            "currentSetup": {
                "totalRules": len(rules),
                "activeRules": sum(1 for r in rules if r.is_active),
                "totalProfit": str(summary.total_profit),
                "totalTransactions": summary.total_transactions,
            },
        }


def _candidates_step(loaded: int, matched: int) -> TraceStep:
    return TraceStep(step="Rule Lookup", description=f"{loaded} active rules loaded, {matched} matched")
