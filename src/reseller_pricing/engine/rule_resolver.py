"""
Rule Resolver - Selects the markup rule that applies to a send.

Used by the pricing service on every quote. Rules arrive freshly read from
the store; nothing is cached here.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from .models import MarkupRule, PricingRequest

logger = logging.getLogger(__name__)


@dataclass
class MatchedRule:
    """A rule that matched with context."""
    rule: MarkupRule
    specificity: int
    match_reason: str

    @property
    def rule_id(self) -> str:
        return self.rule.id

    def to_dict(self) -> dict:
        return {
            "ruleId": self.rule.id,
            "name": self.rule.name,
            "priority": self.rule.priority,
            "specificity": self.specificity,
            "markupType": self.rule.markup_type.value,
            "markupValue": str(self.rule.markup_value),
            "matchReason": self.match_reason,
        }


def specificity(rule: MarkupRule) -> int:
    """Count of scoping constraints present on a rule (0-3)."""
    return sum((
        rule.has_volume_bounds,
        rule.country_code is not None,
        rule.sms_type is not None,
    ))


def rank_key(rule: MarkupRule) -> tuple:
    """Sort key: most specific first, then priority, creation time, id."""
    return (-specificity(rule), rule.priority, rule.created_at, rule.id)


def match_rule(rule: MarkupRule, request: PricingRequest) -> Optional[str]:
    """
    Check one rule against a request.

    Returns the match reason, or None when any present constraint fails.
    """
    if not rule.is_active or rule.owner_id != request.owner_id:
        return None

    reasons = []

    # Volume range (inclusive on both ends)
    if rule.min_volume is not None:
        if request.volume < rule.min_volume:
            return None
        reasons.append(f"volume>={rule.min_volume}")

    if rule.max_volume is not None:
        if request.volume > rule.max_volume:
            return None
        reasons.append(f"volume<={rule.max_volume}")

    # Country
    if rule.country_code is not None:
        requested = (request.country_code or '').upper()
        if rule.country_code.upper() != requested:
            return None
        reasons.append(f"country={rule.country_code}")

    # Message category
    if rule.sms_type is not None:
        if rule.sms_type != request.sms_type:
            return None
        reasons.append(f"type={rule.sms_type.value}")

    return ", ".join(reasons) if reasons else "default"


def find_matching_rules(rules: list[MarkupRule], request: PricingRequest) -> list[MatchedRule]:
    """
    Find all rules that match the given request.

    Returns rules in resolution order; the first one is the rule that applies.
    """
    matched = []
    for rule in rules:
        reason = match_rule(rule, request)
        if reason is None:
            continue
        matched.append(MatchedRule(rule=rule, specificity=specificity(rule), match_reason=reason))

    matched.sort(key=lambda m: rank_key(m.rule))
    return matched


def resolve_rule(rules: list[MarkupRule], request: PricingRequest) -> Optional[MarkupRule]:
    """Return the single top-ranked matching rule, or None."""
    matched = find_matching_rules(rules, request)
    if not matched:
        logger.debug("No markup rule matched for owner %s", request.owner_id)
        return None

    winner = matched[0]
    logger.debug(
        "Resolved rule %s for owner %s (%d candidates, %s)",
        winner.rule_id, request.owner_id, len(matched), winner.match_reason,
    )
    return winner.rule
