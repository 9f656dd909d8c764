"""
Rule Store - Persistence contract for markup rules and pricing decisions.

The pricing service only talks to a RuleStore. Every lookup is scoped by
owner; an id owned by someone else is reported exactly like a missing id.
"""
import asyncio
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, Optional

from ..engine.errors import NotFoundError, ValidationError
from ..engine.models import MarkupRule, PricingDecisionRecord, ValidatedRule


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_rule_id() -> str:
    return uuid.uuid4().hex


class RuleStore(ABC):
    """Async persistence surface consumed by the pricing service."""

    @abstractmethod
    async def list_active_rules(self, owner_id: str) -> list[MarkupRule]:
        ...

    @abstractmethod
    async def list_all_rules(self, owner_id: str, include_inactive: bool = True) -> list[MarkupRule]:
        ...

    @abstractmethod
    async def get_rule(self, owner_id: str, rule_id: str) -> MarkupRule:
        """Raises NotFoundError when the id is missing or owned by someone else."""

    @abstractmethod
    async def create_rule(self, owner_id: str, rule: ValidatedRule) -> MarkupRule:
        """Raises ValidationError on `name` when the owner already uses it."""

    @abstractmethod
    async def update_rule(self, owner_id: str, rule_id: str, rule: ValidatedRule) -> MarkupRule:
        """Raises NotFoundError for foreign ids and ValidationError on a taken `name`."""

    @abstractmethod
    async def delete_rule(self, owner_id: str, rule_id: str) -> None:
        ...

    @abstractmethod
    async def list_pricing_decisions(
        self, owner_id: str, start: datetime, end: datetime
    ) -> list[PricingDecisionRecord]:
        ...

    @abstractmethod
    async def add_pricing_decision(self, record: PricingDecisionRecord) -> None:
        ...


def ensure_name_available(rules, owner_id: str, name: str, rule_id: Optional[str] = None):
    """Rule names are unique per owner (exact match). Call while holding the store lock."""
    for existing in rules:
        if existing.owner_id == owner_id and existing.id != rule_id and existing.name == name:
            raise ValidationError.single('name', "a markup rule with this name already exists")


def build_rule(
    owner_id: str,
    rule: ValidatedRule,
    rule_id: str,
    created_at: datetime,
    updated_at: datetime,
) -> MarkupRule:
    """Combine validated fields with store-assigned identity and timestamps."""
    return MarkupRule(
        id=rule_id,
        owner_id=owner_id,
        name=rule.name,
        markup=rule.markup,
        created_at=created_at,
        updated_at=updated_at,
        min_volume=rule.min_volume,
        max_volume=rule.max_volume,
        country_code=rule.country_code,
        sms_type=rule.sms_type,
        priority=rule.priority,
        is_active=rule.is_active,
    )


class InMemoryRuleStore(RuleStore):
    """Dict-backed store. Mutations are serialized with an asyncio.Lock."""

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self._clock = clock
        self._rules: dict[str, MarkupRule] = {}
        self._decisions: list[PricingDecisionRecord] = []
        self._lock = asyncio.Lock()

    def _owned(self, owner_id: str, rule_id: str) -> MarkupRule:
        rule = self._rules.get(rule_id)
        if rule is None or rule.owner_id != owner_id:
            raise NotFoundError("Markup rule", rule_id)
        return rule

    async def list_active_rules(self, owner_id: str) -> list[MarkupRule]:
        return [r for r in self._rules.values() if r.owner_id == owner_id and r.is_active]

    async def list_all_rules(self, owner_id: str, include_inactive: bool = True) -> list[MarkupRule]:
        return [
            r for r in self._rules.values()
            if r.owner_id == owner_id and (include_inactive or r.is_active)
        ]

    async def get_rule(self, owner_id: str, rule_id: str) -> MarkupRule:
        return self._owned(owner_id, rule_id)

    async def create_rule(self, owner_id: str, rule: ValidatedRule) -> MarkupRule:
        async with self._lock:
            ensure_name_available(self._rules.values(), owner_id, rule.name)
            now = self._clock()
            stored = build_rule(owner_id, rule, new_rule_id(), now, now)
            self._rules[stored.id] = stored
            return stored

    async def update_rule(self, owner_id: str, rule_id: str, rule: ValidatedRule) -> MarkupRule:
        async with self._lock:
            existing = self._owned(owner_id, rule_id)
            ensure_name_available(self._rules.values(), owner_id, rule.name, rule_id=rule_id)
            stored = build_rule(owner_id, rule, rule_id, existing.created_at, self._clock())
            self._rules[rule_id] = stored
            return stored

    async def delete_rule(self, owner_id: str, rule_id: str) -> None:
        async with self._lock:
            self._owned(owner_id, rule_id)
            del self._rules[rule_id]

    async def list_pricing_decisions(
        self, owner_id: str, start: datetime, end: datetime
    ) -> list[PricingDecisionRecord]:
        return [
            d for d in self._decisions
            if d.owner_id == owner_id and start <= d.occurred_at <= end
        ]

    async def add_pricing_decision(self, record: PricingDecisionRecord) -> None:
        async with self._lock:
            self._decisions.append(record)

    def seed_rule(self, rule: MarkupRule) -> MarkupRule:
        """Insert a fully-formed rule, keeping its id and timestamps."""
        self._rules[rule.id] = rule
        return rule
