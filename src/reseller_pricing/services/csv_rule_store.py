"""
CSV Rule Store - File-backed RuleStore for single-node deployments.

Rules live in one CSV rewritten on every mutation; pricing decisions are
appended to a second CSV and read back with pandas for analytics.
"""
import asyncio
import csv
import json
from datetime import datetime
from pathlib import Path
from typing import Callable

import pandas as pd

from ..engine.errors import NotFoundError
from ..engine.models import (
    MarkupRule,
    PricingDecisionRecord,
    PricingQuote,
    SmsType,
    ValidatedRule,
)
from ..engine.rule_validator import validate_rule
from ..utils.logging import get_logger
from .rule_store import RuleStore, build_rule, ensure_name_available, new_rule_id, utcnow

logger = get_logger(__name__)


def rule_to_csv_row(rule: MarkupRule) -> dict:
    """Convert to CSV row format."""
    return {
        'id': rule.id,
        'owner_id': rule.owner_id,
        'name': rule.name,
        'markup_type': rule.markup_type.value,
        'markup_value': str(rule.markup_value),
        'min_volume': '' if rule.min_volume is None else str(rule.min_volume),
        'max_volume': '' if rule.max_volume is None else str(rule.max_volume),
        'country_code': rule.country_code or '',
        'sms_type': rule.sms_type.value if rule.sms_type else '',
        'priority': str(rule.priority),
        'is_active': 'true' if rule.is_active else 'false',
        'created_at': rule.created_at.isoformat(),
        'updated_at': rule.updated_at.isoformat(),
    }


def rule_from_csv_row(row: dict) -> MarkupRule:
    """Create MarkupRule from CSV row."""
    validated = validate_rule(row)
    return build_rule(
        owner_id=row['owner_id'],
        rule=validated,
        rule_id=row['id'],
        created_at=datetime.fromisoformat(row['created_at']),
        updated_at=datetime.fromisoformat(row['updated_at']),
    )


class CsvRuleStore(RuleStore):
    """RuleStore backed by two CSV files."""

    RULE_COLUMNS = [
        'id', 'owner_id', 'name', 'markup_type', 'markup_value', 'min_volume',
        'max_volume', 'country_code', 'sms_type', 'priority', 'is_active',
        'created_at', 'updated_at',
    ]

    DECISION_COLUMNS = [
        'owner_id', 'occurred_at', 'volume', 'country_code', 'sms_type',
        'transaction_id', 'quote',
    ]

    def __init__(self, rules_csv_path: Path, decisions_csv_path: Path, clock: Callable[[], datetime] = utcnow):
        self.rules_csv_path = rules_csv_path
        self.decisions_csv_path = decisions_csv_path
        self._clock = clock
        self._lock = asyncio.Lock()

    # Rules

    def _read_rules(self) -> list[MarkupRule]:
        rules = []
        if not self.rules_csv_path.exists():
            return rules

        with open(self.rules_csv_path, 'r', encoding='utf-8', newline='') as f:
            reader = csv.DictReader(f)
            for row in reader:
                if not row.get('id'):
                    continue
                rules.append(rule_from_csv_row(row))

        return rules

    def _write_rules(self, rules: list[MarkupRule]):
        """Write rules back to CSV."""
        self.rules_csv_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.rules_csv_path, 'w', encoding='utf-8', newline='') as f:
            writer = csv.DictWriter(f, fieldnames=self.RULE_COLUMNS)
            writer.writeheader()
            for rule in rules:
                writer.writerow(rule_to_csv_row(rule))

    async def list_active_rules(self, owner_id: str) -> list[MarkupRule]:
        return await self.list_all_rules(owner_id, include_inactive=False)

    async def list_all_rules(self, owner_id: str, include_inactive: bool = True) -> list[MarkupRule]:
        rules = await asyncio.to_thread(self._read_rules)
        return [
            r for r in rules
            if r.owner_id == owner_id and (include_inactive or r.is_active)
        ]

    async def get_rule(self, owner_id: str, rule_id: str) -> MarkupRule:
        for rule in await self.list_all_rules(owner_id):
            if rule.id == rule_id:
                return rule
        raise NotFoundError("Markup rule", rule_id)

    async def create_rule(self, owner_id: str, rule: ValidatedRule) -> MarkupRule:
        async with self._lock:
            rules = await asyncio.to_thread(self._read_rules)
            ensure_name_available(rules, owner_id, rule.name)
            now = self._clock()
            stored = build_rule(owner_id, rule, new_rule_id(), now, now)
            rules.append(stored)
            await asyncio.to_thread(self._write_rules, rules)
            return stored

    async def update_rule(self, owner_id: str, rule_id: str, rule: ValidatedRule) -> MarkupRule:
        async with self._lock:
            rules = await asyncio.to_thread(self._read_rules)
            for i, existing in enumerate(rules):
                if existing.id == rule_id and existing.owner_id == owner_id:
                    ensure_name_available(rules, owner_id, rule.name, rule_id=rule_id)
                    rules[i] = build_rule(owner_id, rule, rule_id, existing.created_at, self._clock())
                    break
            else:
                raise NotFoundError("Markup rule", rule_id)

            await asyncio.to_thread(self._write_rules, rules)
            return rules[i]

    async def delete_rule(self, owner_id: str, rule_id: str) -> None:
        async with self._lock:
            rules = await asyncio.to_thread(self._read_rules)
            remaining = [r for r in rules if not (r.id == rule_id and r.owner_id == owner_id)]

            if len(remaining) == len(rules):
                raise NotFoundError("Markup rule", rule_id)

            await asyncio.to_thread(self._write_rules, remaining)

    # Pricing decisions

    def _read_decisions(self) -> pd.DataFrame:
        if not self.decisions_csv_path.exists():
            return pd.DataFrame(columns=self.DECISION_COLUMNS)
        return pd.read_csv(self.decisions_csv_path, dtype=str).fillna('')

    def _append_decision(self, record: PricingDecisionRecord):
        self.decisions_csv_path.parent.mkdir(parents=True, exist_ok=True)
        write_header = not self.decisions_csv_path.exists()
        with open(self.decisions_csv_path, 'a', encoding='utf-8', newline='') as f:
            writer = csv.DictWriter(f, fieldnames=self.DECISION_COLUMNS)
            if write_header:
                writer.writeheader()
            writer.writerow({
                'owner_id': record.owner_id,
                'occurred_at': record.occurred_at.isoformat(),
                'volume': str(record.volume),
                'country_code': record.country_code or '',
                'sms_type': record.sms_type.value if record.sms_type else '',
                'transaction_id': record.transaction_id or '',
                'quote': json.dumps(record.quote.to_dict()),
            })

    async def list_pricing_decisions(
        self, owner_id: str, start: datetime, end: datetime
    ) -> list[PricingDecisionRecord]:
        df = await asyncio.to_thread(self._read_decisions)
        df = df[df['owner_id'] == owner_id]

        records = []
        for _, row in df.iterrows():
            occurred_at = datetime.fromisoformat(row['occurred_at'])
            if not (start <= occurred_at <= end):
                continue
            records.append(PricingDecisionRecord(
                owner_id=row['owner_id'],
                occurred_at=occurred_at,
                volume=int(row['volume']),
                quote=PricingQuote.from_dict(json.loads(row['quote'])),
                country_code=row['country_code'] or None,
                sms_type=SmsType(row['sms_type']) if row['sms_type'] else None,
                transaction_id=row['transaction_id'] or None,
            ))
        return records

    async def add_pricing_decision(self, record: PricingDecisionRecord) -> None:
        async with self._lock:
            await asyncio.to_thread(self._append_decision, record)
        logger.debug("Recorded pricing decision for owner %s", record.owner_id)
