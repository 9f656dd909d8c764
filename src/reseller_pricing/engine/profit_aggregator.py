"""
Profit Aggregator - Summarizes historical pricing decisions.

Pure over its inputs: the same records, window and clock always give an
equal ProfitSummary. Grouping is done with pandas; sums stay Decimal.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum

import pandas as pd

from .errors import ValidationError
from .models import MarkupRule, PricingDecisionRecord

UNSPECIFIED = "UNSPECIFIED"
ZERO = Decimal("0.00")


@dataclass(frozen=True)
class GroupBreakdown:
    """Profit and transaction count for one group key."""
    key: str
    profit: Decimal
    count: int

    def to_dict(self, key_name: str) -> dict:
        return {key_name: self.key, "profit": str(self.profit), "count": self.count}


@dataclass(frozen=True)
class ProfitSummary:
    """Aggregated profit figures for one owner over a window."""
    owner_id: str
    period_days: int
    start: datetime
    end: datetime
    total_profit: Decimal = ZERO
    total_revenue: Decimal = ZERO
    total_transactions: int = 0
    total_volume: int = 0
    profit_by_type: tuple[GroupBreakdown, ...] = ()
    profit_by_country: tuple[GroupBreakdown, ...] = ()
    recent_decisions: tuple[PricingDecisionRecord, ...] = ()

    @property
    def countries(self) -> list[str]:
        return [g.key for g in self.profit_by_country if g.key != UNSPECIFIED]

    def to_dict(self) -> dict:
        return {
            "ownerId": self.owner_id,
            "period": f"{self.period_days} days",
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "totalProfit": str(self.total_profit),
            "totalRevenue": str(self.total_revenue),
            "totalTransactions": self.total_transactions,
            "totalVolume": self.total_volume,
            "profitByType": [g.to_dict("type") for g in self.profit_by_type],
            "profitByCountry": [g.to_dict("countryCode") for g in self.profit_by_country],
            "recentTransactions": [
                {
                    "transactionId": r.transaction_id,
                    "occurredAt": r.occurred_at.isoformat(),
                    "volume": r.volume,
                    "countryCode": r.country_code,
                    "smsType": r.sms_type.value if r.sms_type else None,
                    "profit": str(r.quote.profit),
                }
                for r in self.recent_decisions
            ],
        }


class RecommendationFlag(str, Enum):
    NO_RULES = "NO_RULES"
    NO_PROFIT = "NO_PROFIT"
    NO_VOLUME_TIERS = "NO_VOLUME_TIERS"
    NO_COUNTRY_RULES = "NO_COUNTRY_RULES"


def window(days: int, now: datetime) -> tuple[datetime, datetime]:
    """Inclusive [now - days, now] window."""
    if isinstance(days, bool) or not isinstance(days, int) or days < 0:
        raise ValidationError.single('days', "must be a non-negative integer")
    return now - timedelta(days=days), now


def _decimal_sum(values) -> Decimal:
    return sum(values, ZERO)


def _breakdown(df: pd.DataFrame, column: str) -> tuple[GroupBreakdown, ...]:
    groups = []
    for key, group in df.groupby(column, sort=True):
        groups.append(GroupBreakdown(key=str(key), profit=_decimal_sum(group['profit']), count=len(group)))
    return tuple(groups)


def summarize(
    owner_id: str,
    records: list[PricingDecisionRecord],
    days: int,
    now: datetime,
    recent_limit: int = 10,
) -> ProfitSummary:
    """
    Summarize an owner's decisions that fall inside the window.

    Records for other owners or outside [now - days, now] are ignored, so
    callers may pass a wider result set than the store query returned.
    """
    start, end = window(days, now)
    in_window = [
        r for r in records
        if r.owner_id == owner_id and start <= r.occurred_at <= end
    ]

    if not in_window:
        return ProfitSummary(owner_id=owner_id, period_days=days, start=start, end=end)

    df = pd.DataFrame([
        {
            'sms_type': r.sms_type.value if r.sms_type else UNSPECIFIED,
            'country_code': r.country_code or UNSPECIFIED,
            'volume': r.volume,
            'profit': r.quote.profit,
            'revenue': r.quote.total_sell_price,
        }
        for r in in_window
    ])

    recent = sorted(
        in_window,
        key=lambda r: (r.occurred_at, r.transaction_id or ''),
        reverse=True,
    )[:recent_limit]

    return ProfitSummary(
        owner_id=owner_id,
        period_days=days,
        start=start,
        end=end,
        total_profit=_decimal_sum(df['profit']),
        total_revenue=_decimal_sum(df['revenue']),
        total_transactions=len(df),
        total_volume=int(df['volume'].sum()),
        profit_by_type=_breakdown(df, 'sms_type'),
        profit_by_country=_breakdown(df, 'country_code'),
        recent_decisions=tuple(recent),
    )


def derive_flags(
    rules: list[MarkupRule],
    summary: ProfitSummary,
    high_volume_threshold: int = 100,
) -> set[RecommendationFlag]:
    """Recommendation flags derived from the rule list and a summary."""
    flags = set()

    if not rules:
        flags.add(RecommendationFlag.NO_RULES)

    if summary.total_profit == 0:
        flags.add(RecommendationFlag.NO_PROFIT)

    has_volume_rules = any(r.has_volume_bounds for r in rules)
    if not has_volume_rules and summary.total_transactions > high_volume_threshold:
        flags.add(RecommendationFlag.NO_VOLUME_TIERS)

    has_country_rules = any(r.country_code for r in rules)
    if not has_country_rules and len(summary.countries) > 1:
        flags.add(RecommendationFlag.NO_COUNTRY_RULES)

    return flags
