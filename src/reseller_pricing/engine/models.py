"""
Data models for the markup pricing engine.

Uses dataclasses for structured, type-safe data representation.
Money values are Decimals end to end; floats never enter the engine.
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Union


class MarkupType(str, Enum):
    """How a rule's markup value is applied to the wholesale cost."""
    PERCENTAGE = "PERCENTAGE"
    FIXED_AMOUNT = "FIXED_AMOUNT"
    FIXED_PRICE = "FIXED_PRICE"


class SmsType(str, Enum):
    """Message category a rule can be scoped to."""
    TRANSACTIONAL = "TRANSACTIONAL"
    PROMOTIONAL = "PROMOTIONAL"
    OTP = "OTP"


@dataclass(frozen=True)
class PercentageMarkup:
    """Adds `value` percentage points on top of the base cost."""
    value: Decimal
    markup_type = MarkupType.PERCENTAGE


@dataclass(frozen=True)
class FixedAmountMarkup:
    """Adds a currency amount to the base cost. Negative values model discounts."""
    value: Decimal
    markup_type = MarkupType.FIXED_AMOUNT


@dataclass(frozen=True)
class FixedPriceMarkup:
    """Replaces the sell price outright."""
    value: Decimal
    markup_type = MarkupType.FIXED_PRICE


Markup = Union[PercentageMarkup, FixedAmountMarkup, FixedPriceMarkup]

_MARKUP_VARIANTS = {
    MarkupType.PERCENTAGE: PercentageMarkup,
    MarkupType.FIXED_AMOUNT: FixedAmountMarkup,
    MarkupType.FIXED_PRICE: FixedPriceMarkup,
}


def make_markup(markup_type: MarkupType, value: Decimal) -> Markup:
    """Build the markup variant for a type tag."""
    return _MARKUP_VARIANTS[MarkupType(markup_type)](value=Decimal(value))


@dataclass(frozen=True)
class MarkupRule:
    """A reseller-owned markup rule as persisted by the rule store."""
    id: str
    owner_id: str
    name: str
    markup: Markup
    created_at: datetime
    updated_at: datetime
    min_volume: Optional[int] = None
    max_volume: Optional[int] = None
    country_code: Optional[str] = None
    sms_type: Optional[SmsType] = None
    priority: int = 0
    is_active: bool = True

    @property
    def markup_type(self) -> MarkupType:
        return self.markup.markup_type

    @property
    def markup_value(self) -> Decimal:
        return self.markup.value

    @property
    def has_volume_bounds(self) -> bool:
        return self.min_volume is not None or self.max_volume is not None

    def to_dict(self) -> dict:
        """Convert to the camelCase dict shape used by the API."""
        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "name": self.name,
            "markupType": self.markup_type.value,
            "markupValue": str(self.markup_value),
            "minVolume": self.min_volume,
            "maxVolume": self.max_volume,
            "countryCode": self.country_code,
            "smsType": self.sms_type.value if self.sms_type else None,
            "priority": self.priority,
            "isActive": self.is_active,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


@dataclass(frozen=True)
class ValidatedRule:
    """Rule fields that passed validation and are ready to be stored."""
    name: str
    markup: Markup
    min_volume: Optional[int] = None
    max_volume: Optional[int] = None
    country_code: Optional[str] = None
    sms_type: Optional[SmsType] = None
    priority: int = 0
    is_active: bool = True


@dataclass(frozen=True)
class PricingRequest:
    """A send to be priced. `base_cost` always comes from the caller."""
    owner_id: str
    volume: int
    base_cost: Decimal
    country_code: Optional[str] = None
    sms_type: Optional[SmsType] = None


@dataclass
class TraceStep:
    """A single step in the pricing resolution trace."""
    step: str
    description: str
    value: Optional[str] = None


@dataclass
class PricingQuote:
    """Complete result of pricing one request."""
    base_cost_per_unit: Decimal
    volume: int
    unit_sell_price: Decimal
    total_sell_price: Decimal
    total_cost: Decimal
    profit: Decimal
    profit_margin_pct: Decimal
    applied_rule_id: Optional[str] = None
    markup_type: Optional[MarkupType] = None
    clamped: bool = False
    warnings: list[str] = field(default_factory=list)
    trace: list[TraceStep] = field(default_factory=list)

    def add_trace(self, step: str, description: str, value: str = None):
        """Add a step to the trace for this quote."""
        self.trace.append(TraceStep(step=step, description=description, value=value))

    def add_warning(self, warning: str):
        """Add a warning for this quote."""
        self.warnings.append(warning)

    def get_trace_text(self) -> str:
        """Get human-readable trace as formatted text."""
        lines = []
        for t in self.trace:
            if t.value:
                lines.append(f"→ {t.step}: {t.description} = {t.value}")
            else:
                lines.append(f"→ {t.step}: {t.description}")
        return "\n".join(lines)

    def to_dict(self) -> dict:
        """Snapshot used for API responses and decision records."""
        return {
            "baseCostPerUnit": str(self.base_cost_per_unit),
            "volume": self.volume,
            "appliedRuleId": self.applied_rule_id,
            "markupType": self.markup_type.value if self.markup_type else None,
            "unitSellPrice": str(self.unit_sell_price),
            "totalSellPrice": str(self.total_sell_price),
            "totalCost": str(self.total_cost),
            "profit": str(self.profit),
            "profitMarginPct": str(self.profit_margin_pct),
            "clamped": self.clamped,
            "warnings": list(self.warnings),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'PricingQuote':
        """Rebuild a quote snapshot (trace is not persisted)."""
        markup_type = data.get("markupType")
        return cls(
            base_cost_per_unit=Decimal(data["baseCostPerUnit"]),
            volume=int(data["volume"]),
            unit_sell_price=Decimal(data["unitSellPrice"]),
            total_sell_price=Decimal(data["totalSellPrice"]),
            total_cost=Decimal(data["totalCost"]),
            profit=Decimal(data["profit"]),
            profit_margin_pct=Decimal(data["profitMarginPct"]),
            applied_rule_id=data.get("appliedRuleId"),
            markup_type=MarkupType(markup_type) if markup_type else None,
            clamped=bool(data.get("clamped", False)),
            warnings=list(data.get("warnings") or []),
        )


@dataclass(frozen=True)
class PricingDecisionRecord:
    """Immutable record of one billed send, read back for analytics."""
    owner_id: str
    occurred_at: datetime
    volume: int
    quote: PricingQuote
    country_code: Optional[str] = None
    sms_type: Optional[SmsType] = None
    transaction_id: Optional[str] = None
