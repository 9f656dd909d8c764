"""
Pricing API - Quotes, rule testing and profit analytics.

This layer is a caller of the engine: it is where an omitted baseCost gets
its configured default before the request reaches the service.
"""
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..config.settings import get_settings
from ..engine.errors import PricingError
from ..services.pricing_service import PricingService
from .rules_api import CamelModel
from .state import get_owner_id, get_service, http_error

router = APIRouter(prefix="/api/pricing", tags=["pricing"])


class QuoteRequest(CamelModel):
    """Request model for a pricing quote."""
    volume: Optional[int] = None
    country_code: Optional[str] = None
    sms_type: Optional[str] = None
    base_cost: Optional[Decimal] = None

    def resolved_base_cost(self) -> Decimal:
        if self.base_cost is None:
            return get_settings().default_base_cost
        return self.base_cost


@router.post("/quote")
async def quote(
    req: QuoteRequest,
    owner_id: str = Depends(get_owner_id),
    service: PricingService = Depends(get_service),
):
    """Price a send."""
    try:
        result = await service.quote(
            owner_id,
            volume=req.volume,
            base_cost=req.resolved_base_cost(),
            country_code=req.country_code,
            sms_type=req.sms_type,
        )
    except PricingError as e:
        raise http_error(e)
    return result.to_dict()


@router.post("/test")
async def test_rules(
    req: QuoteRequest,
    owner_id: str = Depends(get_owner_id),
    service: PricingService = Depends(get_service),
):
    """Simulate a send: which rule would apply and what it would cost. Nothing is recorded."""
    try:
        return await service.test_quote(
            owner_id,
            volume=req.volume,
            base_cost=req.resolved_base_cost(),
            country_code=req.country_code,
            sms_type=req.sms_type,
        )
    except PricingError as e:
        raise http_error(e)


@router.get("/analytics")
async def analytics(
    days: Optional[int] = Query(None),
    owner_id: str = Depends(get_owner_id),
    service: PricingService = Depends(get_service),
):
    """Profit summary for the last `days` days."""
    if days is None:
        days = get_settings().analytics_default_days
    try:
        summary = await service.profit_summary(owner_id, days)
    except PricingError as e:
        raise http_error(e)
    return summary.to_dict()


@router.get("/recommendations")
async def recommendations(
    owner_id: str = Depends(get_owner_id),
    service: PricingService = Depends(get_service),
):
    """Pricing setup recommendations."""
    return await service.recommendations(owner_id, get_settings().analytics_default_days)
