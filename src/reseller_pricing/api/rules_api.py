"""
Rules API - FastAPI router for markup rule management.
"""
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ..engine.errors import PricingError, ValidationError
from ..services.pricing_service import PricingService
from .state import get_owner_id, get_service, http_error

router = APIRouter(prefix="/api/markup-rules", tags=["markup-rules"])


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Pydantic models for API
class RuleCreate(CamelModel):
    """Request model for creating a rule."""
    name: Optional[str] = None
    markup_type: Optional[str] = None
    markup_value: Optional[Decimal] = None
    min_volume: Optional[int] = None
    max_volume: Optional[int] = None
    country_code: Optional[str] = None
    sms_type: Optional[str] = None
    priority: int = 0
    is_active: bool = True


class RuleUpdate(CamelModel):
    """Request model for updating a rule."""
    name: Optional[str] = None
    markup_type: Optional[str] = None
    markup_value: Optional[Decimal] = None
    min_volume: Optional[int] = None
    max_volume: Optional[int] = None
    country_code: Optional[str] = None
    sms_type: Optional[str] = None
    priority: Optional[int] = None
    is_active: Optional[bool] = None


class TierCreate(CamelModel):
    """Request model for a volume tier."""
    name: str
    min_volume: Optional[int] = None
    max_volume: Optional[int] = None
    percentage: Optional[Decimal] = None
    is_active: bool = True


# Endpoints

@router.get("")
async def list_rules(
    include_inactive: bool = Query(False, alias="includeInactive"),
    owner_id: str = Depends(get_owner_id),
    service: PricingService = Depends(get_service),
):
    """List markup rules in resolution order."""
    rules = await service.list_rules(owner_id, include_inactive=include_inactive)
    return [rule.to_dict() for rule in rules]


@router.post("", status_code=201)
async def create_rule(
    rule_data: RuleCreate,
    owner_id: str = Depends(get_owner_id),
    service: PricingService = Depends(get_service),
):
    """Create a new markup rule."""
    try:
        result = await service.create_rule(owner_id, rule_data.model_dump())
    except PricingError as e:
        raise http_error(e)
    return {"rule": result.rule.to_dict(), "warnings": result.warnings}


@router.get("/stats")
async def get_stats(
    owner_id: str = Depends(get_owner_id),
    service: PricingService = Depends(get_service),
):
    """Get rule statistics."""
    return await service.rule_stats(owner_id)


@router.post("/validate")
async def validate(
    rule_data: RuleCreate,
    owner_id: str = Depends(get_owner_id),
    service: PricingService = Depends(get_service),
):
    """Validate a rule without saving."""
    try:
        warnings = await service.preview_rule(owner_id, rule_data.model_dump())
    except ValidationError as e:
        return {"valid": False, "errors": [err.to_dict() for err in e.errors], "warnings": []}
    return {"valid": True, "errors": [], "warnings": warnings}


@router.get("/tiers")
async def list_tiers(
    owner_id: str = Depends(get_owner_id),
    service: PricingService = Depends(get_service),
):
    """List volume tiers by minimum volume."""
    tiers = await service.list_volume_tiers(owner_id)
    return [tier.to_dict() for tier in tiers]


@router.post("/tiers", status_code=201)
async def create_tier(
    tier: TierCreate,
    owner_id: str = Depends(get_owner_id),
    service: PricingService = Depends(get_service),
):
    """Create a volume tier."""
    try:
        result = await service.create_volume_tier(
            owner_id,
            name=tier.name,
            min_volume=tier.min_volume,
            max_volume=tier.max_volume,
            percentage=tier.percentage,
            is_active=tier.is_active,
        )
    except PricingError as e:
        raise http_error(e)
    return {"rule": result.rule.to_dict(), "warnings": result.warnings}


@router.get("/{rule_id}")
async def get_rule(
    rule_id: str,
    owner_id: str = Depends(get_owner_id),
    service: PricingService = Depends(get_service),
):
    """Get a single rule by ID."""
    try:
        rule = await service.get_rule(owner_id, rule_id)
    except PricingError as e:
        raise http_error(e)
    return rule.to_dict()


@router.put("/{rule_id}")
async def update_rule(
    rule_id: str,
    updates: RuleUpdate,
    owner_id: str = Depends(get_owner_id),
    service: PricingService = Depends(get_service),
):
    """Update an existing rule."""
    # Use exclude_unset=True to only update fields provided in the request body,
    # including those explicitly set to None (null).
    update_dict = updates.model_dump(exclude_unset=True)
    if not update_dict:
        raise HTTPException(status_code=400, detail={"errors": [{"field": "body", "reason": "no fields to update"}]})

    try:
        result = await service.update_rule(owner_id, rule_id, update_dict)
    except PricingError as e:
        raise http_error(e)
    return {"rule": result.rule.to_dict(), "warnings": result.warnings}


@router.delete("/{rule_id}")
async def delete_rule(
    rule_id: str,
    owner_id: str = Depends(get_owner_id),
    service: PricingService = Depends(get_service),
):
    """Delete a rule."""
    try:
        await service.delete_rule(owner_id, rule_id)
    except PricingError as e:
        raise http_error(e)
    return {"success": True, "message": "Markup rule deleted successfully"}
