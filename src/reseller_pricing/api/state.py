"""
Shared API state - one store and service per process.

Routers depend on get_service() so tests can swap in an in-memory store
through app.dependency_overrides.
"""
from fastapi import Header, HTTPException

from ..config.settings import get_settings
from ..engine.errors import ComputationError, NotFoundError, PricingError, ValidationError
from ..services.csv_rule_store import CsvRuleStore
from ..services.pricing_service import PricingService

settings = get_settings()
store = CsvRuleStore(settings.rules_csv, settings.decisions_csv)
service = PricingService.from_settings(store, settings)


def get_service() -> PricingService:
    return service


def get_owner_id(x_owner_id: str = Header(...)) -> str:
    """Owner identity is resolved upstream by the auth layer and passed as a header."""
    owner_id = x_owner_id.strip()
    if not owner_id:
        raise HTTPException(status_code=401, detail="Missing owner identity")
    return owner_id


def http_error(error: PricingError) -> HTTPException:
    """Translate an engine error into an HTTP error."""
    if isinstance(error, ValidationError):
        return HTTPException(status_code=400, detail={"errors": [e.to_dict() for e in error.errors]})
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, ComputationError):
        return HTTPException(status_code=422, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))
