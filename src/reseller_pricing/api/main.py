from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..config.settings import get_settings
from ..utils.logging import configure_logging
from .pricing_api import router as pricing_router
from .rules_api import router as rules_router

settings = get_settings()
configure_logging(level=settings.log_level, json_logs=settings.json_logs)

app = FastAPI(
    title="Reseller Pricing API",
    description="Markup rules, pricing quotes and profit analytics for SMS resellers",
    version="1.0.0"
)

# Enable CORS for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(rules_router)
app.include_router(pricing_router)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Body and header parse failures use the same 400 shape as engine validation."""
    errors = [
        {"field": ".".join(str(part) for part in err["loc"][1:]) or err["loc"][0], "reason": err["msg"]}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"detail": {"errors": errors}})


@app.get("/")
async def root():
    return {"status": "online", "message": "Reseller Pricing API Active"}
