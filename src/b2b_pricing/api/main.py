from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from typing import Any
import logging

from ..config.settings import get_settings
from ..exceptions import ConfigError, PayloadError
from ..rules.compile_rules import load_compiled_config, validate_configuration
from .rules_api import router as rules_router
from .state import engine

logger = logging.getLogger(__name__)

app = FastAPI(
    title="B2B Pricing API",
    description="Local host harness for the B2B pricing discount engine",
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

# Include rules checking API
app.include_router(rules_router)


@app.get("/")
async def root():
    return {"status": "online", "message": "B2B Pricing API Active"}


@app.post("/run")
async def run_discounts(payload: dict[str, Any], include_warnings: bool = False):
    """Evaluate a host input payload exactly as the checkout would."""
    try:
        return engine.run(payload, include_warnings=include_warnings)
    except (PayloadError, ConfigError) as e:
        logger.warning("Rejected run input: %s", e)
        raise HTTPException(status_code=422, detail=str(e))


@app.get("/system/status")
async def get_status():
    settings = get_settings()
    config = load_compiled_config(settings.compiled_config)
    if config is None:
        return {"engine_active": True, "config_compiled": False, "rules_count": 0, "valid": None}

    validation = validate_configuration(config)
    return {
        "engine_active": True,
        "config_compiled": True,
        "rules_count": validation.rule_count,
        "valid": validation.valid,
        "compiled_at": config.get("compiledAt"),
    }
