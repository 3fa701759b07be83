"""
Rules API - FastAPI router for checking rule configurations.
"""
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict
from typing import Any, Optional

from ..config.settings import get_settings
from ..engine.payload import parse_cart, parse_customer
from ..exceptions import ConfigError, PayloadError
from ..rules.compile_rules import compile_rules as compile_rule_sheet, validate_configuration
from .state import engine

router = APIRouter(prefix="/api/rules", tags=["rules"])


# Pydantic models for API
class ConfigurationBody(BaseModel):
    """A rule configuration as stored on the discount metafield."""
    model_config = ConfigDict(extra="allow")

    pricingRules: list[Any] = []
    discountApplicationStrategy: Optional[str] = None


class ValidationResponse(BaseModel):
    """Response model for validation."""
    valid: bool
    errors: list[str]
    warnings: list[str]
    rule_count: int


class MatchRequest(BaseModel):
    """Request model for explaining which rules match a cart."""
    configuration: ConfigurationBody
    cart: dict


class MatchEntry(BaseModel):
    ruleId: str
    lineId: str
    matched: bool
    reason: str
    failedAxis: Optional[str] = None


class MatchResponse(BaseModel):
    """Response model for a match explanation."""
    matches: list[MatchEntry]
    dropped: list[str]


# Endpoints

@router.post("/validate", response_model=ValidationResponse)
async def validate_rules(config: ConfigurationBody):
    """Validate a configuration without evaluating it."""
    result = validate_configuration(config.model_dump())
    return ValidationResponse(
        valid=result.valid,
        errors=result.errors,
        warnings=result.warnings,
        rule_count=result.rule_count,
    )


@router.post("/match", response_model=MatchResponse)
async def match_rules(request: MatchRequest):
    """Show, for every cart line, which rules match and why the others do not."""
    try:
        cart = parse_cart(request.cart)
        customer = parse_customer(request.cart)
        rule_set = engine.decode(request.configuration.model_dump())
    except (PayloadError, ConfigError) as e:
        raise HTTPException(status_code=422, detail=str(e))

    results = engine.explain(cart, customer, rule_set)
    return MatchResponse(
        matches=[MatchEntry(**r.to_dict()) for r in results],
        dropped=list(rule_set.dropped),
    )


@router.post("/compile")
async def compile_rules():
    """Recompile the rule sheet into the configuration file."""
    settings = get_settings()
    success, rules, errors = compile_rule_sheet(settings.rules_source, settings.compiled_config)
    return {
        "success": success,
        "rules": len(rules),
        "errors": errors,
    }
