"""Shared engine instance for the API routes (stateless, safe to share)."""
from ..config.settings import get_settings
from ..engine import PricingEngine

engine = PricingEngine(get_settings().engine)
