"""Engine subpackage - rule decoding, matching, resolution and discount composition."""
from .pricing_engine import PricingEngine
from .models import (
    ApplicationStrategy,
    Cart,
    CartLine,
    CustomerContext,
    DiscountDecision,
    DiscountEntry,
    DiscountType,
    Merchandise,
    MatchResult,
    PricingRule,
    RuleSet,
)
from .decoder import decode_configuration

__all__ = [
    'PricingEngine', 'ApplicationStrategy', 'Cart', 'CartLine', 'CustomerContext',
    'DiscountDecision', 'DiscountEntry', 'DiscountType', 'Merchandise', 'MatchResult',
    'PricingRule', 'RuleSet', 'decode_configuration',
]
