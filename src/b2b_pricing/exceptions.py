"""
Custom exceptions
"""
from typing import Optional


class PricingError(Exception):
    """Base exception"""
    pass


class ConfigError(PricingError):
    """Malformed or out-of-domain rule configuration"""

    def __init__(self, message: str, rule_index: Optional[int] = None, rule_id: Optional[str] = None):
        self.rule_index = rule_index
        self.rule_id = rule_id
        location = []
        if rule_index is not None:
            location.append(f"rule #{rule_index}")
        if rule_id:
            location.append(f"id={rule_id}")
        prefix = f"[{', '.join(location)}] " if location else ""
        super().__init__(f"{prefix}{message}")


class CalculationError(PricingError):
    """Negative price or quantity reached the calculator"""
    pass


class PayloadError(PricingError):
    """Evaluation input does not have the expected structure"""
    pass
