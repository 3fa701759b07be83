"""
Pricing Engine - evaluates B2B pricing rules against a cart.

Resolution order for every evaluation:
1. Decode the rule configuration (bad rules dropped unless strict)
2. Match each active rule against each cart line
3. Resolve matched rules per line by precedence and strategy
4. Compute each effective rule's discount amount
5. Compose the ordered decision for the host

The engine keeps no state between calls: the rule set is an argument and
the only instance attribute is the immutable EngineSettings.
"""
import logging
from decimal import Decimal
from typing import Any, Optional

from ..config.settings import EngineSettings
from ..exceptions import CalculationError, ConfigError, PayloadError
from .conflict_resolver import resolve
from .decision_composer import compose
from .decoder import decode_configuration
from .discount_calculator import compute_amount, minor_units
from .models import (
    ApplicationStrategy,
    Cart,
    CartLine,
    CustomerContext,
    DiscountDecision,
    DiscountEntry,
    MatchResult,
    RuleSet,
)
from .payload import extract_configuration, parse_cart, parse_customer
from .rule_matcher import find_matching_rules, match_line

logger = logging.getLogger(__name__)


class PricingEngine:
    """
    Pure evaluation of `(cart, customer, rule_set) -> DiscountDecision`.

    Priority contract: lower numeric priority wins, ties go to the
    smaller rule id.
    """

    def __init__(self, settings: Optional[EngineSettings] = None):
        self.settings = settings or EngineSettings()

    def decode(self, blob: Any) -> RuleSet:
        """Decode a configuration blob with this engine's strictness."""
        return decode_configuration(blob, strict=self.settings.strict_config)

    def run(self, payload: dict, include_warnings: bool = False) -> dict:
        """
        Evaluate a host input payload and return the host output payload.

        include_warnings adds a `warnings` list (dropped rules, fail-closed
        reasons) for callers other than the checkout host.

        Raises PayloadError for a structurally broken cart, and ConfigError
        only in strict mode.
        """
        if not isinstance(payload, dict):
            raise PayloadError("input must be an object")
        cart = parse_cart(payload.get('cart'))
        customer = parse_customer(payload.get('cart'))

        try:
            rule_set = self.decode(extract_configuration(payload))
        except ConfigError as e:
            if self.settings.strict_config:
                raise
            logger.warning("Unusable pricing configuration, applying no discounts: %s", e)
            rule_set = RuleSet(dropped=(str(e),))

        return self.evaluate(cart, customer, rule_set).to_wire(include_warnings=include_warnings)

    def evaluate(self, cart: Cart, customer: CustomerContext, rule_set: RuleSet) -> DiscountDecision:
        """
        Calculate the discount decision for a cart.

        A CalculationError fails closed: the empty decision is returned
        rather than a questionable amount.
        """
        if not rule_set.active_rules or not cart.lines:
            return DiscountDecision.empty(warnings=rule_set.dropped)

        entries = []
        try:
            for line in cart.lines:
                entries.extend(self._calculate_line(line, customer, rule_set))
        except CalculationError as e:
            logger.error("Discount calculation failed, returning no discounts: %s", e)
            return DiscountDecision.empty(warnings=rule_set.dropped + (str(e),))

        decision = compose(entries, rule_set.strategy, cart.lines, warnings=rule_set.dropped)
        logger.debug(
            "Evaluated %d rules over %d lines: %d discounts, strategy=%s",
            len(rule_set.rules), len(cart.lines), len(decision.discounts), decision.strategy.value,
        )
        return decision

    def explain(self, cart: Cart, customer: CustomerContext, rule_set: RuleSet) -> list[MatchResult]:
        """Every (rule, line) match outcome, in cart order then rule precedence."""
        results = []
        ordered_rules = sorted(rule_set.rules, key=lambda r: r.sort_key)
        for line in cart.lines:
            for rule in ordered_rules:
                results.append(match_line(rule, customer, line))
        return results

    def _calculate_line(self, line: CartLine, customer: CustomerContext, rule_set: RuleSet) -> list[DiscountEntry]:
        """Match, resolve and price the discounts for a single line."""
        if line.quantity == 0:
            logger.debug("Line %s has zero quantity, no discount", line.id)
            return []

        matched = find_matching_rules(rule_set.active_rules, customer, line)
        if not matched:
            return []

        reasons = {rule.id: result.match_reason for rule, result in matched}
        effective = resolve([rule for rule, _ in matched], rule_set.strategy)

        decimals = minor_units(line.currency_code, self.settings.default_minor_units)
        # Stacked discounts share one line price and may not exceed it
        remaining = line.extended_price if rule_set.strategy is ApplicationStrategy.ALL else None

        entries = []
        for rule in effective:
            amount = compute_amount(
                rule,
                line,
                remaining=remaining,
                decimals=decimals,
                rounding=self.settings.rounding,
            )
            capped = False
            if remaining is not None:
                full = compute_amount(rule, line, decimals=decimals, rounding=self.settings.rounding)
                capped = amount < full
                remaining = max(remaining - amount, Decimal("0"))
            entries.append(DiscountEntry(
                line_id=line.id,
                rule_id=rule.id,
                discount_type=rule.discount_type,
                discount_value=rule.discount_value,
                amount=amount,
                priority=rule.priority,
                capped=capped,
            ))
            logger.debug("Line %s: rule %s → %s (%s)", line.id, rule.id, amount, reasons.get(rule.id))
        return entries
