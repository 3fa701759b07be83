"""
Rule Matcher - Decides which pricing rules apply to a cart line.

A rule has three independent axes (customer tags, products, collections).
An empty axis places no restriction; a non-empty axis must find a hit.
"""
import logging
from typing import Iterable

from .models import CartLine, CustomerContext, MatchResult, PricingRule

logger = logging.getLogger(__name__)

AXIS_ACTIVE = "isActive"
AXIS_CUSTOMER = "customerTags"
AXIS_PRODUCT = "productIds"
AXIS_COLLECTION = "collectionIds"


def match_line(rule: PricingRule, customer: CustomerContext, line: CartLine) -> MatchResult:
    """
    Test one rule against one line, recording why it passed or failed.
    """
    reasons = []

    def rejected(axis: str) -> MatchResult:
        return MatchResult(rule_id=rule.id, line_id=line.id, matched=False,
                           reasons=tuple(reasons), failed_axis=axis)

    if not rule.is_active:
        return rejected(AXIS_ACTIVE)

    # Customer tag match (any shared tag)
    if rule.customer_tags:
        shared = rule.customer_tags & customer.tags
        if not shared:
            return rejected(AXIS_CUSTOMER)
        reasons.append(f"tag={','.join(sorted(shared))}")

    # Product match
    if rule.product_ids:
        if line.merchandise.product_id not in rule.product_ids:
            return rejected(AXIS_PRODUCT)
        reasons.append(f"product={line.merchandise.product_id}")

    # Collection match (any shared collection)
    if rule.collection_ids:
        shared = rule.collection_ids & line.merchandise.collection_ids
        if not shared:
            return rejected(AXIS_COLLECTION)
        reasons.append(f"collection={','.join(sorted(shared))}")

    if rule.is_cart_level:
        reasons.append("cart-wide")

    return MatchResult(rule_id=rule.id, line_id=line.id, matched=True, reasons=tuple(reasons))


def matches(rule: PricingRule, customer: CustomerContext, line: CartLine) -> bool:
    """True when every axis of the rule passes for this customer and line."""
    return match_line(rule, customer, line).matched


def find_matching_rules(
    rules: Iterable[PricingRule],
    customer: CustomerContext,
    line: CartLine,
) -> list[tuple[PricingRule, MatchResult]]:
    """
    Find all rules that match the given line.

    Returns (rule, match) pairs sorted by priority (lower = higher priority),
    ties broken by rule id.
    """
    matched = []
    for rule in rules:
        result = match_line(rule, customer, line)
        if result.matched:
            matched.append((rule, result))
        else:
            logger.debug("Rule %s skipped for line %s: %s", rule.id, line.id, result.match_reason)

    matched.sort(key=lambda pair: pair[0].sort_key)
    return matched
