"""
Conflict Resolver - narrows the matched rules of a line to the effective ones.

Precedence contract: the numerically SMALLER priority wins; equal
priorities fall back to the lexicographically smaller rule id. The
strategy is chosen by the caller, never inferred here.
"""
from typing import Iterable

from .models import ApplicationStrategy, PricingRule


def order_by_precedence(rules: Iterable[PricingRule]) -> list[PricingRule]:
    """Sort rules into resolution order, dropping inactive ones and repeated ids."""
    seen = set()
    ordered = []
    for rule in sorted(rules, key=lambda r: r.sort_key):
        if not rule.is_active or rule.id in seen:
            continue
        seen.add(rule.id)
        ordered.append(rule)
    return ordered


def resolve(matched: Iterable[PricingRule], strategy: ApplicationStrategy) -> list[PricingRule]:
    """
    Select the effective rules for one line.

    First keeps only the highest-precedence rule; All keeps every matched
    rule, each contributing its own discount entry.
    """
    ordered = order_by_precedence(matched)
    if strategy is ApplicationStrategy.FIRST:
        return ordered[:1]
    return ordered
