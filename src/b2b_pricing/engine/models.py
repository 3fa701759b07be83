"""
Data models for the pricing engine.

Uses frozen dataclasses: every value is built fresh for one evaluation
and never mutated afterwards.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional


class DiscountType(str, Enum):
    """Wire literals for the two supported discount kinds."""
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class ApplicationStrategy(str, Enum):
    """How the host combines discounts when more than one applies."""
    FIRST = "First"
    ALL = "All"


def decimal_text(value: Decimal) -> str:
    """Plain (non-exponent) text for a decimal, trailing zeros removed."""
    text = format(value.normalize(), 'f')
    return "0" if text in ("-0", "") else text


@dataclass(frozen=True)
class PricingRule:
    """A single merchant pricing rule, read-only after decode."""
    id: str
    discount_type: DiscountType
    discount_value: Decimal
    customer_tags: frozenset[str] = frozenset()
    product_ids: frozenset[str] = frozenset()
    collection_ids: frozenset[str] = frozenset()
    priority: int = 0
    is_active: bool = True

    @property
    def is_cart_level(self) -> bool:
        """True when neither product nor collection axis restricts the rule."""
        return not self.product_ids and not self.collection_ids

    @property
    def sort_key(self) -> tuple[int, str]:
        # Lower priority value wins, ties broken by id
        return (self.priority, self.id)

    def to_config_dict(self) -> dict:
        """Render back to the lower-camel-case configuration format."""
        return {
            "id": self.id,
            "customerTags": sorted(self.customer_tags),
            "productIds": sorted(self.product_ids),
            "collectionIds": sorted(self.collection_ids),
            "discountType": self.discount_type.value,
            "discountValue": decimal_text(self.discount_value),
            "priority": self.priority,
            "isActive": self.is_active,
        }


@dataclass(frozen=True)
class RuleSet:
    """Decoded configuration for one evaluation pass."""
    rules: tuple[PricingRule, ...] = ()
    strategy: ApplicationStrategy = ApplicationStrategy.FIRST
    dropped: tuple[str, ...] = ()  # messages for rules skipped at decode

    @classmethod
    def empty(cls) -> 'RuleSet':
        return cls()

    @property
    def active_rules(self) -> tuple[PricingRule, ...]:
        return tuple(r for r in self.rules if r.is_active)


@dataclass(frozen=True)
class Merchandise:
    """What a cart line points at."""
    product_id: str
    collection_ids: frozenset[str] = frozenset()


@dataclass(frozen=True)
class CartLine:
    """A single line of the cart."""
    id: str
    quantity: int
    merchandise: Merchandise
    unit_price: Decimal = Decimal("0")
    currency_code: Optional[str] = None

    @property
    def extended_price(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class Cart:
    lines: tuple[CartLine, ...] = ()


@dataclass(frozen=True)
class CustomerContext:
    """Buyer identity as seen by the rules: just a tag set."""
    tags: frozenset[str] = frozenset()

    @classmethod
    def anonymous(cls) -> 'CustomerContext':
        return cls()


@dataclass(frozen=True)
class MatchResult:
    """Outcome of testing one rule against one cart line."""
    rule_id: str
    line_id: str
    matched: bool
    reasons: tuple[str, ...] = ()
    failed_axis: Optional[str] = None

    @property
    def match_reason(self) -> str:
        if not self.matched:
            return f"rejected on {self.failed_axis}"
        return ", ".join(self.reasons) if self.reasons else "default"

    def to_dict(self) -> dict:
        return {
            "ruleId": self.rule_id,
            "lineId": self.line_id,
            "matched": self.matched,
            "reason": self.match_reason,
            "failedAxis": self.failed_axis,
        }


@dataclass(frozen=True)
class DiscountEntry:
    """One computed discount for one cart line."""
    line_id: str
    rule_id: str
    discount_type: DiscountType
    discount_value: Decimal
    amount: Decimal
    priority: int = 0
    capped: bool = False  # amount was cut to what is left of the line

    def to_wire(self) -> dict:
        # A capped percentage would overshoot the line if sent as a rate
        if self.discount_type is DiscountType.PERCENTAGE and not self.capped:
            value = {"percentage": {"value": decimal_text(self.discount_value)}}
        else:
            value = {"fixedAmount": {"amount": str(self.amount), "appliesToEachItem": False}}
        return {
            "targets": [{"cartLine": {"id": self.line_id}}],
            "value": value,
            "message": self.rule_id,
            "ruleId": self.rule_id,
            "discountType": self.discount_type.value,
            "amount": str(self.amount),
        }


@dataclass(frozen=True)
class DiscountDecision:
    """Complete result of an evaluation."""
    discounts: tuple[DiscountEntry, ...] = ()
    strategy: ApplicationStrategy = ApplicationStrategy.FIRST
    warnings: tuple[str, ...] = field(default=(), compare=False)

    @classmethod
    def empty(cls, warnings: tuple[str, ...] = ()) -> 'DiscountDecision':
        """The documented "no discount" outcome."""
        return cls(discounts=(), strategy=ApplicationStrategy.FIRST, warnings=warnings)

    @property
    def total_amount(self) -> Decimal:
        return sum((d.amount for d in self.discounts), Decimal("0"))

    def to_wire(self, include_warnings: bool = False) -> dict:
        """Convert to the host's output format, optionally with decode/calculation warnings."""
        wire = {
            "discounts": [d.to_wire() for d in self.discounts],
            "discountApplicationStrategy": self.strategy.value,
        }
        if include_warnings:
            wire["warnings"] = list(self.warnings)
        return wire
