"""
Rule decoder - turns the configuration blob into typed PricingRule values.

Bad rules are dropped and logged unless strict mode is requested, so a
single broken rule does not take the whole checkout down with it.
"""
import json
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from ..exceptions import ConfigError
from .models import ApplicationStrategy, DiscountType, PricingRule, RuleSet

logger = logging.getLogger(__name__)

MAX_PERCENTAGE = Decimal("100")


def parse_id_list(value: Any, field_name: str, index: Optional[int] = None, rule_id: Optional[str] = None) -> frozenset[str]:
    """Parse an id/tag list. Missing or null means no restriction."""
    if value is None:
        return frozenset()
    if isinstance(value, str):
        # Comma-separated form, as found in rule sheets
        return frozenset(v.strip() for v in value.split(',') if v.strip())
    if not isinstance(value, (list, tuple, set, frozenset)):
        raise ConfigError(f"{field_name} must be a list of strings", index, rule_id)
    items = set()
    for item in value:
        if not isinstance(item, (str, int)) or isinstance(item, bool):
            raise ConfigError(f"{field_name} contains a non-string entry: {item!r}", index, rule_id)
        text = str(item).strip()
        if text:
            items.add(text)
    return frozenset(items)


def parse_discount_type(value: Any, index: Optional[int] = None, rule_id: Optional[str] = None) -> DiscountType:
    try:
        return DiscountType(value)
    except ValueError:
        valid = ", ".join(t.value for t in DiscountType)
        raise ConfigError(f"invalid discountType {value!r}, must be one of: {valid}", index, rule_id) from None


def parse_discount_value(value: Any, discount_type: DiscountType, index: Optional[int] = None, rule_id: Optional[str] = None) -> Decimal:
    if value is None or isinstance(value, bool):
        raise ConfigError("discountValue is required and must be numeric", index, rule_id)
    try:
        # str() first so floats keep their shortest decimal form
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ConfigError(f"discountValue must be numeric, got {value!r}", index, rule_id) from None
    if not amount.is_finite():
        raise ConfigError(f"discountValue must be finite, got {value!r}", index, rule_id)
    if amount < 0:
        raise ConfigError(f"discountValue must not be negative, got {amount}", index, rule_id)
    if discount_type is DiscountType.PERCENTAGE and amount > MAX_PERCENTAGE:
        raise ConfigError(f"percentage discountValue must be between 0 and 100, got {amount}", index, rule_id)
    return amount


def parse_priority(value: Any, index: Optional[int] = None, rule_id: Optional[str] = None) -> int:
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        raise ConfigError("priority must be an integer", index, rule_id)
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise ConfigError(f"priority must be an integer, got {value!r}", index, rule_id)


def parse_bool(value: Any, default: bool = True) -> bool:
    """Parse a boolean; absent means the default."""
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('true', '1', 'yes', 'on')


def decode_rule(raw: Any, index: Optional[int] = None) -> PricingRule:
    """
    Validate and decode a single rule.

    Raises ConfigError if the rule cannot be used.
    """
    if not isinstance(raw, dict):
        raise ConfigError("rule must be an object", index)

    rule_id = raw.get('id')
    if rule_id is None or not str(rule_id).strip():
        raise ConfigError("id is required", index)
    rule_id = str(rule_id).strip()

    discount_type = parse_discount_type(raw.get('discountType'), index, rule_id)

    return PricingRule(
        id=rule_id,
        discount_type=discount_type,
        discount_value=parse_discount_value(raw.get('discountValue'), discount_type, index, rule_id),
        customer_tags=parse_id_list(raw.get('customerTags'), 'customerTags', index, rule_id),
        product_ids=parse_id_list(raw.get('productIds'), 'productIds', index, rule_id),
        collection_ids=parse_id_list(raw.get('collectionIds'), 'collectionIds', index, rule_id),
        priority=parse_priority(raw.get('priority'), index, rule_id),
        is_active=parse_bool(raw.get('isActive'), default=True),
    )


def parse_strategy(value: Any) -> ApplicationStrategy:
    if value is None:
        return ApplicationStrategy.FIRST
    try:
        return ApplicationStrategy(value)
    except ValueError:
        raise ConfigError(f"invalid discountApplicationStrategy {value!r}, must be First or All") from None


def load_blob(blob: Any) -> Optional[dict]:
    """Accept the configuration as a dict or as its JSON text."""
    if blob is None:
        return None
    if isinstance(blob, (str, bytes)):
        try:
            blob = json.loads(blob)
        except ValueError as e:
            raise ConfigError(f"configuration is not valid JSON: {e}") from None
    if not isinstance(blob, dict):
        raise ConfigError("configuration must be an object")
    return blob


def decode_configuration(blob: Any, strict: bool = False) -> RuleSet:
    """
    Decode `{pricingRules: [...]}` into a RuleSet.

    With strict=False each invalid rule is logged and skipped; with
    strict=True the first invalid rule raises ConfigError.
    """
    data = load_blob(blob)
    if data is None:
        return RuleSet.empty()

    raw_rules = data.get('pricingRules')
    if raw_rules is None:
        raw_rules = []
    if not isinstance(raw_rules, list):
        raise ConfigError("pricingRules must be a list")

    try:
        strategy = parse_strategy(data.get('discountApplicationStrategy'))
    except ConfigError as e:
        if strict:
            raise
        logger.warning("%s; falling back to First", e)
        strategy = ApplicationStrategy.FIRST

    rules = []
    dropped = []
    seen_ids = set()
    for index, raw in enumerate(raw_rules):
        try:
            rule = decode_rule(raw, index)
            if rule.id in seen_ids:
                raise ConfigError("duplicate rule id", index, rule.id)
        except ConfigError as e:
            if strict:
                raise
            logger.warning("Dropping pricing rule: %s", e)
            dropped.append(str(e))
            continue
        seen_ids.add(rule.id)
        rules.append(rule)

    logger.debug("Decoded %d rules (%d dropped), strategy=%s", len(rules), len(dropped), strategy.value)
    return RuleSet(rules=tuple(rules), strategy=strategy, dropped=tuple(dropped))
