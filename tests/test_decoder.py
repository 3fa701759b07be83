"""
Tests for decoding rule configurations.
"""
import json
import logging
from decimal import Decimal

import pytest

from b2b_pricing.engine import ApplicationStrategy, DiscountType, decode_configuration
from b2b_pricing.engine.decoder import decode_rule
from b2b_pricing.exceptions import ConfigError

from conftest import config_rule


def test_absent_configuration_is_empty_rule_set():
    rule_set = decode_configuration(None)
    assert rule_set.rules == ()
    assert rule_set.strategy is ApplicationStrategy.FIRST


def test_missing_pricing_rules_is_empty_rule_set():
    assert decode_configuration({}).rules == ()


def test_decodes_wire_fields():
    rule = decode_rule(config_rule(products=["gid://shopify/Product/1"], collections=["c1"], priority=3))
    assert rule.id == "wholesale-rule"
    assert rule.customer_tags == frozenset({"wholesale"})
    assert rule.product_ids == frozenset({"gid://shopify/Product/1"})
    assert rule.collection_ids == frozenset({"c1"})
    assert rule.discount_type is DiscountType.PERCENTAGE
    assert rule.discount_value == Decimal("10.0")
    assert rule.priority == 3
    assert rule.is_active is True


def test_defaults_for_missing_fields():
    rule = decode_rule({"id": "r1", "discountType": "fixed", "discountValue": 5})
    assert rule.is_active is True
    assert rule.priority == 0
    assert rule.customer_tags == frozenset()
    assert rule.product_ids == frozenset()
    assert rule.collection_ids == frozenset()
    assert rule.is_cart_level


def test_null_lists_mean_no_restriction():
    rule = decode_rule({"id": "r1", "discountType": "fixed", "discountValue": 5,
                        "customerTags": None, "productIds": None})
    assert rule.customer_tags == frozenset()
    assert rule.product_ids == frozenset()


def test_json_text_configuration_is_accepted():
    rule_set = decode_configuration(json.dumps({"pricingRules": [config_rule()]}))
    assert [r.id for r in rule_set.rules] == ["wholesale-rule"]


@pytest.mark.parametrize("raw, message", [
    ({"id": "r", "discountType": "bogus", "discountValue": 1}, "discountType"),
    ({"id": "r", "discountType": "Percentage", "discountValue": 1}, "discountType"),
    ({"id": "r", "discountType": "fixed", "discountValue": -1}, "negative"),
    ({"id": "r", "discountType": "percentage", "discountValue": 100.5}, "between 0 and 100"),
    ({"id": "r", "discountType": "percentage", "discountValue": "ten"}, "numeric"),
    ({"id": "r", "discountType": "percentage"}, "required"),
    ({"discountType": "percentage", "discountValue": 5}, "id is required"),
    ({"id": "r", "discountType": "fixed", "discountValue": 1, "priority": "high"}, "priority"),
    ({"id": "r", "discountType": "fixed", "discountValue": 1, "customerTags": "x", "productIds": 7}, "productIds"),
])
def test_invalid_rules_raise_config_error(raw, message):
    with pytest.raises(ConfigError, match=message):
        decode_rule(raw)


def test_percentage_bounds_are_inclusive():
    assert decode_rule({"id": "a", "discountType": "percentage", "discountValue": 0}).discount_value == 0
    assert decode_rule({"id": "b", "discountType": "percentage", "discountValue": 100}).discount_value == 100


def test_fixed_above_hundred_is_allowed():
    rule = decode_rule({"id": "r", "discountType": "fixed", "discountValue": 250})
    assert rule.discount_value == Decimal("250")


def test_bad_rule_is_skipped_and_logged(caplog):
    blob = {"pricingRules": [
        config_rule("good"),
        config_rule("bad", discount_type="bogus"),
        config_rule("also-good", value=5),
    ]}
    with caplog.at_level(logging.WARNING, logger="b2b_pricing.engine.decoder"):
        rule_set = decode_configuration(blob)

    assert [r.id for r in rule_set.rules] == ["good", "also-good"]
    assert len(rule_set.dropped) == 1
    assert "bad" in rule_set.dropped[0]
    assert "Dropping pricing rule" in caplog.text


def test_duplicate_id_keeps_first():
    blob = {"pricingRules": [config_rule("dup", value=10), config_rule("dup", value=20)]}
    rule_set = decode_configuration(blob)
    assert len(rule_set.rules) == 1
    assert rule_set.rules[0].discount_value == Decimal("10.0")
    assert "duplicate" in rule_set.dropped[0]


def test_strict_mode_rejects_whole_configuration():
    blob = {"pricingRules": [config_rule("good"), config_rule("bad", value=-3)]}
    with pytest.raises(ConfigError) as exc_info:
        decode_configuration(blob, strict=True)
    assert exc_info.value.rule_index == 1
    assert exc_info.value.rule_id == "bad"


def test_strategy_field():
    rule_set = decode_configuration({"pricingRules": [], "discountApplicationStrategy": "All"})
    assert rule_set.strategy is ApplicationStrategy.ALL


def test_unknown_strategy_falls_back_to_first():
    rule_set = decode_configuration({"pricingRules": [], "discountApplicationStrategy": "Maximum"})
    assert rule_set.strategy is ApplicationStrategy.FIRST
    with pytest.raises(ConfigError):
        decode_configuration({"discountApplicationStrategy": "Maximum"}, strict=True)


def test_rules_are_immutable():
    rule = decode_rule(config_rule())
    with pytest.raises(AttributeError):
        rule.priority = 99
