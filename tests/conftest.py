import json
import os
import sys
from decimal import Decimal

import pytest

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from b2b_pricing.engine import PricingEngine, CartLine, Merchandise, PricingRule, DiscountType


@pytest.fixture
def engine():
    return PricingEngine()


def make_rule(rule_id="rule", discount_type=DiscountType.PERCENTAGE, value="10", **kwargs):
    """Build a PricingRule with frozenset axes from plain lists."""
    for axis in ('customer_tags', 'product_ids', 'collection_ids'):
        if axis in kwargs:
            kwargs[axis] = frozenset(kwargs[axis])
    return PricingRule(id=rule_id, discount_type=discount_type, discount_value=Decimal(value), **kwargs)


def make_line(line_id="gid://shopify/CartLine/1", product="gid://shopify/Product/1",
              collections=(), quantity=1, price="20.00", currency="USD"):
    return CartLine(
        id=line_id,
        quantity=quantity,
        merchandise=Merchandise(product_id=product, collection_ids=frozenset(collections)),
        unit_price=Decimal(price),
        currency_code=currency,
    )


def host_line(line_id="gid://shopify/CartLine/1", product="gid://shopify/Product/1",
              collections=(), quantity=1, price="20.00", currency="USD"):
    """A cart line in the host's input shape."""
    line = {
        "id": line_id,
        "quantity": quantity,
        "merchandise": {
            "__typename": "ProductVariant",
            "id": product.replace("Product", "ProductVariant"),
            "product": {"id": product, "title": "Test Product", "inAnyCollection": list(collections)},
        },
    }
    if price is not None:
        line["cost"] = {"amountPerQuantity": {"amount": price, "currencyCode": currency}}
    return line


def host_input(rules=None, tags=(), lines=(), strategy=None, as_text=False):
    """Build a full host input payload."""
    if rules is None:
        metafield = None
    else:
        config = {"pricingRules": rules}
        if strategy:
            config["discountApplicationStrategy"] = strategy
        metafield = {"jsonValue": json.dumps(config) if as_text else config}
    return {
        "discountNode": {"metafield": metafield},
        "cart": {
            "buyerIdentity": {"customer": {"tags": list(tags)}},
            "lines": list(lines),
        },
    }


def config_rule(rule_id="wholesale-rule", tags=("wholesale",), products=(), collections=(),
                discount_type="percentage", value=10.0, priority=1, active=True):
    """A rule in the configuration wire format."""
    return {
        "id": rule_id,
        "customerTags": list(tags),
        "productIds": list(products),
        "collectionIds": list(collections),
        "discountType": discount_type,
        "discountValue": value,
        "priority": priority,
        "isActive": active,
    }
