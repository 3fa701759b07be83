"""
Host payload adapters.

The host hands over already-parsed JSON; these helpers only map its
shapes onto the engine's models and pull the rule configuration out of
the discount node's metafield.
"""
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from ..exceptions import PayloadError
from .models import Cart, CartLine, CustomerContext, Merchandise


def _as_dict(value: Any, where: str) -> dict:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise PayloadError(f"{where} must be an object")
    return value


def _collection_ids(product: dict) -> frozenset[str]:
    raw = product.get('collectionIds')
    if raw is None:
        raw = product.get('inAnyCollection')
    # inAnyCollection may also be the boolean form of the query; it carries no ids
    if raw is None or isinstance(raw, bool):
        return frozenset()
    if not isinstance(raw, list):
        raise PayloadError("product collections must be a list")
    ids = set()
    for item in raw:
        if isinstance(item, dict):
            item = item.get('id')
        if item:
            ids.add(str(item))
    return frozenset(ids)


def parse_amount(value: Any, where: str) -> Decimal:
    if value is None or isinstance(value, bool):
        raise PayloadError(f"{where} is missing")
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise PayloadError(f"{where} is not a number: {value!r}") from None
    if not amount.is_finite():
        raise PayloadError(f"{where} is not finite: {value!r}")
    return amount


def parse_cart_line(raw: Any, position: int) -> CartLine:
    """Map one host cart line onto a CartLine."""
    if not isinstance(raw, dict):
        raise PayloadError(f"cart line #{position} must be an object")

    line_id = raw.get('id')
    if line_id is None:
        raise PayloadError(f"cart line #{position} has no id")

    quantity = raw.get('quantity')
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise PayloadError(f"cart line {line_id} quantity must be an integer")

    merchandise = _as_dict(raw.get('merchandise'), f"cart line {line_id} merchandise")
    product = _as_dict(merchandise.get('product'), f"cart line {line_id} product")

    cost = _as_dict(raw.get('cost'), f"cart line {line_id} cost")
    per_unit = _as_dict(cost.get('amountPerQuantity'), f"cart line {line_id} amountPerQuantity")
    unit_price = Decimal("0")
    if per_unit.get('amount') is not None:
        unit_price = parse_amount(per_unit.get('amount'), f"cart line {line_id} amount")

    return CartLine(
        id=str(line_id),
        quantity=quantity,
        merchandise=Merchandise(
            product_id=str(product.get('id') or ""),
            collection_ids=_collection_ids(product),
        ),
        unit_price=unit_price,
        currency_code=per_unit.get('currencyCode'),
    )


def parse_cart(raw: Any) -> Cart:
    cart = _as_dict(raw, "cart")
    lines = cart.get('lines')
    if lines is None:
        lines = []
    if not isinstance(lines, list):
        raise PayloadError("cart.lines must be a list")
    return Cart(lines=tuple(parse_cart_line(line, i) for i, line in enumerate(lines)))


def parse_customer(raw_cart: Any) -> CustomerContext:
    """Read buyer tags; a missing buyer or customer means no tags."""
    cart = _as_dict(raw_cart, "cart")
    buyer = _as_dict(cart.get('buyerIdentity'), "buyerIdentity")
    customer = buyer.get('customer')
    if customer is None:
        return CustomerContext.anonymous()
    customer = _as_dict(customer, "customer")
    tags = customer.get('tags') or []
    if not isinstance(tags, list):
        raise PayloadError("customer.tags must be a list")
    return CustomerContext(tags=frozenset(str(t) for t in tags))


def extract_configuration(payload: Any) -> Optional[Any]:
    """Return the metafield's jsonValue, or None when no rules are configured."""
    node = _as_dict(_as_dict(payload, "input").get('discountNode'), "discountNode")
    metafield = node.get('metafield')
    if metafield is None:
        return None
    metafield = _as_dict(metafield, "metafield")
    if metafield.get('jsonValue') is not None:
        return metafield['jsonValue']
    # Older hosts send the raw string in `value`
    return metafield.get('value')
