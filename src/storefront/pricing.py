"""Price, shipping and total computation.

All amounts are Decimal. Rounding to cents happens only in format_amount().
"""

from decimal import Decimal, InvalidOperation
from typing import Any

from .models import ZERO, OrderDraft, PricingSnapshot, ShippingMethod

SHIPPING_COSTS: dict[ShippingMethod, Decimal] = {
    ShippingMethod.STANDARD: Decimal("0"),
    ShippingMethod.EXPRESS: Decimal("15"),
    ShippingMethod.OVERNIGHT: Decimal("25"),
}

_CENTS = Decimal("0.01")


def parse_price(value: Any) -> Decimal:
    """
    Convert a catalog price to Decimal.

    Missing, boolean, non-numeric, NaN and infinite prices become 0.00.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        price = value
    else:
        # str() of a float is its shortest repr, so 12.5 stays 12.5
        try:
            price = Decimal(str(value).strip())
        except InvalidOperation:
            return ZERO
    if not price.is_finite():
        return ZERO
    return price


def shipping_cost(method: ShippingMethod | str) -> Decimal:
    """
    Look up the fixed cost of a shipping method.

    Raises:
        InvalidShippingMethodError: If method is not an offered method.
    """
    return SHIPPING_COSTS[ShippingMethod.parse(method)]


def compute_totals(draft: OrderDraft, method: ShippingMethod | str) -> PricingSnapshot:
    """Compute subtotal, shipping cost and total without touching the draft."""
    if draft.selected_size is None:
        subtotal = ZERO
    else:
        subtotal = draft.selected_size.price * draft.quantity
    cost = shipping_cost(method)
    return PricingSnapshot(subtotal=subtotal, shipping_cost=cost, total=subtotal + cost)


def format_amount(amount: Decimal) -> str:
    """Format an amount with two decimal places, e.g. Decimal('40') -> '40.00'."""
    return str(amount.quantize(_CENTS))
