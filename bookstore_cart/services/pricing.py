from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from bookstore_cart.schemas.cart_schemas import CartTotals, LineItem, ShippingMethod


def item_count(items: Iterable[LineItem]) -> int:
    return sum(item.quantity for item in items)


def subtotal_cents(items: Iterable[LineItem]) -> int:
    return sum(item.quantity * item.unit_price_cents for item in items)


def tax_cents(subtotal: int, tax_rate: Decimal) -> int:
    """Sales tax on an integer subtotal, rounded half away from zero."""
    tax = Decimal(subtotal) * tax_rate
    return int(tax.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def shipping_cents(method: ShippingMethod, express_fee_cents: int) -> int:
    if method == ShippingMethod.EXPRESS:
        return express_fee_cents
    return 0


def compute_totals(
    items: Iterable[LineItem],
    shipping_method: ShippingMethod,
    *,
    tax_rate: Decimal,
    express_fee_cents: int,
) -> CartTotals:
    items = list(items)
    subtotal = subtotal_cents(items)
    tax = tax_cents(subtotal, tax_rate)
    shipping = shipping_cents(shipping_method, express_fee_cents)

    return CartTotals(
        item_count=item_count(items),
        subtotal_cents=subtotal,
        tax_cents=tax,
        shipping_cents=shipping,
        total_cents=subtotal + tax + shipping,
    )
