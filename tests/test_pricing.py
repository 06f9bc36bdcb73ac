from decimal import Decimal

import pytest

from bookstore_cart.schemas.cart_schemas import LineItem, ShippingMethod
from bookstore_cart.services.pricing import compute_totals, tax_cents

RATE = Decimal("0.0825")


def totals_for(items, method=ShippingMethod.STANDARD):
    return compute_totals(items, method, tax_rate=RATE, express_fee_cents=1500)


def test_single_line_standard_shipping():
    totals = totals_for([LineItem(book_id="book-a", quantity=3, unit_price_cents=1999)])

    assert totals.item_count == 3
    assert totals.subtotal_cents == 5997
    assert totals.tax_cents == 495
    assert totals.shipping_cents == 0
    assert totals.total_cents == 6492


def test_express_shipping_adds_flat_fee():
    totals = totals_for(
        [LineItem(book_id="book-a", quantity=3, unit_price_cents=1999)],
        ShippingMethod.EXPRESS,
    )

    assert totals.shipping_cents == 1500
    assert totals.total_cents == 5997 + 495 + 1500


def test_empty_cart_is_all_zero():
    totals = totals_for([])

    assert totals.model_dump() == {
        "item_count": 0,
        "subtotal_cents": 0,
        "tax_cents": 0,
        "shipping_cents": 0,
        "total_cents": 0,
    }


def test_express_fee_applies_to_empty_cart():
    assert totals_for([], ShippingMethod.EXPRESS).total_cents == 1500


def test_multiple_lines():
    totals = totals_for(
        [
            LineItem(book_id="book-a", quantity=2, unit_price_cents=1999),
            LineItem(book_id="book-b", quantity=1, unit_price_cents=1599),
        ]
    )

    assert totals.item_count == 3
    assert totals.subtotal_cents == 2 * 1999 + 1599


@pytest.mark.parametrize(
    "subtotal, expected",
    [
        (200, 17),     # 16.5 rounds up
        (100, 8),      # 8.25 rounds down
        (1000, 83),    # 82.5 rounds up
        (0, 0),
    ],
)
def test_tax_rounds_half_away_from_zero(subtotal, expected):
    assert tax_cents(subtotal, RATE) == expected


def test_tax_rejects_float_rate():
    with pytest.raises(TypeError):
        tax_cents(1000, 0.0825)


def test_all_amounts_are_ints():
    totals = totals_for([LineItem(book_id="book-a", quantity=7, unit_price_cents=333)])

    for value in totals.model_dump().values():
        assert type(value) is int
