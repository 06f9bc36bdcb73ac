from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field, model_validator

from bookstore_cart.config import settings


class ShippingMethod(str, Enum):
    STANDARD = "standard"
    EXPRESS = "express"


class LineItem(BaseModel):
    """One catalog book plus a quantity within a cart.

    ``unit_price_cents`` is the catalog price captured when the line was
    added; it is never re-priced afterwards. The display fields are carried
    along for rendering only.
    """

    book_id: str = Field(..., min_length=1)
    quantity: int = 1
    unit_price_cents: int = 0

    title: Optional[str] = None
    author: Optional[str] = None
    cover_url: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def accept_legacy_keys(cls, data: Any) -> Any:
        # Older guest payloads keyed the book as "id" and the price as
        # "list_price_cents", and sometimes omitted the quantity.
        if not isinstance(data, dict):
            return data

        data = dict(data)
        if not data.get("book_id") and data.get("id"):
            data["book_id"] = data["id"]
        if data.get("unit_price_cents") is None:
            data.pop("unit_price_cents", None)
            if data.get("list_price_cents") is not None:
                data["unit_price_cents"] = data["list_price_cents"]
        if not data.get("quantity"):
            data["quantity"] = 1
        return data

    @property
    def has_price_snapshot(self) -> bool:
        # false for legacy lines stored without any price
        return "unit_price_cents" in self.model_fields_set

    @property
    def line_total_cents(self) -> int:
        return self.quantity * self.unit_price_cents


class CartTotals(BaseModel):
    item_count: int = 0
    subtotal_cents: int = 0
    tax_cents: int = 0
    shipping_cents: int = 0
    total_cents: int = 0


class CartSnapshot(BaseModel):
    items: List[LineItem] = []
    shipping_method: ShippingMethod = ShippingMethod.STANDARD
    totals: CartTotals = CartTotals()


class CartDisplayTotals(BaseModel):
    subtotal: str
    tax: str
    shipping: str
    total: str


class CartResponse(CartSnapshot):
    display: CartDisplayTotals


class CartAddRequest(BaseModel):
    book_id: str = Field(..., min_length=1)


class CartUpdateRequest(BaseModel):
    # upper bound lives here, the reconciler accepts any quantity
    quantity: int = Field(..., le=settings.max_line_quantity)
