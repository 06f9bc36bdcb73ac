from pydantic import BaseModel, Field, model_validator
from typing import Any, List, Optional


class WishlistEntry(BaseModel):
    book_id: str = Field(..., min_length=1)
    title: Optional[str] = None
    author: Optional[str] = None
    cover_url: Optional[str] = None
    list_price_cents: Optional[int] = None

    @model_validator(mode="before")
    @classmethod
    def accept_book_records(cls, data: Any) -> Any:
        # guest wishlists were stored as whole book records keyed by "id"
        if isinstance(data, dict) and not data.get("book_id") and data.get("id"):
            data = {**data, "book_id": data["id"]}
        return data


class WishlistResponse(BaseModel):
    items: List[WishlistEntry]
    count: int


class WishlistStatus(BaseModel):
    book_id: str
    in_wishlist: bool
