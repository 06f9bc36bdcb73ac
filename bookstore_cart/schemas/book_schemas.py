from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class CatalogBook(BaseModel):
    """Catalog record as seen by the cart: identity, live price, availability."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    list_price_cents: Optional[int] = None
    is_active: bool = True

    title: Optional[str] = None
    author: Optional[str] = None
    cover_url: Optional[str] = None


class BookCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    author: str = Field(..., min_length=1, max_length=100)
    isbn: Optional[str] = None
    cover_url: Optional[str] = None
    list_price_cents: Optional[int] = Field(None, ge=0)
    is_active: bool = True


class BookPublic(CatalogBook):
    isbn: Optional[str] = None
    price: str
