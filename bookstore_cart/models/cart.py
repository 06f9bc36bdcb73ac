from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from sqlalchemy import UniqueConstraint


class CartItem(SQLModel, table=True):
    __tablename__ = "cart_items"
    __table_args__ = (UniqueConstraint("user_id", "book_id", name="uq_cart_items_user_book"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    book_id: str = Field(foreign_key="book.id")
    quantity: int = 1
    unit_price_cents: int = 0
    created_at: datetime = Field(default_factory=datetime.utcnow)
