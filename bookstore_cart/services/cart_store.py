"""
Remote cart store backed by the relational database.

Signed-in carts live in the ``cart_items`` table keyed by (user_id, book_id).
SQLModel sessions are synchronous, so each call runs in a worker thread.
"""
import asyncio
from typing import Iterable, List, Optional, Protocol

from sqlalchemy.engine import Engine
from sqlalchemy import delete
from sqlmodel import Session, select

from bookstore_cart.models.book import Book
from bookstore_cart.models.cart import CartItem
from bookstore_cart.schemas.cart_schemas import LineItem


class RemoteCartStore(Protocol):
    async def list_by_user(self, user_id: str) -> List[LineItem]:
        ...

    async def delete_all_by_user(self, user_id: str) -> None:
        ...

    async def insert_many(self, user_id: str, items: Iterable[LineItem]) -> None:
        ...

    async def upsert_one(
        self,
        user_id: str,
        book_id: str,
        quantity: int,
        unit_price_cents: Optional[int] = None,
    ) -> None:
        ...


class SqlCartStore:
    def __init__(self, engine: Engine):
        self.engine = engine

    def _list_by_user(self, user_id: str) -> List[LineItem]:
        with Session(self.engine) as session:
            rows = session.exec(
                select(CartItem, Book)
                .join(Book, CartItem.book_id == Book.id)
                .where(CartItem.user_id == user_id)
                .order_by(CartItem.id)
            ).all()

        return [
            LineItem(
                book_id=cart_item.book_id,
                quantity=cart_item.quantity,
                unit_price_cents=cart_item.unit_price_cents,
                title=book.title,
                author=book.author,
                cover_url=book.cover_url,
            )
            for cart_item, book in rows
        ]

    def _delete_all_by_user(self, user_id: str) -> None:
        with Session(self.engine) as session:
            session.execute(delete(CartItem).where(CartItem.user_id == user_id))
            session.commit()

    def _insert_many(self, user_id: str, items: List[LineItem]) -> None:
        with Session(self.engine) as session:
            for item in items:
                session.add(
                    CartItem(
                        user_id=user_id,
                        book_id=item.book_id,
                        quantity=item.quantity,
                        unit_price_cents=item.unit_price_cents,
                    )
                )
            session.commit()

    def _upsert_one(
        self,
        user_id: str,
        book_id: str,
        quantity: int,
        unit_price_cents: Optional[int],
    ) -> None:
        with Session(self.engine) as session:
            existing = session.exec(
                select(CartItem).where(
                    CartItem.user_id == user_id,
                    CartItem.book_id == book_id
                )
            ).first()

            if existing:
                existing.quantity = quantity
                session.add(existing)
            else:
                session.add(
                    CartItem(
                        user_id=user_id,
                        book_id=book_id,
                        quantity=quantity,
                        unit_price_cents=unit_price_cents or 0,
                    )
                )
            session.commit()

    async def list_by_user(self, user_id: str) -> List[LineItem]:
        return await asyncio.to_thread(self._list_by_user, user_id)

    async def delete_all_by_user(self, user_id: str) -> None:
        await asyncio.to_thread(self._delete_all_by_user, user_id)

    async def insert_many(self, user_id: str, items: Iterable[LineItem]) -> None:
        items = list(items)
        if not items:
            return
        await asyncio.to_thread(self._insert_many, user_id, items)

    async def upsert_one(
        self,
        user_id: str,
        book_id: str,
        quantity: int,
        unit_price_cents: Optional[int] = None,
    ) -> None:
        await asyncio.to_thread(self._upsert_one, user_id, book_id, quantity, unit_price_cents)
