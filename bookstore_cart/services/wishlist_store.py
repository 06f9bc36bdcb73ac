import asyncio
from typing import Iterable, List, Protocol

from sqlalchemy.engine import Engine
from sqlalchemy import delete
from sqlmodel import Session, select

from bookstore_cart.models.book import Book
from bookstore_cart.models.wishlist import WishlistItem
from bookstore_cart.schemas.wishlist_schemas import WishlistEntry


class RemoteWishlistStore(Protocol):
    async def list_by_user(self, user_id: str) -> List[WishlistEntry]:
        ...

    async def delete_many(self, user_id: str, book_ids: Iterable[str]) -> None:
        ...

    async def insert_many(self, user_id: str, book_ids: Iterable[str]) -> None:
        ...


class SqlWishlistStore:
    def __init__(self, engine: Engine):
        self.engine = engine

    def _list_by_user(self, user_id: str) -> List[WishlistEntry]:
        with Session(self.engine) as session:
            rows = session.exec(
                select(WishlistItem, Book)
                .join(Book, WishlistItem.book_id == Book.id)
                .where(WishlistItem.user_id == user_id)
                .order_by(WishlistItem.id)
            ).all()

        return [
            WishlistEntry(
                book_id=book.id,
                title=book.title,
                author=book.author,
                cover_url=book.cover_url,
                list_price_cents=book.list_price_cents,
            )
            for _, book in rows
        ]

    def _delete_many(self, user_id: str, book_ids: List[str]) -> None:
        with Session(self.engine) as session:
            session.execute(
                delete(WishlistItem).where(
                    WishlistItem.user_id == user_id,
                    WishlistItem.book_id.in_(book_ids)
                )
            )
            session.commit()

    def _insert_many(self, user_id: str, book_ids: List[str]) -> None:
        with Session(self.engine) as session:
            for book_id in book_ids:
                session.add(WishlistItem(user_id=user_id, book_id=book_id))
            session.commit()

    async def list_by_user(self, user_id: str) -> List[WishlistEntry]:
        return await asyncio.to_thread(self._list_by_user, user_id)

    async def delete_many(self, user_id: str, book_ids: Iterable[str]) -> None:
        book_ids = list(book_ids)
        if book_ids:
            await asyncio.to_thread(self._delete_many, user_id, book_ids)

    async def insert_many(self, user_id: str, book_ids: Iterable[str]) -> None:
        book_ids = list(book_ids)
        if book_ids:
            await asyncio.to_thread(self._insert_many, user_id, book_ids)
