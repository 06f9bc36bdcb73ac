import asyncio
from typing import Optional, Protocol

from sqlalchemy.engine import Engine
from sqlmodel import Session

from bookstore_cart.models.book import Book
from bookstore_cart.schemas.book_schemas import CatalogBook


class CatalogStore(Protocol):
    async def get_book(self, book_id: str) -> Optional[CatalogBook]:
        """Look a book up by id. Inactive books are returned, missing ones give None."""
        ...


class SqlCatalog:
    def __init__(self, engine: Engine):
        self.engine = engine

    def _get_book(self, book_id: str) -> Optional[CatalogBook]:
        with Session(self.engine) as session:
            book = session.get(Book, book_id)
            if not book:
                return None
            return CatalogBook.model_validate(book)

    async def get_book(self, book_id: str) -> Optional[CatalogBook]:
        return await asyncio.to_thread(self._get_book, book_id)
