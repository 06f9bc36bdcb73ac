"""Shared fixtures: in-memory database, seeded catalog, stores and reconcilers."""
from typing import List

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from bookstore_cart.config import Settings
from bookstore_cart.database import create_db_and_tables
from bookstore_cart.main import create_app
from bookstore_cart.models.book import Book
from bookstore_cart.models.cart import CartItem
from bookstore_cart.services.cart_reconciler import CartReconciler, PersistResult
from bookstore_cart.services.cart_store import SqlCartStore
from bookstore_cart.services.catalog import SqlCatalog
from bookstore_cart.services.storage import MemoryLocalStore
from bookstore_cart.services.wishlist_store import SqlWishlistStore
from bookstore_cart.utils.token import create_access_token

GUEST_KEY = "kenyas-bookstore-cart"
USER_ID = "user-1"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_db_and_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def books(engine):
    """Catalog with three active books, one inactive and one without a price."""
    seeded = [
        Book(id="book-a", title="A Wrinkle in Time", author="Madeleine L'Engle", list_price_cents=1999),
        Book(id="book-b", title="Beloved", author="Toni Morrison", list_price_cents=1599),
        Book(id="book-c", title="Charlotte's Web", author="E. B. White", list_price_cents=899),
        Book(id="book-d", title="Dune", author="Frank Herbert", list_price_cents=2499, is_active=False),
        Book(id="book-e", title="Emma", author="Jane Austen", list_price_cents=None),
    ]
    book_ids = [book.id for book in seeded]
    with Session(engine) as session:
        for book in seeded:
            session.add(book)
        session.commit()
    return book_ids


@pytest.fixture
def local_store() -> MemoryLocalStore:
    return MemoryLocalStore()


@pytest.fixture
def cart_store(engine) -> SqlCartStore:
    return SqlCartStore(engine)


@pytest.fixture
def wishlist_store(engine) -> SqlWishlistStore:
    return SqlWishlistStore(engine)


@pytest.fixture
def catalog(engine, books) -> SqlCatalog:
    return SqlCatalog(engine)


@pytest.fixture
def persist_log() -> List[PersistResult]:
    return []


@pytest.fixture
def make_cart(local_store, cart_store, catalog, persist_log):
    """Factory for reconcilers sharing the same stores and persist log."""

    def _make(**overrides) -> CartReconciler:
        options = dict(
            local_store=local_store,
            remote_store=cart_store,
            catalog=catalog,
            storage_key=GUEST_KEY,
            on_persist=persist_log.append,
        )
        options.update(overrides)
        return CartReconciler(**options)

    return _make


@pytest.fixture
def seed_remote_cart(engine):
    def _seed(user_id: str, quantities: dict, price_cents: int = 100):
        with Session(engine) as session:
            for book_id, quantity in quantities.items():
                session.add(
                    CartItem(
                        user_id=user_id,
                        book_id=book_id,
                        quantity=quantity,
                        unit_price_cents=price_cents,
                    )
                )
            session.commit()

    return _seed


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        database_url="sqlite://",
        guest_storage_dir=str(tmp_path / "guest"),
    )


@pytest.fixture
def test_client(test_settings, engine, books, local_store):
    app = create_app(test_settings, engine=engine, local_store=local_store)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def auth_headers():
    token = create_access_token({"sub": USER_ID})
    return {"Authorization": f"Bearer {token}"}
