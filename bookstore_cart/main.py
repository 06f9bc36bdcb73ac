import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import Engine

from bookstore_cart.config import Settings, settings as default_settings
from bookstore_cart.database import create_db_and_tables, create_db_engine
from bookstore_cart.routes import books_public, cart, health, wishlist
from bookstore_cart.services.cart_store import SqlCartStore
from bookstore_cart.services.catalog import SqlCatalog
from bookstore_cart.services.storage import FileLocalStore, LocalStore
from bookstore_cart.services.wishlist_store import SqlWishlistStore

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    *,
    engine: Optional[Engine] = None,
    local_store: Optional[LocalStore] = None,
) -> FastAPI:
    """Build the API. Backend clients are created here and live on ``app.state``."""
    settings = settings or default_settings
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db_engine = engine or create_db_engine(settings)
        create_db_and_tables(db_engine)

        app.state.settings = settings
        app.state.engine = db_engine
        app.state.local_store = local_store or FileLocalStore(settings.guest_storage_dir)
        app.state.cart_store = SqlCartStore(db_engine)
        app.state.wishlist_store = SqlWishlistStore(db_engine)
        app.state.catalog = SqlCatalog(db_engine)
        logger.info(f"Bookstore cart API started (remote store enabled: {settings.remote_store_enabled})")

        yield

        if engine is None:
            db_engine.dispose()

    app = FastAPI(title="Bookstore Cart API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:5173",
            "http://localhost:3000",
            "http://127.0.0.1:5173",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(books_public.router, prefix="/books", tags=["Public Books"])
    app.include_router(cart.router, prefix="/cart", tags=["Cart"])
    app.include_router(wishlist.router, prefix="/wishlist", tags=["Wishlist"])
    app.include_router(health.router, prefix="/health", tags=["Health"])

    @app.get("/")
    def root():
        return {
            "public_books": [
                "/books", "/books/{book_id}"
            ],
            "cart": [
                "/cart", "/cart/add", "/cart/update/{book_id}",
                "/cart/remove/{book_id}", "/cart/clear", "/cart/merge"
            ],
            "wishlist": [
                "/wishlist", "/wishlist/add/{book_id}",
                "/wishlist/remove/{book_id}", "/wishlist/status/{book_id}"
            ],
            "health": ["/health/check"],
        }

    return app


app = create_app()
