"""
Wishlist state for guest and signed-in sessions.

Same storage split as the cart, but the remote write is a diff against what
is stored, and a guest wishlist is never merged on sign-in. Like the cart, a
signed-in wishlist is not written until it has been read once.
"""
import asyncio
import logging
from typing import Callable, List, Optional, Set

from pydantic import TypeAdapter, ValidationError

from bookstore_cart.config import settings
from bookstore_cart.schemas.book_schemas import CatalogBook
from bookstore_cart.schemas.wishlist_schemas import WishlistEntry
from bookstore_cart.services.auth_events import AuthEvents, AuthState
from bookstore_cart.services.storage import LocalStore
from bookstore_cart.services.wishlist_store import RemoteWishlistStore

logger = logging.getLogger(__name__)

_ENTRIES = TypeAdapter(List[WishlistEntry])


class WishlistReconciler:
    def __init__(
        self,
        *,
        local_store: LocalStore,
        remote_store: Optional[RemoteWishlistStore] = None,
        storage_key: str = settings.wishlist_storage_key,
    ):
        self.local_store = local_store
        self.remote_store = remote_store
        self.storage_key = storage_key

        self.entries: List[WishlistEntry] = []
        self.auth_state = AuthState.signed_out()
        self.loading = False
        self._pending: Set[asyncio.Task] = set()
        self._loaded_user: Optional[str] = None

    def attach(self, auth: AuthEvents) -> Callable[[], None]:
        self.auth_state = auth.current
        return auth.subscribe(self.handle_auth_change)

    async def handle_auth_change(self, state: AuthState) -> None:
        self.auth_state = state
        await self.load()

    @property
    def uses_remote(self) -> bool:
        return self.auth_state.is_authenticated and self.remote_store is not None

    @property
    def remote_ready(self) -> bool:
        return not self.uses_remote or self._loaded_user == self.auth_state.user_id

    def contains(self, book_id: str) -> bool:
        return any(entry.book_id == book_id for entry in self.entries)

    def add(self, book: CatalogBook) -> Optional[asyncio.Task]:
        if not book.id:
            raise ValueError("Book must have an id")
        if self.contains(book.id):
            return None

        self.entries = self.entries + [
            WishlistEntry(
                book_id=book.id,
                title=book.title,
                author=book.author,
                cover_url=book.cover_url,
                list_price_cents=book.list_price_cents,
            )
        ]
        return self._schedule_persist()

    def remove(self, book_id: str) -> Optional[asyncio.Task]:
        if not self.contains(book_id):
            return None

        self.entries = [entry for entry in self.entries if entry.book_id != book_id]
        return self._schedule_persist()

    async def load(self) -> None:
        self.loading = True
        try:
            if self.uses_remote:
                user_id = self.auth_state.user_id
                try:
                    self.entries = await self.remote_store.list_by_user(user_id)
                    self._loaded_user = user_id
                except Exception:
                    logger.exception(f"Error loading wishlist for user {user_id}")
                return

            try:
                raw = await self.local_store.get(self.storage_key)
            except Exception:
                logger.exception(f"Error reading guest wishlist {self.storage_key}")
                return

            if not raw:
                self.entries = []
                return
            try:
                self.entries = _ENTRIES.validate_json(raw)
            except ValidationError:
                logger.warning(f"Ignoring malformed guest wishlist {self.storage_key}")
                self.entries = []
        finally:
            self.loading = False

    def _schedule_persist(self) -> asyncio.Task:
        entries = list(self.entries)
        remote_user = self.auth_state.user_id if self.uses_remote else None
        task = asyncio.get_running_loop().create_task(
            self._persist(entries, remote_user, ready=self.remote_ready)
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _persist(
        self, entries: List[WishlistEntry], remote_user: Optional[str], ready: bool = True
    ) -> bool:
        if remote_user and not ready:
            logger.error(f"Not saving wishlist for user {remote_user}: it was never loaded")
            return False

        try:
            if remote_user:
                stored = await self.remote_store.list_by_user(remote_user)
                stored_ids = {entry.book_id for entry in stored}
                wanted_ids = [entry.book_id for entry in entries]

                await self.remote_store.delete_many(
                    remote_user, [book_id for book_id in stored_ids if book_id not in wanted_ids]
                )
                await self.remote_store.insert_many(
                    remote_user, [book_id for book_id in wanted_ids if book_id not in stored_ids]
                )
            else:
                # a guest who never saved anything keeps no local entry
                existing = await self.local_store.get(self.storage_key)
                if existing or entries:
                    await self.local_store.set(
                        self.storage_key, _ENTRIES.dump_json(entries, exclude_none=True)
                    )
        except Exception:
            logger.exception("Error saving wishlist")
            return False
        return True

    async def flush(self) -> None:
        while self._pending:
            await asyncio.gather(*list(self._pending))
