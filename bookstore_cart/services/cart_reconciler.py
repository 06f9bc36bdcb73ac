"""
Cart state for guest and signed-in sessions.

A guest cart is written through to the local store under one key. A signed-in
cart is written through to the remote store, replacing the user's rows on
every change. When a guest signs in, their local cart is folded into the
remote one and the local copy is dropped.

Backend failures never reach the caller. They are logged and the in-memory
cart keeps its last good value. A signed-in cart is not written to the remote
store until it has been read from it once, so a failed first read cannot
replace the stored rows with an empty cart.

Known gaps, kept on purpose:
- Persists are not queued. Two overlapping writes race and the last one to
  finish wins; ``PersistResult.out_of_order`` flags the case.
- A remote persist deletes all rows before inserting, so a failure between
  the two leaves the remote cart empty.
- The guest merge is not transactional and carries no idempotency marker.
  If it stops after some upserts but before the local copy is removed, the
  next sign-in applies those lines again.
"""
import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Set, Union

from pydantic import TypeAdapter, ValidationError

from bookstore_cart.config import settings
from bookstore_cart.schemas.book_schemas import CatalogBook
from bookstore_cart.schemas.cart_schemas import CartSnapshot, CartTotals, LineItem, ShippingMethod
from bookstore_cart.services.auth_events import AuthEvents, AuthState
from bookstore_cart.services.cart_store import RemoteCartStore
from bookstore_cart.services.catalog import CatalogStore
from bookstore_cart.services.pricing import compute_totals
from bookstore_cart.services.storage import LocalStore

logger = logging.getLogger(__name__)

_LINE_ITEMS = TypeAdapter(List[LineItem])
_RAW_LINES = TypeAdapter(List[Dict[str, Any]])

LOCAL = "local"
REMOTE = "remote"


@dataclass(frozen=True)
class PersistResult:
    seq: int
    backend: str
    item_count: int
    ok: bool
    error: Optional[BaseException] = None
    # a newer persist had already finished when this one landed
    out_of_order: bool = False


class CartNotLoadedError(Exception):
    """Raised when a remote write is attempted before the remote cart was read."""


PersistHook = Callable[[PersistResult], None]


def log_persist_result(result: PersistResult) -> None:
    if not result.ok:
        logger.error(
            f"Cart persist #{result.seq} to {result.backend} failed: {result.error}"
        )
    elif result.out_of_order:
        logger.warning(
            f"Cart persist #{result.seq} to {result.backend} finished after a newer persist; "
            f"stored cart may be stale"
        )
    else:
        logger.debug(f"Cart persist #{result.seq} to {result.backend}: {result.item_count} lines")


def encode_line_items(items: List[LineItem]) -> bytes:
    return _LINE_ITEMS.dump_json(items, exclude_none=True)


def decode_line_items(raw: Union[bytes, str]) -> List[LineItem]:
    """Parse a stored guest cart.

    A payload that is not a JSON list gives an empty cart. Single lines that
    fail validation or carry a quantity below 1 are dropped, and repeated
    book ids are folded into one line.
    """
    try:
        rows = _RAW_LINES.validate_json(raw)
    except ValidationError as e:
        logger.warning(f"Ignoring malformed guest cart payload: {e.error_count()} errors")
        return []

    kept = []
    for row in rows:
        try:
            item = LineItem.model_validate(row)
        except ValidationError:
            continue
        if item.quantity >= 1:
            kept.append(item)

    if len(kept) != len(rows):
        logger.warning(f"Dropped {len(rows) - len(kept)} invalid guest cart lines")
    return coalesce(kept)


def coalesce(items: List[LineItem]) -> List[LineItem]:
    merged: Dict[str, LineItem] = {}
    for item in items:
        if item.book_id in merged:
            current = merged[item.book_id]
            merged[item.book_id] = current.model_copy(
                update={"quantity": current.quantity + item.quantity}
            )
        else:
            merged[item.book_id] = item
    return list(merged.values())


class CartReconciler:
    def __init__(
        self,
        *,
        local_store: LocalStore,
        remote_store: Optional[RemoteCartStore] = None,
        catalog: Optional[CatalogStore] = None,
        storage_key: str = settings.cart_storage_key,
        tax_rate: Decimal = settings.sales_tax_rate,
        express_fee_cents: int = settings.express_shipping_cents,
        on_persist: PersistHook = log_persist_result,
    ):
        self.local_store = local_store
        self.remote_store = remote_store
        self.catalog = catalog
        self.storage_key = storage_key
        self.tax_rate = tax_rate
        self.express_fee_cents = express_fee_cents
        self.on_persist = on_persist

        self.items: List[LineItem] = []
        self.shipping_method = ShippingMethod.STANDARD
        self.auth_state = AuthState.signed_out()
        self.loading = False

        self._pending: Set[asyncio.Task] = set()
        self._persist_seq = 0
        self._last_completed_seq = 0
        # user whose remote cart was last read successfully
        self._loaded_user: Optional[str] = None

    # ---------- AUTH ----------

    def attach(self, auth: AuthEvents) -> Callable[[], None]:
        """Follow ``auth`` from now on. Returns the unsubscribe function."""
        self.auth_state = auth.current
        return auth.subscribe(self.handle_auth_change)

    async def handle_auth_change(self, state: AuthState) -> None:
        previous = self.auth_state
        self.auth_state = state

        if state.is_authenticated and state != previous:
            if await self.merge_guest_cart():
                return

        await self.load()

    @property
    def uses_remote(self) -> bool:
        return self.auth_state.is_authenticated and self.remote_store is not None

    @property
    def remote_ready(self) -> bool:
        """False while a signed-in cart has not been read from the remote store."""
        return not self.uses_remote or self._loaded_user == self.auth_state.user_id

    # ---------- DERIVED ----------

    @property
    def totals(self) -> CartTotals:
        return compute_totals(
            self.items,
            self.shipping_method,
            tax_rate=self.tax_rate,
            express_fee_cents=self.express_fee_cents,
        )

    @property
    def item_count(self) -> int:
        return self.totals.item_count

    @property
    def subtotal_cents(self) -> int:
        return self.totals.subtotal_cents

    @property
    def tax_cents(self) -> int:
        return self.totals.tax_cents

    @property
    def shipping_cents(self) -> int:
        return self.totals.shipping_cents

    @property
    def total_cents(self) -> int:
        return self.totals.total_cents

    def snapshot(self) -> CartSnapshot:
        return CartSnapshot(
            items=[item.model_copy() for item in self.items],
            shipping_method=self.shipping_method,
            totals=self.totals,
        )

    def find(self, book_id: str) -> Optional[LineItem]:
        return next((item for item in self.items if item.book_id == book_id), None)

    # ---------- MUTATIONS ----------

    def add_item(self, book: CatalogBook) -> asyncio.Task:
        """Add one copy of ``book``; a repeat add bumps the quantity."""
        if not book.id:
            raise ValueError("Book must have an id")

        if self.find(book.id):
            self.items = [
                item.model_copy(update={"quantity": item.quantity + 1})
                if item.book_id == book.id
                else item
                for item in self.items
            ]
        else:
            self.items = self.items + [
                LineItem(
                    book_id=book.id,
                    quantity=1,
                    unit_price_cents=book.list_price_cents or 0,
                    title=book.title,
                    author=book.author,
                    cover_url=book.cover_url,
                )
            ]

        return self._schedule_persist()

    def remove_item(self, book_id: str) -> asyncio.Task:
        self.items = [item for item in self.items if item.book_id != book_id]
        return self._schedule_persist()

    def update_quantity(self, book_id: str, quantity: int) -> asyncio.Task:
        """Set the quantity of a line. Zero or less removes it.

        No upper bound is applied here; callers validate that.
        """
        if quantity <= 0:
            return self.remove_item(book_id)

        self.items = [
            item.model_copy(update={"quantity": quantity})
            if item.book_id == book_id
            else item
            for item in self.items
        ]
        return self._schedule_persist()

    async def clear(self) -> PersistResult:
        self.items = []
        return await self._schedule_persist()

    def set_shipping_method(self, method: Union[ShippingMethod, str]) -> None:
        self.shipping_method = ShippingMethod(method)

    # ---------- LOAD ----------

    async def load(self) -> None:
        self.loading = True
        try:
            if self.uses_remote:
                await self._load_remote()
            else:
                await self._load_local()
        finally:
            self.loading = False

    async def _load_remote(self) -> None:
        user_id = self.auth_state.user_id
        try:
            items = await self.remote_store.list_by_user(user_id)
        except Exception:
            logger.exception(f"Error loading cart for user {user_id}")
            return

        self.items = coalesce(items)
        self._loaded_user = user_id
        logger.info(f"Loaded remote cart for user {user_id}: {len(self.items)} lines")

    async def _load_local(self) -> None:
        try:
            raw = await self.local_store.get(self.storage_key)
        except Exception:
            logger.exception(f"Error reading guest cart {self.storage_key}")
            return

        self.items = decode_line_items(raw) if raw else []
        logger.info(f"Loaded guest cart {self.storage_key}: {len(self.items)} lines")

    # ---------- MERGE ----------

    async def merge_guest_cart(self) -> bool:
        """Fold the local guest cart into the signed-in user's remote cart.

        Lines whose book is missing or inactive are skipped. On success the
        local copy is removed and the cart reloaded from the remote store;
        returns True only then.
        """
        if not self.uses_remote or self.catalog is None:
            return False

        user_id = self.auth_state.user_id

        try:
            raw = await self.local_store.get(self.storage_key)
        except Exception:
            logger.exception(f"Error reading guest cart {self.storage_key} for merge")
            return False

        guest_items = decode_line_items(raw) if raw else []
        if not guest_items:
            return False

        applied = 0
        try:
            remote_items = await self.remote_store.list_by_user(user_id)
            existing = {item.book_id: item.quantity for item in remote_items}

            for guest_item in guest_items:
                book = await self.catalog.get_book(guest_item.book_id)
                if book is None or not book.is_active:
                    logger.warning(
                        f"Skipping guest cart line for unavailable book {guest_item.book_id}"
                    )
                    continue

                quantity = existing.get(guest_item.book_id, 0) + guest_item.quantity
                await self.remote_store.upsert_one(
                    user_id,
                    guest_item.book_id,
                    quantity,
                    unit_price_cents=(
                        guest_item.unit_price_cents
                        if guest_item.has_price_snapshot
                        else book.list_price_cents
                    ),
                )
                applied += 1

            await self.local_store.remove(self.storage_key)
        except Exception:
            logger.exception(
                f"Error merging guest cart into user {user_id} after {applied} lines"
            )
            return False

        logger.info(
            f"Merged {applied} of {len(guest_items)} guest cart lines into user {user_id}"
        )
        await self.load()
        return True

    # ---------- PERSIST ----------

    def _schedule_persist(self) -> asyncio.Task:
        self._persist_seq += 1
        seq = self._persist_seq
        items = [item.model_copy() for item in self.items]
        remote_user = self.auth_state.user_id if self.uses_remote else None
        ready = self.remote_ready

        task = asyncio.get_running_loop().create_task(
            self._persist(seq, items, remote_user, ready=ready)
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _persist(
        self,
        seq: int,
        items: List[LineItem],
        remote_user: Optional[str],
        ready: bool = True,
    ) -> PersistResult:
        backend = REMOTE if remote_user else LOCAL
        error = None

        try:
            if remote_user:
                if not ready:
                    raise CartNotLoadedError(f"Remote cart for user {remote_user} was never loaded")
                await self.remote_store.delete_all_by_user(remote_user)
                await self.remote_store.insert_many(remote_user, items)
            else:
                await self.local_store.set(self.storage_key, encode_line_items(items))
        except Exception as e:
            error = e

        out_of_order = False
        if error is None:
            out_of_order = seq < self._last_completed_seq
            self._last_completed_seq = max(self._last_completed_seq, seq)

        result = PersistResult(
            seq=seq,
            backend=backend,
            item_count=len(items),
            ok=error is None,
            error=error,
            out_of_order=out_of_order,
        )

        try:
            self.on_persist(result)
        except Exception:
            logger.exception("Cart persist hook failed")

        return result

    @property
    def pending_persists(self) -> int:
        return len(self._pending)

    async def flush(self) -> None:
        """Wait for every persist scheduled so far."""
        while self._pending:
            await asyncio.gather(*list(self._pending))
