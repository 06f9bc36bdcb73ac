from typing import Optional
from fastapi import Depends, HTTPException, Request
from bookstore_cart.config import Settings
from bookstore_cart.services.auth_events import AuthState
from bookstore_cart.services.cart_reconciler import CartReconciler
from bookstore_cart.services.wishlist_reconciler import WishlistReconciler
from bookstore_cart.utils.token import get_guest_id, get_optional_user_id


def guest_storage_key(base_key: str, guest_id: Optional[str]) -> str:
    return f"{base_key}:{guest_id}" if guest_id else base_key


def build_cart(request: Request, guest_id: Optional[str]) -> CartReconciler:
    state = request.app.state
    config: Settings = state.settings

    return CartReconciler(
        local_store=state.local_store,
        remote_store=state.cart_store if config.remote_store_enabled else None,
        catalog=state.catalog,
        storage_key=guest_storage_key(config.cart_storage_key, guest_id),
        tax_rate=config.sales_tax_rate,
        express_fee_cents=config.express_shipping_cents,
    )


def require_identity(user_id: Optional[str], guest_id: Optional[str]):
    if user_id is None and guest_id is None:
        raise HTTPException(status_code=400, detail="X-Guest-Id header required for guest requests")


def require_remote_loaded(ready: bool):
    if not ready:
        raise HTTPException(status_code=503, detail="Saved items are temporarily unavailable")


async def get_cart(
    request: Request,
    user_id: Optional[str] = Depends(get_optional_user_id),
    guest_id: Optional[str] = Depends(get_guest_id),
) -> CartReconciler:
    require_identity(user_id, guest_id)

    cart = build_cart(request, guest_id)
    cart.auth_state = AuthState(user_id=user_id)
    await cart.load()
    require_remote_loaded(cart.remote_ready)
    return cart


async def get_wishlist(
    request: Request,
    user_id: Optional[str] = Depends(get_optional_user_id),
    guest_id: Optional[str] = Depends(get_guest_id),
) -> WishlistReconciler:
    require_identity(user_id, guest_id)

    state = request.app.state
    config: Settings = state.settings
    wishlist = WishlistReconciler(
        local_store=state.local_store,
        remote_store=state.wishlist_store if config.remote_store_enabled else None,
        storage_key=guest_storage_key(config.wishlist_storage_key, guest_id),
    )
    wishlist.auth_state = AuthState(user_id=user_id)
    await wishlist.load()
    require_remote_loaded(wishlist.remote_ready)
    return wishlist
