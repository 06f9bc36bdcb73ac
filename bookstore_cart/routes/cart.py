from fastapi import APIRouter, Depends, HTTPException, Query, Request
from bookstore_cart.dependencies.cart import build_cart, get_cart, require_remote_loaded
from bookstore_cart.schemas.cart_schemas import (
    CartAddRequest,
    CartDisplayTotals,
    CartResponse,
    CartUpdateRequest,
    ShippingMethod,
)
from bookstore_cart.services.auth_events import AuthEvents
from bookstore_cart.services.cart_reconciler import CartReconciler
from bookstore_cart.services.money import format_money_from_cents
from bookstore_cart.utils.token import get_current_user_id, get_guest_id


router = APIRouter()


def cart_response(cart: CartReconciler, currency: str) -> CartResponse:
    snapshot = cart.snapshot()
    totals = snapshot.totals

    return CartResponse(
        items=snapshot.items,
        shipping_method=snapshot.shipping_method,
        totals=totals,
        display=CartDisplayTotals(
            subtotal=format_money_from_cents(totals.subtotal_cents, currency),
            tax=format_money_from_cents(totals.tax_cents, currency),
            shipping=format_money_from_cents(totals.shipping_cents, currency),
            total=format_money_from_cents(totals.total_cents, currency),
        ),
    )


# View Cart

@router.get("/", response_model=CartResponse)
async def view_cart(
    request: Request,
    shipping_method: ShippingMethod = Query(ShippingMethod.STANDARD),
    cart: CartReconciler = Depends(get_cart),
):
    cart.set_shipping_method(shipping_method)
    return cart_response(cart, request.app.state.settings.currency)


# Add to Cart

@router.post("/add", response_model=CartResponse)
async def add_to_cart(
    request: Request,
    data: CartAddRequest,
    cart: CartReconciler = Depends(get_cart),
):
    book = await request.app.state.catalog.get_book(data.book_id)
    if not book or not book.is_active:
        raise HTTPException(status_code=404, detail="Book not found")

    cart.add_item(book)
    await cart.flush()
    return cart_response(cart, request.app.state.settings.currency)


# Update Cart

@router.put("/update/{book_id}", response_model=CartResponse)
async def update_cart_item(
    request: Request,
    book_id: str,
    data: CartUpdateRequest,
    cart: CartReconciler = Depends(get_cart),
):
    cart.update_quantity(book_id, data.quantity)
    await cart.flush()
    return cart_response(cart, request.app.state.settings.currency)


# Remove from Cart

@router.delete("/remove/{book_id}", response_model=CartResponse)
async def remove_cart_item(
    request: Request,
    book_id: str,
    cart: CartReconciler = Depends(get_cart),
):
    cart.remove_item(book_id)
    await cart.flush()
    return cart_response(cart, request.app.state.settings.currency)


# Clear Cart

@router.delete("/clear", response_model=CartResponse)
async def clear_cart(
    request: Request,
    cart: CartReconciler = Depends(get_cart),
):
    await cart.clear()
    return cart_response(cart, request.app.state.settings.currency)


# Merge guest cart after sign-in

@router.post("/merge", response_model=CartResponse)
async def merge_guest_cart(
    request: Request,
    user_id: str = Depends(get_current_user_id),
    guest_id: str = Depends(get_guest_id),
):
    if not guest_id:
        raise HTTPException(status_code=400, detail="X-Guest-Id header required to merge a guest cart")

    cart = build_cart(request, guest_id)
    auth = AuthEvents()
    cart.attach(auth)
    await cart.load()

    await auth.sign_in(user_id)
    require_remote_loaded(cart.remote_ready)
    await cart.flush()
    return cart_response(cart, request.app.state.settings.currency)
