from fastapi import APIRouter, Depends, HTTPException, Request
from bookstore_cart.dependencies.cart import get_wishlist
from bookstore_cart.schemas.wishlist_schemas import WishlistResponse, WishlistStatus
from bookstore_cart.services.wishlist_reconciler import WishlistReconciler

router = APIRouter()


def wishlist_response(wishlist: WishlistReconciler) -> WishlistResponse:
    return WishlistResponse(items=wishlist.entries, count=len(wishlist.entries))


@router.post("/add/{book_id}", response_model=WishlistResponse)
async def add_to_wishlist(
    request: Request,
    book_id: str,
    wishlist: WishlistReconciler = Depends(get_wishlist),
):
    book = await request.app.state.catalog.get_book(book_id)
    if not book or not book.is_active:
        raise HTTPException(404, "Book not found")

    wishlist.add(book)
    await wishlist.flush()
    return wishlist_response(wishlist)


@router.delete("/remove/{book_id}", response_model=WishlistResponse)
async def remove_from_wishlist(
    book_id: str,
    wishlist: WishlistReconciler = Depends(get_wishlist),
):
    wishlist.remove(book_id)
    await wishlist.flush()
    return wishlist_response(wishlist)


@router.get("/", response_model=WishlistResponse)
async def view_wishlist(wishlist: WishlistReconciler = Depends(get_wishlist)):
    return wishlist_response(wishlist)


@router.get("/status/{book_id}", response_model=WishlistStatus)
async def wishlist_status(
    book_id: str,
    wishlist: WishlistReconciler = Depends(get_wishlist),
):
    return WishlistStatus(book_id=book_id, in_wishlist=wishlist.contains(book_id))
