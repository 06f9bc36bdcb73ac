from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlmodel import Session, select
from bookstore_cart.database import get_session
from bookstore_cart.models.book import Book
from bookstore_cart.schemas.book_schemas import BookPublic
from bookstore_cart.services.money import format_money_from_cents
from bookstore_cart.utils.pagination import paginate

router = APIRouter()


def to_public(book: Book, currency: str) -> BookPublic:
    return BookPublic(
        id=book.id,
        title=book.title,
        author=book.author,
        isbn=book.isbn,
        cover_url=book.cover_url,
        list_price_cents=book.list_price_cents,
        is_active=book.is_active,
        price=format_money_from_cents(book.list_price_cents, currency),
    )


# ---------- LIST BOOKS ----------
@router.get("/", summary="List active books")
def list_books(
    request: Request,
    page: int = Query(1),
    limit: int = Query(10),
    q: str | None = Query(None, description="Search term for title or author"),
    session: Session = Depends(get_session)
):
    query = select(Book).where(Book.is_active == True)  # noqa: E712

    if q:
        query = query.where(
            Book.title.ilike(f"%{q}%") |
            Book.author.ilike(f"%{q}%")
        )

    result = paginate(session=session, query=query.order_by(Book.title), page=page, limit=limit)
    currency = request.app.state.settings.currency
    result["results"] = [to_public(book, currency) for book in result["results"]]
    return result


# ---------- BOOK DETAIL ----------
@router.get("/{book_id}", response_model=BookPublic)
def get_book(
    request: Request,
    book_id: str,
    session: Session = Depends(get_session)
):
    book = session.get(Book, book_id)
    if not book or not book.is_active:
        raise HTTPException(status_code=404, detail="Book not found")

    return to_public(book, request.app.state.settings.currency)
