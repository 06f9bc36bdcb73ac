from bookstore_cart.models.book import Book
from bookstore_cart.models.cart import CartItem
from bookstore_cart.models.wishlist import WishlistItem

# add ALL models here
