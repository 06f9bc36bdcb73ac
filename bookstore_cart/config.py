import os
import tempfile
from decimal import Decimal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite:///./bookstore.db"
    db_echo: bool = False
    # false means the remote cart store is unreachable and every session is a guest
    remote_store_enabled: bool = True

    secret_key: str = "dev-secret-change-me"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    cart_storage_key: str = "kenyas-bookstore-cart"
    wishlist_storage_key: str = "kenyas-bookstore-wishlist"
    guest_storage_dir: str = os.path.join(tempfile.gettempdir(), "bookstore_guest")

    # Pricing
    sales_tax_rate: Decimal = Decimal("0.0825")
    express_shipping_cents: int = 1500
    currency: str = "USD"
    max_line_quantity: int = 99

    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "allow"

settings = Settings()
