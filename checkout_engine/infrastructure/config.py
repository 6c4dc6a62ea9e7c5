"""Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API
    api_version: str = "0.1.0"
    debug: bool = False

    # Commerce API
    commerce_api_url: str = "https://carryofyapi.vercel.app/api/v1"
    commerce_api_timeout: float = 10.0

    # Geocoding (OpenStreetMap Nominatim)
    geocoder_url: str = "https://nominatim.openstreetmap.org/search"
    geocoder_user_agent: str = "Carryofy/1.0 (delivery address geocoding)"
    geocoder_timeout: float = 5.0
    default_country: str = "Nigeria"

    # Checkout
    currency: str = "NGN"
    shipping_method: str = "STANDARD"

    # Redirects
    auth_redirect_path: str = "/auth/login"
    auth_redirect_delay_seconds: int = 2
    cart_redirect_path: str = "/buyer/cart"
    quotes_redirect_path: str = "/buyer/quotes"

    # Sessions
    session_ttl_minutes: int = 60

    # Logging
    log_level: str = "INFO"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


settings = Settings()
