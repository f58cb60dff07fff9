"""
Client configuration.

Centralized environment-based settings using Pydantic v2.
"""

from pydantic_settings import BaseSettings
from pydantic import ConfigDict, Field


class Settings(BaseSettings):
    """
    SpiceBite client settings.

    Environment variables must be prefixed with:
        SPICEBITE_

    Example:
        SPICEBITE_API_BASE_URL=http://localhost:8000
    """

    # --------------------
    # Backend
    # --------------------
    API_BASE_URL: str = Field(
        default="http://localhost:8000",
        description="Base URL for backend API",
        min_length=1,
    )
    WS_BASE_URL: str = Field(
        default="ws://localhost:8000",
        description="Base URL for the realtime chat channel",
        min_length=1,
    )
    REQUEST_TIMEOUT_SECONDS: float = Field(default=10.0, gt=0)

    # --------------------
    # Local storage
    # --------------------
    STORAGE_PATH: str = Field(
        default="~/.spicebite/storage.json",
        description="JSON file holding tokens and cached profile fields",
    )

    # --------------------
    # Endpoints
    # --------------------
    TOKEN_PATH: str = "/api/token/"
    TOKEN_REFRESH_PATH: str = "/api/token/refresh/"
    REGISTER_PATH: str = "/api/register/"
    FORGOT_PASSWORD_PATH: str = "/api/forgot-password/"
    RESET_PASSWORD_PATH: str = "/api/reset-password/"
    PROFILE_PATH: str = "/api/profile/me/"
    CHAT_HISTORY_PATH: str = "/api/chat/history/{conversation_id}/"
    CHAT_MARK_READ_PATH: str = "/api/chat/mark-read/"
    CHAT_WS_PATH: str = "/ws/chat/{conversation_id}/"
    FOODS_PATH: str = "/foods/"
    CATEGORIES_PATH: str = "/categories/"
    REVIEWS_PATH: str = "/api/reviews/"
    CART_PATH: str = "/api/cart/"
    CART_CLEAR_PATH: str = "/api/cart/clear/"
    ORDERS_PATH: str = "/api/orders/"
    ORDER_CANCEL_PATH: str = "/api/orders/{order_id}/cancel/"

    # --------------------
    # Logging
    # --------------------
    LOG_LEVEL: str = Field(
        default="INFO",
        pattern=r"(?i)^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
    )

    # IMPORTANT:
    # - env_prefix keeps client variables apart from backend ones
    # - extra='ignore' skips unrelated variables in a shared .env
    model_config = ConfigDict(
        env_file=".env",
        env_prefix="SPICEBITE_",
        extra="ignore",
    )


settings = Settings()
