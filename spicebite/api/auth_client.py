"""
Authentication API client.

Handles the backend endpoints that do not require a bearer token:
login, token refresh, registration and password reset.
"""

from typing import Any, Dict

import httpx

from spicebite.api.responses import error_detail, json_or_raise
from spicebite.config import Settings, settings as default_settings
from spicebite.core.errors import ApiError, InvalidCredentials, NetworkError
from spicebite.schemas.auth import RefreshedToken, TokenPair
from spicebite.utils.logger import get_logger

logger = get_logger(__name__)


class AuthApi:
    """Thin wrapper over the unauthenticated auth endpoints."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        config: Settings = default_settings,
    ):
        self._http = http
        self._config = config

    async def _post(
        self,
        endpoint: str,
        *,
        json_data: Dict[str, Any],
    ) -> httpx.Response:
        """
        Internal helper to perform POST requests with transport error handling.

        Raises:
            NetworkError: If the backend could not be reached.
        """
        try:
            return await self._http.post(endpoint, json=json_data)

        except httpx.TransportError as exc:
            logger.exception(
                "HTTP request failed",
                extra={"endpoint": endpoint},
            )
            raise NetworkError("Backend request failed") from exc

    async def obtain_token(self, username: str, password: str) -> TokenPair:
        """
        Exchange credentials for a token pair.

        Args:
            username: Account username.
            password: Account password.

        Returns:
            TokenPair issued by the backend.

        Raises:
            InvalidCredentials: If the backend rejects the credentials.
            NetworkError: If the backend could not be reached.
            ApiError: On any other backend failure.
        """
        logger.info("Attempting user login", extra={"username": username})

        response = await self._post(
            self._config.TOKEN_PATH,
            json_data={"username": username, "password": password},
        )

        if response.status_code in (400, 401):
            logger.warning("Login rejected", extra={"username": username})
            raise InvalidCredentials("Invalid username or password")

        return TokenPair.model_validate(json_or_raise(response, action="log in"))

    async def refresh_token(self, refresh_token: str) -> RefreshedToken:
        """
        Exchange a refresh token for a new access token.

        Raises:
            ApiError: If the refresh token is rejected.
            NetworkError: If the backend could not be reached.
        """
        response = await self._post(
            self._config.TOKEN_REFRESH_PATH,
            json_data={"refresh": refresh_token},
        )
        return RefreshedToken.model_validate(
            json_or_raise(response, action="refresh token")
        )

    async def register(self, username: str, email: str, password: str) -> Dict[str, Any]:
        """
        Register a new account.

        Raises:
            InvalidCredentials: If the backend rejects the registration
                (duplicate username, weak password, ...).
            NetworkError: If the backend could not be reached.
        """
        logger.info("Attempting user signup", extra={"username": username})

        response = await self._post(
            self._config.REGISTER_PATH,
            json_data={"username": username, "email": email, "password": password},
        )

        if response.status_code == 400:
            detail = error_detail(response)
            logger.warning("Signup rejected", extra={"username": username})
            raise InvalidCredentials(f"Signup rejected: {detail}")

        return json_or_raise(response, action="sign up") or {}

    async def forgot_password(self, email: str) -> None:
        """Ask the backend to email a one-time password for a reset."""
        logger.info("Requesting password reset OTP")

        response = await self._post(
            self._config.FORGOT_PASSWORD_PATH,
            json_data={"email": email},
        )
        json_or_raise(response, action="request password reset")

    async def reset_password(
        self,
        email: str,
        otp: str,
        new_password: str,
        confirm_password: str,
    ) -> None:
        """
        Set a new password using the emailed OTP.

        Raises:
            ApiError: If the OTP is wrong or expired, or passwords mismatch.
        """
        response = await self._post(
            self._config.RESET_PASSWORD_PATH,
            json_data={
                "email": email,
                "otp": otp,
                "new_password": new_password,
                "confirm_password": confirm_password,
            },
        )

        try:
            json_or_raise(response, action="reset password")
        except ApiError:
            logger.warning("Password reset rejected")
            raise
