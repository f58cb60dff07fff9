"""
Authenticated API client.

Every backend call that needs a bearer token goes through
AuthenticatedClient.call(). When the backend rejects the access token the
client exchanges the stored refresh token once, persists the new pair and
retries the request once. Concurrent callers that hit an expired token share
a single in-flight refresh.
"""

import asyncio
from typing import Any, Callable, Dict, List, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from spicebite.api.auth_client import AuthApi
from spicebite.api.responses import json_or_raise
from spicebite.config import Settings, settings as default_settings
from spicebite.core.errors import ApiError, NetworkError, SessionExpired
from spicebite.schemas.auth import TokenPair
from spicebite.storage.token_store import TokenStore
from spicebite.utils.logger import get_logger

logger = get_logger(__name__)

# Payload marker the backend uses for a rejected or expired JWT
TOKEN_INVALID_CODE = "token_not_valid"

RequestBuilder = Callable[[Optional[str]], httpx.Request]
SessionExpiredListener = Callable[[], None]


def is_unauthorized(response: httpx.Response) -> bool:
    """
    Check whether a response means the access token was not accepted.

    Returns:
        True for HTTP 401, or for any 4xx whose JSON body carries the
        token-invalid code.
    """
    if response.status_code == 401:
        return True

    if not response.is_client_error:
        return False

    try:
        payload = response.json()
    except ValueError:
        return False

    return isinstance(payload, dict) and payload.get("code") == TOKEN_INVALID_CODE


class AuthenticatedClient:
    """
    Performs backend calls with transparent token refresh.

    Args:
        token_store: Persisted token pair of the signed-in user.
        http: Optional pre-configured httpx client (tests inject one with a
            mock transport). When omitted, one is created from settings and
            closed by aclose().
        config: Client settings.
        auth_api: Optional auth endpoint wrapper sharing the same client.
    """

    def __init__(
        self,
        token_store: TokenStore,
        *,
        http: Optional[httpx.AsyncClient] = None,
        config: Settings = default_settings,
        auth_api: Optional[AuthApi] = None,
    ):
        self.token_store = token_store
        self.config = config

        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(
            base_url=config.API_BASE_URL,
            timeout=config.REQUEST_TIMEOUT_SECONDS,
        )
        self.auth_api = auth_api or AuthApi(self._http, config=config)

        self._refresh_task: Optional["asyncio.Task[TokenPair]"] = None
        self._expired_listeners: List[SessionExpiredListener] = []

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> "AuthenticatedClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def add_session_expired_listener(self, listener: SessionExpiredListener) -> Callable[[], None]:
        """
        Register a callback fired whenever the client gives up on the
        session and clears the token store.

        Returns:
            Callable that unregisters the listener.
        """
        self._expired_listeners.append(listener)
        return lambda: self._expired_listeners.remove(listener)

    def _expire_session(self) -> None:
        self.token_store.clear()
        for listener in list(self._expired_listeners):
            listener()

    # ------------------------------------------------------------------
    # Request helpers
    # ------------------------------------------------------------------

    def build_request(
        self,
        method: str,
        path: str,
        access_token: Optional[str],
        *,
        json: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Request:
        """Build a request, attaching the bearer header when a token is known."""
        request_headers = {"Accept": "application/json"}
        request_headers.update(headers or {})
        if access_token:
            request_headers["Authorization"] = f"Bearer {access_token}"

        return self._http.build_request(
            method,
            path,
            json=json,
            params=params,
            data=data,
            files=files,
            headers=request_headers,
        )

    async def request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Authenticated request built from keyword arguments of build_request()."""
        return await self.call(
            lambda access_token: self.build_request(method, path, access_token, **kwargs)
        )

    async def fetch_json(self, method: str, path: str, *, action: str, **kwargs: Any) -> Any:
        """
        Authenticated request that returns the decoded JSON body.

        Raises:
            ApiError: On non-2xx status.
            SessionExpired: If re-authentication is required.
            NetworkError: If the backend could not be reached.
        """
        response = await self.request(method, path, **kwargs)
        return json_or_raise(response, action=action)

    # ------------------------------------------------------------------
    # Core call with refresh-and-retry-once
    # ------------------------------------------------------------------

    async def call(self, request_builder: RequestBuilder) -> httpx.Response:
        """
        Perform one logical authenticated request.

        Args:
            request_builder: Builds the request for a given access token
                (None when no token is stored).

        Returns:
            The backend response. After a successful refresh, the retried
            response is returned whatever its status.

        Raises:
            SessionExpired: If the refresh fails or the retried request is
                still unauthorized. The token store is cleared.
            NetworkError: On transport failure of the request itself.
        """
        access_token = self.token_store.access_token
        response = await self._send(request_builder(access_token))

        if not is_unauthorized(response):
            return response

        logger.info(
            "Access token rejected; refreshing",
            extra={"url": str(response.request.url)},
        )
        fresh_token = await self._fresh_access_token(stale_token=access_token)

        response = await self._send(request_builder(fresh_token))

        if is_unauthorized(response):
            logger.warning(
                "Request unauthorized after token refresh",
                extra={"url": str(response.request.url)},
            )
            self._expire_session()
            raise SessionExpired("Session expired; please sign in again")

        return response

    async def _send(self, request: httpx.Request) -> httpx.Response:
        try:
            return await self._http.send(request)

        except httpx.TransportError as exc:
            logger.exception(
                "HTTP request failed",
                extra={"method": request.method, "url": str(request.url)},
            )
            raise NetworkError("Backend request failed") from exc

    async def _fresh_access_token(self, stale_token: Optional[str]) -> str:
        # Another caller may have finished a refresh while our request was
        # in flight; the stored token then differs from the one we sent.
        current = self.token_store.load()
        if current is not None and current.access_token != stale_token:
            logger.debug("Token already refreshed by a concurrent call")
            return current.access_token

        if self._refresh_task is None:
            self._refresh_task = asyncio.ensure_future(self._run_refresh())
        else:
            logger.debug("Joining in-flight token refresh")

        pair = await asyncio.shield(self._refresh_task)
        return pair.access_token

    async def _run_refresh(self) -> TokenPair:
        try:
            return await self._exchange_refresh_token()
        finally:
            self._refresh_task = None

    async def _exchange_refresh_token(self) -> TokenPair:
        pair = self.token_store.load()
        if pair is None:
            logger.warning("No refresh token available")
            self._expire_session()
            raise SessionExpired("Not signed in")

        try:
            refreshed = await self.auth_api.refresh_token(pair.refresh_token)

        except (ApiError, NetworkError, PydanticValidationError) as exc:
            logger.warning("Token refresh failed", extra={"error": str(exc)})
            self._expire_session()
            raise SessionExpired("Session expired; please sign in again") from exc

        new_pair = TokenPair(
            access_token=refreshed.access_token,
            refresh_token=refreshed.refresh_token or pair.refresh_token,
        )
        self.token_store.save(new_pair)
        logger.info("Access token refreshed")
        return new_pair
