"""
Application session gate.

Tracks whether the app is signed out, resolving a stored session, or signed
in, and owns the transitions between those states.

    LOADING -> SIGNED_IN | SIGNED_OUT       (start)
    SIGNED_OUT -> SIGNED_IN                 (login / signup)
    SIGNED_IN -> SIGNED_OUT                 (logout / session expired)

Only SessionExpired clears the stored tokens. A NetworkError while
resolving the session leaves the tokens in place so a later retry can
succeed without a new login.
"""

from enum import Enum
from typing import Callable, List, Optional

from spicebite.api import profile_client
from spicebite.api.http_client import AuthenticatedClient
from spicebite.core.errors import ApiError, NetworkError, SessionExpired
from spicebite.schemas.auth import User
from spicebite.storage.profile_cache import ProfileCache
from spicebite.utils.logger import get_logger

logger = get_logger(__name__)


class GateState(str, Enum):
    SIGNED_OUT = "signed_out"
    LOADING = "loading"
    SIGNED_IN = "signed_in"


Listener = Callable[["SessionGate"], None]


class SessionGate:
    """
    Session state machine on top of AuthenticatedClient.

    Args:
        client: Authenticated client (also gives access to the token store
            and the unauthenticated auth endpoints).
        profile_cache: Offline copy of the user's profile fields.
    """

    def __init__(self, client: AuthenticatedClient, profile_cache: ProfileCache):
        self._client = client
        self._profile_cache = profile_cache
        self._listeners: List[Listener] = []

        self.state = GateState.LOADING
        self.user: Optional[User] = None

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """
        Register a callback invoked after every state change.

        Returns:
            Callable that unregisters the listener.
        """
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    @property
    def is_signed_in(self) -> bool:
        return self.state is GateState.SIGNED_IN

    @property
    def cached_user(self) -> Optional[User]:
        """Last known profile, available offline."""
        return self.user or self._profile_cache.load()

    def _transition(self, state: GateState, user: Optional[User] = None) -> None:
        previous = self.state
        self.state = state
        self.user = user

        logger.info(
            "Session state changed",
            extra={"from": previous.value, "to": state.value},
        )

        for listener in list(self._listeners):
            listener(self)

    def _sign_out_locally(self) -> None:
        self._client.token_store.clear()
        self._profile_cache.clear()
        if self.state is not GateState.SIGNED_OUT:
            self._transition(GateState.SIGNED_OUT)

    def handle_session_expired(self) -> None:
        """
        Sign out after the client gave up on the session, whichever call
        hit the expiry.
        """
        if self.state is GateState.SIGNED_IN:
            logger.warning("Session expired; returning to sign-in")
        self._sign_out_locally()

    async def _enter_signed_in(self) -> User:
        user = await profile_client.fetch_profile(self._client)
        self._profile_cache.save(user)
        self._transition(GateState.SIGNED_IN, user)
        return user

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def start(self) -> GateState:
        """
        Resolve the stored session at app start.

        Returns:
            Resulting state.

        Raises:
            NetworkError: If the profile could not be fetched because the
                backend is unreachable. State is SIGNED_OUT, tokens are kept.
            ApiError: On any other backend failure; tokens are kept.
        """
        if self.state is not GateState.LOADING:
            self._transition(GateState.LOADING)

        if self._client.token_store.load() is None:
            logger.info("No stored session")
            self._transition(GateState.SIGNED_OUT)
            return self.state

        try:
            await self._enter_signed_in()

        except SessionExpired:
            logger.warning("Stored session expired")
            self._sign_out_locally()

        except (NetworkError, ApiError):
            logger.warning("Could not resolve stored session; keeping tokens for retry")
            self._transition(GateState.SIGNED_OUT)
            raise

        return self.state

    async def login(self, username: str, password: str) -> User:
        """
        Sign in with credentials.

        Returns:
            Signed-in user.

        Raises:
            InvalidCredentials: If the credentials are rejected; state is
                unchanged.
            NetworkError: If the backend could not be reached.
        """
        pair = await self._client.auth_api.obtain_token(username, password)
        self._client.token_store.save(pair)

        try:
            user = await self._enter_signed_in()
        except SessionExpired:
            self._sign_out_locally()
            raise

        logger.info("User logged in", extra={"user_id": user.id})
        return user

    async def signup(self, username: str, email: str, password: str) -> User:
        """Register an account, then sign in with the same credentials."""
        await self._client.auth_api.register(username, email, password)
        logger.info("User registered", extra={"username": username})
        return await self.login(username, password)

    async def logout(self) -> None:
        """Clear tokens and every cached per-user field."""
        self._sign_out_locally()
        logger.info("User logged out")

    async def refresh_profile(self) -> User:
        """
        Re-fetch profile fields for the signed-in user.

        Raises:
            SessionExpired: If the session ended; the gate signs out.
        """
        try:
            return await self._enter_signed_in()
        except SessionExpired:
            logger.warning("Session expired while refreshing profile")
            self._sign_out_locally()
            raise

    async def update_profile(
        self,
        *,
        username: str,
        email: str,
        bio: str = "",
        picture_path: Optional[str] = None,
    ) -> User:
        """Update profile fields, then re-fetch them from the backend."""
        try:
            await profile_client.update_profile(
                self._client,
                username=username,
                email=email,
                bio=bio,
                picture_path=picture_path,
            )
        except SessionExpired:
            self._sign_out_locally()
            raise

        return await self.refresh_profile()
