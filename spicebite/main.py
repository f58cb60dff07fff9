"""
Client core entrypoint.

Wires the storage, HTTP client, session gate, cart and notification ledger
together for the UI layer.
"""

from typing import Optional

import httpx

from spicebite.api.http_client import AuthenticatedClient
from spicebite.cart.ledger import CartLedger
from spicebite.chat.session import ChatSession, support_room
from spicebite.chat.transport import ChatTransport
from spicebite.config import Settings, settings as default_settings
from spicebite.core.errors import SessionExpired
from spicebite.notifications.ledger import NotificationLedger
from spicebite.state.session_gate import SessionGate
from spicebite.storage.local_store import LocalStore
from spicebite.storage.profile_cache import ProfileCache
from spicebite.storage.token_store import TokenStore
from spicebite.utils.logger import get_logger

logger = get_logger(__name__)


class SpiceBiteApp:
    """
    Composition root of the client core.

    Args:
        config: Client settings.
        http: Optional httpx client (tests inject one with a mock transport).
    """

    def __init__(
        self,
        config: Settings = default_settings,
        *,
        http: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config

        store = LocalStore(config.STORAGE_PATH)
        self.token_store = TokenStore(store)
        self.profile_cache = ProfileCache(store)
        self.client = AuthenticatedClient(self.token_store, http=http, config=config)
        self.session = SessionGate(self.client, self.profile_cache)
        self.cart = CartLedger()
        self.notifications = NotificationLedger(store)

        self.session.add_listener(self._on_session_change)
        self.client.add_session_expired_listener(self.session.handle_session_expired)

    def _on_session_change(self, gate: SessionGate) -> None:
        if not gate.is_signed_in:
            self.cart.clear()

    def support_chat(self, *, transport: Optional[ChatTransport] = None) -> ChatSession:
        """
        Create the signed-in user's support chat session.

        Raises:
            SessionExpired: If nobody is signed in.
        """
        user = self.session.user
        if user is None:
            raise SessionExpired("Sign in to chat with support")

        return ChatSession(
            self.client,
            support_room(user.id),
            user.username,
            transport=transport,
        )

    async def start(self) -> None:
        logger.info("Starting SpiceBite client core")
        await self.session.start()

    async def aclose(self) -> None:
        await self.client.aclose()
