"""
Realtime support chat session.

One ChatSession manages one conversation:
- history is loaded over HTTP, then live frames arrive over the transport
- outbound messages are shown immediately as PENDING (optimistic echo)
- the server's echo replaces the pending entry in place, matched by the
  client_id sent with the message, or by sender and body for servers that
  do not echo it back
- unread messages are acknowledged in read-receipt batches

No automatic reconnection: when the channel drops the session goes
DISCONNECTED and the caller decides whether to open() again.
"""

import asyncio
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Union
from urllib.parse import urlencode

from pydantic import ValidationError as PydanticValidationError

from spicebite.api import chat_client
from spicebite.api.http_client import AuthenticatedClient
from spicebite.chat.transport import ChatTransport, WebSocketTransport
from spicebite.core.errors import (
    ApiError,
    ChatUnavailable,
    NetworkError,
    SessionExpired,
    ValidationError,
)
from spicebite.schemas.chat import ChatMessage, MessageStatus, TypingEvent, parse_incoming
from spicebite.utils.logger import get_logger

logger = get_logger(__name__)

PENDING_ID_PREFIX = "temp-"

MessageId = Union[int, str]
Listener = Callable[["ChatSession"], None]


class ConnectionState(str, Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


def support_room(user_id: Any) -> str:
    """Conversation id of a user's support chat with the admin."""
    return f"room_{user_id}_admin"


class ChatSession:
    """
    Chat state for one conversation.

    Args:
        client: Authenticated client for history and read receipts.
        conversation_id: Chat room identifier.
        user_key: Identity of the current user as it appears in the
            ``user`` and ``read_by`` fields of messages (the username).
        transport: Realtime channel; a WebSocketTransport by default.
    """

    def __init__(
        self,
        client: AuthenticatedClient,
        conversation_id: str,
        user_key: str,
        *,
        transport: Optional[ChatTransport] = None,
    ):
        self._client = client
        self.conversation_id = conversation_id
        self.user_key = str(user_key)
        self._transport = transport or WebSocketTransport()

        self.messages: List[ChatMessage] = []
        self.typing_users: Set[str] = set()
        self.connection = ConnectionState.DISCONNECTED

        self._listeners: List[Listener] = []
        self._receive_task: Optional[asyncio.Task] = None
        self._receipt_task: Optional[asyncio.Task] = None
        self._pending_receipts: List[MessageId] = []

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    @property
    def is_connected(self) -> bool:
        return self.connection is ConnectionState.CONNECTED

    def _channel_url(self, access_token: Optional[str]) -> str:
        config = self._client.config
        path = config.CHAT_WS_PATH.format(conversation_id=self.conversation_id)
        return f"{config.WS_BASE_URL}{path}?{urlencode({'token': access_token or ''})}"

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open(self) -> None:
        """
        Load history and connect the realtime channel.

        Raises:
            SessionExpired, NetworkError, ApiError: From the history fetch,
                propagated as-is.
            ChatUnavailable: If the channel handshake fails.
        """
        if self.is_connected:
            return

        self.messages = await chat_client.fetch_history(self._client, self.conversation_id)
        self.typing_users.clear()

        await self._transport.connect(self._channel_url(self._client.token_store.access_token))

        self.connection = ConnectionState.CONNECTED
        self._receive_task = asyncio.ensure_future(self._receive_loop())

        logger.info(
            "Chat session opened",
            extra={
                "conversation_id": self.conversation_id,
                "history": len(self.messages),
            },
        )

        self._queue_read_receipts(
            message.id for message in self.messages if not message.is_read_by(self.user_key)
        )
        self._notify()

    async def close(self) -> None:
        """
        Tear down the channel and cancel any pending read-receipt batch.

        Sends already transmitted are not cancelled. Safe to call twice.
        """
        if not self.is_connected and self._receive_task is None:
            return

        self.connection = ConnectionState.DISCONNECTED

        tasks = [
            task
            for task in (self._receipt_task, self._receive_task)
            if task is not None and not task.done()
        ]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        self._receipt_task = None
        self._receive_task = None
        self._pending_receipts.clear()
        self.typing_users.clear()

        await self._transport.close()

        logger.info("Chat session closed", extra={"conversation_id": self.conversation_id})
        self._notify()

    async def _receive_loop(self) -> None:
        try:
            async for payload in self._transport.receive():
                self.on_incoming(payload)

        except ChatUnavailable:
            logger.warning(
                "Chat channel failed",
                extra={"conversation_id": self.conversation_id},
            )

        finally:
            if self.is_connected:
                logger.info(
                    "Chat channel closed by server",
                    extra={"conversation_id": self.conversation_id},
                )
                self.connection = ConnectionState.DISCONNECTED
                self.typing_users.clear()
                self._notify()

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    async def send(self, body: str) -> ChatMessage:
        """
        Send a message with optimistic local echo.

        The message is appended as PENDING before transmission. If the
        transport fails it stays in the list flagged FAILED.

        Returns:
            The message as it stands after transmission.

        Raises:
            ValidationError: If the body is blank.
            ChatUnavailable: If the session is not connected.
        """
        if not body or not body.strip():
            raise ValidationError("Message body is empty")

        if not self.is_connected:
            raise ChatUnavailable("Chat is not connected")

        client_id = f"{PENDING_ID_PREFIX}{uuid.uuid4().hex}"
        pending = ChatMessage(
            id=client_id,
            client_id=client_id,
            conversation_id=self.conversation_id,
            sender_id=self.user_key,
            body=body,
            sent_at=datetime.now(timezone.utc),
            status=MessageStatus.PENDING,
        )
        self.messages.append(pending)
        self._notify()

        try:
            await self._transport.send_json({"message": body, "client_id": client_id})

        except ChatUnavailable:
            logger.warning(
                "Chat message send failed",
                extra={"conversation_id": self.conversation_id, "client_id": client_id},
            )
            self._mark_failed(client_id)

        return self._find_by_client_id(client_id) or pending

    async def send_typing(self, is_typing: bool) -> None:
        """Best-effort typing indicator; dropped when not connected."""
        if not self.is_connected:
            return

        try:
            await self._transport.send_json({"type": "typing", "is_typing": is_typing})
        except ChatUnavailable:
            logger.debug("Typing indicator not delivered")

    def _find_by_client_id(self, client_id: str) -> Optional[ChatMessage]:
        for message in self.messages:
            if message.client_id == client_id:
                return message
        return None

    def _mark_failed(self, client_id: str) -> None:
        for index, message in enumerate(self.messages):
            if message.client_id == client_id and message.is_pending:
                self.messages[index] = message.model_copy(update={"status": MessageStatus.FAILED})
                self._notify()
                return

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    def on_incoming(self, payload: Dict[str, Any]) -> None:
        """Apply one decoded frame from the transport."""
        try:
            frame = parse_incoming(payload)
        except PydanticValidationError:
            logger.warning(
                "Dropping malformed chat frame",
                extra={"conversation_id": self.conversation_id},
            )
            return

        if frame is None:
            logger.debug("Ignoring unknown chat frame")
            return

        if isinstance(frame, TypingEvent):
            self._apply_typing(frame)
        else:
            self._apply_message(frame)

        self._notify()

    def _apply_typing(self, event: TypingEvent) -> None:
        if event.is_typing:
            self.typing_users.add(event.user_id)
        else:
            self.typing_users.discard(event.user_id)

    def _apply_message(self, incoming: ChatMessage) -> None:
        message = incoming.model_copy(
            update={
                "status": MessageStatus.COMMITTED,
                "conversation_id": incoming.conversation_id or self.conversation_id,
            }
        )

        for existing in self.messages:
            if existing.status is MessageStatus.COMMITTED and existing.id == message.id:
                logger.debug("Ignoring duplicate committed message", extra={"message_id": message.id})
                return

        index = self._pending_index_for(message)
        if index is not None:
            self.messages[index] = message
            return

        self.messages.append(message)

        if message.sender_id != self.user_key:
            self._queue_read_receipts([message.id])

    def _pending_index_for(self, message: ChatMessage) -> Optional[int]:
        # The echoed client_id is authoritative when present
        if message.client_id:
            for index, existing in enumerate(self.messages):
                if existing.client_id == message.client_id and existing.status is not MessageStatus.COMMITTED:
                    return index
            return None

        for index, existing in enumerate(self.messages):
            if (
                existing.is_pending
                and existing.sender_id == message.sender_id
                and existing.body == message.body
            ):
                return index
        return None

    # ------------------------------------------------------------------
    # Read receipts
    # ------------------------------------------------------------------

    def _queue_read_receipts(self, message_ids: Iterable[MessageId]) -> None:
        for message_id in message_ids:
            if message_id not in self._pending_receipts:
                self._pending_receipts.append(message_id)

        if not self._pending_receipts or not self.is_connected:
            return

        if self._receipt_task is None or self._receipt_task.done():
            self._receipt_task = asyncio.ensure_future(self._flush_read_receipts())

    async def _flush_read_receipts(self) -> None:
        while self._pending_receipts:
            batch = list(self._pending_receipts)
            self._pending_receipts.clear()

            try:
                await chat_client.mark_read(self._client, batch)

            except (ApiError, NetworkError, SessionExpired) as exc:
                logger.warning(
                    "Failed to submit read receipts",
                    extra={"count": len(batch), "error": str(exc)},
                )
                return

            self._apply_read(batch)

    def _apply_read(self, message_ids: List[MessageId]) -> None:
        read = set(message_ids)
        for index, message in enumerate(self.messages):
            if message.id in read and not message.is_read_by(self.user_key):
                self.messages[index] = message.model_copy(
                    update={"read_by": message.read_by | {self.user_key}}
                )
        self._notify()

    async def wait_read_receipts(self) -> None:
        """Wait for the in-flight read-receipt batch, if any."""
        if self._receipt_task is not None and not self._receipt_task.done():
            await asyncio.shield(self._receipt_task)
