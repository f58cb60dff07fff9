"""
Chat history API client.

Handles fetching conversation history and submitting read receipts.
"""

from typing import Iterable, List, Union

from spicebite.api.http_client import AuthenticatedClient
from spicebite.schemas.chat import ChatMessage
from spicebite.utils.logger import get_logger

logger = get_logger(__name__)


async def fetch_history(
    client: AuthenticatedClient,
    conversation_id: str,
) -> List[ChatMessage]:
    """
    Fetch chat history for a conversation.

    Args:
        client: Authenticated client.
        conversation_id: Chat room identifier.

    Returns:
        Committed messages ordered oldest to newest.

    Raises:
        SessionExpired: If the session can no longer be refreshed.
        NetworkError: If the backend could not be reached.
        ApiError: On any other backend failure.
    """
    logger.info(
        "Fetching chat history",
        extra={"conversation_id": conversation_id},
    )

    payload = await client.fetch_json(
        "GET",
        client.config.CHAT_HISTORY_PATH.format(conversation_id=conversation_id),
        action="fetch chat history",
    )

    if isinstance(payload, dict):
        payload = payload.get("messages", [])

    # Backend returns the conversation oldest first
    return [ChatMessage.model_validate(item) for item in payload or []]


async def mark_read(
    client: AuthenticatedClient,
    message_ids: Iterable[Union[int, str]],
) -> None:
    """Submit one read-receipt batch."""
    ids = list(message_ids)
    if not ids:
        return

    logger.debug("Marking messages read", extra={"count": len(ids)})

    await client.fetch_json(
        "POST",
        client.config.CHAT_MARK_READ_PATH,
        action="mark messages read",
        json={"message_ids": ids},
    )
