"""
Persisted access/refresh token pair.

Both tokens live in one record so a save or clear never leaves one
without the other.
"""

from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from spicebite.schemas.auth import TokenPair
from spicebite.storage.local_store import LocalStore
from spicebite.utils.logger import get_logger

logger = get_logger(__name__)

TOKEN_KEY = "auth_tokens"


class TokenStore:
    """Process-wide holder of the signed-in principal's token pair."""

    def __init__(self, store: LocalStore):
        self._store = store

    def load(self) -> Optional[TokenPair]:
        """
        Load the stored token pair.

        Returns:
            TokenPair, or None if nothing is stored or the record is corrupt.
        """
        record = self._store.get(TOKEN_KEY)
        if record is None:
            return None

        try:
            return TokenPair.model_validate(record)
        except PydanticValidationError:
            logger.warning("Stored token record is invalid; ignoring it")
            return None

    def save(self, pair: TokenPair) -> None:
        self._store.set(TOKEN_KEY, pair.model_dump())
        logger.debug("Token pair saved")

    def clear(self) -> None:
        self._store.remove(TOKEN_KEY)
        logger.debug("Token pair cleared")

    @property
    def access_token(self) -> Optional[str]:
        pair = self.load()
        return pair.access_token if pair else None
