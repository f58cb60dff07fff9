"""
Offline copy of the signed-in user's profile fields.

Fields are stored per user id so the UI can render the last known profile
while the network is unavailable.
"""

from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from spicebite.schemas.auth import User
from spicebite.storage.local_store import LocalStore
from spicebite.utils.logger import get_logger

logger = get_logger(__name__)

USER_ID_KEY = "user_id"
PROFILE_KEY_PREFIX = "profile_"


def _profile_key(user_id) -> str:
    return f"{PROFILE_KEY_PREFIX}{user_id}"


class ProfileCache:
    def __init__(self, store: LocalStore):
        self._store = store

    def save(self, user: User) -> None:
        self._store.update(
            {
                USER_ID_KEY: str(user.id),
                _profile_key(user.id): user.model_dump(),
            }
        )

    def load(self) -> Optional[User]:
        """Return the cached profile of the last signed-in user, if any."""
        user_id = self._store.get(USER_ID_KEY)
        if user_id is None:
            return None

        record = self._store.get(_profile_key(user_id))
        if record is None:
            return None

        try:
            return User.model_validate(record)
        except PydanticValidationError:
            logger.warning("Cached profile is invalid; ignoring it", extra={"user_id": user_id})
            return None

    def clear(self) -> None:
        """Remove every cached per-user field."""
        self._store.remove(USER_ID_KEY)
        self._store.remove_matching([PROFILE_KEY_PREFIX])
