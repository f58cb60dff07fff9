"""
Profile API client.

Handles fetching and updating the signed-in user's profile.
"""

from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from spicebite.api.http_client import AuthenticatedClient
from spicebite.core.errors import ApiError
from spicebite.schemas.auth import User
from spicebite.utils.logger import get_logger

logger = get_logger(__name__)


async def fetch_profile(client: AuthenticatedClient) -> User:
    """
    Fetch the signed-in user's profile.

    Returns:
        User built from the profile payload.

    Raises:
        SessionExpired: If the session can no longer be refreshed.
        NetworkError: If the backend could not be reached.
        ApiError: On any other backend failure, or if the payload does not
            describe a user.
    """
    logger.info("Fetching user profile")

    payload = await client.fetch_json(
        "GET",
        client.config.PROFILE_PATH,
        action="fetch profile",
    )
    if not isinstance(payload, dict):
        raise ApiError("Invalid profile response", status_code=200, detail=payload)

    try:
        return User.from_profile_payload(payload)
    except PydanticValidationError as exc:
        logger.warning("Profile payload is missing user fields")
        raise ApiError(
            "Invalid profile response",
            status_code=200,
            detail=str(exc),
        ) from exc


async def update_profile(
    client: AuthenticatedClient,
    *,
    username: str,
    email: str,
    bio: str = "",
    picture_path: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Update profile fields, optionally uploading a new profile picture.

    Args:
        client: Authenticated client.
        username: New username.
        email: New email.
        bio: Free-text bio.
        picture_path: Local path of a JPEG to upload.

    Returns:
        Updated profile payload.
    """
    data = {
        "bio": bio,
        "user[username]": username,
        "user[email]": email,
    }

    files = None
    if picture_path:
        path = Path(picture_path)
        files = {"profile_picture": ("profile.jpg", path.read_bytes(), "image/jpeg")}

    logger.info(
        "Updating user profile",
        extra={"has_picture": files is not None},
    )

    return await client.fetch_json(
        "PATCH",
        client.config.PROFILE_PATH,
        action="update profile",
        data=data,
        files=files,
    )
