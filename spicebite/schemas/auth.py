from typing import Any, Dict, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class TokenPair(BaseModel):
    """Access/refresh token pair as issued by the backend."""

    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(
        validation_alias=AliasChoices("access_token", "access"),
        min_length=1,
    )
    refresh_token: str = Field(
        validation_alias=AliasChoices("refresh_token", "refresh"),
        min_length=1,
    )


class RefreshedToken(BaseModel):
    """Refresh endpoint response; the refresh token is only present on rotation."""

    access_token: str = Field(
        validation_alias=AliasChoices("access_token", "access"),
        min_length=1,
    )
    refresh_token: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("refresh_token", "refresh"),
    )


class User(BaseModel):
    id: Union[int, str]
    username: str
    email: Optional[str] = None
    profile_picture_url: Optional[str] = None
    bio: Optional[str] = None

    @classmethod
    def from_profile_payload(cls, payload: Dict[str, Any]) -> "User":
        """
        Build a user from the profile endpoint payload.

        The backend nests account fields under ``user`` and keeps profile
        fields at the top level:
            {"user": {"id", "username", "email"}, "bio", "profile_picture"}
        """
        account = payload.get("user")
        if not isinstance(account, dict):
            account = {}
        return cls(
            id=account.get("id"),
            username=account.get("username", ""),
            email=account.get("email"),
            profile_picture_url=payload.get("profile_picture"),
            bio=payload.get("bio") or "",
        )
