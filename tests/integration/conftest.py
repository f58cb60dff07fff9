"""
Stub SpiceBite backend for integration tests.

A small FastAPI app that issues and verifies real JWTs, served to the
client through httpx.ASGITransport.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI, Header
from fastapi.responses import JSONResponse
from jose import JWTError, jwt
from pydantic import BaseModel

from spicebite.main import SpiceBiteApp

SECRET_KEY = "integration-secret"
ALGORITHM = "HS256"

USERS = {"asha": {"id": 7, "password": "secret", "email": "asha@example.com"}}

TOKEN_NOT_VALID = {
    "detail": "Given token not valid for any token type",
    "code": "token_not_valid",
}


class Credentials(BaseModel):
    username: str
    password: str


class RefreshRequest(BaseModel):
    refresh: str


class StubBackend:
    """
    Token-issuing backend with a switch to invalidate every access token.

    Access tokens carry a generation number; expire_access_tokens() bumps
    the current generation so older tokens are rejected as expired.
    """

    def __init__(self):
        self.generation = 0
        self.refresh_calls = 0
        self.revoked_refresh = False
        self.app = self._build_app()

    def _token(self, username: str, token_type: str, minutes: int) -> str:
        claims = {
            "sub": username,
            "type": token_type,
            "gen": self.generation,
            "exp": datetime.now(timezone.utc) + timedelta(minutes=minutes),
        }
        return jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)

    def _decode(self, token: str, token_type: str) -> Optional[Dict]:
        try:
            claims = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        except JWTError:
            return None

        if claims.get("type") != token_type:
            return None
        if token_type == "access" and claims.get("gen") != self.generation:
            return None
        return claims

    def _user(self, authorization: Optional[str]) -> Optional[str]:
        if not authorization or not authorization.startswith("Bearer "):
            return None
        claims = self._decode(authorization[len("Bearer "):], "access")
        return claims["sub"] if claims else None

    def expire_access_tokens(self) -> None:
        self.generation += 1

    def _build_app(self) -> FastAPI:
        app = FastAPI()

        @app.post("/api/token/")
        async def obtain(credentials: Credentials):
            user = USERS.get(credentials.username)
            if user is None or user["password"] != credentials.password:
                return JSONResponse(
                    status_code=401,
                    content={"detail": "No active account found with the given credentials"},
                )
            return {
                "access": self._token(credentials.username, "access", 5),
                "refresh": self._token(credentials.username, "refresh", 60),
            }

        @app.post("/api/token/refresh/")
        async def refresh(body: RefreshRequest):
            self.refresh_calls += 1
            claims = self._decode(body.refresh, "refresh")
            if claims is None or self.revoked_refresh:
                return JSONResponse(status_code=401, content=TOKEN_NOT_VALID)
            return {"access": self._token(claims["sub"], "access", 5)}

        @app.get("/api/profile/me/")
        async def profile(authorization: Optional[str] = Header(default=None)):
            username = self._user(authorization)
            if username is None:
                return JSONResponse(status_code=401, content=TOKEN_NOT_VALID)
            user = USERS[username]
            return {
                "user": {"id": user["id"], "username": username, "email": user["email"]},
                "bio": "",
                "profile_picture": None,
            }

        @app.get("/api/orders/")
        async def orders(authorization: Optional[str] = Header(default=None)):
            if self._user(authorization) is None:
                return JSONResponse(status_code=401, content=TOKEN_NOT_VALID)
            return [{"id": 55, "status": "delivered"}]

        return app


@pytest.fixture
def stub_backend() -> StubBackend:
    return StubBackend()


@pytest_asyncio.fixture
async def spicebite_app(stub_backend, test_settings):
    http = httpx.AsyncClient(
        base_url=test_settings.API_BASE_URL,
        transport=httpx.ASGITransport(app=stub_backend.app),
    )
    app = SpiceBiteApp(test_settings, http=http)
    yield app
    await http.aclose()
