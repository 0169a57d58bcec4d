"""
SQLite-backed OAuth token provider.

Tokens live in a ``user_tokens`` table. A token within the expiry buffer
of its expiry time is refreshed through the OAuth token endpoint before
it is returned. Concurrent refreshes for the same user share one request.
"""

import time
from datetime import datetime
from pathlib import Path

import aiosqlite
import httpx
from pydantic import BaseModel

from contextindex.core.auth.base import TokenProvider
from contextindex.utils.exceptions import AuthError
from contextindex.utils.inflight import InFlightRegistry
from contextindex.utils.logger import get_logger

logger = get_logger(__name__)


class TokenRecord(BaseModel):
    """Stored OAuth tokens for one user."""

    user_id: str
    access_token: str | None = None
    refresh_token: str | None = None
    expires_at: int | None = None  # Unix time in milliseconds
    updated_at: str | None = None


class TokenStatus(BaseModel):
    """Token state for diagnostics."""

    has_token: bool
    has_refresh_token: bool
    expires_at: datetime | None = None
    is_expired: bool
    expires_in_minutes: int | None = None


def _now_ms() -> int:
    return int(time.time() * 1000)


class SQLiteTokenProvider(TokenProvider):
    """
    OAuth token store with transparent refresh.

    Usage:
        provider = SQLiteTokenProvider("data/tokens.db", client_id=..., client_secret=...)
        await provider.initialize()
        token = await provider.get_valid_access_token("user-1")
    """

    def __init__(
        self,
        db_path: str = "data/tokens.db",
        client_id: str | None = None,
        client_secret: str | None = None,
        token_url: str = "https://oauth2.googleapis.com/token",
        expiry_buffer_seconds: int = 300,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ):
        """
        Initialize token provider.

        Args:
            db_path: SQLite database path (":memory:" for tests)
            client_id: OAuth client ID
            client_secret: OAuth client secret
            token_url: OAuth token endpoint
            expiry_buffer_seconds: Refresh tokens expiring within this window
            http_client: Optional shared httpx client
            timeout: Request timeout for the token endpoint
        """
        self.db_path = db_path
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_url = token_url
        self.expiry_buffer_ms = expiry_buffer_seconds * 1000
        self._http = http_client
        self._owns_http = http_client is None
        self.timeout = timeout
        self.connection: aiosqlite.Connection | None = None
        self._refreshes: InFlightRegistry[str | None] = InFlightRegistry("token-refresh")

        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    async def connect(self) -> None:
        """Open the SQLite connection."""
        if self.connection is None:
            self.connection = await aiosqlite.connect(self.db_path)
            self.connection.row_factory = aiosqlite.Row

    async def initialize(self) -> None:
        """Create the token table."""
        await self.connect()
        await self.connection.execute(
            """
            CREATE TABLE IF NOT EXISTS user_tokens (
                user_id TEXT PRIMARY KEY,
                access_token TEXT,
                refresh_token TEXT,
                expires_at INTEGER,
                updated_at TEXT
            )
            """
        )
        await self.connection.commit()

    @property
    def http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.timeout)
        return self._http

    async def save_tokens(
        self,
        user_id: str,
        access_token: str | None,
        refresh_token: str | None = None,
        expires_at: int | None = None,
    ) -> None:
        """
        Insert or update a user's tokens.

        A None refresh_token keeps the stored one.
        """
        await self.connect()
        await self.connection.execute(
            """
            INSERT INTO user_tokens (user_id, access_token, refresh_token, expires_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                access_token = excluded.access_token,
                refresh_token = COALESCE(excluded.refresh_token, user_tokens.refresh_token),
                expires_at = excluded.expires_at,
                updated_at = excluded.updated_at
            """,
            (user_id, access_token, refresh_token, expires_at, datetime.now().isoformat()),
        )
        await self.connection.commit()

    async def get_tokens(self, user_id: str) -> TokenRecord | None:
        await self.connect()
        async with self.connection.execute(
            "SELECT * FROM user_tokens WHERE user_id = ?", (user_id,)
        ) as cursor:
            row = await cursor.fetchone()
        return TokenRecord(**dict(row)) if row else None

    async def get_valid_access_token(self, user_id: str) -> str | None:
        """
        Get a valid access token, refreshing it when expired or near expiry.

        Returns:
            Access token, or None if no token exists or refresh failed
        """
        try:
            record = await self.get_tokens(user_id)
        except Exception as e:
            logger.bind(user_id=user_id, error=str(e)).error(
                f"Failed to read tokens for {user_id}: {e}"
            )
            return None

        if record is None:
            logger.bind(user_id=user_id).info(f"No tokens stored for {user_id}")
            return None

        if (
            record.access_token
            and record.expires_at is not None
            and record.expires_at > _now_ms() + self.expiry_buffer_ms
        ):
            return record.access_token

        if not record.refresh_token:
            logger.bind(user_id=user_id).warning(f"No refresh token for {user_id}")
            return None

        return await self._refreshes.run_once(
            user_id, lambda: self._refresh(user_id, record.refresh_token)
        )

    async def _refresh(self, user_id: str, refresh_token: str) -> str | None:
        try:
            return await self.refresh_access_token(user_id, refresh_token)
        except AuthError as e:
            logger.bind(user_id=user_id, **e.context).warning(
                f"Token refresh failed for {user_id}: {e}"
            )
            return None

    async def refresh_access_token(self, user_id: str, refresh_token: str) -> str:
        """
        Exchange a refresh token for a new access token and store it.

        Raises:
            AuthError: If the token endpoint rejects the request or is unreachable
        """
        if not self.client_id or not self.client_secret:
            raise AuthError("OAuth client credentials are not configured")

        try:
            response = await self.http.post(
                self.token_url,
                data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "refresh_token": refresh_token,
                    "grant_type": "refresh_token",
                },
            )
        except httpx.HTTPError as e:
            raise AuthError(f"Token endpoint unreachable: {e}") from e

        if response.status_code in (400, 401):
            # Refresh token revoked, user must re-authenticate
            await self.save_tokens(user_id, None, None, None)
            raise AuthError(
                "Refresh token rejected",
                {"status_code": response.status_code, "body": response.text[:200]},
            )
        if response.is_error:
            raise AuthError("Token refresh failed", {"status_code": response.status_code})

        data = response.json()
        access_token = data.get("access_token")
        if not access_token:
            raise AuthError("Token endpoint returned no access token")

        expires_at = _now_ms() + int(data.get("expires_in", 3600)) * 1000
        try:
            await self.save_tokens(user_id, access_token, data.get("refresh_token"), expires_at)
        except Exception as e:
            # The new token is still usable for this request
            logger.bind(user_id=user_id, error=str(e)).error(
                f"Failed to store refreshed token for {user_id}: {e}"
            )

        logger.bind(user_id=user_id).info(f"Refreshed access token for {user_id}")
        return access_token

    async def needs_reauth(self, user_id: str) -> bool:
        """True if the user has no usable token and none can be refreshed."""
        record = await self.get_tokens(user_id)
        if record is None or not record.refresh_token:
            return True
        return await self.get_valid_access_token(user_id) is None

    async def token_status(self, user_id: str) -> TokenStatus:
        """Describe a user's token state."""
        record = await self.get_tokens(user_id)
        if record is None or record.expires_at is None:
            return TokenStatus(
                has_token=bool(record and record.access_token),
                has_refresh_token=bool(record and record.refresh_token),
                is_expired=True,
            )

        now = _now_ms()
        return TokenStatus(
            has_token=bool(record.access_token),
            has_refresh_token=bool(record.refresh_token),
            expires_at=datetime.fromtimestamp(record.expires_at / 1000),
            is_expired=record.expires_at < now,
            expires_in_minutes=round((record.expires_at - now) / 60000),
        )

    async def close(self) -> None:
        if self._owns_http and self._http is not None:
            await self._http.aclose()
            self._http = None
        if self.connection is not None:
            await self.connection.close()
            self.connection = None
