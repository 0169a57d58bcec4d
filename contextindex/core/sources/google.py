"""
Gmail and Google Drive content sources.

Both call the Google REST APIs with the user's OAuth access token.
Results carry a fixed base relevance since neither API returns a score.
"""

from abc import abstractmethod
from datetime import datetime
from email.utils import parsedate_to_datetime

import httpx

from contextindex.core.sources.base import SourceAdapter, make_snippet
from contextindex.models.search import SearchResult
from contextindex.utils.exceptions import AuthError
from contextindex.utils.logger import get_logger

logger = get_logger(__name__)


class GoogleSource(SourceAdapter):
    """Shared HTTP handling for Google API sources."""

    requires_token = True
    base_score: float = 0.5

    def __init__(self, http_client: httpx.AsyncClient | None = None, timeout: float = 30.0):
        self._http = http_client
        self._owns_http = http_client is None
        self.timeout = timeout

    @property
    def http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.timeout)
        return self._http

    async def _get(self, url: str, token: str, params: dict) -> dict:
        """
        GET a Google API resource.

        Raises:
            AuthError: On 401/403
            httpx.HTTPError: On other transport or status failures
        """
        response = await self.http.get(
            url, params=params, headers={"Authorization": f"Bearer {token}"}
        )
        if response.status_code in (401, 403):
            raise AuthError(
                f"{self.name} rejected the access token", {"status_code": response.status_code}
            )
        response.raise_for_status()
        return response.json()

    async def search(
        self,
        query: str,
        token: str | None,
        user_id: str,
        limit: int = 10,
        project_id: str | None = None,
    ) -> list[SearchResult]:
        if not token:
            return []
        try:
            return await self._search(query, token, limit)
        except AuthError as e:
            logger.bind(source=self.name, user_id=user_id, **e.context).warning(
                f"{self.name} search unauthenticated for {user_id}: {e}"
            )
        except (httpx.HTTPError, ValueError) as e:
            logger.bind(source=self.name, user_id=user_id, error=str(e)).error(
                f"{self.name} search failed: {e}"
            )
        return []

    @abstractmethod
    async def _search(self, query: str, token: str, limit: int) -> list[SearchResult]:
        """Run the API query with a known-good token."""

    async def close(self) -> None:
        if self._owns_http and self._http is not None:
            await self._http.aclose()
            self._http = None


class GmailSource(GoogleSource):
    """Gmail message search (metadata and snippet only)."""

    name = "gmail"
    base_score = 0.8
    API_URL = "https://gmail.googleapis.com/gmail/v1/users/me/messages"

    async def _search(self, query: str, token: str, limit: int) -> list[SearchResult]:
        listing = await self._get(self.API_URL, token, {"q": query, "maxResults": limit})
        results = []

        for message in listing.get("messages", [])[:limit]:
            message_id = message["id"]
            try:
                details = await self._get(
                    f"{self.API_URL}/{message_id}",
                    token,
                    {"format": "metadata", "metadataHeaders": ["Subject", "From", "Date"]},
                )
            except httpx.HTTPError as e:
                logger.warning(f"Failed to fetch Gmail message {message_id}: {e}")
                continue

            headers = {
                h.get("name"): h.get("value", "")
                for h in details.get("payload", {}).get("headers", [])
            }
            snippet = details.get("snippet", "")
            date = headers.get("Date", "")

            results.append(
                SearchResult(
                    id=message_id,
                    source=self.name,
                    content_type="email",
                    title=headers.get("Subject") or "No Subject",
                    content=snippet,
                    snippet=make_snippet(snippet),
                    similarity=self.base_score,
                    created_at=_parse_email_date(date),
                    url=f"https://mail.google.com/mail/u/0/#inbox/{message_id}",
                    metadata={
                        "from": headers.get("From") or "Unknown",
                        "date": date,
                        "labels": details.get("labelIds", []),
                    },
                )
            )

        return results


class DriveSource(GoogleSource):
    """Google Drive file search by name and full text."""

    name = "drive"
    base_score = 0.75
    API_URL = "https://www.googleapis.com/drive/v3/files"

    async def _search(self, query: str, token: str, limit: int) -> list[SearchResult]:
        escaped = query.replace("\\", "\\\\").replace("'", "\\'")
        listing = await self._get(
            self.API_URL,
            token,
            {
                "q": f"fullText contains '{escaped}' or name contains '{escaped}'",
                "fields": "files(id, name, mimeType, modifiedTime, webViewLink, size, description)",
                "pageSize": limit,
                "orderBy": "modifiedTime desc",
            },
        )

        results = []
        for file in listing.get("files", []):
            text = file.get("description") or file.get("name") or ""
            results.append(
                SearchResult(
                    id=file["id"],
                    source=self.name,
                    content_type="file",
                    title=file.get("name") or "Untitled",
                    content=text,
                    snippet=make_snippet(text),
                    similarity=self.base_score,
                    created_at=_parse_iso(file.get("modifiedTime")),
                    url=file.get("webViewLink"),
                    metadata={
                        "mime_type": file.get("mimeType"),
                        "size": file.get("size"),
                        "modified_time": file.get("modifiedTime"),
                    },
                )
            )
        return results


def _parse_email_date(value: str) -> datetime | None:
    if not value:
        return None
    try:
        return parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None


def _parse_iso(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
