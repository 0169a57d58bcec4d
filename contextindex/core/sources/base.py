"""
Content source adapter interface.
"""

from abc import ABC, abstractmethod

from contextindex.models.search import SearchResult


class SourceAdapter(ABC):
    """
    A searchable content source.

    Adapters must not raise when they cannot authenticate or reach their
    backend; they return an empty list instead.
    """

    #: Name used in requests and in the per-source breakdown
    name: str = ""
    #: Whether search() needs an access token from the TokenProvider
    requires_token: bool = False

    @abstractmethod
    async def search(
        self,
        query: str,
        token: str | None,
        user_id: str,
        limit: int = 10,
        project_id: str | None = None,
    ) -> list[SearchResult]:
        """
        Search the source.

        Args:
            query: Search text
            token: Access token (None for sources that don't need one)
            user_id: Requesting user
            limit: Maximum results
            project_id: Project scope; sources without projects ignore it

        Returns:
            Results with similarity on the source's own scale
        """
        pass

    async def close(self) -> None:
        """Release any held resources."""
        pass


def make_snippet(text: str, length: int = 200) -> str:
    text = " ".join((text or "").split())
    return text if len(text) <= length else text[:length] + "..."
