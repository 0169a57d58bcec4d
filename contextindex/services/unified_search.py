"""
Unified search across content sources.

Each requested source is searched concurrently. Token-gated sources get
an access token from the TokenProvider first; a source without a usable
token is skipped and reported with a zero count. Results from all sources
are filtered, ranked by similarity and capped at ``limit`` per requested
source.
"""

import asyncio
from datetime import datetime, timezone

from contextindex.core.auth.base import TokenProvider
from contextindex.core.sources.base import SourceAdapter
from contextindex.models.search import SearchFilters, SearchResult, UnifiedSearchResponse
from contextindex.utils.exceptions import EmptyInputError
from contextindex.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_SOURCES = ("local", "gmail", "drive")


def to_utc(value: datetime) -> datetime:
    # Naive datetimes are taken to be UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def apply_filters(results: list[SearchResult], filters: SearchFilters) -> list[SearchResult]:
    """Drop results outside the similarity floor, date range or content types."""
    start = to_utc(filters.start_date) if filters.start_date else None
    end = to_utc(filters.end_date) if filters.end_date else None
    content_types = set(filters.content_types or [])

    kept = []
    for result in results:
        if filters.min_similarity is not None and result.similarity < filters.min_similarity:
            continue
        if content_types and result.content_type not in content_types:
            continue
        if start or end:
            if result.created_at is None:
                continue
            created = to_utc(result.created_at)
            if start and created < start:
                continue
            if end and created > end:
                continue
        kept.append(result)
    return kept


class UnifiedSearchAggregator:
    """
    Fans a query out to named source adapters and merges the results.
    """

    def __init__(
        self,
        adapters: dict[str, SourceAdapter] | list[SourceAdapter],
        token_provider: TokenProvider | None = None,
        default_sources: list[str] | None = None,
    ):
        """
        Initialize aggregator.

        Args:
            adapters: Source adapters, keyed by name (or a list, keyed by adapter.name)
            token_provider: Supplies access tokens for token-gated adapters
            default_sources: Sources searched when a request names none
        """
        if isinstance(adapters, dict):
            self.adapters = dict(adapters)
        else:
            self.adapters = {adapter.name: adapter for adapter in adapters}
        self.token_provider = token_provider
        self.default_sources = list(default_sources or DEFAULT_SOURCES)

    async def _token_for(self, adapter: SourceAdapter, user_id: str) -> str | None:
        if self.token_provider is None:
            return None
        try:
            return await self.token_provider.get_valid_access_token(user_id)
        except Exception as e:
            logger.bind(source=adapter.name, user_id=user_id, error=str(e)).warning(
                f"Token lookup failed for {adapter.name}: {e}"
            )
            return None

    async def _search_source(
        self, name: str, query: str, user_id: str, filters: SearchFilters
    ) -> list[SearchResult]:
        adapter = self.adapters.get(name)
        if adapter is None:
            logger.bind(source=name).warning(f"Unknown search source: {name}")
            return []

        token = None
        if adapter.requires_token:
            token = await self._token_for(adapter, user_id)
            if token is None:
                logger.bind(source=name, user_id=user_id).info(
                    f"Skipping {name}: no valid access token"
                )
                return []

        return await adapter.search(
            query, token, user_id, filters.limit, project_id=filters.project_id
        )

    async def search(
        self,
        query: str,
        user_id: str,
        sources: list[str] | None = None,
        filters: SearchFilters | None = None,
    ) -> UnifiedSearchResponse:
        """
        Search the requested sources and merge the results.

        The breakdown is keyed by the requested source names and counts the
        results each one contributed to the final list.

        Raises:
            EmptyInputError: If the query is blank
        """
        if not query or not query.strip():
            raise EmptyInputError("Search query cannot be empty")

        filters = filters or SearchFilters()
        # Preserve request order, drop duplicates
        sources = list(dict.fromkeys(sources or self.default_sources))

        outcomes = await asyncio.gather(
            *[self._search_source(name, query, user_id, filters) for name in sources],
            return_exceptions=True,
        )

        tagged: list[tuple[str, SearchResult]] = []
        for name, outcome in zip(sources, outcomes):
            if isinstance(outcome, BaseException):
                logger.bind(source=name, user_id=user_id, error=str(outcome)).error(
                    f"{name} search failed: {outcome}"
                )
                continue
            tagged.extend((name, result) for result in apply_filters(outcome, filters))

        tagged.sort(key=lambda pair: pair[1].similarity, reverse=True)
        tagged = tagged[: filters.limit * len(sources)]

        breakdown = {name: 0 for name in sources}
        for name, _ in tagged:
            breakdown[name] += 1
        results = [result for _, result in tagged]

        logger.bind(user_id=user_id, breakdown=breakdown).debug(
            f"Unified search returned {len(results)} results"
        )

        return UnifiedSearchResponse(
            query=query,
            sources=sources,
            results=results,
            breakdown=breakdown,
            total_results=len(results),
        )
