"""
SQLite-backed conversation summary store.

Summaries live in a ``conversation_summaries`` table keyed by conversation ID.
"""

from datetime import datetime
from pathlib import Path

import aiosqlite

from contextindex.core.summaries.base import SummaryStore
from contextindex.models.conversation import ConversationSummary
from contextindex.utils.exceptions import PersistenceError
from contextindex.utils.logger import get_logger

logger = get_logger(__name__)


class SQLiteSummaryStore(SummaryStore):
    """
    Conversation summaries in SQLite.

    Usage:
        store = SQLiteSummaryStore("data/summaries.db")
        await store.initialize()
        summary = await store.get_summary("conv-1")
    """

    def __init__(self, db_path: str = "data/summaries.db"):
        """
        Initialize summary store.

        Args:
            db_path: SQLite database path (":memory:" for tests)
        """
        self.db_path = db_path
        self.connection: aiosqlite.Connection | None = None

        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    async def connect(self) -> None:
        """Open the SQLite connection."""
        if self.connection is None:
            self.connection = await aiosqlite.connect(self.db_path)
            self.connection.row_factory = aiosqlite.Row

    async def initialize(self) -> None:
        """Create the summary table."""
        try:
            await self.connect()
            await self.connection.execute(
                """
                CREATE TABLE IF NOT EXISTS conversation_summaries (
                    conversation_id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    summary TEXT NOT NULL DEFAULT '',
                    message_count INTEGER NOT NULL DEFAULT 0,
                    last_updated TEXT
                )
                """
            )
            await self.connection.commit()
        except aiosqlite.Error as e:
            logger.bind(db_path=self.db_path, error=str(e)).error(
                f"Failed to initialize summary store: {e}"
            )
            raise PersistenceError(f"Failed to initialize summary store: {e}") from e

    async def get_summary(self, conversation_id: str) -> ConversationSummary | None:
        try:
            await self.connect()
            async with self.connection.execute(
                "SELECT * FROM conversation_summaries WHERE conversation_id = ?",
                (conversation_id,),
            ) as cursor:
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise PersistenceError(
                f"Failed to read summary: {e}", {"conversation_id": conversation_id}
            ) from e

        if row is None:
            return None
        data = dict(row)
        if data["last_updated"]:
            data["last_updated"] = datetime.fromisoformat(data["last_updated"])
        return ConversationSummary(**data)

    async def save_summary(self, summary: ConversationSummary) -> None:
        last_updated = summary.last_updated.isoformat() if summary.last_updated else None
        try:
            await self.connect()
            await self.connection.execute(
                """
                INSERT INTO conversation_summaries
                    (conversation_id, user_id, summary, message_count, last_updated)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(conversation_id) DO UPDATE SET
                    summary = excluded.summary,
                    message_count = excluded.message_count,
                    last_updated = excluded.last_updated
                """,
                (
                    summary.conversation_id,
                    summary.user_id,
                    summary.summary,
                    summary.message_count,
                    last_updated,
                ),
            )
            await self.connection.commit()
        except aiosqlite.Error as e:
            raise PersistenceError(
                f"Failed to write summary: {e}", {"conversation_id": summary.conversation_id}
            ) from e

    async def close(self) -> None:
        if self.connection is not None:
            await self.connection.close()
            self.connection = None
