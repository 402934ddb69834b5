"""SQLite conversation store.

Provides persistent thread and message storage using a SQLite database.
Uses aiosqlite for async access.
"""

from datetime import datetime
from pathlib import Path

import aiosqlite

from .base import ConversationStore
from .models import ChatMessage, ChatThread, Role


def _ts(value: datetime) -> str:
    # Fixed precision keeps lexical order equal to chronological order
    return value.isoformat(timespec="microseconds")


class SQLiteConversationStore(ConversationStore):
    """SQLite-backed conversation store.

    Stores threads and messages in a SQLite database file.
    Supports persistent storage across sessions.
    """

    def __init__(self, path: str | Path = "./ollachat.db"):
        self._db_path = Path(path)
        self._connection: aiosqlite.Connection | None = None

    @property
    def _db(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise RuntimeError("SQLiteConversationStore is not connected")
        return self._connection

    async def connect(self) -> None:
        """Initialize database connection and schema."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = await aiosqlite.connect(self._db_path)
        await self._connection.execute("PRAGMA foreign_keys = ON")
        await self._create_schema()

    async def _create_schema(self) -> None:
        """Create database tables."""
        await self._db.execute("""
            CREATE TABLE IF NOT EXISTS threads (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                selected_model TEXT,
                has_received_first_message INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL
            )
        """)

        await self._db.execute("""
            CREATE TABLE IF NOT EXISTS messages (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                id TEXT NOT NULL UNIQUE,
                thread_id TEXT NOT NULL,
                role TEXT NOT NULL,
                content TEXT NOT NULL,
                created_at TEXT NOT NULL,
                FOREIGN KEY (thread_id) REFERENCES threads(id) ON DELETE CASCADE
            )
        """)

        await self._db.execute("""
            CREATE INDEX IF NOT EXISTS idx_messages_thread
            ON messages(thread_id, created_at)
        """)

        await self._db.commit()

    async def disconnect(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def create_thread(
        self,
        title: str | None = None,
        selected_model: str | None = None
    ) -> ChatThread:
        thread = ChatThread(selected_model=selected_model)
        if title:
            thread.title = title
        await self.save_thread(thread)
        return thread

    async def get_thread(self, thread_id: str) -> ChatThread | None:
        async with self._db.execute(
            """
            SELECT id, title, selected_model, has_received_first_message, created_at
            FROM threads WHERE id = ?
            """,
            (thread_id,)
        ) as cursor:
            row = await cursor.fetchone()
        return self._row_to_thread(row) if row else None

    async def list_threads(self) -> list[ChatThread]:
        async with self._db.execute(
            """
            SELECT id, title, selected_model, has_received_first_message, created_at
            FROM threads ORDER BY created_at DESC
            """
        ) as cursor:
            rows = await cursor.fetchall()
        return [self._row_to_thread(row) for row in rows]

    async def save_thread(self, thread: ChatThread) -> None:
        await self._db.execute("""
            INSERT INTO threads (id, title, selected_model, has_received_first_message, created_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                title = excluded.title,
                selected_model = excluded.selected_model,
                has_received_first_message = excluded.has_received_first_message
        """, (
            thread.id,
            thread.title,
            thread.selected_model,
            int(thread.has_received_first_message),
            _ts(thread.created_at),
        ))
        await self._db.commit()

    async def delete_thread(self, thread_id: str) -> None:
        await self._db.execute("DELETE FROM threads WHERE id = ?", (thread_id,))
        await self._db.commit()

    async def append_message(self, thread_id: str, message: ChatMessage) -> None:
        await self._db.execute("""
            INSERT INTO messages (id, thread_id, role, content, created_at)
            VALUES (?, ?, ?, ?, ?)
        """, (
            message.id,
            thread_id,
            message.role.value,
            message.content,
            _ts(message.created_at),
        ))
        await self._db.commit()

    async def update_message(self, message: ChatMessage) -> None:
        await self._db.execute(
            "UPDATE messages SET content = ? WHERE id = ?",
            (message.content, message.id)
        )
        await self._db.commit()

    async def delete_message(self, message_id: str) -> None:
        await self._db.execute("DELETE FROM messages WHERE id = ?", (message_id,))
        await self._db.commit()

    async def list_messages(self, thread_id: str) -> list[ChatMessage]:
        async with self._db.execute(
            """
            SELECT id, role, content, created_at
            FROM messages
            WHERE thread_id = ?
            ORDER BY created_at ASC, seq ASC
            """,
            (thread_id,)
        ) as cursor:
            rows = await cursor.fetchall()

        return [
            ChatMessage(
                id=message_id,
                role=Role(role),
                content=content,
                created_at=datetime.fromisoformat(created_at),
            )
            for message_id, role, content, created_at in rows
        ]

    @staticmethod
    def _row_to_thread(row: tuple) -> ChatThread:
        thread_id, title, selected_model, has_first, created_at = row
        return ChatThread(
            id=thread_id,
            title=title,
            selected_model=selected_model,
            has_received_first_message=bool(has_first),
            created_at=datetime.fromisoformat(created_at),
        )

    @property
    def backend_type(self) -> str:
        return "sqlite"

    @property
    def db_path(self) -> Path:
        return self._db_path
