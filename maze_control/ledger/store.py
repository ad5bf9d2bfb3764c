"""Token ledger — SQLite-backed balances, action log and recharge log.

Design mirrors the other async stores of the dashboard:
    - Single aiosqlite connection per ledger instance
    - All I/O is async
    - No ORM dependency

Every public operation is one explicit ``BEGIN IMMEDIATE … COMMIT``
transaction.  The connection runs in autocommit mode (``isolation_level=None``)
so the transaction boundaries are exactly the ones written here, and an
``asyncio.Lock`` keeps two coroutines from interleaving statements on the
shared connection.  Any failure rolls the transaction back; SQLite errors
surface as :class:`~maze_control.exceptions.StorageError`.

Schema
------
users      id TEXT PK, tokens_remaining INTEGER, is_admin BOOLEAN, created_at DATETIME
actions    id INTEGER PK AUTOINCREMENT, user_id TEXT FK, trigger_id TEXT,
           timestamp DATETIME, success BOOLEAN (0 until confirmed)
recharges  id INTEGER PK AUTOINCREMENT, user_id TEXT, timestamp DATETIME
"""

from __future__ import annotations

import asyncio
import sqlite3
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator, Callable

import aiosqlite

from maze_control.exceptions import (
    InsufficientTokensError,
    StorageError,
    UserNotFoundError,
)
from maze_control.ledger.models import (
    Action,
    Recharge,
    User,
    format_timestamp,
    parse_timestamp,
)
from maze_control.logging import get_logger

log = get_logger(__name__)

_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS users (
    id                TEXT NOT NULL PRIMARY KEY,
    tokens_remaining  INTEGER NOT NULL,
    is_admin          BOOLEAN NOT NULL DEFAULT 0,
    created_at        DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS actions (
    id          INTEGER NOT NULL PRIMARY KEY AUTOINCREMENT,
    user_id     TEXT NOT NULL,
    trigger_id  TEXT NOT NULL,
    timestamp   DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
    success     BOOLEAN NOT NULL DEFAULT 0,
    FOREIGN KEY (user_id) REFERENCES users(id)
);

CREATE TABLE IF NOT EXISTS recharges (
    id          INTEGER NOT NULL PRIMARY KEY AUTOINCREMENT,
    user_id     TEXT NOT NULL,
    timestamp   DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""

# Created after the migration: the index needs the success column.
_INDEX_SQL = """
CREATE INDEX IF NOT EXISTS idx_actions_timestamp ON actions (timestamp);
CREATE INDEX IF NOT EXISTS idx_actions_trigger ON actions (trigger_id, success);
"""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenLedger:
    """Async SQLite ledger for users, actions and recharges.

    Usage::

        ledger = TokenLedger(Path("./data/dashboard.db"), default_tokens=10)
        await ledger.init()

        user = await ledger.create_user()
        action_id = await ledger.debit_and_record(user.id, "scream")
        await ledger.mark_action_success(action_id)
        await ledger.credit_one(user.id)          # refund after a failure
        await ledger.recharge(user.id)

        await ledger.close()
    """

    def __init__(
        self,
        db_path: Path,
        default_tokens: int = 10,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._db_path = db_path.expanduser()
        self._default_tokens = default_tokens
        self._clock = clock
        self._conn: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()

    @property
    def default_tokens(self) -> int:
        return self._default_tokens

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def init(self) -> None:
        """Open the database, create tables and run the schema migration."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self._conn = await aiosqlite.connect(str(self._db_path), isolation_level=None)
            await self._conn.execute("PRAGMA journal_mode=WAL")
            await self._conn.execute("PRAGMA foreign_keys=ON")
            await self._conn.execute("PRAGMA busy_timeout=5000")
            await self._conn.executescript(_SCHEMA_SQL)
            await self._migrate_success_column()
            await self._conn.executescript(_INDEX_SQL)
            log.info("ledger_ready", db=str(self._db_path), default_tokens=self._default_tokens)
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to initialise ledger: {exc}") from exc

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

    async def _migrate_success_column(self) -> None:
        """Add ``actions.success`` to databases created before it existed."""
        assert self._conn is not None
        async with self._conn.execute("PRAGMA table_info(actions)") as cursor:
            columns = {row[1] for row in await cursor.fetchall()}
        if "success" in columns:
            return
        log.info("ledger_schema_migration", change="add actions.success")
        await self._conn.execute(
            "ALTER TABLE actions ADD COLUMN success BOOLEAN NOT NULL DEFAULT 0"
        )

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Run the block inside one write transaction on the shared connection."""
        async with self._lock:
            if self._conn is None:
                raise StorageError("Ledger is not initialised; call init() first.")
            conn = self._conn
            try:
                await conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as exc:
                raise StorageError(f"Could not begin transaction: {exc}") from exc
            try:
                yield conn
            except BaseException as exc:
                await self._rollback(conn)
                if isinstance(exc, sqlite3.Error):
                    raise StorageError(f"Ledger transaction failed: {exc}") from exc
                raise
            try:
                await conn.execute("COMMIT")
            except sqlite3.Error as exc:
                await self._rollback(conn)
                raise StorageError(f"Could not commit transaction: {exc}") from exc

    async def _rollback(self, conn: aiosqlite.Connection) -> None:
        try:
            await conn.execute("ROLLBACK")
        except sqlite3.Error as exc:
            # No transaction left to roll back (SQLite already aborted it).
            log.warning("ledger_rollback_failed", error=str(exc))

    def _now(self) -> str:
        return format_timestamp(self._clock())

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def create_user(self, is_admin: bool = False, user_id: str | None = None) -> User:
        """Insert a new user holding the default allotment."""
        user_id = user_id or str(uuid.uuid4())
        created_at = self._now()
        async with self._transaction() as conn:
            await conn.execute(
                "INSERT INTO users (id, tokens_remaining, is_admin, created_at) VALUES (?, ?, ?, ?)",
                (user_id, self._default_tokens, int(is_admin), created_at),
            )
        log.info("user_created", user_id=user_id, is_admin=is_admin, tokens=self._default_tokens)
        return User(
            id=user_id,
            tokens_remaining=self._default_tokens,
            is_admin=is_admin,
            created_at=parse_timestamp(created_at),
        )

    async def get_user(self, user_id: str) -> User | None:
        async with self._lock:
            if self._conn is None:
                raise StorageError("Ledger is not initialised; call init() first.")
            try:
                async with self._conn.execute(
                    "SELECT id, tokens_remaining, is_admin, created_at FROM users WHERE id = ?",
                    (user_id,),
                ) as cursor:
                    row = await cursor.fetchone()
            except sqlite3.Error as exc:
                raise StorageError(f"Could not load user: {exc}") from exc
        if row is None:
            return None
        return User(
            id=row[0],
            tokens_remaining=row[1],
            is_admin=bool(row[2]),
            created_at=parse_timestamp(row[3]),
        )

    # ------------------------------------------------------------------
    # Token operations
    # ------------------------------------------------------------------

    async def _debit_in(self, conn: aiosqlite.Connection, user_id: str) -> bool:
        """Spend one token inside an open transaction.  Returns is_admin."""
        async with conn.execute("SELECT is_admin FROM users WHERE id = ?", (user_id,)) as cursor:
            row = await cursor.fetchone()
        if row is None:
            raise UserNotFoundError(user_id)
        if row[0]:
            return True
        cursor = await conn.execute(
            "UPDATE users SET tokens_remaining = tokens_remaining - 1 "
            "WHERE id = ? AND tokens_remaining > 0",
            (user_id,),
        )
        if cursor.rowcount == 0:
            raise InsufficientTokensError(user_id)
        return False

    async def _insert_action_in(
        self, conn: aiosqlite.Connection, user_id: str, trigger_id: str
    ) -> int:
        cursor = await conn.execute(
            "INSERT INTO actions (user_id, trigger_id, timestamp, success) VALUES (?, ?, ?, 0)",
            (user_id, trigger_id, self._now()),
        )
        action_id = cursor.lastrowid
        assert action_id is not None
        return action_id

    async def debit_one(self, user_id: str) -> None:
        """Spend one token.  Admins are exempt and keep their balance.

        Raises:
            InsufficientTokensError: Non-admin user with a zero balance.
            UserNotFoundError:       No such user row.
            StorageError:            SQLite failure (nothing was changed).
        """
        async with self._transaction() as conn:
            await self._debit_in(conn, user_id)

    async def record_action_pending(self, user_id: str, trigger_id: str) -> int:
        """Append an action row with ``success=0`` and return its id."""
        async with self._transaction() as conn:
            return await self._insert_action_in(conn, user_id, trigger_id)

    async def debit_and_record(self, user_id: str, trigger_id: str) -> int:
        """Spend one token and log the pending action in one transaction.

        A crash between the two statements leaves neither behind, so a user
        can never be charged for an activation that is not in the log.
        """
        async with self._transaction() as conn:
            is_admin = await self._debit_in(conn, user_id)
            action_id = await self._insert_action_in(conn, user_id, trigger_id)
        log.info(
            "token_spent",
            user_id=user_id,
            trigger_id=trigger_id,
            action_id=action_id,
            admin_exempt=is_admin,
        )
        return action_id

    async def credit_one(self, user_id: str) -> None:
        """Give one token back.  Only used as a refund; not idempotent."""
        async with self._transaction() as conn:
            cursor = await conn.execute(
                "UPDATE users SET tokens_remaining = tokens_remaining + 1 WHERE id = ?",
                (user_id,),
            )
            if cursor.rowcount == 0:
                raise UserNotFoundError(user_id)
        log.info("token_refunded", user_id=user_id)

    async def mark_action_success(self, action_id: int) -> None:
        async with self._transaction() as conn:
            await conn.execute("UPDATE actions SET success = 1 WHERE id = ?", (action_id,))

    async def recharge(self, user_id: str) -> User:
        """Reset the balance to the default allotment and log the recharge."""
        async with self._transaction() as conn:
            cursor = await conn.execute(
                "UPDATE users SET tokens_remaining = ? WHERE id = ?",
                (self._default_tokens, user_id),
            )
            if cursor.rowcount == 0:
                raise UserNotFoundError(user_id)
            await conn.execute(
                "INSERT INTO recharges (user_id, timestamp) VALUES (?, ?)",
                (user_id, self._now()),
            )
            async with conn.execute(
                "SELECT is_admin, created_at FROM users WHERE id = ?", (user_id,)
            ) as cur:
                row = await cur.fetchone()
        log.info("tokens_recharged", user_id=user_id, tokens=self._default_tokens)
        assert row is not None
        return User(
            id=user_id,
            tokens_remaining=self._default_tokens,
            is_admin=bool(row[0]),
            created_at=parse_timestamp(row[1]),
        )

    # ------------------------------------------------------------------
    # Row access
    # ------------------------------------------------------------------

    async def get_action(self, action_id: int) -> Action | None:
        async with self.reader() as conn:
            async with conn.execute(
                "SELECT id, user_id, trigger_id, timestamp, success FROM actions WHERE id = ?",
                (action_id,),
            ) as cursor:
                row = await cursor.fetchone()
        if row is None:
            return None
        return Action(
            id=row[0],
            user_id=row[1],
            trigger_id=row[2],
            timestamp=parse_timestamp(row[3]),
            success=bool(row[4]),
        )

    async def list_recharges(self, user_id: str) -> list[Recharge]:
        """Recharge log for *user_id*, oldest first."""
        async with self.reader() as conn:
            async with conn.execute(
                "SELECT id, user_id, timestamp FROM recharges WHERE user_id = ? ORDER BY id",
                (user_id,),
            ) as cursor:
                rows = await cursor.fetchall()
        return [
            Recharge(id=rid, user_id=uid, timestamp=parse_timestamp(ts)) for rid, uid, ts in rows
        ]

    # ------------------------------------------------------------------
    # Read access for the statistics aggregator
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def reader(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield the connection for read-only queries."""
        async with self._lock:
            if self._conn is None:
                raise StorageError("Ledger is not initialised; call init() first.")
            try:
                yield self._conn
            except sqlite3.Error as exc:
                raise StorageError(f"Ledger query failed: {exc}") from exc
