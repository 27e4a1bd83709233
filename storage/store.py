import logging
import os
import sqlite3
from datetime import datetime
from typing import List, Optional

from .models import TIME_FORMAT, AutoReplyRule, BotStats, ScheduledMessage, User

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        address TEXT UNIQUE NOT NULL,
        name TEXT,
        is_admin INTEGER NOT NULL DEFAULT 0,
        is_blocked INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        last_seen TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS messages (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        sender TEXT NOT NULL,
        chat_id TEXT NOT NULL,
        message_id TEXT,
        content TEXT,
        message_type TEXT NOT NULL DEFAULT 'text',
        created_ts REAL NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_messages_created ON messages (created_ts)",
    """
    CREATE TABLE IF NOT EXISTS auto_replies (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        trigger_text TEXT NOT NULL,
        reply_text TEXT NOT NULL,
        is_active INTEGER NOT NULL DEFAULT 1,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS scheduled_messages (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        chat_id TEXT NOT NULL,
        message TEXT NOT NULL,
        scheduled_ts REAL NOT NULL,
        scheduled_at TEXT NOT NULL,
        delivered INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        delivered_at TEXT
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_scheduled_due ON scheduled_messages (delivered, scheduled_ts)",
    """
    CREATE TABLE IF NOT EXISTS bot_settings (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
)


def _now_str() -> str:
    return datetime.now().strftime(TIME_FORMAT)


class BotStore:
    """Durable state for users, auto-reply rules, scheduled messages and settings.

    Every read goes to the database; nothing is cached between calls, so a rule
    or scheduled message written by one handler is visible to the very next
    matcher run or sweep.
    """

    def __init__(self, db_path: str = "data/pipit.db") -> None:
        self.LOG = logging.getLogger("BotStore")
        self.db_path = db_path
        self.conn: Optional[sqlite3.Connection] = None
        self._connect()
        self._prepare_tables()

    def _connect(self) -> None:
        try:
            db_dir = os.path.dirname(self.db_path)
            if db_dir and not os.path.exists(db_dir):
                os.makedirs(db_dir, exist_ok=True)
                self.LOG.info(f"Created database directory: {db_dir}")

            self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self.conn.row_factory = sqlite3.Row
            self.LOG.info(f"BotStore connected to database: {self.db_path}")
        except sqlite3.Error as exc:
            self.LOG.error(f"Failed to connect database: {exc}")
            raise

    def _prepare_tables(self) -> None:
        assert self.conn is not None
        try:
            for statement in _SCHEMA:
                self.conn.execute(statement)
            self.conn.commit()
        except sqlite3.Error as exc:
            self.LOG.error(f"Failed to prepare tables: {exc}")
            raise

    def _write(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        assert self.conn is not None
        try:
            cursor = self.conn.execute(sql, params)
            self.conn.commit()
            return cursor
        except sqlite3.Error:
            self.conn.rollback()
            raise

    def close(self) -> None:
        if self.conn:
            try:
                self.conn.commit()
                self.conn.close()
                self.LOG.info("Database connection closed")
            except sqlite3.Error as exc:
                self.LOG.error(f"Error while closing database: {exc}")
            finally:
                self.conn = None

    # -- users ---------------------------------------------------------------

    def get_user(self, address: str) -> Optional[User]:
        assert self.conn is not None
        row = self.conn.execute("SELECT * FROM users WHERE address = ?", (address,)).fetchone()
        return User.from_row(row) if row else None

    def upsert_user(self, address: str, name: Optional[str] = None, is_admin: Optional[bool] = None) -> User:
        """Create the user, or update name / admin flag when given. Omitted fields keep their value."""
        if not address:
            raise ValueError("address must not be empty")
        now = _now_str()
        self._write(
            """
            INSERT INTO users (address, name, is_admin, created_at, last_seen)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(address) DO UPDATE SET
                name = COALESCE(excluded.name, users.name),
                is_admin = CASE WHEN ? IS NULL THEN users.is_admin ELSE excluded.is_admin END
            """,
            (address, name, int(bool(is_admin)), now, now, is_admin),
        )
        return self.get_user(address)

    def touch_last_seen(self, address: str) -> None:
        self._write("UPDATE users SET last_seen = ? WHERE address = ?", (_now_str(), address))

    def set_blocked(self, address: str, blocked: bool) -> bool:
        cursor = self._write("UPDATE users SET is_blocked = ? WHERE address = ?", (int(blocked), address))
        if cursor.rowcount:
            self.LOG.info(f"User {address} blocked={blocked}")
        return bool(cursor.rowcount)

    # -- message log ---------------------------------------------------------

    def log_message(
        self,
        sender: str,
        chat_id: str,
        message_id: str,
        content: str,
        message_type: str = "text",
        when: Optional[datetime] = None,
    ) -> None:
        when = when or datetime.now()
        self._write(
            """
            INSERT INTO messages (sender, chat_id, message_id, content, message_type, created_ts, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (sender, chat_id, message_id, content, message_type, when.timestamp(), when.strftime(TIME_FORMAT)),
        )

    def prune_messages(self, before: datetime) -> int:
        cursor = self._write("DELETE FROM messages WHERE created_ts < ?", (before.timestamp(),))
        return cursor.rowcount

    # -- auto replies --------------------------------------------------------

    def list_active_auto_replies(self) -> List[AutoReplyRule]:
        assert self.conn is not None
        rows = self.conn.execute(
            "SELECT * FROM auto_replies WHERE is_active = 1 ORDER BY id ASC"
        ).fetchall()
        return [AutoReplyRule.from_row(row) for row in rows]

    def add_auto_reply(self, trigger: str, reply: str) -> int:
        if not trigger or not reply:
            raise ValueError("trigger and reply must not be empty")
        cursor = self._write(
            "INSERT INTO auto_replies (trigger_text, reply_text, created_at) VALUES (?, ?, ?)",
            (trigger, reply, _now_str()),
        )
        self.LOG.info(f"Auto-reply #{cursor.lastrowid} added: {trigger!r} -> {reply!r}")
        return cursor.lastrowid

    def deactivate_auto_reply(self, rule_id: int) -> bool:
        cursor = self._write(
            "UPDATE auto_replies SET is_active = 0 WHERE id = ? AND is_active = 1", (rule_id,)
        )
        return bool(cursor.rowcount)

    # -- scheduled messages --------------------------------------------------

    def add_scheduled_message(self, conversation_id: str, text: str, when: datetime) -> int:
        if not conversation_id or not text:
            raise ValueError("conversation_id and text must not be empty")
        cursor = self._write(
            """
            INSERT INTO scheduled_messages (chat_id, message, scheduled_ts, scheduled_at, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (conversation_id, text, when.timestamp(), when.strftime(TIME_FORMAT), _now_str()),
        )
        self.LOG.info(f"Scheduled message #{cursor.lastrowid} for {conversation_id} at {when}")
        return cursor.lastrowid

    def list_due_pending(self, now: datetime) -> List[ScheduledMessage]:
        assert self.conn is not None
        rows = self.conn.execute(
            """
            SELECT * FROM scheduled_messages
            WHERE delivered = 0 AND scheduled_ts <= ?
            ORDER BY scheduled_ts ASC, id ASC
            """,
            (now.timestamp(),),
        ).fetchall()
        return [ScheduledMessage.from_row(row) for row in rows]

    def mark_delivered(self, message_id: int) -> bool:
        """Flip delivered 0 -> 1. Returns False when the row was already delivered (or is missing)."""
        cursor = self._write(
            "UPDATE scheduled_messages SET delivered = 1, delivered_at = ? WHERE id = ? AND delivered = 0",
            (_now_str(), message_id),
        )
        return cursor.rowcount == 1

    def get_scheduled_message(self, message_id: int) -> Optional[ScheduledMessage]:
        assert self.conn is not None
        row = self.conn.execute("SELECT * FROM scheduled_messages WHERE id = ?", (message_id,)).fetchone()
        return ScheduledMessage.from_row(row) if row else None

    # -- settings ------------------------------------------------------------

    def get_setting(self, key: str, default: Optional[str] = None) -> Optional[str]:
        assert self.conn is not None
        row = self.conn.execute("SELECT value FROM bot_settings WHERE key = ?", (key,)).fetchone()
        return row["value"] if row else default

    def set_setting(self, key: str, value: str) -> None:
        self._write(
            """
            INSERT INTO bot_settings (key, value, updated_at) VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
            """,
            (key, str(value), _now_str()),
        )

    # -- statistics ----------------------------------------------------------

    def get_stats(self) -> BotStats:
        assert self.conn is not None

        def count(sql: str) -> int:
            return self.conn.execute(sql).fetchone()[0]

        return BotStats(
            total_users=count("SELECT COUNT(*) FROM users"),
            total_messages=count("SELECT COUNT(*) FROM messages"),
            auto_replies=count("SELECT COUNT(*) FROM auto_replies WHERE is_active = 1"),
            scheduled_messages=count("SELECT COUNT(*) FROM scheduled_messages WHERE delivered = 0"),
        )
