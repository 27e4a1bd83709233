# storage/models.py
"""持久化实体"""

import sqlite3
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.strptime(value, TIME_FORMAT)


@dataclass
class User:
    address: str
    name: Optional[str] = None
    is_admin: bool = False
    is_blocked: bool = False
    created_at: Optional[datetime] = None
    last_seen: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "User":
        return cls(
            address=row["address"],
            name=row["name"],
            is_admin=bool(row["is_admin"]),
            is_blocked=bool(row["is_blocked"]),
            created_at=_parse_time(row["created_at"]),
            last_seen=_parse_time(row["last_seen"]),
        )


@dataclass
class AutoReplyRule:
    id: int
    trigger: str
    reply: str
    is_active: bool = True
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "AutoReplyRule":
        return cls(
            id=row["id"],
            trigger=row["trigger_text"],
            reply=row["reply_text"],
            is_active=bool(row["is_active"]),
            created_at=_parse_time(row["created_at"]),
        )


@dataclass
class ScheduledMessage:
    id: int
    conversation_id: str
    message: str
    scheduled_time: datetime
    delivered: bool = False
    created_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "ScheduledMessage":
        return cls(
            id=row["id"],
            conversation_id=row["chat_id"],
            message=row["message"],
            scheduled_time=datetime.fromtimestamp(row["scheduled_ts"]),
            delivered=bool(row["delivered"]),
            created_at=_parse_time(row["created_at"]),
            delivered_at=_parse_time(row["delivered_at"]),
        )


@dataclass
class BotStats:
    total_users: int = 0
    total_messages: int = 0
    auto_replies: int = 0
    scheduled_messages: int = 0  # 未投递的定时消息
