# commands/classifier.py
"""入站消息分类

优先级固定为: 命令 > 类型化内容 > 纯文本。
命令永远优先，即使消息正文同时包含自动回复触发词。
"""

from __future__ import annotations

from dataclasses import dataclass, field

from channel import Message, MessageType
from constants import COMMAND_PREFIXES, Category


@dataclass
class Classification:
    category: Category
    command: str = ""                       # 小写、去前缀
    args: list[str] = field(default_factory=list)
    prefix: str = ""


def parse_command(text: str) -> tuple[str, str, list[str]] | None:
    """解析命令文本，返回 (前缀, 命令名, 参数列表)，不是命令返回 None"""
    tokens = (text or "").split()
    if not tokens:
        return None
    head = tokens[0]
    if head[0] not in COMMAND_PREFIXES:
        return None
    return head[0], head[1:].lower(), tokens[1:]


def classify(msg: Message) -> Classification:
    parsed = parse_command(msg.content)
    if parsed:
        prefix, command, args = parsed
        return Classification(Category.COMMAND, command=command, args=args, prefix=prefix)

    if msg.type.is_typed_content:
        return Classification(Category.TYPED_CONTENT)

    return Classification(Category.PLAIN_TEXT)
