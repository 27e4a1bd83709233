"""Plain-text fallback responders, used when no auto-reply rule matched."""
from __future__ import annotations

from typing import Callable, Optional

from .context import MessageContext
from .help_text import build_command_summary

Responder = Callable[[MessageContext], str]

HELP_KEYWORDS = ("help", "what can you do")
GREETING_KEYWORDS = ("hello", "hi", "hey")


def _help_reply(ctx: MessageContext) -> str:
    return build_command_summary()


def _greeting_reply(ctx: MessageContext) -> str:
    return f"👋 Hi {ctx.sender_name}! How can I help you today? Type /help to see available commands."


# 顺序即优先级
RESPONDERS: list[tuple[tuple[str, ...], Responder]] = [
    (HELP_KEYWORDS, _help_reply),
    (GREETING_KEYWORDS, _greeting_reply),
]


def fallback_reply(ctx: MessageContext) -> Optional[str]:
    text = (ctx.text or "").lower()
    if not text:
        return None
    for keywords, responder in RESPONDERS:
        if any(keyword in text for keyword in keywords):
            return responder(ctx)
    return None
