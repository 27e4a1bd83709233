from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from storage import AutoReplyRule, BotStore


@dataclass
class AutoReplyDecision:
    rule: Optional[AutoReplyRule] = None

    @property
    def matched(self) -> bool:
        return self.rule is not None

    @property
    def reply(self) -> Optional[str]:
        return self.rule.reply if self.rule else None


class AutoReplyMatcher:
    """Keyword-triggered replies backed by the active auto-reply rules."""

    def __init__(self, store: BotStore, logger: Optional[logging.Logger] = None) -> None:
        self.store = store
        self.logger = logger or logging.getLogger(__name__)

    def evaluate(self, text: str) -> AutoReplyDecision:
        # 每次都重新读取规则，新增规则立即生效
        lowered = (text or "").lower()
        if not lowered:
            return AutoReplyDecision()

        for rule in self.store.list_active_auto_replies():
            if rule.trigger and rule.trigger.lower() in lowered:
                self.logger.debug(f"命中自动回复规则 #{rule.id}: {rule.trigger!r}")
                return AutoReplyDecision(rule)
        return AutoReplyDecision()

    def match(self, text: str) -> Optional[str]:
        return self.evaluate(text).reply
