# storage/__init__.py
from .models import AutoReplyRule, BotStats, ScheduledMessage, User
from .store import BotStore

__all__ = ["BotStore", "User", "AutoReplyRule", "ScheduledMessage", "BotStats"]
