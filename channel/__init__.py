# channel/__init__.py
from .base import Channel, Message, MessageType, MediaPayload
from .local import LocalChannel

__all__ = ["Channel", "Message", "MessageType", "MediaPayload", "LocalChannel"]
