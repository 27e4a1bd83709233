# channel/base.py
"""Channel 抽象基类"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Any


class MessageType(Enum):
    """消息内容类型"""
    TEXT = "text"
    IMAGE = "image"
    DOCUMENT = "document"
    AUDIO = "audio"
    VIDEO = "video"
    STICKER = "sticker"
    LOCATION = "location"
    UNKNOWN = "unknown"

    @property
    def is_typed_content(self) -> bool:
        return self not in (MessageType.TEXT, MessageType.UNKNOWN)


@dataclass
class MediaPayload:
    """媒体附件"""
    data: bytes
    mimetype: str = "application/octet-stream"

    @property
    def extension(self) -> str:
        # "image/jpeg" -> "jpeg"
        subtype = self.mimetype.split("/", 1)[-1]
        return subtype.split(";", 1)[0].strip() or "bin"


@dataclass
class Message:
    """统一消息格式"""
    id: str                          # 消息 ID
    sender: str                      # 发送者地址
    content: str                     # 消息内容
    type: MessageType = MessageType.TEXT
    room_id: str | None = None       # 群聊 ID（私聊为 None）
    is_group: bool = False           # 是否群聊
    sender_name: str = ""            # 发送者昵称
    timestamp: datetime = field(default_factory=datetime.now)
    media: MediaPayload | None = None
    location: tuple[float, float] | None = None  # (纬度, 经度)
    raw: Any = None                  # 原始消息对象（平台特定）
    extra: dict = field(default_factory=dict)  # 扩展字段

    def get_chat_id(self) -> str:
        """获取会话 ID（群聊返回群 ID，私聊返回发送者 ID）"""
        return self.room_id if self.is_group and self.room_id else self.sender


class Channel(ABC):
    """Channel 抽象基类 - 定义消息收发接口"""

    @property
    @abstractmethod
    def name(self) -> str:
        """Channel 名称"""
        ...

    @property
    @abstractmethod
    def bot_id(self) -> str:
        """机器人自身 ID"""
        ...

    @property
    def is_ready(self) -> bool:
        """是否已连接，可以收发消息"""
        return True

    @abstractmethod
    async def send_text(self, content: str, receiver: str) -> bool:
        """发送文本消息

        Args:
            content: 消息内容
            receiver: 接收者 ID（用户 ID 或群 ID）

        Returns:
            是否发送成功（发送失败也可能直接抛出异常）
        """
        ...

    @abstractmethod
    async def list_conversations(self) -> list[str]:
        """列出所有已知会话 ID（广播用）"""
        ...

    @abstractmethod
    async def start(self, on_message: Callable[[Message], Any]) -> None:
        """启动消息接收循环

        Args:
            on_message: 消息处理回调（可以是 async 函数）
        """
        ...

    @abstractmethod
    async def stop(self) -> None:
        """停止消息接收"""
        ...

    async def download_media(self, msg: Message) -> MediaPayload | None:
        """下载消息附带的媒体。默认直接返回消息中已携带的数据，平台实现可重写"""
        return msg.media
