# commands/context.py
"""消息上下文"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

from channel import Channel, Message
from configuration import Config
from storage import BotStore, User

if TYPE_CHECKING:
    from services import ContentServices


@dataclass
class CommandInvocation:
    """一次命令调用（不持久化，生命周期为一次分类-派发）"""
    token: str                     # 小写、去掉前缀的命令名
    args: list[str] = field(default_factory=list)
    invoker: str = ""              # 调用者地址
    conversation: str = ""         # 来源会话
    prefix: str = "/"

    @property
    def args_str(self) -> str:
        """所有参数以单个空格重新拼接"""
        return " ".join(self.args)

    @property
    def display(self) -> str:
        return f"{self.prefix}{self.token}"


@dataclass
class MessageContext:
    """一条入站消息的处理上下文"""
    msg: Message
    channel: Channel
    store: BotStore
    config: Config
    logger: logging.Logger
    services: Optional["ContentServices"] = None
    robot: Any = None              # PipitBot 实例，便于 handler 访问运行状态
    user: Optional[User] = None    # 由派发器从 Store 解析
    text: str = ""

    def __post_init__(self):
        if not self.text:
            self.text = (self.msg.content or "").strip()

    @property
    def sender_name(self) -> str:
        if self.user and self.user.name:
            return self.user.name
        return self.msg.sender_name or "there"

    @property
    def is_admin(self) -> bool:
        return bool(self.user and self.user.is_admin)

    def get_receiver(self) -> str:
        return self.msg.get_chat_id()

    async def send_text(self, content: str) -> bool:
        """回复到来源会话。发送失败只记录日志，不向上抛出"""
        receiver = self.get_receiver()
        try:
            ok = await self.channel.send_text(content, receiver)
        except Exception as e:
            self.logger.error(f"回复 {receiver} 失败: {e}", exc_info=True)
            return False
        if ok is False:
            self.logger.warning(f"回复 {receiver} 失败: Channel 返回 False")
            return False
        return True
