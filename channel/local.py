# channel/local.py
"""本地命令行 Channel - 用于调试"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Any

from .base import Channel, Message, MessageType

logger = logging.getLogger(__name__)


class LocalChannel(Channel):
    """本地命令行 Channel - 在没有真实聊天平台的环境下调试"""

    def __init__(self, bot_name: str = "Pipit", user_id: str = "local_user", user_name: str = "User"):
        self._bot_id = "local_bot"
        self._bot_name = bot_name
        self._user_id = user_id
        self._user_name = user_name
        self._running = False
        self._message_queue: asyncio.Queue[Message] = asyncio.Queue()
        self._conversations: list[str] = [user_id]
        self._msg_counter = 0

    @property
    def name(self) -> str:
        return "local"

    @property
    def bot_id(self) -> str:
        return self._bot_id

    @property
    def is_ready(self) -> bool:
        return self._running

    async def send_text(self, content: str, receiver: str) -> bool:
        # 在命令行打印机器人回复
        prefix = "" if receiver == self._user_id else f"(-> {receiver}) "
        print(f"\n\033[36m[{self._bot_name}]\033[0m {prefix}{content}\n")
        return True

    async def list_conversations(self) -> list[str]:
        return list(self._conversations)

    def add_conversation(self, conversation_id: str) -> None:
        """添加一个会话（用于模拟广播）"""
        if conversation_id not in self._conversations:
            self._conversations.append(conversation_id)

    async def start(self, on_message: Callable[[Message], Any]) -> None:
        """启动命令行交互循环"""
        self._running = True
        print(f"\n{'='*50}")
        print(f"  {self._bot_name} Local Channel 已启动")
        print(f"  输入消息与机器人对话，输入 'quit' 退出")
        print(f"{'='*50}\n")

        input_task = asyncio.create_task(self._read_input_loop())

        while self._running:
            try:
                msg = await asyncio.wait_for(self._message_queue.get(), timeout=0.5)
                if asyncio.iscoroutinefunction(on_message):
                    await on_message(msg)
                else:
                    on_message(msg)
            except asyncio.TimeoutError:
                continue
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"处理消息时出错: {e}", exc_info=True)

        input_task.cancel()
        try:
            await input_task
        except asyncio.CancelledError:
            pass

    async def _read_input_loop(self) -> None:
        """异步读取命令行输入"""
        loop = asyncio.get_running_loop()
        while self._running:
            try:
                # 在线程中读取输入（避免阻塞事件循环）
                line = await loop.run_in_executor(None, self._read_line)
                if line is None:
                    continue

                line = line.strip()
                if not line:
                    continue

                if line.lower() in ("quit", "exit", "q"):
                    print("\nBye!")
                    self._running = False
                    break

                await self._message_queue.put(self.simulate_message(line))

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"读取输入时出错: {e}")

    def _read_line(self) -> str | None:
        """同步读取一行输入"""
        try:
            print(f"\033[33m[{self._user_name}]\033[0m ", end="", flush=True)
            return input()
        except EOFError:
            return None
        except KeyboardInterrupt:
            return "quit"

    async def stop(self) -> None:
        self._running = False

    def simulate_message(
        self,
        content: str,
        sender: str | None = None,
        room_id: str | None = None,
        msg_type: MessageType = MessageType.TEXT,
    ) -> Message:
        """构造一条本地消息（也用于测试）"""
        self._msg_counter += 1
        sender = sender or self._user_id
        msg = Message(
            id=f"local_{self._msg_counter}",
            sender=sender,
            content=content,
            type=msg_type,
            room_id=room_id,
            is_group=room_id is not None,
            sender_name=self._user_name if sender == self._user_id else sender,
            timestamp=datetime.now(),
        )
        self.add_conversation(msg.get_chat_id())
        return msg
