# bot.py
"""PipitBot - 基于 Channel 抽象的消息分拣与定时消息机器人"""

import logging
import time
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from channel import Channel, Message
from commands import CommandInvocation, CommandTable, MessageContext, build_command_table, classify
from commands.auto_reply import AutoReplyMatcher
from commands.content import MediaSink, handle_typed_content
from commands.fallback import fallback_reply
from configuration import Config
from constants import Category
from scheduler import Maintenance, Scheduler
from services import ContentServices
from storage import BotStore

__version__ = "1.0.0"

logger = logging.getLogger("PipitBot")


class Route(Enum):
    """一条入站消息最终走的处理路径"""
    IGNORED = "ignored"
    BLOCKED = "blocked"
    UNVERIFIED = "unverified"     # 无法读取用户状态，不回复
    COMMAND = "command"
    TYPED_CONTENT = "typed_content"
    AUTO_REPLY = "auto_reply"
    FALLBACK = "fallback"
    NO_REPLY = "no_reply"


class PipitBot:
    """入站消息: 记录用户 -> 分类 -> 命令 / 非文本内容 / 自动回复 / 兜底回复

    定时任务 (定时消息投递、清理、周报、健康检查) 由 Scheduler 管理。
    """

    def __init__(
        self,
        channel: Channel,
        config: Config,
        store: Optional[BotStore] = None,
        services: Optional[ContentServices] = None,
        command_table: Optional[CommandTable] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.channel = channel
        self.config = config
        self.LOG = logger
        self.bot_id = channel.bot_id
        self.started_at = time.monotonic()

        self.store = store or BotStore(config.STORAGE.db_path)
        self.services = services or ContentServices(config.APIS)
        self.commands = command_table or build_command_table()
        self.auto_replies = AutoReplyMatcher(self.store, self.LOG)
        self.media_sink = MediaSink(config.STORAGE.uploads_dir)
        self.LOG.info(f"命令表已加载: {', '.join(self.commands.names())}")

        self.scheduler = Scheduler(self.store, channel, config, clock=clock)
        self.maintenance = Maintenance(self.store, channel, config, clock=clock, started_at=self.started_at)
        self._setup_jobs()

        self._bootstrap_admins()

    def _setup_jobs(self) -> None:
        settings = self.config.SCHEDULER
        if self.config.FEATURES.scheduled_messages:
            # 启动时立即跑一次，补发停机期间到期的消息
            self.scheduler.add_job("scheduled_messages", settings.sweep_interval,
                                   self.scheduler.sweep_scheduled, run_immediately=True)
        else:
            self.LOG.info("定时消息功能已关闭，不启动投递任务")
        self.scheduler.add_job("cleanup", settings.cleanup_interval, self.maintenance.cleanup)
        self.scheduler.add_job("digest", settings.digest_interval, self.maintenance.send_digest)
        self.scheduler.add_job("health", settings.health_interval, self.maintenance.check_health)

    def _bootstrap_admins(self) -> None:
        for address in self.config.BOT.admin_addresses:
            try:
                self.store.upsert_user(address, is_admin=True)
                self.LOG.info(f"管理员: {address}")
            except Exception as e:
                self.LOG.error(f"初始化管理员 {address} 失败: {e}", exc_info=True)

    async def start(self) -> None:
        """启动机器人，阻塞直到 Channel 停止"""
        self.LOG.info(f"{self.config.BOT.name} v{__version__} 启动中...")
        self.scheduler.start()
        await self.channel.start(self._on_message)

    async def stop(self) -> None:
        """停止机器人，先停定时任务再停 Channel"""
        await self.scheduler.stop()
        await self.channel.stop()
        await self.services.close()
        self.LOG.info(f"{self.config.BOT.name} 已停止")

    def cleanup(self) -> None:
        """清理资源"""
        self.LOG.info("正在清理 PipitBot 资源...")
        self.store.close()
        self.LOG.info("PipitBot 资源清理完成")

    async def _on_message(self, msg: Message) -> None:
        """消息处理入口，单条消息的异常不会影响后续消息"""
        try:
            await self.process(msg)
        except Exception as e:
            self.LOG.error(f"处理消息时出错: {e}", exc_info=True)

    async def process(self, msg: Message) -> Route:
        # 跳过自己发送的消息
        if msg.sender == self.bot_id:
            return Route.IGNORED

        self._record(msg)
        try:
            user = self.store.get_user(msg.sender)
        except Exception as e:
            self.LOG.error(f"读取用户 {msg.sender} 失败，丢弃消息: {e}", exc_info=True)
            return Route.UNVERIFIED
        if user and user.is_blocked:
            self.LOG.info(f"忽略已屏蔽用户 {msg.sender} 的消息")
            return Route.BLOCKED

        ctx = MessageContext(
            msg=msg,
            channel=self.channel,
            store=self.store,
            config=self.config,
            logger=self.LOG,
            services=self.services,
            robot=self,
            user=user,
        )

        classification = classify(msg)
        if classification.category == Category.COMMAND:
            invocation = CommandInvocation(
                token=classification.command,
                args=classification.args,
                invoker=msg.sender,
                conversation=msg.get_chat_id(),
                prefix=classification.prefix,
            )
            outcome = await self.commands.dispatch(invocation, ctx)
            await outcome.dispatch(ctx)
            return Route.COMMAND

        if classification.category == Category.TYPED_CONTENT:
            handled = await handle_typed_content(ctx, self.media_sink)
            return Route.TYPED_CONTENT if handled else Route.IGNORED

        return await self._handle_plain_text(ctx)

    async def _handle_plain_text(self, ctx: MessageContext) -> Route:
        if not ctx.text:
            return Route.NO_REPLY

        if self.config.FEATURES.auto_reply:
            try:
                reply = self.auto_replies.match(ctx.text)
            except Exception as e:
                self.LOG.error(f"匹配自动回复失败: {e}", exc_info=True)
                reply = None
            if reply:
                await ctx.send_text(reply)
                return Route.AUTO_REPLY

        reply = fallback_reply(ctx)
        if reply:
            await ctx.send_text(reply)
            return Route.FALLBACK
        return Route.NO_REPLY

    def _record(self, msg: Message) -> None:
        """记录发送者与消息，Store 出错时只记录日志"""
        try:
            self.store.upsert_user(msg.sender, name=msg.sender_name or None)
            self.store.touch_last_seen(msg.sender)
            self.store.log_message(
                sender=msg.sender,
                chat_id=msg.get_chat_id(),
                message_id=msg.id,
                content=msg.content or "",
                message_type=msg.type.value,
                when=msg.timestamp,
            )
        except Exception as e:
            self.LOG.error(f"记录消息失败 ({msg.sender}): {e}", exc_info=True)
