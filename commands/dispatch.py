"""命令派发表"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from constants import Privilege
from errors import NotFound, PermissionDenied, UpstreamFailure, ValidationError

from .context import CommandInvocation, MessageContext

logger = logging.getLogger(__name__)


class OutcomeKind(Enum):
    OK = "ok"
    USAGE = "usage"              # ValidationError
    DENIED = "denied"            # PermissionDenied
    NOT_FOUND = "not_found"
    UNKNOWN_COMMAND = "unknown_command"
    UPSTREAM = "upstream"        # UpstreamFailure
    PARTIAL = "partial"          # 多接收者部分失败
    ERROR = "error"              # 未预期的异常


@dataclass
class CommandOutcome:
    """Standardized result returned by command handlers."""

    kind: OutcomeKind
    messages: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, message: str, **metadata) -> "CommandOutcome":
        return cls(OutcomeKind.OK, [message], metadata)

    @classmethod
    def reply(cls, kind: OutcomeKind, message: str, **metadata) -> "CommandOutcome":
        return cls(kind, [message], metadata)

    async def dispatch(self, ctx: MessageContext) -> int:
        """Send every message back to the originating conversation, returns how many went out."""
        sent = 0
        for message in self.messages:
            if await ctx.send_text(message):
                sent += 1
        return sent


CommandHandler = Callable[[MessageContext, CommandInvocation], Awaitable[CommandOutcome]]


@dataclass
class CommandSpec:
    """命令规格定义"""

    name: str
    handler: CommandHandler
    description: str = ""
    privilege: Privilege = Privilege.NONE
    min_args: int = 0
    usage: str = ""


class CommandTable:
    """命令名 -> 命令规格。启动时构建一次，由引擎持有"""

    def __init__(self) -> None:
        self._commands: Dict[str, CommandSpec] = {}

    def register(self, spec: CommandSpec) -> None:
        name = spec.name.lower()
        if name in self._commands:
            raise ValueError(f"重复的命令名: {name}")
        self._commands[name] = spec
        logger.debug(f"注册命令: {name} ({spec.privilege.name})")

    def get(self, name: str) -> Optional[CommandSpec]:
        return self._commands.get(name.lower())

    def names(self) -> list[str]:
        return list(self._commands)

    def __contains__(self, name: str) -> bool:
        return name.lower() in self._commands

    def __len__(self) -> int:
        return len(self._commands)

    async def dispatch(self, invocation: CommandInvocation, ctx: MessageContext) -> CommandOutcome:
        """查找命令、检查权限与参数、执行 handler，把所有失败转换为一条用户可见回复"""
        spec = self.get(invocation.token)
        if spec is None:
            logger.info(f"未知命令: {invocation.display} (来自 {invocation.invoker})")
            return CommandOutcome.reply(
                OutcomeKind.UNKNOWN_COMMAND,
                f"❌ Unknown command: {invocation.display}\nType /help to see available commands.",
                token=invocation.token,
            )

        try:
            ctx.user = ctx.store.get_user(invocation.invoker)
        except Exception as e:
            logger.error(f"读取用户 {invocation.invoker} 失败: {e}", exc_info=True)
            return CommandOutcome.reply(OutcomeKind.UPSTREAM, "❌ An error occurred while processing your command.")

        try:
            self._check_permission(spec, ctx)
            if len(invocation.args) < spec.min_args:
                raise ValidationError(spec.usage or f"❌ Usage: /{spec.name}")

            ctx.logger.info(f"执行命令: {invocation.display}, 参数: {invocation.args}")
            outcome = await spec.handler(ctx, invocation)
            if not isinstance(outcome, CommandOutcome):
                raise TypeError(f"命令 {spec.name} 返回了非 CommandOutcome 类型: {type(outcome)}")
            return outcome

        except PermissionDenied as e:
            logger.warning(f"{invocation.invoker} 无权执行 {invocation.display}")
            return CommandOutcome.reply(OutcomeKind.DENIED, e.user_message)
        except ValidationError as e:
            return CommandOutcome.reply(OutcomeKind.USAGE, e.user_message)
        except NotFound as e:
            return CommandOutcome.reply(OutcomeKind.NOT_FOUND, e.user_message)
        except UpstreamFailure as e:
            logger.error(f"命令 {invocation.display} 上游调用失败: {e.detail or e.user_message}")
            return CommandOutcome.reply(OutcomeKind.UPSTREAM, e.user_message)
        except Exception as e:
            logger.error(f"执行命令 {invocation.display} 异常: {e}", exc_info=True)
            message = "❌ An error occurred while processing your command."
            if ctx.is_admin:
                message += f"\n{type(e).__name__}: {e}"
            return CommandOutcome.reply(OutcomeKind.ERROR, message)

    @staticmethod
    def _check_permission(spec: CommandSpec, ctx: MessageContext) -> None:
        if spec.privilege == Privilege.ADMIN and not ctx.is_admin:
            raise PermissionDenied()
