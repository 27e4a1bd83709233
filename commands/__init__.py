# commands package
"""
消息处理组件包

- classifier: 入站消息分类（命令 / 非文本内容 / 普通文本）
- context: 消息上下文与命令调用
- dispatch: 命令派发表与权限检查
- handlers: 内置命令处理函数
- auto_reply: 关键词自动回复
- content: 非文本消息处理
- fallback: 普通文本兜底回复
"""

from .classifier import Classification, classify, parse_command
from .context import CommandInvocation, MessageContext
from .dispatch import CommandOutcome, CommandSpec, CommandTable, OutcomeKind
from .handlers import build_command_table

__all__ = [
    "Classification",
    "classify",
    "parse_command",
    "CommandInvocation",
    "MessageContext",
    "CommandOutcome",
    "CommandSpec",
    "CommandTable",
    "OutcomeKind",
    "build_command_table",
]
