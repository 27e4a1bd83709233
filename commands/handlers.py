"""内置命令处理函数"""
from __future__ import annotations

import re
import time
from datetime import datetime, timezone
from typing import Optional

from channel.delivery import broadcast_text
from constants import Privilege
from errors import NotFound, UpstreamFailure, ValidationError
from services import system

from . import calc
from .context import CommandInvocation, MessageContext
from .dispatch import CommandOutcome, CommandSpec, CommandTable, OutcomeKind
from .help_text import build_admin_text, build_help_text

_DATETIME_FORMATS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M", "%Y/%m/%d %H:%M:%S", "%Y/%m/%d %H:%M")
_DATE_TOKEN = re.compile(r"^\d{4}[-/]\d{1,2}[-/]\d{1,2}$")
_TIME_TOKEN = re.compile(r"^\d{1,2}:\d{2}(:\d{2})?$")
_QUOTES = ("\"", "'")

SCHEDULE_USAGE = (
    "❌ Usage: /schedule [time] [message]\n"
    "Example: /schedule \"2024-01-01 12:00:00\" Happy New Year!"
)


# ── 基础命令 ────────────────────────────────────────────────

async def handle_help(ctx: MessageContext, inv: CommandInvocation) -> CommandOutcome:
    return CommandOutcome.ok(build_help_text(ctx.config.BOT.name))


async def handle_status(ctx: MessageContext, inv: CommandInvocation) -> CommandOutcome:
    started_at = getattr(ctx.robot, "started_at", system.PROCESS_STARTED_AT)
    status = "🟢 Online" if ctx.channel.is_ready else "🔴 Offline"
    return CommandOutcome.ok(
        "🤖 Bot Status\n\n"
        f"Status: {status}\n"
        f"Uptime: {system.format_uptime(system.uptime_seconds(started_at))}\n"
        f"Memory Usage: {round(system.memory_usage_mb())} MB\n"
        f"Python Version: {system.python_version()}\n"
        f"Bot Version: {ctx.config.BOT.version}"
    )


async def handle_time(ctx: MessageContext, inv: CommandInvocation) -> CommandOutcome:
    now = datetime.now().astimezone()
    return CommandOutcome.ok(
        "🕐 Current Time\n\n"
        f"Local Time: {now.strftime('%Y-%m-%d %H:%M:%S')}\n"
        f"UTC Time: {now.astimezone(timezone.utc).strftime('%a, %d %b %Y %H:%M:%S GMT')}\n"
        f"Timezone: {now.tzname()}"
    )


async def handle_weather(ctx: MessageContext, inv: CommandInvocation) -> CommandOutcome:
    result = await ctx.services.weather(inv.args_str)
    if not result.success:
        raise UpstreamFailure(result.message)
    return CommandOutcome.ok(result.message, city=result.city)


async def handle_quote(ctx: MessageContext, inv: CommandInvocation) -> CommandOutcome:
    result = await ctx.services.quote()
    if not result.success:
        raise UpstreamFailure(result.message)
    return CommandOutcome.ok(result.message)


async def handle_joke(ctx: MessageContext, inv: CommandInvocation) -> CommandOutcome:
    result = await ctx.services.joke()
    if not result.success:
        raise UpstreamFailure(result.message)
    return CommandOutcome.ok(result.message)


async def handle_calc(ctx: MessageContext, inv: CommandInvocation) -> CommandOutcome:
    expression = inv.args_str
    try:
        result = calc.evaluate(expression)
    except calc.InvalidCharacters:
        raise ValidationError(
            "❌ Invalid characters in expression. Only numbers and basic operators are allowed."
        )
    except calc.InvalidExpression as e:
        ctx.logger.info(f"表达式求值失败 {expression!r}: {e}")
        raise ValidationError("❌ Invalid math expression. Please check your input.")
    return CommandOutcome.ok(f"🧮 Calculation Result\n\n{expression} = {result}", result=result)


async def handle_translate(ctx: MessageContext, inv: CommandInvocation) -> CommandOutcome:
    result = await ctx.services.translate(inv.args_str)
    if not result.success:
        raise UpstreamFailure(result.message)
    return CommandOutcome.ok(result.message)


async def handle_ping(ctx: MessageContext, inv: CommandInvocation) -> CommandOutcome:
    # ping 固定发送两条: 先即时回复，再报告延迟
    start = time.monotonic()
    await ctx.send_text("🏓 Pong!")
    latency = round((time.monotonic() - start) * 1000)
    return CommandOutcome.ok(f"⚡ Response time: {latency}ms", latency_ms=latency)


# ── 管理员命令 ──────────────────────────────────────────────

async def handle_admin(ctx: MessageContext, inv: CommandInvocation) -> CommandOutcome:
    return CommandOutcome.ok(build_admin_text(ctx.sender_name, ctx.config.BOT.admin_panel_url))


async def handle_stats(ctx: MessageContext, inv: CommandInvocation) -> CommandOutcome:
    try:
        stats = ctx.store.get_stats()
    except Exception as e:
        raise UpstreamFailure("❌ Could not fetch statistics.", str(e))

    started_at = getattr(ctx.robot, "started_at", system.PROCESS_STARTED_AT)
    return CommandOutcome.ok(
        "📊 Bot Statistics\n\n"
        f"Total Users: {stats.total_users}\n"
        f"Total Messages: {stats.total_messages}\n"
        f"Active Auto-replies: {stats.auto_replies}\n"
        f"Pending Scheduled Messages: {stats.scheduled_messages}\n"
        f"Bot Uptime: {system.format_uptime(system.uptime_seconds(started_at))}\n"
        f"Memory Usage: {round(system.memory_usage_mb())} MB"
    )


async def handle_auto_reply(ctx: MessageContext, inv: CommandInvocation) -> CommandOutcome:
    trigger = inv.args[0]
    reply = " ".join(inv.args[1:])
    try:
        rule_id = ctx.store.add_auto_reply(trigger, reply)
    except Exception as e:
        raise UpstreamFailure("❌ Could not add auto-reply.", str(e))
    return CommandOutcome.ok(
        f"✅ Auto-reply added successfully!\nTrigger: \"{trigger}\"\nReply: \"{reply}\"",
        rule_id=rule_id,
    )


def parse_timestamp(text: str) -> Optional[datetime]:
    """解析绝对时间，返回本地时间（naive），无法解析返回 None"""
    raw = text.strip().strip("\"'").strip()
    if not raw:
        return None
    for fmt in _DATETIME_FORMATS:
        try:
            return datetime.strptime(raw, fmt)
        except ValueError:
            continue
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def split_schedule_args(args: list[str]) -> tuple[str, list[str]]:
    """拆出时间部分和消息部分

    支持 `2024-01-01T12:00:00 msg`、`2024-01-01 12:00 msg` 以及 `"2024-01-01 12:00:00" msg`
    """
    first = args[0]
    if first[:1] in _QUOTES:
        quote = first[0]
        for idx, token in enumerate(args):
            if token.endswith(quote) and (idx > 0 or len(token) > 1):
                return " ".join(args[: idx + 1]), args[idx + 1:]
        return first, args[1:]

    if len(args) >= 2 and _DATE_TOKEN.match(first) and _TIME_TOKEN.match(args[1]):
        return f"{first} {args[1]}", args[2:]

    return first, args[1:]


async def handle_schedule(ctx: MessageContext, inv: CommandInvocation) -> CommandOutcome:
    if not ctx.config.FEATURES.scheduled_messages:
        return CommandOutcome.ok("❌ Scheduled messages are disabled.")

    time_text, message_tokens = split_schedule_args(inv.args)
    scheduled_time = parse_timestamp(time_text)
    if scheduled_time is None:
        raise ValidationError("❌ Invalid date format. Use: YYYY-MM-DD HH:MM:SS")
    if not message_tokens:
        raise ValidationError(SCHEDULE_USAGE)

    message_text = " ".join(message_tokens)
    try:
        scheduled_id = ctx.store.add_scheduled_message(inv.conversation, message_text, scheduled_time)
    except Exception as e:
        raise UpstreamFailure("❌ Could not schedule message.", str(e))

    return CommandOutcome.ok(
        f"✅ Message scheduled for {scheduled_time.strftime('%Y-%m-%d %H:%M:%S')}",
        scheduled_id=scheduled_id,
    )


async def handle_broadcast(ctx: MessageContext, inv: CommandInvocation) -> CommandOutcome:
    try:
        conversations = await ctx.channel.list_conversations()
    except Exception as e:
        raise UpstreamFailure("❌ Could not send broadcast.", str(e))

    result = await broadcast_text(
        ctx.channel,
        f"📢 Broadcast Message\n\n{inv.args_str}",
        conversations,
        timeout=ctx.config.SCHEDULER.send_timeout,
    )
    ctx.logger.info(f"广播完成: 成功 {result.success}, 失败 {result.failed}")

    kind = OutcomeKind.PARTIAL if result.failed else OutcomeKind.OK
    return CommandOutcome.reply(
        kind,
        f"📢 Broadcast completed!\n✅ Sent: {result.success}\n❌ Failed: {result.failed}",
        success=result.success,
        fail=result.failed,
    )


async def _set_blocked(ctx: MessageContext, inv: CommandInvocation, blocked: bool) -> CommandOutcome:
    address = inv.args[0]
    if ctx.store.get_user(address) is None:
        raise NotFound(f"❌ User {address} not found.")

    ctx.store.set_blocked(address, blocked)
    verb = "blocked" if blocked else "unblocked"
    return CommandOutcome.ok(f"✅ User {address} has been {verb}.", address=address)


async def handle_block(ctx: MessageContext, inv: CommandInvocation) -> CommandOutcome:
    return await _set_blocked(ctx, inv, True)


async def handle_unblock(ctx: MessageContext, inv: CommandInvocation) -> CommandOutcome:
    return await _set_blocked(ctx, inv, False)


# ── 注册 ────────────────────────────────────────────────────


def build_command_table() -> CommandTable:
    """构建内置命令表"""
    table = CommandTable()
    specs = [
        CommandSpec("help", handle_help, "Show this help message"),
        CommandSpec("status", handle_status, "Check bot status"),
        CommandSpec("time", handle_time, "Get current time"),
        CommandSpec("weather", handle_weather, "Get weather information", min_args=1,
                    usage="❌ Please provide a city name.\nUsage: /weather [city]"),
        CommandSpec("quote", handle_quote, "Get a random inspirational quote"),
        CommandSpec("joke", handle_joke, "Get a random joke"),
        CommandSpec("calc", handle_calc, "Calculate math expressions", min_args=1,
                    usage="❌ Please provide a math expression.\nUsage: /calc [expression]\nExample: /calc 2+2*3"),
        CommandSpec("translate", handle_translate, "Translate text to English", min_args=1,
                    usage="❌ Please provide text to translate.\nUsage: /translate [text]"),
        CommandSpec("ping", handle_ping, "Check bot response time"),
        CommandSpec("admin", handle_admin, "Access admin panel", privilege=Privilege.ADMIN),
        CommandSpec("stats", handle_stats, "View bot statistics", privilege=Privilege.ADMIN),
        CommandSpec("auto-reply", handle_auto_reply, "Add auto-reply", privilege=Privilege.ADMIN, min_args=2,
                    usage="❌ Usage: /auto-reply [trigger] [reply]\n"
                          "Example: /auto-reply hello Hi there! How can I help you?"),
        CommandSpec("schedule", handle_schedule, "Schedule a message", privilege=Privilege.ADMIN, min_args=2,
                    usage=SCHEDULE_USAGE),
        CommandSpec("broadcast", handle_broadcast, "Broadcast message to all users", privilege=Privilege.ADMIN,
                    min_args=1, usage="❌ Usage: /broadcast [message]\nExample: /broadcast Important announcement!"),
        CommandSpec("block", handle_block, "Block a user", privilege=Privilege.ADMIN, min_args=1,
                    usage="❌ Usage: /block [phone_number]\nExample: /block +1234567890"),
        CommandSpec("unblock", handle_unblock, "Unblock a user", privilege=Privilege.ADMIN, min_args=1,
                    usage="❌ Usage: /unblock [phone_number]\nExample: /unblock +1234567890"),
    ]
    for spec in specs:
        table.register(spec)
    return table
