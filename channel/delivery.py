# channel/delivery.py
"""多接收者并发投递

每个接收者单独超时、单独捕获错误，一个接收者失败或卡住不会影响其余接收者。
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, TypeVar

from errors import DeliveryError
from .base import Channel

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class DeliveryAttempt:
    """单个接收者的投递结果"""
    target: Any
    ok: bool
    error: str = ""


@dataclass
class FanOutResult:
    attempts: list[DeliveryAttempt] = field(default_factory=list)

    @property
    def success(self) -> int:
        return sum(1 for a in self.attempts if a.ok)

    @property
    def failed(self) -> int:
        return sum(1 for a in self.attempts if not a.ok)

    @property
    def total(self) -> int:
        return len(self.attempts)


async def send_or_raise(channel: Channel, content: str, receiver: str) -> None:
    """发送一条消息，Channel 返回 False 时抛出 DeliveryError"""
    ok = await channel.send_text(content, receiver)
    if ok is False:
        raise DeliveryError(receiver)


async def fan_out(
    targets: Iterable[T],
    action: Callable[[T], Awaitable[Any]],
    timeout: float,
) -> FanOutResult:
    """对每个目标并发执行 action，带单目标超时，收集每个目标的结果"""

    async def _attempt(target: T) -> DeliveryAttempt:
        try:
            await asyncio.wait_for(action(target), timeout=timeout)
            return DeliveryAttempt(target=target, ok=True)
        except asyncio.TimeoutError:
            logger.warning(f"投递到 {target} 超时 ({timeout}s)")
            return DeliveryAttempt(target=target, ok=False, error="timeout")
        except Exception as e:
            logger.error(f"投递到 {target} 失败: {e}")
            return DeliveryAttempt(target=target, ok=False, error=str(e))

    attempts = await asyncio.gather(*(_attempt(t) for t in targets))
    return FanOutResult(attempts=list(attempts))


async def broadcast_text(
    channel: Channel,
    content: str,
    receivers: Iterable[str],
    timeout: float,
) -> FanOutResult:
    """向多个会话广播同一条消息"""
    return await fan_out(
        receivers,
        lambda receiver: send_or_raise(channel, content, receiver),
        timeout,
    )
