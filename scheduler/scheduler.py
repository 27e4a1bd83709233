"""Interval jobs and scheduled-message delivery.

Every job runs as its own asyncio task on the bot's event loop:

- scheduled messages: poll the store for due rows and deliver them
- cleanup / digest / health: see ``scheduler.maintenance``

The scheduler owns the tasks it starts; ``await stop()`` cancels them and
waits until none is left running.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional

from channel import Channel
from channel.delivery import fan_out, send_or_raise
from configuration import Config
from storage import BotStore, ScheduledMessage

logger = logging.getLogger("Scheduler")

Clock = Callable[[], datetime]
JobFunc = Callable[[], Awaitable[Any]]


@dataclass
class IntervalJob:
    """A coroutine function run every ``interval`` seconds."""

    name: str
    interval: float
    func: JobFunc
    run_immediately: bool = False

    # State
    last_run: Optional[datetime] = None
    run_count: int = 0
    last_error: str = ""

    def __repr__(self) -> str:
        return f"IntervalJob({self.name}, every {self.interval}s)"


@dataclass
class SweepReport:
    """Result of one scheduled-message sweep."""

    delivered: int = 0
    failed: int = 0
    skipped: int = 0  # 已在其他 sweep 中投递，或已被标记
    delivered_ids: list[int] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.delivered + self.failed + self.skipped


class Scheduler:
    def __init__(
        self,
        store: BotStore,
        channel: Channel,
        config: Config,
        clock: Optional[Clock] = None,
    ) -> None:
        self.store = store
        self.channel = channel
        self.config = config
        self.clock: Clock = clock or datetime.now

        self._jobs: Dict[str, IntervalJob] = {}
        self._tasks: Dict[str, asyncio.Task] = {}
        # 本进程内正在投递的定时消息 ID
        self._in_flight: set[int] = set()
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def jobs(self) -> Dict[str, IntervalJob]:
        return dict(self._jobs)

    def add_job(self, name: str, interval: float, func: JobFunc, run_immediately: bool = False) -> IntervalJob:
        if name in self._jobs:
            raise ValueError(f"任务已存在: {name}")
        if interval <= 0:
            raise ValueError(f"任务 {name} 的间隔必须大于 0")

        job = IntervalJob(name=name, interval=interval, func=func, run_immediately=run_immediately)
        self._jobs[name] = job
        if self._running:
            self._tasks[name] = asyncio.create_task(self._job_loop(job), name=f"job:{name}")
        logger.info(f"添加定时任务: {job}")
        return job

    def start(self) -> None:
        """为每个任务启动一个 asyncio task，必须在事件循环内调用"""
        if self._running:
            return
        self._running = True
        for name, job in self._jobs.items():
            self._tasks[name] = asyncio.create_task(self._job_loop(job), name=f"job:{name}")
        logger.info(f"Scheduler 已启动，任务: {', '.join(self._jobs) or '无'}")

    async def stop(self) -> None:
        if not self._running and not self._tasks:
            return
        self._running = False

        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        logger.info("Scheduler 已停止")

    async def run_job(self, job: IntervalJob) -> bool:
        """执行一次任务。异常只记录日志，不影响下一次执行"""
        job.last_run = self.clock()
        job.run_count += 1
        try:
            await job.func()
            job.last_error = ""
            return True
        except asyncio.CancelledError:
            raise
        except Exception as e:
            job.last_error = str(e)
            logger.error(f"定时任务 {job.name} 执行失败: {e}", exc_info=True)
            return False

    async def _job_loop(self, job: IntervalJob) -> None:
        if not job.run_immediately:
            await asyncio.sleep(job.interval)
        while self._running:
            await self.run_job(job)
            await asyncio.sleep(job.interval)

    # -- scheduled messages --------------------------------------------------

    async def sweep_scheduled(self, now: Optional[datetime] = None) -> SweepReport:
        """投递所有到期且未投递的定时消息

        发送成功后用条件更新标记为已投递；发送失败的消息保持未投递，下次 sweep 重试。
        """
        now = now or self.clock()
        report = SweepReport()

        try:
            due = self.store.list_due_pending(now)
        except Exception as e:
            logger.error(f"读取到期定时消息失败: {e}", exc_info=True)
            return report

        claimed = [row for row in due if row.id not in self._in_flight]
        report.skipped += len(due) - len(claimed)
        if not claimed:
            return report

        self._in_flight.update(row.id for row in claimed)
        won: set[int] = set()

        async def _deliver(row: ScheduledMessage) -> None:
            await send_or_raise(self.channel, row.message, row.conversation_id)
            if self.store.mark_delivered(row.id):
                won.add(row.id)
            else:
                logger.warning(f"定时消息 #{row.id} 已被标记为投递，跳过")

        try:
            result = await fan_out(claimed, _deliver, timeout=self.config.SCHEDULER.send_timeout)
        finally:
            self._in_flight.difference_update(row.id for row in claimed)

        for attempt in result.attempts:
            row = attempt.target
            if not attempt.ok:
                report.failed += 1
                logger.error(f"定时消息 #{row.id} 投递到 {row.conversation_id} 失败: {attempt.error}")
            elif row.id in won:
                report.delivered += 1
                report.delivered_ids.append(row.id)
                logger.info(f"定时消息 #{row.id} 已投递到 {row.conversation_id}")
            else:
                report.skipped += 1

        if report.total:
            logger.info(f"定时消息 sweep 完成: 成功 {report.delivered}, 失败 {report.failed}, 跳过 {report.skipped}")
        return report
