# scheduler/maintenance.py
"""周期性维护任务：清理上传文件、发送使用周报、健康检查"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, List, Optional

from pydantic import BaseModel

from channel import Channel
from channel.delivery import send_or_raise
from configuration import Config
from services import system
from storage import BotStore

logger = logging.getLogger("Maintenance")

DIGEST_SETTING = "digest.last_sent_at"
HEALTH_SETTING = "health.last_snapshot"


class HealthSnapshot(BaseModel):
    timestamp: datetime
    channel_ready: bool
    memory_mb: float
    uptime_seconds: float

    def summary(self) -> str:
        status = "ready" if self.channel_ready else "not ready"
        return (f"channel {status}, memory {self.memory_mb:.1f} MB, "
                f"uptime {system.format_uptime(self.uptime_seconds)}")


HealthObserver = Callable[[HealthSnapshot], Any]


@dataclass
class CleanupReport:
    files_removed: int = 0
    messages_pruned: int = 0


class Maintenance:
    """Cleanup, digest and health sweeps, registered on the Scheduler as interval jobs."""

    def __init__(
        self,
        store: BotStore,
        channel: Channel,
        config: Config,
        clock: Optional[Callable[[], datetime]] = None,
        started_at: float = system.PROCESS_STARTED_AT,
        memory_reader: Callable[[], float] = system.memory_usage_mb,
    ) -> None:
        self.store = store
        self.channel = channel
        self.config = config
        self.clock = clock or datetime.now
        self.started_at = started_at
        self.memory_reader = memory_reader
        self._observers: List[HealthObserver] = []
        self.last_snapshot: Optional[HealthSnapshot] = None

    def add_observer(self, observer: HealthObserver) -> None:
        self._observers.append(observer)

    # -- cleanup -------------------------------------------------------------

    async def cleanup(self, now: Optional[datetime] = None) -> CleanupReport:
        now = now or self.clock()
        report = CleanupReport()
        settings = self.config.SCHEDULER

        file_cutoff = (now - timedelta(days=settings.upload_retention_days)).timestamp()
        report.files_removed = self._remove_old_uploads(Path(self.config.STORAGE.uploads_dir), file_cutoff)

        try:
            report.messages_pruned = self.store.prune_messages(now - timedelta(days=settings.message_retention_days))
        except Exception as e:
            logger.error(f"清理消息记录失败: {e}", exc_info=True)

        logger.info(f"清理完成: 删除 {report.files_removed} 个文件, {report.messages_pruned} 条消息记录")
        return report

    @staticmethod
    def _remove_old_uploads(root: Path, cutoff: float) -> int:
        if not root.is_dir():
            return 0

        removed = 0
        for subdir in root.iterdir():
            if not subdir.is_dir():
                continue
            for path in subdir.iterdir():
                try:
                    if path.is_file() and path.stat().st_mtime < cutoff:
                        path.unlink()
                        removed += 1
                except OSError as e:
                    logger.warning(f"删除上传文件 {path} 失败: {e}")
        return removed

    # -- digest --------------------------------------------------------------

    def build_digest(self) -> str:
        stats = self.store.get_stats()
        uptime = system.format_uptime(time.monotonic() - self.started_at)
        return (
            "📊 Weekly Bot Report\n\n"
            f"Total Users: {stats.total_users}\n"
            f"Total Messages: {stats.total_messages}\n"
            f"Active Auto-replies: {stats.auto_replies}\n"
            f"Pending Scheduled Messages: {stats.scheduled_messages}\n"
            f"Uptime: {uptime}\n"
            f"Memory Usage: {round(self.memory_reader())} MB"
        )

    def last_digest_at(self) -> Optional[datetime]:
        value = self.store.get_setting(DIGEST_SETTING)
        if not value:
            return None
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            logger.warning(f"无法解析 {DIGEST_SETTING}: {value!r}")
            return None

    async def send_digest(self, now: Optional[datetime] = None) -> bool:
        """把使用周报发给 operator，未配置 operator 时跳过"""
        operator = self.config.BOT.operator_address
        if not operator:
            logger.debug("未配置 operator_address，跳过周报")
            return False

        now = now or self.clock()
        last_sent = self.last_digest_at()
        # 距上次发送不足一个周期（允许 10% 误差）则跳过
        min_gap = timedelta(seconds=self.config.SCHEDULER.digest_interval * 0.9)
        if last_sent and now - last_sent < min_gap:
            logger.info(f"上次周报发送于 {last_sent}，跳过本次")
            return False

        try:
            report = self.build_digest()
            await asyncio.wait_for(
                send_or_raise(self.channel, report, operator),
                timeout=self.config.SCHEDULER.send_timeout,
            )
        except asyncio.TimeoutError:
            logger.error(f"发送周报到 {operator} 超时")
            return False
        except Exception as e:
            logger.error(f"发送周报到 {operator} 失败: {e}", exc_info=True)
            return False

        self.store.set_setting(DIGEST_SETTING, now.isoformat(timespec="seconds"))
        logger.info(f"周报已发送到 {operator}")
        return True

    # -- health --------------------------------------------------------------

    def sample(self, now: Optional[datetime] = None) -> HealthSnapshot:
        return HealthSnapshot(
            timestamp=now or self.clock(),
            channel_ready=bool(self.channel.is_ready),
            memory_mb=round(self.memory_reader(), 2),
            uptime_seconds=round(time.monotonic() - self.started_at, 3),
        )

    async def check_health(self, now: Optional[datetime] = None) -> HealthSnapshot:
        snapshot = self.sample(now)
        self.last_snapshot = snapshot
        logger.info(f"健康检查: {snapshot.summary()}")

        if snapshot.memory_mb > self.config.SCHEDULER.memory_warn_mb:
            logger.warning(
                f"内存占用过高: {snapshot.memory_mb:.1f} MB (阈值 {self.config.SCHEDULER.memory_warn_mb} MB)"
            )
        if not snapshot.channel_ready:
            logger.warning(f"Channel {self.channel.name} 未就绪")

        try:
            self.store.set_setting(HEALTH_SETTING, snapshot.model_dump_json())
        except Exception as e:
            logger.error(f"保存健康快照失败: {e}", exc_info=True)

        for observer in list(self._observers):
            try:
                result = observer(snapshot)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"健康快照回调失败: {e}", exc_info=True)

        return snapshot
