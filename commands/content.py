# commands/content.py
"""图片、文档、音频、视频、贴纸、位置等非文本消息的处理"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Optional

from channel import MediaPayload, MessageType
from constants import MEDIA_SUBDIRS

from .context import MessageContext

logger = logging.getLogger(__name__)

MEDIA_ACKS = {
    MessageType.IMAGE: "📸 Image received and saved!",
    MessageType.DOCUMENT: "📄 Document received and saved!",
    MessageType.AUDIO: "🎵 Audio received and saved!",
    MessageType.VIDEO: "🎥 Video received and saved!",
}
STICKER_ACK = "😄 Nice sticker!"


class MediaSink:
    """把收到的媒体文件写到 uploads 目录下对应的子目录"""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def subdir(self, kind: str) -> Path:
        return self.root / MEDIA_SUBDIRS[kind]

    def save(self, kind: str, payload: MediaPayload) -> Path:
        directory = self.subdir(kind)
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"{kind}_{int(time.time() * 1000)}.{payload.extension}"
        path.write_bytes(payload.data)
        logger.info(f"媒体已保存: {path} ({len(payload.data)} bytes)")
        return path


async def handle_media(ctx: MessageContext, sink: MediaSink) -> Optional[Path]:
    """下载并保存媒体，然后回复确认。失败时回复错误提示，返回 None"""
    kind = ctx.msg.type.value
    try:
        payload = await ctx.channel.download_media(ctx.msg)
        if payload is None:
            raise ValueError("消息不包含媒体数据")
        path = sink.save(kind, payload)
    except Exception as e:
        ctx.logger.error(f"处理 {kind} 消息失败: {e}", exc_info=True)
        await ctx.send_text(f"❌ Sorry, I couldn't process your {kind}.")
        return None

    await ctx.send_text(MEDIA_ACKS[ctx.msg.type])
    return path


async def handle_sticker(ctx: MessageContext) -> None:
    await ctx.send_text(STICKER_ACK)


async def handle_location(ctx: MessageContext) -> None:
    if not ctx.msg.location:
        ctx.logger.warning(f"位置消息缺少坐标: {ctx.msg.id}")
        await ctx.send_text("❌ Sorry, I couldn't process your location.")
        return
    latitude, longitude = ctx.msg.location
    await ctx.send_text(f"📍 Location received: {latitude}, {longitude}")


async def handle_typed_content(ctx: MessageContext, sink: MediaSink) -> bool:
    """按内容类型分发。返回是否已处理"""
    msg_type = ctx.msg.type
    if msg_type == MessageType.STICKER:
        await handle_sticker(ctx)
        return True
    if msg_type == MessageType.LOCATION:
        await handle_location(ctx)
        return True
    if msg_type in MEDIA_ACKS:
        if not ctx.config.FEATURES.file_handling:
            ctx.logger.info(f"文件处理已关闭，忽略 {msg_type.value} 消息 {ctx.msg.id}")
            return False
        await handle_media(ctx, sink)
        return True
    return False
