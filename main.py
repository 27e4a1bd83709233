#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Pipit - 基于 Channel 抽象的消息分拣与定时消息机器人
"""

import asyncio
import signal
import logging
from argparse import ArgumentParser
from typing import Optional

from channel import LocalChannel
from configuration import Config
from bot import PipitBot, __version__


def setup_logging(level: int = logging.INFO):
    """配置日志"""
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    # 降低第三方库日志级别
    for name in ["httpx", "httpcore", "openai"]:
        logging.getLogger(name).setLevel(logging.WARNING)


async def run(config_path: Optional[str] = None):
    try:
        config = Config(config_path)
    except (OSError, ValueError) as e:
        logging.error(f"加载配置失败: {e}")
        return

    channel = LocalChannel(bot_name=config.BOT.name, user_name="User")
    bot = PipitBot(channel=channel, config=config)

    # 信号处理
    loop = asyncio.get_running_loop()
    stopping = False

    def handle_signal():
        nonlocal stopping
        if stopping:
            return
        stopping = True
        logging.info("收到退出信号，正在清理...")
        loop.create_task(bot.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, handle_signal)
        except NotImplementedError:
            # Windows 事件循环不支持 add_signal_handler
            signal.signal(sig, lambda s, f: loop.call_soon_threadsafe(handle_signal))

    logging.info(f"Pipit v{__version__} 启动中...")

    try:
        await bot.start()
    except Exception as e:
        logging.error(f"运行出错: {e}", exc_info=True)
    finally:
        await shutdown(bot)


async def shutdown(bot: PipitBot):
    """清理资源"""
    await bot.stop()
    bot.cleanup()


def main():
    parser = ArgumentParser(description="Pipit 消息机器人")
    parser.add_argument(
        "-d", "--debug", action="store_true", help="调试模式"
    )
    parser.add_argument(
        "-q", "--quiet", action="store_true", help="安静模式"
    )
    parser.add_argument(
        "-c", "--config", default=None, help="配置文件路径（默认 config.yaml）"
    )
    args = parser.parse_args()

    # 日志级别
    if args.debug:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.ERROR
    else:
        level = logging.INFO

    setup_logging(level)
    asyncio.run(run(args.config))


if __name__ == "__main__":
    main()
