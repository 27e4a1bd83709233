"""
Pytest configuration and shared fixtures for Pipit tests.
"""

import asyncio
import sys
from datetime import datetime
from pathlib import Path

import pytest

# Add the project root to the path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from bot import PipitBot  # noqa: E402
from channel import Channel, MediaPayload, Message, MessageType  # noqa: E402
from configuration import Config  # noqa: E402
from services import TextResult, TranslationResult, WeatherResult  # noqa: E402
from storage import BotStore  # noqa: E402

ADMIN = "+15550001000"
USER = "+15550002000"


class FakeChannel(Channel):
    """Records every outbound message; failures can be injected per receiver."""

    def __init__(self, conversations=None):
        self.sent: list[tuple[str, str]] = []
        self.conversations = list(conversations or [])
        self.fail_for: set[str] = set()     # send_text returns False
        self.raise_for: set[str] = set()    # send_text raises
        self.hang_for: set[str] = set()     # send_text never completes
        self.fail_download = False
        self.ready = True
        self.started = False
        self.stopped = False

    @property
    def name(self) -> str:
        return "fake"

    @property
    def bot_id(self) -> str:
        return "bot"

    @property
    def is_ready(self) -> bool:
        return self.ready

    async def send_text(self, content: str, receiver: str) -> bool:
        if receiver in self.hang_for:
            await asyncio.sleep(3600)
        if receiver in self.raise_for:
            raise ConnectionError(f"connection to {receiver} lost")
        if receiver in self.fail_for:
            return False
        self.sent.append((receiver, content))
        return True

    async def list_conversations(self) -> list[str]:
        return list(self.conversations)

    async def start(self, on_message) -> None:
        self.started = True

    async def stop(self) -> None:
        self.stopped = True

    async def download_media(self, msg: Message):
        if self.fail_download:
            raise IOError("download failed")
        return msg.media

    def texts_to(self, receiver: str) -> list[str]:
        return [content for to, content in self.sent if to == receiver]


class FakeServices:
    """Stands in for the external weather / quote / joke / translation lookups."""

    def __init__(self):
        self.closed = False
        self.weather_ok = True

    async def weather(self, city: str) -> WeatherResult:
        if not self.weather_ok:
            return WeatherResult(success=False, message="❌ Could not fetch weather data. Please check the city name.")
        return WeatherResult(success=True, message=f"🌤️ Weather for {city}", city=city)

    async def quote(self) -> TextResult:
        return TextResult(success=True, message="💭 Inspirational Quote\n\n\"Keep going.\"\n\n- Someone")

    async def joke(self) -> TextResult:
        return TextResult(success=True, message="😂 Random Joke\n\nWhy?\n\nBecause.")

    async def translate(self, text: str) -> TranslationResult:
        return TranslationResult(success=True, message=f"🌐 Translation\n\nOriginal: {text}\n\nTranslation: {text}")

    async def close(self) -> None:
        self.closed = True


def make_message(content: str = "", sender: str = USER, msg_type: MessageType = MessageType.TEXT,
                 room_id=None, media=None, location=None, sender_name: str = "") -> Message:
    make_message.counter += 1
    return Message(
        id=f"m{make_message.counter}",
        sender=sender,
        content=content,
        type=msg_type,
        room_id=room_id,
        is_group=room_id is not None,
        sender_name=sender_name,
        timestamp=datetime.now(),
        media=media,
        location=location,
    )


make_message.counter = 0


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def store(tmp_path):
    """A fresh SQLite store in a temporary directory."""
    db = BotStore(str(tmp_path / "data" / "test.db"))
    yield db
    db.close()


@pytest.fixture
def config_data(tmp_path):
    return {
        "bot": {"name": "Pipit", "admin_addresses": [ADMIN]},
        "storage": {"db_path": str(tmp_path / "data" / "test.db"), "uploads_dir": str(tmp_path / "uploads")},
        "scheduler": {"send_timeout": 0.2},
    }


@pytest.fixture
def config(config_data):
    return Config.from_dict(config_data)


@pytest.fixture
def channel():
    return FakeChannel(conversations=["c1", "c2", "c3"])


@pytest.fixture
def services():
    return FakeServices()


@pytest.fixture
def bot(channel, config, store, services):
    return PipitBot(channel=channel, config=config, store=store, services=services)


@pytest.fixture
def png():
    return MediaPayload(data=b"\x89PNG fake", mimetype="image/png")
