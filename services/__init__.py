"""External content services used by command handlers."""

import logging
from typing import Optional

import httpx

from configuration import ApiSettings

from .fun import TextResult, get_random_joke, get_random_quote
from .translate import TranslationResult, Translator
from .weather import WeatherResult, get_weather_report

logger = logging.getLogger(__name__)

__all__ = [
    "ContentServices",
    "TextResult",
    "TranslationResult",
    "WeatherResult",
]


class ContentServices:
    """Bundle of the opaque third-party lookups (weather, quote, joke, translation).

    One shared ``httpx.AsyncClient`` is used for the plain JSON APIs; translation goes
    through the OpenAI SDK.
    """

    def __init__(self, apis: ApiSettings, client: Optional[httpx.AsyncClient] = None,
                 translator: Optional[Translator] = None) -> None:
        self.apis = apis
        self.client = client or httpx.AsyncClient(timeout=apis.timeout)
        self.translator = translator or Translator(
            api_key=apis.openai_key,
            base_url=apis.openai_base,
            model=apis.translate_model,
            timeout=apis.timeout,
        )

    async def weather(self, city: str) -> WeatherResult:
        return await get_weather_report(self.client, self.apis.weather_key, city)

    async def quote(self) -> TextResult:
        return await get_random_quote(self.client)

    async def joke(self) -> TextResult:
        return await get_random_joke(self.client)

    async def translate(self, text: str) -> TranslationResult:
        return await self.translator.translate(text)

    async def close(self) -> None:
        try:
            await self.client.aclose()
            await self.translator.close()
        except Exception as e:
            logger.warning(f"关闭外部服务客户端时出错: {e}")
