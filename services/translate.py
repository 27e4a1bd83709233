# services/translate.py
"""翻译服务：通过 OpenAI 兼容接口把文本翻译成英文"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from openai import APIError, AsyncOpenAI

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "Translate the following text to English. Only return the translation, nothing else."


@dataclass
class TranslationResult:
    success: bool
    message: str


class Translator:
    def __init__(self, api_key: Optional[str], base_url: Optional[str] = None,
                 model: str = "gpt-3.5-turbo", timeout: float = 10,
                 http_client: Optional[httpx.AsyncClient] = None) -> None:
        self.model = model
        self.client: Optional[AsyncOpenAI] = None
        if api_key:
            self.client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout, http_client=http_client)

    @property
    def available(self) -> bool:
        return self.client is not None

    async def translate(self, text: str) -> TranslationResult:
        if not self.client:
            return TranslationResult(success=False, message="❌ Translation service not configured.")

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": text},
                ],
                max_tokens=100,
            )
            translation = (response.choices[0].message.content or "").strip()
        except (APIError, IndexError) as e:
            logger.error(f"翻译失败: {e}")
            return TranslationResult(success=False, message="❌ Could not translate the text. Please try again.")

        return TranslationResult(
            success=True,
            message=f"🌐 Translation\n\nOriginal: {text}\n\nTranslation: {translation}",
        )

    async def close(self) -> None:
        if self.client:
            await self.client.close()
