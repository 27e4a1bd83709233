"""Random quote and joke lookups."""
from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

logger = logging.getLogger(__name__)

QUOTE_URL = "https://api.quotable.io/random"
JOKE_URL = "https://official-joke-api.appspot.com/random_joke"


@dataclass
class TextResult:
    success: bool
    message: str


async def _fetch_json(client: httpx.AsyncClient, url: str) -> dict:
    response = await client.get(url)
    response.raise_for_status()
    return response.json()


async def get_random_quote(client: httpx.AsyncClient) -> TextResult:
    try:
        quote = await _fetch_json(client, QUOTE_URL)
    except (httpx.HTTPError, ValueError) as exc:
        logger.error(f"获取名言失败: {exc}")
        return TextResult(success=False, message="❌ Could not fetch a quote at the moment.")

    return TextResult(
        success=True,
        message=f"💭 Inspirational Quote\n\n\"{quote.get('content', '')}\"\n\n- {quote.get('author', 'Unknown')}",
    )


async def get_random_joke(client: httpx.AsyncClient) -> TextResult:
    try:
        joke = await _fetch_json(client, JOKE_URL)
    except (httpx.HTTPError, ValueError) as exc:
        logger.error(f"获取笑话失败: {exc}")
        return TextResult(success=False, message="❌ Could not fetch a joke at the moment.")

    return TextResult(
        success=True,
        message=f"😄 Random Joke\n\n{joke.get('setup', '')}\n\n{joke.get('punchline', '')}",
    )
