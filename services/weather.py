"""Weather lookup via the OpenWeatherMap current-weather API."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

WEATHER_URL = "http://api.openweathermap.org/data/2.5/weather"


@dataclass
class WeatherResult:
    success: bool
    message: str
    city: Optional[str] = None


def format_weather(data: dict) -> str:
    main = data.get("main", {})
    wind = data.get("wind", {})
    description = (data.get("weather") or [{}])[0].get("description", "?")
    return (
        f"🌤️ Weather for {data.get('name', '?')}\n\n"
        f"Temperature: {main.get('temp')}°C\n"
        f"Feels like: {main.get('feels_like')}°C\n"
        f"Description: {description}\n"
        f"Humidity: {main.get('humidity')}%\n"
        f"Wind Speed: {wind.get('speed')} m/s\n"
        f"Pressure: {main.get('pressure')} hPa"
    )


async def get_weather_report(client: httpx.AsyncClient, api_key: Optional[str], city_name: str) -> WeatherResult:
    """Return a weather report for a given city.

    Args:
        client: shared HTTP client.
        api_key: OpenWeatherMap key, ``None`` when not configured.
        city_name: City provided by the user.
    """
    city = city_name.strip()
    if not city:
        return WeatherResult(success=False, message="❌ Please provide a city name.\nUsage: /weather [city]")
    if not api_key:
        return WeatherResult(success=False, message="❌ Weather API key not configured.")

    try:
        response = await client.get(WEATHER_URL, params={"q": city, "appid": api_key, "units": "metric"})
        response.raise_for_status()
        data = response.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.error(f"获取 {city} 天气失败: {exc}")
        return WeatherResult(success=False, message="❌ Could not fetch weather data. Please check the city name.")

    return WeatherResult(success=True, message=format_weather(data), city=data.get("name", city))
