"""OpenWeatherMap current-weather lookup for the checkWeather chat tool.

Every failure comes back as {"type": "weather", "error": ...}; nothing raises.
"""
from __future__ import annotations

import logging
from typing import Optional

import httpx

from config.settings import settings

logger = logging.getLogger(__name__)

UNIT_SYMBOLS = {"metric": "°C", "imperial": "°F"}


def normalize_weather(payload: dict, city: str, units: str) -> dict:
    main = payload.get("main") or {}
    conditions = payload.get("weather") or [{}]
    return {
        "type": "weather",
        "city": payload.get("name") or city,
        "description": conditions[0].get("description") or "No description",
        "temperature": main.get("temp"),
        "feelsLike": main.get("feels_like"),
        "humidity": main.get("humidity"),
        "units": UNIT_SYMBOLS[units],
    }


async def fetch_weather(
    city: str,
    units: str = "metric",
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> dict:
    api_key = api_key if api_key is not None else settings.OPENWEATHER_API_KEY
    if not api_key:
        return {"type": "weather", "error": "Weather API key is not configured on the server."}

    url = f"{base_url or settings.OPENWEATHER_BASE_URL}/weather"
    params = {"q": city, "appid": api_key, "units": units}

    owns_client = client is None
    client = client or httpx.AsyncClient()
    try:
        resp = await client.get(url, params=params)
        if not resp.is_success:
            logger.warning("OpenWeatherMap returned %s for %r", resp.status_code, city)
            return {
                "type": "weather",
                "error": f'Failed to fetch weather for "{city}". Status: {resp.status_code}',
            }
        return normalize_weather(resp.json(), city, units)
    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"checkWeather failed for {city!r}: {e}")
        return {"type": "weather", "error": "Unexpected error while fetching weather."}
    finally:
        if owns_client:
            await client.aclose()
