"""
Weather lookups for context-aware outfit recommendations.

Only current conditions are used: temperature in °F, a short condition
string and the OpenWeatherMap icon id.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import List

import httpx
from pydantic import BaseModel, ValidationError

from closet.context.location import Coordinates
from closet.errors import ContextUnavailableError
from closet.storage.models import WeatherContext

logger = logging.getLogger(__name__)

OPENWEATHER_BASE_URL = "https://api.openweathermap.org/data/2.5/weather"


class WeatherNotConfiguredError(ContextUnavailableError):
    """Raised when no weather API key is available."""


class _WeatherCondition(BaseModel):
    main: str
    icon: str


class _Main(BaseModel):
    temp: float


class _CurrentWeatherResponse(BaseModel):
    main: _Main
    weather: List[_WeatherCondition]


class WeatherProvider(ABC):
    """Abstract weather provider interface.

    Failures should be raised as :class:`ContextUnavailableError`; the advisor
    treats any :class:`ClosetError` as a failed lookup.
    """

    @abstractmethod
    async def current_weather(self, position: Coordinates) -> WeatherContext:
        """Return current conditions or raise :class:`ContextUnavailableError`."""


class OpenWeatherProvider(WeatherProvider):
    """OpenWeatherMap current-conditions lookup in imperial units."""

    def __init__(
        self,
        api_key: str | None,
        *,
        base_url: str = OPENWEATHER_BASE_URL,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url
        self._timeout = timeout_seconds
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    async def current_weather(self, position: Coordinates) -> WeatherContext:
        if not self._api_key:
            raise WeatherNotConfiguredError("Weather API key not configured. Cannot fetch weather data.")

        params = {
            "lat": position.latitude,
            "lon": position.longitude,
            "units": "imperial",
            "appid": self._api_key,
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.get(self._base_url, params=params)
                response.raise_for_status()
                parsed = _CurrentWeatherResponse.model_validate(response.json())
        except httpx.TimeoutException as exc:
            logger.warning("Weather API timeout")
            raise ContextUnavailableError("Failed to fetch weather data.") from exc
        except httpx.HTTPError as exc:
            logger.warning("Weather API error: %s", exc)
            raise ContextUnavailableError("Failed to fetch weather data.") from exc
        except (ValueError, ValidationError) as exc:
            logger.warning("Weather payload schema validation failed")
            raise ContextUnavailableError("Failed to fetch weather data.") from exc

        if not parsed.weather:
            raise ContextUnavailableError("Weather payload has no conditions.")
        condition = parsed.weather[0]
        weather = WeatherContext(
            temperature_f=round(parsed.main.temp),
            description=condition.main,
            icon_id=condition.icon,
        )
        logger.info("Weather: %s°F, %s", weather.temperature_f, weather.description)
        return weather


class StaticWeatherProvider(WeatherProvider):
    """Returns fixed conditions; useful offline and in tests."""

    def __init__(self, weather: WeatherContext) -> None:
        self._weather = weather

    async def current_weather(self, position: Coordinates) -> WeatherContext:
        return self._weather
