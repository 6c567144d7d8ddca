"""Optional location and weather context for recommendations."""

from .location import Coordinates, IPGeolocationProvider, LocationProvider, StaticLocationProvider
from .weather import (
    OpenWeatherProvider,
    StaticWeatherProvider,
    WeatherNotConfiguredError,
    WeatherProvider,
)

__all__ = [
    "Coordinates",
    "IPGeolocationProvider",
    "LocationProvider",
    "OpenWeatherProvider",
    "StaticLocationProvider",
    "StaticWeatherProvider",
    "WeatherNotConfiguredError",
    "WeatherProvider",
]
