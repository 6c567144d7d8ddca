"""Settings loader for the virtual closet."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path


def _load_env_file(path: str = ".env") -> None:
    """Populate environment variables from a .env file if present."""

    env_path = Path(path)
    if not env_path.exists():
        return

    for line in env_path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        os.environ.setdefault(key.strip(), value.strip())


def _optional_float(name: str) -> float | None:
    raw = os.getenv(name, "").strip()
    if not raw:
        return None
    return float(raw)


@dataclass(slots=True, frozen=True)
class ClosetSettings:
    """Runtime configuration for the catalog, the AI gateway and context lookups."""

    bot_token: str = ""
    aitunnel_api_key: str = ""
    aitunnel_base_url: str = "https://api.aitunnel.ru/v1"
    chat_model: str = "gemini-2.5-flash"
    image_model: str = "gemini-2.5-flash-image"
    storage_root: str = "storage/users"
    request_timeout: float = 60.0
    log_level: str = "INFO"

    weather_api_key: str = ""
    weather_base_url: str = "https://api.openweathermap.org/data/2.5/weather"
    weather_timeout: float = 10.0
    location_timeout: float = 10.0
    latitude: float | None = None
    longitude: float | None = None
    geolocation_url: str = "http://ip-api.com/json/"

    garment_max_dimension: int = 256
    user_photo_max_dimension: int = 512
    jpeg_quality: int = 90

    @property
    def weather_configured(self) -> bool:
        return bool(self.weather_api_key)

    @property
    def has_static_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None


def _build_settings() -> ClosetSettings:
    _load_env_file()
    return ClosetSettings(
        bot_token=os.getenv("TELEGRAM_BOT_TOKEN", ""),
        aitunnel_api_key=os.getenv("AITUNNEL_API_KEY", ""),
        aitunnel_base_url=os.getenv("AITUNNEL_BASE_URL", "https://api.aitunnel.ru/v1"),
        chat_model=os.getenv("CLOSET_CHAT_MODEL", "gemini-2.5-flash"),
        image_model=os.getenv("CLOSET_IMAGE_MODEL", "gemini-2.5-flash-image"),
        storage_root=os.getenv("CLOSET_STORAGE_ROOT", "storage/users"),
        request_timeout=float(os.getenv("CLOSET_REQUEST_TIMEOUT", "60")),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        weather_api_key=os.getenv("WEATHER_API_KEY", ""),
        weather_base_url=os.getenv(
            "WEATHER_BASE_URL",
            "https://api.openweathermap.org/data/2.5/weather",
        ),
        weather_timeout=float(os.getenv("WEATHER_TIMEOUT", "10")),
        location_timeout=float(os.getenv("CLOSET_LOCATION_TIMEOUT", "10")),
        latitude=_optional_float("CLOSET_LATITUDE"),
        longitude=_optional_float("CLOSET_LONGITUDE"),
        geolocation_url=os.getenv("CLOSET_GEOLOCATION_URL", "http://ip-api.com/json/"),
        garment_max_dimension=int(os.getenv("CLOSET_GARMENT_MAX_DIMENSION", "256")),
        user_photo_max_dimension=int(os.getenv("CLOSET_USER_PHOTO_MAX_DIMENSION", "512")),
        jpeg_quality=int(os.getenv("CLOSET_JPEG_QUALITY", "90")),
    )


@lru_cache(maxsize=1)
def get_settings() -> ClosetSettings:
    """Return cached settings instance."""

    return _build_settings()
