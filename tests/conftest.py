"""Shared fixtures for closet tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from closet.config.settings import ClosetSettings
from closet.storage import UserModelPhoto
from helpers import make_image


@pytest.fixture
def settings(tmp_path: Path) -> ClosetSettings:
    return ClosetSettings(
        bot_token="token",
        aitunnel_api_key="key",
        aitunnel_base_url="https://gateway.test/v1",
        storage_root=str(tmp_path / "closets"),
        request_timeout=5.0,
        weather_api_key="weather-key",
        weather_base_url="https://weather.test/data/2.5/weather",
    )


@pytest.fixture
def user_photo() -> UserModelPhoto:
    image = make_image(32, 48, fmt="JPEG", color="white")
    return UserModelPhoto(image_data=image.data, mime_type="image/jpeg")
