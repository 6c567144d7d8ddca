"""Catalog persistence and record types."""

from .models import (
    Category,
    GarmentDraft,
    GarmentRecord,
    ImagePayload,
    OutfitRecommendation,
    UserModelPhoto,
    WeatherContext,
)
from .repository import CatalogStore, ClosetRepository, JsonFileStore, KeyValueStore

__all__ = [
    "CatalogStore",
    "Category",
    "ClosetRepository",
    "GarmentDraft",
    "GarmentRecord",
    "ImagePayload",
    "JsonFileStore",
    "KeyValueStore",
    "OutfitRecommendation",
    "UserModelPhoto",
    "WeatherContext",
]
