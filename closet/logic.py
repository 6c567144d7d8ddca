"""High-level workflows shared by every presentation surface."""

from __future__ import annotations

import logging
import random
from pathlib import Path

from closet.advisor import OutfitRecommender, RecommendationOrchestrator
from closet.api import AITunnelClient
from closet.config.settings import ClosetSettings
from closet.context import (
    IPGeolocationProvider,
    LocationProvider,
    OpenWeatherProvider,
    StaticLocationProvider,
    WeatherProvider,
)
from closet.errors import ImageDecodeError, InvalidInputError
from closet.imggen import GarmentIsolationStage, ImageRefiner, OutfitComposer, TryOnSession
from closet.imgproc import ImageNormalizer
from closet.storage import (
    CatalogStore,
    Category,
    ClosetRepository,
    GarmentDraft,
    GarmentRecord,
    ImagePayload,
    UserModelPhoto,
)

logger = logging.getLogger(__name__)


def build_location_provider(settings: ClosetSettings) -> LocationProvider:
    """Use the configured coordinates when present, otherwise IP geolocation."""

    if settings.has_static_location:
        return StaticLocationProvider(settings.latitude, settings.longitude)
    return IPGeolocationProvider(settings.geolocation_url, timeout_seconds=settings.location_timeout)


class StylistLogic:
    """Onboarding, cataloguing, try-on and advisor entry points."""

    def __init__(
        self,
        settings: ClosetSettings,
        repository: ClosetRepository,
        client: AITunnelClient,
        *,
        location_provider: LocationProvider | None = None,
        weather_provider: WeatherProvider | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._settings = settings
        self._repository = repository
        self._normalizer = ImageNormalizer(settings.jpeg_quality)
        self._isolation = GarmentIsolationStage(
            client,
            self._normalizer,
            max_dimension=settings.garment_max_dimension,
        )
        self._composer = OutfitComposer(client)
        self._refiner = ImageRefiner(client)
        self._recommender = OutfitRecommender(client)
        self._location = location_provider or build_location_provider(settings)
        self._weather = weather_provider or OpenWeatherProvider(
            settings.weather_api_key,
            base_url=settings.weather_base_url,
            timeout_seconds=settings.weather_timeout,
        )
        self._rng = rng

    @classmethod
    def from_settings(cls, settings: ClosetSettings, client: AITunnelClient) -> "StylistLogic":
        return cls(settings, ClosetRepository(Path(settings.storage_root)), client)

    async def catalog(self, user_id: str) -> CatalogStore:
        return await self._repository.catalog(user_id)

    async def set_user_photo(self, user_id: str, upload: ImagePayload) -> UserModelPhoto:
        """Normalize and store the reference photo; the raw upload is kept if it cannot be decoded."""

        if not upload.data or not upload.mime_type:
            raise InvalidInputError("The photo needs image data and a mime type.")
        try:
            image = await self._normalizer.normalize_async(upload, self._settings.user_photo_max_dimension)
        except ImageDecodeError as exc:
            logger.warning("Failed to compress user image, storing it unchanged: %s", exc)
            image = upload
        photo = UserModelPhoto(image_data=image.data, mime_type=image.mime_type or upload.mime_type)
        catalog = await self.catalog(user_id)
        await catalog.set_user_photo(photo)
        return photo

    async def analyze_garment(self, upload: ImagePayload, category: Category | str) -> GarmentDraft:
        """Isolate and tag an upload; nothing is stored until :meth:`save_garment`."""

        result = await self._isolation.isolate(upload, category)
        return result.to_draft()

    async def save_garment(self, user_id: str, draft: GarmentDraft) -> GarmentRecord:
        catalog = await self.catalog(user_id)
        return await catalog.add_item(draft)

    async def remove_garment(self, user_id: str, item_id: str) -> None:
        catalog = await self.catalog(user_id)
        await catalog.remove_item(item_id)

    async def start_try_on(self, user_id: str) -> TryOnSession:
        photo = await self._require_photo(user_id)
        return TryOnSession(self._composer, self._refiner, photo)

    async def start_advisor(self, user_id: str) -> RecommendationOrchestrator:
        catalog = await self.catalog(user_id)
        return RecommendationOrchestrator(
            catalog,
            self._recommender,
            self._composer,
            self._location,
            self._weather,
            location_timeout=self._settings.location_timeout,
            rng=self._rng,
        )

    async def _require_photo(self, user_id: str) -> UserModelPhoto:
        catalog = await self.catalog(user_id)
        if catalog.user_photo is None:
            raise InvalidInputError("Upload your photo first.")
        return catalog.user_photo
