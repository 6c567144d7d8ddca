"""Style advisor: context acquisition, recommendation, garment selection and try-on."""

from __future__ import annotations

import asyncio
import logging
import random
from enum import Enum

from closet.advisor.recommender import MIN_CATEGORIES, OutfitRecommender
from closet.advisor.selection import OutfitSlot, resolved_items, select_items
from closet.context.location import LocationProvider
from closet.context.weather import WeatherNotConfiguredError, WeatherProvider
from closet.errors import ClosetError, InvalidInputError
from closet.imggen.image_gen import OutfitComposer
from closet.storage.models import ImagePayload, OutfitRecommendation, UserModelPhoto, WeatherContext
from closet.storage.repository import CatalogStore

logger = logging.getLogger(__name__)

LOCATION_DENIED_WARNING = "Location access denied. Providing a general suggestion."
WEATHER_NOT_CONFIGURED_WARNING = "Weather API key not configured. Cannot fetch weather data."
WEATHER_FAILED_WARNING = "Could not fetch weather data. Providing a general suggestion."


class AdvisorState(str, Enum):
    """Stages of one advisor activation."""

    IDLE = "idle"
    ACQUIRING_CONTEXT = "acquiring_context"
    REQUESTING_RECOMMENDATION = "requesting_recommendation"
    READY = "ready"
    INSUFFICIENT_CATALOG = "insufficient_catalog"
    FAILED = "failed"


class RecommendationOrchestrator:
    """Drives one advisor activation.

    Context (position, then weather) is acquired once; every failure on that
    path only downgrades the request to a generic one and leaves a warning.
    Recommendation failures move to ``FAILED`` until the next request.
    Results of superseded requests are dropped.
    """

    def __init__(
        self,
        catalog: CatalogStore,
        recommender: OutfitRecommender,
        composer: OutfitComposer,
        location_provider: LocationProvider,
        weather_provider: WeatherProvider,
        *,
        location_timeout: float = 10.0,
        rng: random.Random | None = None,
    ) -> None:
        self._catalog = catalog
        self._recommender = recommender
        self._composer = composer
        self._location = location_provider
        self._weather_provider = weather_provider
        self._location_timeout = location_timeout
        self._rng = rng or random.Random()

        self._state = AdvisorState.IDLE
        self._context_acquired = False
        self._weather: WeatherContext | None = None
        self._context_warning: str | None = None
        self._recommendation: OutfitRecommendation | None = None
        self._slots: tuple[OutfitSlot, ...] = ()
        self._composite: ImagePayload | None = None
        self._error: ClosetError | None = None
        self._request_id = 0
        self._selection_id = 0

    @property
    def state(self) -> AdvisorState:
        return self._state

    @property
    def weather(self) -> WeatherContext | None:
        return self._weather

    @property
    def context_warning(self) -> str | None:
        return self._context_warning

    @property
    def recommendation(self) -> OutfitRecommendation | None:
        return self._recommendation

    @property
    def slots(self) -> tuple[OutfitSlot, ...]:
        return self._slots

    @property
    def composite(self) -> ImagePayload | None:
        return self._composite

    @property
    def error(self) -> ClosetError | None:
        return self._error

    async def activate(self) -> AdvisorState:
        """Acquire context (first call only) and request a recommendation."""

        if not self._context_acquired:
            await self._acquire_context()
        return await self.request_recommendation()

    async def _acquire_context(self) -> None:
        self._state = AdvisorState.ACQUIRING_CONTEXT
        self._weather = None
        self._context_warning = None
        try:
            position = await asyncio.wait_for(self._location.current_position(), self._location_timeout)
        except (ClosetError, asyncio.TimeoutError) as exc:
            logger.warning("Location unavailable (%s); continuing without weather.", str(exc) or "timeout")
            self._context_warning = LOCATION_DENIED_WARNING
        else:
            try:
                self._weather = await self._weather_provider.current_weather(position)
            except WeatherNotConfiguredError:
                logger.warning("Weather lookup is not configured; continuing without weather.")
                self._context_warning = WEATHER_NOT_CONFIGURED_WARNING
            except ClosetError as exc:
                logger.warning("Weather lookup failed (%s); continuing without weather.", exc)
                self._context_warning = WEATHER_FAILED_WARNING
        self._context_acquired = True

    async def request_recommendation(self) -> AdvisorState:
        """Request a new outfit using the last known weather context."""

        self._request_id += 1
        request_id = self._request_id
        self._state = AdvisorState.REQUESTING_RECOMMENDATION
        self._recommendation = None
        self._set_slots(())
        self._error = None

        categories = self._catalog.available_categories()
        if len(categories) < MIN_CATEGORIES:
            logger.info("Only %d category(ies) in the closet; skipping recommendation.", len(categories))
            self._state = AdvisorState.INSUFFICIENT_CATALOG
            return self._state

        try:
            recommendation = await self._recommender.recommend(categories, self._weather)
        except ClosetError as exc:
            if request_id != self._request_id:
                logger.info("Dropping failure of a superseded recommendation request.")
                return self._state
            self._error = exc
            self._state = AdvisorState.FAILED
            return self._state

        if request_id != self._request_id:
            logger.info("Dropping result of a superseded recommendation request.")
            return self._state
        self._recommendation = recommendation
        self._set_slots(select_items(recommendation, self._catalog.by_category(), self._rng))
        self._state = AdvisorState.READY
        return self._state

    def shuffle(self) -> tuple[OutfitSlot, ...]:
        """Pick new garments for the current recommendation without asking the model again."""

        if self._state is not AdvisorState.READY or self._recommendation is None:
            raise InvalidInputError("There is no recommendation to shuffle yet.")
        self._set_slots(select_items(self._recommendation, self._catalog.by_category(), self._rng))
        return self._slots

    async def try_on(self, user_photo: UserModelPhoto) -> ImagePayload | None:
        """Compose the selected garments; ``None`` if the selection changed meanwhile."""

        if self._state is not AdvisorState.READY or self._recommendation is None:
            raise InvalidInputError("There is no recommendation to try on yet.")
        items = resolved_items(self._slots)
        if not items:
            raise InvalidInputError("No items to try on for this look.")

        selection_id = self._selection_id
        self._composite = None
        image = await self._composer.compose(user_photo, items)
        if selection_id != self._selection_id:
            logger.info("Discarding composite for a selection that has since changed.")
            return None
        self._composite = image
        return image

    def _set_slots(self, slots: tuple[OutfitSlot, ...]) -> None:
        self._slots = slots
        self._selection_id += 1
        self._composite = None
