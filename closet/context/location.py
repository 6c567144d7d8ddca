"""Location providers used to look up local weather."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

import httpx
from pydantic import BaseModel, ValidationError

from closet.errors import ContextUnavailableError

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class Coordinates:
    latitude: float
    longitude: float


class LocationProvider(ABC):
    """Returns the user's position or raises :class:`ContextUnavailableError`.

    Any :class:`ClosetError` is treated by the advisor as a denied location.
    """

    @abstractmethod
    async def current_position(self) -> Coordinates:
        """Return the current coordinates."""


class StaticLocationProvider(LocationProvider):
    """Fixed position from configuration; ``None`` coordinates mean access is denied."""

    def __init__(self, latitude: float | None, longitude: float | None) -> None:
        self._latitude = latitude
        self._longitude = longitude

    async def current_position(self) -> Coordinates:
        if self._latitude is None or self._longitude is None:
            raise ContextUnavailableError("Location access denied.")
        return Coordinates(self._latitude, self._longitude)


class _IPLocationPayload(BaseModel):
    status: str = "success"
    lat: float
    lon: float


class IPGeolocationProvider(LocationProvider):
    """Approximates the position from the public IP address."""

    def __init__(
        self,
        url: str = "http://ip-api.com/json/",
        *,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout_seconds
        self._transport = transport

    async def current_position(self) -> Coordinates:
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.get(self._url)
                response.raise_for_status()
                payload = _IPLocationPayload.model_validate(response.json())
        except httpx.HTTPError as exc:
            logger.warning("IP geolocation request failed: %s", exc)
            raise ContextUnavailableError("Location is unavailable.") from exc
        except (ValueError, ValidationError) as exc:
            logger.warning("IP geolocation payload could not be parsed.")
            raise ContextUnavailableError("Location is unavailable.") from exc
        if payload.status != "success":
            raise ContextUnavailableError("Location is unavailable.")
        return Coordinates(payload.lat, payload.lon)
