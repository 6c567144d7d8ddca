"""Outfit composition: the user photo dressed in catalog garments."""

from __future__ import annotations

import logging
from typing import Mapping, Sequence

from closet.api.aitunnel_client import AITunnelClient
from closet.errors import ClosetError, InvalidInputError
from closet.imggen.prompt_builder import PromptBuilder
from closet.storage.models import GarmentRecord, ImagePayload, UserModelPhoto

logger = logging.getLogger(__name__)


class OutfitComposer:
    """Coordinates the composition request for one outfit."""

    def __init__(
        self,
        client: AITunnelClient,
        *,
        prompt_builder: PromptBuilder | None = None,
        options: Mapping[str, str] | None = None,
    ) -> None:
        self._client = client
        self._prompt_builder = prompt_builder or PromptBuilder()
        self._options = dict(options or {})

    async def compose(
        self,
        user_photo: UserModelPhoto | ImagePayload,
        garments: Sequence[GarmentRecord | ImagePayload],
    ) -> ImagePayload:
        """
        Return one image of the user wearing ``garments``, layered in the given order.

        Inputs are validated before any request is made.
        """

        if not garments:
            raise InvalidInputError("No clothing items provided for try-on.")
        base = user_photo.image if isinstance(user_photo, UserModelPhoto) else user_photo
        if not base.mime_type:
            raise InvalidInputError("Missing body image mime type for generation.")

        images: list[ImagePayload] = [base]
        for index, garment in enumerate(garments, start=1):
            image = garment.image if isinstance(garment, GarmentRecord) else garment
            if not image.mime_type:
                label = garment.id if isinstance(garment, GarmentRecord) else f"#{index}"
                raise InvalidInputError(f"Clothing item {label} is missing mime type.")
            images.append(image)

        prompt = self._prompt_builder.composition(len(garments))
        try:
            result = await self._client.edit_image(prompt, images, options=self._options)
        except ClosetError as exc:
            logger.error("Failed to generate outfit: %s", exc)
            raise
        logger.info("Composed outfit from %d garment(s).", len(garments))
        return result
