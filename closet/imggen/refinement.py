"""Refinement of generated composites through natural-language edits."""

from __future__ import annotations

import asyncio
import logging

from closet.api.aitunnel_client import AITunnelClient
from closet.errors import ClosetError, InvalidInputError, OperationInProgressError
from closet.imggen.prompt_builder import PromptBuilder
from closet.storage.models import ImagePayload

logger = logging.getLogger(__name__)


class ImageRefiner:
    """Issues one stateless edit request against a base image."""

    def __init__(self, client: AITunnelClient, *, prompt_builder: PromptBuilder | None = None) -> None:
        self._client = client
        self._prompt_builder = prompt_builder or PromptBuilder()

    async def refine(self, base_image: ImagePayload, instruction: str) -> ImagePayload:
        if not base_image.mime_type:
            raise InvalidInputError("Missing base image mime type for editing.")
        if not instruction.strip():
            raise InvalidInputError("Describe the change you want to make.")
        prompt = self._prompt_builder.refinement(instruction)
        try:
            return await self._client.edit_image(prompt, [base_image])
        except ClosetError as exc:
            logger.error("Failed to edit image: %s", exc)
            raise


class RefinementSession:
    """Chains refinements on one composite, one request at a time.

    A second refinement while one is pending is rejected. Replacing the base
    image (or discarding it) drops the result of any refinement in flight.
    """

    def __init__(self, refiner: ImageRefiner, image: ImagePayload | None = None) -> None:
        self._refiner = refiner
        self._image = image
        self._lock = asyncio.Lock()
        self._generation = 0

    @property
    def image(self) -> ImagePayload | None:
        return self._image

    @property
    def is_busy(self) -> bool:
        return self._lock.locked()

    def reset(self, image: ImagePayload | None) -> None:
        """Start over from ``image``; pending results are discarded."""

        self._generation += 1
        self._image = image

    async def refine(self, instruction: str) -> ImagePayload | None:
        """Apply ``instruction`` to the current image.

        Returns the new image, or ``None`` when the session was reset while the
        request was pending. On failure the current image is left unchanged.
        """

        if self._image is None:
            raise InvalidInputError("There is no generated image to edit yet.")
        if self._lock.locked():
            raise OperationInProgressError("An edit is already in progress for this image.")
        async with self._lock:
            generation = self._generation
            result = await self._refiner.refine(self._image, instruction)
            if generation != self._generation:
                logger.info("Discarding refinement result for a replaced image.")
                return None
            self._image = result
            return result
