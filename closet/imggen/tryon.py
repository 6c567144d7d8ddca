"""Manual outfit board: pick catalog garments, compose them, refine the result."""

from __future__ import annotations

import logging

from closet.errors import InvalidInputError, OperationInProgressError
from closet.imggen.image_gen import OutfitComposer
from closet.imggen.refinement import ImageRefiner, RefinementSession
from closet.storage.models import GarmentRecord, ImagePayload, UserModelPhoto

logger = logging.getLogger(__name__)


class TryOnSession:
    """Tracks the selected garments and the composite generated from them."""

    def __init__(self, composer: OutfitComposer, refiner: ImageRefiner, user_photo: UserModelPhoto) -> None:
        self._composer = composer
        self._user_photo = user_photo
        self._items: list[GarmentRecord] = []
        self._refinements = RefinementSession(refiner)
        self._generation = 0
        self._generating = False

    @property
    def items(self) -> tuple[GarmentRecord, ...]:
        return tuple(self._items)

    @property
    def image(self) -> ImagePayload | None:
        return self._refinements.image

    @property
    def is_busy(self) -> bool:
        return self._generating or self._refinements.is_busy

    def add_item(self, item: GarmentRecord) -> bool:
        """Add ``item`` to the board; returns ``False`` when it is already there."""

        if any(existing.id == item.id for existing in self._items):
            return False
        self._items.append(item)
        self._discard_image()
        return True

    def remove_item(self, item_id: str) -> bool:
        remaining = [item for item in self._items if item.id != item_id]
        if len(remaining) == len(self._items):
            return False
        self._items = remaining
        self._discard_image()
        return True

    async def generate(self) -> ImagePayload | None:
        """Compose the current selection; ``None`` means the selection changed meanwhile."""

        if not self._items:
            raise InvalidInputError("Add at least one item to the board before generating.")
        if self._generating:
            raise OperationInProgressError("An outfit is already being generated.")
        self._discard_image()
        generation = self._generation
        self._generating = True
        try:
            image = await self._composer.compose(self._user_photo, list(self._items))
        finally:
            self._generating = False
        if generation != self._generation:
            logger.info("Discarding composite for a selection that has since changed.")
            return None
        self._refinements.reset(image)
        return image

    async def refine(self, instruction: str) -> ImagePayload | None:
        return await self._refinements.refine(instruction)

    def _discard_image(self) -> None:
        self._generation += 1
        self._refinements.reset(None)
