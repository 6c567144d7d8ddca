"""Random choice of concrete garments for a recommended outfit."""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Mapping, Sequence

from closet.storage.models import Category, GarmentRecord, OutfitRecommendation


@dataclass(slots=True, frozen=True)
class OutfitSlot:
    """One recommended category and the garment picked for it, if any."""

    category: Category
    item: GarmentRecord | None


def select_items(
    recommendation: OutfitRecommendation,
    lookup: Mapping[Category, Sequence[GarmentRecord]],
    rng: random.Random,
) -> tuple[OutfitSlot, ...]:
    """Pick one record uniformly at random per recommended category.

    Categories without records yield an empty slot.
    """

    slots: list[OutfitSlot] = []
    for category in recommendation.items:
        candidates = lookup.get(category) or ()
        item = rng.choice(candidates) if candidates else None
        slots.append(OutfitSlot(category=category, item=item))
    return tuple(slots)


def resolved_items(slots: Sequence[OutfitSlot]) -> list[GarmentRecord]:
    """Garments of the slots that resolved to a record, in slot order."""

    return [slot.item for slot in slots if slot.item is not None]
