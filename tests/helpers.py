"""Builders shared by the closet tests."""

from __future__ import annotations

import io
from typing import Any

from PIL import Image

from closet.storage import Category, GarmentRecord, ImagePayload, KeyValueStore


def make_image(width: int = 64, height: int = 64, fmt: str = "PNG", color: str = "navy") -> ImagePayload:
    mode = "RGBA" if fmt == "PNG" else "RGB"
    buffer = io.BytesIO()
    Image.new(mode, (width, height), color).save(buffer, format=fmt)
    return ImagePayload(buffer.getvalue(), f"image/{fmt.lower()}")


def make_record(item_id: str, category: Category, name: str = "", tags: tuple[str, ...] = ()) -> GarmentRecord:
    return GarmentRecord(
        id=item_id,
        image_data=item_id.encode(),
        mime_type="image/png",
        category=category,
        name=name or item_id,
        tags=tags,
    )


class MemoryStore(KeyValueStore):
    """Dictionary-backed store that records every write."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self.values: dict[str, Any] = dict(initial or {})
        self.writes: list[str] = []

    async def get(self, key: str) -> Any | None:
        return self.values.get(key)

    async def set(self, key: str, value: Any) -> None:
        self.writes.append(key)
        self.values[key] = value


