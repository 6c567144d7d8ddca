"""Serializable records kept in the closet catalog."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterable, Mapping

from closet.errors import InvalidInputError


class Category(str, Enum):
    """Fixed garment categories."""

    TOPS = "Tops"
    BOTTOMS = "Bottoms"
    SHOES = "Shoes"
    ACCESSORIES = "Accessories"

    @classmethod
    def parse(cls, value: Any) -> "Category":
        """Return the category matching ``value`` (case-insensitive)."""

        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            lowered = value.strip().lower()
            for category in cls:
                if category.value.lower() == lowered:
                    return category
        raise InvalidInputError(f"Unknown clothing category: {value!r}.")


@dataclass(slots=True, frozen=True)
class ImagePayload:
    """Binary image data together with its mime type."""

    data: bytes
    mime_type: str | None

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    @property
    def data_url(self) -> str:
        if not self.mime_type:
            raise InvalidInputError("Missing image mime type.")
        return f"data:{self.mime_type};base64,{self.to_base64()}"

    @classmethod
    def from_base64(cls, encoded: str, mime_type: str | None) -> "ImagePayload":
        try:
            return cls(data=base64.b64decode(encoded, validate=True), mime_type=mime_type)
        except (ValueError, binascii.Error) as exc:
            raise InvalidInputError("Image data is not valid base64.") from exc

    @classmethod
    def from_data_url(cls, data_url: str) -> "ImagePayload":
        """Parse a ``data:<mime>;base64,<payload>`` string."""

        header, sep, encoded = data_url.partition(",")
        if not sep or not header.startswith("data:") or ";base64" not in header:
            raise InvalidInputError("Image data URL is malformed.")
        mime_type = header[len("data:"):].split(";", 1)[0] or None
        return cls.from_base64(encoded, mime_type)


def normalize_tags(tags: Iterable[str]) -> tuple[str, ...]:
    """Lower-case, trim and de-duplicate tags while keeping their order."""

    seen: dict[str, None] = {}
    for tag in tags:
        cleaned = str(tag).strip().lower()
        if cleaned:
            seen.setdefault(cleaned, None)
    return tuple(seen)


@dataclass(slots=True, frozen=True)
class GarmentDraft:
    """Unsaved garment produced by the isolation stage and edited before confirmation."""

    image: ImagePayload
    category: Category
    name: str = ""
    tags: tuple[str, ...] = ()
    original: ImagePayload | None = None

    def with_name(self, name: str) -> "GarmentDraft":
        return replace(self, name=name.strip())

    def with_tags(self, tags: Iterable[str]) -> "GarmentDraft":
        return replace(self, tags=normalize_tags(tags))

    def with_category(self, category: Category | str) -> "GarmentDraft":
        return replace(self, category=Category.parse(category))


@dataclass(slots=True, frozen=True)
class GarmentRecord:
    """A persisted catalog entry; never mutated after creation."""

    id: str
    image_data: bytes
    mime_type: str
    category: Category
    name: str = ""
    tags: tuple[str, ...] = ()

    @property
    def image(self) -> ImagePayload:
        return ImagePayload(self.image_data, self.mime_type)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "image_data": base64.b64encode(self.image_data).decode("ascii"),
            "mime_type": self.mime_type,
            "category": self.category.value,
            "name": self.name,
            "tags": list(self.tags),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "GarmentRecord":
        record_id = payload.get("id")
        image_data = payload.get("image_data")
        mime_type = payload.get("mime_type")
        if not record_id or not image_data or not mime_type:
            raise InvalidInputError("Stored garment is missing id, image data or mime type.")
        image = ImagePayload.from_base64(str(image_data), str(mime_type))
        return cls(
            id=str(record_id),
            image_data=image.data,
            mime_type=str(mime_type),
            category=Category.parse(payload.get("category")),
            name=str(payload.get("name") or ""),
            tags=normalize_tags(payload.get("tags") or ()),
        )


@dataclass(slots=True, frozen=True)
class UserModelPhoto:
    """The user's reference photo used as the base of every composite."""

    image_data: bytes
    mime_type: str

    @property
    def image(self) -> ImagePayload:
        return ImagePayload(self.image_data, self.mime_type)

    def to_dict(self) -> dict[str, Any]:
        return {
            "image_data": base64.b64encode(self.image_data).decode("ascii"),
            "mime_type": self.mime_type,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "UserModelPhoto":
        image_data = payload.get("image_data")
        mime_type = payload.get("mime_type")
        if not image_data or not mime_type:
            raise InvalidInputError("Stored photo is missing image data or mime type.")
        image = ImagePayload.from_base64(str(image_data), str(mime_type))
        return cls(image_data=image.data, mime_type=str(mime_type))


@dataclass(slots=True, frozen=True)
class WeatherContext:
    """Current conditions used to enrich a recommendation request."""

    temperature_f: int
    description: str
    icon_id: str

    @property
    def icon_url(self) -> str:
        return f"https://openweathermap.org/img/wn/{self.icon_id}.png"

    def to_prompt_context(self) -> str:
        return f"The current weather is {self.temperature_f}°F and {self.description}."


@dataclass(slots=True, frozen=True)
class OutfitRecommendation:
    """Transient outfit idea returned by the recommendation request."""

    outfit_name: str
    description: str
    items: tuple[Category, ...] = field(default_factory=tuple)
