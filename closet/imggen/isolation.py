"""Garment isolation: background removal plus generated name and tags."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from closet.api.aitunnel_client import AITunnelClient, extract_message_parts
from closet.errors import BackendResponseError, ClosetError, InvalidInputError
from closet.imggen.prompt_builder import PromptBuilder
from closet.imgproc.normalize import ImageNormalizer
from closet.storage.models import Category, GarmentDraft, ImagePayload, normalize_tags

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


class GarmentMetadata(BaseModel):
    """Structured text part of the isolation response."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1)
    tags: list[str]


@dataclass(slots=True, frozen=True)
class IsolationResult:
    """Normalized garment image plus metadata, ready to become a draft."""

    image: ImagePayload
    name: str
    tags: tuple[str, ...]
    category: Category
    original: ImagePayload

    def to_draft(self) -> GarmentDraft:
        return GarmentDraft(
            image=self.image,
            category=self.category,
            name=self.name,
            tags=self.tags,
            original=self.original,
        )


def parse_metadata(text: str) -> GarmentMetadata:
    """Parse the ``{name, tags}`` JSON, tolerating markdown code fences."""

    cleaned = _FENCE_RE.sub("", text).strip()
    try:
        return GarmentMetadata.model_validate(json.loads(cleaned))
    except (json.JSONDecodeError, ValidationError) as exc:
        logger.warning("Failed to parse garment metadata from model text: %r", text[:200])
        raise BackendResponseError("The model returned garment metadata that could not be parsed.") from exc


class GarmentIsolationStage:
    """Turns a raw upload and a chosen category into an isolated, tagged garment."""

    def __init__(
        self,
        client: AITunnelClient,
        normalizer: ImageNormalizer,
        *,
        max_dimension: int = 256,
        prompt_builder: PromptBuilder | None = None,
    ) -> None:
        self._client = client
        self._normalizer = normalizer
        self._max_dimension = max_dimension
        self._prompt_builder = prompt_builder or PromptBuilder()

    async def isolate(self, upload: ImagePayload, category: Category | str) -> IsolationResult:
        if not upload.mime_type:
            raise InvalidInputError("Missing image mime type for processing.")
        if not upload.data:
            raise InvalidInputError("The uploaded image is empty.")
        chosen = Category.parse(category)

        prompt = self._prompt_builder.isolation(chosen)
        try:
            response = await self._client.generate_with_image(prompt, [upload])
        except ClosetError as exc:
            logger.error("Garment isolation failed: %s", exc)
            raise

        parts = extract_message_parts(response)
        if not parts.images or not parts.text:
            raise BackendResponseError(
                "The model response was incomplete. It did not provide both a valid image "
                "and the required metadata.",
            )
        if len(parts.images) > 1:
            logger.warning("Isolation returned %d images; using the first.", len(parts.images))
        metadata = parse_metadata(parts.text)

        returned = parts.images[0]
        processed = ImagePayload(returned.data, returned.mime_type or "image/png")
        normalized = await self._normalizer.normalize_async(processed, self._max_dimension)
        logger.info("Isolated %s garment '%s'.", chosen.value, metadata.name)
        return IsolationResult(
            image=normalized,
            name=metadata.name,
            tags=normalize_tags(metadata.tags),
            category=chosen,
            original=upload,
        )
