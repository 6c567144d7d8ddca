"""Image normalisation helpers."""

from __future__ import annotations

import asyncio
import logging
from io import BytesIO

from PIL import Image, UnidentifiedImageError

from closet.errors import ImageDecodeError, InvalidInputError
from closet.storage.models import ImagePayload

logger = logging.getLogger(__name__)

PNG_MIME = "image/png"
JPEG_MIME = "image/jpeg"


class ImageNormalizer:
    """Downscales images so their longer side fits a maximum dimension."""

    def __init__(self, jpeg_quality: int = 90) -> None:
        self._jpeg_quality = jpeg_quality

    def normalize(self, image: ImagePayload, max_dimension: int) -> ImagePayload:
        """Return ``image`` unchanged when it already fits, else a resized re-encode.

        PNG input stays PNG so transparency survives; anything else is written
        as JPEG at a fixed quality.
        """

        if max_dimension <= 0:
            raise InvalidInputError("max_dimension must be positive.")
        try:
            with Image.open(BytesIO(image.data)) as img:
                img.load()
                width, height = img.size
                if max(width, height) <= max_dimension:
                    return image
                is_png = img.format == "PNG" or image.mime_type == PNG_MIME
                target = _target_size(width, height, max_dimension)
                resized = img.resize(target, Image.Resampling.LANCZOS)
        except (UnidentifiedImageError, OSError, ValueError) as exc:
            raise ImageDecodeError(f"Image loading failed: {exc}") from exc

        buffer = BytesIO()
        try:
            if is_png:
                resized.save(buffer, format="PNG")
                mime_type = PNG_MIME
            else:
                if resized.mode not in ("RGB", "L"):
                    resized = resized.convert("RGB")
                resized.save(buffer, format="JPEG", quality=self._jpeg_quality)
                mime_type = JPEG_MIME
        except (OSError, ValueError) as exc:
            raise ImageDecodeError(f"Image encoding failed: {exc}") from exc

        logger.debug("Normalized image %sx%s -> %sx%s", width, height, *target)
        return ImagePayload(data=buffer.getvalue(), mime_type=mime_type)

    async def normalize_async(self, image: ImagePayload, max_dimension: int) -> ImagePayload:
        """Run :meth:`normalize` off the event loop."""

        return await asyncio.to_thread(self.normalize, image, max_dimension)


def _target_size(width: int, height: int, max_dimension: int) -> tuple[int, int]:
    if width >= height:
        return max_dimension, max(1, round(height * max_dimension / width))
    return max(1, round(width * max_dimension / height)), max_dimension


def normalize(image: ImagePayload, max_dimension: int, *, jpeg_quality: int = 90) -> ImagePayload:
    """Module-level shortcut around :class:`ImageNormalizer`."""

    return ImageNormalizer(jpeg_quality).normalize(image, max_dimension)
