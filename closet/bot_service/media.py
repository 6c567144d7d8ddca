"""Conversions between Telegram media and image payloads."""

from __future__ import annotations

from aiogram.types import BufferedInputFile, Message

from closet.storage import ImagePayload

_EXTENSIONS = {"image/png": "png", "image/jpeg": "jpg", "image/webp": "webp"}


async def download_photo(message: Message) -> ImagePayload:
    """Fetch the largest size of the photo attached to ``message``."""

    file = message.photo[-1]
    file_info = await message.bot.get_file(file.file_id)
    file_stream = await message.bot.download_file(file_info.file_path)
    try:
        data = file_stream.read()
    finally:
        file_stream.close()
    # Telegram re-encodes every photo as JPEG.
    return ImagePayload(data=data, mime_type="image/jpeg")


def as_input_file(image: ImagePayload, stem: str) -> BufferedInputFile:
    extension = _EXTENSIONS.get(image.mime_type or "", "png")
    return BufferedInputFile(image.data, filename=f"{stem}.{extension}")
