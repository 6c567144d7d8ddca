"""Async wrapper around the AITunnel API endpoints."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from io import BytesIO
from typing import Any, Mapping, Sequence

import httpx
from openai import APIConnectionError, APIStatusError, AsyncOpenAI, BadRequestError
from PIL import Image, UnidentifiedImageError

from closet.config.settings import ClosetSettings
from closet.errors import (
    BackendRequestError,
    BackendResponseError,
    ImageDecodeError,
    InvalidInputError,
    SafetyBlockedError,
)
from closet.storage.models import ImagePayload

logger = logging.getLogger(__name__)

SAFETY_FINISH_REASONS = {"content_filter"}
SAFETY_NATIVE_REASONS = {"SAFETY", "PROHIBITED_CONTENT", "BLOCKLIST", "SPII", "IMAGE_SAFETY"}
SAFETY_ERROR_CODES = {"content_policy_violation", "moderation_blocked", "content_filter"}


@dataclass(slots=True)
class MessageParts:
    """Image and text parts pulled out of a chat completion message."""

    images: list[ImagePayload] = field(default_factory=list)
    texts: list[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "".join(self.texts).strip()


class AITunnelClient:
    """Chat completions over httpx and image edits through the OpenAI SDK."""

    def __init__(
        self,
        settings: ClosetSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        openai_client: AsyncOpenAI | None = None,
    ) -> None:
        base_url = settings.aitunnel_base_url.rstrip("/")
        self._settings = settings
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=settings.request_timeout,
            headers={
                "Authorization": f"Bearer {settings.aitunnel_api_key}",
            },
            transport=transport,
        )
        self._openai = openai_client or AsyncOpenAI(
            api_key=settings.aitunnel_api_key,
            base_url=base_url,
            timeout=settings.request_timeout,
            max_retries=0,
        )

    async def close(self) -> None:
        """Close the underlying HTTP clients."""

        await self._client.aclose()
        await self._openai.close()

    async def _request_json(self, method: str, endpoint: str, *, json_body: Mapping[str, Any]) -> dict[str, Any]:
        try:
            response = await self._client.request(method, endpoint, json=json_body)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise BackendRequestError("Timed out waiting for the AI service.") from exc
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            _raise_for_error_body(_safe_json(exc.response))
            raise BackendRequestError(
                f"The AI service returned error {status}: {exc.response.text}",
                status_code=status,
            ) from exc
        except httpx.HTTPError as exc:
            raise BackendRequestError(f"Could not reach the AI service: {exc}") from exc

        payload = _safe_json(response)
        if payload is None:
            raise BackendResponseError("The AI service returned a body that is not JSON.")
        return payload

    async def chat_completion(
        self,
        messages: Sequence[Mapping[str, Any]],
        *,
        model: str | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """Call the OpenAI-compatible chat completions endpoint."""

        payload: dict[str, Any] = {
            "model": model or self._settings.chat_model,
            "messages": list(messages),
        }
        payload.update(kwargs)
        result = await self._request_json("POST", "/chat/completions", json_body=payload)
        _raise_for_safety(result)
        return result

    async def generate_with_image(self, prompt: str, images: Sequence[ImagePayload]) -> dict[str, Any]:
        """Send images plus an instruction to the image model, asking for image and text back."""

        content: list[dict[str, Any]] = [
            {"type": "image_url", "image_url": {"url": _data_url(image)}} for image in images
        ]
        content.append({"type": "text", "text": prompt})
        return await self.chat_completion(
            [{"role": "user", "content": content}],
            model=self._settings.image_model,
            modalities=["image", "text"],
        )

    async def edit_image(
        self,
        prompt: str,
        images: Sequence[ImagePayload],
        *,
        options: Mapping[str, Any] | None = None,
    ) -> ImagePayload:
        """Edit the first image using the remaining ones as references; return the result image."""

        if not images:
            raise InvalidInputError("At least one image is required for an edit.")
        image_files = [
            _image_as_png(image, "base" if index == 0 else f"reference_{index}")
            for index, image in enumerate(images)
        ]
        kwargs: dict[str, Any] = {
            "model": self._settings.image_model,
            "image": image_files,
            "prompt": prompt,
        }
        if options:
            kwargs.update(options)
        try:
            result = await self._openai.images.edit(**kwargs)
        except BadRequestError as exc:
            if _error_code(exc) in SAFETY_ERROR_CODES:
                raise SafetyBlockedError(f"The request was blocked for safety reasons: {exc.message}") from exc
            raise BackendRequestError(str(exc), status_code=exc.status_code) from exc
        except APIStatusError as exc:
            raise BackendRequestError(str(exc), status_code=exc.status_code) from exc
        except APIConnectionError as exc:
            raise BackendRequestError(f"Could not reach the AI service: {exc}") from exc
        finally:
            for file in image_files:
                file.close()
        return _image_from_edit_result(result)


def extract_message_parts(payload: Mapping[str, Any]) -> MessageParts:
    """Collect image and text parts from the first choice of a chat completion."""

    parts = MessageParts()
    choice = _first_choice(payload)
    if choice is None:
        logger.warning("AI response has no choices.")
        return parts
    message = _message_of(choice)

    for entry in message.get("images") or []:
        _collect_image(entry, parts)

    content = message.get("content")
    if isinstance(content, str):
        if content.startswith("data:"):
            _collect_image({"image_url": {"url": content}}, parts)
        elif content.strip():
            parts.texts.append(content)
    elif isinstance(content, list):
        for entry in content:
            if not isinstance(entry, Mapping):
                continue
            if entry.get("type") == "text" and entry.get("text"):
                parts.texts.append(str(entry["text"]))
            elif entry.get("type") in ("image_url", "image"):
                _collect_image(entry, parts)
    return parts


def _collect_image(entry: Any, parts: MessageParts) -> None:
    if not isinstance(entry, Mapping):
        return
    image_info = entry.get("image_url") or {}
    url = image_info.get("url") if isinstance(image_info, Mapping) else image_info
    if not isinstance(url, str) or not url.startswith("data:"):
        logger.warning("Skipping image part without inline data.")
        return
    try:
        parts.images.append(ImagePayload.from_data_url(url))
    except InvalidInputError as exc:
        raise BackendResponseError(f"The model returned an unreadable image: {exc}") from exc


def _raise_for_safety(payload: Mapping[str, Any]) -> None:
    _raise_for_error_body(payload)

    feedback = payload.get("prompt_feedback") or {}
    if isinstance(feedback, Mapping) and feedback.get("block_reason"):
        reason = str(feedback["block_reason"])
        raise SafetyBlockedError(f"The request was blocked for safety reasons related to: {reason}.", [reason])

    choice = _first_choice(payload)
    if choice is None:
        return
    message = _message_of(choice)
    blocked = _blocked_categories(choice.get("safety_ratings") or message.get("safety_ratings") or [])
    native_reason = str(choice.get("native_finish_reason") or "").upper()
    flagged = (
        choice.get("finish_reason") in SAFETY_FINISH_REASONS
        or native_reason in SAFETY_NATIVE_REASONS
        or bool(blocked)
    )
    if flagged:
        detail = ", ".join(blocked) or native_reason or "content policy"
        raise SafetyBlockedError(
            f"The request was blocked for safety reasons related to: {detail}.",
            blocked,
        )
    if message.get("refusal"):
        raise SafetyBlockedError(f"The model declined the request: {message['refusal']}")


def _first_choice(payload: Mapping[str, Any]) -> Mapping[str, Any] | None:
    choices = payload.get("choices") or []
    if not isinstance(choices, list):
        raise BackendResponseError("The AI service returned malformed choices.")
    if not choices:
        return None
    if not isinstance(choices[0], Mapping):
        raise BackendResponseError("The AI service returned a malformed choice.")
    return choices[0]


def _message_of(choice: Mapping[str, Any]) -> Mapping[str, Any]:
    message = choice.get("message") or {}
    if not isinstance(message, Mapping):
        raise BackendResponseError("The AI service returned a malformed message.")
    return message


def _raise_for_error_body(payload: Mapping[str, Any] | None) -> None:
    if not isinstance(payload, Mapping):
        return
    error = payload.get("error")
    if isinstance(error, Mapping) and str(error.get("code") or "") in SAFETY_ERROR_CODES:
        raise SafetyBlockedError(f"The request was blocked for safety reasons: {error.get('message', '')}".strip())


def _blocked_categories(ratings: Sequence[Any]) -> list[str]:
    return [
        str(rating.get("category"))
        for rating in ratings
        if isinstance(rating, Mapping) and rating.get("blocked") and rating.get("category")
    ]


def _safe_json(response: httpx.Response) -> dict[str, Any] | None:
    if not response.content:
        return {}
    try:
        body = response.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def _error_code(exc: APIStatusError) -> str:
    code = getattr(exc, "code", None)
    if code:
        return str(code)
    body = exc.body if isinstance(exc.body, Mapping) else {}
    error = body.get("error", body)
    return str(error.get("code") or "") if isinstance(error, Mapping) else ""


def _data_url(image: ImagePayload) -> str:
    if not image.mime_type:
        raise InvalidInputError("Missing image mime type.")
    return image.data_url


def _image_as_png(image: ImagePayload, name_prefix: str) -> BytesIO:
    try:
        with Image.open(BytesIO(image.data)) as img:
            img = img.convert("RGBA")
            buffer = BytesIO()
            img.save(buffer, format="PNG")
    except (UnidentifiedImageError, OSError) as exc:
        raise ImageDecodeError(f"Image {name_prefix} is not a supported image.") from exc
    buffer.seek(0)
    buffer.name = f"{name_prefix}.png"
    return buffer


def _image_from_edit_result(result: Any) -> ImagePayload:
    data_attr = getattr(result, "data", None)
    if not isinstance(data_attr, list) or not data_attr:
        raise BackendResponseError("The model did not return an image.")
    primary = data_attr[0]
    image_base64 = getattr(primary, "b64_json", None)
    image_url = getattr(primary, "url", None)
    if image_base64 is None and isinstance(primary, Mapping):
        image_base64 = primary.get("b64_json")
        image_url = image_url or primary.get("url")

    try:
        if image_base64:
            image = ImagePayload.from_base64(image_base64, None)
            return ImagePayload(image.data, guess_mime_type(image.data))
        if isinstance(image_url, str) and image_url.startswith("data:"):
            return ImagePayload.from_data_url(image_url)
    except InvalidInputError as exc:
        raise BackendResponseError(f"The model returned an unreadable image: {exc}") from exc
    raise BackendResponseError("The model did not return an image.")


def guess_mime_type(data: bytes) -> str:
    """Detect the image encoding from its signature, defaulting to PNG."""

    if data.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return "image/png"
