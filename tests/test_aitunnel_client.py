"""Tests for the AITunnel gateway client."""

from __future__ import annotations

import base64
import json
from types import SimpleNamespace
from typing import Any

import httpx
import pytest
import pytest_mock
from openai import BadRequestError, InternalServerError

from closet.api import AITunnelClient, extract_message_parts
from closet.api.aitunnel_client import guess_mime_type
from closet.config.settings import ClosetSettings
from closet.errors import (
    BackendRequestError,
    BackendResponseError,
    InvalidInputError,
    SafetyBlockedError,
)
from closet.storage import ImagePayload
from helpers import make_image

PNG_URL = "data:image/png;base64," + base64.b64encode(b"\x89PNG-bytes").decode()


def _client(settings: ClosetSettings, handler, openai_client: Any = None) -> AITunnelClient:
    return AITunnelClient(
        settings,
        transport=httpx.MockTransport(handler),
        openai_client=openai_client or SimpleNamespace(),
    )


def _reply(body: dict[str, Any], status: int = 200):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json=body)

    return handler


def _api_error(cls, status: int, body: dict[str, Any]):
    request = httpx.Request("POST", "https://gateway.test/v1/images/edits")
    response = httpx.Response(status, request=request, json={"error": body})
    return cls(body.get("message", "error"), response=response, body=body)


@pytest.mark.asyncio
async def test_generate_with_image_sends_images_then_text(settings: ClosetSettings) -> None:
    captured: dict[str, Any] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["auth"] = request.headers["Authorization"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": "ok"}}]})

    client = _client(settings, handler)
    await client.generate_with_image("describe", [ImagePayload(b"abc", "image/jpeg")])

    assert captured["url"] == "https://gateway.test/v1/chat/completions"
    assert captured["auth"] == "Bearer key"
    body = captured["body"]
    assert body["model"] == settings.image_model
    assert body["modalities"] == ["image", "text"]
    content = body["messages"][0]["content"]
    assert content[0] == {"type": "image_url", "image_url": {"url": "data:image/jpeg;base64,YWJj"}}
    assert content[1] == {"type": "text", "text": "describe"}


@pytest.mark.asyncio
async def test_generate_with_image_requires_mime_type(settings: ClosetSettings) -> None:
    client = _client(settings, _reply({}))

    with pytest.raises(InvalidInputError):
        await client.generate_with_image("describe", [ImagePayload(b"abc", None)])


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "choice",
    [
        {"finish_reason": "content_filter", "message": {}},
        {"native_finish_reason": "IMAGE_SAFETY", "message": {}},
        {"safety_ratings": [{"category": "HARM_CATEGORY_HARASSMENT", "blocked": True}], "message": {}},
        {"message": {"refusal": "I can't help with that."}},
    ],
)
async def test_safety_signals_raise_safety_error(settings: ClosetSettings, choice: dict[str, Any]) -> None:
    client = _client(settings, _reply({"choices": [choice]}))

    with pytest.raises(SafetyBlockedError):
        await client.chat_completion([{"role": "user", "content": "hi"}])


@pytest.mark.asyncio
async def test_blocked_categories_are_reported(settings: ClosetSettings) -> None:
    body = {
        "choices": [
            {
                "message": {},
                "safety_ratings": [
                    {"category": "HARM_CATEGORY_DANGEROUS_CONTENT", "blocked": True},
                    {"category": "HARM_CATEGORY_HATE_SPEECH", "blocked": False},
                ],
            },
        ],
    }
    client = _client(settings, _reply(body))

    with pytest.raises(SafetyBlockedError) as excinfo:
        await client.chat_completion([])

    assert excinfo.value.blocked_categories == ("HARM_CATEGORY_DANGEROUS_CONTENT",)
    assert "HARM_CATEGORY_DANGEROUS_CONTENT" in str(excinfo.value)


@pytest.mark.asyncio
async def test_prompt_feedback_block_raises(settings: ClosetSettings) -> None:
    client = _client(settings, _reply({"prompt_feedback": {"block_reason": "SAFETY"}, "choices": []}))

    with pytest.raises(SafetyBlockedError):
        await client.chat_completion([])


@pytest.mark.asyncio
async def test_http_error_maps_to_request_error(settings: ClosetSettings) -> None:
    client = _client(settings, _reply({"error": {"message": "boom"}}, status=502))

    with pytest.raises(BackendRequestError) as excinfo:
        await client.chat_completion([])

    assert excinfo.value.status_code == 502


@pytest.mark.asyncio
async def test_http_error_with_safety_code_maps_to_safety(settings: ClosetSettings) -> None:
    body = {"error": {"code": "content_policy_violation", "message": "nope"}}
    client = _client(settings, _reply(body, status=400))

    with pytest.raises(SafetyBlockedError):
        await client.chat_completion([])


@pytest.mark.asyncio
async def test_transport_failure_maps_to_request_error(settings: ClosetSettings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    client = _client(settings, handler)

    with pytest.raises(BackendRequestError):
        await client.chat_completion([])


@pytest.mark.asyncio
async def test_non_json_body_is_response_error(settings: ClosetSettings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"<html>", headers={"content-type": "text/html"})

    client = _client(settings, handler)

    with pytest.raises(BackendResponseError):
        await client.chat_completion([])


def test_extract_message_parts_reads_images_and_text() -> None:
    payload = {
        "choices": [
            {
                "message": {
                    "content": "Blue Shirt",
                    "images": [{"type": "image_url", "image_url": {"url": PNG_URL}}],
                },
            },
        ],
    }

    parts = extract_message_parts(payload)

    assert parts.text == "Blue Shirt"
    assert parts.images == [ImagePayload(b"\x89PNG-bytes", "image/png")]


def test_extract_message_parts_handles_list_content_and_remote_urls() -> None:
    payload = {
        "choices": [
            {
                "message": {
                    "content": [
                        {"type": "text", "text": "part one "},
                        {"type": "image_url", "image_url": {"url": "https://cdn.test/a.png"}},
                        {"type": "image_url", "image_url": {"url": PNG_URL}},
                        {"type": "text", "text": "part two"},
                    ],
                },
            },
        ],
    }

    parts = extract_message_parts(payload)

    assert parts.text == "part one part two"
    assert len(parts.images) == 1


def test_extract_message_parts_rejects_broken_data_url() -> None:
    payload = {"choices": [{"message": {"images": [{"image_url": {"url": "data:image/png;base64,@@@"}}]}}]}

    with pytest.raises(BackendResponseError):
        extract_message_parts(payload)


def test_extract_message_parts_without_choices_is_empty() -> None:
    parts = extract_message_parts({})

    assert parts.images == [] and parts.text == ""


@pytest.mark.asyncio
async def test_edit_image_returns_decoded_result(settings: ClosetSettings, mocker: pytest_mock.MockerFixture) -> None:
    result_bytes = make_image(8, 8, fmt="JPEG").data
    openai_client = SimpleNamespace(images=SimpleNamespace(edit=mocker.AsyncMock()))
    openai_client.images.edit.return_value = SimpleNamespace(
        data=[SimpleNamespace(b64_json=base64.b64encode(result_bytes).decode(), url=None)],
    )
    client = _client(settings, _reply({}), openai_client)

    image = await client.edit_image("prompt", [make_image(), make_image(fmt="JPEG")], options={"size": "1024x1024"})

    assert image == ImagePayload(result_bytes, "image/jpeg")
    kwargs = openai_client.images.edit.await_args.kwargs
    assert kwargs["model"] == settings.image_model
    assert kwargs["prompt"] == "prompt"
    assert kwargs["size"] == "1024x1024"
    assert [file.name for file in kwargs["image"]] == ["base.png", "reference_1.png"]


@pytest.mark.asyncio
async def test_edit_image_without_image_in_result(settings: ClosetSettings, mocker: pytest_mock.MockerFixture) -> None:
    openai_client = SimpleNamespace(images=SimpleNamespace(edit=mocker.AsyncMock(return_value=SimpleNamespace(data=[]))))
    client = _client(settings, _reply({}), openai_client)

    with pytest.raises(BackendResponseError):
        await client.edit_image("prompt", [make_image()])


@pytest.mark.asyncio
async def test_edit_image_maps_moderation_error(settings: ClosetSettings, mocker: pytest_mock.MockerFixture) -> None:
    error = _api_error(BadRequestError, 400, {"code": "moderation_blocked", "message": "blocked"})
    openai_client = SimpleNamespace(images=SimpleNamespace(edit=mocker.AsyncMock(side_effect=error)))
    client = _client(settings, _reply({}), openai_client)

    with pytest.raises(SafetyBlockedError):
        await client.edit_image("prompt", [make_image()])


@pytest.mark.asyncio
async def test_edit_image_maps_server_error(settings: ClosetSettings, mocker: pytest_mock.MockerFixture) -> None:
    error = _api_error(InternalServerError, 500, {"message": "overloaded"})
    openai_client = SimpleNamespace(images=SimpleNamespace(edit=mocker.AsyncMock(side_effect=error)))
    client = _client(settings, _reply({}), openai_client)

    with pytest.raises(BackendRequestError) as excinfo:
        await client.edit_image("prompt", [make_image()])

    assert excinfo.value.status_code == 500
    openai_client.images.edit.assert_awaited_once()


def test_guess_mime_type() -> None:
    assert guess_mime_type(b"\xff\xd8\xff\xe0rest") == "image/jpeg"
    assert guess_mime_type(b"RIFF\x00\x00\x00\x00WEBPVP8") == "image/webp"
    assert guess_mime_type(b"\x89PNG") == "image/png"


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [{"choices": [None]}, {"choices": [{"message": "text"}]}, {"choices": "none"}])
async def test_malformed_choices_are_response_errors(settings: ClosetSettings, body: dict[str, Any]) -> None:
    client = _client(settings, _reply(body))

    with pytest.raises(BackendResponseError):
        await client.chat_completion([])
    with pytest.raises(BackendResponseError):
        extract_message_parts(body)
