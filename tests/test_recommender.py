"""Tests for the recommendation request and garment selection."""

from __future__ import annotations

import json
import random
from types import SimpleNamespace
from typing import Any

import pytest
import pytest_mock

from closet.advisor import OutfitRecommender, OutfitSlot, resolved_items, select_items
from closet.advisor.recommender import parse_recommendation
from closet.errors import BackendResponseError, InvalidInputError
from closet.storage import Category, OutfitRecommendation, WeatherContext
from helpers import make_record


def _chat_reply(body: Any) -> dict[str, Any]:
    text = body if isinstance(body, str) else json.dumps(body)
    return {"choices": [{"message": {"content": text}}]}


def _recommender(mocker: pytest_mock.MockerFixture, body: Any) -> tuple[OutfitRecommender, SimpleNamespace]:
    client = SimpleNamespace(chat_completion=mocker.AsyncMock(return_value=_chat_reply(body)))
    return OutfitRecommender(client), client


@pytest.mark.asyncio
async def test_recommend_sends_schema_limited_to_available_categories(mocker: pytest_mock.MockerFixture) -> None:
    body = {"outfitName": "Casual Friday", "description": "Relaxed.", "items": ["Tops", "Shoes"]}
    recommender, client = _recommender(mocker, body)
    weather = WeatherContext(55, "Rain", "10d")

    recommendation = await recommender.recommend([Category.TOPS, Category.SHOES], weather)

    assert recommendation == OutfitRecommendation("Casual Friday", "Relaxed.", (Category.TOPS, Category.SHOES))
    messages = client.chat_completion.await_args.args[0]
    assert "The current weather is 55°F and Rain." in messages[0]["content"]
    schema = client.chat_completion.await_args.kwargs["response_format"]["json_schema"]["schema"]
    assert schema["properties"]["items"]["items"]["enum"] == ["Tops", "Shoes"]


@pytest.mark.asyncio
async def test_recommend_needs_two_categories(mocker: pytest_mock.MockerFixture) -> None:
    recommender, client = _recommender(mocker, {})

    with pytest.raises(InvalidInputError):
        await recommender.recommend([Category.TOPS, "tops"])

    client.chat_completion.assert_not_awaited()


@pytest.mark.asyncio
async def test_empty_items_fail(mocker: pytest_mock.MockerFixture) -> None:
    recommender, _ = _recommender(mocker, {"outfitName": "Nothing", "description": "", "items": []})

    with pytest.raises(BackendResponseError, match="did not suggest any items"):
        await recommender.recommend([Category.TOPS, Category.BOTTOMS])


@pytest.mark.parametrize(
    "text",
    [
        "not json",
        json.dumps({"description": "x", "items": ["Tops"]}),
        json.dumps({"outfitName": "X", "description": "x", "items": ["Hats"]}),
        json.dumps({"outfitName": "X", "description": "x", "items": ["Accessories"]}),
    ],
)
def test_parse_recommendation_rejects_invalid_payloads(text: str) -> None:
    with pytest.raises(BackendResponseError):
        parse_recommendation(text, [Category.TOPS, Category.BOTTOMS])


def test_parse_recommendation_drops_duplicates() -> None:
    text = json.dumps({"outfitName": " Look ", "description": "d", "items": ["Tops", "tops", "Bottoms"]})

    recommendation = parse_recommendation(text, [Category.TOPS, Category.BOTTOMS])

    assert recommendation.outfit_name == "Look"
    assert recommendation.items == (Category.TOPS, Category.BOTTOMS)


def test_select_items_picks_from_matching_category() -> None:
    tops = [make_record("t1", Category.TOPS), make_record("t2", Category.TOPS)]
    recommendation = OutfitRecommendation("Look", "d", (Category.TOPS, Category.SHOES))

    slots = select_items(recommendation, {Category.TOPS: tops}, random.Random(3))

    assert slots[0].category is Category.TOPS and slots[0].item in tops
    assert slots[1] == OutfitSlot(Category.SHOES, None)
    assert resolved_items(slots) == [slots[0].item]
