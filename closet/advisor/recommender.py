"""Outfit recommendation request against the chat model."""

from __future__ import annotations

import json
import logging
from typing import Any, Sequence

from pydantic import BaseModel, Field, ValidationError

from closet.api.aitunnel_client import AITunnelClient, extract_message_parts
from closet.errors import BackendResponseError, ClosetError, InvalidInputError
from closet.imggen.prompt_builder import PromptBuilder
from closet.storage.models import Category, OutfitRecommendation, WeatherContext

logger = logging.getLogger(__name__)

MIN_CATEGORIES = 2


class RecommendationPayload(BaseModel):
    """Structured response returned by the chat model."""

    outfitName: str = Field(min_length=1)
    description: str
    items: list[str]


def _response_schema(categories: Sequence[Category]) -> dict[str, Any]:
    return {
        "type": "json_schema",
        "json_schema": {
            "name": "outfit_recommendation",
            "strict": True,
            "schema": {
                "type": "object",
                "properties": {
                    "outfitName": {
                        "type": "string",
                        "description": "A catchy name for the outfit style.",
                    },
                    "description": {
                        "type": "string",
                        "description": "A brief description of the outfit, its style, and what occasion it's for.",
                    },
                    "items": {
                        "type": "array",
                        "description": "A list of clothing categories needed for this outfit.",
                        "items": {
                            "type": "string",
                            "enum": [category.value for category in categories],
                        },
                    },
                },
                "required": ["outfitName", "description", "items"],
                "additionalProperties": False,
            },
        },
    }


class OutfitRecommender:
    """Asks the chat model for one outfit built from the available categories."""

    def __init__(self, client: AITunnelClient, *, prompt_builder: PromptBuilder | None = None) -> None:
        self._client = client
        self._prompt_builder = prompt_builder or PromptBuilder()

    async def recommend(
        self,
        categories: Sequence[Category],
        weather: WeatherContext | None = None,
    ) -> OutfitRecommendation:
        available = list(dict.fromkeys(Category.parse(category) for category in categories))
        if len(available) < MIN_CATEGORIES:
            raise InvalidInputError(
                "Please add items from at least two different categories to your closet "
                "to get outfit recommendations.",
            )

        messages = [{"role": "user", "content": self._prompt_builder.recommendation(available, weather)}]
        try:
            response = await self._client.chat_completion(
                messages,
                response_format=_response_schema(available),
            )
        except ClosetError as exc:
            logger.error("Error generating outfit recommendation: %s", exc)
            raise
        return parse_recommendation(extract_message_parts(response).text, available)


def parse_recommendation(text: str, available: Sequence[Category]) -> OutfitRecommendation:
    """Validate the model's JSON against the fixed categories and the supplied subset."""

    try:
        payload = RecommendationPayload.model_validate(json.loads(text))
    except (json.JSONDecodeError, ValidationError) as exc:
        logger.warning("Failed to parse recommendation JSON: %r", text[:200])
        raise BackendResponseError("The model returned a recommendation that could not be parsed.") from exc

    if not payload.items:
        raise BackendResponseError("The model did not suggest any items for the outfit.")

    items: list[Category] = []
    for raw in payload.items:
        try:
            category = Category.parse(raw)
        except InvalidInputError as exc:
            raise BackendResponseError(f"The model suggested an unknown category: {raw!r}.") from exc
        if category not in available:
            raise BackendResponseError(f"The model suggested a category that is not in the closet: {raw!r}.")
        if category not in items:
            items.append(category)

    return OutfitRecommendation(
        outfit_name=payload.outfitName.strip(),
        description=payload.description.strip(),
        items=tuple(items),
    )
