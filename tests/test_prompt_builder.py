"""Tests for prompt construction."""

from __future__ import annotations

from closet.imggen import PromptBuilder
from closet.storage import Category, WeatherContext


def test_isolation_prompt_mentions_category_and_output_parts() -> None:
    prompt = PromptBuilder().isolation(Category.SHOES)

    assert "'Shoes'" in prompt
    assert "transparent" in prompt
    assert '"tags"' in prompt


def test_composition_prompt_counts_garments() -> None:
    builder = PromptBuilder()

    assert "1 image(s)" in builder.composition(1)
    assert "3 image(s)" in builder.composition(3)


def test_refinement_prompt_quotes_instruction() -> None:
    prompt = PromptBuilder().refinement("  add a red scarf ")

    assert 'Edit request: "add a red scarf"' in prompt


def test_recommendation_prompt_with_and_without_weather() -> None:
    builder = PromptBuilder()
    categories = [Category.TOPS, Category.BOTTOMS]

    generic = builder.recommendation(categories)
    contextual = builder.recommendation(categories, WeatherContext(41, "Snow", "13d"))

    assert "Tops, Bottoms" in generic
    assert "°F" not in generic
    assert "The current weather is 41°F and Snow." in contextual
