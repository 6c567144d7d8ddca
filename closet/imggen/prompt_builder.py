"""Prompt construction for the isolation, composition, refinement and recommendation requests."""

from __future__ import annotations

from typing import Sequence

from closet.storage.models import Category, WeatherContext


class PromptBuilder:
    """Builds the textual instructions sent next to the images."""

    def isolation(self, category: Category) -> str:
        """Instruction that crops one garment, removes the background and asks for metadata."""

        label = category.value
        return "\n".join(
            [
                "Role: you are a clothing isolation expert.",
                "Your only job is to isolate a single clothing item from the image, remove the background "
                "and return metadata about it.",
                f"Category provided by the user: '{label}'.",
                "",
                "Image processing rules:",
                f"- Find the single clothing item matching '{label}' and crop tightly around it.",
                "- The background MUST be 100% transparent.",
                "- Remove every human body part; show only the garment, as if on an invisible mannequin.",
                "- Do NOT generate any other object: no animals, vehicles, scenery or shapes. If the item "
                "cannot be isolated, return an error instead of inventing one.",
                "",
                "Metadata rules:",
                "- name: a concise descriptive name, e.g. \"Classic White T-Shirt\".",
                "- tags: 3 to 5 relevant lowercase keywords, e.g. \"white\", \"cotton\", \"casual\".",
                "",
                "Output: exactly two parts. Part 1 is the PNG image with the transparent background. "
                "Part 2 is a single minified JSON object {\"name\": \"...\", \"tags\": [\"...\"]} with no "
                "markdown around it.",
            ]
        )

    def composition(self, garment_count: int) -> str:
        """Instruction that dresses the person in the first image with the following garments."""

        noun = "item" if garment_count == 1 else "items"
        return "\n".join(
            [
                "Role: you are an expert virtual stylist and photo editor.",
                "Create a photorealistic image of the person in image 1 wearing the clothing "
                f"{noun} shown in the following {garment_count} image(s), which have transparent backgrounds.",
                "",
                "Strict rules:",
                "1. Preserve identity: face, hair, body shape and pose stay identical to the original photo.",
                "2. Keep the background of the original photo without any change.",
                "3. Realistic fit: natural draping, lighting and shadows that match the original photo.",
                "4. Layer the garments in the order they are supplied.",
                "5. No cropping: dimensions, aspect ratio and framing stay identical to the original photo; "
                "the whole person remains visible.",
                "6. Return a single high-quality image and no text.",
            ]
        )

    def refinement(self, instruction: str) -> str:
        """Instruction that applies one edit and keeps everything else untouched."""

        return "\n".join(
            [
                "Role: you are a precise photo editor.",
                "Apply the change described below to the image, and nothing else.",
                "",
                "Strict rules:",
                "1. Minimal change: only apply the requested edit.",
                "2. Everything else (person, clothing, background, quality, style) stays identical.",
                "3. The edit must be photorealistic and seamlessly integrated.",
                "",
                f"Edit request: \"{instruction.strip()}\"",
                "",
                "Return only the edited image, without text.",
            ]
        )

    def recommendation(
        self,
        categories: Sequence[Category],
        weather: WeatherContext | None = None,
    ) -> str:
        """Instruction asking for one outfit built from the available categories."""

        available = ", ".join(category.value for category in categories)
        lines = [
            "You are a fashion expert. A user has the following types of clothes in their virtual "
            f"closet: {available}.",
        ]
        if weather is not None:
            lines.append(weather.to_prompt_context())
        lines.extend(
            [
                "",
                "Create one stylish outfit combination that is appropriate for the current context.",
                "- The outfit must use at least two different categories from the provided list.",
                "- Describe the outfit, its style, and why it works.",
                "- Specify which categories of items are needed for the outfit.",
                "",
                "Respond ONLY with a JSON object that strictly follows the provided schema.",
            ]
        )
        return "\n".join(lines)
