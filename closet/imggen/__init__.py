"""Prompt building and the image generation stages."""

from .image_gen import OutfitComposer
from .isolation import GarmentIsolationStage, IsolationResult
from .prompt_builder import PromptBuilder
from .refinement import ImageRefiner, RefinementSession
from .tryon import TryOnSession

__all__ = [
    "GarmentIsolationStage",
    "ImageRefiner",
    "IsolationResult",
    "OutfitComposer",
    "PromptBuilder",
    "RefinementSession",
    "TryOnSession",
]
