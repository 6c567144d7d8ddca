"""Weather-aware outfit recommendations drawn from the closet."""

from .orchestrator import AdvisorState, RecommendationOrchestrator
from .recommender import OutfitRecommender
from .selection import OutfitSlot, resolved_items, select_items

__all__ = [
    "AdvisorState",
    "OutfitRecommender",
    "OutfitSlot",
    "RecommendationOrchestrator",
    "resolved_items",
    "select_items",
]
