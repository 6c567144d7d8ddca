"""Per-user conversation state for the Telegram front end."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from closet.advisor import RecommendationOrchestrator
from closet.imggen import TryOnSession
from closet.storage import GarmentDraft, ImagePayload


class ConversationState(str, Enum):
    """Conversation stages of the bot."""

    AWAITING_PHOTO = "awaiting_photo"
    AWAITING_GARMENT = "awaiting_garment"
    AWAITING_CATEGORY = "awaiting_category"
    REVIEWING_DRAFT = "reviewing_draft"
    TRYING_ON = "trying_on"
    ADVISING = "advising"


@dataclass(slots=True)
class UserSession:
    """Transient per-user objects; the catalog itself lives in storage."""

    user_id: str
    state: ConversationState = ConversationState.AWAITING_PHOTO
    expecting_user_photo: bool = False
    pending_upload: ImagePayload | None = None
    draft: GarmentDraft | None = None
    try_on: TryOnSession | None = None
    advisor: RecommendationOrchestrator | None = None


class StateMachine:
    """Keeps one in-memory session per Telegram user."""

    def __init__(self) -> None:
        self._sessions: dict[str, UserSession] = {}

    def session(self, user_id: str) -> UserSession:
        if user_id not in self._sessions:
            self._sessions[user_id] = UserSession(user_id=user_id)
        return self._sessions[user_id]

    def current(self, user_id: str) -> ConversationState:
        return self.session(user_id).state

    def set_state(self, user_id: str, state: ConversationState) -> UserSession:
        session = self.session(user_id)
        session.state = state
        return session
