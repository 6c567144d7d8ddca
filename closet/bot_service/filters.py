"""Custom aiogram filters used by the bot."""

from __future__ import annotations

from typing import Any

from aiogram.filters import BaseFilter
from aiogram.types import Message

from closet.bot_service.context import BotContext
from closet.bot_service.state_machine import ConversationState


class StageFilter(BaseFilter):
    """Matches messages when the user's session is at the expected stage."""

    def __init__(self, context: BotContext, expected: ConversationState) -> None:
        self._context = context
        self._expected = expected

    async def __call__(self, message: Message) -> bool | dict[str, Any]:
        session = self._context.state_machine.session(str(message.from_user.id))
        if session.state == self._expected:
            return {"session": session}
        return False
