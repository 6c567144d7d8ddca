"""Start command handler."""

from __future__ import annotations

from aiogram import Router
from aiogram.filters import CommandStart
from aiogram.types import Message

from closet.bot_service.context import BotContext
from closet.bot_service.state_machine import ConversationState

HELP_TEXT = (
    "Send a garment photo to add it to your closet.\n"
    "/closet, /find <word>, /remove <id> manage the closet.\n"
    "/wear <id>, /unwear <id>, /tryon build a look; then describe an edit in plain words.\n"
    "/advise, /inspire, /shuffle, /wearlook get outfit ideas from your closet.\n"
    "/photo replaces your model photo."
)


def setup(router: Router, context: BotContext) -> None:
    """Register /start handler."""

    @router.message(CommandStart())
    async def handle_start(message: Message) -> None:
        user_id = str(message.from_user.id)
        catalog = await context.logic.catalog(user_id)
        if catalog.user_photo is None:
            context.state_machine.set_state(user_id, ConversationState.AWAITING_PHOTO)
            await message.answer(
                "Welcome to your virtual wardrobe! Send a full-body photo of yourself; "
                "it will be your model for every try-on.",
            )
            return
        context.state_machine.set_state(user_id, ConversationState.AWAITING_GARMENT)
        await message.answer(f"Welcome back! {len(catalog.items)} item(s) in your closet.\n\n{HELP_TEXT}")
