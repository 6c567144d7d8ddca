"""Handlers for the manual try-on board and follow-up edits."""

from __future__ import annotations

from aiogram import F, Router
from aiogram.filters import Command, CommandObject
from aiogram.types import Message

from closet.bot_service.context import BotContext
from closet.bot_service.filters import StageFilter
from closet.bot_service.media import as_input_file
from closet.bot_service.state_machine import ConversationState, UserSession
from closet.errors import ClosetError
from closet.imggen import TryOnSession


async def _board(context: BotContext, session: UserSession) -> TryOnSession:
    if session.try_on is None:
        session.try_on = await context.logic.start_try_on(session.user_id)
    return session.try_on


def setup(router: Router, context: BotContext) -> None:
    """Register /wear, /unwear, /tryon and the edit handler."""

    @router.message(Command("wear"))
    async def handle_wear(message: Message, command: CommandObject) -> None:
        session = context.state_machine.session(str(message.from_user.id))
        catalog = await context.logic.catalog(session.user_id)
        item = catalog.get_item((command.args or "").strip())
        if item is None:
            await message.answer("Usage: /wear <id>; see /closet for ids.")
            return
        try:
            board = await _board(context, session)
        except ClosetError as exc:
            await message.answer(str(exc))
            return
        if not board.add_item(item):
            await message.answer(f"{item.name} is already on the board.")
            return
        names = ", ".join(entry.name for entry in board.items)
        await message.answer(f"On the board: {names}. Send /tryon when ready.")

    @router.message(Command("unwear"))
    async def handle_unwear(message: Message, command: CommandObject) -> None:
        session = context.state_machine.session(str(message.from_user.id))
        if session.try_on is None or not session.try_on.remove_item((command.args or "").strip()):
            await message.answer("That item is not on the board.")
            return
        await message.answer(f"{len(session.try_on.items)} item(s) left on the board.")

    @router.message(Command("tryon"))
    async def handle_tryon(message: Message) -> None:
        session = context.state_machine.session(str(message.from_user.id))
        if session.try_on is None:
            await message.answer("Add items with /wear <id> first.")
            return
        await message.answer("Creating your look...")
        try:
            image = await session.try_on.generate()
        except ClosetError as exc:
            await message.answer(f"Could not generate outfit: {exc}")
            return
        if image is None:
            await message.answer("The board changed while generating; send /tryon again.")
            return
        session.state = ConversationState.TRYING_ON
        await message.answer_photo(
            as_input_file(image, "outfit"),
            caption="Here's your look! Describe any change, e.g. \"make the shirt red\".",
        )

    @router.message(
        StageFilter(context, ConversationState.TRYING_ON),
        F.text,
        ~F.text.startswith("/"),
    )
    async def handle_edit(message: Message, session: UserSession) -> None:
        if session.try_on is None or session.try_on.image is None:
            await message.answer("Generate a look with /tryon first.")
            return
        try:
            image = await session.try_on.refine(message.text or "")
        except ClosetError as exc:
            await message.answer(f"Failed to edit image: {exc}")
            return
        if image is None:
            return
        await message.answer_photo(as_input_file(image, "outfit"), caption="Updated. Keep describing edits if you like.")
