"""Handlers for the onboarding photo and for adding garments."""

from __future__ import annotations

import logging

from aiogram import F, Router
from aiogram.exceptions import TelegramNetworkError
from aiogram.filters import Command, CommandObject
from aiogram.types import KeyboardButton, Message, ReplyKeyboardMarkup, ReplyKeyboardRemove

from closet.bot_service.context import BotContext
from closet.bot_service.filters import StageFilter
from closet.bot_service.handlers.start import HELP_TEXT
from closet.bot_service.media import as_input_file, download_photo
from closet.bot_service.state_machine import ConversationState, UserSession
from closet.errors import ClosetError, InvalidInputError
from closet.storage import Category, GarmentDraft

logger = logging.getLogger(__name__)

CATEGORY_KEYBOARD = ReplyKeyboardMarkup(
    keyboard=[
        [KeyboardButton(text=Category.TOPS.value), KeyboardButton(text=Category.BOTTOMS.value)],
        [KeyboardButton(text=Category.SHOES.value), KeyboardButton(text=Category.ACCESSORIES.value)],
    ],
    resize_keyboard=True,
    one_time_keyboard=True,
    input_field_placeholder="Select a category",
)


def _draft_caption(draft: GarmentDraft) -> str:
    tags = ", ".join(draft.tags) or "none"
    return (
        f"{draft.name or 'Unnamed item'} ({draft.category.value})\nTags: {tags}\n\n"
        "/save to add it, /rename <name>, /tags a, b, c or /cancel."
    )


def setup(router: Router, context: BotContext) -> None:
    """Register photo, category and draft review handlers."""

    @router.message(Command("save"))
    async def handle_save(message: Message) -> None:
        session = context.state_machine.session(str(message.from_user.id))
        if session.draft is None:
            await message.answer("There is nothing to save. Send a garment photo first.")
            return
        try:
            record = await context.logic.save_garment(session.user_id, session.draft)
        except ClosetError as exc:
            await message.answer(str(exc))
            return
        session.draft = None
        session.state = ConversationState.AWAITING_GARMENT
        await message.answer(f"Saved \"{record.name}\" to {record.category.value}. Send the next item.")

    @router.message(Command("rename"))
    async def handle_rename(message: Message, command: CommandObject) -> None:
        session = context.state_machine.session(str(message.from_user.id))
        if session.draft is None or not (command.args or "").strip():
            await message.answer("Usage: /rename <new name> while reviewing an item.")
            return
        session.draft = session.draft.with_name(command.args)
        await message.answer(_draft_caption(session.draft))

    @router.message(Command("tags"))
    async def handle_tags(message: Message, command: CommandObject) -> None:
        session = context.state_machine.session(str(message.from_user.id))
        if session.draft is None:
            await message.answer("Usage: /tags a, b, c while reviewing an item.")
            return
        session.draft = session.draft.with_tags((command.args or "").split(","))
        await message.answer(_draft_caption(session.draft))

    @router.message(Command("cancel"))
    async def handle_cancel(message: Message) -> None:
        session = context.state_machine.session(str(message.from_user.id))
        session.draft = None
        session.pending_upload = None
        if session.state in (ConversationState.AWAITING_CATEGORY, ConversationState.REVIEWING_DRAFT):
            session.state = ConversationState.AWAITING_GARMENT
        await message.answer("Cancelled.", reply_markup=ReplyKeyboardRemove())

    @router.message(Command("photo"))
    async def handle_replace_photo(message: Message) -> None:
        session = context.state_machine.set_state(str(message.from_user.id), ConversationState.AWAITING_PHOTO)
        session.expecting_user_photo = True
        await message.answer("Send a new full-body photo of yourself.")

    @router.message(F.photo)
    async def handle_photo(message: Message) -> None:
        session = context.state_machine.session(str(message.from_user.id))
        try:
            upload = await download_photo(message)
        except TelegramNetworkError:
            await message.answer("Could not download the photo from Telegram. Please try again.")
            return

        catalog = await context.logic.catalog(session.user_id)
        if catalog.user_photo is None or session.expecting_user_photo:
            await _store_user_photo(message, context, session, upload)
            return

        session.pending_upload = upload
        session.draft = None
        session.state = ConversationState.AWAITING_CATEGORY
        await message.answer(
            "Which category is it? The item will be cropped based on this category.",
            reply_markup=CATEGORY_KEYBOARD,
        )

    @router.message(StageFilter(context, ConversationState.AWAITING_CATEGORY), F.text)
    async def handle_category(message: Message, session: UserSession) -> None:
        try:
            category = Category.parse(message.text or "")
        except InvalidInputError:
            await message.answer("Please pick a category on the keyboard.", reply_markup=CATEGORY_KEYBOARD)
            return
        if session.pending_upload is None:
            session.state = ConversationState.AWAITING_GARMENT
            await message.answer("No photo is waiting. Send the next item.", reply_markup=ReplyKeyboardRemove())
            return

        await message.answer("Analyzing your item...", reply_markup=ReplyKeyboardRemove())
        try:
            draft = await context.logic.analyze_garment(session.pending_upload, category)
        except ClosetError as exc:
            await message.answer(f"{exc}\nPick a category to try again or /cancel.", reply_markup=CATEGORY_KEYBOARD)
            return

        session.pending_upload = None
        session.draft = draft
        session.state = ConversationState.REVIEWING_DRAFT
        await message.answer_photo(as_input_file(draft.image, "garment"), caption=_draft_caption(draft))


async def _store_user_photo(message: Message, context: BotContext, session: UserSession, upload) -> None:
    try:
        await context.logic.set_user_photo(session.user_id, upload)
    except ClosetError as exc:
        await message.answer(str(exc))
        return
    session.expecting_user_photo = False
    session.try_on = None
    session.state = ConversationState.AWAITING_GARMENT
    await message.answer(f"Photo saved. Now send your clothes one photo at a time.\n\n{HELP_TEXT}")
