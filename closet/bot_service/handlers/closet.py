"""Handlers that list, search and prune the closet."""

from __future__ import annotations

from typing import Iterable

from aiogram import Router
from aiogram.filters import Command, CommandObject
from aiogram.types import Message

from closet.bot_service.context import BotContext
from closet.storage import GarmentRecord


def _describe(item: GarmentRecord) -> str:
    tags = f" ({', '.join(item.tags)})" if item.tags else ""
    return f"• {item.name or 'Unnamed item'}{tags}\n  id: {item.id}"


def _format_items(items: Iterable[GarmentRecord]) -> str:
    return "\n".join(_describe(item) for item in items)


def setup(router: Router, context: BotContext) -> None:
    """Register /closet, /find and /remove."""

    @router.message(Command("closet"))
    async def handle_closet(message: Message) -> None:
        catalog = await context.logic.catalog(str(message.from_user.id))
        grouped = catalog.by_category()
        if not grouped:
            await message.answer(
                "Your closet is empty. Send a photo of a garment; the background is removed "
                "and tags are added automatically.",
            )
            return
        sections = [f"{category.value}\n{_format_items(items)}" for category, items in grouped.items()]
        await message.answer("\n\n".join(sections))

    @router.message(Command("find"))
    async def handle_find(message: Message, command: CommandObject) -> None:
        catalog = await context.logic.catalog(str(message.from_user.id))
        matches = catalog.search(command.args or "")
        if not matches:
            await message.answer("Nothing matches that search.")
            return
        await message.answer(_format_items(matches))

    @router.message(Command("remove"))
    async def handle_remove(message: Message, command: CommandObject) -> None:
        item_id = (command.args or "").strip()
        if not item_id:
            await message.answer("Usage: /remove <id>")
            return
        await context.logic.remove_garment(str(message.from_user.id), item_id)
        await message.answer("Removed.")
