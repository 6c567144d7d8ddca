"""Register message and command handlers."""

from __future__ import annotations

from aiogram import Router

from closet.bot_service.context import BotContext

from . import advisor, closet, start, tryon, upload


def setup_handlers(router: Router, context: BotContext) -> None:
    """Attach all handler groups to the provided router; commands before free text."""

    start.setup(router, context)
    closet.setup(router, context)
    advisor.setup(router, context)
    tryon.setup(router, context)
    upload.setup(router, context)
