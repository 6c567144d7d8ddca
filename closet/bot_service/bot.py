"""Entrypoint for the virtual closet Telegram bot."""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress

from aiogram import Bot, Dispatcher, Router

from closet.api import AITunnelClient
from closet.bot_service.context import BotContext
from closet.bot_service.handlers import setup_handlers
from closet.bot_service.state_machine import StateMachine
from closet.config.settings import get_settings
from closet.logic import StylistLogic
from closet.monitoring.logging import configure_logging

logger = logging.getLogger(__name__)


async def main() -> None:
    """Initialise dependencies and start polling Telegram."""

    settings = get_settings()
    configure_logging(settings)
    if not settings.bot_token:
        raise RuntimeError("TELEGRAM_BOT_TOKEN is not configured.")
    if not settings.aitunnel_api_key:
        raise RuntimeError("AITUNNEL_API_KEY is not configured.")
    if not settings.weather_configured:
        logger.warning("WEATHER_API_KEY is not set; recommendations will not use the weather.")

    client = AITunnelClient(settings)
    logic = StylistLogic.from_settings(settings, client)

    bot = Bot(token=settings.bot_token)
    dispatcher = Dispatcher()
    router = Router()
    setup_handlers(router, BotContext(logic=logic, state_machine=StateMachine()))
    dispatcher.include_router(router)

    try:
        logger.info("Starting closet bot polling.")
        await dispatcher.start_polling(bot)
    finally:
        with suppress(Exception):
            await bot.session.close()
        with suppress(Exception):
            await client.close()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
