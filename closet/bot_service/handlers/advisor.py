"""Handlers for weather-aware outfit recommendations."""

from __future__ import annotations

from aiogram import Router
from aiogram.filters import Command
from aiogram.types import Message

from closet.advisor import AdvisorState, RecommendationOrchestrator
from closet.bot_service.context import BotContext
from closet.bot_service.media import as_input_file
from closet.bot_service.state_machine import ConversationState, UserSession
from closet.errors import ClosetError

PENDING_TEXT = "Getting today's style inspiration..."


def render(advisor: RecommendationOrchestrator) -> str:
    lines: list[str] = []
    if advisor.weather is not None:
        lines.append(f"Currently: {advisor.weather.temperature_f}°F & {advisor.weather.description}")
    elif advisor.context_warning:
        lines.append(advisor.context_warning)

    if advisor.state is AdvisorState.INSUFFICIENT_CATALOG:
        lines.append(
            "Please add items from at least two different categories to your closet to get recommendations.",
        )
    elif advisor.state is AdvisorState.FAILED:
        lines.append(f"Oops! Something went wrong.\n{advisor.error}")
    elif advisor.state is AdvisorState.READY and advisor.recommendation is not None:
        lines.append(f"\n{advisor.recommendation.outfit_name}\n{advisor.recommendation.description}\n")
        for slot in advisor.slots:
            label = slot.item.name if slot.item is not None else "No item found in this category."
            lines.append(f"{slot.category.value}: {label}")
        lines.append("\n/shuffle for other pieces, /wearlook to try it on, /inspire for a new idea.")
    else:
        lines.append(PENDING_TEXT)
    return "\n".join(lines)


async def advise(context: BotContext, session: UserSession, *, restart: bool) -> str | None:
    """Run one advisor round and return the reply, or ``None`` when a newer round took over."""

    session.state = ConversationState.ADVISING
    advisor = session.advisor
    if restart or advisor is None:
        advisor = await context.logic.start_advisor(session.user_id)
        session.advisor = advisor
        await advisor.activate()
    else:
        await advisor.request_recommendation()
    if session.advisor is not advisor:
        return None
    return render(advisor)


def setup(router: Router, context: BotContext) -> None:
    """Register /advise, /inspire, /shuffle and /wearlook."""

    @router.message(Command("advise"))
    async def handle_advise(message: Message) -> None:
        session = context.state_machine.session(str(message.from_user.id))
        await message.answer(PENDING_TEXT)
        reply = await advise(context, session, restart=True)
        if reply is not None:
            await message.answer(reply)

    @router.message(Command("inspire"))
    async def handle_inspire(message: Message) -> None:
        session = context.state_machine.session(str(message.from_user.id))
        reply = await advise(context, session, restart=False)
        if reply is not None:
            await message.answer(reply)

    @router.message(Command("shuffle"))
    async def handle_shuffle(message: Message) -> None:
        session = context.state_machine.session(str(message.from_user.id))
        if session.advisor is None:
            await message.answer("Ask for an outfit with /advise first.")
            return
        try:
            session.advisor.shuffle()
        except ClosetError as exc:
            await message.answer(str(exc))
            return
        await message.answer(render(session.advisor))

    @router.message(Command("wearlook"))
    async def handle_wear_look(message: Message) -> None:
        session = context.state_machine.session(str(message.from_user.id))
        catalog = await context.logic.catalog(session.user_id)
        if session.advisor is None or catalog.user_photo is None:
            await message.answer("Ask for an outfit with /advise first.")
            return
        await message.answer("Creating your look...")
        try:
            image = await session.advisor.try_on(catalog.user_photo)
        except ClosetError as exc:
            await message.answer(f"Could not generate outfit: {exc}")
            return
        if image is None:
            await message.answer("The outfit changed while generating; send /wearlook again.")
            return
        await message.answer_photo(as_input_file(image, "outfit"), caption="Here's your personalized look!")
