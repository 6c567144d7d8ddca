"""Shared dependencies passed into handler setup functions."""

from __future__ import annotations

from dataclasses import dataclass

from closet.bot_service.state_machine import StateMachine
from closet.logic import StylistLogic


@dataclass(slots=True)
class BotContext:
    """Container for objects shared across handlers."""

    logic: StylistLogic
    state_machine: StateMachine
