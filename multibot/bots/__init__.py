"""Concrete bots shipped with multibot.

``BOTS`` maps bot name to class; settings.yaml ``bots:`` selects which
of them a process starts.
"""

from typing import Dict, Type

from ..bot import Bot
from .tchjr import TCHJRBot

BOTS: Dict[str, Type[Bot]] = {
    TCHJRBot.name: TCHJRBot,
}

__all__ = ["BOTS", "TCHJRBot"]
