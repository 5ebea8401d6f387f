"""Command framework and built-in commands for multibot.

Provides the BotCommand/BotResponse ABCs, the CommandContext
dependency container, and the CommandRegistry router.
"""

from .base import (
    BotCommand,
    BotResponse,
    CommandContext,
    CommandRegistry,
    ConfiguredCommand,
    TextInvocation,
    parse_text_invocation,
)

__all__ = [
    "BotCommand",
    "BotResponse",
    "CommandContext",
    "CommandRegistry",
    "ConfiguredCommand",
    "TextInvocation",
    "parse_text_invocation",
]
