"""Platform adapters for multibot.

``base`` holds the platform-independent dispatch and error boundary;
``discord_adapter`` is the discord.py implementation.
"""

from .base import (
    ERROR_TEXT,
    NO_RESPONSE_TEXT,
    UNKNOWN_COMMAND_TEXT,
    DispatchResult,
    DispatchStatus,
    PlatformAdapter,
    Responder,
)
from .credentials import TOKEN_PLACEHOLDER, TokenStore

__all__ = [
    "DispatchResult",
    "DispatchStatus",
    "ERROR_TEXT",
    "NO_RESPONSE_TEXT",
    "PlatformAdapter",
    "Responder",
    "TOKEN_PLACEHOLDER",
    "TokenStore",
    "UNKNOWN_COMMAND_TEXT",
]
