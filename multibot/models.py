"""Shared value types for multibot.

Enums:
    Platform, CommandType

Reply variants (closed set, matched exhaustively by adapters):
    TextReply, EmbedReply, AttachmentEmbedReply

Other:
    CommandDescriptor: (name, description) pair used for remote sync.
    build_reply: Maps a prepared response onto one reply variant.
"""

from dataclasses import dataclass
from enum import Enum, Flag, auto
from typing import TYPE_CHECKING, NamedTuple, Optional, Tuple, Union

if TYPE_CHECKING:
    from .commands.base import BotResponse


class Platform(str, Enum):
    """External chat systems a command can be exposed on."""
    DISCORD = "discord"


class CommandType(Flag):
    """How a command can be invoked. A command may support both."""
    NONE = 0
    SLASH_COMMAND = auto()
    TEXT_COMMAND = auto()


class CommandDescriptor(NamedTuple):
    """A command as the platform's registration API sees it."""
    name: str
    description: str


RGB = Tuple[int, int, int]


@dataclass(frozen=True)
class TextReply:
    """Plain text message."""
    text: str


@dataclass(frozen=True)
class EmbedReply:
    """Rich embed without attachments."""
    title: Optional[str] = None
    description: Optional[str] = None
    color: Optional[RGB] = None
    text: Optional[str] = None


@dataclass(frozen=True)
class AttachmentEmbedReply:
    """Rich embed whose image is an uploaded file.

    The embed references the upload by ``attachment://<file_name>``.
    """
    file_path: str
    file_name: str
    title: Optional[str] = None
    description: Optional[str] = None
    color: Optional[RGB] = None
    text: Optional[str] = None

    @property
    def attachment_url(self) -> str:
        return f"attachment://{self.file_name}"


Reply = Union[TextReply, EmbedReply, AttachmentEmbedReply]


def build_reply(response: "BotResponse") -> Optional[Reply]:
    """Describe a prepared response as exactly one reply variant.

    Returns None when the response carries no content at all.
    """
    has_embed = bool(response.embed_title or response.embed_description)
    has_file = bool(response.embed_file_name and response.embed_file_path)

    if has_file:
        return AttachmentEmbedReply(
            file_path=response.embed_file_path,
            file_name=response.embed_file_name,
            title=response.embed_title,
            description=response.embed_description,
            color=response.embed_color,
            text=response.message or None,
        )
    if has_embed:
        return EmbedReply(
            title=response.embed_title,
            description=response.embed_description,
            color=response.embed_color,
            text=response.message or None,
        )
    if response.message:
        return TextReply(text=response.message)
    return None
