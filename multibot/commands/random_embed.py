"""Random image-deck commands.

A deck is a list of embed entries kept in the command's JSON config.
Each invocation picks one entry uniformly at random and replies with
an embed whose image is uploaded from the command's resource folder.

Config schema (version 1)::

    {
      "version": 1,
      "entries": [
        {"title": "...", "description": "...", "imageFileName": "x.png"}
      ]
    }

``imageFileName`` is optional; images are looked up in
``<resources>/Images/<CommandName>/``.
"""

from pathlib import Path
from typing import List, Optional, Tuple

from pydantic import Field

from ..config_store import CommandConfig
from ..models import RGB, CommandType, Platform
from .base import BotResponse, ConfiguredCommand


class EmbedEntry(CommandConfig):
    """One card of a deck."""
    title: str = ""
    description: str = ""
    image_file_name: Optional[str] = None


class EmbedDeckConfig(CommandConfig):
    """Config document of a RandomEmbedCommand."""
    entries: Tuple[EmbedEntry, ...] = Field(default_factory=tuple)


class RandomEmbedResponse(BotResponse):
    """Picks one deck entry from a single config snapshot."""

    command: "RandomEmbedCommand"

    async def prepare_response(self) -> bool:
        command = self.command
        if not command.active:
            return False

        snapshot = command.config.current
        if not snapshot.entries:
            return False

        entry = command.ctx.rng.choice(snapshot.entries)

        file_path = file_name = None
        if entry.image_file_name:
            image = command.images_dir / entry.image_file_name
            if image.is_file():
                file_path, file_name = str(image), entry.image_file_name
            else:
                command.logger.warning("image_missing", path=str(image))

        return self._fill(
            embed_title=entry.title or None,
            embed_description=entry.description or None,
            embed_file_path=file_path,
            embed_file_name=file_name,
            embed_color=command.embed_color,
        )


class RandomEmbedCommand(ConfiguredCommand[EmbedDeckConfig]):
    """Base for commands that reply with a random card from a deck.

    Subclasses set name/description and override ``default_entries()``.
    """

    config_model = EmbedDeckConfig
    command_types = CommandType.SLASH_COMMAND | CommandType.TEXT_COMMAND
    embed_color: Optional[RGB] = None

    @property
    def images_dir(self) -> Path:
        return self.ctx.resources_dir / "Images" / self.name

    def default_entries(self) -> List[EmbedEntry]:
        return []

    def default_config(self) -> EmbedDeckConfig:
        return EmbedDeckConfig(entries=tuple(self.default_entries()))

    def on_config_loaded(self, value: EmbedDeckConfig) -> None:
        self.logger.info("deck_loaded", entries=len(value.entries))

    def create_response(self, platform: Platform) -> RandomEmbedResponse:
        return RandomEmbedResponse(self, platform)
