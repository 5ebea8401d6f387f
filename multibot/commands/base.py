"""Base classes for the command framework.

Defines the abstractions every bot command is built from and the
registry that routes inbound invocations to them. A command pairs a
name, description, supported invocation types and platforms with a
factory that builds a fresh BotResponse per invocation.

Key classes:
    CommandContext: Per-bot dependencies handed to every command.
    BotCommand: ABC that commands implement.
    ConfiguredCommand: BotCommand backed by a hot-reloadable ConfigRecord.
    BotResponse: ABC for one invocation's asynchronously prepared reply.
    CommandRegistry: Resolves (platform, kind, name) to one command.

Key functions:
    parse_text_invocation: Split a prefixed text message into
        command token and arguments.
"""

import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import (
    Callable,
    Dict,
    FrozenSet,
    Generic,
    Iterable,
    Iterator,
    List,
    NamedTuple,
    Optional,
    Tuple,
    Type,
)

import structlog

from ..config_store import DEFAULT_DEBOUNCE_SECONDS, ConfigRecord, ModelT
from ..exceptions import DuplicateCommandError
from ..models import RGB, CommandDescriptor, CommandType, Platform

logger = structlog.get_logger("multibot.commands")

# Default random source shared by every command in the process
_shared_random = random.Random()


@dataclass
class CommandContext:
    """Dependencies a bot hands to each of its commands.

    Commands keep ``bot_name`` as a lookup key only; they never hold a
    reference to the Bot object itself.
    """

    bot_name: str
    config_root: Path
    resources_dir: Path
    config_debounce: float = DEFAULT_DEBOUNCE_SECONDS
    rng: random.Random = field(default=_shared_random, repr=False)


class BotResponse(ABC):
    """One invocation's reply, filled in by prepare_response().

    All content fields start as None. Subclasses compute into locals
    and assign through ``_fill()`` only once everything succeeded, so a
    False result always leaves the fields untouched.

    Args:
        command: The command that created this response.
        platform: Platform the reply will be rendered on.
    """

    def __init__(self, command: "BotCommand", platform: Platform):
        self.command = command
        self.platform = platform
        self.message: Optional[str] = None
        self.embed_title: Optional[str] = None
        self.embed_description: Optional[str] = None
        self.embed_file_path: Optional[str] = None
        self.embed_file_name: Optional[str] = None
        self.embed_color: Optional[RGB] = None

    @abstractmethod
    async def prepare_response(self) -> bool:
        """Fill the content fields from the command's current state.

        Called exactly once per invocation. Returns False when the
        command is inactive, has no data, or produced no content.
        """
        ...

    def _fill(
        self,
        *,
        message: Optional[str] = None,
        embed_title: Optional[str] = None,
        embed_description: Optional[str] = None,
        embed_file_path: Optional[str] = None,
        embed_file_name: Optional[str] = None,
        embed_color: Optional[RGB] = None,
    ) -> bool:
        """Assign every content field at once; False if all are empty."""
        if not any((message, embed_title, embed_description, embed_file_path)):
            return False
        self.message = message
        self.embed_title = embed_title
        self.embed_description = embed_description
        self.embed_file_path = embed_file_path
        self.embed_file_name = embed_file_name
        self.embed_color = embed_color
        return True

    @property
    def has_content(self) -> bool:
        return any((
            self.message,
            self.embed_title,
            self.embed_description,
            self.embed_file_path,
        ))


class BotCommand(ABC):
    """Abstract base class for a named bot command.

    Subclasses set the class attributes and implement create_response().
    Commands with async setup (dataset downloads) override init().

    Args:
        ctx: The owning bot's CommandContext.
        logger: Optional structlog logger.
    """

    name: str = ""
    description: str = ""
    command_types: CommandType = CommandType.SLASH_COMMAND
    platforms: FrozenSet[Platform] = frozenset({Platform.DISCORD})

    def __init__(self, ctx: CommandContext, *, logger=None):
        if not self.name or any(c.isspace() for c in self.name):
            raise ValueError(f"Invalid command name: {self.name!r}")
        self.ctx = ctx
        self.bot_name = ctx.bot_name
        self.active = True
        self._ready = False
        self.logger = logger or structlog.get_logger("multibot.commands").bind(
            bot=ctx.bot_name, command=self.name
        )

    @property
    def ready(self) -> bool:
        """Whether init() completed successfully."""
        return self._ready

    def supports(self, platform: Platform, kind: CommandType) -> bool:
        """Whether this command can be invoked as ``kind`` on ``platform``."""
        return platform in self.platforms and kind in self.command_types

    @property
    def descriptor(self) -> CommandDescriptor:
        return CommandDescriptor(self.name, self.description)

    async def init(self) -> bool:
        """One-time async setup. Returns False if the command is not ready."""
        self._ready = True
        return True

    async def start(self) -> None:
        """Called once the bot is running (starts config watches)."""

    async def close(self) -> None:
        """Release resources. Idempotent."""

    @abstractmethod
    def create_response(self, platform: Platform) -> BotResponse:
        """Return a new BotResponse for one invocation."""
        ...


class ConfiguredCommand(BotCommand, Generic[ModelT]):
    """A command whose data lives in a hot-reloadable JSON config.

    Subclasses set ``config_model`` and implement ``default_config()``.
    The record is created at construction, so a missing file is written
    as soon as the bot is built.
    """

    config_model: Type[ModelT]

    def __init__(self, ctx: CommandContext, *, logger=None):
        super().__init__(ctx, logger=logger)
        self.config: ConfigRecord[ModelT] = ConfigRecord(
            ctx.bot_name,
            self.name,
            self.config_model,
            self.default_config,
            config_root=ctx.config_root,
            on_config_loaded=self.on_config_loaded,
            debounce=ctx.config_debounce,
        )

    @abstractmethod
    def default_config(self) -> ModelT:
        """The documented default written when the file is absent or bad."""
        ...

    def on_config_loaded(self, value: ModelT) -> None:
        """Hook fired whenever a new config value goes live."""

    async def start(self) -> None:
        await self.config.start_watching()

    async def close(self) -> None:
        await self.config.close()


# ---------------------------------------------------------------------------
# Routing
# ---------------------------------------------------------------------------

class TextInvocation(NamedTuple):
    """A parsed prefixed text message."""
    name: str
    args: str


def parse_text_invocation(
    text: str, prefixes: Iterable[str]
) -> Optional[TextInvocation]:
    """Split ``!name rest of line`` into (name, args).

    The token is the first whitespace-delimited word with its prefix
    stripped. Returns None when the text does not start with one of
    ``prefixes`` or carries no token after it.
    """
    stripped = text.lstrip()
    if not stripped or stripped[0] not in set(prefixes):
        return None
    parts = stripped[1:].split(maxsplit=1)
    if not parts or stripped[1:2].isspace():
        return None
    args = parts[1].strip() if len(parts) > 1 else ""
    return TextInvocation(parts[0], args)


class CommandRegistry:
    """Holds a bot's commands in registration order and resolves names.

    Names are unique case-insensitively; a clash is a configuration
    error raised at registration time.

    Args:
        bot_name: Owning bot (for error context and logs).
    """

    def __init__(self, bot_name: str = ""):
        self.bot_name = bot_name
        self._commands: Dict[str, BotCommand] = {}

    def register(self, command: BotCommand) -> None:
        """Add a command.

        Raises:
            DuplicateCommandError: Another command already uses the name.
        """
        key = command.name.casefold()
        if key in self._commands:
            raise DuplicateCommandError(
                f"Command name already registered: {command.name}",
                command=command.name,
                bot=self.bot_name,
            )
        self._commands[key] = command
        logger.debug("command_registered", bot=self.bot_name, command=command.name)

    def register_all(self, commands: Iterable[BotCommand]) -> None:
        for command in commands:
            self.register(command)

    def get(self, name: str) -> Optional[BotCommand]:
        """Look up a command by name, ignoring case and filters."""
        return self._commands.get(name.casefold())

    def resolve(
        self, platform: Platform, kind: CommandType, raw_name: str
    ) -> Optional[BotCommand]:
        """Find the command invoked as ``kind`` on ``platform``.

        Returns None (a normal outcome) when nothing matches.
        """
        command = self.get(raw_name.strip())
        if command is None or not command.supports(platform, kind):
            return None
        return command

    def resolve_text(
        self, platform: Platform, text: str, prefixes: Iterable[str]
    ) -> Optional[Tuple[BotCommand, TextInvocation]]:
        """Parse a prefixed text message and resolve its command."""
        invocation = parse_text_invocation(text, prefixes)
        if invocation is None:
            return None
        command = self.resolve(platform, CommandType.TEXT_COMMAND, invocation.name)
        if command is None:
            return None
        return command, invocation

    def for_platform(
        self, platform: Platform, kind: Optional[CommandType] = None
    ) -> List[BotCommand]:
        """Commands exposed on ``platform`` (optionally of one kind)."""
        return [
            c for c in self._commands.values()
            if platform in c.platforms and (kind is None or kind in c.command_types)
        ]

    def descriptors(
        self,
        platform: Platform,
        kind: CommandType = CommandType.SLASH_COMMAND,
        name_transform: Callable[[str], str] = str,
    ) -> List[CommandDescriptor]:
        """The desired remote command list for ``platform``."""
        return [
            CommandDescriptor(name_transform(c.name), c.description)
            for c in self.for_platform(platform, kind)
        ]

    @property
    def commands(self) -> List[BotCommand]:
        return list(self._commands.values())

    @property
    def names(self) -> List[str]:
        return [c.name for c in self._commands.values()]

    def __iter__(self) -> Iterator[BotCommand]:
        return iter(list(self._commands.values()))

    def __len__(self) -> int:
        return len(self._commands)
