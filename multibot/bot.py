"""Bot aggregate for multibot.

A Bot is a named set of commands plus the platform adapters that
expose them. It owns their lifecycle: commands are built (and their
configs loaded) at construction, initialised concurrently in init(),
exposed through adapters in start_platforms(), and released in
shutdown().

Key classes:
    Bot: Base class; subclasses list their command classes.
"""

import asyncio
import random
from typing import Callable, List, Optional

import structlog

from .commands.base import BotCommand, CommandContext, CommandRegistry
from .config import Settings
from .exceptions import MissingCredentialError
from .platforms.base import PlatformAdapter
from .platforms.credentials import TokenStore

CommandFactory = Callable[[CommandContext], BotCommand]
AdapterFactory = Callable[[], PlatformAdapter]


class Bot:
    """A named aggregate of commands and the adapters exposing them.

    Subclasses set ``name`` and override ``command_factories()``.
    Construction fails with DuplicateCommandError when two commands
    share a name.

    Args:
        settings: Process settings.
        token_store: Credential source; defaults to ``settings.token_file``.
        rng: Random source shared by this bot's commands.
        logger: Optional structlog logger.
    """

    name: str = ""

    def __init__(
        self,
        settings: Settings,
        *,
        token_store: Optional[TokenStore] = None,
        rng: Optional[random.Random] = None,
        logger=None,
    ):
        if not self.name:
            raise ValueError("Bot subclasses must set a name")
        self.settings = settings
        self.token_store = token_store or TokenStore(settings.token_file)
        self.logger = logger or structlog.get_logger("multibot.bot").bind(bot=self.name)
        self.logger.info("bot_starting")

        context_kwargs = {}
        if rng is not None:
            context_kwargs["rng"] = rng
        self.context = CommandContext(
            bot_name=self.name,
            config_root=settings.config_root,
            resources_dir=settings.resources_dir,
            config_debounce=settings.config_reload_debounce,
            **context_kwargs,
        )

        self.registry = CommandRegistry(self.name)
        self.registry.register_all(
            factory(self.context) for factory in self.command_factories()
        )
        self.platforms: List[PlatformAdapter] = []
        self._shutdown = False

    def command_factories(self) -> List[CommandFactory]:
        """Command classes (or factories) this bot owns, in order."""
        return []

    def adapter_factories(self) -> List[AdapterFactory]:
        """Adapters to start. Each may raise MissingCredentialError."""
        from .platforms.discord_adapter import DiscordAdapter

        return [
            lambda: DiscordAdapter(
                self.name,
                self.registry,
                self.token_store,
                text_prefixes=self.settings.text_prefixes,
                response_timeout=self.settings.response_timeout,
            )
        ]

    @property
    def commands(self) -> List[BotCommand]:
        return self.registry.commands

    async def init(self) -> bool:
        """Run every command's init() concurrently.

        A failing command is logged and left not-ready; the bot keeps
        starting. Then config watches are enabled.

        Returns:
            True if every command initialised.
        """
        commands = self.registry.commands
        results = await asyncio.gather(
            *(command.init() for command in commands), return_exceptions=True
        )

        all_ok = True
        for command, result in zip(commands, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, Exception):
                all_ok = False
                self.logger.error(
                    "command_init_error",
                    command=command.name,
                    error=str(result),
                    error_type=type(result).__name__,
                )
            elif not result:
                all_ok = False
                self.logger.warning("command_init_failed", command=command.name)

        for command in commands:
            await command.start()
        return all_ok

    async def start_platforms(self) -> int:
        """Build and start every adapter.

        A MissingCredentialError aborts only that adapter.

        Returns:
            Number of adapters started.
        """
        for factory in self.adapter_factories():
            try:
                adapter = factory()
            except MissingCredentialError as e:
                self.logger.critical(
                    "platform_credential_missing",
                    platform=e.platform,
                    error=str(e),
                )
                continue
            self.platforms.append(adapter)
            await adapter.start()
            self.logger.info("platform_started", platform=adapter.platform.value)
        return len(self.platforms)

    async def start(self) -> None:
        await self.init()
        started = await self.start_platforms()
        self.logger.info("bot_started", platforms=started, commands=self.registry.names)

    async def shutdown(self) -> None:
        """Stop adapters and close command resources. Idempotent."""
        if self._shutdown:
            return
        self._shutdown = True
        self.logger.info("bot_shutting_down")

        results = await asyncio.gather(
            *(adapter.stop() for adapter in self.platforms), return_exceptions=True
        )
        for adapter, result in zip(self.platforms, results):
            if isinstance(result, Exception):
                self.logger.error(
                    "platform_stop_failed",
                    platform=adapter.platform.value,
                    error=str(result),
                )

        for command in self.registry.commands:
            try:
                await command.close()
            except Exception as e:
                self.logger.error("command_close_failed", command=command.name, error=str(e))

        self.logger.info("bot_shutdown_complete")
