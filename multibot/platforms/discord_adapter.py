"""Discord adapter.

Owns one discord.py connection per bot. Slash commands are registered
on an app-command tree (one entry per slash-capable command, lowercased
as Discord requires) and prefixed text messages are routed through the
registry. The remote command list is only overwritten when it differs
from the registry (see ``multibot.syncer``).

The token is resolved in the constructor, so a missing or placeholder
token fails before any connection attempt.
"""

import asyncio
from typing import List, Optional, Sequence, Tuple

import discord
from discord import app_commands

from ..commands.base import CommandRegistry, parse_text_invocation
from ..exceptions import RenderError
from ..models import (
    AttachmentEmbedReply,
    CommandDescriptor,
    CommandType,
    EmbedReply,
    Platform,
    Reply,
    TextReply,
)
from ..syncer import CommandSyncer
from .base import DEFAULT_RESPONSE_TIMEOUT, PlatformAdapter, Responder
from .credentials import TokenStore

MAX_DESCRIPTION_LENGTH = 100


def _build_embed(reply) -> discord.Embed:
    embed = discord.Embed(title=reply.title, description=reply.description)
    if reply.color is not None:
        embed.colour = discord.Colour.from_rgb(*reply.color)
    return embed


def render_reply(
    reply: Reply,
) -> Tuple[Optional[str], Optional[discord.Embed], Optional[discord.File]]:
    """Turn a reply variant into (content, embed, file) for discord.py.

    Raises:
        RenderError: Unknown variant, or the attachment cannot be opened.
    """
    if isinstance(reply, TextReply):
        return reply.text, None, None

    if isinstance(reply, AttachmentEmbedReply):
        embed = _build_embed(reply)
        embed.set_image(url=reply.attachment_url)
        try:
            file = discord.File(reply.file_path, filename=reply.file_name)
        except OSError as e:
            raise RenderError(
                f"Cannot open attachment: {e}",
                platform=Platform.DISCORD.value,
                path=reply.file_path,
            ) from e
        return reply.text, embed, file

    if isinstance(reply, EmbedReply):
        return reply.text, _build_embed(reply), None

    raise RenderError(
        f"Unsupported reply type: {type(reply).__name__}",
        platform=Platform.DISCORD.value,
    )


def _send_kwargs(reply: Reply) -> dict:
    content, embed, file = render_reply(reply)
    kwargs = {}
    if content:
        kwargs["content"] = content
    if embed is not None:
        kwargs["embed"] = embed
    if file is not None:
        kwargs["file"] = file
    return kwargs


class InteractionResponder(Responder):
    """Answers a slash-command interaction."""

    def __init__(self, interaction: discord.Interaction):
        self.interaction = interaction

    async def acknowledge(self) -> None:
        # Unacknowledged interactions expire after three seconds
        if not self.interaction.response.is_done():
            await self.interaction.response.defer()

    async def send_text(self, text: str, *, private: bool = False) -> None:
        if self.interaction.response.is_done():
            await self.interaction.followup.send(text, ephemeral=private)
        else:
            await self.interaction.response.send_message(text, ephemeral=private)

    async def send_reply(self, reply: Reply) -> None:
        kwargs = _send_kwargs(reply)
        if self.interaction.response.is_done():
            await self.interaction.followup.send(**kwargs)
        else:
            await self.interaction.response.send_message(**kwargs)


class MessageResponder(Responder):
    """Answers a prefixed text message (no private replies on Discord)."""

    def __init__(self, message: discord.Message):
        self.message = message

    async def send_text(self, text: str, *, private: bool = False) -> None:
        await self.message.reply(text, mention_author=False)

    async def send_reply(self, reply: Reply) -> None:
        await self.message.reply(mention_author=False, **_send_kwargs(reply))


class _MultibotClient(discord.Client):
    """discord.Client forwarding lifecycle events to the adapter."""

    def __init__(self, adapter: "DiscordAdapter", *, intents: discord.Intents):
        super().__init__(intents=intents)
        self.adapter = adapter
        self.tree = app_commands.CommandTree(self)

    async def on_ready(self):
        await self.adapter.on_ready()

    async def on_message(self, message: discord.Message):
        await self.adapter.on_message(message)

    async def on_resumed(self):
        self.adapter.logger.info("discord_connection_resumed")

    async def on_disconnect(self):
        self.adapter.logger.warning("discord_connection_lost")


class DiscordAdapter(PlatformAdapter):
    """Discord connection for one bot.

    Args:
        bot_name: Owning bot's name (also the token file key).
        registry: The bot's CommandRegistry.
        token_store: Where the bot's token lives.
        text_prefixes: Prefix characters for text commands.
        response_timeout: Per-invocation preparation timeout.
        logger: Optional structlog logger.

    Raises:
        MissingCredentialError: No usable token for ``bot_name``.
    """

    platform = Platform.DISCORD

    def __init__(
        self,
        bot_name: str,
        registry: CommandRegistry,
        token_store: TokenStore,
        *,
        text_prefixes: Sequence[str] = ("!",),
        response_timeout: float = DEFAULT_RESPONSE_TIMEOUT,
        logger=None,
    ):
        super().__init__(
            bot_name,
            registry,
            text_prefixes=text_prefixes,
            response_timeout=response_timeout,
            logger=logger,
        )
        self.logger.info("discord_adapter_starting")
        self._token = token_store.require(bot_name)

        intents = discord.Intents.default()
        intents.message_content = bool(
            self.registry.for_platform(self.platform, CommandType.TEXT_COMMAND)
        )
        self.client = _MultibotClient(self, intents=intents)
        self.syncer = CommandSyncer(self.platform.value, logger=self.logger)
        self._runner: Optional[asyncio.Task] = None
        self._synced = False
        self._stopped = False
        self._register_slash_commands()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def remote_name(self, name: str) -> str:
        return name.lower()

    def desired_commands(self) -> List[CommandDescriptor]:
        return [
            CommandDescriptor(d.name, d.description[:MAX_DESCRIPTION_LENGTH])
            for d in super().desired_commands()
        ]

    def _register_slash_commands(self) -> None:
        for command in self.registry.for_platform(self.platform, CommandType.SLASH_COMMAND):
            self.client.tree.add_command(
                app_commands.Command(
                    name=self.remote_name(command.name),
                    description=command.description[:MAX_DESCRIPTION_LENGTH],
                    callback=self._slash_callback(command.name),
                )
            )

    def _slash_callback(self, command_name: str):
        async def callback(interaction: discord.Interaction) -> None:
            await self.handle_invocation(
                CommandType.SLASH_COMMAND,
                command_name,
                InteractionResponder(interaction),
            )
        return callback

    async def _fetch_remote_commands(self) -> List[CommandDescriptor]:
        remote = await self.client.tree.fetch_commands()
        return [CommandDescriptor(c.name, c.description) for c in remote]

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    async def on_ready(self) -> None:
        user = self.client.user
        self.logger.info(
            "discord_connected",
            user=str(user),
            user_id=getattr(user, "id", None),
            guilds=len(self.client.guilds),
        )
        if self._synced:
            return
        self._synced = True
        await self.syncer.sync(
            self._fetch_remote_commands,
            self.client.tree.sync,
            self.desired_commands(),
        )

    async def on_message(self, message: discord.Message) -> None:
        if message.author.bot or not message.content:
            return
        invocation = parse_text_invocation(message.content, self.text_prefixes)
        if invocation is None:
            return
        await self.handle_invocation(
            CommandType.TEXT_COMMAND,
            invocation.name,
            MessageResponder(message),
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        if self._runner is not None:
            raise RuntimeError("Discord adapter already running")
        self.accepting = True
        self._runner = asyncio.create_task(
            self._run(), name=f"discord:{self.bot_name}"
        )

    async def _run(self) -> None:
        try:
            await self.client.start(self._token)
        except asyncio.CancelledError:
            self.logger.info("discord_client_task_cancelled")
            raise
        except discord.LoginFailure as e:
            self.logger.critical("discord_login_failed", error=str(e))
        except Exception as e:
            self.logger.error(
                "discord_client_crashed",
                error=str(e),
                error_type=type(e).__name__,
            )
        finally:
            self.accepting = False
            self.logger.info("discord_client_stopped")

    async def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        self.logger.info("discord_adapter_stopping")
        await self.drain()
        try:
            if not self.client.is_closed():
                await self.client.close()
        except Exception as e:
            self.logger.warning("discord_close_error_ignored", error=str(e))
        if self._runner is not None and not self._runner.done():
            self._runner.cancel()
            try:
                await self._runner
            except asyncio.CancelledError:
                pass
        self.logger.info("discord_adapter_stopped")
