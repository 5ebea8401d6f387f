"""Platform adapter boundary.

A PlatformAdapter turns platform-native events into registry lookups
and response preparation, and turns the resulting reply variants back
into platform messages. This module holds the platform-independent
half: dispatch, the error boundary, and in-flight tracking for an
orderly shutdown. Concrete adapters supply a Responder per event and
the start/stop of their connection.

Key classes:
    DispatchStatus / DispatchResult: Outcome of resolving and preparing.
    Responder: Sends text or a rendered reply back for one event.
    PlatformAdapter: ABC for platform adapters.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Set

import structlog

from ..commands.base import BotCommand, CommandRegistry
from ..models import CommandDescriptor, CommandType, Platform, Reply, build_reply

UNKNOWN_COMMAND_TEXT = "Unknown command."
NO_RESPONSE_TEXT = "That command has nothing to say right now."
ERROR_TEXT = "An error occurred while processing your command."

DEFAULT_RESPONSE_TIMEOUT = 30.0
DEFAULT_DRAIN_TIMEOUT = 10.0


class DispatchStatus(str, Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    NO_RESPONSE = "no_response"
    ERROR = "error"


@dataclass
class DispatchResult:
    status: DispatchStatus
    command: Optional[BotCommand] = None
    reply: Optional[Reply] = None


class Responder(ABC):
    """Sends the answer to one inbound event."""

    async def acknowledge(self) -> None:
        """Tell the platform the event is being handled (no-op by default)."""

    @abstractmethod
    async def send_text(self, text: str, *, private: bool = False) -> None:
        """Send a plain notice; ``private`` where the platform supports it."""
        ...

    @abstractmethod
    async def send_reply(self, reply: Reply) -> None:
        """Render and send a prepared reply."""
        ...


class PlatformAdapter(ABC):
    """Base class for platform adapters.

    Args:
        bot_name: Owning bot's name.
        registry: The bot's CommandRegistry.
        text_prefixes: Prefix characters for text commands.
        response_timeout: Seconds a command may spend in
            prepare_response() before the invocation is abandoned.
        logger: Optional structlog logger.
    """

    platform: Platform

    def __init__(
        self,
        bot_name: str,
        registry: CommandRegistry,
        *,
        text_prefixes: Sequence[str] = ("!",),
        response_timeout: float = DEFAULT_RESPONSE_TIMEOUT,
        logger=None,
    ):
        self.bot_name = bot_name
        self.registry = registry
        self.text_prefixes = list(text_prefixes)
        self.response_timeout = response_timeout
        self.logger = logger or structlog.get_logger("multibot.platforms").bind(
            bot=bot_name, platform=self.platform.value
        )
        self.accepting = False
        self._inflight: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @abstractmethod
    async def start(self) -> None:
        """Connect to the platform and begin receiving events."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Stop receiving events, drain in-flight work, disconnect."""
        ...

    async def drain(self, timeout: float = DEFAULT_DRAIN_TIMEOUT) -> None:
        """Stop accepting events and wait for in-flight invocations.

        Invocations still running after ``timeout`` are cancelled.
        """
        self.accepting = False
        current = asyncio.current_task()
        pending = [t for t in self._inflight if t is not current and not t.done()]
        if not pending:
            return
        self.logger.info("draining_invocations", count=len(pending))
        _done, still_running = await asyncio.wait(pending, timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            await asyncio.gather(*still_running, return_exceptions=True)
            self.logger.warning("invocations_cancelled", count=len(still_running))

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def remote_name(self, name: str) -> str:
        """Name a command is registered under on the platform."""
        return name

    def desired_commands(self) -> List[CommandDescriptor]:
        """Slash commands this adapter should have registered remotely."""
        return self.registry.descriptors(
            self.platform,
            CommandType.SLASH_COMMAND,
            name_transform=self.remote_name,
        )

    async def dispatch(self, kind: CommandType, raw_name: str) -> DispatchResult:
        """Resolve ``raw_name`` and prepare its response.

        Not-found, inactive, empty and timed-out preparations are
        reported through the status, never raised.
        """
        command = self.registry.resolve(self.platform, kind, raw_name)
        if command is None:
            self.logger.debug("command_not_found", command=raw_name, kind=kind.name)
            return DispatchResult(DispatchStatus.NOT_FOUND)

        response = command.create_response(self.platform)
        try:
            prepared = await asyncio.wait_for(
                response.prepare_response(), timeout=self.response_timeout
            )
        except asyncio.TimeoutError:
            self.logger.warning(
                "response_timed_out",
                command=command.name,
                timeout=self.response_timeout,
            )
            return DispatchResult(DispatchStatus.NO_RESPONSE, command)

        if not prepared or not response.has_content:
            self.logger.debug("no_response_produced", command=command.name)
            return DispatchResult(DispatchStatus.NO_RESPONSE, command)

        reply = build_reply(response)
        if reply is None:
            return DispatchResult(DispatchStatus.NO_RESPONSE, command)
        return DispatchResult(DispatchStatus.OK, command, reply)

    async def handle_invocation(
        self, kind: CommandType, raw_name: str, responder: Responder
    ) -> DispatchStatus:
        """Dispatch one event and answer it through ``responder``.

        This is the adapter's error boundary: any failure while
        preparing, rendering or sending is logged with its context and
        turned into a single generic error reply.
        """
        if not self.accepting:
            self.logger.debug("invocation_rejected_stopping", command=raw_name)
            return DispatchStatus.ERROR

        task = asyncio.current_task()
        if task is not None:
            self._inflight.add(task)
        try:
            await responder.acknowledge()
            result = await self.dispatch(kind, raw_name)
            if result.status is DispatchStatus.NOT_FOUND:
                await responder.send_text(UNKNOWN_COMMAND_TEXT, private=True)
            elif result.status is DispatchStatus.NO_RESPONSE:
                await responder.send_text(NO_RESPONSE_TEXT, private=True)
            else:
                await responder.send_reply(result.reply)
                self.logger.info(
                    "command_answered",
                    command=result.command.name,
                    reply=type(result.reply).__name__,
                )
            return result.status
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.error(
                "command_failed",
                command=raw_name,
                kind=kind.name,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            try:
                await responder.send_text(ERROR_TEXT, private=True)
            except Exception as send_error:
                self.logger.error(
                    "error_reply_failed",
                    command=raw_name,
                    error=str(send_error),
                )
            return DispatchStatus.ERROR
        finally:
            if task is not None:
                self._inflight.discard(task)
