"""Custom exception hierarchy for multibot.

Every subsystem raises a subclass of MultibotError so callers can
catch broadly at process boundaries while still handling each failure
kind precisely where it belongs. Each exception carries structured
context that is passed straight into structlog calls.

Command-not-found and no-response are ordinary dispatch outcomes
(see ``multibot.platforms.base.DispatchStatus``), not exceptions.
"""

from typing import Any, Optional


class MultibotError(Exception):
    """Base exception for all multibot errors.

    Attributes:
        message: Human-readable error description.
        module: Originating module name (e.g. "config_store").
        context: Arbitrary key-value pairs for structured logging.
    """

    def __init__(
        self,
        message: str = "",
        *,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.message = message
        self.module = module
        self.context = context
        super().__init__(message)

    def __str__(self) -> str:
        parts = [self.message or self.__class__.__name__]
        if self.module:
            parts.append(f"[module={self.module}]")
        if self.context:
            ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f"({ctx})")
        return " ".join(parts)

    def __repr__(self) -> str:
        cls = self.__class__.__name__
        return f"{cls}({self.message!r}, module={self.module!r})"


# ---------------------------------------------------------------------------
# Configuration store exceptions
# ---------------------------------------------------------------------------

class ConfigStoreError(MultibotError):
    """Error reading or writing a per-command configuration file.

    Attributes:
        path: The config file involved (if known).
    """

    def __init__(
        self,
        message: str = "",
        *,
        path: Optional[str] = None,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.path = path
        super().__init__(message, module=module or "config_store", **context)


class ConfigParseError(ConfigStoreError):
    """Config file is missing content, malformed, or fails validation.

    Recovered locally: the store falls back to the default value (on
    first load) or keeps serving the previous value (on reload).
    """


class ConfigWriteError(ConfigStoreError):
    """Config file could not be persisted.

    Recovered locally: the in-memory value is kept.
    """


# ---------------------------------------------------------------------------
# Bot / command exceptions
# ---------------------------------------------------------------------------

class DuplicateCommandError(MultibotError):
    """Two commands in one bot share a (case-insensitive) name.

    Raised at bot construction time; fatal for that bot.
    """

    def __init__(
        self,
        message: str = "",
        *,
        command: Optional[str] = None,
        bot: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.command = command
        self.bot = bot
        super().__init__(message, module="commands", command=command, bot=bot, **context)


class DataSourceFetchError(MultibotError):
    """External data load failed during a command's init().

    The command reports not-ready; the bot continues starting.
    """

    def __init__(
        self,
        message: str = "",
        *,
        url: Optional[str] = None,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.url = url
        super().__init__(message, module=module or "commands", **context)


# ---------------------------------------------------------------------------
# Platform exceptions
# ---------------------------------------------------------------------------

class PlatformError(MultibotError):
    """Base for platform adapter errors.

    Attributes:
        platform: Platform name (e.g. "discord").
    """

    def __init__(
        self,
        message: str = "",
        *,
        platform: Optional[str] = None,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.platform = platform
        super().__init__(message, module=module or "platforms", **context)


class MissingCredentialError(PlatformError):
    """Token for a bot is absent, blank or still the placeholder.

    Fatal for the affected adapter only: other bots and platforms
    keep running.
    """

    def __init__(
        self,
        message: str = "",
        *,
        bot: Optional[str] = None,
        platform: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.bot = bot
        super().__init__(message, platform=platform, bot=bot, **context)


class RenderError(PlatformError):
    """Building or sending a platform message failed.

    Caught at the adapter boundary and converted into a generic
    user-visible error reply.
    """

    def __init__(
        self,
        message: str = "",
        *,
        command: Optional[str] = None,
        platform: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.command = command
        super().__init__(message, platform=platform, command=command, **context)
