"""Hot-reloadable per-command configuration.

Each (bot, command) pair owns one JSON document at
``<config_root>/<botName>/<commandName>.json``. A ConfigRecord loads it
at construction (writing the command's default when it is absent or
unreadable), watches it with watchfiles, and reloads it after a quiet
period whenever it changes on disk.

Readers only ever see ``ConfigRecord.current``: a frozen pydantic model
replaced wholesale on reload, so a reader holds either the old or the
new value and never a half-built one.

Key classes:
    CommandConfig: Base pydantic model for every command schema.
    ConfigRecord: The disk-backed, watched value for one command.

Key functions:
    command_config_path: Deterministic path for a (bot, command) pair.
    ensure_config_dirs: Idempotent creation of the directory hierarchy.
"""

import asyncio
from pathlib import Path
from typing import Callable, Generic, Optional, Type, TypeVar

import structlog
from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel
from watchfiles import Change, awatch

from .exceptions import ConfigParseError, ConfigWriteError

DEFAULT_DEBOUNCE_SECONDS = 0.5

# Changes that mean "the file content may be different now"
_RELOAD_CHANGES = (Change.added, Change.modified)


class CommandConfig(BaseModel):
    """Base for per-command config schemas.

    Keys are camelCase on disk. Instances are frozen so a snapshot taken
    by a response can never change underneath it.

    Attributes:
        version: Schema version of the document.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    version: int = 1

    def to_json(self) -> str:
        """Serialize as pretty-printed JSON with on-disk key names."""
        return self.model_dump_json(by_alias=True, indent=2) + "\n"


ModelT = TypeVar("ModelT", bound=CommandConfig)


def command_config_path(config_root: Path, bot_name: str, command_name: str) -> Path:
    """Return ``<config_root>/<bot_name>/<command_name>.json``."""
    return Path(config_root) / bot_name / f"{command_name}.json"


def ensure_config_dirs(config_root: Path, bot_name: str) -> Path:
    """Create the config root and the bot's subdirectory if missing.

    Safe to call from every command of every bot.

    Returns:
        The bot's config directory.
    """
    bot_dir = Path(config_root) / bot_name
    bot_dir.mkdir(parents=True, exist_ok=True)
    return bot_dir


class ConfigRecord(Generic[ModelT]):
    """The disk-backed, hot-reloadable config value of one command.

    Construction is synchronous and never fails because of the file:
    absent, empty, malformed or invalid content all fall back to the
    default, which is then persisted. ``start_watching()`` must be
    awaited from a running event loop to enable hot reload; ``close()``
    stops it.

    Args:
        bot_name: Owning bot's name (first path component).
        command_name: Command name (file stem).
        model_type: Pydantic schema for the document.
        default_factory: Builds the documented default value.
        config_root: Root directory for all command configs.
        on_config_loaded: Called with every newly adopted value.
        debounce: Quiet period in seconds before a change is reloaded.
        logger: Optional structlog logger; one bound to bot/command
            is created under ``multibot.config`` otherwise.
    """

    def __init__(
        self,
        bot_name: str,
        command_name: str,
        model_type: Type[ModelT],
        default_factory: Callable[[], ModelT],
        *,
        config_root: Path,
        on_config_loaded: Optional[Callable[[ModelT], None]] = None,
        debounce: float = DEFAULT_DEBOUNCE_SECONDS,
        logger=None,
    ):
        self.bot_name = bot_name
        self.command_name = command_name
        self._model_type = model_type
        self._default_factory = default_factory
        self._on_config_loaded = on_config_loaded
        self._debounce = debounce
        self._logger = logger or structlog.get_logger("multibot.config").bind(
            bot=bot_name, command=command_name
        )

        ensure_config_dirs(config_root, bot_name)
        self.path = command_config_path(config_root, bot_name, command_name)

        self._current: ModelT = default_factory()
        self.reload_count = 0

        self._pending_reload: Optional[asyncio.Task] = None
        self._watch_task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._closed = False

        self._load_initial()

    @property
    def current(self) -> ModelT:
        """The live config value. Never None."""
        return self._current

    @property
    def watching(self) -> bool:
        return self._watch_task is not None and not self._watch_task.done()

    # ------------------------------------------------------------------
    # Load / persist
    # ------------------------------------------------------------------

    def _load_initial(self) -> None:
        """Adopt the file content, or the persisted default."""
        if not self.path.exists():
            self._logger.warning("config_file_missing_creating_default", path=str(self.path))
            self._adopt_default()
            return

        try:
            value = self._read()
        except ConfigParseError as e:
            self._logger.warning(
                "config_parse_failed_using_default",
                path=str(self.path),
                error=str(e),
            )
            self._adopt_default()
            return

        self._adopt(value)
        self._logger.info("config_loaded", path=str(self.path), version=value.version)

    def _read(self) -> ModelT:
        """Read and validate the file.

        Raises:
            ConfigParseError: On any I/O, decoding or validation failure.
        """
        try:
            raw = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigParseError(
                f"Cannot read config file: {e}", path=str(self.path)
            ) from e

        if not raw.strip():
            raise ConfigParseError("Config file is empty", path=str(self.path))

        try:
            return self._model_type.model_validate_json(raw)
        except ValidationError as e:
            raise ConfigParseError(
                f"Invalid config: {e.error_count()} error(s)",
                path=str(self.path),
            ) from e

    def _persist(self, value: ModelT) -> None:
        """Write ``value`` to disk.

        Raises:
            ConfigWriteError: If the file cannot be written.
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(value.to_json(), encoding="utf-8")
        except OSError as e:
            raise ConfigWriteError(
                f"Cannot write config file: {e}", path=str(self.path)
            ) from e

    def _adopt_default(self) -> None:
        if self.save(self._default_factory()):
            self._logger.info("config_default_written", path=str(self.path))

    def _adopt(self, value: ModelT) -> None:
        # Single reference swap; readers see old or new, never a mix
        self._current = value
        if self._on_config_loaded is not None:
            try:
                self._on_config_loaded(value)
            except Exception as e:
                self._logger.error(
                    "config_loaded_hook_failed",
                    error=str(e),
                    error_type=type(e).__name__,
                )

    def reload(self) -> bool:
        """Re-read the file and adopt it if valid.

        On failure the previous value stays live.

        Returns:
            True if a new value was adopted.
        """
        try:
            value = self._read()
        except ConfigParseError as e:
            self._logger.warning(
                "config_reload_failed_keeping_previous",
                path=str(self.path),
                error=str(e),
            )
            return False

        self._adopt(value)
        self.reload_count += 1
        self._logger.info("config_reloaded", path=str(self.path), version=value.version)
        return True

    def save(self, value: ModelT) -> bool:
        """Persist and adopt ``value`` (programmatic update).

        The in-memory value is updated even if the write fails.

        Returns:
            True if the file was written.
        """
        written = True
        try:
            self._persist(value)
        except ConfigWriteError as e:
            self._logger.error("config_save_failed", error=str(e))
            written = False
        self._adopt(value)
        return written

    # ------------------------------------------------------------------
    # Change notifications
    # ------------------------------------------------------------------

    def notify_changed(self) -> None:
        """Handle one raw change notification.

        Restarts the debounce timer: a burst of notifications inside the
        window produces a single reload once the file has been quiet for
        ``debounce`` seconds. Must be called on the event loop.
        """
        if self._closed:
            return
        if self._pending_reload is not None and not self._pending_reload.done():
            self._pending_reload.cancel()
        loop = asyncio.get_running_loop()
        self._pending_reload = loop.create_task(self._delayed_reload())

    async def _delayed_reload(self) -> None:
        try:
            await asyncio.sleep(self._debounce)
        except asyncio.CancelledError:
            return  # superseded by a newer notification, or closed
        self._logger.info("config_file_changed_reloading", path=str(self.path))
        self.reload()

    async def start_watching(self) -> None:
        """Start watching the config file for external edits."""
        if self._closed or self.watching:
            return
        self._stop_event = asyncio.Event()
        self._watch_task = asyncio.create_task(
            self._watch(), name=f"config-watch:{self.bot_name}/{self.command_name}"
        )
        self._logger.info("config_watch_enabled", path=str(self.path))

    async def _watch(self) -> None:
        target_name = self.path.name

        def _is_our_file(change: Change, path: str) -> bool:
            return change in _RELOAD_CHANGES and Path(path).name == target_name

        try:
            async for _changes in awatch(
                self.path.parent,
                watch_filter=_is_our_file,
                stop_event=self._stop_event,
                debounce=50,
                recursive=False,
            ):
                self.notify_changed()
        except asyncio.CancelledError:
            self._logger.debug("config_watch_cancelled")
            raise
        except Exception as e:
            # Watching is best-effort; the last loaded value keeps serving
            self._logger.warning(
                "config_watch_failed",
                error=str(e),
                error_type=type(e).__name__,
            )

    async def close(self) -> None:
        """Stop watching and drop any pending reload. Idempotent."""
        if self._closed:
            return
        self._closed = True

        if self._pending_reload is not None and not self._pending_reload.done():
            self._pending_reload.cancel()
        self._pending_reload = None

        if self._stop_event is not None:
            self._stop_event.set()
        if self._watch_task is not None:
            self._watch_task.cancel()
            try:
                await self._watch_task
            except asyncio.CancelledError:
                pass
            self._watch_task = None
        self._logger.debug("config_watch_closed")
