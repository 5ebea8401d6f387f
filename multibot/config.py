"""Process-level settings for multibot.

Loads ``settings.yaml`` and ``.env`` from the base directory into a
typed Settings object. Property getters provide safe access with
sensible defaults for every subsystem: per-command config store,
credentials, resources, logging, routing and timeouts.

Per-command configuration (the hot-reloadable JSON files) lives in
``multibot.config_store``; this module only knows where it is rooted.

Key classes:
    Settings: Process-wide settings, built once in main() and passed
        explicitly to every component that needs it.
"""

import os
from pathlib import Path
from typing import List, Optional

import structlog
import yaml
from dotenv import load_dotenv

logger = structlog.get_logger("multibot.config")

DEFAULT_TEXT_PREFIXES = ["!"]


class Settings:
    """Central settings for a multibot process.

    Loads settings.yaml and .env from ``base_dir``. Read-only after
    __init__.

    Args:
        base_dir: Directory holding settings.yaml and .env, and the
            default parent of Config/, Resources/, logs/ and the token
            file. Defaults to the current working directory.
    """

    def __init__(self, base_dir: Optional[Path] = None):
        if base_dir is None:
            base_dir = Path.cwd()
        self.base_dir = Path(base_dir)

        env_file = self.base_dir / ".env"
        if env_file.exists():
            load_dotenv(env_file)

        self.settings = self._load_yaml("settings.yaml")

    def _load_yaml(self, filename: str) -> dict:
        """Load a YAML settings file."""
        filepath = self.base_dir / filename
        if filepath.exists():
            with open(filepath, "r", encoding="utf-8") as f:
                return yaml.safe_load(f) or {}
        return {}

    def _path_setting(self, key: str, default: Path) -> Path:
        configured = self.settings.get(key)
        if configured:
            path = Path(configured).expanduser()
            return path if path.is_absolute() else self.base_dir / path
        return default

    def validate(self):
        """Validate settings at startup.

        Logs warnings/errors but does not raise; the process starts
        with defaults for anything invalid.
        """
        prefixes = self.settings.get("text_prefixes")
        if prefixes is not None and not isinstance(prefixes, list):
            logger.error("text_prefixes_invalid_type", type=type(prefixes).__name__)
        elif prefixes:
            for prefix in prefixes:
                if not isinstance(prefix, str) or len(prefix) != 1 or prefix.isspace():
                    logger.error("text_prefix_invalid", prefix=repr(prefix))

        debounce = self.settings.get("config_reload_debounce")
        if debounce is not None and (
            not isinstance(debounce, (int, float)) or debounce < 0
        ):
            logger.error(
                "config_invalid_value",
                key="config_reload_debounce",
                value=debounce,
                valid=">= 0",
            )

        timeout = self.settings.get("response_timeout")
        if timeout is not None and (
            not isinstance(timeout, (int, float)) or timeout <= 0
        ):
            logger.error(
                "config_invalid_value",
                key="response_timeout",
                value=timeout,
                valid="> 0",
            )

    # --- paths ---

    @property
    def config_root(self) -> Path:
        """Root of the per-command JSON configs. Env var MULTIBOT_CONFIG_ROOT wins."""
        env = os.environ.get("MULTIBOT_CONFIG_ROOT")
        if env:
            return Path(env).expanduser()
        return self._path_setting("config_root", self.base_dir / "Config")

    @property
    def token_file(self) -> Path:
        """JSON file mapping bot name to Discord token."""
        return self._path_setting("token_file", self.base_dir / "DiscordTokens.json")

    @property
    def resources_dir(self) -> Path:
        """Static resources (images, downloaded datasets)."""
        return self._path_setting("resources_dir", self.base_dir / "Resources")

    @property
    def log_dir(self) -> Path:
        """Get log directory path."""
        return self._path_setting("log_dir", self.base_dir / "logs")

    # --- logging ---

    @property
    def logging_level(self) -> str:
        """Global log level (default INFO). Controls console and combined file."""
        log_config = self.settings.get("logging", {})
        return log_config.get("level", "INFO")

    @property
    def logging_subsystem_levels(self) -> dict:
        """Per-subsystem log level overrides. E.g. {"config": "DEBUG"}."""
        log_config = self.settings.get("logging", {})
        return log_config.get("subsystem_levels", {})

    @property
    def logging_max_file_size_mb(self) -> int:
        """Max size per log file in MB before rotation (default 10)."""
        log_config = self.settings.get("logging", {})
        return log_config.get("max_file_size_mb", 10)

    @property
    def logging_backup_count(self) -> int:
        """Number of rotated log files to keep (default 5)."""
        log_config = self.settings.get("logging", {})
        return log_config.get("backup_count", 5)

    # --- routing / runtime ---

    @property
    def text_prefixes(self) -> List[str]:
        """Characters recognised in front of a text command (default ``!``)."""
        prefixes = self.settings.get("text_prefixes")
        if not isinstance(prefixes, list):
            return list(DEFAULT_TEXT_PREFIXES)
        valid = [
            p for p in prefixes
            if isinstance(p, str) and len(p) == 1 and not p.isspace()
        ]
        return valid or list(DEFAULT_TEXT_PREFIXES)

    @property
    def config_reload_debounce(self) -> float:
        """Quiet period in seconds before a changed config file is reloaded."""
        value = self.settings.get("config_reload_debounce", 0.5)
        if not isinstance(value, (int, float)) or value < 0:
            return 0.5
        return float(value)

    @property
    def response_timeout(self) -> float:
        """Seconds a command may spend preparing a response (default 30)."""
        value = self.settings.get("response_timeout", 30)
        if not isinstance(value, (int, float)) or value <= 0:
            return 30.0
        return float(value)

    @property
    def enabled_bots(self) -> Optional[List[str]]:
        """Bot names to start. None means every known bot."""
        bots = self.settings.get("bots")
        if bots is None:
            return None
        if not isinstance(bots, list):
            logger.error("bots_invalid_type", type=type(bots).__name__)
            return None
        return [str(b) for b in bots]
