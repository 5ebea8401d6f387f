"""Logging for multibot: structlog over stdlib handlers.

Events are written to the console, to a combined ``multibot.log`` and
to one rotating file per subsystem logger (``multibot.bot``,
``multibot.commands``, ``multibot.config``, ``multibot.platforms``).
Platform tokens are redacted before anything is rendered.
"""

import logging
import logging.handlers
import re
import sys
from pathlib import Path
from typing import Any, Dict

import structlog

SUBSYSTEMS = ("bot", "commands", "config", "platforms")
LOGGER_PREFIX = "multibot"

_SECRET_PATTERNS = [
    # Discord bot tokens: <base64 id>.<timestamp>.<hmac>
    re.compile(r"[MNO][a-zA-Z0-9_-]{23,25}\.[a-zA-Z0-9_-]{6}\.[a-zA-Z0-9_-]{27,38}"),
    # Authorization header values
    re.compile(r"(?:Bearer|Bot)\s+[a-zA-Z0-9_./-]{20,}"),
]

_REDACTED = "***REDACTED***"


def _scrub(value: Any) -> Any:
    """Redact credentials in strings, recursing into containers."""
    if isinstance(value, str):
        for pattern in _SECRET_PATTERNS:
            value = pattern.sub(_REDACTED, value)
        return value
    if isinstance(value, dict):
        return {k: _scrub(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return type(value)(_scrub(v) for v in value)
    return value


def sanitize_secrets(
    logger: Any, method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """structlog processor that scrubs platform tokens from every value."""
    return {key: _scrub(value) for key, value in event_dict.items()}


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

def _level(name: Any, fallback: int) -> int:
    level = logging.getLevelName(str(name).upper()) if name else fallback
    return level if isinstance(level, int) else fallback


def _rotating_handler(
    path: Path, level: int, formatter: logging.Formatter, max_bytes: int, backup_count: int
) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(settings=None) -> None:
    """Configure structured logging with subsystem file handlers.

    Called twice: once before settings load (console plus default
    ``./logs``, loggers not cached) and again with the real
    ``Settings``. Every subsystem logger propagates, so an event lands
    in its subsystem file, the combined ``multibot.log`` and the
    console. A log directory that cannot be created leaves the process
    on console-only logging.
    """
    if settings is not None:
        log_dir = settings.log_dir
        root_level = _level(settings.logging_level, logging.INFO)
        subsystem_levels = settings.logging_subsystem_levels
        max_bytes = settings.logging_max_file_size_mb * 1024 * 1024
        backup_count = settings.logging_backup_count
    else:
        log_dir = Path.cwd() / "logs"
        root_level = logging.INFO
        subsystem_levels = {}
        max_bytes = 10 * 1024 * 1024
        backup_count = 5

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        to_files = True
    except OSError as exc:
        print(
            f"WARNING: Cannot create log directory {log_dir}: {exc}. "
            "Falling back to console-only logging.",
            file=sys.stderr,
        )
        to_files = False

    file_formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(root_level)
    console.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
    root_logger.addHandler(console)

    targets = [(LOGGER_PREFIX, "multibot.log", logging.DEBUG, root_level)]
    for subsystem in SUBSYSTEMS:
        level = _level(subsystem_levels.get(subsystem), root_level)
        targets.append((f"{LOGGER_PREFIX}.{subsystem}", f"{subsystem}.log", level, level))

    for name, file_name, logger_level, handler_level in targets:
        target = logging.getLogger(name)
        target.setLevel(logger_level)
        target.handlers.clear()
        target.propagate = True
        if to_files:
            target.addHandler(_rotating_handler(
                log_dir / file_name, handler_level, file_formatter, max_bytes, backup_count
            ))

    # discord.py is chatty at DEBUG
    logging.getLogger("discord").setLevel(max(root_level, logging.INFO))

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            sanitize_secrets,
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=settings is not None,
    )


def shutdown_logging() -> None:
    """Flush and close every handler (call once at process exit)."""
    logging.shutdown()
