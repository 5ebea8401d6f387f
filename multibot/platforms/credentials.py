"""Platform credential file.

A single JSON object maps bot name to that bot's platform token::

    {"TCHJR": "YOUR_TOKEN_HERE"}

The file (and an entry per requested bot) is created with an obvious
placeholder when missing, so operators know exactly what to fill in.
A blank or placeholder token is fatal for the adapter that needs it.
"""

import json
from pathlib import Path
from typing import Dict

import structlog

from ..exceptions import MissingCredentialError

TOKEN_PLACEHOLDER = "YOUR_TOKEN_HERE"

logger = structlog.get_logger("multibot.platforms")


class TokenStore:
    """Reads bot tokens from a JSON file.

    Args:
        path: Location of the token file.
        platform: Platform the tokens are for (for errors and logs).
    """

    def __init__(self, path: Path, platform: str = "discord"):
        self.path = Path(path)
        self.platform = platform

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError) as e:
            logger.error("token_file_unreadable", path=str(self.path), error=str(e))
            return {}
        if not isinstance(data, dict):
            logger.error("token_file_invalid_type", path=str(self.path), type=type(data).__name__)
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def ensure_entry(self, bot_name: str) -> None:
        """Create the file and/or a placeholder entry for ``bot_name``."""
        if self.path.exists():
            try:
                raw = json.loads(self.path.read_text(encoding="utf-8") or "{}")
            except (OSError, ValueError):
                # Never overwrite a file the operator may be mid-editing
                return
            if not isinstance(raw, dict) or bot_name in raw:
                return
        else:
            raw = {}

        raw[bot_name] = TOKEN_PLACEHOLDER
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(raw, indent=2) + "\n", encoding="utf-8")
            logger.warning(
                "token_placeholder_written",
                path=str(self.path),
                bot=bot_name,
                hint=f"Replace {TOKEN_PLACEHOLDER} with the bot token",
            )
        except OSError as e:
            logger.error("token_file_write_failed", path=str(self.path), error=str(e))

    def get(self, bot_name: str) -> str:
        """Raw token value ('' if absent)."""
        return self._read().get(bot_name, "")

    def require(self, bot_name: str) -> str:
        """Return a usable token for ``bot_name``.

        Raises:
            MissingCredentialError: Token absent, blank or placeholder.
        """
        self.ensure_entry(bot_name)
        token = self.get(bot_name).strip()
        if not token or token == TOKEN_PLACEHOLDER:
            raise MissingCredentialError(
                f"Missing {self.platform} token for bot '{bot_name}' in {self.path}",
                bot=bot_name,
                platform=self.platform,
            )
        return token
