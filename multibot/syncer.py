"""Remote command registration diff.

Registering commands with a platform is rate limited and eventually
consistent, so the bulk overwrite is only issued when the declared set
differs from what the platform already has.

Key functions:
    needs_sync: Compare existing and desired (name, description) lists.

Key classes:
    CommandSyncer: Fetch, compare and register, tolerating failures.
"""

from typing import Awaitable, Callable, Dict, Sequence

import structlog

from .models import CommandDescriptor


def needs_sync(
    existing: Sequence[CommandDescriptor],
    desired: Sequence[CommandDescriptor],
) -> bool:
    """Whether the platform's command list must be overwritten.

    True if the counts differ, or if any desired command has no
    case-insensitive name match among the existing ones, or its
    description differs (exact compare). Order does not matter.
    """
    if len(existing) != len(desired):
        return True

    by_name: Dict[str, str] = {}
    for name, description in existing:
        by_name.setdefault(name.casefold(), description)

    for name, description in desired:
        current = by_name.get(name.casefold())
        if current is None or current != description:
            return True
    return False


class CommandSyncer:
    """Runs the fetch → compare → register cycle for one platform.

    Args:
        platform: Platform name for logs.
        logger: Optional structlog logger.
    """

    def __init__(self, platform: str, *, logger=None):
        self.platform = platform
        self._logger = logger or structlog.get_logger("multibot.platforms").bind(
            platform=platform
        )

    async def sync(
        self,
        fetch_existing: Callable[[], Awaitable[Sequence[CommandDescriptor]]],
        register: Callable[[], Awaitable[object]],
        desired: Sequence[CommandDescriptor],
    ) -> bool:
        """Register ``desired`` if it differs from the remote list.

        Failures are logged and swallowed; previously registered
        commands stay in effect.

        Returns:
            True if a registration call was made and succeeded.
        """
        try:
            existing = list(await fetch_existing())
        except Exception as e:
            self._logger.warning(
                "command_fetch_failed_forcing_sync",
                error=str(e),
                error_type=type(e).__name__,
            )
            existing = None

        if existing is not None and not needs_sync(existing, desired):
            self._logger.info("commands_up_to_date", count=len(desired))
            return False

        try:
            await register()
        except Exception as e:
            self._logger.error(
                "command_registration_failed",
                error=str(e),
                error_type=type(e).__name__,
                desired=[d.name for d in desired],
            )
            return False

        self._logger.info(
            "commands_registered",
            count=len(desired),
            names=[d.name for d in desired],
        )
        return True
