"""random-imdb: link a random movie or TV series from the IMDb dataset.

On init() the command makes sure ``title.basics.tsv.gz`` is present in
``<resources>/IMDB/`` (downloading it from the configured URL when
missing), then keeps the ids of every non-adult movie or TV series that
started in 1910 or later.

Config schema (version 1)::

    {"version": 1, "imdbDataUrl": "https://.../title.basics.tsv.gz"}

Make sure your use of the data complies with the IMDb license:
https://help.imdb.com/article/imdb/general-information/can-i-use-imdb-data-in-my-software/G5JTRESSHJBBHTGX
"""

import asyncio
import csv
import gzip
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple

import aiohttp

from ..config_store import CommandConfig
from ..exceptions import DataSourceFetchError
from ..models import CommandType, Platform
from .base import BotResponse, CommandContext, ConfiguredCommand

DATASET_FILE_NAME = "title.basics.tsv.gz"
DEFAULT_DATA_URL = (
    "URL to title.basics.tsv.gz here, ensure your use of this data is in "
    "compliance with the terms of the IMDB license: https://help.imdb.com/"
    "article/imdb/general-information/can-i-use-imdb-data-in-my-software/"
    "G5JTRESSHJBBHTGX"
)
TITLE_URL = "https://www.imdb.com/title/{tconst}/"

KEPT_TITLE_TYPES = frozenset({"movie", "tvSeries"})
MIN_START_YEAR = 1910
_NULL = "\\N"

DOWNLOAD_CHUNK_SIZE = 64 * 1024
DOWNLOAD_TIMEOUT_SECONDS = 600


class ImdbConfig(CommandConfig):
    imdb_data_url: str = DEFAULT_DATA_URL


def _parse_year(value: Optional[str]) -> Optional[int]:
    if not value or value == _NULL:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def filter_title_basics(lines: Iterable[str]) -> List[str]:
    """Return the tconst of every row worth suggesting.

    ``lines`` is the decompressed TSV including its header row. Rows
    with missing or malformed fields are skipped.
    """
    reader = csv.DictReader(lines, delimiter="\t", quoting=csv.QUOTE_NONE)
    kept = []
    for row in reader:
        tconst = row.get("tconst")
        if not tconst:
            continue
        if row.get("isAdult") == "1":
            continue
        if row.get("titleType") not in KEPT_TITLE_TYPES:
            continue
        start_year = _parse_year(row.get("startYear"))
        if start_year is None or start_year < MIN_START_YEAR:
            continue
        kept.append(tconst)
    return kept


def load_title_basics(path: Path) -> List[str]:
    """Decompress and filter a local ``title.basics.tsv.gz``."""
    with gzip.open(path, "rt", encoding="utf-8", newline="") as f:
        return filter_title_basics(f)


async def download_dataset(
    session: aiohttp.ClientSession, url: str, dest: Path
) -> None:
    """Stream ``url`` into ``dest``.

    Writes to ``<dest>.part`` first and renames on success, so an
    interrupted download never leaves a truncated dataset behind.

    Raises:
        DataSourceFetchError: Unreachable URL or non-success status.
    """
    partial = dest.with_name(dest.name + ".part")
    timeout = aiohttp.ClientTimeout(total=DOWNLOAD_TIMEOUT_SECONDS)
    try:
        async with session.head(url, timeout=timeout, allow_redirects=True) as resp:
            if resp.status >= 400:
                raise DataSourceFetchError(
                    f"Dataset URL returned HTTP {resp.status}", url=url, status=resp.status
                )

        dest.parent.mkdir(parents=True, exist_ok=True)
        async with session.get(url, timeout=timeout) as resp:
            if resp.status >= 400:
                raise DataSourceFetchError(
                    f"Dataset download returned HTTP {resp.status}",
                    url=url,
                    status=resp.status,
                )
            with open(partial, "wb") as f:
                async for chunk in resp.content.iter_chunked(DOWNLOAD_CHUNK_SIZE):
                    f.write(chunk)
        partial.replace(dest)
    except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
        raise DataSourceFetchError(
            f"Unable to fetch dataset: {e}", url=url, error_type=type(e).__name__
        ) from e
    finally:
        if partial.exists():
            partial.unlink()


class RandomImdbResponse(BotResponse):
    command: "RandomImdbCommand"

    async def prepare_response(self) -> bool:
        command = self.command
        if not command.active:
            return False

        titles = command.titles
        if not titles:
            return False

        tconst = command.ctx.rng.choice(titles)
        return self._fill(message=TITLE_URL.format(tconst=tconst))


class RandomImdbCommand(ConfiguredCommand[ImdbConfig]):
    """Suggest a random IMDb title.

    Args:
        ctx: The owning bot's CommandContext.
        session_factory: Builds the aiohttp session used for the
            dataset download.
    """

    name = "random-imdb"
    description = "Get a random movie or TV series from IMDB"
    command_types = CommandType.SLASH_COMMAND
    config_model = ImdbConfig

    def __init__(
        self,
        ctx: CommandContext,
        *,
        session_factory: Callable[[], aiohttp.ClientSession] = aiohttp.ClientSession,
        logger=None,
    ):
        super().__init__(ctx, logger=logger)
        self._session_factory = session_factory
        self.titles: Tuple[str, ...] = ()

    @property
    def dataset_path(self) -> Path:
        return self.ctx.resources_dir / "IMDB" / DATASET_FILE_NAME

    def default_config(self) -> ImdbConfig:
        return ImdbConfig()

    async def init(self) -> bool:
        """Fetch (if needed) and load the dataset.

        Cancellation propagates; the command then stays not-ready with
        no data rather than half-loaded.
        """
        self._ready = False
        try:
            if not self.dataset_path.is_file():
                await self._fetch_dataset()
            self.logger.info("imdb_data_loading", path=str(self.dataset_path))
            titles = await asyncio.to_thread(load_title_basics, self.dataset_path)
        except DataSourceFetchError as e:
            self.logger.error("imdb_data_unavailable", error=str(e))
            return False
        except (OSError, EOFError, csv.Error) as e:
            self.logger.error(
                "imdb_data_load_failed",
                path=str(self.dataset_path),
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        self.titles = tuple(titles)
        self._ready = True
        self.logger.info("imdb_data_loaded", titles=len(self.titles))
        return True

    async def _fetch_dataset(self) -> None:
        url = self.config.current.imdb_data_url.strip()
        if not url.startswith(("http://", "https://")):
            raise DataSourceFetchError(
                f"imdbDataUrl is not configured in {self.config.path}", url=url
            )
        self.logger.info("imdb_data_downloading", url=url)
        async with self._session_factory() as session:
            await download_dataset(session, url, self.dataset_path)

    def create_response(self, platform: Platform) -> RandomImdbResponse:
        return RandomImdbResponse(self, platform)
