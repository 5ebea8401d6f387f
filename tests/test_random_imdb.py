"""Tests for the random-imdb command and its dataset handling."""

import asyncio
import gzip
import random

import aiohttp
import pytest

from multibot.commands.base import CommandContext
from multibot.commands.random_imdb import (
    DEFAULT_DATA_URL,
    ImdbConfig,
    RandomImdbCommand,
    download_dataset,
    filter_title_basics,
)
from multibot.exceptions import DataSourceFetchError
from multibot.models import CommandType, Platform

HEADER = "tconst\ttitleType\tprimaryTitle\toriginalTitle\tisAdult\tstartYear\tendYear\truntimeMinutes\tgenres"

ROWS = [
    "tt0000001\tshort\tCarmencita\tCarmencita\t0\t1894\t\\N\t1\tDocumentary,Short",
    "tt0000002\tmovie\tOld Movie\tOld Movie\t0\t1909\t\\N\t90\tDrama",
    "tt0000003\tmovie\tKept Movie\tKept Movie\t0\t1910\t\\N\t90\tDrama",
    "tt0000004\ttvSeries\tKept Series\tKept Series\t0\t1999\t2003\t30\tComedy",
    "tt0000005\tmovie\tAdult Movie\tAdult Movie\t1\t2001\t\\N\t80\tAdult",
    "tt0000006\tmovie\tNo Year\tNo Year\t0\t\\N\t\\N\t90\tDrama",
    "tt0000007\ttvEpisode\tAn Episode\tAn Episode\t0\t2005\t\\N\t22\tComedy",
    'tt0000008\tmovie\t"Quoted" Title\t"Quoted" Title\t0\t2010\t\\N\t100\tDrama',
]

KEPT = ["tt0000003", "tt0000004", "tt0000008"]

DATA_URL = "https://datasets.example.test/title.basics.tsv.gz"


def _tsv() -> str:
    return "\n".join([HEADER, *ROWS]) + "\n"


def _gz_bytes() -> bytes:
    return gzip.compress(_tsv().encode("utf-8"))


def _make_ctx(tmp_path) -> CommandContext:
    return CommandContext(
        bot_name="TestBot",
        config_root=tmp_path / "Config",
        resources_dir=tmp_path / "Resources",
        rng=random.Random(7),
    )


def _place_dataset(tmp_path, data: bytes):
    path = tmp_path / "Resources" / "IMDB" / "title.basics.tsv.gz"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


# -------------------------------------------------------------------
# Fake aiohttp session
# -------------------------------------------------------------------

class _FakeContent:
    def __init__(self, body: bytes):
        self._body = body

    async def iter_chunked(self, size):
        for i in range(0, len(self._body), size):
            yield self._body[i:i + size]


class _FakeResponse:
    def __init__(self, status=200, body=b"", hang=False):
        self.status = status
        self.content = _FakeContent(body)
        self._hang = hang

    async def __aenter__(self):
        if self._hang:
            await asyncio.Event().wait()
        return self

    async def __aexit__(self, *exc):
        return False


class _FakeSession:
    def __init__(self, head_status=200, get_status=200, body=b"", error=None, hang=False):
        self.head_status = head_status
        self.get_status = get_status
        self.body = body
        self.error = error
        self.hang = hang
        self.calls = []

    def head(self, url, **kwargs):
        self.calls.append(("HEAD", url))
        if self.error is not None:
            raise self.error
        return _FakeResponse(self.head_status, hang=self.hang)

    def get(self, url, **kwargs):
        self.calls.append(("GET", url))
        return _FakeResponse(self.get_status, self.body)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


# -------------------------------------------------------------------
# Parsing
# -------------------------------------------------------------------

class TestFilterTitleBasics:

    def test_keeps_recent_non_adult_movies_and_series(self):
        assert filter_title_basics(_tsv().splitlines()) == KEPT

    def test_header_only_gives_nothing(self):
        assert filter_title_basics([HEADER]) == []

    def test_short_rows_are_skipped(self):
        lines = [HEADER, "tt0000009\tmovie", ROWS[2]]
        assert filter_title_basics(lines) == ["tt0000003"]

    def test_malformed_year_is_skipped(self):
        lines = [HEADER, "tt0000010\tmovie\tX\tX\t0\tsoon\t\\N\t90\tDrama"]
        assert filter_title_basics(lines) == []


# -------------------------------------------------------------------
# Download
# -------------------------------------------------------------------

class TestDownload:

    @pytest.mark.asyncio
    async def test_download_writes_dataset(self, tmp_path):
        dest = tmp_path / "IMDB" / "title.basics.tsv.gz"
        session = _FakeSession(body=_gz_bytes())

        await download_dataset(session, DATA_URL, dest)

        assert dest.read_bytes() == _gz_bytes()
        assert session.calls == [("HEAD", DATA_URL), ("GET", DATA_URL)]
        assert not dest.with_name(dest.name + ".part").exists()

    @pytest.mark.asyncio
    async def test_head_error_status_raises(self, tmp_path):
        dest = tmp_path / "title.basics.tsv.gz"
        session = _FakeSession(head_status=404)

        with pytest.raises(DataSourceFetchError) as exc_info:
            await download_dataset(session, DATA_URL, dest)

        assert exc_info.value.url == DATA_URL
        assert session.calls == [("HEAD", DATA_URL)]
        assert not dest.exists()

    @pytest.mark.asyncio
    async def test_get_error_status_leaves_no_partial_file(self, tmp_path):
        dest = tmp_path / "title.basics.tsv.gz"
        session = _FakeSession(get_status=500)

        with pytest.raises(DataSourceFetchError):
            await download_dataset(session, DATA_URL, dest)

        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_client_error_is_wrapped(self, tmp_path):
        session = _FakeSession(error=aiohttp.ClientConnectionError("refused"))

        with pytest.raises(DataSourceFetchError) as exc_info:
            await download_dataset(session, DATA_URL, tmp_path / "x.gz")

        assert isinstance(exc_info.value.__cause__, aiohttp.ClientConnectionError)


# -------------------------------------------------------------------
# Command
# -------------------------------------------------------------------

class TestRandomImdbCommand:

    def test_slash_only(self, tmp_path):
        command = RandomImdbCommand(_make_ctx(tmp_path))
        assert command.name == "random-imdb"
        assert command.command_types == CommandType.SLASH_COMMAND

    def test_default_config_holds_placeholder_url(self, tmp_path):
        command = RandomImdbCommand(_make_ctx(tmp_path))
        assert command.config.current.imdb_data_url == DEFAULT_DATA_URL
        assert "imdbDataUrl" in command.config.path.read_text()

    @pytest.mark.asyncio
    async def test_init_from_local_dataset(self, tmp_path):
        _place_dataset(tmp_path, _gz_bytes())
        session_factory = _FakeSession
        command = RandomImdbCommand(_make_ctx(tmp_path), session_factory=session_factory)

        assert await command.init() is True

        assert command.ready is True
        assert command.titles == tuple(KEPT)

    @pytest.mark.asyncio
    async def test_response_links_a_kept_title(self, tmp_path):
        _place_dataset(tmp_path, _gz_bytes())
        command = RandomImdbCommand(_make_ctx(tmp_path))
        await command.init()

        response = command.create_response(Platform.DISCORD)
        assert await response.prepare_response() is True

        assert response.message.startswith("https://www.imdb.com/title/tt")
        assert response.message.endswith("/")
        tconst = response.message.rstrip("/").rsplit("/", 1)[-1]
        assert tconst in KEPT
        assert response.embed_title is None

    @pytest.mark.asyncio
    async def test_placeholder_url_leaves_command_not_ready(self, tmp_path):
        session = _FakeSession(body=_gz_bytes())
        command = RandomImdbCommand(_make_ctx(tmp_path), session_factory=lambda: session)

        assert await command.init() is False

        assert command.ready is False
        assert session.calls == []
        response = command.create_response(Platform.DISCORD)
        assert await response.prepare_response() is False

    @pytest.mark.asyncio
    async def test_missing_dataset_is_downloaded(self, tmp_path):
        session = _FakeSession(body=_gz_bytes())
        command = RandomImdbCommand(_make_ctx(tmp_path), session_factory=lambda: session)
        command.config.save(ImdbConfig(imdb_data_url=DATA_URL))

        assert await command.init() is True

        assert command.dataset_path.is_file()
        assert command.titles == tuple(KEPT)

    @pytest.mark.asyncio
    async def test_failed_download_leaves_command_not_ready(self, tmp_path):
        session = _FakeSession(head_status=403)
        command = RandomImdbCommand(_make_ctx(tmp_path), session_factory=lambda: session)
        command.config.save(ImdbConfig(imdb_data_url=DATA_URL))

        assert await command.init() is False
        assert command.titles == ()
        assert not command.dataset_path.exists()

    @pytest.mark.asyncio
    async def test_corrupt_dataset_leaves_command_not_ready(self, tmp_path):
        _place_dataset(tmp_path, b"this is not gzip")
        command = RandomImdbCommand(_make_ctx(tmp_path))

        assert await command.init() is False
        assert command.ready is False
        assert command.titles == ()

    @pytest.mark.asyncio
    async def test_cancelled_init_propagates_and_leaves_no_data(self, tmp_path):
        session = _FakeSession(hang=True)
        command = RandomImdbCommand(_make_ctx(tmp_path), session_factory=lambda: session)
        command.config.save(ImdbConfig(imdb_data_url=DATA_URL))

        task = asyncio.create_task(command.init())
        await asyncio.sleep(0.05)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert command.ready is False
        assert command.titles == ()

    @pytest.mark.asyncio
    async def test_inactive_command_gives_no_response(self, tmp_path):
        _place_dataset(tmp_path, _gz_bytes())
        command = RandomImdbCommand(_make_ctx(tmp_path))
        await command.init()
        command.active = False

        response = command.create_response(Platform.DISCORD)
        assert await response.prepare_response() is False
        assert response.message is None
