from __future__ import annotations

import threading
from io import StringIO
from pathlib import Path

import pytest
import requests
from rich.console import Console

from subbatch.commands.download import (
    DEFAULT_RETRIES,
    Downloader,
    build_session,
    extract_links,
    file_name_for,
)
from subbatch.config import DownloadConfig
from subbatch.errors import DownloadError

PAGE_URL = "https://kitsunekko.net/dirlist.php?dir=subtitles%2Fjapanese%2FShow%2F"

PAGE = """<html><body>
<table class="nav"><tr><td><a href="/dirlist.php?dir=subtitles">back</a></td></tr></table>
<table class="flisttable">
<tr><td><a href="subtitles/japanese/Show/Show%2001.srt" class="">Show 01.srt</a></td></tr>
<tr><td><a href="subtitles/japanese/Show/Show%2002.ass" class="">Show 02.ass</a></td></tr>
</table>
<footer><a href="/about.php">about</a></footer>
</body></html>"""


class FakeResponse:
    def __init__(self, status_code: int = 200, text: str = "", content: bytes = b"") -> None:
        self.status_code = status_code
        self.text = text
        self.content = content

    @property
    def ok(self) -> bool:
        return self.status_code < 400


class FakeSession:
    def __init__(self, responses: dict[str, FakeResponse]) -> None:
        self.responses = responses
        self.requested: list[str] = []
        self._lock = threading.Lock()

    def get(self, url: str, timeout: float | None = None) -> FakeResponse:
        with self._lock:
            self.requested.append(url)
        response = self.responses.get(url)
        if response is None:
            raise requests.ConnectionError(f"no route to {url}")
        return response


def _downloader(tmp_path: Path, session: FakeSession, url: str = PAGE_URL) -> tuple[Downloader, StringIO]:
    output = StringIO()
    downloader = Downloader(
        DownloadConfig(url=url, max_workers=2),
        tmp_path / "subs",
        Console(file=output, color_system=None, width=200),
        session=session,
    )
    return downloader, output


def _site(**overrides: FakeResponse) -> dict[str, FakeResponse]:
    responses = {
        PAGE_URL: FakeResponse(text=PAGE),
        "https://kitsunekko.net/subtitles/japanese/Show/Show%2001.srt": FakeResponse(content=b"first"),
        "https://kitsunekko.net/subtitles/japanese/Show/Show%2002.ass": FakeResponse(content=b"second"),
    }
    responses.update(overrides)
    return responses


class TestExtractLinks:
    def test_only_file_table_links(self) -> None:
        assert extract_links(PAGE) == [
            "subtitles/japanese/Show/Show%2001.srt",
            "subtitles/japanese/Show/Show%2002.ass",
        ]

    def test_missing_table(self) -> None:
        with pytest.raises(DownloadError, match="flisttable"):
            extract_links("<html><body>nothing here</body></html>")


class TestFileNameFor:
    def test_decodes_last_segment(self) -> None:
        assert file_name_for("subtitles/japanese/Show/Show%2001%20%5BBD%5D.srt") == "Show 01 [BD].srt"

    @pytest.mark.parametrize(
        "link",
        ["subs/..%2F..%2Fescaped.srt", "subs/..%5C..%5Cescaped.srt", "subs%2F%2E%2E%2Fescaped.srt"],
    )
    def test_encoded_separators_do_not_leave_the_directory(self, link: str) -> None:
        assert file_name_for(link) == "escaped.srt"

    @pytest.mark.parametrize("link", ["", "subtitles/..", "/", "subs/%2E%2E", "subs/..%2F", "subs/bad%00.srt"])
    def test_rejects_links_without_a_name(self, link: str) -> None:
        with pytest.raises(DownloadError):
            file_name_for(link)


class TestBuildSession:
    def test_mounts_retrying_adapter(self) -> None:
        session = build_session()

        retries = session.get_adapter("https://kitsunekko.net/").max_retries
        assert retries.total == DEFAULT_RETRIES
        assert 503 in retries.status_forcelist


class TestDownloader:
    """Tests for downloading a kitsunekko directory page."""

    def test_downloads_every_linked_file(self, tmp_path: Path) -> None:
        session = FakeSession(_site())
        downloader, output = _downloader(tmp_path, session)

        paths = downloader.run()

        directory = tmp_path / "subs"
        assert paths == [directory / "Show 01.srt", directory / "Show 02.ass"]
        assert (directory / "Show 01.srt").read_bytes() == b"first"
        assert (directory / "Show 02.ass").read_bytes() == b"second"
        assert session.requested[0] == PAGE_URL
        assert "downloaded 2 file(s)" in output.getvalue()

    def test_page_status_error(self, tmp_path: Path) -> None:
        downloader, _ = _downloader(tmp_path, FakeSession({PAGE_URL: FakeResponse(status_code=404)}))

        with pytest.raises(DownloadError, match="expected 200 OK") as excinfo:
            downloader.run()

        assert excinfo.value.status_code == 404
        assert not (tmp_path / "subs").exists()

    def test_invalid_url(self, tmp_path: Path) -> None:
        session = FakeSession({})
        downloader, _ = _downloader(tmp_path, session, url="kitsunekko.net/whatever")

        with pytest.raises(DownloadError, match="invalid url"):
            downloader.run()

        assert session.requested == []

    def test_page_without_links(self, tmp_path: Path) -> None:
        page = '<table class="flisttable"></table>'
        downloader, _ = _downloader(tmp_path, FakeSession({PAGE_URL: FakeResponse(text=page)}))

        with pytest.raises(DownloadError, match="found no subtitle links"):
            downloader.run()

    def test_connection_error_is_wrapped(self, tmp_path: Path) -> None:
        downloader, _ = _downloader(tmp_path, FakeSession({}))

        with pytest.raises(DownloadError, match="request to"):
            downloader.run()

    def test_one_failed_file_does_not_stop_the_rest(self, tmp_path: Path, caplog) -> None:
        session = FakeSession(
            _site(**{"https://kitsunekko.net/subtitles/japanese/Show/Show%2001.srt": FakeResponse(status_code=500)})
        )
        downloader, _ = _downloader(tmp_path, session)

        with caplog.at_level("ERROR"), pytest.raises(DownloadError, match="failed to download 1 of 2"):
            downloader.run()

        assert (tmp_path / "subs" / "Show 02.ass").read_bytes() == b"second"
        assert not (tmp_path / "subs" / "Show 01.srt").exists()
        assert "Download Failures" in caplog.text

    def test_encoded_dot_segments_stay_in_directory(self, tmp_path: Path) -> None:
        page = '<table class="flisttable"><a href="subs/..%2F..%2Fescaped.srt">x</a></table>'
        session = FakeSession(
            {
                PAGE_URL: FakeResponse(text=page),
                "https://kitsunekko.net/subs/..%2F..%2Fescaped.srt": FakeResponse(content=b"payload"),
            }
        )
        downloader, _ = _downloader(tmp_path, session)

        assert downloader.run() == [tmp_path / "subs" / "escaped.srt"]

        assert (tmp_path / "subs" / "escaped.srt").read_bytes() == b"payload"
        assert not (tmp_path / "escaped.srt").exists()
        assert not (tmp_path.parent / "escaped.srt").exists()
