from __future__ import annotations

import logging
import re
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urljoin

import requests
from requests.adapters import HTTPAdapter
from rich.console import Console
from urllib3.util.retry import Retry

from ..config import DownloadConfig
from ..errors import DownloadError
from ..logging_utils import render_fields_block, render_section_block
from ..utils import validate_url

LOGGER = logging.getLogger(__name__)

KITSUNEKKO_BASE_URL = "https://kitsunekko.net/"
TABLE_MARKER = "flisttable"
HREF_PATTERN = re.compile(r'href="(.+?)"')
SEPARATOR_PATTERN = re.compile(r"[/\\]")

DEFAULT_RETRIES = 3
DEFAULT_BACKOFF_FACTOR = 0.5
RETRY_STATUS_CODES = frozenset({500, 502, 503, 504, 429})


def build_session(max_retries: int = DEFAULT_RETRIES, backoff_factor: float = DEFAULT_BACKOFF_FACTOR) -> requests.Session:
    session = requests.Session()
    retry_strategy = Retry(
        total=max_retries,
        backoff_factor=backoff_factor,
        status_forcelist=list(RETRY_STATUS_CODES),
        allowed_methods=["GET"],
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry_strategy, pool_maxsize=10)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def extract_links(html: str) -> list[str]:
    """Return the hrefs of the file table on a kitsunekko directory page."""
    if TABLE_MARKER not in html:
        raise DownloadError(f"failed to find '{TABLE_MARKER}' in the page")
    table = html.split(TABLE_MARKER)[-1].split("</table>")[0]
    return HREF_PATTERN.findall(table)


def file_name_for(link: str) -> str:
    """Return the last segment of ``link``, percent-decoded.

    Decoding happens before splitting, so encoded separators (``%2F``, ``%5C``) never
    turn into directory parts of the name.
    """
    name = SEPARATOR_PATTERN.split(unquote(link).rstrip("/\\"))[-1]
    if not name or name in (".", "..") or "\x00" in name:
        raise DownloadError(f"cannot derive a file name from link: {link}")
    return name


class Downloader:
    """Download every subtitle listed on a kitsunekko.net page into a directory."""

    def __init__(
        self,
        conf: DownloadConfig,
        directory: Path,
        console: Console,
        *,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.conf = conf
        self.directory = directory
        self.console = console
        self.session = session or build_session()

    def _get(self, url: str) -> requests.Response:
        LOGGER.debug("GET %s", url)
        try:
            response = self.session.get(url, timeout=self.conf.timeout)
        except requests.RequestException as exc:
            raise DownloadError(f"request to {url} failed: {exc}") from exc
        if not response.ok:
            raise DownloadError(
                f"expected 200 OK from {url}, got: {response.status_code}",
                status_code=response.status_code,
            )
        return response

    def fetch(self, link: str) -> Path:
        url = urljoin(KITSUNEKKO_BASE_URL, link.lstrip("/"))
        destination = self.directory / file_name_for(link)
        if destination.resolve().parent != self.directory.resolve():
            raise DownloadError(f"refusing to write {destination} outside of {self.directory}")
        response = self._get(url)
        destination.write_bytes(response.content)
        LOGGER.info(render_fields_block("Downloaded Subtitle", {"URL": url, "File": destination}))
        return destination

    def run(self) -> list[Path]:
        """Raises DownloadError once every link was tried, if any of them failed."""
        if not validate_url(self.conf.url):
            raise DownloadError(f"invalid url: {self.conf.url}")

        links = extract_links(self._get(self.conf.url).text)
        if not links:
            raise DownloadError(f"found no subtitle links on {self.conf.url}")
        self.directory.mkdir(parents=True, exist_ok=True)

        downloaded: list[Path] = []
        failures: list[str] = []
        max_workers = min(self.conf.max_workers, len(links))
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            future_map = {executor.submit(self.fetch, link): link for link in links}
            for future in as_completed(future_map):
                link = future_map[future]
                try:
                    downloaded.append(future.result())
                except (DownloadError, OSError) as exc:
                    failures.append(f"{link}: {exc}")

        if failures:
            LOGGER.error(render_section_block("Download Failures", [("Failures", failures)]))
            raise DownloadError(f"failed to download {len(failures)} of {len(links)} file(s)")

        self.console.print(f"downloaded {len(downloaded)} file(s) into {self.directory}", highlight=False)
        return sorted(downloaded)
