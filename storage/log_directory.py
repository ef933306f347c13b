from __future__ import annotations

import io
from contextlib import contextmanager
from functools import lru_cache
from html.parser import HTMLParser
from pathlib import Path
from typing import ContextManager, Iterator, List, Optional, Protocol, TextIO, Tuple
from urllib.parse import urljoin

import httpx

from services.exceptions import LogFileNotFound, LogSourceError, OpenFileError
from settings import get_settings


class LogSource(Protocol):
    """Lists log files newest first and opens them as text."""

    prefix: str

    def list_log_files(self) -> Iterator[str]:
        ...

    def open_text(self, name: str) -> ContextManager[TextIO]:
        ...


class _LinkCollector(HTMLParser):
    """Collect ``<a href>`` targets that start with a filename prefix."""

    def __init__(self, prefix: str) -> None:
        super().__init__(convert_charrefs=True)
        self.prefix = prefix
        self.links: List[str] = []

    def handle_starttag(self, tag: str, attrs: List[Tuple[str, Optional[str]]]) -> None:
        if tag != "a":
            return
        href: Optional[str] = None
        for key, value in attrs:
            if key == "href" and value is not None:
                href = value
        if href is not None and href.startswith(self.prefix):
            self.links.append(href)


class HttpLogDirectory:
    """Apache-style directory index served over HTTP.

    The index is expected to be sorted newest first (for Apache that is
    ``?C=M;O=D``); links are returned in page order.
    """

    def __init__(
        self,
        base_url: str,
        prefix: str = "log-",
        client: Optional[httpx.Client] = None,
        timeout: float = 30.0,
    ) -> None:
        self.base_url = base_url
        self.prefix = prefix
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout, follow_redirects=True)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def file_url(self, name: str) -> str:
        return urljoin(self.base_url.rstrip("/") + "/", name)

    def list_log_files(self) -> Iterator[str]:
        try:
            response = self._client.get(self.base_url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise LogSourceError(f"failed to read url {self.base_url}: {exc}") from exc

        collector = _LinkCollector(self.prefix)
        collector.feed(response.text)
        collector.close()
        return iter(collector.links)

    @contextmanager
    def open_text(self, name: str) -> Iterator[TextIO]:
        url = self.file_url(name)
        try:
            response = self._client.get(url)
        except httpx.HTTPError as exc:
            raise LogSourceError(f"failed downloading remote file {url}: {exc}") from exc
        if response.status_code == httpx.codes.NOT_FOUND:
            raise LogFileNotFound(f"{url} not found")
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise LogSourceError(f"failed downloading remote file {url}: {exc}") from exc

        buffer = io.StringIO(response.text)
        try:
            yield buffer
        finally:
            buffer.close()


class LocalLogDirectory:
    """Log files dropped into a local directory, newest modification first."""

    def __init__(self, root_path: Path, prefix: str = "log-") -> None:
        self.root_path = root_path
        self.prefix = prefix

    def list_log_files(self) -> Iterator[str]:
        try:
            entries = [
                (path.stat().st_mtime, path.name)
                for path in self.root_path.iterdir()
                if path.is_file() and path.name.startswith(self.prefix)
            ]
        except OSError as exc:
            raise LogSourceError(f"failed listing directory {self.root_path}: {exc}") from exc

        entries.sort(reverse=True)
        return iter([name for _, name in entries])

    @contextmanager
    def open_text(self, name: str) -> Iterator[TextIO]:
        path = self.root_path / name
        if not path.is_file():
            raise LogFileNotFound(f"{path} not found")
        try:
            handle = path.open("r", encoding="utf-8")
        except OSError as exc:
            raise OpenFileError(str(exc)) from exc
        with handle:
            yield handle


def is_remote(location: str) -> bool:
    return location.startswith(("http://", "https://"))


@lru_cache
def build_default_source(location: Optional[str] = None) -> LogSource:
    settings = get_settings()
    target = settings.remote_logs_dir if location is None else location
    if not target:
        raise LogSourceError("Remote directory with log files not provided.")
    if is_remote(target):
        return HttpLogDirectory(
            base_url=target,
            prefix=settings.log_file_prefix,
            timeout=settings.fetch_timeout,
        )
    return LocalLogDirectory(root_path=Path(target), prefix=settings.log_file_prefix)
