"""
Document resources: where the raw bytes of a document come from.

Three backing stores, one shape:
  - FileResource:   a path on the local filesystem
  - BlobResource:   bytes already in memory
  - RemoteResource: a URL, fetched through an injectable fetcher

get_data() returns None for an invalid resource (never b""), so callers can
tell "no document" apart from "zero-byte document". Bytes are materialized
on first use and cached; after that they are read-only.
"""
from __future__ import annotations

import logging
import threading
import urllib.request
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Optional, Union

from .errors import ResourceFetchError
from .utils import is_url

log = logging.getLogger(__name__)

Fetcher = Callable[[str], bytes]


def fetch_url(url: str, timeout: float = 30.0) -> bytes:
    try:
        with urllib.request.urlopen(url, timeout=timeout) as resp:
            return resp.read()
    except OSError as exc:
        raise ResourceFetchError(f"Cannot fetch {url}: {exc}") from exc


class _LazyBytes(ABC):
    """Fetch-once cache shared by the resource variants."""

    def __init__(self) -> None:
        self._data: Optional[bytes] = None
        self._lock = threading.Lock()

    @abstractmethod
    def _materialize(self) -> Optional[bytes]:
        """Load the bytes; None means nothing could be read."""

    @abstractmethod
    def is_valid(self) -> bool:
        ...

    def get_data(self) -> Optional[bytes]:
        # once materialized, the bytes outlive the source
        if self._data is not None:
            return self._data
        if not self.is_valid():
            return None
        with self._lock:
            if self._data is None:
                self._data = self._materialize()
        return self._data


class FileResource(_LazyBytes):
    def __init__(self, path: Union[str, Path, None]):
        super().__init__()
        self.path = Path(path) if path else None

    def is_valid(self) -> bool:
        return self.path is not None and self.path.is_file()

    def _materialize(self) -> Optional[bytes]:
        try:
            data = self.path.read_bytes()
        except OSError as exc:
            log.warning("Cannot read %s: %s", self.path, exc)
            return None
        log.debug("Read %d bytes from %s", len(data), self.path)
        return data

    def __repr__(self) -> str:
        return f"FileResource({str(self.path)!r})"


class BlobResource(_LazyBytes):
    def __init__(self, data: Optional[bytes]):
        super().__init__()
        self._blob = bytes(data) if data else None

    def is_valid(self) -> bool:
        return bool(self._blob)

    def _materialize(self) -> bytes:
        return self._blob

    def __repr__(self) -> str:
        return f"BlobResource(<{len(self._blob or b'')} bytes>)"


class RemoteResource(_LazyBytes):
    def __init__(self, url: str, fetcher: Fetcher = fetch_url):
        super().__init__()
        self.url = url
        self.fetcher = fetcher

    def is_valid(self) -> bool:
        return is_url(self.url)

    def _materialize(self) -> bytes:
        log.info("Fetching %s", self.url)
        try:
            data = self.fetcher(self.url)
        except ResourceFetchError:
            raise
        except Exception as exc:
            raise ResourceFetchError(f"Cannot fetch {self.url}: {exc}") from exc
        if data is None:
            raise ResourceFetchError(f"Fetcher returned no data for {self.url}")
        return bytes(data)

    def __repr__(self) -> str:
        return f"RemoteResource({self.url!r})"


DocumentResource = Union[FileResource, BlobResource, RemoteResource]


def resource_from(source: Union[str, Path, bytes, bytearray]) -> DocumentResource:
    """Pick the resource variant for a path, URL, or in-memory buffer."""
    if isinstance(source, (bytes, bytearray)):
        return BlobResource(bytes(source))
    if isinstance(source, str) and is_url(source):
        return RemoteResource(source)
    return FileResource(source)
