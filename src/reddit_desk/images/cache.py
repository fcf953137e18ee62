"""
Thumbnail cache.

Downloads and decodes preview images on a worker pool, keyed by URL. The
render loop calls ``peek`` every frame; only the first miss for a URL
starts a download, later callers share its future.
"""

from __future__ import annotations

import io
import threading
from collections import OrderedDict
from collections.abc import Callable
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass, field

import requests
from loguru import logger
from PIL import Image, UnidentifiedImageError

from reddit_desk.client.errors import DecodeError, NetworkError, RedditError
from reddit_desk.config import AppConfig, RedditConfig


@dataclass(frozen=True)
class CachedImage:
    url: str
    image: Image.Image
    width: int
    height: int
    nbytes: int


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    fetches: int = 0
    evictions: int = 0
    failed: set[str] = field(default_factory=set)


def decode_image(url: str, data: bytes) -> CachedImage:
    """Decode raw bytes into an RGBA bitmap."""
    try:
        with Image.open(io.BytesIO(data)) as raw:
            image = raw.convert("RGBA")
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise DecodeError(f"Could not decode image {url}: {exc}") from exc
    width, height = image.size
    return CachedImage(url=url, image=image, width=width, height=height, nbytes=width * height * 4)


class ImageCache:
    """LRU cache of decoded images bounded by total decoded bytes."""

    def __init__(
        self,
        config: AppConfig | None = None,
        executor: Executor | None = None,
        downloader: Callable[[str], bytes] | None = None,
        max_bytes: int | None = None,
    ) -> None:
        cfg = config or AppConfig()
        self._max_bytes = max_bytes if max_bytes is not None else cfg.image_cache_max_bytes
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=cfg.workers, thread_name_prefix="images"
        )
        self._download = downloader or self._http_download
        self._session: requests.Session | None = None

        self._lock = threading.Lock()
        self._entries: OrderedDict[str, CachedImage] = OrderedDict()
        self._inflight: dict[str, Future[CachedImage]] = {}
        self._total_bytes = 0
        self.stats = CacheStats()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _http_download(self, url: str) -> bytes:
        if self._session is None:
            self._session = requests.Session()
            self._session.headers.update({"User-Agent": RedditConfig().user_agent})
        try:
            resp = self._session.get(url, timeout=15)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise NetworkError(f"Image download failed for {url}: {exc}") from exc
        return resp.content

    def _load(self, url: str) -> CachedImage:
        return decode_image(url, self._download(url))

    def _store(self, entry: CachedImage) -> None:
        # Caller holds the lock
        if entry.nbytes > self._max_bytes:
            logger.debug(f"Not caching {entry.url}: {entry.nbytes} bytes exceeds the bound")
            return
        self._entries[entry.url] = entry
        self._total_bytes += entry.nbytes
        while self._total_bytes > self._max_bytes:
            _, evicted = self._entries.popitem(last=False)
            self._total_bytes -= evicted.nbytes
            self.stats.evictions += 1

    def _finish(self, url: str, future: Future[CachedImage]) -> None:
        with self._lock:
            self._inflight.pop(url, None)
            if future.cancelled():
                return
            error = future.exception()
            if error is None:
                self._store(future.result())
                return
            self.stats.failed.add(url)
        if isinstance(error, RedditError):
            logger.warning(error.message)
        else:
            logger.opt(exception=error).error(f"Unexpected failure loading {url}")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def total_bytes(self) -> int:
        return self._total_bytes

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, url: str) -> bool:
        return url in self._entries

    def get(self, url: str) -> CachedImage | None:
        """Cached image for ``url`` (marked most recently used) or None."""
        with self._lock:
            entry = self._entries.get(url)
            if entry is not None:
                self._entries.move_to_end(url)
                self.stats.hits += 1
            return entry

    def get_or_fetch(self, url: str) -> Future[CachedImage]:
        """Future for ``url``; concurrent callers for one URL share a single download."""
        with self._lock:
            entry = self._entries.get(url)
            if entry is not None:
                self._entries.move_to_end(url)
                self.stats.hits += 1
                done: Future[CachedImage] = Future()
                done.set_result(entry)
                return done

            future = self._inflight.get(url)
            if future is not None:
                return future

            self.stats.misses += 1
            self.stats.fetches += 1
            self.stats.failed.discard(url)
            future = self._executor.submit(self._load, url)
            self._inflight[url] = future

        future.add_done_callback(lambda f: self._finish(url, f))
        return future

    def peek(self, url: str) -> CachedImage | None:
        """Non-blocking lookup for the render loop; starts a download on a miss."""
        entry = self.get(url)
        if entry is not None:
            return entry
        if url in self.stats.failed:
            return None
        self.get_or_fetch(url)
        return None

    @property
    def pending(self) -> bool:
        with self._lock:
            return bool(self._inflight)

    def forget_failures(self) -> None:
        with self._lock:
            self.stats.failed.clear()

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._total_bytes = 0

    def shutdown(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)
