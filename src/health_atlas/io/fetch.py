from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

import requests

from health_atlas.config import FetchConfig
from health_atlas.lookup import DatasetLookup
from health_atlas.paths import MANIFEST_FILE_NAME, MEASURE_INFO_FILE_NAME

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class ArtifactFetchError(RuntimeError):
    def __init__(self, url: str, status: int | None = None, message: str | None = None) -> None:
        self.url = url
        self.status = status
        detail = str(status) if status is not None else (message or "request failed")
        super().__init__(f"Failed to fetch {url}: {detail}")


class ArtifactCache:
    """Process-lifetime cache of loaded artifacts, keyed by logical resource name.

    Entries are never invalidated. Concurrent loads of the same key share one
    retrieval and its outcome; a failed load is not retained.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, Future] = {}

    def __contains__(self, key: object) -> bool:
        with self._lock:
            future = self._entries.get(str(key))
        return future is not None and future.done() and future.exception() is None

    def get_or_load(self, key: str, loader: Callable[[], T]) -> T:
        with self._lock:
            future = self._entries.get(key)
            owner = future is None
            if owner:
                future = Future()
                self._entries[key] = future
        if owner:
            try:
                future.set_result(loader())
            except BaseException as exc:
                with self._lock:
                    self._entries.pop(key, None)
                future.set_exception(exc)
        return future.result()

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


@dataclass(frozen=True)
class InitialData:
    datasets: dict[str, DatasetLookup]
    measure_info: dict[str, Any]
    manifest: dict[str, Any]


class ArtifactClient:
    """Fetches build artifacts relative to ``base_url`` through an injected cache."""

    def __init__(
        self,
        base_url: str = "",
        cache: ArtifactCache | None = None,
        session: requests.Session | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.cache = cache if cache is not None else ArtifactCache()
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout

    @classmethod
    def from_config(
        cls,
        fetch: FetchConfig,
        cache: ArtifactCache | None = None,
        session: requests.Session | None = None,
    ) -> ArtifactClient:
        return cls(
            base_url=fetch.base_url,
            cache=cache,
            session=session,
            timeout=fetch.timeout_seconds,
        )

    def _url(self, path: str) -> str:
        if path.startswith("/"):
            return f"{self.base_url}{path}"
        return path

    def _get_json(self, url: str) -> Any:
        LOGGER.info("Fetching %s", url)
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as exc:
            raise ArtifactFetchError(url, message=str(exc)) from exc
        if not response.ok:
            raise ArtifactFetchError(url, status=response.status_code)
        try:
            return response.json()
        except ValueError as exc:
            raise ArtifactFetchError(url, status=response.status_code, message=str(exc)) from exc

    def fetch_json(self, path: str, cache_key: str | None = None) -> Any:
        url = self._url(path)
        return self.cache.get_or_load(cache_key or url, lambda: self._get_json(url))

    def load_dataset(self, name: str) -> DatasetLookup:
        url = self._url(f"/data/{name}.json")
        return self.cache.get_or_load(
            f"dataset:{name}",
            lambda: DatasetLookup.from_payload(self._get_json(url)),
        )

    def load_measure_info(self) -> dict[str, Any]:
        return self.fetch_json(f"/data/{MEASURE_INFO_FILE_NAME}", "measure_info")

    def load_manifest(self) -> dict[str, Any]:
        return self.fetch_json(f"/data/{MANIFEST_FILE_NAME}", "datapackage")

    def load_geometry(self, path: str) -> dict[str, Any]:
        return self.fetch_json(path, f"geo:{path}")

    def is_dataset_cached(self, name: str) -> bool:
        return f"dataset:{name}" in self.cache

    def load_initial_data(self, levels: tuple[str, ...] = ("district", "county")) -> InitialData:
        """Eagerly load the small granularities and metadata; finer levels load on demand."""
        return InitialData(
            datasets={level: self.load_dataset(level) for level in levels},
            measure_info=self.load_measure_info(),
            manifest=self.load_manifest(),
        )
