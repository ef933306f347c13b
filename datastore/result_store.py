from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Dict, List, Optional, Protocol

import redis

from services.exceptions import ResultStoreError
from settings import get_settings

logger = logging.getLogger(__name__)


class ResultStore(Protocol):
    """Flat string store keyed by log file name.

    Successful results and error text share the keyspace; any stored value
    means the file must not be processed again.
    """

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def contains(self, key: str) -> bool:
        ...

    def keys(self) -> List[str]:
        ...

    def ping(self) -> bool:
        ...


class LocalResultStore:

    def __init__(self, name: str, persistence_path: Optional[Path] = None) -> None:
        self.name = name
        self._items: Dict[str, str] = {}
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._items[key] = value
            self._persist()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._items.get(key)

    def contains(self, key: str) -> bool:
        return self.get(key) is not None

    def keys(self) -> List[str]:
        with self._lock:
            return sorted(self._items)

    def ping(self) -> bool:
        return True

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        self.persistence_path.write_text(json.dumps(self._items, indent=2, sort_keys=True))

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            logger.warning("Ignoring unreadable result store file %s", self.persistence_path)
            data = {}

        if not isinstance(data, dict):
            return
        for key, value in data.items():
            if isinstance(value, str):
                self._items[key] = value


class RedisResultStore:
    """Result store backed by Redis string keys without expiry."""

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    def get(self, key: str) -> Optional[str]:
        try:
            value = self._client.get(key)
        except redis.RedisError as exc:
            raise ResultStoreError(f"Error while fetching {key} from redis: {exc}") from exc
        if value is None:
            return None
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def set(self, key: str, value: str) -> None:
        try:
            self._client.set(key, value)
        except redis.RedisError as exc:
            raise ResultStoreError(f"Error while storing {key} in redis: {exc}") from exc

    def contains(self, key: str) -> bool:
        return self.get(key) is not None

    def keys(self) -> List[str]:
        try:
            raw_keys = list(self._client.scan_iter())
        except redis.RedisError as exc:
            raise ResultStoreError(f"Error while listing redis keys: {exc}") from exc
        return sorted(
            key.decode("utf-8") if isinstance(key, bytes) else key for key in raw_keys
        )

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except redis.RedisError as exc:
            raise ResultStoreError(f"Error connecting to redis: {exc}") from exc


@lru_cache
def build_default_store(backend: Optional[str] = None) -> ResultStore:
    settings = get_settings()
    selected = settings.store_backend if backend is None else backend
    if selected == "redis":
        logger.info(
            "Connecting to redis host: %s, port %s", settings.redis_host, settings.redis_port
        )
        client = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            db=0,
            decode_responses=True,
        )
        return RedisResultStore(client)
    path = settings.store_persistence_path
    return LocalResultStore(
        name="sensor_results",
        persistence_path=Path(path) if path else None,
    )
