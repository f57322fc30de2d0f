"""Key-value persistence backends for documents, vectors and query history."""
import asyncio
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from docuquery.exceptions import StorageError
from docuquery.utils.logger import logger


class KeyValueStore(ABC):
    """Stores serialized blobs under string keys."""

    @abstractmethod
    async def load(self, key: str) -> Optional[str]:
        """Return the blob stored under ``key`` or None."""

    @abstractmethod
    async def save(self, key: str, blob: str) -> None:
        """Store ``blob`` under ``key``, replacing any previous value."""

    async def close(self) -> None:
        """Release connections held by the backend."""


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store, used in tests and for throwaway instances."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    async def load(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def save(self, key: str, blob: str) -> None:
        self._data[key] = blob


class JsonFileKeyValueStore(KeyValueStore):
    """One JSON file per key inside a directory."""

    def __init__(self, directory: str = "./data"):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        logger.info(f"File storage initialized at {self.directory}")

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def _read(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {str(e)}") from e

    def _write(self, key: str, blob: str) -> None:
        path = self._path(key)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            tmp_path.write_text(blob, encoding="utf-8")
            # Readers never see a half-written file
            os.replace(tmp_path, path)
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {str(e)}") from e

    async def load(self, key: str) -> Optional[str]:
        return await asyncio.to_thread(self._read, key)

    async def save(self, key: str, blob: str) -> None:
        # Whole-file rewrites stay off the event loop
        await asyncio.to_thread(self._write, key, blob)


class RedisKeyValueStore(KeyValueStore):
    """Blobs kept as plain Redis strings under a key prefix."""

    def __init__(self, redis_url: str = "redis://localhost:6379/0", prefix: str = "docuquery:"):
        """
        Initialize Redis connection.

        Args:
            redis_url: Redis connection URL
            prefix: Prefix applied to every key
        """
        self.redis_url = redis_url
        self.prefix = prefix
        self.redis_client = redis.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        logger.info(f"Redis storage initialized: {redis_url}")

    async def load(self, key: str) -> Optional[str]:
        try:
            return await self.redis_client.get(self.prefix + key)
        except RedisError as e:
            raise StorageError(f"Redis read failed for {key}: {str(e)}") from e

    async def save(self, key: str, blob: str) -> None:
        try:
            await self.redis_client.set(self.prefix + key, blob)
        except RedisError as e:
            raise StorageError(f"Redis write failed for {key}: {str(e)}") from e

    async def close(self) -> None:
        try:
            await self.redis_client.aclose()
            logger.info("Redis connection closed")
        except RedisError as e:
            logger.warning(f"Error closing Redis connection: {str(e)}")


def create_key_value_store(settings) -> KeyValueStore:
    """Build the persistence backend named by ``settings.storage_backend``."""
    backend = settings.storage_backend.lower()
    if backend == "memory":
        return InMemoryKeyValueStore()
    if backend == "file":
        return JsonFileKeyValueStore(settings.storage_path)
    if backend == "redis":
        return RedisKeyValueStore(settings.redis_url)
    raise ValueError(f"Unsupported storage backend: {settings.storage_backend}")
