"""
Cache stores mapping 3-digit codes to image bytes.
"""

import asyncio
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional, Union

from shared.errors import CacheEntryNotFoundError, StoreWriteError
from shared.logging import get_logger


class CacheStore:
    """Key -> blob mapping used by the request coordinator."""

    async def get(self, key: str) -> Optional[bytes]:  # pragma: no cover - interface
        """Return the cached blob, or None when absent or unreadable."""
        raise NotImplementedError

    async def put(self, key: str, blob: bytes) -> None:  # pragma: no cover - interface
        """Store ``blob`` under ``key``, raising StoreWriteError on failure."""
        raise NotImplementedError

    async def delete(self, key: str) -> None:  # pragma: no cover - interface
        """Remove ``key``, raising CacheEntryNotFoundError when absent."""
        raise NotImplementedError


class FileCacheStore(CacheStore):
    """One ``<key>.jpg`` file per entry inside the cache root."""

    SUFFIX = ".jpg"

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)
        self.logger = get_logger("catproxy.file_store")

    def path_for(self, key: str) -> Path:
        return self.root / f"{key}{self.SUFFIX}"

    def ensure_root(self) -> bool:
        """Create the cache root if needed; returns True when it was created."""
        if self.root.is_dir():
            return False
        self.root.mkdir(parents=True, exist_ok=True)
        self.logger.info("Cache directory created", cache_dir=str(self.root))
        return True

    async def get(self, key: str) -> Optional[bytes]:
        path = self.path_for(key)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError:
            return None
        except OSError as exc:
            self.logger.warning("Cache read failed", key=key, path=str(path), error=str(exc))
            return None

    async def put(self, key: str, blob: bytes) -> None:
        try:
            await asyncio.to_thread(self._write_atomic, self.path_for(key), blob)
        except OSError as exc:
            raise StoreWriteError(key, details={"error": str(exc)}) from exc

    async def delete(self, key: str) -> None:
        try:
            await asyncio.to_thread(self.path_for(key).unlink)
        except FileNotFoundError as exc:
            raise CacheEntryNotFoundError(key) from exc

    def _write_atomic(self, path: Path, blob: bytes) -> None:
        # Temp file lives beside the target so os.replace stays on one filesystem
        fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=f".{path.stem}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(blob)
            os.replace(tmp_name, path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise


class MemoryCacheStore(CacheStore):
    """Dict-backed store for tests and ephemeral runs."""

    def __init__(self, entries: Optional[Dict[str, bytes]] = None):
        self.entries: Dict[str, bytes] = dict(entries or {})

    async def get(self, key: str) -> Optional[bytes]:
        return self.entries.get(key)

    async def put(self, key: str, blob: bytes) -> None:
        self.entries[key] = bytes(blob)

    async def delete(self, key: str) -> None:
        try:
            del self.entries[key]
        except KeyError as exc:
            raise CacheEntryNotFoundError(key) from exc
