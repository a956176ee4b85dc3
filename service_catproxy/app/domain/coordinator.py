"""
Request coordination for the caching proxy.

Every request is resolved here to a ``ProxyResponse``: the key is validated
first (for every method), then the method decides which store and upstream
operations run. Nothing raised by the collaborators escapes ``handle``.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional, TYPE_CHECKING

from shared.errors import CacheEntryNotFoundError, InvalidKeyError, StoreWriteError
from shared.logging import get_logger
from ..keys import key_from_path, parse_key
from .usage_page import USAGE_PAGE

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from ..adapters.upstream_client import UpstreamClient
    from ..storage.cache_store import CacheStore
    from shared.metrics import MetricsCollector


TEXT_MEDIA_TYPE = "text/plain; charset=utf-8"
HTML_MEDIA_TYPE = "text/html; charset=utf-8"
IMAGE_MEDIA_TYPE = "image/jpeg"

BodyReader = Callable[[], Awaitable[bytes]]


class Outcome(str, Enum):
    """Terminal state of a proxied request."""
    USAGE = "usage"
    REJECTED = "rejected"
    SERVED_CACHED = "served_cached"
    SERVED_FETCHED = "served_fetched"
    SERVED_NOT_FOUND = "served_not_found"
    STORED = "stored"
    STORE_ERROR = "store_error"
    DELETED = "deleted"
    DELETE_MISS = "delete_miss"
    METHOD_REJECTED = "method_rejected"
    INTERNAL_ERROR = "internal_error"


@dataclass(frozen=True)
class ProxyResponse:
    """Status, body and media type the HTTP layer sends back unchanged."""

    status_code: int
    body: bytes
    media_type: str
    outcome: Outcome

    @classmethod
    def text(cls, status_code: int, message: str, outcome: Outcome) -> "ProxyResponse":
        return cls(status_code, message.encode("utf-8"), TEXT_MEDIA_TYPE, outcome)

    @classmethod
    def image(cls, blob: bytes, outcome: Outcome) -> "ProxyResponse":
        return cls(200, blob, IMAGE_MEDIA_TYPE, outcome)


class RequestCoordinator:
    """Runs the cache read/fetch/populate, write and delete paths."""

    def __init__(
        self,
        store: "CacheStore",
        upstream: "UpstreamClient",
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.store = store
        self.upstream = upstream
        self.metrics = metrics
        self.logger = get_logger("catproxy.coordinator")
        self._handlers: Dict[str, Callable[[str, BodyReader], Awaitable[ProxyResponse]]] = {
            "GET": self._get,
            "PUT": self._put,
            "DELETE": self._delete,
        }

    async def handle(self, method: str, path: str, read_body: BodyReader) -> ProxyResponse:
        """Resolve one request to its response."""
        candidate = key_from_path(path)
        if not candidate:
            return ProxyResponse(200, USAGE_PAGE.encode("utf-8"), HTML_MEDIA_TYPE, Outcome.USAGE)

        try:
            key = parse_key(candidate)
        except InvalidKeyError as exc:
            self.logger.info("Invalid key", value=exc.value, method=method)
            return ProxyResponse.text(400, exc.message, Outcome.REJECTED)

        handler = self._handlers.get(method.upper())
        if handler is None:
            return ProxyResponse.text(405, "Method not allowed", Outcome.METHOD_REJECTED)

        try:
            return await handler(key, read_body)
        except Exception as exc:
            self.logger.error(
                "Request handling failed",
                method=method,
                key=key,
                error=str(exc),
                exc_info=True
            )
            self._record_error("INTERNAL_ERROR")
            return ProxyResponse.text(500, "Internal server error", Outcome.INTERNAL_ERROR)

    async def _get(self, key: str, read_body: BodyReader) -> ProxyResponse:
        blob = await self.store.get(key)
        if blob is not None:
            self.logger.info("Cache hit", key=key)
            self._increment("cache_hits_total")
            return ProxyResponse.image(blob, Outcome.SERVED_CACHED)

        self.logger.info("Cache miss", key=key)
        self._increment("cache_misses_total")

        fetched = await self.upstream.fetch(key)
        if fetched is None:
            self.logger.info("Upstream fetch failed", key=key)
            self._increment("upstream_fetches_total", result="absent")
            return ProxyResponse.text(404, "Image not found", Outcome.SERVED_NOT_FOUND)

        self._increment("upstream_fetches_total", result="fetched")

        # Populating the cache is best-effort; the client still gets the image
        try:
            await self.store.put(key, fetched)
            self.logger.info("Image cached", key=key, size=len(fetched))
        except StoreWriteError as exc:
            self.logger.warning("Cache populate failed", **exc.to_response().model_dump())
            self._increment("cache_populate_failures_total")

        return ProxyResponse.image(fetched, Outcome.SERVED_FETCHED)

    async def _put(self, key: str, read_body: BodyReader) -> ProxyResponse:
        blob = await read_body()
        try:
            await self.store.put(key, blob)
        except StoreWriteError as exc:
            self.logger.error("Cache write failed", **exc.to_response().model_dump())
            self._record_error(exc.code)
            return ProxyResponse.text(500, exc.message, Outcome.STORE_ERROR)

        self.logger.info("Image stored", key=key, size=len(blob))
        return ProxyResponse.text(201, "Image cached successfully", Outcome.STORED)

    async def _delete(self, key: str, read_body: BodyReader) -> ProxyResponse:
        try:
            await self.store.delete(key)
        except CacheEntryNotFoundError as exc:
            self.logger.info("Cache entry not found", key=key)
            return ProxyResponse.text(404, exc.message, Outcome.DELETE_MISS)

        self.logger.info("Cache entry deleted", key=key)
        return ProxyResponse.text(200, "Image deleted from cache", Outcome.DELETED)

    def _increment(self, metric_name: str, **labels):
        if self.metrics is not None:
            self.metrics.increment_counter(metric_name, **labels)

    def _record_error(self, error_type: str):
        if self.metrics is not None:
            self.metrics.record_error(error_type)
