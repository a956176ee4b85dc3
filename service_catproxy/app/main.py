"""
Caching proxy service for HTTP Cat images.
"""

import argparse
from typing import List, Optional, TYPE_CHECKING

from fastapi import Request, Response
from starlette.types import Receive, Scope, Send

from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config
from .adapters.upstream_client import UpstreamClient
from .domain.coordinator import RequestCoordinator
from .storage.cache_store import FileCacheStore

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from .storage.cache_store import CacheStore


def request_path(scope: Scope) -> str:
    """Path as sent by the client, still percent-encoded, without the query."""
    raw_path = scope.get("raw_path")
    if not raw_path:
        return scope["path"]
    return raw_path.split(b"?", 1)[0].decode("latin-1")


class ProxyEndpoint:
    """ASGI endpoint passing every method on every path to the coordinator.

    Being a plain ASGI app rather than a request function, the route it is
    mounted on has no method list, so validation and the 405 answer stay
    with the coordinator.
    """

    def __init__(self, coordinator: RequestCoordinator):
        self.coordinator = coordinator

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)

        async def read_body() -> bytes:
            body = bytearray()
            async for chunk in request.stream():
                body.extend(chunk)
            return bytes(body)

        result = await self.coordinator.handle(request.method, request_path(scope), read_body)
        response = Response(
            content=result.body,
            status_code=result.status_code,
            media_type=result.media_type,
            headers={"X-Cache-Outcome": result.outcome.value},
        )
        await response(scope, receive, send)


class CatProxyService(BaseService):
    """Proxy service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        store: Optional["CacheStore"] = None,
        upstream: Optional[UpstreamClient] = None,
    ):
        config = config or get_config()
        self.store = store if store is not None else FileCacheStore(config.cache_dir)
        self.upstream = upstream or UpstreamClient(config.upstream_url, timeout=config.upstream_timeout)
        # Coordinator needs self.metrics, which BaseService creates
        self.coordinator: Optional[RequestCoordinator] = None
        super().__init__("catproxy", config)

    def _setup_routes(self):
        """Set up proxy routes."""
        self.coordinator = RequestCoordinator(self.store, self.upstream, metrics=self.metrics)
        self.app.add_route("/{code:path}", ProxyEndpoint(self.coordinator), include_in_schema=False)

    async def startup(self):
        """Make sure the cache root exists before traffic is accepted."""
        if isinstance(self.store, FileCacheStore):
            self.store.ensure_root()
            self.logger.info("Cache directory ready", cache_dir=str(self.store.root))


def create_app(config: Optional[ServiceConfig] = None):
    """Create proxy service application."""
    service = CatProxyService(config)
    return service.app


def build_parser() -> argparse.ArgumentParser:
    # -h is taken by --host, so help is long-form only
    parser = argparse.ArgumentParser(
        prog="catproxy",
        description="Caching proxy for HTTP Cat images.",
        add_help=False,
    )
    parser.add_argument("-h", "--host", required=True, help="Server address")
    parser.add_argument("-p", "--port", required=True, type=int, help="Server port")
    parser.add_argument("-c", "--cache", required=True, help="Directory for cached images")
    parser.add_argument("--log-level", default=None, help="Log level (default: info)")
    parser.add_argument("--metrics-port", default=None, type=int, help="Port for Prometheus metrics (0 disables)")
    parser.add_argument("--help", action="help", help="Show this help message and exit")
    return parser


def config_from_args(argv: Optional[List[str]] = None) -> ServiceConfig:
    """Build service configuration from command-line arguments."""
    args = build_parser().parse_args(argv)
    return get_config(
        host=args.host,
        port=args.port,
        cache_dir=args.cache,
        log_level=args.log_level,
        metrics_port=args.metrics_port,
    )


def main(argv: Optional[List[str]] = None):
    config = config_from_args(argv)
    service = CatProxyService(config)
    service.logger.info(
        "Proxy server starting",
        url=f"http://{config.host}:{config.port}",
        cache_dir=config.cache_dir,
        upstream=config.upstream_url,
    )
    service.run()


if __name__ == "__main__":
    main()
