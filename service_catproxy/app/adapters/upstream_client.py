"""
Upstream image client for the proxy.
"""

from typing import Optional
import httpx

from shared.logging import get_logger
from shared.errors import UpstreamUnavailableError


class UpstreamClient:
    """Client for retrieving canonical images from the upstream (http.cat)."""

    def __init__(self, upstream_url: str, timeout: float = 10.0):
        self.base_url = upstream_url.rstrip('/')
        self.timeout = timeout
        self.logger = get_logger("catproxy.upstream_client")

    def url_for(self, key: str) -> str:
        return f"{self.base_url}/{key}"

    async def fetch(self, key: str) -> Optional[bytes]:
        """Fetch the image for ``key``; any failure is reported as None.

        A single attempt is made. Remote "not found", other non-success
        statuses, timeouts and transport errors all collapse to None.
        """
        url = self.url_for(key)
        try:
            return await self._request(url)
        except UpstreamUnavailableError as exc:
            self.logger.info("Upstream has no image", key=key, url=url, **exc.details)
            return None
        except httpx.HTTPError as exc:
            self.logger.warning(
                "Upstream request failed",
                key=key,
                url=url,
                error_type=type(exc).__name__,
                error=str(exc)
            )
            return None

    async def _request(self, url: str) -> bytes:
        async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
            response = await client.get(url)

        if response.is_success:
            self.logger.debug("Upstream image retrieved", url=url, size=len(response.content))
            return response.content

        raise UpstreamUnavailableError(
            service="upstream",
            message=f"Unexpected status {response.status_code}",
            details={"status_code": response.status_code}
        )
