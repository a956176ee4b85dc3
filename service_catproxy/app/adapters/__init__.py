"""
Adapters package for the proxy service.

Contains the HTTP client wrapper for the upstream image source. Adapters
stay thin: they make one call and fold failures into a simple result.
"""

from .upstream_client import UpstreamClient

__all__ = ["UpstreamClient"]
