"""
Domain logic for the proxy: per-request coordination of store and upstream.
"""

from .coordinator import Outcome, ProxyResponse, RequestCoordinator

__all__ = ["Outcome", "ProxyResponse", "RequestCoordinator"]
