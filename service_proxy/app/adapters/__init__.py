"""
Adapters package for the proxy service.

Contains the HTTP clients for external dependencies (GitHub, Discord) and
the request/response shapes exchanged with the upstream. Adapters perform
single exchanges; retries and caching live in the callers.
"""

from .discord_notifier import DiscordNotifier
from .github_client import GitHubClient
from .upstream import (
    NotModified,
    RateLimitKind,
    RateLimitSignal,
    UpstreamHttpError,
    UpstreamRequest,
    UpstreamResponse,
)

__all__ = [
    "DiscordNotifier",
    "GitHubClient",
    "NotModified",
    "RateLimitKind",
    "RateLimitSignal",
    "UpstreamHttpError",
    "UpstreamRequest",
    "UpstreamResponse",
]
