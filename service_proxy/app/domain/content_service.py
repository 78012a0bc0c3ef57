"""
Content proxy operations exposed to the routing layer.
"""

import asyncio
from typing import Any, Dict, Optional, Tuple, TYPE_CHECKING

from shared.errors import ConfigurationError, ValidationError
from shared.logging import get_logger, set_upstream_target
from ..adapters.upstream import UpstreamRequest
from ..caching.conditional_fetcher import ConditionalFetcher
from ..caching.lru_store import CacheStore
from ..ratelimit.retrying_client import RetryingUpstreamClient, Sleeper
from .bug_report import BugReport
from .error_translator import raise_translated

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector
    from ..adapters.discord_notifier import DiscordNotifier
    from ..adapters.github_client import GitHubClient


CONTENT_URL = "/repos/{owner}/{repo}/contents/{path}"
ISSUES_URL = "/repos/{owner}/{repo}/issues"
RATE_LIMIT_URL = "/rate_limit"
ROOT_PATH = "."


def parse_slug(slug: str) -> Tuple[str, str]:
    """Split ``owner/repo`` into its parts."""
    parts = slug.strip("/").split("/")
    if len(parts) != 2 or not all(parts):
        raise ValidationError(
            "Repository must be given as owner/repo",
            details={"slug": slug}
        )
    return parts[0], parts[1]


def content_key(owner: str, repo: str, path: str) -> str:
    """Logical cache key of a repository content listing."""
    return f"getContent${owner}/{repo}${path}"


class ContentService:
    """Repository contents, upstream quota, cache usage and issue creation."""

    def __init__(
        self,
        github: "GitHubClient",
        store: CacheStore,
        notifier: Optional["DiscordNotifier"] = None,
        *,
        issues_repository: Optional[str] = None,
        sleep: Sleeper = asyncio.sleep,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.github = github
        self.store = store
        self.issues_repository = issues_repository
        self.logger = get_logger("proxy.content_service")
        self.upstream = RetryingUpstreamClient(github.call, notifier, sleep=sleep, metrics=metrics)
        self.fetcher = ConditionalFetcher(store, self.upstream, metrics=metrics)

    async def fetch_repository_content(self, key: str, request: UpstreamRequest) -> Any:
        """Fetch ``request`` through the cache under the logical ``key``."""
        set_upstream_target(key)
        return await self.fetcher.fetch(key, request)

    async def repository_contents(self, slug: str, path: Optional[str] = None) -> Any:
        """File or directory listing of ``path`` in repository ``slug``."""
        owner, repo = parse_slug(slug)
        path = (path or "").strip("/") or ROOT_PATH
        request = UpstreamRequest(
            "GET",
            CONTENT_URL,
            params={"owner": owner, "repo": repo, "path": path},
        )
        return await self.fetch_repository_content(content_key(owner, repo, path), request)

    def cache_usage(self) -> Dict[str, Dict[str, Any]]:
        return self.store.usage().to_dict()

    async def rate_limit(self) -> Dict[str, Any]:
        """The upstream's core request quota."""
        try:
            response = await self.upstream.call(UpstreamRequest("GET", RATE_LIMIT_URL))
        except Exception as exc:
            raise_translated(exc)
        return response.payload["resources"]["core"]

    async def create_issue(self, report: BugReport) -> str:
        """Open an issue for ``report`` and return its URL."""
        if not self.issues_repository:
            raise ConfigurationError("issues_repository")

        owner, repo = parse_slug(self.issues_repository)
        request = UpstreamRequest(
            "POST",
            ISSUES_URL,
            params={"owner": owner, "repo": repo},
            body={"title": report.title, "body": report.to_markdown_body()},
        )
        try:
            response = await self.upstream.call(request)
        except Exception as exc:
            raise_translated(exc)

        issue_url = response.payload["html_url"]
        self.logger.info("Issue created", repository=self.issues_repository, url=issue_url, mode=report.mode)
        return issue_url

    async def close(self) -> None:
        await self.upstream.drain()
        await self.github.close()
