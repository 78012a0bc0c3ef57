"""
Repository content proxy service.
"""

from typing import Optional

from fastapi import Query

from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config
from .adapters.discord_notifier import DiscordNotifier
from .adapters.github_client import GitHubClient
from .caching.lru_store import CacheStore
from .domain.bug_report import BugReport
from .domain.content_service import ContentService


class ProxyService(BaseService):
    """Caching GitHub proxy."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        github: Optional[GitHubClient] = None,
        notifier: Optional[DiscordNotifier] = None,
    ):
        super().__init__("proxy", config or get_config("proxy"))

        self.store = CacheStore(self.config.max_cache_size_bytes, metrics=self.metrics)
        self.github = github or GitHubClient(
            self.config.github_api_url,
            token=self.config.github_token,
            client_id=self.config.github_client_id,
            client_secret=self.config.github_client_secret,
            timeout=self.config.github_timeout_seconds,
            metrics=self.metrics,
        )
        self.notifier = notifier or DiscordNotifier(self.config.discord_webhook_url)
        self.content_service = ContentService(
            self.github,
            self.store,
            self.notifier,
            issues_repository=self.config.issues_repository,
            metrics=self.metrics,
        )

        @self.app.on_event("shutdown")
        async def _shutdown():
            await self.content_service.close()

        self._setup_proxy_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.proxy_service = self

    def _setup_proxy_routes(self):
        """Set up proxy routes."""

        @self.app.get("/repo/{slug:path}")
        async def repository_contents(slug: str, path: Optional[str] = Query(None)):
            """File or directory listing of a repository path."""
            return await self.content_service.repository_contents(slug, path)

        @self.app.post("/issues")
        async def create_issue(report: BugReport):
            """Open an issue from a bug report."""
            return {"url": await self.content_service.create_issue(report)}

        @self.app.get("/ping")
        async def ping():
            return {"message": "pong"}

        @self.app.get("/status")
        async def status():
            """Upstream quota and cache usage."""
            github_rate = await self.content_service.rate_limit()
            return {"githubRate": github_rate, "cacheUsage": self.content_service.cache_usage()}

    async def _check_dependencies(self):
        usage = self.store.usage()
        return {
            "cache": "ok" if usage.used <= usage.limit else "error",
            "notifications": "enabled" if self.notifier.enabled else "disabled",
        }


def create_app(config: Optional[ServiceConfig] = None):
    """Create FastAPI application."""
    service = ProxyService(config)
    return service.app


if __name__ == "__main__":
    service = ProxyService()
    service.run()
