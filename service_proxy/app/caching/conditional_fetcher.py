"""
Conditional fetching on top of the response cache.
"""

from typing import Any, Callable, Optional, TYPE_CHECKING

from shared.errors import CacheConsistencyError
from shared.logging import get_logger
from ..adapters.upstream import NotModified, UpstreamRequest
from ..domain.error_translator import translate_error
from .lru_store import CacheStore

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector
    from ..ratelimit.retrying_client import RetryingUpstreamClient


IF_NONE_MATCH = "If-None-Match"


class ConditionalFetcher:
    """Fetches through the upstream, revalidating cached entries by ETag.

    A known validator is always sent as ``If-None-Match``; a 304 answer is
    served from the entry that validator came from. Fresh responses replace
    the entry only when the upstream supplied a new validator.
    """

    def __init__(
        self,
        store: CacheStore,
        upstream: "RetryingUpstreamClient",
        *,
        translator: Callable[[Exception], Exception] = translate_error,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.store = store
        self.upstream = upstream
        self.translator = translator
        self.metrics = metrics
        self.logger = get_logger("proxy.conditional_fetcher")

    async def fetch(self, key: str, request: UpstreamRequest) -> Any:
        cached = self.store.get(key)
        if cached is not None:
            request = request.with_header(IF_NONE_MATCH, cached.validator)

        try:
            response = await self.upstream.call(request)
        except NotModified:
            if cached is None:
                self.logger.error("Upstream answered not modified for an uncached key", key=key)
                raise CacheConsistencyError(key)
            self.logger.debug("Cached entry revalidated", key=key, validator=cached.validator)
            self._record_revalidation("not_modified")
            return cached.payload
        except Exception as exc:
            translated = self.translator(exc)
            if translated is exc:
                raise
            raise translated from exc

        if cached is not None:
            self._record_revalidation("changed")

        validator = response.validator
        if validator:
            self.store.put(key, validator, response.payload)
        else:
            self.logger.debug("Upstream response without validator, not cached", key=key)
        return response.payload

    def _record_revalidation(self, outcome: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("cache_revalidations_total", outcome=outcome)
