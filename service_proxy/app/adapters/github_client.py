"""
GitHub REST client for the content proxy.
"""

import time
from typing import Any, Callable, Mapping, Optional, TYPE_CHECKING

import httpx

from shared.logging import get_logger
from .upstream import (
    NotModified,
    RateLimitKind,
    RateLimitSignal,
    UpstreamHttpError,
    UpstreamRequest,
    UpstreamResponse,
)

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


GITHUB_MEDIA_TYPE = "application/vnd.github+json"
DEFAULT_SECONDARY_RETRY_AFTER = 60.0
SECONDARY_LIMIT_MARKERS = ("secondary rate limit", "abuse detection", "abuse-rate-limits")


def classify_rate_limit(
    status: int,
    message: str,
    headers: Mapping[str, str],
    now: float,
) -> Optional[RateLimitSignal]:
    """Recognize GitHub throttling on a 403/429 response."""
    if status not in (403, 429):
        return None

    retry_after = _parse_seconds(headers.get("retry-after"))

    if headers.get("x-ratelimit-remaining") == "0":
        if retry_after is None:
            reset_at = _parse_seconds(headers.get("x-ratelimit-reset"))
            retry_after = max(0.0, reset_at - now) if reset_at is not None else 0.0
        return RateLimitSignal(RateLimitKind.PRIMARY, retry_after, status, message, headers)

    lowered = message.lower()
    if any(marker in lowered for marker in SECONDARY_LIMIT_MARKERS):
        if retry_after is None:
            retry_after = DEFAULT_SECONDARY_RETRY_AFTER
        return RateLimitSignal(RateLimitKind.SECONDARY, retry_after, status, message, headers)

    return None


def _parse_seconds(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class GitHubClient:
    """Thin async client over the GitHub REST API.

    ``call`` performs exactly one HTTP exchange; throttling and caching are
    handled by the callers.
    """

    def __init__(
        self,
        base_url: str = "https://api.github.com",
        *,
        token: Optional[str] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.time,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.logger = get_logger("proxy.github_client")
        self.metrics = metrics
        self._clock = clock

        headers = {"Accept": GITHUB_MEDIA_TYPE, "User-Agent": "repo-content-proxy"}
        auth = None
        if token:
            headers["Authorization"] = f"token {token}"
        elif client_id and client_secret:
            # OAuth app credentials authenticate as basic auth
            auth = httpx.BasicAuth(client_id, client_secret)

        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            auth=auth,
            timeout=timeout,
            transport=transport,
        )

    async def call(self, request: UpstreamRequest) -> UpstreamResponse:
        """Send ``request`` and return the decoded response.

        Raises NotModified on 304, RateLimitSignal when throttled and
        UpstreamHttpError on any other 4xx/5xx. Transport errors propagate
        as raised by httpx.
        """
        url = request.render_url()
        start = time.perf_counter()
        try:
            response = await self._http.request(
                request.method,
                url,
                params=request.query_params() if request.body is None else None,
                headers=dict(request.headers),
                json=request.body,
            )
        finally:
            if self.metrics:
                self.metrics.observe_histogram(
                    "upstream_request_duration_seconds",
                    time.perf_counter() - start,
                    method=request.method
                )

        headers = {name.lower(): value for name, value in response.headers.items()}

        if response.status_code == 304:
            self.logger.debug("Upstream resource not modified", url=url)
            raise NotModified(headers)

        if response.status_code >= 400:
            message = self._error_message(response)
            signal = classify_rate_limit(response.status_code, message, headers, self._clock())
            if signal is not None:
                raise signal

            self.logger.info(
                "Upstream request failed",
                method=request.method,
                url=url,
                status_code=response.status_code,
                message=message
            )
            raise UpstreamHttpError(response.status_code, message, headers)

        return UpstreamResponse(
            status=response.status_code,
            payload=self._decode(response),
            headers=headers,
        )

    async def close(self) -> None:
        await self._http.aclose()

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return None
        return response.json()

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or response.reason_phrase
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return response.reason_phrase
