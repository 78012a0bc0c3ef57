"""
Rate-limit aware wrapper around single upstream calls.

Each logical call runs its own small state machine:

    IDLE -> ATTEMPTING -> SUCCEEDED | RATE_LIMITED | SECONDARY_ABUSE | FAILED

A primary (quota) signal on the first attempt sleeps for the suggested delay
and re-enters ATTEMPTING once; on any later attempt it is terminal. A
secondary (abuse) signal is always terminal. Both are reported to the
notifier without waiting for delivery.
"""

import asyncio
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Set, TYPE_CHECKING

from shared.logging import get_logger
from ..adapters.upstream import RateLimitKind, RateLimitSignal, UpstreamRequest, UpstreamResponse

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector
    from ..adapters.discord_notifier import DiscordNotifier


Upstream = Callable[[UpstreamRequest], Awaitable[UpstreamResponse]]
Sleeper = Callable[[float], Awaitable[Any]]


class CallState(Enum):
    """States of a single logical upstream call."""
    IDLE = "idle"
    ATTEMPTING = "attempting"
    SUCCEEDED = "succeeded"
    RATE_LIMITED = "rate_limited"
    SECONDARY_ABUSE = "secondary_abuse"
    FAILED = "failed"


def should_retry(kind: RateLimitKind, attempt_number: int) -> bool:
    """Only a primary signal on the first attempt earns a retry."""
    return kind is RateLimitKind.PRIMARY and attempt_number == 0


def state_for(kind: RateLimitKind) -> CallState:
    if kind is RateLimitKind.PRIMARY:
        return CallState.RATE_LIMITED
    return CallState.SECONDARY_ABUSE


class RetryingUpstreamClient:
    """Calls the upstream, retrying once on primary quota exhaustion."""

    def __init__(
        self,
        upstream: Upstream,
        notifier: Optional["DiscordNotifier"] = None,
        *,
        sleep: Sleeper = asyncio.sleep,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.upstream = upstream
        self.notifier = notifier
        self.metrics = metrics
        self.logger = get_logger("proxy.retrying_client")
        self._sleep = sleep
        self._pending: Set[asyncio.Task] = set()

    async def call(self, request: UpstreamRequest) -> UpstreamResponse:
        """Run one logical call; returns the response or raises the terminal error."""
        attempt_number = 0
        state = CallState.IDLE

        while True:
            state = CallState.ATTEMPTING
            try:
                response = await self.upstream(request)
            except RateLimitSignal as signal:
                signal.attempt_number = attempt_number
                state = state_for(signal.kind)
                retry = should_retry(signal.kind, attempt_number)
                self._report(signal, request, retry)
                if not retry:
                    raise

                await self._sleep(signal.retry_after_seconds)
                attempt_number += 1
                continue
            except Exception as exc:
                state = CallState.FAILED
                self.logger.debug(
                    "Upstream call failed",
                    state=state.value,
                    error_type=type(exc).__name__,
                    request=request.describe()
                )
                raise

            state = CallState.SUCCEEDED
            if attempt_number > 0:
                self.logger.info(
                    "Upstream call succeeded after retry",
                    state=state.value,
                    attempt=attempt_number,
                    request=request.describe()
                )
            return response

    async def drain(self) -> None:
        """Wait for notifications still being delivered."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    @property
    def pending_notifications(self) -> int:
        return len(self._pending)

    def _report(self, signal: RateLimitSignal, request: UpstreamRequest, retry: bool) -> None:
        description = request.describe()
        decision = "retry" if retry else "give_up"

        if signal.kind is RateLimitKind.PRIMARY:
            self.logger.warning(
                "Request quota exhausted",
                state=CallState.RATE_LIMITED.value,
                attempt=signal.attempt_number,
                retry_after=signal.retry_after_seconds,
                decision=decision,
                request=description
            )
            if retry:
                self.logger.info("Retrying after suggested delay", retry_after=signal.retry_after_seconds)
        else:
            self.logger.warning(
                "Abuse detected",
                state=CallState.SECONDARY_ABUSE.value,
                attempt=signal.attempt_number,
                retry_after=signal.retry_after_seconds,
                request=description
            )

        if self.metrics:
            self.metrics.increment_counter(
                "upstream_rate_limit_events_total",
                kind=signal.kind.value,
                decision=decision
            )

        if self.notifier is not None:
            task = asyncio.get_running_loop().create_task(self._notify(signal, request, retry))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def _notify(self, signal: RateLimitSignal, request: UpstreamRequest, retry: bool) -> None:
        details = {
            **request.describe(),
            "retry_after_seconds": signal.retry_after_seconds,
            "attempt": signal.attempt_number,
        }
        try:
            if signal.kind is RateLimitKind.PRIMARY:
                await self.notifier.warn(
                    "Request quota exhausted",
                    f"Request quota exhausted for request {request.method} {request.url}"
                    + (f", retrying after {signal.retry_after_seconds} seconds" if retry else ", giving up"),
                    details
                )
            else:
                await self.notifier.error(
                    "Abuse detected",
                    f"Abuse detected for request {request.method} {request.url}, not retrying",
                    details
                )
        except Exception as exc:
            self.logger.warning(
                "Rate limit notification failed",
                error=str(exc),
                error_type=type(exc).__name__
            )
