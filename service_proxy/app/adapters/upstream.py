"""
Request, response and failure shapes exchanged with the upstream API.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from string import Formatter
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import quote


@dataclass(frozen=True)
class UpstreamRequest:
    """A templated upstream call, e.g. ``GET /repos/{owner}/{repo}/contents/{path}``.

    ``params`` fill the URL template first; whatever is left over is sent as
    query string (or ignored for requests with a JSON body).
    """

    method: str
    url: str
    params: Mapping[str, Any] = field(default_factory=dict)
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Optional[Any] = None

    @property
    def template_fields(self) -> List[str]:
        return [name for _, name, _, _ in Formatter().parse(self.url) if name]

    def path_params(self) -> Dict[str, Any]:
        """Params consumed by the URL template."""
        return {name: self.params[name] for name in self.template_fields if name in self.params}

    def query_params(self) -> Dict[str, Any]:
        """Params not consumed by the URL template."""
        fields = set(self.template_fields)
        return {name: value for name, value in self.params.items() if name not in fields}

    def render_url(self) -> str:
        values = {name: quote(str(value), safe="/") for name, value in self.path_params().items()}
        return self.url.format(**values)

    def with_header(self, name: str, value: str) -> "UpstreamRequest":
        return replace(self, headers={**self.headers, name: value})

    def describe(self) -> Dict[str, Any]:
        """Method, URL template and path params, for logs and notifications."""
        return {**self.path_params(), "method": self.method, "url": self.url}


@dataclass(frozen=True)
class UpstreamResponse:
    """A materialized upstream response."""

    status: int
    payload: Any
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def validator(self) -> Optional[str]:
        for name, value in self.headers.items():
            if name.lower() == "etag":
                return value or None
        return None


class UpstreamHttpError(Exception):
    """The upstream answered with a structured HTTP failure."""

    def __init__(self, status: int, message: str, headers: Optional[Mapping[str, str]] = None):
        self.status = status
        self.message = message
        self.headers = dict(headers or {})
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status={self.status}, message={self.message!r})"


class NotModified(UpstreamHttpError):
    """Conditional request matched the sent validator (HTTP 304)."""

    def __init__(self, headers: Optional[Mapping[str, str]] = None):
        super().__init__(304, "Not Modified", headers)


class RateLimitKind(Enum):
    """Kinds of upstream throttling."""
    PRIMARY = "primary"        # request quota exhausted
    SECONDARY = "secondary"    # abuse / secondary limit detected


class RateLimitSignal(UpstreamHttpError):
    """The upstream throttled the call.

    ``attempt_number`` is the 0-based count of attempts already made for the
    logical call when the signal was observed; the retrying client fills it in.
    """

    def __init__(
        self,
        kind: RateLimitKind,
        retry_after_seconds: float,
        status: int,
        message: str,
        headers: Optional[Mapping[str, str]] = None,
        attempt_number: int = 0,
    ):
        super().__init__(status, message, headers)
        self.kind = kind
        self.retry_after_seconds = retry_after_seconds
        self.attempt_number = attempt_number

    def __repr__(self) -> str:
        return (
            f"RateLimitSignal(kind={self.kind.value}, retry_after_seconds={self.retry_after_seconds}, "
            f"attempt_number={self.attempt_number}, status={self.status})"
        )
