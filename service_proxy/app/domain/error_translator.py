"""
Maps upstream failures to the errors the proxy surfaces.
"""

from fastapi import HTTPException

from ..adapters.upstream import UpstreamHttpError


def translate_error(error: Exception) -> Exception:
    """Return the exception a caller should see for an upstream failure.

    Structured HTTP failures (rate-limit signals included) become an
    HTTPException with the same status and message. Anything else is
    returned as the very same object so callers can re-raise it untouched.
    """
    if isinstance(error, UpstreamHttpError):
        return HTTPException(status_code=error.status, detail=error.message)
    return error


def raise_translated(error: Exception) -> None:
    """Raise ``error`` through translate_error, keeping the original as cause."""
    translated = translate_error(error)
    if translated is error:
        raise error
    raise translated from error
