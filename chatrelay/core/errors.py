"""Error types raised by the relay and their HTTP mapping."""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import PlainTextResponse

logger = logging.getLogger(__name__)

UPSTREAM_ERROR_BODY = "Error calling upstream API"


class UpstreamError(Exception):
    """The upstream completions call did not succeed.

    ``status_code`` is the upstream status, or 502 when no response arrived.
    """

    def __init__(self, status_code: int, message: str = UPSTREAM_ERROR_BODY):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


async def upstream_error_handler(request: Request, exc: UpstreamError) -> PlainTextResponse:
    logger.error(
        "Upstream call failed for %s (status=%s)", request.url.path, exc.status_code
    )
    return PlainTextResponse(exc.message, status_code=exc.status_code)
