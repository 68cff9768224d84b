from __future__ import annotations

import logging

from chatrelay.core.settings import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

# httpx logs every request line at INFO; one per relayed turn is noise.
_QUIET_LOGGERS = ("httpx", "httpcore")


def configure_logging(settings: Settings) -> None:
    level_name = (settings.log_level or "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    logging.basicConfig(level=level, format=LOG_FORMAT)

    for name in ("uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).setLevel(level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    if not settings.upstream_api_key:
        logging.getLogger(__name__).warning(
            "UPSTREAM_API_KEY is not configured; upstream calls will be rejected"
        )
