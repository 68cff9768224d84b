from fastapi import FastAPI

from chatrelay.api import chat, health
from chatrelay.core.errors import UpstreamError, upstream_error_handler
from chatrelay.core.logging import configure_logging
from chatrelay.core.settings import get_settings


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings)

    app = FastAPI(title=settings.app_name)

    app.add_exception_handler(UpstreamError, upstream_error_handler)

    app.include_router(chat.router, prefix="/api")

    app.include_router(health.router)

    return app


app = create_app()
