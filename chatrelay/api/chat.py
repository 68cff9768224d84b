import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from chatrelay.core.errors import UpstreamError
from chatrelay.dependencies import get_relay_service
from chatrelay.services.relay_service import RelayService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/chat")
async def chat_endpoint(
    body: dict[str, Any] = Body(...),
    relay_service: RelayService = Depends(get_relay_service),
) -> StreamingResponse:
    """Relay a chat request and stream the reply back as plain text.

    The body is not validated here; whatever the caller sends is forwarded
    and the upstream decides whether it is acceptable.
    """
    messages = body.get("messages")
    logger.info(
        "Relaying chat request (%s message(s))",
        len(messages) if isinstance(messages, list) else "no",
    )
    try:
        stream = await relay_service.open_stream(body)
    except UpstreamError:
        raise
    except Exception as e:
        logger.exception("Chat endpoint failed")
        raise HTTPException(status_code=500, detail=f"Internal server error: {e}")

    # Closes the upstream even when the body is never iterated.
    return StreamingResponse(
        stream,
        media_type="text/plain; charset=utf-8",
        background=BackgroundTask(stream.aclose),
    )
