from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Any

import httpx

from chatrelay.core.errors import UpstreamError
from chatrelay.core.settings import Settings, get_settings
from chatrelay.services.events import EventPayloadError, extract_fragment

logger = logging.getLogger(__name__)


class RelayService:
    """Forwards chat requests upstream and re-emits the streamed text.

    Every call opens its own HTTP client, so nothing is shared between
    requests.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._settings = settings or get_settings()
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            self._settings.upstream_api_key_header: self._settings.upstream_api_key,
        }

    async def open_stream(self, body: dict[str, Any]) -> RelayStream:
        """Send ``body`` upstream with streaming on and return the text stream.

        Raises :class:`UpstreamError` before any output is produced when the
        upstream call fails or answers with a non-2xx status.
        """
        payload = {**body, "stream": True}

        # No timeout; the transport defaults apply.
        client = httpx.AsyncClient(timeout=None, transport=self._transport)
        request = client.build_request(
            "POST",
            self._settings.upstream_url,
            json=payload,
            headers=self._headers(),
        )

        try:
            response = await client.send(request, stream=True)
        except httpx.HTTPError as exc:
            await client.aclose()
            logger.error("Upstream request to %s failed: %s", request.url, exc)
            raise UpstreamError(502) from exc

        if not response.is_success:
            await response.aclose()
            await client.aclose()
            logger.warning("Upstream answered with status %s", response.status_code)
            raise UpstreamError(response.status_code)

        return RelayStream(client, response)


class RelayStream:
    """Text fragments relayed from one open upstream response.

    Iterating yields each fragment as UTF-8 bytes. The upstream response and
    its client are closed when iteration ends, or by :meth:`aclose` when the
    stream is never consumed.
    """

    def __init__(self, client: httpx.AsyncClient, response: httpx.Response):
        self._client = client
        self._response = response

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._relay()

    async def aclose(self) -> None:
        await self._response.aclose()
        await self._client.aclose()

    async def _relay(self) -> AsyncIterator[bytes]:
        # aiter_lines keeps the partial trailing line across network chunks
        # and only hands over complete lines.
        try:
            async for line in self._response.aiter_lines():
                try:
                    fragment = extract_fragment(line)
                except EventPayloadError as exc:
                    logger.warning("Skipping upstream event %r: %s", line[:200], exc)
                    continue

                if fragment:
                    yield fragment.encode("utf-8")
        except httpx.HTTPError:
            logger.exception("Error reading upstream stream")
        finally:
            await self.aclose()
