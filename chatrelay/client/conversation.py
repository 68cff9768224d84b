"""Conversation client driving the relay endpoint.

The client owns the transcript, sends the whole conversation on every turn
and merges the streamed reply into a single assistant entry while it
arrives. A display collaborator is notified after every transcript change.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable, Iterator

import httpx

from chatrelay.core.settings import Settings, get_settings
from chatrelay.models.chat import ChatRequest, Message

logger = logging.getLogger(__name__)

APOLOGY_MESSAGE = "Sorry, something went wrong. Please try again."

# Options sent with every turn.
REQUEST_OPTIONS = {
    "verbosity": "balanced",
    "response_format": "markdown",
    "inline_citations": True,
    "generate_related_questions": 0,
}

TranscriptListener = Callable[[list[Message]], None]


class ClientState(str, enum.Enum):
    IDLE = "idle"
    AWAITING = "awaiting"
    STREAMING = "streaming"


class RelayResponseError(Exception):
    """The relay answered without a usable text stream."""

    def __init__(self, status_code: int, reason: str = "relay request failed"):
        super().__init__(f"{reason} (status={status_code})")
        self.status_code = status_code


class Transcript:
    """Append-only message log; only content replacement mutates an entry."""

    def __init__(self) -> None:
        self._messages: list[Message] = []

    def append(self, message: Message) -> int:
        self._messages.append(message)
        return len(self._messages) - 1

    def replace_content(self, index: int, content: str) -> None:
        self._messages[index] = self._messages[index].model_copy(
            update={"content": content}
        )

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(list(self._messages))


class ConversationClient:
    def __init__(
        self,
        relay_url: str | None = None,
        *,
        on_update: TranscriptListener | None = None,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.relay_url = relay_url or (settings or get_settings()).relay_url
        self.input = ""
        self.state = ClientState.IDLE
        self._on_update = on_update
        self._transport = transport
        self._transcript = Transcript()
        self._streaming_index: int | None = None

    @property
    def transcript(self) -> list[Message]:
        return self._transcript.messages

    @property
    def is_loading(self) -> bool:
        return self.state is not ClientState.IDLE

    async def submit(self, text: str | None = None) -> bool:
        """Send one user turn and stream the reply into the transcript.

        ``text`` defaults to the pending ``input`` buffer. Returns ``False``
        without touching the transcript when the text is blank or another
        turn is still in flight.
        """
        if text is None:
            text = self.input
        if not text.strip() or self.state is not ClientState.IDLE:
            return False

        self._append(Message(role="user", content=text))
        self.input = ""
        self.state = ClientState.AWAITING

        try:
            await self._exchange()
        except Exception:
            logger.exception("Chat turn failed")
            self._append(Message(role="assistant", content=APOLOGY_MESSAGE))
        finally:
            self._streaming_index = None
            self.state = ClientState.IDLE

        return True

    async def _exchange(self) -> None:
        request = ChatRequest(messages=self._transcript.messages, **REQUEST_OPTIONS)

        async with httpx.AsyncClient(timeout=None, transport=self._transport) as client:
            async with client.stream(
                "POST", self.relay_url, json=request.to_payload()
            ) as response:
                if not response.is_success:
                    raise RelayResponseError(response.status_code)

                self.state = ClientState.STREAMING
                assistant_message = ""
                async for chunk in response.aiter_text():
                    if not chunk:
                        continue
                    assistant_message += chunk
                    self._merge(assistant_message)

                if self._streaming_index is None:
                    raise RelayResponseError(response.status_code, "empty response body")

    def _merge(self, content: str) -> None:
        # The streaming entry always holds the full accumulated text.
        if self._streaming_index is None:
            self._streaming_index = self._transcript.append(
                Message(role="assistant", content=content)
            )
        else:
            self._transcript.replace_content(self._streaming_index, content)
        self._notify()

    def _append(self, message: Message) -> None:
        self._transcript.append(message)
        self._notify()

    def _notify(self) -> None:
        if self._on_update is None:
            return
        # A broken display must not abort the turn or the apology path.
        try:
            self._on_update(self._transcript.messages)
        except Exception:
            logger.exception("Transcript listener failed")
