"""Decoding of upstream chat-completion event lines.

Each line looks like ``data: {"choices":[{"delta":{"content":"..."}}]}``;
the stream ends with ``data: [DONE]``.
"""

from __future__ import annotations

import json
from typing import Any

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


class EventPayloadError(ValueError):
    """An event line carried a payload that is not a chat-completion chunk."""


def extract_fragment(line: str) -> str | None:
    """Return the content fragment carried by one event line, if any.

    Blank lines, lines without the ``data: `` prefix, the terminal sentinel
    and chunks without delta content all yield ``None``. Raises
    :class:`EventPayloadError` when the payload cannot be read as a chunk.
    """
    if not line.strip() or not line.startswith(DATA_PREFIX):
        return None

    data = line[len(DATA_PREFIX):].strip()
    if data == DONE_SENTINEL:
        return None

    try:
        payload: Any = json.loads(data)
    except (json.JSONDecodeError, RecursionError) as exc:
        raise EventPayloadError(f"invalid JSON payload: {exc}") from exc

    if not isinstance(payload, dict) or not isinstance(payload.get("choices"), list):
        raise EventPayloadError("payload has no choices list")

    choices = payload["choices"]
    if not choices or not isinstance(choices[0], dict):
        return None

    delta = choices[0].get("delta")
    content = delta.get("content") if isinstance(delta, dict) else None
    if isinstance(content, str) and content:
        return content
    return None
