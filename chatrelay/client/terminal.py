from __future__ import annotations

import sys
from typing import TextIO

from chatrelay.models.chat import Message


class TerminalView:
    """Prints the newest assistant text as it streams in.

    Markdown is written raw; only the part of the last assistant entry that
    has not been printed yet is emitted on each update.
    """

    def __init__(self, stream: TextIO | None = None):
        self._stream = stream or sys.stdout
        self._index: int | None = None
        self._printed = 0

    def __call__(self, messages: list[Message]) -> None:
        if not messages or messages[-1].role != "assistant":
            return

        index = len(messages) - 1
        if index != self._index:
            if self._index is not None:
                self._stream.write("\n")
            self._index, self._printed = index, 0

        content = messages[-1].content
        self._stream.write(content[self._printed:])
        self._stream.flush()
        self._printed = len(content)

    def end_turn(self) -> None:
        if self._index is not None:
            self._stream.write("\n")
            self._stream.flush()
        self._index, self._printed = None, 0
