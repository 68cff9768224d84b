from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["user", "assistant"]
Verbosity = Literal["balanced", "concise", "detailed"]
ResponseFormat = Literal["plaintext", "markdown"]


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Role
    content: str


class ChatRequest(BaseModel):
    """Body posted to the relay; forwarded upstream as-is apart from ``stream``."""

    messages: list[Message] = Field(default_factory=list)
    stream: bool | None = None
    verbosity: Verbosity | None = None
    response_format: ResponseFormat | None = None
    # Pass-through options, the relay never interprets them.
    inline_citations: bool | None = None
    generate_related_questions: int | None = None

    def to_payload(self) -> dict:
        return self.model_dump(exclude_none=True)
