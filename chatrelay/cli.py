"""Command line entry point: run the relay or chat with one from a terminal."""

from __future__ import annotations

import argparse
import logging

import anyio
import uvicorn

from chatrelay.client.conversation import ConversationClient
from chatrelay.client.terminal import TerminalView
from chatrelay.core.settings import get_settings

logger = logging.getLogger(__name__)

EXIT_WORDS = {"exit", "quit"}


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="chatrelay", description="Streaming chat relay.")
    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="Run the relay HTTP server.")
    serve.add_argument("--host", default="127.0.0.1", help="Host interface to bind.")
    serve.add_argument("--port", type=int, default=8000, help="Port to bind.")

    chat = commands.add_parser("chat", help="Chat with a running relay.")
    chat.add_argument("--url", default=None, help="Relay endpoint (defaults to RELAY_URL).")
    chat.add_argument("prompt", nargs="*", help="Send a single prompt and exit.")
    return parser.parse_args(argv)


async def run_chat(url: str | None, prompt: str = "") -> None:
    view = TerminalView()
    client = ConversationClient(url, on_update=view)

    if prompt:
        await client.submit(prompt)
        view.end_turn()
        return

    while True:
        try:
            line = await anyio.to_thread.run_sync(input, "You: ")
        except EOFError:
            break
        if line.strip().lower() in EXIT_WORDS:
            break
        await client.submit(line)
        view.end_turn()


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)

    if args.command == "serve":
        logger.info("Starting relay on %s:%d", args.host, args.port)
        uvicorn.run("chatrelay.main:app", host=args.host, port=args.port)
        return

    try:
        anyio.run(run_chat, args.url or get_settings().relay_url, " ".join(args.prompt))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
