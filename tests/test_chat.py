import json

import anyio
import httpx
from fastapi.testclient import TestClient

from chatrelay.api.chat import chat_endpoint
from chatrelay.core.settings import Settings
from chatrelay.dependencies import get_relay_service
from chatrelay.main import create_app
from chatrelay.services.relay_service import RelayService

UPSTREAM_URL = "https://upstream.test/chat/completions"


class _ChunkedStream(httpx.AsyncByteStream):
    def __init__(self, chunks, error=None):
        self._chunks = chunks
        self._error = error

    async def __aiter__(self):
        for chunk in self._chunks:
            yield chunk
        if self._error is not None:
            raise self._error


def _event(content):
    return f"data: {json.dumps({'choices': [{'delta': {'content': content}}]})}\n"


def _settings():
    return Settings(
        upstream_api_key="secret",
        upstream_url=UPSTREAM_URL,
        upstream_api_key_header="X-API-KEY",
    )


def _client_for(handler):
    app = create_app()
    service = RelayService(_settings(), transport=httpx.MockTransport(handler))
    app.dependency_overrides[get_relay_service] = lambda: service
    return TestClient(app)


def test_chat_streams_fragments():
    def handler(request):
        body = _event("Hel") + _event("lo") + "data: [DONE]\n"
        return httpx.Response(200, stream=_ChunkedStream([body.encode()]))

    client = _client_for(handler)
    r = client.post(
        "/api/chat", json={"messages": [{"role": "user", "content": "hi"}]}
    )

    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/plain")
    assert r.text == "Hello"


def test_chat_forwards_body_with_stream_forced_and_api_key():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["key"] = request.headers.get("X-API-KEY")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, stream=_ChunkedStream([b"data: [DONE]\n"]))

    client = _client_for(handler)
    payload = {
        "messages": [{"role": "user", "content": "hi"}],
        "stream": False,
        "verbosity": "concise",
        "inline_citations": True,
        "generate_related_questions": 2,
    }
    r = client.post("/api/chat", json=payload)

    assert r.status_code == 200
    assert r.text == ""
    assert seen["url"] == UPSTREAM_URL
    assert seen["key"] == "secret"
    assert seen["body"] == {**payload, "stream": True}


def test_chat_passes_unvalidated_body_through():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(400, text="bad request")

    client = _client_for(handler)
    r = client.post("/api/chat", json={"messages": "not-a-list", "verbosity": 7})

    assert r.status_code == 400
    assert seen["body"] == {"messages": "not-a-list", "verbosity": 7, "stream": True}


def test_chat_mirrors_upstream_failure_status():
    client = _client_for(lambda request: httpx.Response(500, text="boom"))

    r = client.post("/api/chat", json={"messages": []})

    assert r.status_code == 500
    assert r.text == "Error calling upstream API"


def test_chat_maps_connection_failure_to_bad_gateway():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = _client_for(handler)
    r = client.post("/api/chat", json={"messages": []})

    assert r.status_code == 502
    assert r.text == "Error calling upstream API"


def test_chat_skips_malformed_event_line():
    def handler(request):
        body = _event("one ") + "data: {broken\n" + _event("two") + "data: [DONE]\n"
        return httpx.Response(200, stream=_ChunkedStream([body.encode()]))

    client = _client_for(handler)
    r = client.post("/api/chat", json={"messages": []})

    assert r.status_code == 200
    assert r.text == "one two"


def test_chat_ends_stream_when_upstream_read_fails():
    def handler(request):
        stream = _ChunkedStream(
            [_event("partial").encode()], error=httpx.ReadError("connection reset")
        )
        return httpx.Response(200, stream=stream)

    client = _client_for(handler)
    r = client.post("/api/chat", json={"messages": []})

    assert r.status_code == 200
    assert r.text == "partial"


def test_chat_rejects_non_object_body():
    client = _client_for(lambda request: httpx.Response(200))

    r = client.post("/api/chat", json=["not", "an", "object"])

    assert r.status_code == 422


class _TrackedStream(_ChunkedStream):
    def __init__(self, chunks):
        super().__init__(chunks)
        self.closed = False

    async def aclose(self):
        self.closed = True


def test_chat_response_closes_upstream_when_body_is_never_sent():
    upstream = _TrackedStream([_event("unsent").encode()])
    service = RelayService(
        _settings(),
        transport=httpx.MockTransport(lambda request: httpx.Response(200, stream=upstream)),
    )

    async def run():
        response = await chat_endpoint({"messages": []}, service)
        await response.background()

    anyio.run(run)

    assert upstream.closed is True
