from __future__ import annotations

import asyncio
import json
from typing import List

import httpx
import pytest

from stream_builder.session import ERRORED, StreamController
from tools.llm_client import LLMClient, TransportError, delta_text, stream_endpoint


@pytest.fixture(autouse=True)
def _env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("LLM_PROVIDER", "LLM_MODEL", "LLM_BASE_URL", "LLM_LOG_FILE", "LLM_DEBUG"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("GROQ_API_KEY", "gk")
    monkeypatch.setenv("OPENAI_API_KEY", "ok")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "ak")


def _openai_sse(parts: List[str]) -> str:
    lines = [f"data: {json.dumps({'choices': [{'delta': {'content': p}}]})}\n\n" for p in parts]
    return "".join(lines) + "data: [DONE]\n\n"


async def _collect(agen) -> List[str]:
    return [chunk async for chunk in agen]


def test_openai_compatible_stream_yields_deltas() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        seen["auth"] = request.headers.get("authorization")
        return httpx.Response(200, text=_openai_sse(["```jsx\n", "function App() {}", "\n```"]))

    client = LLMClient("groq", transport=httpx.MockTransport(handler))
    out = asyncio.run(_collect(client.stream_chat([{"role": "user", "content": "hi"}])))

    assert "".join(out) == "```jsx\nfunction App() {}\n```"
    assert seen["url"].endswith("/chat/completions")
    assert seen["body"]["stream"] is True
    assert seen["auth"] == "Bearer gk"


def test_anthropic_stream_reads_content_block_deltas() -> None:
    events = [
        {"type": "message_start"},
        {"type": "content_block_delta", "delta": {"type": "text_delta", "text": "Hello "}},
        {"type": "content_block_delta", "delta": {"type": "text_delta", "text": "world"}},
        {"type": "message_stop"},
        {"type": "content_block_delta", "delta": {"type": "text_delta", "text": "ignored"}},
    ]
    body = "".join(f"event: {e['type']}\ndata: {json.dumps(e)}\n\n" for e in events)
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["key"] = request.headers.get("x-api-key")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, text=body)

    client = LLMClient("anthropic", transport=httpx.MockTransport(handler))
    messages = [{"role": "system", "content": "be brief"}, {"role": "user", "content": "hi"}]
    out = asyncio.run(_collect(client.stream_chat(messages)))

    assert out == ["Hello ", "world"]
    assert seen["key"] == "ak"
    assert seen["body"]["system"] == "be brief"
    assert [m["role"] for m in seen["body"]["messages"]] == ["user"]


def test_malformed_sse_lines_are_skipped() -> None:
    body = "data: {not json\n\n" + _openai_sse(["ok"])
    client = LLMClient("openai", transport=httpx.MockTransport(lambda r: httpx.Response(200, text=body)))
    assert asyncio.run(_collect(client.stream_chat([]))) == ["ok"]


def test_non_200_raises_transport_error() -> None:
    client = LLMClient("groq", transport=httpx.MockTransport(lambda r: httpx.Response(500, text="down")))
    with pytest.raises(TransportError, match="Failed to generate code: 500"):
        asyncio.run(_collect(client.stream_chat([])))


def test_network_errors_become_transport_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client = LLMClient("groq", transport=httpx.MockTransport(handler))
    with pytest.raises(TransportError, match="refused"):
        asyncio.run(_collect(client.stream_chat([])))


def test_provider_error_event_raises() -> None:
    body = 'data: {"error": {"message": "overloaded"}}\n\n'
    client = LLMClient("openai", transport=httpx.MockTransport(lambda r: httpx.Response(200, text=body)))
    with pytest.raises(TransportError, match="overloaded"):
        asyncio.run(_collect(client.stream_chat([])))


def test_missing_key_and_unknown_provider(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GROQ_API_KEY")
    with pytest.raises(RuntimeError, match="GROQ_API_KEY"):
        LLMClient("groq")
    with pytest.raises(ValueError):
        LLMClient("mystery")


def test_delta_text_ignores_empty_events() -> None:
    assert delta_text("openai", {"choices": []}) is None
    assert delta_text("openai", {"choices": [{"delta": {}}]}) is None
    assert delta_text("anthropic", {"type": "ping"}) is None


def test_stream_endpoint_yields_plain_text() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert json.loads(request.content) == {"prompt": "a blog"}
        return httpx.Response(200, text="```css\n.a{}\n```")

    out = asyncio.run(_collect(stream_endpoint(
        "http://gen.local/api/gen-ai-code", "a blog", transport=httpx.MockTransport(handler),
    )))
    assert "".join(out) == "```css\n.a{}\n```"


def test_failed_stream_ends_session_in_error_state() -> None:
    client = LLMClient("groq", transport=httpx.MockTransport(lambda r: httpx.Response(503, text="")))
    ctl = StreamController()
    snap = asyncio.run(ctl.run(client.stream_chat([]), prompt="x"))
    assert snap.session_status == ERRORED
    assert [f.content for f in snap.files] == ["Error: Failed to generate code: 503"]


def test_generate_streams_model_output_into_controller() -> None:
    from stream_builder.generate import SYSTEM_CODEGEN, generate

    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["messages"] = json.loads(request.content)["messages"]
        return httpx.Response(200, text=_openai_sse(["```jsx\nfunction App() {\n", "  return null;\n}\n```\n"]))

    client = LLMClient("groq", transport=httpx.MockTransport(handler))
    snap = asyncio.run(generate("a portfolio", StreamController(), client,
                                history=[{"role": "assistant", "content": "Sure!"}]))

    assert [f.path for f in snap.files] == ["App.jsx"]
    assert snap.files[0].content == "function App() {\n  return null;\n}"
    assert [m["role"] for m in seen["messages"]] == ["system", "assistant", "user"]
    assert seen["messages"][0]["content"] == SYSTEM_CODEGEN
    assert seen["messages"][-1]["content"] == "a portfolio"
