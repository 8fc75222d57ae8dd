from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from tools.parsing_utils import SSE_DATA_RE


# ---------------------
# Logging helpers
# ---------------------

def _log_sink() -> Optional[Path]:
    p = os.getenv("LLM_LOG_FILE", "").strip()
    if not p:
        return None
    path = Path(p)
    path.parent.mkdir(parents=True, exist_ok=True)
    return path

def _writeln(line: str) -> None:
    if os.getenv("LLM_DEBUG", "0") == "1":
        print(line, flush=True)
    dest = _log_sink()
    if dest:
        with dest.open("a", encoding="utf-8") as f:
            f.write(line + "\n")

def _clean_env(s: Optional[str]) -> Optional[str]:
    if s is None:
        return None
    s = s.strip()
    if (s.startswith('"') and s.endswith('"')) or (s.startswith("'") and s.endswith("'")):
        s = s[1:-1]
    return s.strip()


class TransportError(RuntimeError):
    """The code-generation stream could not be opened or broke mid-way."""


# ---------------------
# SSE decoding
# ---------------------

def delta_text(provider: str, event: Dict[str, Any]) -> Optional[str]:
    """
    Pull the text delta out of one decoded SSE event.
      - anthropic: {"type": "content_block_delta", "delta": {"text": "..."}}
      - groq/openai: {"choices": [{"delta": {"content": "..."}}]}
    """
    if provider == "anthropic":
        if event.get("type") == "content_block_delta":
            return (event.get("delta") or {}).get("text") or None
        return None
    choices = event.get("choices") or []
    if not choices:
        return None
    return ((choices[0] or {}).get("delta") or {}).get("content") or None

def is_stop_event(provider: str, data: str, event: Optional[Dict[str, Any]] = None) -> bool:
    if data.strip() == "[DONE]":
        return True
    return provider == "anthropic" and bool(event) and event.get("type") == "message_stop"


# ---------------------
# Client
# ---------------------

class LLMClient:
    """
    Streaming chat client (env-only) for the code generator.

    ENV (required):
      - LLM_PROVIDER = groq | openai | anthropic
      - GROQ_API_KEY, OPENAI_API_KEY or ANTHROPIC_API_KEY

    ENV (optional):
      - LLM_MODEL / GROQ_MODEL / OPENAI_MODEL / ANTHROPIC_MODEL
      - LLM_TEMPERATURE (default 0.2)
      - LLM_MAX_TOKENS (default 4000)
      - LLM_TIMEOUT (seconds, default 300)
      - LLM_LOG_FILE (e.g., ./logs/llm_calls.log)
      - LLM_DEBUG=1
      - LLM_BASE_URL (advanced override)

    A failed or non-200 stream raises TransportError. Nothing is retried here;
    a new generation is the retry.
    """

    def __init__(
        self,
        provider: Optional[str] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        provider = (provider or _clean_env(os.getenv("LLM_PROVIDER")) or "groq").lower()
        self.provider = provider

        base_override = _clean_env(os.getenv("LLM_BASE_URL"))
        if provider == "groq":
            self.base_url = base_override or "https://api.groq.com/openai/v1"
            self.api_key = _clean_env(os.getenv("GROQ_API_KEY"))
            default_model = "llama-3.3-70b-versatile"
            model = _clean_env(os.getenv("LLM_MODEL")) or _clean_env(os.getenv("GROQ_MODEL")) or default_model
        elif provider == "openai":
            self.base_url = base_override or "https://api.openai.com/v1"
            self.api_key = _clean_env(os.getenv("OPENAI_API_KEY"))
            default_model = "gpt-4o-mini"
            model = _clean_env(os.getenv("LLM_MODEL")) or _clean_env(os.getenv("OPENAI_MODEL")) or default_model
        elif provider == "anthropic":
            self.base_url = base_override or "https://api.anthropic.com/v1"
            self.api_key = _clean_env(os.getenv("ANTHROPIC_API_KEY"))
            default_model = "claude-3-5-sonnet-latest"
            model = _clean_env(os.getenv("LLM_MODEL")) or _clean_env(os.getenv("ANTHROPIC_MODEL")) or default_model
        else:
            raise ValueError(f"Unsupported LLM_PROVIDER: {provider}")

        if not self.api_key:
            missing = {"groq": "GROQ_API_KEY", "openai": "OPENAI_API_KEY"}.get(provider, "ANTHROPIC_API_KEY")
            raise RuntimeError(f"Missing env: {missing}")

        self.model = model
        self.timeout = float(_clean_env(os.getenv("LLM_TIMEOUT")) or "300")
        self.temperature = float(_clean_env(os.getenv("LLM_TEMPERATURE")) or "0.2")
        self.max_tokens = int(_clean_env(os.getenv("LLM_MAX_TOKENS")) or "4000")
        self._transport = transport

        if provider == "anthropic":
            self._headers = {
                "X-API-Key": self.api_key,
                "Anthropic-Version": "2023-06-01",
                "Content-Type": "application/json",
            }
        else:
            self._headers = {
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            }

        _writeln(
            f"[llm:init] provider={self.provider} model={self.model} "
            f"base={self.base_url} timeout={self.timeout}s max_tokens={self.max_tokens}"
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    def _request(self, messages: List[Dict[str, str]]) -> tuple[str, Dict[str, Any]]:
        if self.provider == "anthropic":
            system = "\n\n".join(m["content"] for m in messages if m.get("role") == "system")
            payload: Dict[str, Any] = {
                "model": self.model,
                "max_tokens": self.max_tokens,
                "messages": [m for m in messages if m.get("role") != "system"],
                "stream": True,
            }
            if system:
                payload["system"] = system
            return f"{self.base_url}/messages", payload

        payload = {
            "model": self.model,
            "messages": messages,
            "stream": True,
            "max_tokens": self.max_tokens,
        }
        # GPT-5 family only accepts the default temperature
        if self.model.lower().startswith("gpt-5"):
            payload["temperature"] = 1.0
        else:
            payload["temperature"] = self.temperature
        return f"{self.base_url}/chat/completions", payload

    async def stream_chat(self, messages: List[Dict[str, str]]) -> AsyncIterator[str]:
        """
        Yield text deltas as the provider streams them.
        Malformed SSE lines are logged and skipped.
        """
        url, payload = self._request(messages)
        prompt_chars = sum(len(m.get("content", "")) for m in messages if isinstance(m, dict))
        _writeln(f"[llm:req] POST {url} model={self.model} prompt_chars={prompt_chars} stream=true")

        sent = 0
        try:
            async with self._client() as client:
                async with client.stream("POST", url, headers=self._headers, json=payload) as r:
                    if r.status_code != 200:
                        body = (await r.aread()).decode("utf-8", errors="replace")
                        preview = body[:500].replace("\n", "\\n")
                        _writeln(f"[llm:err] status={r.status_code} body≈{preview}")
                        raise TransportError(f"Failed to generate code: {r.status_code}")

                    async for line in r.aiter_lines():
                        m = SSE_DATA_RE.match(line.strip())
                        if not m:
                            continue
                        data = m.group("data")
                        if is_stop_event(self.provider, data):
                            break
                        try:
                            event = json.loads(data)
                        except json.JSONDecodeError:
                            _writeln(f"[llm:sse] skipping malformed data line: {data[:120]!r}")
                            continue
                        if is_stop_event(self.provider, data, event):
                            break
                        if event.get("type") == "error" or ("error" in event and not event.get("choices")):
                            detail = event.get("error")
                            if isinstance(detail, dict):
                                detail = detail.get("message") or json.dumps(detail)
                            raise TransportError(f"Provider error: {detail}")
                        text = delta_text(self.provider, event)
                        if text:
                            sent += len(text)
                            yield text
        except httpx.HTTPError as e:
            _writeln(f"[llm:exc] {type(e).__name__}: {e}")
            raise TransportError(str(e) or type(e).__name__) from e
        _writeln(f"[llm:ok] streamed_chars={sent}")


async def stream_endpoint(
    url: str,
    prompt: str,
    *,
    timeout: float = 300.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AsyncIterator[str]:
    """
    Stream the raw text body of a code-generation endpoint that takes
    {"prompt": ...} and answers with plain text (no SSE framing).
    """
    _writeln(f"[endpoint:req] POST {url} prompt_chars={len(prompt)}")
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            async with client.stream("POST", url, json={"prompt": prompt}) as r:
                if not r.is_success:
                    _writeln(f"[endpoint:err] status={r.status_code}")
                    raise TransportError(f"Failed to generate code: {r.status_code}")
                async for text in r.aiter_text():
                    if text:
                        yield text
    except httpx.HTTPError as e:
        _writeln(f"[endpoint:exc] {type(e).__name__}: {e}")
        raise TransportError(str(e) or type(e).__name__) from e
