from __future__ import annotations

import asyncio
from typing import AsyncIterator, Dict, List, Optional

from tools.llm_client import LLMClient

from .session import Snapshot, StreamController

SYSTEM_CODEGEN = """You are an expert React engineer who builds complete, good-looking websites.
Answer with source files only, one fenced code block per file.

Rules:
- Open every block with a language tag: ```jsx, ```js, ```css, ```html, ```ts or ```typescript.
- Close every block with a line containing only ```.
- The entry component is `function App()` (it becomes App.jsx).
- Every other component is a named function declaration, e.g. `function Navbar() {`.
- Use Tailwind CSS classes for styling and functional components with hooks.
- Keep prose outside of code blocks to a single short sentence."""


def build_messages(prompt: str, history: Optional[List[Dict[str, str]]] = None) -> List[Dict[str, str]]:
    messages = [{"role": "system", "content": SYSTEM_CODEGEN}]
    for m in history or []:
        if m.get("role") in ("user", "assistant") and m.get("content"):
            messages.append({"role": m["role"], "content": m["content"]})
    messages.append({"role": "user", "content": prompt})
    return messages


async def replay_text(text: str, chunk_size: int = 64, delay_s: float = 0.0) -> AsyncIterator[str]:
    """Feed saved model output back in fixed-size chunks, as if it were streaming."""
    step = max(1, chunk_size)
    for i in range(0, len(text), step):
        if delay_s:
            await asyncio.sleep(delay_s)
        yield text[i:i + step]


async def generate(
    prompt: str,
    controller: StreamController,
    client: Optional[LLMClient] = None,
    history: Optional[List[Dict[str, str]]] = None,
) -> Snapshot:
    """Stream one generation from the LLM into `controller` and return the final snapshot."""
    client = client or LLMClient()
    source = client.stream_chat(build_messages(prompt, history))
    return await controller.run(source, prompt=prompt)
