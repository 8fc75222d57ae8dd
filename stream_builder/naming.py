from __future__ import annotations

from typing import Optional

from tools.parsing_utils import CLASS_NAME_RE, FUNCTION_NAME_RE

from .registry import extension_for

COMPONENT_EXT = "jsx"


def derive_name(content: str) -> Optional[str]:
    """
    Guess a file name from a block's code.
    A `function Foo(` declaration wins over `class Bar `, wherever each sits.
    Returns None when neither is present; callers fall back to fallback_name().
    """
    if not content:
        return None
    m = FUNCTION_NAME_RE.search(content)
    if m:
        return f"{m.group('name')}.{COMPONENT_EXT}"
    m = CLASS_NAME_RE.search(content)
    if m:
        return f"{m.group('name')}.{COMPONENT_EXT}"
    return None

def fallback_name(ordinal: int, language_tag: str | None) -> str:
    return f"Generated{ordinal}.{extension_for(language_tag)}"
