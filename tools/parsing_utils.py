# tools/parsing_utils.py
from __future__ import annotations

import re

# ---- Regular Expression Patterns for Parsing Streamed Output ----
# A complete fenced block: opening line "```<lang>" at the start of a line,
# body, then a line that is exactly "```". The closing line may sit at the
# very end of the buffer (no trailing newline yet).
# e.g. "```jsx\nfunction App() {}\n```" -> lang="jsx", body="function App() {}\n"
# Info text after the tag must start with a non-tag character so the two
# parts never compete for the same run of characters.
FENCE_BLOCK_RE = re.compile(
    r"^```(?P<lang>[A-Za-z0-9_+#.\-]*)(?:[^A-Za-z0-9_+#.\-\n`][^\n`]*)?\n(?P<body>.*?)^```[ \t]*$",
    re.MULTILINE | re.DOTALL,
)

# "function Hero(" -> "Hero"
FUNCTION_NAME_RE = re.compile(r"function\s+(?P<name>\w+)\s*\(", re.ASCII)
# "class Navbar extends" -> "Navbar"
CLASS_NAME_RE = re.compile(r"class\s+(?P<name>\w+)\s+", re.ASCII)

# One server-sent-events payload line, e.g. 'data: {"choices": [...]}'
SSE_DATA_RE = re.compile(r"^data:\s?(?P<data>.*)$")


# ---- Helper Functions for Path and String Manipulation ----
def _norm_rel(path: str) -> str:
    """Normalizes a relative path string."""
    p = (path or "").strip().strip("`").replace("\\", "/")
    while p.startswith("./"):
        p = p[2:]
    return p.lstrip("/")

def _safe_normalize(s: str) -> str:
    """Normalizes newlines and removes null bytes from a string."""
    return s.replace("\r\n", "\n").replace("\r", "\n").replace("\x00", "")
