from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

from tools.parsing_utils import FENCE_BLOCK_RE, _safe_normalize


@dataclass(frozen=True)
class ExtractedBlock:
    language_tag: str
    content: str
    start: int = 0   # offset of the opening fence in the normalized buffer


def extract_blocks(buffer: str) -> Iterator[ExtractedBlock]:
    """
    Yield every *closed* fenced block in `buffer`, in document order.

    The scan starts from scratch on each call and keeps no state, so it can be
    re-run on a growing buffer after every chunk. A fence that is still open at
    the tail is not yielded until its closing line shows up.
    """
    text = _safe_normalize(buffer or "")
    for m in FENCE_BLOCK_RE.finditer(text):
        yield ExtractedBlock(
            language_tag=m.group("lang").lower(),
            content=m.group("body").strip(),
            start=m.start(),
        )
