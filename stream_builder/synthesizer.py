from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from .extractor import ExtractedBlock
from .naming import derive_name, fallback_name

ROOT_FILE = "App.jsx"      # entry point the sandbox preview expects
ROOT_LANG = "jsx"
ERROR_FILE = "error.txt"

PROCESSING = "processing"
COMPLETED = "completed"


@dataclass(frozen=True)
class VirtualFile:
    path: str
    content: str
    file_status: str = PROCESSING        # "processing" | "completed"
    source_language_tag: str = ""

    @property
    def name(self) -> str:
        return self.path.split("/")[-1]


def root_placeholder(buffer: str) -> VirtualFile:
    """The live App.jsx shown before (or instead of) a real entry component."""
    return VirtualFile(path=ROOT_FILE, content=buffer or "", source_language_tag=ROOT_LANG)

def error_files(message: str) -> List[VirtualFile]:
    return [VirtualFile(path=ERROR_FILE, content=f"Error: {message}", file_status=COMPLETED)]

def complete_files(files: Iterable[VirtualFile]) -> List[VirtualFile]:
    return [replace(f, file_status=COMPLETED) for f in files]


def synthesize(
    blocks: Iterable[ExtractedBlock],
    previous_files: Sequence[VirtualFile] = (),
    *,
    buffer: str = "",
    ordinals: Optional[Mapping[int, int]] = None,
    logger: Callable[[str], None] | None = None,
) -> List[VirtualFile]:
    """
    Rebuild the whole file set from the blocks of the current pass.

    - Path: derive_name(content), else Generated<N>.<ext>. N is the block's
      1-based position in this pass, or ordinals[block.start] when the caller
      keeps stable numbering across passes.
    - A later block with an already-used path replaces that file's content in place.
    - Without an App.jsx among the results, a placeholder carrying the raw
      buffer is appended.
    The returned list replaces `previous_files` wholesale.
    """
    by_path: Dict[str, VirtualFile] = {}
    for i, block in enumerate(blocks, start=1):
        ordinal = ordinals.get(block.start, i) if ordinals else i
        path = derive_name(block.content) or fallback_name(ordinal, block.language_tag)
        if path in by_path and logger:
            logger(f"[synth] duplicate path {path!r}; keeping the later block")
        by_path[path] = VirtualFile(
            path=path,
            content=block.content,
            file_status=PROCESSING,
            source_language_tag=block.language_tag,
        )

    files = list(by_path.values())
    if ROOT_FILE not in by_path:
        files.append(root_placeholder(buffer))

    if logger and previous_files:
        before = {f.path for f in previous_files}
        after = {f.path for f in files}
        added, dropped = sorted(after - before), sorted(before - after)
        if added or dropped:
            logger(f"[synth] files={len(files)} added={added} dropped={dropped}")
    return files
