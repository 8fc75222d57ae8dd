from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, List

from tools.parsing_utils import _norm_rel

from .sanitize import ensure_under, sanitize_relpath
from .synthesizer import VirtualFile

# Scaffolding the sandbox preview needs next to whatever the model generated.
DEFAULT_FILES: Dict[str, str] = {
    "/public/index.html": """<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Document</title>
    <script src="https://cdn.tailwindcss.com"></script>
  </head>
  <body>
    <div id="root"></div>
  </body>
</html>""",
    "/App.css": """@tailwind base;
@tailwind components;
@tailwind utilities;""",
}


@dataclass
class WriteResult:
    root_dir: Path
    created: List[Path] = field(default_factory=list)
    skipped: List[Path] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def __str__(self) -> str:
        return f"root={self.root_dir.name}, created={len(self.created)}, skipped={len(self.skipped)}, warnings={len(self.warnings)}"


def to_file_map(files: Iterable[VirtualFile], *, include_defaults: bool = True) -> Dict[str, Dict[str, str]]:
    """
    Sandbox/persistence payload: {"/App.jsx": {"code": "..."}}.
    Generated files override the defaults at the same path.
    """
    out: Dict[str, Dict[str, str]] = {}
    if include_defaults:
        out.update({k: {"code": v} for k, v in DEFAULT_FILES.items()})
    for f in files:
        out["/" + _norm_rel(f.path)] = {"code": f.content}
    return out


def _write_file(path: Path, body: str, if_exists: str) -> bool:
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.exists() and if_exists == "skip":
        return False
    path.write_text(body or "", encoding="utf-8")
    return True


def write_files(
    files: Iterable[VirtualFile],
    dest_folder: str | Path,
    if_exists: str = "skip",           # "skip" | "overwrite"
    logger: Callable[[str], None] | None = None,
) -> WriteResult:
    """Write the final file set under `dest_folder`. Unsafe paths are reported, not written."""
    root_dir = Path(dest_folder).expanduser().resolve()
    root_dir.mkdir(parents=True, exist_ok=True)
    result = WriteResult(root_dir=root_dir)

    for f in files:
        rel = sanitize_relpath(f.path)
        if not rel:
            result.warnings.append(f"unsafe path skipped: {f.path!r}")
            if logger:
                logger(f"[export] skip unsafe path: {f.path}")
            continue
        target = ensure_under(root_dir, rel)
        wrote = _write_file(target, f.content, if_exists)
        (result.created if wrote else result.skipped).append(target)
        if logger:
            logger(f"[export] {'wrote' if wrote else 'kept'}: {rel}")
    return result
