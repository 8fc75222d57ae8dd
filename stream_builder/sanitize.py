from __future__ import annotations

import re
from pathlib import Path
from typing import Optional

# generated component names: letters, digits, "._-" and "$"
_SAFE_COMP_RE = re.compile(r"^[A-Za-z0-9._\-$]+$")


def clean_component(name: Optional[str]) -> Optional[str]:
    if not name:
        return None
    s = str(name).strip()
    if s in (".", ".."):
        return None
    return s if _SAFE_COMP_RE.match(s) else None


def sanitize_relpath(p: Optional[str]) -> Optional[str]:
    """VirtualFile.path -> posix path relative to the output folder, or None if unusable."""
    if not p:
        return None
    s = re.sub(r"/+", "/", str(p).replace("\\", "/").strip())
    parts = [seg for seg in s.split("/") if seg not in ("", ".")]
    if not parts or ".." in parts:
        return None
    comps = [clean_component(seg) for seg in parts]
    if not all(comps):
        return None
    return "/".join(comps)


def ensure_under(base: str | Path, rel: str | Path) -> Path:
    """Absolute write target for a generated file; ValueError if it lands outside the output folder."""
    base_p = Path(base).expanduser().resolve()
    target = (base_p / Path(rel)).resolve()
    if not target.is_relative_to(base_p):
        raise ValueError(f"Generated file escapes output folder: {target} (base {base_p})")
    return target
