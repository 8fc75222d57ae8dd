# tools/ui_utils.py
from __future__ import annotations

import hashlib
from typing import List, Tuple

from stream_builder.grouper import ROOT_DIR
from stream_builder.registry import extension_of
from stream_builder.session import Snapshot
from stream_builder.synthesizer import PROCESSING, VirtualFile

__all__ = ["button_key", "dir_label", "file_label", "browser_rows", "status_line"]

FILE_ICONS = {
    "js": "🟨", "jsx": "🟨",
    "ts": "🟦", "tsx": "🟦",
    "css": "🎨", "scss": "🎨",
    "html": "🟧",
    "json": "🟩",
}


# ---------------------------
# Streamlit key helper
# ---------------------------

def button_key(*parts: object) -> str:
    """
    Build a deterministic, collision-resistant Streamlit key from any number of parts.
    Examples:
      button_key("select", "components/Navbar.jsx")
      button_key("select", "App.jsx", 3)
    """
    strs = [str(p) for p in parts if p is not None]
    if not strs:
        base = "key"
    else:
        base = strs[0].lower().replace(" ", "_")
    h = hashlib.sha1(("||".join(strs)).encode("utf-8")).hexdigest()[:10]
    return f"btn::{base}::{h}"


# ---------------------------
# File browser rendering
# ---------------------------

def dir_label(directory: str) -> str:
    return "/" if directory == ROOT_DIR else f"{directory}/"

def file_label(f: VirtualFile, selected: bool = False) -> str:
    icon = FILE_ICONS.get(extension_of(f.path), "📄")
    busy = " ⏳" if f.file_status == PROCESSING else ""
    mark = "▶ " if selected else ""
    return f"{mark}{icon} {f.name}{busy}"

def browser_rows(snap: Snapshot) -> List[Tuple[str, List[Tuple[str, str]]]]:
    """[(directory label, [(path, file label), ...]), ...] in display order."""
    rows = []
    for d in snap.directories_ordered:
        entries = [(f.path, file_label(f, f.path == snap.selected_path)) for f in snap.files_by_directory[d]]
        rows.append((dir_label(d), entries))
    return rows

def status_line(snap: Snapshot) -> str:
    if snap.is_streaming:
        return f"Generating… {len(snap.files)} files"
    return f"{snap.session_status.capitalize()} · {len(snap.files)} files"
