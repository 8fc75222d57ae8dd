from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

from .synthesizer import VirtualFile

ROOT_DIR = "root"


def directory_of(path: str) -> str:
    """Everything before the last '/', or 'root' for a bare file name."""
    if "/" not in path:
        return ROOT_DIR
    return path.rsplit("/", 1)[0]

def group(files: Iterable[VirtualFile]) -> Tuple[List[str], Dict[str, List[VirtualFile]]]:
    """
    Partition files by directory.
    'root' always comes first, the rest sort by code point so the browser
    does not reshuffle between repaints. Files keep their incoming order.
    """
    by_dir: Dict[str, List[VirtualFile]] = {}
    for f in files:
        by_dir.setdefault(directory_of(f.path), []).append(f)
    ordered = sorted(by_dir, key=lambda d: (d != ROOT_DIR, d))
    return ordered, by_dir

def first_path(directories: List[str], files_by_directory: Dict[str, List[VirtualFile]]) -> Optional[str]:
    for d in directories:
        entries = files_by_directory.get(d) or []
        if entries:
            return entries[0].path
    return None
