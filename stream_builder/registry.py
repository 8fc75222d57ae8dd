from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

DEFAULT_EXTENSION = "js"
DEFAULT_LANGUAGE = "plaintext"

# fence language tag -> file extension
EXTENSION_FROM_LANG: Mapping[str, str] = MappingProxyType({
    "javascript": "js",
    "js": "js",
    "jsx": "jsx",
    "typescript": "ts",
    "ts": "ts",
    "tsx": "tsx",
    "css": "css",
    "scss": "scss",
    "html": "html",
    "json": "json",
    "markdown": "md",
})

# file extension -> highlighter id
LANG_FROM_EXT: Mapping[str, str] = MappingProxyType({
    "js": "javascript",
    "jsx": "jsx",
    "ts": "typescript",
    "tsx": "tsx",
    "css": "css",
    "scss": "scss",
    "html": "markup",
    "json": "json",
    "md": "markdown",
})


def extension_for(language_tag: str | None) -> str:
    """Extension for a fence tag; unknown or missing tags map to 'js'."""
    tag = (language_tag or "").strip().lower()
    return EXTENSION_FROM_LANG.get(tag, DEFAULT_EXTENSION)

def language_for(extension: str | None) -> str:
    """Highlighter id for an extension ('.css' and 'css' both work)."""
    ext = (extension or "").strip().lower().lstrip(".")
    return LANG_FROM_EXT.get(ext, DEFAULT_LANGUAGE)

def extension_of(path: str) -> str:
    name = (path or "").replace("\\", "/").split("/")[-1]
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[-1].lower()

def language_for_path(path: str) -> str:
    return language_for(extension_of(path))
