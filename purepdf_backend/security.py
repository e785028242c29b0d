from __future__ import annotations

from pathlib import Path, PurePosixPath


DEFAULT_BASENAME = "document"


def client_basename(filename: str | None) -> str:
    """Reduce a client-supplied filename to its last path component.

    Browsers on Windows may send full paths with backslashes; both separators
    are stripped so the result can never point outside a target directory.
    """
    if not isinstance(filename, str):
        return DEFAULT_BASENAME
    name = PurePosixPath(filename.replace("\\", "/")).name.strip()
    if name in {"", ".", ".."}:
        return DEFAULT_BASENAME
    return name


def safe_join(base_dir: Path, *parts: str) -> Path:
    """Join paths and ensure the result stays within base_dir.

    This defends against path traversal when writing user-controlled names.
    """
    base_dir = base_dir.resolve()
    candidate = base_dir
    for part in parts:
        candidate = candidate / part
    resolved = candidate.resolve()
    if resolved == base_dir:
        return resolved
    if base_dir not in resolved.parents:
        raise ValueError("Path traversal attempt")
    return resolved
