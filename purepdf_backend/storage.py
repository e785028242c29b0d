from __future__ import annotations

import asyncio
import logging
import os
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from .config import Settings
from .security import safe_join


logger = logging.getLogger(__name__)

OUTPUT_EXTENSION = ".pdf"

_STORED_STEM_RE = re.compile(r"_\d{13,}$")


@dataclass(frozen=True)
class StoragePaths:
    upload_dir: Path
    files_dir: Path

    @classmethod
    def from_settings(cls, settings: Settings) -> "StoragePaths":
        return cls(upload_dir=Path(settings.upload_dir).resolve(), files_dir=Path(settings.files_dir).resolve())


def _now_millis() -> int:
    return time.time_ns() // 1_000_000


def ensure_storage_dirs(storage: StoragePaths) -> None:
    storage.upload_dir.mkdir(parents=True, exist_ok=True)
    storage.files_dir.mkdir(parents=True, exist_ok=True)


def stored_filename(original_filename: str, millis: int) -> str:
    """`report.docx` + 1700000000000 -> `report_1700000000000.docx`."""
    original = Path(original_filename)
    return f"{original.stem}_{millis}{original.suffix}"


def reserve_upload_path(storage: StoragePaths, original_filename: str, millis: Optional[int] = None) -> Path:
    """Create an empty, uniquely named file in the upload dir and return its path.

    The file is created with O_EXCL so two requests can never share a name. If
    the millisecond timestamp is already taken, the next one is tried.
    """
    ms = _now_millis() if millis is None else millis
    while True:
        path = safe_join(storage.upload_dir, stored_filename(original_filename, ms))
        try:
            fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            ms += 1
            continue
        os.close(fd)
        return path


def output_path_for(storage: StoragePaths, stored_path: Path) -> Path:
    return safe_join(storage.files_dir, f"{Path(stored_path).stem}{OUTPUT_EXTENSION}")


def remove_files(paths: Iterable[Optional[Path]]) -> int:
    """Delete the given files, logging (not raising) on failure.

    Returns the number of files actually deleted. Missing files are ignored,
    so calling this twice for the same request is harmless.
    """
    deleted = 0
    for path in paths:
        if path is None:
            continue
        try:
            Path(path).unlink()
        except FileNotFoundError:
            continue
        except OSError:
            logger.exception("Error deleting temporary file %s", Path(path).name)
            continue
        deleted += 1
    return deleted


def _is_stored_file(path: Path) -> bool:
    return path.is_file() and _STORED_STEM_RE.search(path.stem) is not None


def sweep_storage(storage: StoragePaths) -> int:
    """Delete files left in both temp dirs by a previous process.

    Only files carrying our `_<millis>` suffix are touched. Call this before
    the server accepts requests: nothing here outlives its request.
    """
    leftovers: list[Path] = []
    for directory in (storage.upload_dir, storage.files_dir):
        if not directory.exists():
            continue
        leftovers.extend(child for child in directory.iterdir() if _is_stored_file(child))
    return remove_files(leftovers)


async def remove_files_later(paths: Iterable[Optional[Path]], delay_seconds: float) -> int:
    paths = list(paths)
    if delay_seconds > 0:
        await asyncio.sleep(delay_seconds)
    return remove_files(paths)
