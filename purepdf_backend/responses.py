from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Iterable, Optional

from fastapi.responses import FileResponse
from starlette.types import Receive, Scope, Send

from .storage import remove_files, remove_files_later


logger = logging.getLogger(__name__)


class CleanupFileResponse(FileResponse):
    """FileResponse that deletes its temp files once the transfer is over.

    Cleanup runs after the last body chunk has been sent (or the send failed),
    followed by a short grace delay, so the file is never unlinked while it is
    still being read.
    """

    def __init__(
        self,
        path: Path,
        *,
        filename: str,
        cleanup_paths: Iterable[Optional[Path]] = (),
        cleanup_delay: float = 1.0,
        **kwargs,
    ) -> None:
        headers = {"Cache-Control": "no-store", "X-Content-Type-Options": "nosniff"}
        headers.update(kwargs.pop("headers", None) or {})
        kwargs.setdefault("media_type", "application/pdf")
        super().__init__(path, filename=filename, headers=headers, **kwargs)
        self.cleanup_paths = [Path(path), *[Path(p) for p in cleanup_paths if p is not None]]
        self.cleanup_delay = cleanup_delay

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        except Exception:
            logger.exception("Download error")
            raise
        else:
            logger.info("File downloaded successfully")
        finally:
            try:
                await remove_files_later(self.cleanup_paths, self.cleanup_delay)
            except asyncio.CancelledError:
                # Shutdown or disconnect cancelled the grace delay; delete now.
                remove_files(self.cleanup_paths)
                raise
