from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from playwright.async_api import async_playwright

from .config import Settings
from .errors import ServerBusy


logger = logging.getLogger(__name__)

# Chromium inside containers usually runs as root without /dev/shm or a GPU.
CHROMIUM_ARGS = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-gpu",
    "--disable-dev-shm-usage",
)


@dataclass(frozen=True)
class PageLayout:
    format: str = "A4"
    print_background: bool = True
    margin: dict = field(
        default_factory=lambda: {"top": "20mm", "right": "20mm", "bottom": "20mm", "left": "20mm"}
    )


class ChromiumRenderer:
    """Print HTML to PDF in a fresh headless Chromium per call.

    At most `max_concurrent` browsers run at once. A caller that cannot get a
    slot within `queue_timeout` seconds gets ServerBusy instead of piling up.
    """

    def __init__(
        self,
        *,
        executable_path: Optional[str] = None,
        timeout_seconds: float = 60.0,
        max_concurrent: int = 2,
        queue_timeout: float = 30.0,
        layout: Optional[PageLayout] = None,
    ) -> None:
        self.executable_path = executable_path
        self.timeout_seconds = timeout_seconds
        self.queue_timeout = queue_timeout
        self.layout = layout or PageLayout()
        self._slots = asyncio.Semaphore(max(1, max_concurrent))

    @classmethod
    def from_settings(cls, settings: Settings) -> "ChromiumRenderer":
        return cls(
            executable_path=settings.chromium_executable,
            timeout_seconds=settings.render_timeout_seconds,
            max_concurrent=settings.max_concurrent_renders,
            queue_timeout=settings.render_queue_timeout_seconds,
        )

    async def render(self, html: str, output_path: Path) -> Path:
        if not await self._acquire_slot():
            logger.warning("No render slot free after %.1fs", self.queue_timeout)
            raise ServerBusy()
        try:
            return await self._print_pdf(html, Path(output_path))
        finally:
            self._slots.release()

    async def _acquire_slot(self) -> bool:
        # asyncio.wait never cancels the acquire itself, so a permit granted
        # right at the deadline is seen as done below and kept, not leaked.
        acquire = asyncio.ensure_future(self._slots.acquire())
        try:
            await asyncio.wait({acquire}, timeout=self.queue_timeout)
        except BaseException:
            self._abandon(acquire)
            raise
        if acquire.done():
            return True
        self._abandon(acquire)
        return False

    def _abandon(self, acquire: "asyncio.Future[bool]") -> None:
        if not acquire.done():
            # Semaphore.acquire hands a permit granted during cancellation back.
            acquire.cancel()
        elif not acquire.cancelled() and acquire.exception() is None:
            self._slots.release()

    async def _print_pdf(self, html: str, output_path: Path) -> Path:
        timeout_ms = self.timeout_seconds * 1000
        async with async_playwright() as p:
            browser = await p.chromium.launch(
                headless=True,
                executable_path=self.executable_path,
                args=list(CHROMIUM_ARGS),
            )
            try:
                page = await browser.new_page()
                await page.set_content(html, wait_until="networkidle", timeout=timeout_ms)
                await page.pdf(
                    path=str(output_path),
                    format=self.layout.format,
                    print_background=self.layout.print_background,
                    margin=dict(self.layout.margin),
                )
            finally:
                await browser.close()
        return output_path
