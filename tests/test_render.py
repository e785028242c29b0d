"""ChromiumRenderer against a mocked Playwright."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from purepdf_backend.config import Settings
from purepdf_backend.errors import ServerBusy
from purepdf_backend.render import CHROMIUM_ARGS, ChromiumRenderer


def _fake_playwright():
    page = MagicMock()
    page.set_content = AsyncMock()
    page.pdf = AsyncMock()

    browser = MagicMock()
    browser.new_page = AsyncMock(return_value=page)
    browser.close = AsyncMock()

    p = MagicMock()
    p.chromium.launch = AsyncMock(return_value=browser)

    manager = MagicMock()
    manager.__aenter__ = AsyncMock(return_value=p)
    manager.__aexit__ = AsyncMock(return_value=False)
    return manager, p, browser, page


@pytest.mark.asyncio
async def test_render_prints_a4_with_margins(tmp_path):
    manager, p, browser, page = _fake_playwright()
    renderer = ChromiumRenderer(executable_path="/usr/bin/chromium", timeout_seconds=5)
    out = tmp_path / "x.pdf"

    with patch("purepdf_backend.render.async_playwright", return_value=manager):
        assert await renderer.render("<p>hi</p>", out) == out

    p.chromium.launch.assert_awaited_once_with(
        headless=True,
        executable_path="/usr/bin/chromium",
        args=list(CHROMIUM_ARGS),
    )
    page.set_content.assert_awaited_once_with("<p>hi</p>", wait_until="networkidle", timeout=5000)
    page.pdf.assert_awaited_once_with(
        path=str(out),
        format="A4",
        print_background=True,
        margin={"top": "20mm", "right": "20mm", "bottom": "20mm", "left": "20mm"},
    )
    browser.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_browser_closed_when_page_fails(tmp_path):
    manager, _, browser, page = _fake_playwright()
    page.set_content.side_effect = RuntimeError("net::ERR_ABORTED")
    renderer = ChromiumRenderer()

    with patch("purepdf_backend.render.async_playwright", return_value=manager):
        with pytest.raises(RuntimeError, match="ERR_ABORTED"):
            await renderer.render("<p>hi</p>", tmp_path / "x.pdf")

    browser.close.assert_awaited_once()
    page.pdf.assert_not_awaited()


@pytest.mark.asyncio
async def test_slot_released_after_failure(tmp_path):
    manager, _, _, page = _fake_playwright()
    page.pdf.side_effect = RuntimeError("boom")
    renderer = ChromiumRenderer(max_concurrent=1, queue_timeout=0.05)

    with patch("purepdf_backend.render.async_playwright", return_value=manager):
        with pytest.raises(RuntimeError):
            await renderer.render("<p>1</p>", tmp_path / "1.pdf")
        page.pdf.side_effect = None
        await renderer.render("<p>2</p>", tmp_path / "2.pdf")


@pytest.mark.asyncio
async def test_busy_when_no_slot_frees_up(tmp_path):
    renderer = ChromiumRenderer(max_concurrent=1, queue_timeout=0.01)
    await renderer._slots.acquire()

    with pytest.raises(ServerBusy):
        await renderer.render("<p>hi</p>", tmp_path / "x.pdf")


def test_from_settings():
    renderer = ChromiumRenderer.from_settings(
        Settings(chromium_executable="/opt/chrome", render_timeout_seconds=7, render_queue_timeout_seconds=3)
    )

    assert renderer.executable_path == "/opt/chrome"
    assert renderer.timeout_seconds == 7
    assert renderer.queue_timeout == 3
    assert renderer.layout.format == "A4"


@pytest.mark.asyncio
async def test_timed_out_wait_does_not_shrink_the_cap(tmp_path):
    manager, _, _, _ = _fake_playwright()
    renderer = ChromiumRenderer(max_concurrent=1, queue_timeout=0.01)
    await renderer._slots.acquire()

    with pytest.raises(ServerBusy):
        await renderer.render("<p>hi</p>", tmp_path / "x.pdf")
    renderer._slots.release()

    assert not renderer._slots.locked()
    with patch("purepdf_backend.render.async_playwright", return_value=manager):
        await renderer.render("<p>hi</p>", tmp_path / "x.pdf")
    assert not renderer._slots.locked()


@pytest.mark.asyncio
async def test_slot_granted_at_the_deadline_is_used(tmp_path):
    manager, _, _, page = _fake_playwright()
    renderer = ChromiumRenderer(max_concurrent=1, queue_timeout=0.05)
    await renderer._slots.acquire()

    # Free the slot just before the wait gives up.
    asyncio.get_running_loop().call_later(0.045, renderer._slots.release)
    with patch("purepdf_backend.render.async_playwright", return_value=manager):
        try:
            await renderer.render("<p>hi</p>", tmp_path / "x.pdf")
        except ServerBusy:
            pass

    await asyncio.sleep(0.02)
    # Whether the render ran or gave up, the one permit is back.
    assert not renderer._slots.locked()
    assert page.pdf.await_count in (0, 1)


@pytest.mark.asyncio
async def test_cancelled_waiter_gives_its_slot_back(tmp_path):
    renderer = ChromiumRenderer(max_concurrent=1, queue_timeout=5)
    await renderer._slots.acquire()

    waiter = asyncio.ensure_future(renderer.render("<p>hi</p>", tmp_path / "x.pdf"))
    await asyncio.sleep(0.01)
    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter
    renderer._slots.release()
    await asyncio.sleep(0.01)

    assert not renderer._slots.locked()
