"""
Headless Chromium screenshots of Redash embed URLs.

Every capture launches its own browser, waits a fixed settle delay so the
embedded chart can finish drawing (the embed page gives no readiness
signal), captures the full page and closes the browser again.
"""

from __future__ import annotations
import asyncio
import contextlib
import logging
import os
import tempfile
from typing import AsyncIterator, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from redashbot.errors import RenderError
from redashbot.redash_client import redact

logger = logging.getLogger(__name__)

VIEWPORT = {"width": 1024, "height": 360}
BROWSER_ARGS = ["--disable-dev-shm-usage", "--no-sandbox"]
DEFAULT_SETTLE_DELAY = 2.0


class Screenshotter:
    """Render embed URLs to temporary PNG files."""

    def __init__(
        self,
        *,
        executable_path: Optional[str] = None,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
        max_browsers: int = 0,
    ) -> None:
        self.executable_path = executable_path
        self.settle_delay = settle_delay
        # 0 keeps browser launches unbounded
        self._slots = asyncio.Semaphore(max_browsers) if max_browsers > 0 else None

    async def render(self, url: str, path: str) -> str:
        """Write a full-page screenshot of ``url`` to ``path``."""
        if self._slots is None:
            return await self._render(url, path)
        async with self._slots:
            return await self._render(url, path)

    async def _render(self, url: str, path: str) -> str:
        logger.info("[Screenshot] %s", redact(url))
        try:
            async with async_playwright() as pw:
                launch_kwargs = {"headless": True, "args": BROWSER_ARGS}
                if self.executable_path:
                    launch_kwargs["executable_path"] = self.executable_path
                browser = await pw.chromium.launch(**launch_kwargs)
                try:
                    page = await browser.new_page(viewport=VIEWPORT)
                    await page.goto(url)
                    await asyncio.sleep(self.settle_delay)
                    await page.screenshot(path=path, full_page=True)
                finally:
                    await browser.close()
        except (PlaywrightError, OSError) as exc:
            raise RenderError(f"Screenshot of {redact(url)} failed: {exc}") from exc
        return path

    @contextlib.asynccontextmanager
    async def capture(self, url: str) -> AsyncIterator[str]:
        """Yield a temporary screenshot of ``url``; the file is removed on exit."""
        try:
            fd, path = tempfile.mkstemp(suffix=".png", prefix="redash-")
            os.close(fd)
        except OSError as exc:
            raise RenderError(f"Could not allocate a temporary screenshot file: {exc}") from exc
        try:
            await self.render(url, path)
            yield path
        finally:
            with contextlib.suppress(FileNotFoundError):
                os.remove(path)
