"""A Playwright-driven host page that embeds the app under inspection."""

from __future__ import annotations

import html
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING

from autoview.inspector.surface import PlaywrightSurface

if TYPE_CHECKING:
    from playwright.async_api import Browser, Page

    from autoview.core.config import BrowserConfig

logger = logging.getLogger("autoview.host")

PREVIEW_FRAME_ID = "autoview-preview"

HOST_PAGE_TEMPLATE = """<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8">
    <title>AutoView - {title}</title>
    <style>
      html, body {{ margin: 0; height: 100%; background: #111827; }}
      #{frame_id} {{ border: 0; width: 100%; height: 100%; background: white; }}
    </style>
  </head>
  <body>
    <iframe id="{frame_id}" src="{url}"></iframe>
  </body>
</html>
"""


def render_host_page(url: str) -> str:
    escaped = html.escape(url, quote=True)
    return HOST_PAGE_TEMPLATE.format(title=escaped, url=escaped, frame_id=PREVIEW_FRAME_ID)


@dataclass
class PreviewSession:
    browser: Browser
    page: Page
    surface: PlaywrightSurface


@asynccontextmanager
async def open_preview(url: str, config: BrowserConfig) -> AsyncIterator[PreviewSession]:
    """Launch Chromium, embed ``url`` in a host page and wire up its surface."""
    from playwright.async_api import async_playwright

    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=config.headless)
        try:
            context = await browser.new_context(
                viewport={"width": config.viewport.width, "height": config.viewport.height},
            )
            page = await context.new_page()
            page.set_default_timeout(config.timeout)

            await page.set_content(render_host_page(url), wait_until="load")
            surface = PlaywrightSurface(page, selector=f"#{PREVIEW_FRAME_ID}")
            await surface.setup()
            logger.debug("Preview of %s ready", url)

            yield PreviewSession(browser=browser, page=page, surface=surface)
        finally:
            await browser.close()
