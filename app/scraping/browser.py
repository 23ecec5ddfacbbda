"""
Headless-browser boundary.

The pipeline talks to ``BrowserFactory`` / ``BrowserSession`` only; the
Playwright implementation below is the production adapter and tests inject
in-memory fakes.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright_stealth import Stealth

from app.config import ProxySettings
from app.scraping.stealth import CHROMIUM_ARGS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionConfig:
    user_agent: str
    viewport_width: int
    viewport_height: int
    headless: bool = True
    locale: str = "en-US"
    extra_headers: dict[str, str] = field(default_factory=dict)
    proxy: ProxySettings | None = None
    stealth: bool = True


class BrowserSession(Protocol):
    async def navigate(self, url: str, timeout_ms: int) -> None: ...

    async def content(self) -> str: ...

    async def query(self, selector: str) -> bool: ...

    async def text(self, selector: str) -> str | None: ...

    async def attribute(self, selector: str, name: str) -> str | None: ...

    async def click(self, selector: str) -> bool: ...

    async def move_pointer(self, x: int, y: int) -> None: ...

    async def scroll_by(self, dx: int, dy: int) -> None: ...

    async def screenshot(self, path: str) -> None: ...

    async def close(self) -> None: ...


class BrowserFactory(Protocol):
    async def new_session(self, config: SessionConfig) -> BrowserSession: ...


class PlaywrightBrowserSession:
    """
    One isolated browser (context + page) per extraction run.
    """

    def __init__(
        self,
        *,
        playwright: Playwright,
        browser: Browser,
        context: BrowserContext,
        page: Page,
    ) -> None:
        self._playwright = playwright
        self._browser = browser
        self._context = context
        self._page = page

    async def navigate(self, url: str, timeout_ms: int) -> None:
        try:
            await self._page.goto(url, wait_until="networkidle", timeout=timeout_ms)
        except PlaywrightTimeoutError as exc:
            raise asyncio.TimeoutError(str(exc)) from exc

    async def content(self) -> str:
        return await self._page.content()

    async def query(self, selector: str) -> bool:
        return await self._page.query_selector(selector) is not None

    async def text(self, selector: str) -> str | None:
        handle = await self._page.query_selector(selector)
        if handle is None:
            return None
        return await handle.text_content()

    async def attribute(self, selector: str, name: str) -> str | None:
        handle = await self._page.query_selector(selector)
        if handle is None:
            return None
        return await handle.get_attribute(name)

    async def click(self, selector: str) -> bool:
        handle = await self._page.query_selector(selector)
        if handle is None:
            return False
        await handle.click(timeout=5000)
        return True

    async def move_pointer(self, x: int, y: int) -> None:
        await self._page.mouse.move(x, y)

    async def scroll_by(self, dx: int, dy: int) -> None:
        await self._page.mouse.wheel(dx, dy)

    async def screenshot(self, path: str) -> None:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        await self._page.screenshot(path=path, full_page=True)

    async def close(self) -> None:
        try:
            await self._browser.close()
        except PlaywrightError as exc:
            logger.debug("Browser close failed: %s", exc)
        finally:
            await self._playwright.stop()


class PlaywrightBrowserFactory:
    """
    Launch Chromium through Playwright's async API.
    """

    async def new_session(self, config: SessionConfig) -> PlaywrightBrowserSession:
        playwright = await async_playwright().start()
        try:
            launch_kwargs: dict[str, Any] = {
                "headless": config.headless,
                "args": list(CHROMIUM_ARGS),
            }
            if config.proxy is not None and config.proxy.enabled:
                proxy: dict[str, str] = {"server": str(config.proxy.url)}
                if config.proxy.username:
                    proxy["username"] = config.proxy.username
                if config.proxy.password:
                    proxy["password"] = config.proxy.password
                launch_kwargs["proxy"] = proxy

            browser = await playwright.chromium.launch(**launch_kwargs)
            context = await browser.new_context(
                user_agent=config.user_agent,
                viewport={"width": config.viewport_width, "height": config.viewport_height},
                locale=config.locale,
                extra_http_headers=dict(config.extra_headers) or None,
            )
            if config.stealth:
                await Stealth().apply_stealth_async(context)
            page = await context.new_page()
        except BaseException:
            await playwright.stop()
            raise

        return PlaywrightBrowserSession(
            playwright=playwright,
            browser=browser,
            context=context,
            page=page,
        )
