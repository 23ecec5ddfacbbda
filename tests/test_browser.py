"""
tests/test_browser.py

PlaywrightBrowserFactory wiring against stand-in Playwright objects: launch
options, context fingerprint and playwright-stealth evasions on the context.
"""

from __future__ import annotations

import asyncio

import pytest

import app.scraping.browser as browser_module
from app.config import ProxySettings
from app.scraping.browser import PlaywrightBrowserFactory, SessionConfig
from app.scraping.stealth import CHROMIUM_ARGS


class StubPage:
    pass


class StubContext:
    def __init__(self) -> None:
        self.pages: list[StubPage] = []

    async def new_page(self) -> StubPage:
        page = StubPage()
        self.pages.append(page)
        return page


class StubBrowser:
    def __init__(self) -> None:
        self.context_options: dict = {}
        self.context = StubContext()
        self.closed = False

    async def new_context(self, **options) -> StubContext:
        self.context_options = options
        return self.context

    async def close(self) -> None:
        self.closed = True


class StubChromium:
    def __init__(self, browser: StubBrowser) -> None:
        self.browser = browser
        self.launch_options: dict = {}

    async def launch(self, **options) -> StubBrowser:
        self.launch_options = options
        return self.browser


class StubPlaywright:
    def __init__(self) -> None:
        self.chromium = StubChromium(StubBrowser())
        self.stopped = False

    async def stop(self) -> None:
        self.stopped = True


class StubStarter:
    def __init__(self, playwright: StubPlaywright) -> None:
        self._playwright = playwright

    async def start(self) -> StubPlaywright:
        return self._playwright


class RecordingStealth:
    contexts: list = []

    async def apply_stealth_async(self, context) -> None:
        RecordingStealth.contexts.append(context)


@pytest.fixture()
def playwright(monkeypatch) -> StubPlaywright:
    stub = StubPlaywright()
    RecordingStealth.contexts = []
    monkeypatch.setattr(browser_module, "async_playwright", lambda: StubStarter(stub))
    monkeypatch.setattr(browser_module, "Stealth", RecordingStealth)
    return stub


def _config(**overrides) -> SessionConfig:
    values = {"user_agent": "agent-a", "viewport_width": 1366, "viewport_height": 768}
    values.update(overrides)
    return SessionConfig(**values)


class TestPlaywrightBrowserFactory:
    def test_stealth_is_applied_to_the_context(self, playwright: StubPlaywright) -> None:
        asyncio.run(PlaywrightBrowserFactory().new_session(_config()))

        browser = playwright.chromium.browser
        assert RecordingStealth.contexts == [browser.context]
        assert len(browser.context.pages) == 1

    def test_context_carries_the_fingerprint(self, playwright: StubPlaywright) -> None:
        config = _config(extra_headers={"Accept-Language": "en-US,en;q=0.9"})
        asyncio.run(PlaywrightBrowserFactory().new_session(config))

        options = playwright.chromium.browser.context_options
        assert options["user_agent"] == "agent-a"
        assert options["viewport"] == {"width": 1366, "height": 768}
        assert options["extra_http_headers"] == {"Accept-Language": "en-US,en;q=0.9"}
        launch = playwright.chromium.launch_options
        assert launch["headless"] is True
        assert launch["args"] == list(CHROMIUM_ARGS)
        assert "proxy" not in launch

    def test_stealth_can_be_turned_off(self, playwright: StubPlaywright) -> None:
        asyncio.run(PlaywrightBrowserFactory().new_session(_config(stealth=False)))

        assert RecordingStealth.contexts == []

    def test_proxy_credentials_reach_the_launch(self, playwright: StubPlaywright) -> None:
        proxy = ProxySettings(url="http://proxy.local:8080", username="scraper", password="secret")
        asyncio.run(PlaywrightBrowserFactory().new_session(_config(proxy=proxy)))

        assert playwright.chromium.launch_options["proxy"] == {
            "server": "http://proxy.local:8080",
            "username": "scraper",
            "password": "secret",
        }

    def test_close_stops_playwright(self, playwright: StubPlaywright) -> None:
        async def scenario() -> None:
            session = await PlaywrightBrowserFactory().new_session(_config())
            await session.close()

        asyncio.run(scenario())
        assert playwright.chromium.browser.closed
        assert playwright.stopped
