import asyncio
import os

import pytest

from redashbot import screenshot as screenshot_module
from redashbot.errors import RenderError
from redashbot.screenshot import Screenshotter


class FakePage:
    def __init__(self, log, fail_goto):
        self.log = log
        self.fail_goto = fail_goto

    async def goto(self, url):
        self.log.append(("goto", url))
        if self.fail_goto:
            raise screenshot_module.PlaywrightError("net::ERR_NAME_NOT_RESOLVED")

    async def screenshot(self, path, full_page):
        self.log.append(("screenshot", full_page))
        with open(path, "wb") as fh:
            fh.write(b"\x89PNG")


class FakeBrowser:
    def __init__(self, log, fail_goto):
        self.log = log
        self.fail_goto = fail_goto

    async def new_page(self, viewport):
        self.log.append(("new_page", viewport))
        return FakePage(self.log, self.fail_goto)

    async def close(self):
        self.log.append(("close",))


class FakeChromium:
    def __init__(self, log, fail_goto):
        self.log = log
        self.fail_goto = fail_goto

    async def launch(self, **kwargs):
        self.log.append(("launch", kwargs))
        return FakeBrowser(self.log, self.fail_goto)


class FakePlaywright:
    def __init__(self, log, fail_goto=False):
        self.chromium = FakeChromium(log, fail_goto)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


@pytest.fixture
def browser_log(monkeypatch):
    log = []
    monkeypatch.setattr(screenshot_module, "async_playwright", lambda: FakePlaywright(log))
    return log


def test_capture_drives_browser_and_cleans_up(browser_log):
    shooter = Screenshotter(executable_path="/usr/bin/chromium", settle_delay=0)
    seen = {}

    async def run():
        async with shooter.capture("http://redash/embed/query/1/visualization/2?api_key=k") as path:
            seen["path"] = path
            with open(path, "rb") as fh:
                seen["content"] = fh.read()

    asyncio.run(run())

    assert seen["content"] == b"\x89PNG"
    assert seen["path"].endswith(".png")
    assert not os.path.exists(seen["path"])
    launch = browser_log[0]
    assert launch[1]["executable_path"] == "/usr/bin/chromium"
    assert launch[1]["args"] == ["--disable-dev-shm-usage", "--no-sandbox"]
    assert browser_log[1] == ("new_page", {"width": 1024, "height": 360})
    assert browser_log[2] == ("goto", "http://redash/embed/query/1/visualization/2?api_key=k")
    assert browser_log[3] == ("screenshot", True)
    assert browser_log[-1] == ("close",)


def test_browser_failure_raises_render_error_and_closes_browser(monkeypatch):
    log = []
    monkeypatch.setattr(screenshot_module, "async_playwright", lambda: FakePlaywright(log, fail_goto=True))
    shooter = Screenshotter(settle_delay=0)

    async def run():
        async with shooter.capture("http://redash/embed?api_key=k"):
            pass

    with pytest.raises(RenderError) as excinfo:
        asyncio.run(run())
    assert "api_key=***" in str(excinfo.value)
    assert "executable_path" not in log[0][1]
    assert log[-1] == ("close",)


def test_bounded_browser_pool(browser_log):
    shooter = Screenshotter(settle_delay=0, max_browsers=1)

    async def run():
        async def one(n):
            async with shooter.capture(f"http://redash/{n}"):
                pass
        await asyncio.gather(*(one(n) for n in range(3)))

    asyncio.run(run())
    launches = [entry for entry in browser_log if entry[0] in ("launch", "close")]
    assert [entry[0] for entry in launches] == ["launch", "close"] * 3
