"""Shared Playwright doubles"""

from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeout

from browser_conductor.config import ConductorConfig
from browser_conductor.core.driver.service import BrowserDriver
from browser_conductor.core.events.service import EventChannel
from browser_conductor.core.intent.service import RegexIntentTranslator
from browser_conductor.session.pool import SessionPool
from browser_conductor.session.service import SessionManager


class FakeLocator:
	"""Locator double: `count` candidates, first one visible or not"""

	def __init__(self, count: int = 1, visible: bool = True, error: Optional[Exception] = None, text: str = "text"):
		self.count = AsyncMock(side_effect=error, return_value=count)
		self.first = MagicMock()
		self.first.wait_for = AsyncMock(side_effect=None if visible else PlaywrightTimeout("Timeout 1000ms exceeded"))
		self.first.click = AsyncMock()
		self.first.fill = AsyncMock()
		self.first.text_content = AsyncMock(return_value=text)


def make_page(locators: Optional[dict] = None, url: str = "about:blank", title: str = "Blank"):
	"""Page double whose locator() answers from a selector -> FakeLocator map"""
	page = MagicMock()
	page.url = url
	page.locators = locators if locators is not None else {}

	async def goto(target_url, **kwargs):
		page.url = target_url

	page.locator = MagicMock(side_effect=lambda selector: page.locators.get(selector, FakeLocator(count=0)))
	page.title = AsyncMock(return_value=title)
	page.goto = AsyncMock(side_effect=goto)
	page.wait_for_load_state = AsyncMock()
	page.wait_for_timeout = AsyncMock()
	page.wait_for_selector = AsyncMock()
	page.evaluate = AsyncMock(return_value={})
	page.eval_on_selector_all = AsyncMock(return_value=[])
	page.screenshot = AsyncMock(return_value=b"\x89PNG fake")
	page.close = AsyncMock()
	return page


class FakeContext:
	def __init__(self, options: dict):
		self.options = options
		self.pages = []
		self.close = AsyncMock()

	async def new_page(self):
		page = make_page()
		self.pages.append(page)
		return page


class FakeBrowser:
	def __init__(self, engine: str, headless: bool):
		self.engine = engine
		self.headless = headless
		self.contexts = []
		self.fail_new_context = False
		self.close = AsyncMock()

	async def new_context(self, **options):
		if self.fail_new_context:
			raise PlaywrightError("Target page, context or browser has been closed")
		context = FakeContext(options)
		self.contexts.append(context)
		return context


class FakeDriver(BrowserDriver):
	"""Driver that hands out FakeBrowser objects instead of real processes"""

	def __init__(self):
		super().__init__()
		self.browsers = []
		self.fail_launch = False
		self.fail_new_context = False
		self.stopped = False

	async def launch(self, engine, headless=True):
		engine_kind = self.parse_engine(engine)
		if self.fail_launch:
			raise PlaywrightError("Executable doesn't exist")
		browser = FakeBrowser(engine_kind.value, headless)
		browser.fail_new_context = self.fail_new_context
		self.browsers.append(browser)
		return browser

	async def stop(self):
		self.stopped = True


@pytest.fixture
def config():
	return ConductorConfig()


@pytest.fixture
def events():
	return EventChannel("test-session")


@pytest.fixture
def mock_page():
	return make_page()


@pytest.fixture
def fake_driver():
	return FakeDriver()


@pytest.fixture
def session(fake_driver, config):
	return SessionManager(fake_driver, RegexIntentTranslator(), config, session_id="test-session")


@pytest.fixture
def pool(fake_driver, config):
	return SessionPool(driver=fake_driver, translator=RegexIntentTranslator(), config=config)


def statuses(channel: EventChannel) -> list[str]:
	return [event.message for event in channel.recent if event.event == "status_update"]
