"""Boundary to the Playwright engine launchers"""

import asyncio
import logging
from typing import Any, Optional

from playwright.async_api import Browser, Playwright, async_playwright

from browser_conductor.core.registry.views import EngineKind
from browser_conductor.exceptions import UnsupportedEngineKind

logger = logging.getLogger(__name__)


class BrowserDriver:
	"""Starts Playwright lazily and launches browsers of a given engine"""

	def __init__(self, launch_args: Optional[list[str]] = None):
		self.launch_args = launch_args or []
		self._playwright: Optional[Playwright] = None
		self._lock = asyncio.Lock()

	@staticmethod
	def parse_engine(engine: Any) -> EngineKind:
		if isinstance(engine, EngineKind):
			return engine
		try:
			return EngineKind(str(engine).lower())
		except ValueError:
			raise UnsupportedEngineKind(engine) from None

	async def _ensure_started(self) -> Playwright:
		async with self._lock:
			if self._playwright is None:
				logger.info("Starting Playwright")
				self._playwright = await async_playwright().start()
			return self._playwright

	async def launch(self, engine: Any, headless: bool = True) -> Browser:
		engine_kind = self.parse_engine(engine)
		playwright = await self._ensure_started()
		launcher = getattr(playwright, engine_kind.value)

		# Sandbox flags only make sense for chromium
		args = self.launch_args if engine_kind is EngineKind.CHROMIUM else []
		logger.info(f"Launching {engine_kind.value} (headless={headless})")
		return await launcher.launch(headless=headless, args=args)

	async def stop(self) -> None:
		async with self._lock:
			if self._playwright is not None:
				await self._playwright.stop()
				self._playwright = None
				logger.info("Playwright stopped")
