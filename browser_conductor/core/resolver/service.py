"""Multi-strategy element resolution service"""

import logging
from typing import Optional

from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeout

from browser_conductor.core.resolver.strategies import (
	STRATEGY_ORDER,
	SUGGEST_ALTERNATIVES_JS,
	build_selector,
)
from browser_conductor.core.resolver.views import AlternativeCandidate, ResolvedElement
from browser_conductor.exceptions import ElementNotFound
from browser_conductor.utils import time_execution_async

logger = logging.getLogger(__name__)


class ElementResolver:
	"""Turns a loose target description into a visible element.

	Strategies run in a fixed order and the first one whose first candidate
	becomes visible within the probe window wins, so a literal selector match
	always beats the text and attribute heuristics.
	"""

	def __init__(self, probe_timeout_ms: int = 1000, max_alternatives: int = 5):
		self.probe_timeout_ms = probe_timeout_ms
		self.max_alternatives = max_alternatives

	@time_execution_async("resolve_element")
	async def resolve(self, page: Page, description: str) -> ResolvedElement:
		logger.debug(f"Resolving element: description='{description}'")

		for strategy in STRATEGY_ORDER:
			selector = build_selector(strategy, description)
			try:
				locator = page.locator(selector)
				if await locator.count() == 0:
					continue

				candidate = locator.first
				await candidate.wait_for(state="visible", timeout=self.probe_timeout_ms)
				logger.debug(f"Resolved '{description}' with {strategy.value}: {selector}")
				return ResolvedElement(locator=candidate, strategy=strategy, selector=selector)
			except PlaywrightTimeout:
				logger.debug(f"Strategy {strategy.value} found no visible candidate for '{description}'")
			except Exception as e:
				# Invalid CSS and similar selector errors
				logger.debug(f"Strategy {strategy.value} failed for '{description}': {e}")

		raise ElementNotFound(description)

	async def find(self, page: Page, description: str) -> Optional[ResolvedElement]:
		try:
			return await self.resolve(page, description)
		except ElementNotFound:
			return None

	async def suggest_alternatives(self, page: Page, description: str) -> list[AlternativeCandidate]:
		"""Elements whose text or attributes contain the description, first five in DOM order"""
		try:
			raw = await page.evaluate(
				SUGGEST_ALTERNATIVES_JS,
				{"needle": description, "limit": self.max_alternatives},
			)
		except Exception as e:
			logger.warning(f"Could not collect alternatives for '{description}': {e}")
			return []

		alternatives = [AlternativeCandidate.model_validate(item) for item in (raw or [])]
		return alternatives[: self.max_alternatives]
