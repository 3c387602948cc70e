"""Executes action plans and direct page operations against a live page"""

import asyncio
import base64
import logging
from typing import Any, Awaitable, Callable, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeout

from browser_conductor.config import ConductorConfig
from browser_conductor.core.events.service import EventChannel
from browser_conductor.core.events.views import DataType, StatusType
from browser_conductor.core.executor.views import (
	SCROLL_EDGES,
	SCROLL_VECTORS,
	ActionResult,
	ScreenshotResult,
	normalize_url,
	parse_duration,
)
from browser_conductor.core.intent.service import IntentTranslator
from browser_conductor.core.intent.views import ActionPlan, ActionType, PageAnalysis, PageInfo
from browser_conductor.core.resolver.service import ElementResolver
from browser_conductor.core.resolver.views import ResolvedElement
from browser_conductor.exceptions import (
	ConductorError,
	ElementNotFound,
	IntentTranslationFailure,
	InternalExecutionError,
	NavigationFailure,
	NavigationTimeout,
	TimeoutExceeded,
)
from browser_conductor.utils import time_execution_async

logger = logging.getLogger(__name__)

# (data, warnings)
HandlerResult = tuple[Any, list[str]]

PAGE_STRUCTURE_JS = """
() => {
	const info = (el) => {
		const rect = el.getBoundingClientRect();
		if (rect.width === 0 && rect.height === 0) return null;
		const attributes = {};
		for (const attr of Array.from(el.attributes)) {
			if (['aria-label', 'title', 'data-testid', 'role'].includes(attr.name)) {
				attributes[attr.name] = attr.value;
			}
		}
		return {
			tag: el.tagName.toLowerCase(),
			text: (el.textContent || '').slice(0, 100).trim(),
			classes: Array.from(el.classList),
			id: el.id || null,
			name: el.getAttribute('name'),
			type: el.getAttribute('type'),
			placeholder: el.getAttribute('placeholder'),
			href: el.href || null,
			attributes: attributes,
		};
	};
	const collect = (selector) => Array.from(document.querySelectorAll(selector)).map(info).filter(Boolean);
	return {
		title: document.title,
		url: window.location.href,
		buttons: collect("button, input[type='submit']"),
		links: collect('a'),
		inputs: collect("input:not([type='hidden']), textarea, select"),
		forms: collect('form'),
		headings: Array.from(document.querySelectorAll('h1, h2, h3, h4'))
			.slice(0, 5)
			.map((h) => (h.textContent || '').slice(0, 100).trim()),
	};
}
"""

PAGE_INFO_JS = """
() => {
	const texts = (selector, limit = 50) => Array.from(document.querySelectorAll(selector))
		.slice(0, 10)
		.map((el) => (el.textContent || el.getAttribute('placeholder') || el.getAttribute('value') || '').slice(0, limit).trim());
	return {
		title: document.title,
		url: window.location.href,
		headings: texts('h1,h2,h3,h4'),
		buttons: texts("button, input[type='submit']"),
		links: texts('a'),
		inputs: texts("input:not([type='hidden']), textarea, select"),
		bodySnippet: document.body ? (document.body.textContent || '').slice(0, 500).trim() : '',
	};
}
"""

EXTRACT_JS = """
(elements) => elements.map((el) => ({
	text: (el.textContent || '').trim(),
	href: el.getAttribute('href'),
}))
"""

ANALYSIS_FAILED_SUMMARY = "Page analysis failed due to an AI error."


class ActionExecutor:
	"""Dispatches action plans to handlers and runs direct page operations.

	Handlers raise ConductorError subclasses on failure; Playwright errors are
	translated at this boundary. A plan either completes or raises, callers
	decide whether that aborts a command or just one workflow step.
	"""

	def __init__(
		self,
		events: EventChannel,
		resolver: Optional[ElementResolver] = None,
		translator: Optional[IntentTranslator] = None,
		config: Optional[ConductorConfig] = None,
	):
		self.config = config or ConductorConfig()
		self.events = events
		self.resolver = resolver or ElementResolver(
			probe_timeout_ms=self.config.visibility_probe_ms,
			max_alternatives=self.config.max_alternatives,
		)
		self.translator = translator

		self._handlers: dict[ActionType, Callable[[Page, ActionPlan], Awaitable[HandlerResult]]] = {
			ActionType.NAVIGATE: self._handle_navigate,
			ActionType.CLICK: self._handle_click,
			ActionType.TYPE: self._handle_type,
			ActionType.WAIT: self._handle_wait,
			ActionType.SCROLL: self._handle_scroll,
			ActionType.EXTRACT: self._handle_extract,
			ActionType.ANALYZE: self._handle_analyze,
			ActionType.ERROR: self._handle_error,
		}

	@time_execution_async("execute_plan")
	async def execute(self, page: Page, plan: ActionPlan) -> ActionResult:
		"""Run one plan; raises ConductorError if the action fails"""
		start_time = asyncio.get_event_loop().time()

		if plan.description:
			await self.events.status(plan.description)
		for index, step in enumerate(plan.steps, start=1):
			await self.events.status(f"Step {index}: {step}")

		action_type = plan.action_type
		if action_type is None:
			warning = f"Unknown action '{plan.action}', nothing was executed"
			await self.events.status(warning, StatusType.WARNING)
			return ActionResult(
				success=False,
				action=plan.action,
				error=warning,
				warnings=[warning],
				execution_time_ms=(asyncio.get_event_loop().time() - start_time) * 1000,
			)

		try:
			data, warnings = await self._handlers[action_type](page, plan)
		except ConductorError as e:
			await self.events.status(f"{action_type.value.capitalize()} failed: {e.message}", StatusType.ERROR)
			raise

		return ActionResult(
			success=True,
			action=plan.action,
			data=data,
			warnings=warnings,
			execution_time_ms=(asyncio.get_event_loop().time() - start_time) * 1000,
		)

	async def guard(self, operation: str, awaitable: Awaitable[Any], timeout_ms: Optional[float] = None) -> Any:
		"""Translate Playwright errors into conductor errors"""
		try:
			return await awaitable
		except PlaywrightTimeout as e:
			raise TimeoutExceeded(operation, timeout_ms) from e
		except PlaywrightError as e:
			raise InternalExecutionError(f"{operation} failed: {e.message}", operation=operation) from e

	# --- plan handlers ---

	async def _handle_navigate(self, page: Page, plan: ActionPlan) -> HandlerResult:
		return await self.navigate(page, plan.target), []

	async def _handle_click(self, page: Page, plan: ActionPlan) -> HandlerResult:
		return await self.click(page, plan.target), []

	async def _handle_type(self, page: Page, plan: ActionPlan) -> HandlerResult:
		return await self.fill(page, plan.target, plan.value or ""), []

	async def _handle_wait(self, page: Page, plan: ActionPlan) -> HandlerResult:
		duration_ms, warning = parse_duration(plan.target or plan.value, self.config.default_wait_ms)
		warnings = []
		if warning:
			warnings.append(warning)
			await self.events.status(warning, StatusType.WARNING)

		await self.events.status(f"Waiting {duration_ms}ms")
		await self.guard("wait", page.wait_for_timeout(duration_ms))
		await self.events.status("Wait complete", StatusType.SUCCESS)
		return {"waited_ms": duration_ms}, warnings

	async def _handle_scroll(self, page: Page, plan: ActionPlan) -> HandlerResult:
		return await self.scroll(page, plan.target)

	async def _handle_extract(self, page: Page, plan: ActionPlan) -> HandlerResult:
		return await self.extract(page, plan.target), []

	async def _handle_analyze(self, page: Page, plan: ActionPlan) -> HandlerResult:
		analysis = await self.analyze(page, plan.target)
		warnings = [analysis.summary] if analysis.summary == ANALYSIS_FAILED_SUMMARY else []
		return analysis.model_dump(), warnings

	async def _handle_error(self, page: Page, plan: ActionPlan) -> HandlerResult:
		raise IntentTranslationFailure(plan.description or "Could not translate the command into an action")

	# --- page operations ---

	async def navigate(self, page: Page, url: str) -> dict[str, Any]:
		target_url = normalize_url(url)
		if not target_url:
			raise NavigationFailure(url, "empty URL")

		timeout_ms = self.config.navigation_timeout_ms
		await self.events.status(f"Navigating to {target_url}")
		try:
			await page.goto(target_url, wait_until="domcontentloaded", timeout=timeout_ms)
			await page.wait_for_load_state("networkidle", timeout=timeout_ms)
		except PlaywrightTimeout as e:
			raise NavigationTimeout(target_url, timeout_ms) from e
		except PlaywrightError as e:
			raise NavigationFailure(target_url, e.message) from e

		await self.events.status(f"Navigated to {page.url}", StatusType.SUCCESS)
		await self.publish_page_structure(page)
		return {"url": page.url}

	async def publish_page_structure(self, page: Page) -> Optional[dict[str, Any]]:
		"""Publish buttons, links, inputs, forms and headings; failures are reported, not raised"""
		try:
			structure = await page.evaluate(PAGE_STRUCTURE_JS)
		except PlaywrightError as e:
			logger.warning(f"Page structure analysis failed: {e}")
			await self.events.status(f"Structure analysis failed: {e.message}", StatusType.ERROR)
			return None

		await self.events.status(
			f"Found {len(structure.get('buttons', []))} buttons, "
			f"{len(structure.get('links', []))} links, {len(structure.get('inputs', []))} inputs",
			StatusType.SUCCESS,
		)
		await self.events.data(DataType.PAGE_STRUCTURE, structure)
		return structure

	async def resolve(self, page: Page, target: str, suggest: bool = False) -> ResolvedElement:
		"""Resolve target; with suggest=True a miss collects alternatives before raising"""
		await self.events.status(f'Looking for element: "{target}"')
		try:
			return await self.resolver.resolve(page, target)
		except ElementNotFound as e:
			if suggest:
				e.alternatives = await self.resolver.suggest_alternatives(page, target)
				if e.alternatives:
					await self.events.status(f"Found {len(e.alternatives)} similar elements")
					for alternative in e.alternatives:
						await self.events.status(
							f'Try "{alternative.selector}" ({alternative.tag}, matched by {alternative.matched_by.value}): '
							f"{alternative.text}"
						)
				else:
					await self.events.status(f'No similar elements found for "{target}"', StatusType.WARNING)
			raise

	async def click(self, page: Page, target: str) -> dict[str, Any]:
		resolved = await self.resolve(page, target, suggest=True)
		timeout_ms = self.config.action_timeout_ms
		await self.guard("click", resolved.locator.click(timeout=timeout_ms), timeout_ms)

		# A click may or may not start a navigation
		try:
			await page.wait_for_load_state("domcontentloaded", timeout=self.config.post_click_navigation_ms)
		except PlaywrightError as e:
			logger.debug(f"No navigation settled after click on '{target}': {e}")
		if self.config.post_click_pause_ms > 0:
			await self.guard("click", page.wait_for_timeout(self.config.post_click_pause_ms))

		await self.events.status(f'Clicked "{target}"', StatusType.SUCCESS)
		return {"target": target, "strategy": resolved.strategy.value, "selector": resolved.selector}

	async def fill(self, page: Page, target: str, value: str) -> dict[str, Any]:
		resolved = await self.resolve(page, target)
		timeout_ms = self.config.action_timeout_ms
		await self.guard("fill", resolved.locator.fill(value, timeout=timeout_ms), timeout_ms)
		await self.events.status(f'Typed into "{target}"', StatusType.SUCCESS)
		return {"target": target, "value": value, "strategy": resolved.strategy.value, "selector": resolved.selector}

	async def scroll(self, page: Page, direction: str) -> HandlerResult:
		token = (direction or "").strip().lower()
		delta = self.config.scroll_delta_px

		if token in SCROLL_VECTORS:
			x_sign, y_sign = SCROLL_VECTORS[token]
			await self.guard("scroll", page.evaluate(f"window.scrollBy({x_sign * delta}, {y_sign * delta})"))
			data = {"direction": token, "dx": x_sign * delta, "dy": y_sign * delta}
		elif token in SCROLL_EDGES:
			await self.guard("scroll", page.evaluate(SCROLL_EDGES[token]))
			data = {"direction": token}
		else:
			warning = f'Unknown scroll direction "{direction}", not scrolling'
			await self.events.status(warning, StatusType.WARNING)
			return {"direction": token, "scrolled": False}, [warning]

		await self.events.status(f"Scrolled {token}", StatusType.SUCCESS)
		data["scrolled"] = True
		return data, []

	async def extract(self, page: Page, selector: str) -> dict[str, Any]:
		items = await self.guard("extract", page.eval_on_selector_all(selector, EXTRACT_JS))
		items = items or []
		await self.events.status(f'Extracted {len(items)} elements matching "{selector}"', StatusType.SUCCESS)
		payload = {"selector": selector, "count": len(items), "items": items}
		await self.events.data(DataType.EXTRACTED_DATA, payload)
		return payload

	async def page_info(self, page: Page) -> PageInfo:
		raw = await self.guard("page_info", page.evaluate(PAGE_INFO_JS))
		return PageInfo.model_validate(raw or {})

	async def analyze(self, page: Page, target: str) -> PageAnalysis:
		"""Ask the translator about the page; any failure degrades to an empty analysis"""
		await self.events.status(f'Analyzing page for: "{target}"')
		info = await self.page_info(page)

		try:
			if self.translator is None:
				raise IntentTranslationFailure("No intent translator configured")
			analysis = await self.translator.analyze(info, target)
		except Exception as e:
			logger.warning(f"Page analysis failed for '{target}': {e}")
			await self.events.status(f"Deep analysis failed: {e}", StatusType.ERROR)
			return PageAnalysis(summary=ANALYSIS_FAILED_SUMMARY, suggestions=[])

		analysis.suggestions = analysis.suggestions[: self.config.max_analysis_suggestions]
		await self.events.status(f"Analysis complete: {analysis.summary}", StatusType.SUCCESS)
		for suggestion in analysis.suggestions:
			await self.events.status(f"Suggestion: {suggestion}")
		return analysis

	async def get_text(self, page: Page, selector: str) -> Optional[str]:
		locator = page.locator(selector)
		if await self.guard("get_text", locator.count()) == 0:
			return None
		timeout_ms = self.config.action_timeout_ms
		return await self.guard("get_text", locator.first.text_content(timeout=timeout_ms), timeout_ms)

	async def screenshot(self, page: Page, full_page: bool = False, path: Optional[str] = None) -> ScreenshotResult:
		image = await self.guard("screenshot", page.screenshot(full_page=full_page, path=path))
		return ScreenshotResult(data=base64.b64encode(image).decode("ascii"), size=len(image), path=path)

	async def evaluate(self, page: Page, script: str) -> Any:
		return await self.guard("evaluate", page.evaluate(script))

	async def wait_for(self, page: Page, selector: str, timeout_ms: Optional[int] = None) -> dict[str, Any]:
		timeout_ms = timeout_ms or self.config.selector_wait_timeout_ms
		await self.guard(
			f'wait_for_selector "{selector}"',
			page.wait_for_selector(selector, timeout=timeout_ms),
			timeout_ms,
		)
		return {"selector": selector, "found": True}
