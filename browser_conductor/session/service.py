"""Session manager: one registry, history log and event channel per connection"""

import asyncio
import logging
from typing import Any, Optional, Union

from playwright.async_api import Page
from pydantic import ValidationError
from uuid_extensions import uuid7str

from browser_conductor.config import ConductorConfig
from browser_conductor.core.driver.service import BrowserDriver
from browser_conductor.core.events.service import EventChannel
from browser_conductor.core.events.views import GeneratedScript, StatusType
from browser_conductor.core.executor.service import ActionExecutor
from browser_conductor.core.executor.views import ActionResult
from browser_conductor.core.intent.service import IntentTranslator, RegexIntentTranslator
from browser_conductor.core.intent.views import ActionPlan, coerce_action_plan, error_plan
from browser_conductor.core.registry.service import ResourceRegistry
from browser_conductor.core.registry.views import (
	BrowserHandle,
	CloseReport,
	ContextHandle,
	PageHandle,
	ResourceKind,
	Viewport,
)
from browser_conductor.exceptions import ConductorError, InvalidRequest
from browser_conductor.session.script import render_test_module
from browser_conductor.session.views import (
	HistoryEntry,
	InboundKind,
	InboundMessage,
	WorkflowResult,
	WorkflowStep,
	WorkflowStepResult,
)
from browser_conductor.utils import time_execution_async

logger = logging.getLogger(__name__)


class SessionManager:
	"""Owns every resource and all history for one client connection.

	Resources created through a session live in its private registry; nothing
	is shared with other sessions. `destroy()` cascade-closes whatever is left
	and may be called any number of times.
	"""

	def __init__(
		self,
		driver: BrowserDriver,
		translator: Optional[IntentTranslator] = None,
		config: Optional[ConductorConfig] = None,
		session_id: Optional[str] = None,
	):
		self.id = session_id or uuid7str()
		self.config = config or ConductorConfig()
		self.driver = driver
		self.translator = translator or RegexIntentTranslator()

		self.registry = ResourceRegistry()
		self.events = EventChannel(self.id)
		self.executor = ActionExecutor(self.events, translator=self.translator, config=self.config)
		self.history: list[HistoryEntry] = []
		self.inbox: asyncio.Queue[Optional[InboundMessage]] = asyncio.Queue()

		self.default_page_id: Optional[str] = None
		self._history_lock = asyncio.Lock()
		self._command_lock = asyncio.Lock()
		self._default_page_lock = asyncio.Lock()
		self._consumer: Optional[asyncio.Task] = None
		self._destroyed = False

	@property
	def destroyed(self) -> bool:
		return self._destroyed

	# --- resource management ---

	async def launch_browser(
		self,
		engine: Any = None,
		headless: Optional[bool] = None,
		browser_id: Optional[str] = None,
	) -> BrowserHandle:
		engine_kind = self.driver.parse_engine(engine or self.config.default_engine)
		headless = self.config.headless if headless is None else headless
		browser_id = browser_id or uuid7str()

		# Fail fast before paying for a browser process
		self.registry.ensure_available(ResourceKind.BROWSER, browser_id)
		native = await self.executor.guard("launch_browser", self.driver.launch(engine_kind, headless=headless))

		handle = BrowserHandle(id=browser_id, engine=engine_kind, headless=headless, native=native)
		try:
			self.registry.register(handle)
		except ConductorError:
			await native.close()
			raise

		await self.events.status(f"Browser {browser_id} launched ({engine_kind.value})", StatusType.SUCCESS)
		return handle

	async def create_context(
		self,
		browser_id: str,
		context_id: Optional[str] = None,
		viewport: Optional[Union[Viewport, dict]] = None,
		user_agent: Optional[str] = None,
	) -> ContextHandle:
		context_id = context_id or uuid7str()
		self.registry.ensure_available(ResourceKind.CONTEXT, context_id, browser_id)
		browser = self.registry.get_browser(browser_id)

		if isinstance(viewport, dict):
			viewport = Viewport.model_validate(viewport)
		options: dict[str, Any] = {}
		if viewport is not None:
			options["viewport"] = viewport.model_dump()
		if user_agent:
			options["user_agent"] = user_agent

		native = await self.executor.guard("create_context", browser.native.new_context(**options))
		handle = ContextHandle(
			id=context_id, browser_id=browser_id, viewport=viewport, user_agent=user_agent, native=native
		)
		try:
			self.registry.register(handle)
		except ConductorError:
			# The browser was closed or the id taken while we awaited
			await native.close()
			raise
		return handle

	async def create_page(self, context_id: str, page_id: Optional[str] = None) -> PageHandle:
		page_id = page_id or uuid7str()
		self.registry.ensure_available(ResourceKind.PAGE, page_id, context_id)
		context = self.registry.get_context(context_id)

		native = await self.executor.guard("create_page", context.native.new_page())
		handle = PageHandle(id=page_id, context_id=context_id, native=native)
		try:
			self.registry.register(handle)
		except ConductorError:
			await native.close()
			raise
		return handle

	async def close(self, kind: ResourceKind, resource_id: str) -> CloseReport:
		report = await self.registry.close(kind, resource_id)
		if self.default_page_id and (ResourceKind.PAGE, self.default_page_id) not in self.registry:
			self.default_page_id = None
		return report

	async def close_page(self, page_id: str) -> CloseReport:
		return await self.close(ResourceKind.PAGE, page_id)

	async def close_context(self, context_id: str) -> CloseReport:
		return await self.close(ResourceKind.CONTEXT, context_id)

	async def close_browser(self, browser_id: str) -> CloseReport:
		return await self.close(ResourceKind.BROWSER, browser_id)

	def get_page(self, page_id: str) -> Page:
		return self.registry.get_page(page_id).native

	async def ensure_default_page(self) -> str:
		"""Lazily launch a browser, context and page for socket-style sessions.

		If any step fails, whatever was created for this attempt is closed
		before the error propagates.
		"""
		async with self._default_page_lock:
			if self.default_page_id and (ResourceKind.PAGE, self.default_page_id) in self.registry:
				return self.default_page_id

			await self.events.status("Initializing browser...")
			browser: Optional[BrowserHandle] = None
			try:
				browser = await self.launch_browser()
				context = await self.create_context(browser.id, viewport=Viewport(width=1920, height=1080))
				page = await self.create_page(context.id)
			except ConductorError as e:
				await self.events.status(f"Failed to initialize browser: {e.message}", StatusType.ERROR)
				if browser is not None and (ResourceKind.BROWSER, browser.id) in self.registry:
					await self.registry.close(ResourceKind.BROWSER, browser.id)
				raise

			self.default_page_id = page.id
			await self.events.status("Browser ready", StatusType.SUCCESS)
			return page.id

	# --- command pipeline ---

	async def _plan_for(self, page: Page, command: Union[str, dict[str, Any]], context: Optional[dict[str, Any]]) -> ActionPlan:
		if isinstance(command, dict):
			try:
				return ActionPlan.model_validate(command)
			except ValidationError as e:
				raise InvalidRequest(f"Invalid structured command: {e.errors()[0].get('msg', e)}") from e

		context = context or {}
		url = context.get("url") or page.url
		try:
			title = context.get("title") or await page.title()
		except Exception as e:
			logger.debug(f"Could not read page title: {e}")
			title = ""

		try:
			raw = await self.translator.translate(command, url, title)
		except Exception as e:
			logger.warning(f"Intent translator raised for {command!r}: {e}")
			return error_plan(f"Failed to understand the command: {e}", command)
		return coerce_action_plan(raw, command)

	@time_execution_async("execute_command")
	async def execute_command(
		self,
		page_id: str,
		command: Union[str, dict[str, Any]],
		context: Optional[dict[str, Any]] = None,
	) -> ActionResult:
		"""Translate and run one command.

		Unknown page ids raise NotFound; a failing action is reported in the
		returned ActionResult.
		"""
		async with self._command_lock:
			page = self.get_page(page_id)
			plan = await self._plan_for(page, command, context)

			try:
				result = await self.executor.execute(page, plan)
			except ConductorError as e:
				result = ActionResult.failure(plan.action, e)

			selector = result.data.get("selector") if isinstance(result.data, dict) else None
			command_text = command if isinstance(command, str) else plan.description or plan.action
			async with self._history_lock:
				self.history.append(
					HistoryEntry(command=command_text, plan=plan, selector=selector, success=result.success)
				)
			return result

	async def execute_workflow(self, page_id: str, steps: list[Union[WorkflowStep, dict[str, Any]]]) -> WorkflowResult:
		"""Run steps in order; each step's failure is recorded and the rest still run"""
		result = WorkflowResult()
		for index, raw_step in enumerate(steps, start=1):
			step = raw_step if isinstance(raw_step, WorkflowStep) else WorkflowStep.model_validate(raw_step)
			name = step.name or f"step-{index}"
			try:
				action_result = await self.execute_command(step.page_id or page_id, step.command)
				result.workflow.append(WorkflowStepResult(step=name, result=action_result))
			except ConductorError as e:
				logger.info(f"Workflow step {name} failed: {e.message}")
				result.workflow.append(WorkflowStepResult(step=name, error=e.to_dict()))
		return result

	async def generate_script(self) -> Optional[GeneratedScript]:
		async with self._history_lock:
			history = list(self.history)

		if not history:
			await self.events.status("No actions recorded for this session to generate a test.")
			return None

		await self.events.status("Generating Playwright test...")
		script = render_test_module(history, scroll_delta=self.config.scroll_delta_px)
		event = await self.events.script(script, actions=len(history))
		await self.events.status("Playwright test generated", StatusType.SUCCESS)
		return event

	# --- socket-style message loop ---

	async def submit(self, kind: Union[InboundKind, str], text: str = "") -> None:
		await self.inbox.put(InboundMessage(kind=InboundKind(kind), text=text))

	def start(self) -> asyncio.Task:
		if self._consumer is None or self._consumer.done():
			self._consumer = asyncio.create_task(self.run(), name=f"session-{self.id}")
		return self._consumer

	async def run(self) -> None:
		"""Consume the inbox until a None sentinel arrives"""
		while True:
			message = await self.inbox.get()
			try:
				if message is None:
					return
				await self.handle_message(message)
			except ConductorError as e:
				await self.events.status(f"Error processing message: {e.message}", StatusType.ERROR)
			except Exception as e:
				logger.exception(f"[{self.id}] Unexpected error processing message: {e}")
				await self.events.status(f"Error processing message: {e}", StatusType.ERROR)
			finally:
				self.inbox.task_done()

	async def handle_message(self, message: InboundMessage) -> Optional[Union[ActionResult, GeneratedScript]]:
		if message.kind is InboundKind.GENERATE_TEST:
			return await self.generate_script()

		page_id = await self.ensure_default_page()
		await self.events.status(f'Processing: "{message.text}"')
		result = await self.execute_command(page_id, message.text)
		if result.success:
			await self.events.status(f"Done: {result.action}", StatusType.SUCCESS)
		else:
			await self.events.status(f"Command failed: {result.error}", StatusType.ERROR)
		return result

	async def destroy(self) -> CloseReport:
		"""Stop the consumer and close every resource still held"""
		if self._destroyed:
			return CloseReport()
		self._destroyed = True

		if self._consumer is not None and not self._consumer.done():
			self._consumer.cancel()
			try:
				await self._consumer
			except asyncio.CancelledError:
				pass
			except Exception as e:
				logger.warning(f"[{self.id}] Consumer task ended with error: {e}")

		report = await self.registry.close_all()
		self.default_page_id = None
		logger.info(f"Session {self.id} destroyed ({len(report.closed)} handles closed)")
		return report
