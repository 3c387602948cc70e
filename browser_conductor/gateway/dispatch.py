"""Tool dispatch table shared by the JSON-RPC, REST and WebSocket transports"""

import logging
from typing import Any, Awaitable, Callable

from pydantic import ValidationError

from browser_conductor.core.registry.views import CloseReport
from browser_conductor.exceptions import InvalidRequest
from browser_conductor.gateway import tools as t
from browser_conductor.session.service import SessionManager

logger = logging.getLogger(__name__)


def _close_payload(report: CloseReport) -> dict[str, Any]:
	return {
		"closed": [{"kind": kind.value, "id": resource_id} for kind, resource_id in report.closed],
		"failures": [failure.model_dump(mode="json") for failure in report.failures],
	}


class ToolDispatcher:
	"""Validates tool arguments and routes them to one session.

	Holds no resolution or execution logic of its own.
	"""

	def __init__(self, session: SessionManager):
		self.session = session
		self._handlers: dict[str, Callable[[Any], Awaitable[Any]]] = {
			"launch_browser": self._launch_browser,
			"create_context": self._create_context,
			"create_page": self._create_page,
			"navigate": self._navigate,
			"click": self._click,
			"fill": self._fill,
			"get_text": self._get_text,
			"screenshot": self._screenshot,
			"evaluate": self._evaluate,
			"wait_for_selector": self._wait_for_selector,
			"page_info": self._page_info,
			"close_page": self._close_page,
			"close_context": self._close_context,
			"close_browser": self._close_browser,
			"execute_command": self._execute_command,
			"execute_workflow": self._execute_workflow,
			"generate_script": self._generate_script,
		}

	@staticmethod
	def list_tools() -> list[dict[str, Any]]:
		return [tool.describe() for tool in t.TOOLS]

	async def call(self, name: str, arguments: Any = None) -> Any:
		spec = t.TOOLS_BY_NAME.get(name)
		if spec is None or name not in self._handlers:
			raise InvalidRequest(f"Unknown tool: {name}", tool=name)

		try:
			args = spec.args_model.model_validate(arguments or {})
		except ValidationError as e:
			problems = "; ".join(
				f"{'.'.join(str(part) for part in error['loc']) or 'arguments'}: {error['msg']}" for error in e.errors()
			)
			raise InvalidRequest(f"Invalid arguments for {name}: {problems}") from e

		return await self.invoke(name, args)

	async def invoke(self, name: str, args: t.ToolArgs) -> Any:
		"""Run a tool with already-validated arguments"""
		if name not in self._handlers:
			raise InvalidRequest(f"Unknown tool: {name}", tool=name)
		logger.debug(f"[{self.session.id}] Tool call: {name}")
		return await self._handlers[name](args)

	async def _launch_browser(self, args: t.LaunchBrowserArgs) -> dict[str, Any]:
		handle = await self.session.launch_browser(args.browser_type, args.headless, args.browser_id)
		return {"browserId": handle.id, "engine": handle.engine.value, "headless": handle.headless}

	async def _create_context(self, args: t.CreateContextArgs) -> dict[str, Any]:
		handle = await self.session.create_context(args.browser_id, args.context_id, args.viewport, args.user_agent)
		return {"contextId": handle.id, "browserId": handle.browser_id}

	async def _create_page(self, args: t.CreatePageArgs) -> dict[str, Any]:
		handle = await self.session.create_page(args.context_id, args.page_id)
		return {"pageId": handle.id, "contextId": handle.context_id}

	async def _navigate(self, args: t.NavigateArgs) -> dict[str, Any]:
		page = self.session.get_page(args.page_id)
		return await self.session.executor.navigate(page, args.url)

	async def _click(self, args: t.SelectorArgs) -> dict[str, Any]:
		page = self.session.get_page(args.page_id)
		return await self.session.executor.click(page, args.selector)

	async def _fill(self, args: t.FillArgs) -> dict[str, Any]:
		page = self.session.get_page(args.page_id)
		return await self.session.executor.fill(page, args.selector, args.value)

	async def _get_text(self, args: t.SelectorArgs) -> dict[str, Any]:
		page = self.session.get_page(args.page_id)
		return {"text": await self.session.executor.get_text(page, args.selector)}

	async def _screenshot(self, args: t.ScreenshotArgs) -> dict[str, Any]:
		page = self.session.get_page(args.page_id)
		result = await self.session.executor.screenshot(page, args.full_page, args.path)
		return result.model_dump()

	async def _evaluate(self, args: t.EvaluateArgs) -> dict[str, Any]:
		page = self.session.get_page(args.page_id)
		return {"result": await self.session.executor.evaluate(page, args.script)}

	async def _wait_for_selector(self, args: t.WaitForSelectorArgs) -> dict[str, Any]:
		page = self.session.get_page(args.page_id)
		return await self.session.executor.wait_for(page, args.selector, args.timeout)

	async def _page_info(self, args: t.PageArgs) -> dict[str, Any]:
		page = self.session.get_page(args.page_id)
		info = await self.session.executor.page_info(page)
		return info.model_dump()

	async def _close_page(self, args: t.ClosePageArgs) -> dict[str, Any]:
		return _close_payload(await self.session.close_page(args.page_id))

	async def _close_context(self, args: t.CloseContextArgs) -> dict[str, Any]:
		return _close_payload(await self.session.close_context(args.context_id))

	async def _close_browser(self, args: t.CloseBrowserArgs) -> dict[str, Any]:
		return _close_payload(await self.session.close_browser(args.browser_id))

	async def _execute_command(self, args: t.ExecuteCommandArgs) -> dict[str, Any]:
		result = await self.session.execute_command(args.page_id, args.command, args.context)
		return result.model_dump(mode="json")

	async def _execute_workflow(self, args: t.ExecuteWorkflowArgs) -> dict[str, Any]:
		result = await self.session.execute_workflow(args.page_id, args.steps)
		return result.model_dump(mode="json")

	async def _generate_script(self, args: t.GenerateScriptArgs) -> dict[str, Any]:
		event = await self.session.generate_script()
		if event is None:
			return {"script": None, "actions": 0}
		return {"script": event.script, "actions": event.actions}
