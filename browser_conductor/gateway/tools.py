"""Tool definitions shared by every transport"""

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from browser_conductor.core.registry.views import Viewport
from browser_conductor.session.views import WorkflowStep


class ToolArgs(BaseModel):
	"""Arguments accept camelCase and snake_case names"""
	model_config = ConfigDict(extra='forbid', populate_by_name=True, alias_generator=to_camel)


class LaunchBrowserArgs(ToolArgs):
	browser_type: str = Field(default="chromium", description="chromium, firefox or webkit")
	headless: Optional[bool] = None
	browser_id: Optional[str] = Field(default=None, description="Defaults to a generated id")


class CreateContextArgs(ToolArgs):
	browser_id: str
	context_id: Optional[str] = None
	viewport: Optional[Viewport] = None
	user_agent: Optional[str] = None


class CreatePageArgs(ToolArgs):
	context_id: str
	page_id: Optional[str] = None


class PageArgs(ToolArgs):
	page_id: str


class NavigateArgs(PageArgs):
	url: str


class SelectorArgs(PageArgs):
	selector: str = Field(description="CSS selector or a description of the element")


class FillArgs(SelectorArgs):
	value: str


class ScreenshotArgs(PageArgs):
	full_page: bool = False
	path: Optional[str] = None


class EvaluateArgs(PageArgs):
	script: str


class WaitForSelectorArgs(SelectorArgs):
	timeout: Optional[int] = Field(default=None, gt=0, description="Milliseconds, defaults to 30000")


class ClosePageArgs(PageArgs):
	pass


class CloseContextArgs(ToolArgs):
	context_id: str


class CloseBrowserArgs(ToolArgs):
	browser_id: str


class ExecuteCommandArgs(PageArgs):
	command: Union[str, dict[str, Any]] = Field(description="Free text or a structured action plan")
	context: Optional[dict[str, Any]] = None


class ExecuteWorkflowArgs(PageArgs):
	steps: list[WorkflowStep]


class GenerateScriptArgs(ToolArgs):
	pass


class ToolSpec(BaseModel):
	model_config = ConfigDict(arbitrary_types_allowed=True)

	name: str
	description: str
	args_model: type[ToolArgs]

	def describe(self) -> dict[str, Any]:
		return {
			"name": self.name,
			"description": self.description,
			"inputSchema": self.args_model.model_json_schema(by_alias=True),
		}


TOOLS: list[ToolSpec] = [
	ToolSpec(name="launch_browser", description="Launch a new browser instance", args_model=LaunchBrowserArgs),
	ToolSpec(name="create_context", description="Create a new browser context", args_model=CreateContextArgs),
	ToolSpec(name="create_page", description="Create a new page in a context", args_model=CreatePageArgs),
	ToolSpec(name="navigate", description="Navigate a page to a URL", args_model=NavigateArgs),
	ToolSpec(name="click", description="Click an element", args_model=SelectorArgs),
	ToolSpec(name="fill", description="Fill an input field", args_model=FillArgs),
	ToolSpec(name="get_text", description="Get the text content of an element", args_model=SelectorArgs),
	ToolSpec(name="screenshot", description="Take a screenshot of a page", args_model=ScreenshotArgs),
	ToolSpec(name="evaluate", description="Evaluate JavaScript in a page", args_model=EvaluateArgs),
	ToolSpec(name="wait_for_selector", description="Wait for a selector to appear", args_model=WaitForSelectorArgs),
	ToolSpec(name="page_info", description="Summarize the headings, buttons, links and inputs of a page", args_model=PageArgs),
	ToolSpec(name="close_page", description="Close a page", args_model=ClosePageArgs),
	ToolSpec(name="close_context", description="Close a context and its pages", args_model=CloseContextArgs),
	ToolSpec(name="close_browser", description="Close a browser and everything it owns", args_model=CloseBrowserArgs),
	ToolSpec(
		name="execute_command",
		description="Translate a natural-language or structured command and run it on a page",
		args_model=ExecuteCommandArgs,
	),
	ToolSpec(
		name="execute_workflow",
		description="Run named commands in order, recording each step's outcome",
		args_model=ExecuteWorkflowArgs,
	),
	ToolSpec(
		name="generate_script",
		description="Render this session's history as a replayable Playwright test",
		args_model=GenerateScriptArgs,
	),
]

TOOLS_BY_NAME: dict[str, ToolSpec] = {tool.name: tool for tool in TOOLS}
