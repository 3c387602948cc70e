"""Action plan data models"""

import logging
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)


class ActionType(str, Enum):
	"""Operations an action plan can request"""
	NAVIGATE = "navigate"
	CLICK = "click"
	TYPE = "type"
	WAIT = "wait"
	SCROLL = "scroll"
	EXTRACT = "extract"
	ANALYZE = "analyze"
	ERROR = "error"


class ActionPlan(BaseModel):
	"""One structured action, as produced by an intent translator.

	`action` stays a plain string so that plans built by callers can carry
	tokens the executor does not know; those are reported as warnings.
	"""
	model_config = ConfigDict(extra='ignore')

	action: str
	target: str = ""
	value: Optional[str] = None
	description: str = ""
	steps: list[str] = Field(default_factory=list)

	@field_validator("action", mode="before")
	@classmethod
	def _normalize_action(cls, value: Any) -> Any:
		if isinstance(value, str):
			return value.strip().lower()
		return value

	@field_validator("target", "description", mode="before")
	@classmethod
	def _none_to_empty(cls, value: Any) -> Any:
		return "" if value is None else value

	@field_validator("value", mode="before")
	@classmethod
	def _stringify_value(cls, value: Any) -> Any:
		if value is None or isinstance(value, str):
			return value
		if isinstance(value, (int, float)):
			return str(value)
		return value

	@property
	def action_type(self) -> Optional[ActionType]:
		try:
			return ActionType(self.action)
		except ValueError:
			return None

	@property
	def is_error(self) -> bool:
		return self.action == ActionType.ERROR.value


def error_plan(reason: str, command: str = "") -> ActionPlan:
	"""The sentinel plan for commands that could not be translated"""
	steps = [f"Could not build an action plan for: {command}"] if command else []
	return ActionPlan(action=ActionType.ERROR.value, target="", value="", description=reason, steps=steps)


def coerce_action_plan(raw: Any, command: str = "") -> ActionPlan:
	"""Validate translator output; anything off-shape becomes the error sentinel"""
	if isinstance(raw, ActionPlan):
		data: Any = raw.model_dump()
	else:
		data = raw

	if not isinstance(data, dict):
		return error_plan(f"Translator returned {type(raw).__name__}, expected an object", command)

	try:
		plan = ActionPlan.model_validate(data)
	except ValidationError as e:
		logger.warning(f"Discarding malformed action plan: {e.errors()[0].get('msg', e)}")
		return error_plan("Translator returned a malformed action plan", command)

	if plan.action_type is None:
		return error_plan(f"Translator returned unsupported action '{plan.action}'", command)
	return plan


class PageInfo(BaseModel):
	"""Compact page summary handed to translators for analysis"""
	model_config = ConfigDict(extra='ignore', populate_by_name=True)

	title: str = ""
	url: str = ""
	headings: list[str] = Field(default_factory=list)
	buttons: list[str] = Field(default_factory=list)
	links: list[str] = Field(default_factory=list)
	inputs: list[str] = Field(default_factory=list)
	body_snippet: str = Field(default="", alias="bodySnippet")

	def truncated(self) -> "PageInfo":
		return PageInfo(
			title=self.title,
			url=self.url,
			headings=self.headings[:3],
			buttons=self.buttons[:5],
			links=self.links[:5],
			inputs=self.inputs[:5],
			body_snippet=self.body_snippet[:200],
		)


class PageAnalysis(BaseModel):
	"""Short summary of a page relative to a target, with suggestions"""
	summary: str
	suggestions: list[str] = Field(default_factory=list)
