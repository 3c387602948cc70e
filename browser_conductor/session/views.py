"""Session-level data models"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from browser_conductor.core.executor.views import ActionResult
from browser_conductor.core.intent.views import ActionPlan


class HistoryEntry(BaseModel):
	"""One processed command and the plan it was translated to"""
	command: str
	plan: ActionPlan
	# Selector the resolver actually used, when the action targeted an element
	selector: Optional[str] = None
	success: bool = True
	timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class WorkflowStep(BaseModel):
	model_config = ConfigDict(extra='forbid', populate_by_name=True, alias_generator=to_camel)

	name: Optional[str] = None
	command: Union[str, dict[str, Any]]
	page_id: Optional[str] = Field(default=None, description="Overrides the workflow page for this step")


class WorkflowStepResult(BaseModel):
	step: str
	result: Optional[ActionResult] = None
	error: Optional[dict[str, Any]] = None

	@property
	def ok(self) -> bool:
		return self.error is None and self.result is not None and self.result.success


class WorkflowResult(BaseModel):
	success: bool = True
	workflow: list[WorkflowStepResult] = Field(default_factory=list)


class InboundKind(str, Enum):
	USER_MESSAGE = "user_message"
	GENERATE_TEST = "generate_test"


class InboundMessage(BaseModel):
	"""A unit of work queued for a session's consumer task"""
	kind: InboundKind
	text: str = ""
