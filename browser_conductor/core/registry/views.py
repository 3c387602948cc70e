"""Handle models for the browser -> context -> page hierarchy"""

from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from uuid_extensions import uuid7str


class EngineKind(str, Enum):
	"""Browser engines the driver can launch"""
	CHROMIUM = "chromium"
	FIREFOX = "firefox"
	WEBKIT = "webkit"


class ResourceKind(str, Enum):
	"""Levels of the ownership hierarchy"""
	BROWSER = "browser"
	CONTEXT = "context"
	PAGE = "page"

	@property
	def parent_kind(self) -> Optional["ResourceKind"]:
		if self is ResourceKind.CONTEXT:
			return ResourceKind.BROWSER
		if self is ResourceKind.PAGE:
			return ResourceKind.CONTEXT
		return None


class Viewport(BaseModel):
	model_config = ConfigDict(extra='forbid')

	width: int = Field(gt=0)
	height: int = Field(gt=0)


class _Handle(BaseModel):
	model_config = ConfigDict(arbitrary_types_allowed=True)

	id: str = Field(default_factory=uuid7str)
	native: Any = Field(default=None, exclude=True, repr=False)

	kind: ResourceKind

	@property
	def parent_id(self) -> Optional[str]:
		return None


class BrowserHandle(_Handle):
	"""Root of a hierarchy; owns contexts"""
	kind: ResourceKind = Field(default=ResourceKind.BROWSER, frozen=True)
	engine: EngineKind = EngineKind.CHROMIUM
	headless: bool = True


class ContextHandle(_Handle):
	"""Isolated browser context owned by exactly one browser"""
	kind: ResourceKind = Field(default=ResourceKind.CONTEXT, frozen=True)
	browser_id: str
	viewport: Optional[Viewport] = None
	user_agent: Optional[str] = None

	@property
	def parent_id(self) -> Optional[str]:
		return self.browser_id


class PageHandle(_Handle):
	"""Single tab owned by exactly one context"""
	kind: ResourceKind = Field(default=ResourceKind.PAGE, frozen=True)
	context_id: str

	@property
	def parent_id(self) -> Optional[str]:
		return self.context_id


Handle = Union[BrowserHandle, ContextHandle, PageHandle]


class CloseFailure(BaseModel):
	"""A native close call that raised during a cascade"""
	kind: ResourceKind
	id: str
	error: str


class CloseReport(BaseModel):
	"""Outcome of one cascade close, in removal order"""
	closed: list[tuple[ResourceKind, str]] = Field(default_factory=list)
	failures: list[CloseFailure] = Field(default_factory=list)

	@property
	def ok(self) -> bool:
		return not self.failures

	def ids(self, kind: ResourceKind) -> list[str]:
		return [resource_id for closed_kind, resource_id in self.closed if closed_kind == kind]
