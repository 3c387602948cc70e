"""Resolver data models"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SelectorStrategy(str, Enum):
	"""Candidate generators, declared in precedence order"""
	EXACT_SELECTOR = "exact_selector"
	TEXT_MATCH = "text_match"
	ARIA_LABEL = "aria_label"
	TITLE = "title"
	PLACEHOLDER = "placeholder"
	BUTTON_WITH_TEXT = "button_with_text"
	LINK_WITH_TEXT = "link_with_text"
	ANY_WITH_TEXT = "any_with_text"


class MatchField(str, Enum):
	"""Element fields searched for alternatives, in attribution order"""
	TEXT = "text"
	ARIA_LABEL = "aria-label"
	TITLE = "title"
	PLACEHOLDER = "placeholder"
	NAME = "name"
	ID = "id"
	CLASS = "class"


class AlternativeCandidate(BaseModel):
	"""An element that loosely matches a description that failed to resolve"""
	model_config = ConfigDict(extra='ignore')

	tag: str
	text: str = ""
	selector: str
	matched_by: MatchField


class ResolvedElement(BaseModel):
	"""A visible element and the strategy that found it"""
	model_config = ConfigDict(arbitrary_types_allowed=True)

	locator: Any = Field(exclude=True, repr=False)
	strategy: SelectorStrategy
	selector: str
