"""Outbound event models"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal, Union

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
	return datetime.now(timezone.utc)


class StatusType(str, Enum):
	INFO = "info"
	SUCCESS = "success"
	ERROR = "error"
	WARNING = "warning"


class DataType(str, Enum):
	PAGE_STRUCTURE = "page_structure"
	EXTRACTED_DATA = "extracted_data"


class StatusUpdate(BaseModel):
	"""Human-readable progress line"""
	event: Literal["status_update"] = "status_update"
	message: str
	type: StatusType = StatusType.INFO
	timestamp: datetime = Field(default_factory=_utcnow)


class DataUpdate(BaseModel):
	"""Structured payload produced by an action"""
	event: Literal["data_update"] = "data_update"
	type: DataType
	payload: Any = None
	timestamp: datetime = Field(default_factory=_utcnow)


class GeneratedScript(BaseModel):
	"""Replayable test module rendered from a session's history"""
	event: Literal["test_case"] = "test_case"
	script: str
	actions: int = 0
	timestamp: datetime = Field(default_factory=_utcnow)


SessionEvent = Union[StatusUpdate, DataUpdate, GeneratedScript]
