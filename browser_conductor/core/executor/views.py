"""Executor data models and argument parsing"""

import re
from typing import Any, Optional

from pydantic import BaseModel, Field

from browser_conductor.core.resolver.views import AlternativeCandidate
from browser_conductor.exceptions import ConductorError, ElementNotFound

_SCHEME_RE = re.compile(r'^[a-zA-Z][a-zA-Z0-9+.\-]*://')
_DURATION_RE = re.compile(r'(?P<sign>-)?(?P<amount>\d+(?:\.\d+)?)\s*(?P<unit>[a-z]+)?', re.IGNORECASE)
_MS_UNITS = {"ms", "millis", "millisecond", "milliseconds"}
_SECOND_UNITS = {"s", "sec", "secs", "second", "seconds"}

# direction -> (dx, dy) multipliers of the scroll delta
SCROLL_VECTORS: dict[str, tuple[int, int]] = {
	"down": (0, 1),
	"up": (0, -1),
	"left": (-1, 0),
	"right": (1, 0),
}
SCROLL_EDGES: dict[str, str] = {
	"top": "window.scrollTo(0, 0)",
	"home": "window.scrollTo(0, 0)",
	"bottom": "window.scrollTo(0, document.body.scrollHeight)",
	"end": "window.scrollTo(0, document.body.scrollHeight)",
}


class ActionResult(BaseModel):
	"""Outcome of one executed action plan"""
	success: bool
	action: str
	data: Any = None
	error: Optional[str] = None
	error_kind: Optional[str] = None
	warnings: list[str] = Field(default_factory=list)
	alternatives: list[AlternativeCandidate] = Field(default_factory=list)
	execution_time_ms: float = 0

	@classmethod
	def failure(cls, action: str, error: ConductorError, execution_time_ms: float = 0) -> "ActionResult":
		alternatives = error.alternatives if isinstance(error, ElementNotFound) else []
		return cls(
			success=False,
			action=action,
			error=error.message,
			error_kind=error.kind,
			alternatives=alternatives,
			execution_time_ms=execution_time_ms,
		)


class ScreenshotResult(BaseModel):
	data: str = Field(description="Base64-encoded PNG")
	size: int = Field(description="Size of the decoded image in bytes")
	path: Optional[str] = None


def normalize_url(url: str) -> str:
	"""Prefix https:// unless the URL already carries a scheme"""
	url = url.strip()
	if not url or _SCHEME_RE.match(url) or url.startswith(("about:", "data:", "javascript:")):
		return url
	return f"https://{url}"


def parse_duration(text: Any, default_ms: int = 2000) -> tuple[int, Optional[str]]:
	"""Parse a wait duration into milliseconds.

	A bare number is milliseconds; a seconds unit multiplies by 1000. Anything
	unparseable, non-positive or in another unit falls back to `default_ms`
	with a warning.
	"""
	raw = "" if text is None else str(text)
	match = _DURATION_RE.search(raw)
	if match and not match.group("sign"):
		amount = float(match.group("amount"))
		unit = (match.group("unit") or "ms").lower()
		if unit in _SECOND_UNITS:
			amount *= 1000
		elif unit not in _MS_UNITS:
			amount = 0
		duration_ms = int(round(amount))
		if duration_ms > 0:
			return duration_ms, None

	return default_ms, f'Invalid wait duration "{raw}", defaulting to {default_ms}ms'
