"""Error kinds raised by the registry, resolver, executor and gateway"""

from typing import Any, Optional


class ConductorError(Exception):
	"""Base class for every error the conductor reports to callers"""

	kind: str = "InternalExecutionError"

	def __init__(self, message: str, **details: Any):
		super().__init__(message)
		self.message = message
		self.details = details

	def to_dict(self) -> dict[str, Any]:
		data: dict[str, Any] = {"kind": self.kind, "message": self.message}
		data.update({k: v for k, v in self.details.items() if v is not None})
		return data


class DuplicateId(ConductorError):
	kind = "DuplicateId"

	def __init__(self, resource_kind: str, resource_id: str):
		super().__init__(
			f"{resource_kind.capitalize()} with ID {resource_id} already exists",
			resource_kind=resource_kind,
			resource_id=resource_id,
		)


class NotFound(ConductorError):
	kind = "NotFound"

	def __init__(self, resource_kind: str, resource_id: str):
		super().__init__(
			f"{resource_kind.capitalize()} with ID {resource_id} not found",
			resource_kind=resource_kind,
			resource_id=resource_id,
		)


class ParentNotFound(ConductorError):
	kind = "ParentNotFound"

	def __init__(self, parent_kind: str, parent_id: Optional[str], child_kind: str):
		super().__init__(
			f"Cannot create {child_kind}: {parent_kind} with ID {parent_id} not found",
			parent_kind=parent_kind,
			parent_id=parent_id,
		)


class UnsupportedEngineKind(ConductorError):
	kind = "UnsupportedEngineKind"

	def __init__(self, engine: Any):
		super().__init__(f"Unsupported browser type: {engine}", engine=str(engine))


class ElementNotFound(ConductorError):
	"""Raised when no selector strategy yields a visible element"""

	kind = "ElementNotFound"

	def __init__(self, target: str, alternatives: Optional[list] = None):
		super().__init__(f'Element "{target}" not found', target=target)
		self.target = target
		self.alternatives = alternatives or []

	def to_dict(self) -> dict[str, Any]:
		data = super().to_dict()
		data["alternatives"] = [
			a.model_dump() if hasattr(a, "model_dump") else a for a in self.alternatives
		]
		return data


class NavigationFailure(ConductorError):
	kind = "NavigationFailure"

	def __init__(self, url: str, reason: str):
		super().__init__(f'Navigation failed for "{url}": {reason}', url=url)
		self.url = url


class TimeoutExceeded(ConductorError):
	kind = "TimeoutExceeded"

	def __init__(self, operation: str, timeout_ms: Optional[float] = None):
		message = f"{operation} timed out"
		if timeout_ms is not None:
			message += f" after {int(timeout_ms)}ms"
		super().__init__(message, operation=operation, timeout_ms=timeout_ms)


class NavigationTimeout(NavigationFailure, TimeoutExceeded):
	"""A navigation that did not reach its load milestones in time"""

	kind = "NavigationFailure"

	def __init__(self, url: str, timeout_ms: float):
		ConductorError.__init__(
			self,
			f'Navigation to "{url}" timed out after {int(timeout_ms)}ms',
			url=url,
			timeout_ms=timeout_ms,
		)
		self.url = url


class ProtocolParseError(ConductorError):
	kind = "ProtocolParseError"


class InvalidRequest(ConductorError):
	"""Tool or route arguments that fail validation"""

	kind = "InvalidRequest"


class ProtocolInvalidRequest(ConductorError):
	"""A frame that parses but is not a JSON-RPC request object"""

	kind = "ProtocolInvalidRequest"


class ProtocolInvalidParams(ConductorError):
	kind = "ProtocolInvalidParams"


class ProtocolMethodNotFound(ConductorError):
	kind = "ProtocolMethodNotFound"

	def __init__(self, method: str):
		super().__init__(f"Method not found: {method}", method=method)


class IntentTranslationFailure(ConductorError):
	kind = "IntentTranslationFailure"


class InternalExecutionError(ConductorError):
	kind = "InternalExecutionError"
