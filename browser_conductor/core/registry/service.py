"""Per-session ownership registry with cascading teardown"""

import logging
from typing import Iterator, Optional

from browser_conductor.core.registry.views import (
	BrowserHandle,
	CloseFailure,
	CloseReport,
	ContextHandle,
	Handle,
	PageHandle,
	ResourceKind,
)
from browser_conductor.exceptions import DuplicateId, NotFound, ParentNotFound

logger = logging.getLogger(__name__)


class ResourceRegistry:
	"""Indexes live browser/context/page handles for one session.

	Children are tracked in an explicit parent -> children index that is kept up
	to date on every register and removal, so a cascade touches only the
	descendants of the closed handle. Registries are never shared between
	sessions.
	"""

	def __init__(self):
		self._handles: dict[ResourceKind, dict[str, Handle]] = {kind: {} for kind in ResourceKind}
		# (kind, id) -> ordered child ids; dict keeps registration order
		self._children: dict[tuple[ResourceKind, str], dict[str, None]] = {}

	def __contains__(self, key: tuple[ResourceKind, str]) -> bool:
		kind, resource_id = key
		return resource_id in self._handles[ResourceKind(kind)]

	def __len__(self) -> int:
		return sum(len(handles) for handles in self._handles.values())

	def ensure_available(self, kind: ResourceKind, resource_id: str, parent_id: Optional[str] = None) -> None:
		"""Run the registration checks without storing anything"""
		kind = ResourceKind(kind)
		if resource_id in self._handles[kind]:
			raise DuplicateId(kind.value, resource_id)

		parent_kind = kind.parent_kind
		if parent_kind is not None and (parent_id is None or parent_id not in self._handles[parent_kind]):
			raise ParentNotFound(parent_kind.value, parent_id, kind.value)

	def register(self, handle: Handle) -> Handle:
		self.ensure_available(handle.kind, handle.id, handle.parent_id)

		self._handles[handle.kind][handle.id] = handle
		self._children[(handle.kind, handle.id)] = {}
		if handle.parent_id is not None:
			self._children[(handle.kind.parent_kind, handle.parent_id)][handle.id] = None

		logger.debug(f"Registered {handle.kind.value} {handle.id}")
		return handle

	def get(self, kind: ResourceKind, resource_id: str) -> Handle:
		kind = ResourceKind(kind)
		try:
			return self._handles[kind][resource_id]
		except KeyError:
			raise NotFound(kind.value, resource_id) from None

	def get_browser(self, browser_id: str) -> BrowserHandle:
		return self.get(ResourceKind.BROWSER, browser_id)

	def get_context(self, context_id: str) -> ContextHandle:
		return self.get(ResourceKind.CONTEXT, context_id)

	def get_page(self, page_id: str) -> PageHandle:
		return self.get(ResourceKind.PAGE, page_id)

	def handles(self, kind: ResourceKind) -> list[Handle]:
		return list(self._handles[ResourceKind(kind)].values())

	def children(self, kind: ResourceKind, resource_id: str) -> list[str]:
		kind = ResourceKind(kind)
		if resource_id not in self._handles[kind]:
			raise NotFound(kind.value, resource_id)
		return list(self._children[(kind, resource_id)])

	def _subtree(self, kind: ResourceKind, resource_id: str) -> Iterator[Handle]:
		"""Depth-first, children before their parent"""
		child_kind = ResourceKind.CONTEXT if kind is ResourceKind.BROWSER else ResourceKind.PAGE
		if kind is not ResourceKind.PAGE:
			for child_id in list(self._children[(kind, resource_id)]):
				yield from self._subtree(child_kind, child_id)
		yield self._handles[kind][resource_id]

	def _detach(self, handle: Handle) -> None:
		del self._handles[handle.kind][handle.id]
		self._children.pop((handle.kind, handle.id), None)
		if handle.parent_id is not None:
			siblings = self._children.get((handle.kind.parent_kind, handle.parent_id))
			if siblings is not None:
				siblings.pop(handle.id, None)

	async def close(self, kind: ResourceKind, resource_id: str) -> CloseReport:
		"""Close a handle and everything it owns.

		The subtree is removed from the index before any native close is awaited,
		so other tasks never observe a half-closed hierarchy. Native close errors
		are logged and reported but never stop the cascade.
		"""
		kind = ResourceKind(kind)
		if resource_id not in self._handles[kind]:
			raise NotFound(kind.value, resource_id)

		doomed = list(self._subtree(kind, resource_id))
		for handle in doomed:
			self._detach(handle)

		report = CloseReport()
		for handle in doomed:
			report.closed.append((handle.kind, handle.id))
			if handle.native is None:
				continue
			try:
				await handle.native.close()
			except Exception as e:
				logger.warning(f"Failed to close {handle.kind.value} {handle.id}: {e}")
				report.failures.append(CloseFailure(kind=handle.kind, id=handle.id, error=str(e)))
			finally:
				handle.native = None

		logger.info(
			f"Closed {kind.value} {resource_id} "
			f"({len(report.closed)} handles, {len(report.failures)} close errors)"
		)
		return report

	async def close_all(self) -> CloseReport:
		"""Cascade-close every browser still held"""
		report = CloseReport()
		for browser_id in list(self._handles[ResourceKind.BROWSER]):
			# A previous close may have raced this one
			if browser_id not in self._handles[ResourceKind.BROWSER]:
				continue
			partial = await self.close(ResourceKind.BROWSER, browser_id)
			report.closed.extend(partial.closed)
			report.failures.extend(partial.failures)
		return report
