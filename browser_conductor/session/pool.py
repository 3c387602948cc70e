"""Process-wide index of live sessions"""

import asyncio
import logging
import signal
from typing import Callable, Optional

from browser_conductor.config import ConductorConfig
from browser_conductor.core.driver.service import BrowserDriver
from browser_conductor.core.intent.service import IntentTranslator
from browser_conductor.exceptions import DuplicateId, NotFound
from browser_conductor.session.service import SessionManager

logger = logging.getLogger(__name__)


class SessionPool:
	"""Tracks sessions, never their resources; backs process shutdown"""

	def __init__(
		self,
		driver: Optional[BrowserDriver] = None,
		translator: Optional[IntentTranslator] = None,
		config: Optional[ConductorConfig] = None,
	):
		self.config = config or ConductorConfig()
		self.driver = driver or BrowserDriver(launch_args=self.config.launch_args)
		self.translator = translator
		self._sessions: dict[str, SessionManager] = {}
		# ids addressed by callers (REST headers); all others belong to one connection
		self._addressed: set[str] = set()
		self._closing = False

	def __contains__(self, session_id: str) -> bool:
		return session_id in self._sessions

	def __len__(self) -> int:
		return len(self._sessions)

	def __iter__(self):
		return iter(list(self._sessions))

	def create(self, session_id: Optional[str] = None) -> SessionManager:
		if session_id is not None and session_id in self._sessions:
			raise DuplicateId("session", session_id)
		session = SessionManager(self.driver, self.translator, self.config, session_id=session_id)
		self._sessions[session.id] = session
		logger.info(f"Session {session.id} created ({len(self._sessions)} active)")
		return session

	def get(self, session_id: str) -> SessionManager:
		try:
			return self._sessions[session_id]
		except KeyError:
			raise NotFound("session", session_id) from None

	def get_or_create(self, session_id: str) -> SessionManager:
		"""Resolve a caller-addressed session, creating it on first use.

		Sessions owned by a connection are never reachable by id here.
		"""
		if session_id in self._sessions:
			if session_id not in self._addressed:
				raise NotFound("session", session_id)
			return self._sessions[session_id]
		session = self.create(session_id)
		self._addressed.add(session.id)
		return session

	async def destroy(self, session_id: str, addressed_only: bool = False) -> bool:
		"""Destroy and forget a session; unknown ids are ignored.

		With `addressed_only`, connection-owned sessions are left alone.
		"""
		if addressed_only and session_id not in self._addressed:
			return False
		self._addressed.discard(session_id)
		session = self._sessions.pop(session_id, None)
		if session is None:
			return False
		try:
			await session.destroy()
		except Exception as e:
			logger.error(f"Error destroying session {session_id}: {e}")
		return True

	async def shutdown(self) -> None:
		"""Destroy every live session, then stop the driver"""
		if self._closing:
			return
		self._closing = True
		logger.info(f"Shutting down {len(self._sessions)} sessions")

		await asyncio.gather(*(self.destroy(session_id) for session_id in self))
		try:
			await self.driver.stop()
		except Exception as e:
			logger.error(f"Error stopping browser driver: {e}")
		self._closing = False


def install_signal_handlers(pool: SessionPool, on_done: Callable[[], None]) -> None:
	"""On SIGINT/SIGTERM destroy every session, then call on_done"""
	loop = asyncio.get_running_loop()
	tasks: set[asyncio.Task] = set()

	async def _shutdown(sig: signal.Signals) -> None:
		logger.info(f"Received {sig.name}, cleaning up sessions")
		await pool.shutdown()
		on_done()

	def _on_signal(sig: signal.Signals) -> None:
		task = loop.create_task(_shutdown(sig))
		tasks.add(task)
		task.add_done_callback(tasks.discard)

	for sig in (signal.SIGINT, signal.SIGTERM):
		try:
			loop.add_signal_handler(sig, _on_signal, sig)
		except NotImplementedError:
			# Windows event loops have no add_signal_handler
			pass
