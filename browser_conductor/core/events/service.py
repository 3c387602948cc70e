"""Per-session event channel"""

import asyncio
import logging
from collections import deque
from typing import Any

from browser_conductor.core.events.views import (
	DataType,
	DataUpdate,
	GeneratedScript,
	SessionEvent,
	StatusType,
	StatusUpdate,
)

logger = logging.getLogger(__name__)

_STATUS_LOG_LEVELS = {
	StatusType.INFO: logging.INFO,
	StatusType.SUCCESS: logging.INFO,
	StatusType.WARNING: logging.WARNING,
	StatusType.ERROR: logging.ERROR,
}


class EventChannel:
	"""Fans session events out to subscriber queues.

	Publishing never blocks on a slow consumer: a full subscriber queue drops
	the event. The most recent events are kept for inspection.
	"""

	def __init__(self, session_id: str = "", history_size: int = 200):
		self.session_id = session_id
		self._subscribers: list[asyncio.Queue] = []
		self.recent: deque[SessionEvent] = deque(maxlen=history_size)

	def subscribe(self, maxsize: int = 1000) -> asyncio.Queue:
		queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
		self._subscribers.append(queue)
		return queue

	def unsubscribe(self, queue: asyncio.Queue) -> None:
		if queue in self._subscribers:
			self._subscribers.remove(queue)

	async def publish(self, event: SessionEvent) -> None:
		self.recent.append(event)
		for subscriber in self._subscribers:
			if not subscriber.full():
				await subscriber.put(event)
			else:
				logger.debug(f"[{self.session_id}] Subscriber queue full, dropped {event.event}")

	async def status(self, message: str, type: StatusType = StatusType.INFO) -> StatusUpdate:
		event = StatusUpdate(message=message, type=StatusType(type))
		logger.log(_STATUS_LOG_LEVELS[event.type], f"[{self.session_id}] {message}")
		await self.publish(event)
		return event

	async def data(self, type: DataType, payload: Any) -> DataUpdate:
		event = DataUpdate(type=DataType(type), payload=payload)
		await self.publish(event)
		return event

	async def script(self, script: str, actions: int) -> GeneratedScript:
		event = GeneratedScript(script=script, actions=actions)
		await self.publish(event)
		return event
