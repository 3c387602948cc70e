"""Newline-delimited JSON-RPC 2.0 over stdio or TCP"""

import asyncio
import json
import logging
import sys
from typing import Any, Optional, Union

from browser_conductor import __version__
from browser_conductor.core.events.views import DataUpdate, GeneratedScript, SessionEvent, StatusUpdate
from browser_conductor.exceptions import (
	ConductorError,
	InternalExecutionError,
	ProtocolInvalidParams,
	ProtocolInvalidRequest,
	ProtocolMethodNotFound,
	ProtocolParseError,
)
from browser_conductor.gateway.dispatch import ToolDispatcher
from browser_conductor.gateway.errors import jsonrpc_code
from browser_conductor.session.pool import SessionPool

logger = logging.getLogger(__name__)

JSONRPC_VERSION = "2.0"
PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "browser-conductor"

_NOTIFICATION_METHODS = {
	StatusUpdate: "notifications/status",
	DataUpdate: "notifications/data",
	GeneratedScript: "notifications/script",
}


def error_response(request_id: Any, error: ConductorError) -> dict[str, Any]:
	return {
		"jsonrpc": JSONRPC_VERSION,
		"id": request_id,
		"error": {"code": jsonrpc_code(error), "message": error.message, "data": error.to_dict()},
	}


def result_response(request_id: Any, result: Any) -> dict[str, Any]:
	return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def event_notification(event: SessionEvent) -> dict[str, Any]:
	return {
		"jsonrpc": JSONRPC_VERSION,
		"method": _NOTIFICATION_METHODS[type(event)],
		"params": event.model_dump(mode="json"),
	}


async def read_frame(reader: asyncio.StreamReader) -> Optional[bytes]:
	"""Read one newline-terminated frame; None at end of stream.

	A frame longer than the reader's limit is consumed through its newline and
	reported as ProtocolParseError, so the next frame starts clean.
	"""
	try:
		return await reader.readuntil(b"\n")
	except asyncio.IncompleteReadError as e:
		return e.partial or None
	except asyncio.LimitOverrunError as e:
		skipped = await _discard_line(reader, e.consumed)
		raise ProtocolParseError(f"Parse error: frame too long ({skipped} bytes)", size=skipped) from None


async def _discard_line(reader: asyncio.StreamReader, consumed: int) -> int:
	skipped = 0
	while True:
		skipped += len(await reader.readexactly(consumed))
		try:
			return skipped + len(await reader.readuntil(b"\n"))
		except asyncio.IncompleteReadError as e:
			return skipped + len(e.partial)
		except asyncio.LimitOverrunError as e:
			consumed = e.consumed


class JsonRpcConnection:
	"""Protocol state for one connection; owns exactly one session"""

	def __init__(self, dispatcher: ToolDispatcher):
		self.dispatcher = dispatcher

	async def handle_line(self, line: Union[str, bytes]) -> Optional[dict[str, Any]]:
		"""Handle one frame; returns the response, or None for notifications"""
		if isinstance(line, bytes):
			line = line.decode("utf-8", errors="replace")
		if not line.strip():
			return None

		try:
			request = json.loads(line)
		except json.JSONDecodeError as e:
			logger.warning(f"Unparseable frame: {e}")
			return error_response(None, ProtocolParseError(f"Parse error: {e.msg}"))

		return await self.handle_request(request)

	async def handle_request(self, request: Any) -> Optional[dict[str, Any]]:
		if not isinstance(request, dict) or not isinstance(request.get("method"), str):
			request_id = request.get("id") if isinstance(request, dict) else None
			return error_response(request_id, ProtocolInvalidRequest("Invalid Request"))

		method = request["method"]
		request_id = request.get("id")
		is_notification = "id" not in request
		params = request.get("params") or {}

		try:
			result = await self._dispatch(method, params)
		except ConductorError as e:
			if is_notification:
				logger.warning(f"Notification {method} failed: {e.message}")
				return None
			return error_response(request_id, e)
		except Exception as e:
			logger.exception(f"Unhandled error in {method}: {e}")
			if is_notification:
				return None
			return error_response(request_id, InternalExecutionError(str(e) or type(e).__name__))

		if is_notification:
			return None
		return result_response(request_id, result)

	async def _dispatch(self, method: str, params: Any) -> Any:
		if method.startswith("notifications/"):
			return None
		if method == "initialize":
			return {
				"protocolVersion": PROTOCOL_VERSION,
				"capabilities": {"tools": {}},
				"serverInfo": {"name": SERVER_NAME, "version": __version__},
			}
		if method == "ping":
			return {}
		if method == "tools/list":
			return {"tools": self.dispatcher.list_tools()}
		if method == "tools/call":
			if not isinstance(params, dict) or not isinstance(params.get("name"), str):
				raise ProtocolInvalidParams("tools/call requires a tool name")
			data = await self.dispatcher.call(params["name"], params.get("arguments"))
			return {
				"content": [{"type": "text", "text": json.dumps(data, default=str)}],
				"structuredContent": data,
				"isError": False,
			}
		raise ProtocolMethodNotFound(method)


class JsonRpcServer:
	"""Serves JSON-RPC connections; each connection gets a fresh session"""

	def __init__(self, pool: SessionPool):
		self.pool = pool
		self._server: Optional[asyncio.AbstractServer] = None

	async def serve_connection(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
		session = self.pool.create()
		connection = JsonRpcConnection(ToolDispatcher(session))
		write_lock = asyncio.Lock()
		events = session.events.subscribe(maxsize=self.pool.config.event_queue_size)

		async def send(message: dict[str, Any]) -> None:
			async with write_lock:
				writer.write((json.dumps(message, default=str) + "\n").encode())
				await writer.drain()

		async def forward_events() -> None:
			while True:
				event = await events.get()
				await send(event_notification(event))

		forwarder = asyncio.create_task(forward_events())
		logger.info(f"JSON-RPC connection opened, session {session.id}")
		try:
			while True:
				try:
					line = await read_frame(reader)
				except ProtocolParseError as e:
					logger.warning(f"Session {session.id}: {e.message}")
					await send(error_response(None, e))
					continue
				if line is None:
					break
				response = await connection.handle_line(line)
				if response is not None:
					await send(response)
		except (ConnectionResetError, BrokenPipeError) as e:
			logger.info(f"Connection for session {session.id} dropped: {e}")
		finally:
			forwarder.cancel()
			session.events.unsubscribe(events)
			await self.pool.destroy(session.id)
			try:
				writer.close()
				await writer.wait_closed()
			except Exception as e:
				logger.debug(f"Error closing writer: {e}")
			logger.info(f"JSON-RPC connection closed, session {session.id}")

	async def serve_tcp(self, host: str, port: int) -> None:
		self._server = await asyncio.start_server(
			self.serve_connection, host, port, limit=self.pool.config.max_frame_bytes
		)
		logger.info(f"JSON-RPC listening on {host}:{port}")
		async with self._server:
			await self._server.serve_forever()

	async def serve_stdio(self) -> None:
		loop = asyncio.get_running_loop()
		reader = asyncio.StreamReader(limit=self.pool.config.max_frame_bytes)
		await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)
		transport, protocol = await loop.connect_write_pipe(asyncio.streams.FlowControlMixin, sys.stdout)
		writer = asyncio.StreamWriter(transport, protocol, reader, loop)
		logger.info("JSON-RPC serving on stdio")
		await self.serve_connection(reader, writer)

	def close(self) -> None:
		if self._server is not None:
			self._server.close()
