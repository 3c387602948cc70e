"""Tests for the JSON-RPC transport and tool dispatch"""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from browser_conductor.core.events import StatusUpdate
from browser_conductor.exceptions import (
	DuplicateId,
	ElementNotFound,
	IntentTranslationFailure,
	InvalidRequest,
	NavigationTimeout,
	NotFound,
	ProtocolInvalidParams,
	ProtocolInvalidRequest,
	ProtocolMethodNotFound,
	ProtocolParseError,
	TimeoutExceeded,
)
from browser_conductor.gateway import TOOLS, JsonRpcConnection, ToolDispatcher
from browser_conductor.gateway.errors import http_status, jsonrpc_code
from browser_conductor.gateway.jsonrpc import JsonRpcServer, event_notification, read_frame


@pytest.fixture
def connection(session):
	return JsonRpcConnection(ToolDispatcher(session))


def request(method, params=None, request_id=1):
	message = {"jsonrpc": "2.0", "id": request_id, "method": method}
	if params is not None:
		message["params"] = params
	return json.dumps(message)


def call(name, arguments=None, request_id=1):
	return request("tools/call", {"name": name, "arguments": arguments or {}}, request_id)


class TestFraming:
	@pytest.mark.asyncio
	async def test_parse_error_then_recovery(self, connection):
		response = await connection.handle_line("{not json")
		assert response["id"] is None
		assert response["error"]["code"] == -32700

		response = await connection.handle_line(request("ping", request_id=2))
		assert response == {"jsonrpc": "2.0", "id": 2, "result": {}}

	@pytest.mark.asyncio
	async def test_blank_lines_are_ignored(self, connection):
		assert await connection.handle_line("   \n") is None

	@pytest.mark.asyncio
	async def test_invalid_request(self, connection):
		response = await connection.handle_line("[1, 2]")
		assert response["error"]["code"] == -32600

		response = await connection.handle_line(json.dumps({"jsonrpc": "2.0", "id": 7}))
		assert response["id"] == 7
		assert response["error"]["code"] == -32600

	@pytest.mark.asyncio
	async def test_unknown_method(self, connection):
		response = await connection.handle_line(request("resources/list"))
		assert response["error"]["code"] == -32601
		assert response["error"]["data"]["method"] == "resources/list"

	@pytest.mark.asyncio
	async def test_notifications_get_no_response(self, connection):
		assert await connection.handle_line('{"jsonrpc": "2.0", "method": "notifications/initialized"}') is None
		assert await connection.handle_line('{"jsonrpc": "2.0", "method": "no/such/method"}') is None

	@pytest.mark.asyncio
	async def test_bytes_frames(self, connection):
		response = await connection.handle_line(request("ping").encode() + b"\n")
		assert response["result"] == {}


class TestHandshake:
	@pytest.mark.asyncio
	async def test_initialize(self, connection):
		response = await connection.handle_line(request("initialize", {"protocolVersion": "2024-11-05"}))

		result = response["result"]
		assert result["protocolVersion"] == "2024-11-05"
		assert result["serverInfo"]["name"] == "browser-conductor"
		assert "tools" in result["capabilities"]

	@pytest.mark.asyncio
	async def test_tools_list(self, connection):
		response = await connection.handle_line(request("tools/list"))

		tools = response["result"]["tools"]
		assert [tool["name"] for tool in tools] == [spec.name for spec in TOOLS]
		navigate = next(tool for tool in tools if tool["name"] == "navigate")
		assert set(navigate["inputSchema"]["required"]) == {"pageId", "url"}


class TestToolCalls:
	@pytest.mark.asyncio
	async def test_launch_then_open_page(self, connection, fake_driver):
		response = await connection.handle_line(call("launch_browser", {"browserType": "firefox", "browserId": "b1"}))

		result = response["result"]
		assert result["isError"] is False
		assert result["structuredContent"] == {"browserId": "b1", "engine": "firefox", "headless": True}
		assert json.loads(result["content"][0]["text"]) == result["structuredContent"]

		await connection.handle_line(call("create_context", {"browserId": "b1", "contextId": "c1"}))
		response = await connection.handle_line(call("create_page", {"context_id": "c1", "page_id": "p1"}))
		assert response["result"]["structuredContent"] == {"pageId": "p1", "contextId": "c1"}

		response = await connection.handle_line(call("navigate", {"pageId": "p1", "url": "example.com"}))
		assert response["result"]["structuredContent"] == {"url": "https://example.com"}

		response = await connection.handle_line(call("close_browser", {"browserId": "b1"}))
		assert response["result"]["structuredContent"]["closed"] == [
			{"kind": "page", "id": "p1"},
			{"kind": "context", "id": "c1"},
			{"kind": "browser", "id": "b1"},
		]
		fake_driver.browsers[0].close.assert_awaited_once()

	@pytest.mark.asyncio
	async def test_operation_failure_carries_kind(self, connection):
		response = await connection.handle_line(call("navigate", {"pageId": "missing", "url": "example.com"}))

		error = response["error"]
		assert error["code"] == -32603
		assert error["data"]["kind"] == "NotFound"
		assert error["data"]["resource_id"] == "missing"

	@pytest.mark.asyncio
	async def test_duplicate_launch(self, connection):
		await connection.handle_line(call("launch_browser", {"browserId": "b1"}))
		response = await connection.handle_line(call("launch_browser", {"browserId": "b1"}))
		assert response["error"]["data"]["kind"] == "DuplicateId"

	@pytest.mark.asyncio
	@pytest.mark.parametrize("arguments", [
		{"pageId": "p1"},
		{"pageId": "p1", "url": "example.com", "unexpected": True},
	])
	async def test_invalid_arguments(self, connection, arguments):
		response = await connection.handle_line(call("navigate", arguments))
		assert response["error"]["code"] == -32603
		assert response["error"]["data"]["kind"] == "InvalidRequest"

	@pytest.mark.asyncio
	async def test_unknown_tool(self, connection):
		response = await connection.handle_line(call("teleport"))
		assert response["error"]["code"] == -32603
		assert response["error"]["message"] == "Unknown tool: teleport"
		assert response["error"]["data"]["tool"] == "teleport"

	@pytest.mark.asyncio
	async def test_missing_tool_name(self, connection):
		response = await connection.handle_line(request("tools/call", {"arguments": {}}))
		assert response["error"]["code"] == -32602

	@pytest.mark.asyncio
	async def test_command_and_script(self, connection, session):
		await session.launch_browser(browser_id="b1")
		await session.create_context("b1", context_id="c1")
		await session.create_page("c1", page_id="p1")

		response = await connection.handle_line(call("execute_command", {"pageId": "p1", "command": "open example.com"}))
		assert response["result"]["structuredContent"]["success"] is True

		response = await connection.handle_line(call("generate_script"))
		script = response["result"]["structuredContent"]
		assert script["actions"] == 1
		assert "page.goto('https://example.com'" in script["script"]


class TestErrorMapping:
	@pytest.mark.parametrize("error,code,status", [
		(NotFound("page", "p1"), -32603, 404),
		(DuplicateId("browser", "b1"), -32603, 409),
		(ElementNotFound("Login"), -32603, 404),
		(NavigationTimeout("https://example.com", 30000), -32603, 502),
		(TimeoutExceeded("click", 5000), -32603, 504),
		(IntentTranslationFailure("no idea"), -32603, 422),
		(ProtocolMethodNotFound("x"), -32601, 404),
		(ProtocolInvalidRequest("Invalid Request"), -32600, 400),
		(ProtocolInvalidParams("no name"), -32602, 400),
		(InvalidRequest("bad arguments"), -32603, 400),
	])
	def test_codes(self, error, code, status):
		assert jsonrpc_code(error) == code
		assert http_status(error) == status


def test_event_notification():
	message = event_notification(StatusUpdate(message="Browser ready", type="success"))

	assert message["method"] == "notifications/status"
	assert "id" not in message
	assert message["params"]["message"] == "Browser ready"
	assert message["params"]["type"] == "success"


@pytest.mark.asyncio
async def test_tcp_connection_owns_a_session(pool):
	server = JsonRpcServer(pool)
	tcp_server = await asyncio.start_server(server.serve_connection, "127.0.0.1", 0)
	port = tcp_server.sockets[0].getsockname()[1]

	async with tcp_server:
		reader, writer = await asyncio.open_connection("127.0.0.1", port)
		writer.write((call("launch_browser", {"browserId": "b1"}) + "\n").encode())
		await writer.drain()

		response = None
		while response is None or "id" not in response:
			response = json.loads(await asyncio.wait_for(reader.readline(), timeout=5))
		assert response["result"]["structuredContent"]["browserId"] == "b1"
		assert len(pool) == 1

		writer.close()
		await writer.wait_closed()
		for _ in range(100):
			if len(pool) == 0:
				break
			await asyncio.sleep(0.01)

	assert len(pool) == 0


def stream(*chunks, limit=64):
	reader = asyncio.StreamReader(limit=limit)
	for chunk in chunks:
		reader.feed_data(chunk)
	reader.feed_eof()
	return reader


class TestStreamFrames:
	@pytest.mark.asyncio
	async def test_read_frame(self):
		reader = stream(b'{"a": 1}\n{"b"', b': 2}')

		assert await read_frame(reader) == b'{"a": 1}\n'
		assert await read_frame(reader) == b'{"b": 2}'
		assert await read_frame(reader) is None

	@pytest.mark.asyncio
	@pytest.mark.parametrize("chunks", [
		(b"x" * 200 + b"\n",),
		(b"x" * 100, b"x" * 100, b"x" * 100 + b"\n"),
	])
	async def test_oversized_frame_is_skipped(self, chunks):
		reader = stream(*chunks, b'{"next": true}\n')

		with pytest.raises(ProtocolParseError):
			await read_frame(reader)
		assert await read_frame(reader) == b'{"next": true}\n'

	@pytest.mark.asyncio
	async def test_connection_survives_oversized_frame(self, pool):
		oversized = request("ping", {"pad": "x" * 500}, request_id=1)
		reader = stream(f"{oversized}\n{request('ping', request_id=2)}\n".encode())
		writer = MagicMock()
		writer.drain = AsyncMock()
		writer.wait_closed = AsyncMock()

		await JsonRpcServer(pool).serve_connection(reader, writer)

		responses = [json.loads(c.args[0]) for c in writer.write.call_args_list]
		assert responses[0]["id"] is None
		assert responses[0]["error"]["code"] == -32700
		assert responses[1] == {"jsonrpc": "2.0", "id": 2, "result": {}}
		assert len(pool) == 0
		writer.close.assert_called_once()
