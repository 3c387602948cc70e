"""REST and WebSocket transport (FastAPI)"""

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import Depends, FastAPI, Header, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from browser_conductor import __version__
from browser_conductor.config import ConductorConfig
from browser_conductor.core.events.views import DataUpdate, GeneratedScript, SessionEvent
from browser_conductor.exceptions import ConductorError
from browser_conductor.gateway import tools as t
from browser_conductor.gateway.dispatch import ToolDispatcher
from browser_conductor.gateway.errors import http_status
from browser_conductor.session.pool import SessionPool
from browser_conductor.session.service import SessionManager
from browser_conductor.session.views import InboundKind

logger = logging.getLogger(__name__)

DEFAULT_SESSION_ID = "default"


def socket_frame(event: SessionEvent) -> dict[str, Any]:
	"""Event name plus payload, the way socket clients expect it"""
	data = event.model_dump(mode="json", exclude={"event"})
	if isinstance(event, DataUpdate):
		data["data"] = data.pop("payload")
	elif isinstance(event, GeneratedScript):
		data["testCode"] = data.pop("script")
	return {"event": event.event, "data": data}


def create_app(pool: Optional[SessionPool] = None, config: Optional[ConductorConfig] = None) -> FastAPI:
	config = config or (pool.config if pool is not None else ConductorConfig())
	if pool is None:
		pool = SessionPool(config=config)

	@asynccontextmanager
	async def lifespan(app: FastAPI):
		yield
		await pool.shutdown()

	app = FastAPI(title="browser-conductor", version=__version__, lifespan=lifespan)
	app.state.pool = pool
	app.add_middleware(
		CORSMiddleware,
		allow_origins=[config.cors_origin],
		allow_credentials=True,
		allow_methods=["*"],
		allow_headers=["*"],
	)

	@app.exception_handler(ConductorError)
	async def conductor_error_handler(request: Request, exc: ConductorError):
		status_code = http_status(exc)
		if status_code >= 500:
			logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
		return JSONResponse(status_code=status_code, content={"error": exc.message, **exc.to_dict()})

	@app.exception_handler(RequestValidationError)
	async def validation_error_handler(request: Request, exc: RequestValidationError):
		problems = "; ".join(
			f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
		)
		return JSONResponse(
			status_code=400,
			content={"error": f"Invalid request: {problems}", "kind": "InvalidRequest", "message": problems},
		)

	def get_session(x_session_id: Optional[str] = Header(default=None)) -> SessionManager:
		return pool.get_or_create(x_session_id or DEFAULT_SESSION_ID)

	def get_dispatcher(session: SessionManager = Depends(get_session)) -> ToolDispatcher:
		return ToolDispatcher(session)

	@app.get("/health")
	async def health():
		return {
			"status": "ok",
			"timestamp": datetime.now(timezone.utc).isoformat(),
			"sessions": len(pool),
		}

	@app.post("/browser/launch")
	async def launch_browser(args: t.LaunchBrowserArgs, dispatcher: ToolDispatcher = Depends(get_dispatcher)):
		return await dispatcher.invoke("launch_browser", args)

	@app.post("/context/create")
	async def create_context(args: t.CreateContextArgs, dispatcher: ToolDispatcher = Depends(get_dispatcher)):
		return await dispatcher.invoke("create_context", args)

	@app.post("/page/create")
	async def create_page(args: t.CreatePageArgs, dispatcher: ToolDispatcher = Depends(get_dispatcher)):
		return await dispatcher.invoke("create_page", args)

	@app.post("/page/navigate")
	async def navigate(args: t.NavigateArgs, dispatcher: ToolDispatcher = Depends(get_dispatcher)):
		return await dispatcher.invoke("navigate", args)

	@app.post("/page/click")
	async def click(args: t.SelectorArgs, dispatcher: ToolDispatcher = Depends(get_dispatcher)):
		return await dispatcher.invoke("click", args)

	@app.post("/page/fill")
	async def fill(args: t.FillArgs, dispatcher: ToolDispatcher = Depends(get_dispatcher)):
		return await dispatcher.invoke("fill", args)

	@app.get("/page/{page_id}/text")
	async def get_text(page_id: str, selector: str = Query(...), dispatcher: ToolDispatcher = Depends(get_dispatcher)):
		return await dispatcher.invoke("get_text", t.SelectorArgs(page_id=page_id, selector=selector))

	@app.get("/page/{page_id}/info")
	async def page_info(page_id: str, dispatcher: ToolDispatcher = Depends(get_dispatcher)):
		return await dispatcher.invoke("page_info", t.PageArgs(page_id=page_id))

	@app.post("/page/screenshot")
	async def screenshot(args: t.ScreenshotArgs, dispatcher: ToolDispatcher = Depends(get_dispatcher)):
		return await dispatcher.invoke("screenshot", args)

	@app.post("/page/evaluate")
	async def evaluate(args: t.EvaluateArgs, dispatcher: ToolDispatcher = Depends(get_dispatcher)):
		return await dispatcher.invoke("evaluate", args)

	@app.post("/page/wait")
	async def wait_for_selector(args: t.WaitForSelectorArgs, dispatcher: ToolDispatcher = Depends(get_dispatcher)):
		return await dispatcher.invoke("wait_for_selector", args)

	@app.delete("/page/{page_id}")
	async def close_page(page_id: str, dispatcher: ToolDispatcher = Depends(get_dispatcher)):
		return await dispatcher.invoke("close_page", t.ClosePageArgs(page_id=page_id))

	@app.delete("/context/{context_id}")
	async def close_context(context_id: str, dispatcher: ToolDispatcher = Depends(get_dispatcher)):
		return await dispatcher.invoke("close_context", t.CloseContextArgs(context_id=context_id))

	@app.delete("/browser/{browser_id}")
	async def close_browser(browser_id: str, dispatcher: ToolDispatcher = Depends(get_dispatcher)):
		return await dispatcher.invoke("close_browser", t.CloseBrowserArgs(browser_id=browser_id))

	@app.post("/command")
	async def execute_command(args: t.ExecuteCommandArgs, dispatcher: ToolDispatcher = Depends(get_dispatcher)):
		return await dispatcher.invoke("execute_command", args)

	@app.post("/workflow")
	async def execute_workflow(args: t.ExecuteWorkflowArgs, dispatcher: ToolDispatcher = Depends(get_dispatcher)):
		return await dispatcher.invoke("execute_workflow", args)

	@app.post("/script")
	async def generate_script(dispatcher: ToolDispatcher = Depends(get_dispatcher)):
		return await dispatcher.invoke("generate_script", t.GenerateScriptArgs())

	@app.delete("/session")
	async def destroy_session(x_session_id: Optional[str] = Header(default=None)):
		session_id = x_session_id or DEFAULT_SESSION_ID
		destroyed = await pool.destroy(session_id, addressed_only=True)
		return {"sessionId": session_id, "destroyed": destroyed}

	@app.websocket("/ws")
	async def websocket_endpoint(websocket: WebSocket):
		await websocket.accept()
		session = pool.create()
		events = session.events.subscribe(maxsize=config.event_queue_size)

		async def forward_events() -> None:
			while True:
				event = await events.get()
				await websocket.send_json(socket_frame(event))

		forwarder = asyncio.create_task(forward_events())
		session.start()
		logger.info(f"Socket connected, session {session.id}")
		await session.events.status("Connected to automation server")

		try:
			while True:
				raw = await websocket.receive_text()
				try:
					frame = json.loads(raw)
					kind = InboundKind(frame.get("event"))
				except (ValueError, AttributeError) as e:
					await session.events.status(f"Ignored malformed message: {e}", "warning")
					continue
				await session.submit(kind, str(frame.get("message") or ""))
		except WebSocketDisconnect:
			logger.info(f"Socket disconnected, session {session.id}")
		finally:
			forwarder.cancel()
			session.events.unsubscribe(events)
			await pool.destroy(session.id)

	return app
