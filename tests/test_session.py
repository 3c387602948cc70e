"""Tests for sessions, workflows, script generation and the session pool"""

import asyncio
import os
import signal
import sys
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from conftest import FakeLocator, statuses

from browser_conductor.core.events import StatusType
from browser_conductor.core.intent import ActionPlan
from browser_conductor.core.registry import ResourceKind
from browser_conductor.exceptions import (
	DuplicateId,
	InternalExecutionError,
	InvalidRequest,
	NotFound,
	ParentNotFound,
	UnsupportedEngineKind,
)
from browser_conductor.session import HistoryEntry, InboundKind, SessionManager, render_test_module
from browser_conductor.session.pool import install_signal_handlers


async def open_page(session, **context_options):
	browser = await session.launch_browser("chromium", browser_id="b1")
	context = await session.create_context(browser.id, context_id="c1", **context_options)
	page = await session.create_page(context.id, page_id="p1")
	return page


class TestResources:
	@pytest.mark.asyncio
	async def test_launch_context_page(self, session, fake_driver):
		page = await open_page(session, viewport={"width": 1920, "height": 1080}, user_agent="conductor-test")

		assert page.id == "p1"
		assert page.context_id == "c1"
		native_context = fake_driver.browsers[0].contexts[0]
		assert native_context.options == {
			"viewport": {"width": 1920, "height": 1080},
			"user_agent": "conductor-test",
		}
		assert session.get_page("p1") is native_context.pages[0]

	@pytest.mark.asyncio
	async def test_generated_ids(self, session):
		browser = await session.launch_browser()
		context = await session.create_context(browser.id)
		page = await session.create_page(context.id)

		assert len({browser.id, context.id, page.id}) == 3
		assert browser.engine.value == "chromium"
		assert browser.headless is True

	@pytest.mark.asyncio
	async def test_duplicate_browser_id_does_not_launch(self, session, fake_driver):
		await session.launch_browser(browser_id="b1")

		with pytest.raises(DuplicateId):
			await session.launch_browser(browser_id="b1")
		assert len(fake_driver.browsers) == 1

	@pytest.mark.asyncio
	async def test_unsupported_engine(self, session, fake_driver):
		with pytest.raises(UnsupportedEngineKind):
			await session.launch_browser("netscape")
		assert fake_driver.browsers == []

	@pytest.mark.asyncio
	async def test_other_engines(self, session):
		firefox = await session.launch_browser("Firefox")
		webkit = await session.launch_browser("webkit", headless=False)

		assert firefox.engine.value == "firefox"
		assert webkit.headless is False

	@pytest.mark.asyncio
	async def test_launch_failure_is_internal_error(self, session, fake_driver):
		fake_driver.fail_launch = True

		with pytest.raises(InternalExecutionError):
			await session.launch_browser(browser_id="b1")
		assert ("browser", "b1") not in session.registry

	@pytest.mark.asyncio
	async def test_missing_parents(self, session):
		with pytest.raises(ParentNotFound):
			await session.create_context("nope")
		with pytest.raises(ParentNotFound):
			await session.create_page("nope")

	@pytest.mark.asyncio
	async def test_invalid_viewport(self, session):
		await session.launch_browser(browser_id="b1")
		with pytest.raises(ValueError):
			await session.create_context("b1", viewport={"width": 0, "height": 600})

	@pytest.mark.asyncio
	async def test_close_browser_cascades(self, session, fake_driver):
		await open_page(session)

		report = await session.close_browser("b1")

		assert report.ids(ResourceKind.PAGE) == ["p1"]
		assert report.ids(ResourceKind.CONTEXT) == ["c1"]
		fake_driver.browsers[0].close.assert_awaited_once()
		with pytest.raises(NotFound):
			session.get_page("p1")


class TestCommands:
	@pytest.mark.asyncio
	async def test_navigate_command(self, session):
		await open_page(session)

		result = await session.execute_command("p1", "go to example.com")

		assert result.success
		assert result.data == {"url": "https://example.com"}
		assert session.get_page("p1").url == "https://example.com"
		assert [entry.command for entry in session.history] == ["go to example.com"]

	@pytest.mark.asyncio
	async def test_unknown_page(self, session):
		with pytest.raises(NotFound):
			await session.execute_command("missing", "go to example.com")
		assert session.history == []

	@pytest.mark.asyncio
	async def test_click_miss_reports_alternatives(self, session):
		await open_page(session)
		page = session.get_page("p1")
		page.evaluate = AsyncMock(return_value=[
			{"tag": "button", "text": "Sign in", "selector": "#signin", "matched_by": "text"},
		])

		result = await session.execute_command("p1", "click sign")

		assert not result.success
		assert result.error_kind == "ElementNotFound"
		assert [a.selector for a in result.alternatives] == ["#signin"]
		assert session.history[-1].success is False

	@pytest.mark.asyncio
	async def test_click_records_selector(self, session):
		await open_page(session)
		session.get_page("p1").locators["text=Login"] = FakeLocator(count=1)

		result = await session.execute_command("p1", "click Login")

		assert result.success
		assert session.history[-1].selector == "text=Login"

	@pytest.mark.asyncio
	async def test_unrecognized_command_fails(self, session):
		await open_page(session)

		result = await session.execute_command("p1", "make me a sandwich")

		assert not result.success
		assert result.error_kind == "IntentTranslationFailure"

	@pytest.mark.asyncio
	async def test_structured_command_skips_translation(self, session):
		await open_page(session)
		session.translator.translate = AsyncMock()

		result = await session.execute_command("p1", {"action": "wait", "target": "250"})

		assert result.success
		session.translator.translate.assert_not_awaited()
		session.get_page("p1").wait_for_timeout.assert_awaited_once_with(250)

	@pytest.mark.asyncio
	async def test_invalid_structured_command(self, session):
		await open_page(session)
		with pytest.raises(InvalidRequest):
			await session.execute_command("p1", {"target": "#go"})

	@pytest.mark.asyncio
	async def test_translator_exception_becomes_failure(self, session):
		await open_page(session)
		session.translator.translate = AsyncMock(side_effect=RuntimeError("model unavailable"))

		result = await session.execute_command("p1", "click login")

		assert not result.success
		assert "model unavailable" in result.error

	@pytest.mark.asyncio
	async def test_translator_sees_context_overrides(self, session):
		await open_page(session)
		session.translator.translate = AsyncMock(return_value=ActionPlan(action="wait", target="100"))

		await session.execute_command("p1", "pause", context={"url": "https://shop.example.com", "title": "Shop"})

		session.translator.translate.assert_awaited_once_with("pause", "https://shop.example.com", "Shop")


class TestWorkflow:
	@pytest.mark.asyncio
	async def test_failed_step_does_not_abort(self, session):
		await open_page(session)
		await session.create_page("c1", page_id="p2")
		await session.close_page("p2")

		result = await session.execute_workflow("p1", [
			{"name": "open", "command": "go to example.com"},
			{"command": "click Login", "pageId": "p2"},
			{"command": "wait 100"},
		])

		assert result.success is True
		assert [step.step for step in result.workflow] == ["open", "step-2", "step-3"]
		assert result.workflow[0].ok
		assert result.workflow[1].error["kind"] == "NotFound"
		assert result.workflow[1].result is None
		assert result.workflow[2].ok

	@pytest.mark.asyncio
	async def test_action_failures_are_step_results(self, session):
		await open_page(session)

		result = await session.execute_workflow("p1", [{"command": "click Nothing"}])

		assert result.success is True
		assert result.workflow[0].error is None
		assert result.workflow[0].result.error_kind == "ElementNotFound"


class TestScriptGeneration:
	def test_render_module(self):
		history = [
			HistoryEntry(command="go to example.com", plan=ActionPlan(action="navigate", target="example.com")),
			HistoryEntry(
				command="click Login",
				plan=ActionPlan(action="click", target="Login"),
				selector="text=Login",
			),
			HistoryEntry(
				command="type 'bob' into user",
				plan=ActionPlan(action="type", target="user", value="bob"),
				selector='[placeholder*="user" i]',
			),
			HistoryEntry(command="click Broken", plan=ActionPlan(action="click", target="Broken"), success=False),
			HistoryEntry(command="wait 2 seconds", plan=ActionPlan(action="wait", target="2 seconds")),
			HistoryEntry(command="scroll up", plan=ActionPlan(action="scroll", target="up")),
		]

		script = render_test_module(history, generated_at=datetime(2024, 1, 1, tzinfo=timezone.utc))

		assert "from playwright.sync_api import Page" in script
		assert "def test_recorded_session(page: Page):" in script
		assert "    page.goto('https://example.com', wait_until=\"domcontentloaded\")" in script
		assert "    page.locator('text=Login').first.click(timeout=5000)" in script
		assert "    page.locator('[placeholder*=\"user\" i]').first.fill('bob', timeout=5000)" in script
		assert "    page.wait_for_timeout(2000)" in script
		assert '    page.evaluate("window.scrollBy(0, -500)")' in script
		assert "Broken" not in script
		compile(script, "recorded.py", "exec")

	def test_render_empty_history(self):
		script = render_test_module([])
		assert script.rstrip().endswith("pass")

	@pytest.mark.asyncio
	async def test_generate_without_history(self, session):
		assert await session.generate_script() is None
		assert "No actions recorded for this session to generate a test." in statuses(session.events)

	@pytest.mark.asyncio
	async def test_generate_publishes_event(self, session):
		await open_page(session)
		await session.execute_command("p1", "go to example.com")

		event = await session.generate_script()

		assert event.actions == 1
		assert "https://example.com" in event.script
		assert session.events.recent[-2] is event


class TestMessageLoop:
	@pytest.mark.asyncio
	async def test_default_page_is_created_lazily(self, session, fake_driver):
		session.start()
		await session.submit(InboundKind.USER_MESSAGE, "go to example.com")
		await session.submit("generate_test")
		await session.inbox.put(None)
		await asyncio.wait_for(session._consumer, timeout=5)

		assert fake_driver.browsers[0].contexts[0].options["viewport"] == {"width": 1920, "height": 1080}
		assert session.history[0].success
		scripts = [e for e in session.events.recent if e.event == "test_case"]
		assert len(scripts) == 1

	@pytest.mark.asyncio
	async def test_default_page_is_reused(self, session, fake_driver):
		first = await session.ensure_default_page()
		second = await session.ensure_default_page()

		assert first == second
		assert len(fake_driver.browsers) == 1

	@pytest.mark.asyncio
	async def test_default_page_failure_cleans_up(self, session, fake_driver):
		fake_driver.fail_new_context = True

		with pytest.raises(InternalExecutionError):
			await session.ensure_default_page()

		assert len(session.registry) == 0
		fake_driver.browsers[0].close.assert_awaited_once()
		assert any(
			e.type is StatusType.ERROR for e in session.events.recent if e.event == "status_update"
		)

	@pytest.mark.asyncio
	async def test_loop_survives_errors(self, session, fake_driver):
		fake_driver.fail_launch = True
		session.start()
		await session.submit("user_message", "go to example.com")
		await session.inbox.put(None)
		await asyncio.wait_for(session._consumer, timeout=5)

		assert any(message.startswith("Error processing message") for message in statuses(session.events))


class TestDestroy:
	@pytest.mark.asyncio
	async def test_destroy_is_idempotent(self, session, fake_driver):
		await open_page(session)

		report = await session.destroy()
		again = await session.destroy()

		assert len(report.closed) == 3
		assert again.closed == []
		assert len(session.registry) == 0
		fake_driver.browsers[0].close.assert_awaited_once()

	@pytest.mark.asyncio
	async def test_destroy_cancels_consumer(self, session):
		task = session.start()
		await session.destroy()
		assert task.cancelled()


class TestSessionPool:
	def test_create_and_get(self, pool):
		session = pool.create("alpha")

		assert isinstance(session, SessionManager)
		assert pool.get("alpha") is session
		assert "alpha" in pool
		with pytest.raises(DuplicateId):
			pool.create("alpha")
		with pytest.raises(NotFound):
			pool.get("beta")

	@pytest.mark.asyncio
	async def test_sessions_are_isolated(self, pool):
		alpha = pool.create("alpha")
		beta = pool.create("beta")
		await alpha.launch_browser(browser_id="shared-name")

		await beta.launch_browser(browser_id="shared-name")
		await pool.destroy("alpha")

		assert "alpha" not in pool
		assert ("browser", "shared-name") in beta.registry

	@pytest.mark.asyncio
	async def test_shutdown_closes_everything(self, pool, fake_driver):
		for session_id in ("a", "b"):
			await pool.create(session_id).launch_browser()

		await pool.shutdown()

		assert len(pool) == 0
		assert fake_driver.stopped
		for browser in fake_driver.browsers:
			browser.close.assert_awaited_once()

	@pytest.mark.asyncio
	async def test_destroy_unknown_is_noop(self, pool):
		assert await pool.destroy("ghost") is False

	def test_addressed_sessions_are_reused(self, pool):
		addressed = pool.get_or_create("alpha")

		assert pool.get_or_create("alpha") is addressed
		assert list(pool) == ["alpha"]

	@pytest.mark.asyncio
	async def test_connection_sessions_are_not_addressable(self, pool):
		owned = pool.create()
		await owned.launch_browser(browser_id="b1")

		with pytest.raises(NotFound):
			pool.get_or_create(owned.id)
		assert await pool.destroy(owned.id, addressed_only=True) is False
		assert owned.id in pool
		assert len(owned.registry) == 1

	@pytest.mark.asyncio
	@pytest.mark.skipif(sys.platform == "win32", reason="event loop signal handlers are unix only")
	@pytest.mark.parametrize("sig", [signal.SIGTERM, signal.SIGINT])
	async def test_signal_destroys_every_session(self, pool, fake_driver, sig):
		sessions = [pool.create(), pool.get_or_create("rest")]
		for session in sessions:
			await open_page(session)
		done = asyncio.Event()
		loop = asyncio.get_running_loop()

		install_signal_handlers(pool, done.set)
		try:
			os.kill(os.getpid(), sig)
			await asyncio.wait_for(done.wait(), timeout=5)
		finally:
			loop.remove_signal_handler(signal.SIGINT)
			loop.remove_signal_handler(signal.SIGTERM)

		assert len(pool) == 0
		assert all(session.destroyed and len(session.registry) == 0 for session in sessions)
		assert fake_driver.stopped
		assert len(fake_driver.browsers) == 2
		for browser in fake_driver.browsers:
			browser.close.assert_awaited_once()
