"""Render a session's action history as a pytest-playwright test module"""

from datetime import datetime, timezone
from typing import Optional

from browser_conductor.core.executor.views import SCROLL_EDGES, SCROLL_VECTORS, normalize_url, parse_duration
from browser_conductor.core.intent.views import ActionType
from browser_conductor.session.views import HistoryEntry

INDENT = "    "


def _locator(entry: HistoryEntry) -> str:
	return f"page.locator({(entry.selector or entry.plan.target)!r}).first"


def _render_entry(entry: HistoryEntry, scroll_delta: int) -> list[str]:
	plan = entry.plan
	lines = [f"# {' '.join(entry.command.split())}"]
	action = plan.action_type

	if action is ActionType.NAVIGATE:
		lines.append(f"page.goto({normalize_url(plan.target)!r}, wait_until=\"domcontentloaded\")")
		lines.append("page.wait_for_load_state(\"networkidle\")")
	elif action is ActionType.CLICK:
		lines.append(f"{_locator(entry)}.click(timeout=5000)")
	elif action is ActionType.TYPE:
		lines.append(f"{_locator(entry)}.fill({(plan.value or '')!r}, timeout=5000)")
	elif action is ActionType.WAIT:
		duration_ms, _ = parse_duration(plan.target or plan.value)
		lines.append(f"page.wait_for_timeout({duration_ms})")
	elif action is ActionType.SCROLL:
		token = plan.target.strip().lower()
		if token in SCROLL_VECTORS:
			x_sign, y_sign = SCROLL_VECTORS[token]
			lines.append(f"page.evaluate(\"window.scrollBy({x_sign * scroll_delta}, {y_sign * scroll_delta})\")")
		elif token in SCROLL_EDGES:
			lines.append(f"page.evaluate({SCROLL_EDGES[token]!r})")
		else:
			lines.append(f"# unknown scroll direction {plan.target!r}, skipped")
	elif action is ActionType.EXTRACT:
		lines.append(f"extracted = page.locator({plan.target!r}).all_text_contents()")
		lines.append("assert isinstance(extracted, list)")
	elif action is ActionType.ANALYZE:
		lines.append(f"# analysis of {plan.target!r} is not replayable")
	else:
		lines.append(f"# skipped: {plan.description or plan.action}")

	return lines


def render_test_module(
	history: list[HistoryEntry],
	test_name: str = "test_recorded_session",
	scroll_delta: int = 500,
	generated_at: Optional[datetime] = None,
) -> str:
	"""Build a test module that replays every successful entry in order"""
	generated_at = generated_at or datetime.now(timezone.utc)
	replayable = [entry for entry in history if entry.success]

	lines = [
		f'"""Recorded browser session, generated {generated_at.isoformat(timespec="seconds")}',
		"",
		"Run with: pytest --browser chromium <this file>",
		'"""',
		"",
		"from playwright.sync_api import Page",
		"",
		"",
		f"def {test_name}(page: Page):",
	]
	if not replayable:
		lines.append(f"{INDENT}pass")
	for index, entry in enumerate(replayable):
		if index:
			lines.append("")
		lines.extend(f"{INDENT}{line}" for line in _render_entry(entry, scroll_delta))

	return "\n".join(lines) + "\n"
