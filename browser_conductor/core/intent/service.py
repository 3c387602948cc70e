"""Intent translators: free text plus page context -> ActionPlan"""

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Optional

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from browser_conductor.core.intent.views import (
	ActionPlan,
	ActionType,
	PageAnalysis,
	PageInfo,
	coerce_action_plan,
	error_plan,
)
from browser_conductor.exceptions import IntentTranslationFailure
from browser_conductor.utils import time_execution_async

logger = logging.getLogger(__name__)

MAX_PROMPT_TOKENS = 7000


class IntentTranslator(ABC):
	"""Contract the executor depends on; implementations are swappable"""

	@abstractmethod
	async def translate(self, command: str, url: str = "", title: str = "") -> ActionPlan:
		"""Return one action plan, or the error sentinel"""

	@abstractmethod
	async def analyze(self, page_info: PageInfo, target: str) -> PageAnalysis:
		"""Summarize the page relative to target; may raise on upstream failure"""


class RegexIntentTranslator(IntentTranslator):
	"""Pattern rules for the common command phrasings"""

	def __init__(self):
		self._rules = self._load_rules()

	def _load_rules(self) -> list[tuple[ActionType, re.Pattern]]:
		"""Rules are tried in order; the first match wins"""
		flags = re.IGNORECASE
		return [
			(ActionType.NAVIGATE, re.compile(r'^(?:go to|navigate to|open|visit|load)\s+(?P<target>\S+)', flags)),
			(
				ActionType.TYPE,
				re.compile(
					r'^(?:type|enter|fill(?: in)?|input)\s+[\'"](?P<value>.+?)[\'"]\s+(?:in|into|on)\s+(?:the\s+)?(?P<target>.+)$',
					flags,
				),
			),
			(
				ActionType.TYPE,
				re.compile(
					r'^(?:fill|set)\s+(?:the\s+)?(?P<target>.+?)\s+(?:with|to)\s+[\'"]?(?P<value>.+?)[\'"]?$',
					flags,
				),
			),
			(ActionType.CLICK, re.compile(r'^(?:click|press|tap)(?:\s+on)?\s+(?:the\s+)?(?P<target>.+)$', flags)),
			(ActionType.WAIT, re.compile(r'^(?:wait|pause|sleep)(?:\s+for)?\s+(?P<target>.+)$', flags)),
			(
				ActionType.SCROLL,
				re.compile(r'^scroll(?:\s+(?:to\s+)?(?:the\s+)?(?P<target>\w+))?', flags),
			),
			(
				ActionType.EXTRACT,
				re.compile(r'^(?:extract|scrape|get|collect)\s+(?:all\s+)?(?:the\s+)?(?P<target>.+)$', flags),
			),
			(ActionType.ANALYZE, re.compile(r'^(?:analyze|analyse|inspect|find|look for)\s+(?P<target>.+)$', flags)),
		]

	async def translate(self, command: str, url: str = "", title: str = "") -> ActionPlan:
		text = command.strip()
		for action, pattern in self._rules:
			match = pattern.match(text)
			if not match:
				continue

			groups = match.groupdict()
			target = (groups.get("target") or "").strip().strip('\'"')
			value = groups.get("value")
			if action is ActionType.SCROLL and not target:
				target = "down"

			plan = ActionPlan(
				action=action.value,
				target=target,
				value=value,
				description=self._describe(action, target, value),
				steps=[f"{action.value} {target}".strip()],
			)
			logger.debug(f"Regex translator matched {action.value}: {plan.target!r}")
			return plan

		logger.info(f"No rule matched command: {command!r}")
		return error_plan(f'Could not understand the command "{command}"', command)

	@staticmethod
	def _describe(action: ActionType, target: str, value: Optional[str]) -> str:
		if action is ActionType.NAVIGATE:
			return f"Navigating to {target}"
		if action is ActionType.TYPE:
			return f'Typing "{value}" into {target}'
		if action is ActionType.CLICK:
			return f"Clicking {target}"
		if action is ActionType.WAIT:
			return f"Waiting {target}"
		if action is ActionType.SCROLL:
			return f"Scrolling {target}"
		if action is ActionType.EXTRACT:
			return f"Extracting {target}"
		return f"Analyzing page for {target}"

	async def analyze(self, page_info: PageInfo, target: str) -> PageAnalysis:
		needle = target.lower()
		suggestions: list[str] = []
		for label, texts in (("button", page_info.buttons), ("link", page_info.links), ("input", page_info.inputs)):
			for text in texts:
				if needle and needle in text.lower():
					suggestions.append(f'Try the {label} with text "{text}"')

		summary = (
			f'"{page_info.title or page_info.url}" has {len(page_info.buttons)} buttons, '
			f"{len(page_info.links)} links and {len(page_info.inputs)} inputs"
		)
		if not suggestions:
			summary += f'; nothing visibly matches "{target}"'
		return PageAnalysis(summary=summary, suggestions=suggestions[:3])


def _extract_json(content: Any) -> dict[str, Any]:
	"""Pull the first JSON object out of a model reply"""
	if isinstance(content, list):
		content = "".join(part.get("text", "") if isinstance(part, dict) else str(part) for part in content)
	text = str(content)
	try:
		data = json.loads(text)
	except json.JSONDecodeError:
		json_match = re.search(r'\{[\s\S]*\}', text)
		if not json_match:
			raise
		data = json.loads(json_match.group())
	if not isinstance(data, dict):
		raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
	return data


class LLMIntentTranslator(IntentTranslator):
	"""Delegates translation and page analysis to a chat model"""

	def __init__(self, llm: BaseChatModel, max_suggestions: int = 3):
		self.llm = llm
		self.max_suggestions = max_suggestions

	def _build_translate_prompt(self, url: str, title: str) -> str:
		return f"""You are a web automation assistant. Turn the user's request into one structured browser action. Prefer specific CSS selectors; fall back to descriptive text.

Current context:
- Current URL: {url or "about:blank"}
- Page title: {title or "(none)"}

Respond with a JSON object:
{{
  "action": "navigate|click|type|wait|scroll|extract|analyze",
  "target": "URL, CSS selector or descriptive text",
  "value": "text to type (optional)",
  "description": "Human-readable summary of the action",
  "steps": ["detailed step 1", "detailed step 2"]
}}

Examples:
- "Open google.com": {{"action": "navigate", "target": "https://google.com", "description": "Navigating to Google"}}
- "Click the login button": {{"action": "click", "target": "button:has-text('Login')", "description": "Clicking the login button"}}
- "Type 'alice' into the username field": {{"action": "type", "target": "input[name='username']", "value": "alice", "description": "Typing username"}}
- "Wait for 3 seconds": {{"action": "wait", "target": "3000", "description": "Waiting for 3 seconds"}}

Output only the JSON object. If no direct action is clear, use "analyze"."""

	@time_execution_async("translate_intent")
	async def translate(self, command: str, url: str = "", title: str = "") -> ActionPlan:
		messages = [
			SystemMessage(content=self._build_translate_prompt(url, title)),
			HumanMessage(content=command),
		]
		try:
			response = await self.llm.ainvoke(messages)
			data = _extract_json(response.content)
		except Exception as e:
			logger.warning(f"Intent translation failed for {command!r}: {e}")
			return error_plan(f"Failed to understand the command: {e}", command)

		return coerce_action_plan(data, command)

	@time_execution_async("analyze_page")
	async def analyze(self, page_info: PageInfo, target: str) -> PageAnalysis:
		info_json = page_info.model_dump_json()
		# ~4 characters per token
		if len(info_json) / 4 > MAX_PROMPT_TOKENS * 0.8:
			logger.warning(f"Page info too large ({len(info_json) // 4} tokens), truncating")
			info_json = page_info.truncated().model_dump_json()

		messages = [
			SystemMessage(
				content=(
					"You are an expert web page analyzer. Given the page structure and a user's target, "
					f"give a concise summary and up to {self.max_suggestions} actionable suggestions for "
					"finding or interacting with the element. Focus on the best selector or approach."
				)
			),
			HumanMessage(
				content=(
					f"Page info: {info_json}\n\nUser is looking for: \"{target}\"\n\n"
					'Answer in JSON like: {"summary": "...", "suggestions": ["...", "..."]}'
				)
			),
		]
		try:
			response = await self.llm.ainvoke(messages)
			data = _extract_json(response.content)
			analysis = PageAnalysis.model_validate(data)
		except Exception as e:
			raise IntentTranslationFailure(f"Page analysis failed: {e}") from e

		analysis.suggestions = analysis.suggestions[: self.max_suggestions]
		return analysis


def create_chat_model(provider: str, model: str, api_key: Optional[str] = None) -> BaseChatModel:
	"""Instantiate the langchain chat model for a provider name"""
	provider = provider.lower()
	if provider == "google":
		from langchain_google_genai import ChatGoogleGenerativeAI

		return ChatGoogleGenerativeAI(model=model, temperature=0, google_api_key=api_key)
	if provider == "openai":
		from langchain_openai import ChatOpenAI

		return ChatOpenAI(model=model, temperature=0, api_key=api_key)
	raise ValueError(f"Unknown LLM provider: {provider}")


def create_translator(config) -> IntentTranslator:
	"""Pick the translator named by a ConductorConfig"""
	if config.translator == "llm":
		llm = create_chat_model(config.llm_provider, config.llm_model, config.llm_api_key)
		logger.info(f"Using LLM intent translator ({config.llm_provider}/{config.llm_model})")
		return LLMIntentTranslator(llm, max_suggestions=config.max_analysis_suggestions)
	logger.info("Using regex intent translator")
	return RegexIntentTranslator()
