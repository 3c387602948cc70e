"""Runtime configuration loaded from the environment"""

import os
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

ENV_PREFIX = "CONDUCTOR_"


class ConductorConfig(BaseModel):
	"""Timeouts, limits and service settings for one conductor process"""
	model_config = ConfigDict(extra='forbid')

	# Timeouts (milliseconds)
	navigation_timeout_ms: int = Field(default=30000, description="Bound for goto and load-state waits")
	selector_wait_timeout_ms: int = Field(default=30000, description="Default for wait_for_selector")
	action_timeout_ms: int = Field(default=5000, description="Click and fill timeout")
	visibility_probe_ms: int = Field(default=1000, description="Per-strategy visibility probe")
	post_click_navigation_ms: int = Field(default=5000, description="Tolerant wait for navigation after a click")
	post_click_pause_ms: int = Field(default=1000, description="Settle pause after a click")

	# Action defaults
	default_wait_ms: int = Field(default=2000, description="Fallback for unparseable wait durations")
	scroll_delta_px: int = Field(default=500, description="Pixel delta for relative scrolls")
	max_alternatives: int = Field(default=5)
	max_analysis_suggestions: int = Field(default=3)

	# Browser defaults
	default_engine: str = Field(default="chromium")
	headless: bool = Field(default=True)
	launch_args: list[str] = Field(
		default_factory=lambda: ["--no-sandbox", "--disable-setuid-sandbox", "--disable-dev-shm-usage"]
	)

	# Intent translation
	translator: str = Field(default="regex", description="regex|llm")
	llm_provider: str = Field(default="google", description="google|openai")
	llm_model: str = Field(default="gemini-2.0-flash-exp")
	llm_api_key: Optional[str] = Field(default=None, repr=False)

	# Service
	host: str = Field(default="127.0.0.1")
	port: int = Field(default=3000)
	cors_origin: str = Field(default="*")
	event_queue_size: int = Field(default=1000)
	max_frame_bytes: int = Field(default=16 * 1024 * 1024, description="longest JSON-RPC line accepted")
	log_level: str = Field(default="INFO")

	@classmethod
	def from_env(cls, env_file: Optional[str] = None, **overrides: Any) -> "ConductorConfig":
		"""Build a config from CONDUCTOR_* variables, after loading a .env file"""
		load_dotenv(env_file)

		values: dict[str, Any] = {}
		for name, field in cls.model_fields.items():
			raw = os.getenv(f"{ENV_PREFIX}{name.upper()}")
			if raw is None:
				continue
			if field.annotation is bool:
				values[name] = raw.strip().lower() in ("1", "true", "yes", "on")
			elif field.annotation is list[str]:
				values[name] = [part.strip() for part in raw.split(",") if part.strip()]
			else:
				values[name] = raw

		# Provider keys under their usual names
		if "llm_api_key" not in values:
			key = os.getenv("OPENAI_API_KEY") if values.get("llm_provider", "google") == "openai" else os.getenv("GOOGLE_API_KEY")
			if key:
				values["llm_api_key"] = key

		values.update({k: v for k, v in overrides.items() if v is not None})
		return cls.model_validate(values)
