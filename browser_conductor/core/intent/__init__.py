"""Intent translation module"""

from .service import (
	IntentTranslator,
	LLMIntentTranslator,
	RegexIntentTranslator,
	create_chat_model,
	create_translator,
)
from .views import ActionPlan, ActionType, PageAnalysis, PageInfo, coerce_action_plan, error_plan

__all__ = [
	'IntentTranslator',
	'LLMIntentTranslator',
	'RegexIntentTranslator',
	'create_chat_model',
	'create_translator',
	'ActionPlan',
	'ActionType',
	'PageAnalysis',
	'PageInfo',
	'coerce_action_plan',
	'error_plan',
]
