"""Per-connection sessions"""

from .pool import SessionPool, install_signal_handlers
from .script import render_test_module
from .service import SessionManager
from .views import (
	HistoryEntry,
	InboundKind,
	InboundMessage,
	WorkflowResult,
	WorkflowStep,
	WorkflowStepResult,
)

__all__ = [
	'SessionManager',
	'SessionPool',
	'install_signal_handlers',
	'render_test_module',
	'HistoryEntry',
	'InboundKind',
	'InboundMessage',
	'WorkflowResult',
	'WorkflowStep',
	'WorkflowStepResult',
]
