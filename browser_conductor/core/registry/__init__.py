"""Resource ownership registry"""

from .service import ResourceRegistry
from .views import (
	BrowserHandle,
	CloseFailure,
	CloseReport,
	ContextHandle,
	EngineKind,
	Handle,
	PageHandle,
	ResourceKind,
	Viewport,
)

__all__ = [
	'ResourceRegistry',
	'BrowserHandle',
	'CloseFailure',
	'CloseReport',
	'ContextHandle',
	'EngineKind',
	'Handle',
	'PageHandle',
	'ResourceKind',
	'Viewport',
]
