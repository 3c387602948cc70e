from .service import ActionExecutor
from .views import ActionResult, ScreenshotResult, normalize_url, parse_duration

__all__ = ['ActionExecutor', 'ActionResult', 'ScreenshotResult', 'normalize_url', 'parse_duration']
