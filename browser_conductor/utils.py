import functools
import logging
import time
from typing import Any, Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

R = TypeVar("R")


def time_execution_async(label: str = "") -> Callable[[Callable[..., Awaitable[R]]], Callable[..., Awaitable[R]]]:
	"""Log how long an async callable took, at debug level"""

	def decorator(func: Callable[..., Awaitable[R]]) -> Callable[..., Awaitable[R]]:
		@functools.wraps(func)
		async def wrapper(*args: Any, **kwargs: Any) -> R:
			start_time = time.perf_counter()
			try:
				return await func(*args, **kwargs)
			finally:
				elapsed_ms = (time.perf_counter() - start_time) * 1000
				logger.debug(f"{label or func.__name__} took {elapsed_ms:.1f}ms")

		return wrapper

	return decorator
