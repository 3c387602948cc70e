import logging
import sys

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'


def setup_logging(level: str = "INFO", stream=None) -> None:
	"""Configure the root logger once for the whole process.

	JSON-RPC over stdio owns stdout, so log records always go to stderr unless
	another stream is given.
	"""
	logging.basicConfig(
		level=getattr(logging, level.upper(), logging.INFO),
		format=LOG_FORMAT,
		handlers=[logging.StreamHandler(stream or sys.stderr)],
		force=True,
	)

	# Third-party chatter
	for noisy in ("asyncio", "httpx", "httpcore", "openai", "urllib3"):
		logging.getLogger(noisy).setLevel(logging.WARNING)
