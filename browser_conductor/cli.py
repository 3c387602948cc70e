"""Command-line entry points"""

import asyncio
import logging
import sys
from typing import Optional

import click

from browser_conductor.config import ConductorConfig
from browser_conductor.core.driver.service import BrowserDriver
from browser_conductor.core.intent.service import create_translator
from browser_conductor.logging_config import setup_logging
from browser_conductor.session.pool import SessionPool, install_signal_handlers

logger = logging.getLogger(__name__)


def _build_pool(config: ConductorConfig) -> SessionPool:
	return SessionPool(
		driver=BrowserDriver(launch_args=config.launch_args),
		translator=create_translator(config),
		config=config,
	)


@click.group()
@click.option('--env-file', type=click.Path(dir_okay=False), default=None, help='Load settings from this .env file')
@click.option('--log-level', default=None, help='DEBUG, INFO, WARNING or ERROR')
@click.option('--translator', type=click.Choice(['regex', 'llm']), default=None, help='Intent translator to use')
@click.option('--headed', is_flag=True, default=False, help='Show browser windows')
@click.pass_context
def main(ctx: click.Context, env_file: Optional[str], log_level: Optional[str], translator: Optional[str], headed: bool):
	"""browser-conductor: browser automation over JSON-RPC, REST and WebSocket"""
	overrides = {'log_level': log_level, 'translator': translator}
	if headed:
		overrides['headless'] = False
	config = ConductorConfig.from_env(env_file, **overrides)
	setup_logging(config.log_level)
	ctx.obj = config


@main.command('serve-http')
@click.option('--host', default=None, help='Bind address')
@click.option('--port', type=int, default=None, help='Bind port')
@click.pass_obj
def serve_http(config: ConductorConfig, host: Optional[str], port: Optional[int]):
	"""Serve the REST API and the /ws socket endpoint"""
	import uvicorn

	from browser_conductor.gateway.rest import create_app

	app = create_app(_build_pool(config), config)
	# uvicorn runs the lifespan shutdown (every session destroyed) on SIGINT/SIGTERM
	uvicorn.run(app, host=host or config.host, port=port or config.port, log_level=config.log_level.lower())


@main.command('serve-rpc')
@click.option('--tcp', 'tcp_address', default=None, metavar='HOST:PORT', help='Listen on TCP instead of stdio')
@click.pass_obj
def serve_rpc(config: ConductorConfig, tcp_address: Optional[str]):
	"""Serve JSON-RPC (one session per connection)"""
	from browser_conductor.gateway.jsonrpc import JsonRpcServer

	async def run() -> None:
		pool = _build_pool(config)
		server = JsonRpcServer(pool)
		stop = asyncio.Event()
		install_signal_handlers(pool, stop.set)

		if tcp_address:
			host, _, port = tcp_address.rpartition(':')
			serving = asyncio.create_task(server.serve_tcp(host or config.host, int(port)))
		else:
			serving = asyncio.create_task(server.serve_stdio())

		stopped = asyncio.create_task(stop.wait())
		try:
			await asyncio.wait({serving, stopped}, return_when=asyncio.FIRST_COMPLETED)
			server.close()
			stopped.cancel()
			serving.cancel()
			try:
				await serving
			except asyncio.CancelledError:
				pass
			except Exception as e:
				logger.error(f'JSON-RPC server failed: {e}')
		finally:
			await pool.shutdown()

	asyncio.run(run())
	logger.info('Shut down cleanly')
	sys.exit(0)


if __name__ == '__main__':
	main()
