"""Protocol transports over the shared tool dispatcher"""

from .dispatch import ToolDispatcher
from .jsonrpc import JsonRpcConnection, JsonRpcServer
from .rest import create_app
from .tools import TOOLS, TOOLS_BY_NAME

__all__ = ['ToolDispatcher', 'JsonRpcConnection', 'JsonRpcServer', 'create_app', 'TOOLS', 'TOOLS_BY_NAME']
