"""Browser automation over JSON-RPC, REST and socket events"""

__version__ = "0.1.0"

from browser_conductor.config import ConductorConfig
from browser_conductor.exceptions import ConductorError

__all__ = ['ConductorConfig', 'ConductorError', '__version__']
