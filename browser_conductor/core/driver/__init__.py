from .service import BrowserDriver

__all__ = ['BrowserDriver']
