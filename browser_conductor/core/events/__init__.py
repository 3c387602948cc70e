from .service import EventChannel
from .views import DataType, DataUpdate, GeneratedScript, SessionEvent, StatusType, StatusUpdate

__all__ = ['EventChannel', 'DataType', 'DataUpdate', 'GeneratedScript', 'SessionEvent', 'StatusType', 'StatusUpdate']
