from .receiver import FileReceiver
from .inbox import InboxWatcher

__all__ = ['FileReceiver', 'InboxWatcher']
