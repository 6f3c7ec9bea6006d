from courtside.runtime import SyncRuntime

__all__ = ["SyncRuntime"]

__version__ = "0.1.0"
