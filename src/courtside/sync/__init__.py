from courtside.sync.cache import QueryCache
from courtside.sync.dependencies import Dependency
from courtside.sync.entry import QueryEntry, QueryStatus
from courtside.sync.events import EventBus, LifecycleEvent
from courtside.sync.keys import QueryKey, query_key
from courtside.sync.pagination import Page, PageSequence
from courtside.sync.retry import RetryPolicy

__all__ = [
    "Dependency",
    "EventBus",
    "LifecycleEvent",
    "Page",
    "PageSequence",
    "QueryCache",
    "QueryEntry",
    "QueryKey",
    "QueryStatus",
    "RetryPolicy",
    "query_key",
]
