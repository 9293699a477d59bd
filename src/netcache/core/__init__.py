from .records import (
    Record,
    RecordKind,
    RequestRecord,
    ResponseRecord,
)
from .errors import (
    NetworkCacheError,
    ValidatorError,
    WaitTimeoutError,
)
from .store import BoundedRecordStore
from .hub import NotificationHub, Subscription
from .gate import IngestGate
from .waiter import PendingWait, WaitCoordinator, WaitState
from .config import CacheConfig
from .cache import NetworkCache, RecordChannel
from .scope import NetworkCacheRegistry

__all__ = [
    "Record",
    "RecordKind",
    "RequestRecord",
    "ResponseRecord",
    "NetworkCacheError",
    "ValidatorError",
    "WaitTimeoutError",
    "BoundedRecordStore",
    "NotificationHub",
    "Subscription",
    "IngestGate",
    "PendingWait",
    "WaitCoordinator",
    "WaitState",
    "CacheConfig",
    "NetworkCache",
    "RecordChannel",
    "NetworkCacheRegistry",
]
