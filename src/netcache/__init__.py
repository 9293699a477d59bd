from .core.records import (
    Record,
    RecordKind,
    RequestRecord,
    ResponseRecord,
)
from .core.errors import (
    NetworkCacheError,
    ValidatorError,
    WaitTimeoutError,
)
from .core.store import BoundedRecordStore
from .core.hub import NotificationHub, Subscription
from .core.gate import IngestGate
from .core.matcher import compile_pattern, matches
from .core.waiter import (
    DEFAULT_TIMEOUT_MS,
    PendingWait,
    WaitCoordinator,
    WaitState,
)
from .core.config import CacheConfig
from .core.cache import NetworkCache, RecordChannel
from .core.scope import NetworkCacheRegistry
from .core.watcher import NetworkCacheWatcher
from nodriver import cdp

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
    "compile_pattern",
    "matches",
    "DEFAULT_TIMEOUT_MS",
    "PendingWait",
    "WaitCoordinator",
    "WaitState",
    "CacheConfig",
    "NetworkCache",
    "RecordChannel",
    "NetworkCacheRegistry",
    "NetworkCacheWatcher",
    "cdp",
]
