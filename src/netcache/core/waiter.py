"""wait-until-seen protocol on top of a store + hub.

a wait first checks the store. only if nothing matches does it subscribe
and arm a timer, and it does both without yielding to the event loop, so
a record can't slip between "not stored yet" and "not subscribed yet".

from there, whichever of (matching publish, timer, cancel) happens first
settles the wait. settling tears down the subscription and the timer
before the future is resolved, so the loser always finds nothing to do.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import re
from typing import Generic, Hashable, TypeVar

from .errors import WaitTimeoutError
from .hub import NotificationHub, Subscription
from .matcher import Pattern, compile_pattern, matches
from .store import BoundedRecordStore

logger = logging.getLogger("netcache.WaitCoordinator")

T = TypeVar("T")

DEFAULT_TIMEOUT_MS = 20000


class WaitState(enum.Enum):
    CHECKING = "checking"
    SUBSCRIBED = "subscribed"
    SETTLED = "settled"


class PendingWait(Generic[T]):
    """one in-flight wait. awaitable.

    awaiting it returns the matched record, raises `WaitTimeoutError`
    when the deadline passes, or `asyncio.CancelledError` after `cancel()`.
    """
    kind: Hashable
    pattern: re.Pattern
    timeout_ms: float
    state: WaitState

    def __init__(self,
        hub: NotificationHub,
        kind: Hashable,
        pattern: re.Pattern,
        timeout_ms: float,
    ):
        self._hub = hub
        self.kind = kind
        self.pattern = pattern
        self.kind_name = getattr(kind, "value", str(kind))
        self.timeout_ms = timeout_ms
        self.state = WaitState.CHECKING
        self._loop = asyncio.get_running_loop()
        self._future: asyncio.Future = self._loop.create_future()
        self._future.add_done_callback(self._on_done)
        self._subscription: Subscription | None = None
        self._timer: asyncio.TimerHandle | None = None

    def _on_done(self, future: asyncio.Future):
        # external task cancellation lands here too
        self._teardown()
        # mark a timeout as retrieved; awaiting still raises
        if not future.cancelled():
            future.exception()

    def _resolve(self, record: T):
        self._teardown()
        logger.debug("%s wait for %r matched <%s>", self.kind_name, self.pattern.pattern, record.url)
        self._future.set_result(record)

    def _subscribe(self):
        self._subscription = self._hub.subscribe(self.kind, self._on_record)
        self._timer = self._loop.call_later(self.timeout_ms / 1000, self._on_timeout)
        self.state = WaitState.SUBSCRIBED

    def _settled(self) -> bool:
        return self.state is WaitState.SETTLED or self._future.done()

    def _on_record(self, record: T):
        if self._settled():
            return
        # the hub offers every record of this kind; filter here
        if matches(record, self.pattern):
            self._resolve(record)

    def _on_timeout(self):
        settled = self._settled()
        self._teardown()
        if settled:
            return
        logger.debug("%s wait for %r timed out after %g ms", self.kind_name, self.pattern.pattern, self.timeout_ms)
        self._future.set_exception(WaitTimeoutError(self.kind_name, self.pattern, self.timeout_ms))

    def _teardown(self):
        self.state = WaitState.SETTLED
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._subscription is not None:
            self._hub.unsubscribe(self._subscription)
            self._subscription = None

    def cancel(self) -> bool:
        """settle as cancelled. no-op (returns False) once settled."""
        settled = self._settled()
        self._teardown()
        return not settled and self._future.cancel()

    def done(self) -> bool:
        return self.state is WaitState.SETTLED

    def __await__(self):
        return self._future.__await__()

    def __repr__(self) -> str:
        return f"<PendingWait {self.kind_name} {self.pattern.pattern!r} {self.state.value}>"


class WaitCoordinator(Generic[T]):
    """starts waits against one store/hub pair for one record kind.

    :param store: the store to check first.
    :param hub: where new records of `kind` get published.
    :param kind: the kind key used on the hub.
    """

    def __init__(self, store: BoundedRecordStore[T], hub: NotificationHub, kind: Hashable):
        self.store = store
        self.hub = hub
        self.kind = kind

    def start(self, pattern: Pattern, timeout_ms: float = DEFAULT_TIMEOUT_MS) -> PendingWait[T]:
        """begin a wait and return its handle without suspending.

        must be called from a running event loop.
        """
        if timeout_ms < 0:
            raise ValueError(f"timeout_ms must be >= 0, got {timeout_ms!r}")
        compiled = compile_pattern(pattern)
        pending = PendingWait(self.hub, self.kind, compiled, timeout_ms)
        existing = self.store.find_first(lambda record: matches(record, compiled))
        if existing is not None:
            pending._resolve(existing)
        else:
            pending._subscribe()
        return pending

    async def wait(self, pattern: Pattern, timeout_ms: float = DEFAULT_TIMEOUT_MS) -> T:
        """wait for the earliest retained or next published record matching `pattern`.

        :raises WaitTimeoutError: nothing matched within `timeout_ms`.
        """
        return await self.start(pattern, timeout_ms)
