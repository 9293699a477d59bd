"""bounded, queryable cache of observed requests and responses.

`NetworkCache` holds one `RecordChannel` per record kind. a channel owns
the store, the ingest gate and the wait coordinator for that kind. all
channels of one cache share a single `NotificationHub`.

ingest order is: stamp -> gate -> append -> publish. the gate is the only
await, so append + publish run back to back with no other ingest or wait
registration in between.
"""

from __future__ import annotations

import logging
from typing import Generic, TypeVar

from .config import CacheConfig, validate_timeout
from .gate import IngestGate, Validator
from .hub import NotificationHub
from .matcher import Pattern, compile_pattern, matches
from .records import Record, RecordKind, RequestRecord, ResponseRecord
from .store import BoundedRecordStore
from .waiter import PendingWait, WaitCoordinator

logger = logging.getLogger("netcache.NetworkCache")

T = TypeVar("T", bound=Record)

_UNSET = object()


class RecordChannel(Generic[T]):
    """store + gate + waits for one record kind.

    :param kind: the record kind this channel accepts.
    :param record_type: records must be instances of this class.
    :param hub: shared hub to publish accepted records on.
    """

    def __init__(self,
        kind: RecordKind,
        record_type: type[T],
        hub: NotificationHub,
        capacity: int,
        validator: Validator | None = None,
    ):
        self.kind = kind
        self.record_type = record_type
        self.hub = hub
        self.store: BoundedRecordStore[T] = BoundedRecordStore(capacity)
        self.gate = IngestGate(validator)
        self.waits: WaitCoordinator[T] = WaitCoordinator(self.store, hub, kind)

    async def ingest(self, candidate: T, *, stamp: bool = True, gate: bool = True) -> T | None:
        """offer `candidate` to the channel.

        :param stamp: set `captured_at` to now. forwarded records keep theirs.
        :param gate: run the validator. forwarded records were already validated once.
        :return: the stored record, or `None` when the gate rejected it.
        :raises ValidatorError: the validator raised; nothing was stored.
        """
        if not isinstance(candidate, self.record_type):
            raise TypeError(f"{self.kind.value} channel expects {self.record_type.__name__}, got {type(candidate).__name__}")
        record = candidate.stamped() if stamp else candidate
        if gate and not await self.gate.accepts(record):
            return None
        self.store.append(record)
        logger.debug("stored %s <%s> (%d/%d)", self.kind.value, record.url, len(self.store), self.store.capacity)
        self.hub.publish(self.kind, record)
        return record

    def exists(self, pattern: Pattern) -> T | None:
        compiled = compile_pattern(pattern)
        return self.store.find_first(lambda record: matches(record, compiled))

    def __repr__(self) -> str:
        return f"<RecordChannel {self.kind.value} {len(self.store)}/{self.store.capacity}>"


class NetworkCache:
    """keeps the most recent requests and responses and lets callers
    look them up or wait for them.

    records are fed in by a collaborator (see `NetworkCacheWatcher`) via
    `record_request()` / `record_response()`.

    :param config: capacity, default timeout and validators.
    :param parent: a wider-scoped cache (e.g. browser-wide) that receives
    a copy of every record this cache accepts (not re-validated).
    :param name: label used in logs.
    """
    config: CacheConfig
    parent: "NetworkCache | None"

    def __init__(self,
        config: CacheConfig | None = None,
        *,
        parent: "NetworkCache | None" = None,
        name: str | None = None,
    ):
        self.config = config or CacheConfig()
        self.parent = parent
        self.name = name or "cache"
        self.hub = NotificationHub()
        self._channels: dict[RecordKind, RecordChannel] = {
            RecordKind.REQUEST: RecordChannel(
                RecordKind.REQUEST, RequestRecord, self.hub,
                self.config.capacity, self.config.request_validator,
            ),
            RecordKind.RESPONSE: RecordChannel(
                RecordKind.RESPONSE, ResponseRecord, self.hub,
                self.config.capacity, self.config.response_validator,
            ),
        }

    def channel(self, kind: RecordKind | str) -> RecordChannel:
        return self._channels[RecordKind(kind)]

    @property
    def requests(self) -> list[RequestRecord]:
        """retained requests, oldest first (a copy)"""
        return self.channel(RecordKind.REQUEST).store.snapshot()

    @property
    def responses(self) -> list[ResponseRecord]:
        """retained responses, oldest first (a copy)"""
        return self.channel(RecordKind.RESPONSE).store.snapshot()

    def configure(self,
        capacity: int | None = None,
        *,
        timeout_ms: float | None = None,
        request_validator: Validator | None = _UNSET,
        response_validator: Validator | None = _UNSET,
    ):
        """change settings in place. only the given options are touched.

        shrinking `capacity` drops the oldest records right away. pass
        `None` as a validator to go back to accepting everything.
        """
        if capacity is not None:
            for channel in self._channels.values():
                channel.store.capacity = capacity
            self.config.capacity = capacity
        if timeout_ms is not None:
            self.config.timeout_ms = validate_timeout(timeout_ms)
        if request_validator is not _UNSET:
            self.channel(RecordKind.REQUEST).gate.validator = request_validator
            self.config.request_validator = request_validator
        if response_validator is not _UNSET:
            self.channel(RecordKind.RESPONSE).gate.validator = response_validator
            self.config.response_validator = response_validator

    async def ingest(self, candidate: Record, *, stamp: bool = True, gate: bool = True) -> Record | None:
        """route `candidate` to the channel for its kind, then to `parent`.

        the validator runs once, here. `parent` stores what this cache
        accepted without consulting its own validator.
        """
        accepted = await self.channel(candidate.kind).ingest(candidate, stamp=stamp, gate=gate)
        if accepted is not None and self.parent is not None:
            await self.parent.ingest(accepted, stamp=False, gate=False)
        return accepted

    async def record_request(self, request: RequestRecord) -> RequestRecord | None:
        return await self.ingest(request)

    async def record_response(self, response: ResponseRecord) -> ResponseRecord | None:
        return await self.ingest(response)

    def exist_request(self, pattern: Pattern) -> RequestRecord | None:
        """earliest retained request whose url matches `pattern`, or `None`"""
        return self.channel(RecordKind.REQUEST).exists(pattern)

    def exist_response(self, pattern: Pattern) -> ResponseRecord | None:
        """earliest retained response whose url matches `pattern`, or `None`"""
        return self.channel(RecordKind.RESPONSE).exists(pattern)

    def start_wait(self,
        kind: RecordKind | str,
        pattern: Pattern,
        timeout_ms: float | None = None,
    ) -> PendingWait:
        """start a wait and hand back its cancellable handle.

        awaiting the handle gives the record or raises `WaitTimeoutError`.
        a handle that is never awaited just settles quietly.
        """
        if timeout_ms is None:
            timeout_ms = self.config.timeout_ms
        return self.channel(kind).waits.start(pattern, timeout_ms)

    async def wait_request(self, pattern: Pattern, timeout_ms: float | None = None) -> RequestRecord:
        """wait for a request whose url matches `pattern`.

        resolves right away if one is already retained.

        :param timeout_ms: defaults to `config.timeout_ms` (20000).
        :raises WaitTimeoutError: nothing matched in time.
        """
        return await self.start_wait(RecordKind.REQUEST, pattern, timeout_ms)

    async def wait_response(self, pattern: Pattern, timeout_ms: float | None = None) -> ResponseRecord:
        """wait for a response whose url matches `pattern`.

        resolves right away if one is already retained.

        :param timeout_ms: defaults to `config.timeout_ms` (20000).
        :raises WaitTimeoutError: nothing matched in time.
        """
        return await self.start_wait(RecordKind.RESPONSE, pattern, timeout_ms)

    def clear(self):
        """drop every retained record. pending waits are left alone."""
        for channel in self._channels.values():
            channel.store.clear()

    def __repr__(self) -> str:
        counts = " ".join(f"{k.value}s={len(c.store)}" for k, c in self._channels.items())
        return f"<NetworkCache {self.name} {counts}>"
